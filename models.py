"""
models.py
Lightweight domain helpers (plans, fee statuses, dataclasses).
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime

# Plan durations in whole months (used for next_payment_due calculation)
PLAN_MONTHS = {
    "Monthly": 1,
    "Quarterly": 3,
    "Half-Yearly": 6,
    "Yearly": 12,
}

# Accepted spellings on input, normalized to the PLAN_MONTHS keys
PLAN_ALIASES = {
    "HalfYearly": "Half-Yearly",
}

PAID = "paid"
UNPAID = "unpaid"
FEE_STATUSES = (PAID, UNPAID)


@dataclass(frozen=True)
class Member:
    id: str
    name: str
    contact: str  # phone / WhatsApp number
    admission_date: date
    plan: str
    fee_status: str  # 'paid' or 'unpaid'
    next_payment_due: date


@dataclass(frozen=True)
class AttendanceRecord:
    id: str
    member_id: str
    check_in_time: datetime
    check_out_time: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None


@dataclass(frozen=True)
class Summary:
    total: int
    paid: int
    unpaid: int
