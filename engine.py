"""
engine.py
Membership lifecycle rules: renewal dates, fee-status derivation, member
queries and the one-open-session-per-day attendance rule.

Every function here is pure. Collections are passed in and new values are
returned; nothing is mutated and nothing is read from a clock.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Iterator

from exceptions import AlreadyCheckedIn, ClockSkew, InvalidPlan, InvalidStatus, NoOpenSession
from models import (
    FEE_STATUSES,
    PAID,
    PLAN_ALIASES,
    PLAN_MONTHS,
    UNPAID,
    AttendanceRecord,
    Member,
    Summary,
)
from utils import add_months

RENEWAL_ANCHORS = ("today", "cycle")


def normalize_plan(plan: str) -> str:
    key = plan.strip() if isinstance(plan, str) else plan
    key = PLAN_ALIASES.get(key, key)
    if key not in PLAN_MONTHS:
        raise InvalidPlan(plan)
    return key


def validate_status(status: str) -> str:
    if status not in FEE_STATUSES:
        raise InvalidStatus(status)
    return status


# ---------- Fee lifecycle ----------

def compute_renewal_date(admission_date: date, plan: str) -> date:
    """
    Date the cycle that starts on admission_date ends for the given plan.
    """
    return add_months(admission_date, PLAN_MONTHS[normalize_plan(plan)])


def derive_fee_status(current_status: str, next_payment_due: date, today: date) -> str:
    """
    Overdue rule applied by the sweep.

    A paid member whose due date has passed becomes unpaid. Nothing else
    changes: an unpaid member is only made paid again by an explicit action.
    """
    validate_status(current_status)
    if current_status == PAID and today > next_payment_due:
        return UNPAID
    return current_status


def apply_fee_status_override(member: Member, new_status: str) -> Member:
    """Manual status toggle. Leaves next_payment_due alone."""
    return replace(member, fee_status=validate_status(new_status))


def renew_membership(member: Member, today: date, anchor: str = "today") -> Member:
    """
    Record a payment: mark the member paid and start a fresh billing cycle.

    anchor="today" starts the new cycle today; anchor="cycle" continues
    from the end of the current one.
    """
    if anchor == "today":
        start = today
    elif anchor == "cycle":
        start = member.next_payment_due
    else:
        raise ValueError(f"Unknown renewal anchor '{anchor}'")
    return replace(
        member,
        fee_status=PAID,
        next_payment_due=compute_renewal_date(start, member.plan),
    )


def sweep(members: Iterable[Member], today: date) -> list[Member]:
    """Members whose status flips on this tick, already updated."""
    changed = []
    for member in members:
        status = derive_fee_status(member.fee_status, member.next_payment_due, today)
        if status != member.fee_status:
            changed.append(replace(member, fee_status=status))
    return changed


# ---------- Queries ----------

def _matches(member: Member, needle: str | None, status: str | None) -> bool:
    if status is not None and member.fee_status != status:
        return False
    if needle:
        return needle.lower() in member.name.lower() or needle in member.contact
    return True


def query_members(
    members: Iterable[Member],
    search_text: str | None = None,
    status: str | None = None,
) -> Iterator[Member]:
    """
    Lazily filter members by name/contact text and fee status.

    Order is preserved. Blank search text matches everyone.
    """
    if status is not None:
        validate_status(status)
    needle = (search_text or "").strip() or None
    return (m for m in members if _matches(m, needle, status))


def summarize(members: Iterable[Member]) -> Summary:
    total = paid = unpaid = 0
    for member in members:
        total += 1
        if member.fee_status == PAID:
            paid += 1
        elif member.fee_status == UNPAID:
            unpaid += 1
    return Summary(total=total, paid=paid, unpaid=unpaid)


# ---------- Attendance ----------

def open_session(
    records: Iterable[AttendanceRecord], member_id: str, day: date
) -> AttendanceRecord | None:
    """Most recent open record for the member that was checked in on day."""
    latest = None
    for record in records:
        if record.member_id != member_id or not record.is_open:
            continue
        if record.check_in_time.date() != day:
            continue
        if latest is None or record.check_in_time >= latest.check_in_time:
            latest = record
    return latest


def check_in(
    records: Iterable[AttendanceRecord],
    member_id: str,
    now: datetime,
    record_id: str | None = None,
) -> tuple[AttendanceRecord, ...]:
    records = tuple(records)
    if open_session(records, member_id, now.date()) is not None:
        raise AlreadyCheckedIn(member_id, now.date())
    record = AttendanceRecord(
        id=record_id or uuid.uuid4().hex,
        member_id=member_id,
        check_in_time=now,
    )
    return records + (record,)


def check_out(
    records: Iterable[AttendanceRecord], member_id: str, now: datetime
) -> tuple[AttendanceRecord, ...]:
    records = tuple(records)
    session = open_session(records, member_id, now.date())
    if session is None:
        raise NoOpenSession(member_id, now.date())
    if now < session.check_in_time:
        raise ClockSkew(member_id, session.check_in_time, now)
    closed = replace(session, check_out_time=now)
    return tuple(closed if r is session else r for r in records)
