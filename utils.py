"""
utils.py
Validation, dates, wire codec, exports, sample data.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
import pandas as pd

from models import AttendanceRecord, Member, UNPAID


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def format_date(d: date) -> str:
    return d.isoformat()


def as_date(value) -> date:
    """
    Accept a date (or datetime) or an ISO string and return a plain date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso(str(value).strip())


def parse_timestamp(ts: str) -> datetime:
    return datetime.fromisoformat(ts)


def format_timestamp(ts: datetime) -> str:
    return ts.isoformat()


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def validate_member_inputs(name: str, contact: str, admission_date, plan: str) -> list[str]:
    errors: list[str] = []
    if not (name or "").strip():
        errors.append("Member name is required.")
    if not (contact or "").strip():
        errors.append("WhatsApp number is required.")
    if not (plan or "").strip():
        errors.append("Membership type is required.")
    if admission_date is None or (isinstance(admission_date, str) and not admission_date.strip()):
        errors.append("Admission date is required.")
    else:
        try:
            as_date(admission_date)
        except ValueError:
            errors.append("Admission date must be a valid ISO date (YYYY-MM-DD).")
    return errors


# ---------- Wire codec (REST JSON shape) ----------

def member_to_dict(member: Member) -> dict:
    return {
        "id": member.id,
        "name": member.name,
        "whatsapp": member.contact,
        "admissionDate": format_date(member.admission_date),
        "membershipType": member.plan,
        "feeStatus": member.fee_status,
        "nextPaymentDue": format_date(member.next_payment_due),
    }


def member_from_dict(data: dict) -> Member:
    return Member(
        id=str(data["id"]),
        name=data["name"],
        contact=data["whatsapp"],
        admission_date=parse_iso(data["admissionDate"]),
        plan=data["membershipType"],
        fee_status=data["feeStatus"],
        next_payment_due=parse_iso(data["nextPaymentDue"]),
    )


def attendance_to_dict(record: AttendanceRecord) -> dict:
    return {
        "id": record.id,
        "memberId": record.member_id,
        "checkInTime": format_timestamp(record.check_in_time),
        "checkOutTime": format_timestamp(record.check_out_time) if record.check_out_time else None,
    }


def attendance_from_dict(data: dict) -> AttendanceRecord:
    out = data.get("checkOutTime")
    return AttendanceRecord(
        id=str(data["id"]),
        member_id=str(data["memberId"]),
        check_in_time=parse_timestamp(data["checkInTime"]),
        check_out_time=parse_timestamp(out) if out else None,
    )


# ---------- Exports ----------

MEMBER_COLUMNS = ["id", "name", "whatsapp", "admissionDate", "membershipType", "feeStatus", "nextPaymentDue"]
ATTENDANCE_COLUMNS = ["id", "memberId", "checkInTime", "checkOutTime"]


def members_frame(members) -> pd.DataFrame:
    return pd.DataFrame([member_to_dict(m) for m in members], columns=MEMBER_COLUMNS)


def attendance_frame(records) -> pd.DataFrame:
    return pd.DataFrame([attendance_to_dict(r) for r in records], columns=ATTENDANCE_COLUMNS)


def members_to_csv_bytes(members) -> bytes:
    return members_frame(members).to_csv(index=False).encode("utf-8")


def attendance_to_csv_bytes(records) -> bytes:
    return attendance_frame(records).to_csv(index=False).encode("utf-8")


def insert_sample_data(service) -> list[Member]:
    """
    Insert 2 sample members (safe to run multiple times: adds new rows each time).
    """
    john = service.add_member("John Doe", "+91 9876543210", date(2024, 1, 15), "Monthly")
    jane = service.add_member("Jane Smith", "+91 9876543211", date(2024, 2, 1), "Quarterly")
    jane = service.set_fee_status(jane.id, UNPAID)
    return [john, jane]
