"""
service.py
Membership operations: the lifecycle engine wired to a store and a clock.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta

import engine
from exceptions import ValidationError
from models import PAID, AttendanceRecord, Member, Summary
from stores import MemberStore
from utils import as_date, validate_member_inputs

logger = logging.getLogger(__name__)


class MembershipService:
    """
    Entry point used by the UI and the sweep.

    today and now are zero-argument callables so tests and the sweep can
    pin the clock.
    """

    def __init__(self, store: MemberStore, today=None, now=None, renewal_anchor: str = "today"):
        if renewal_anchor not in engine.RENEWAL_ANCHORS:
            raise ValueError(f"Unknown renewal anchor '{renewal_anchor}'")
        self.store = store
        self.renewal_anchor = renewal_anchor
        self._today = today or (lambda: date.today())
        self._now = now or (lambda: datetime.now())

    # ---------- Members ----------

    def add_member(self, name: str, contact: str, admission_date, plan: str) -> Member:
        errors = validate_member_inputs(name, contact, admission_date, plan)
        if errors:
            raise ValidationError(errors)
        plan = engine.normalize_plan(plan)
        admitted = as_date(admission_date)
        member = Member(
            id=uuid.uuid4().hex,
            name=name.strip(),
            contact=contact.strip(),
            admission_date=admitted,
            plan=plan,
            fee_status=PAID,  # new members start as paid
            next_payment_due=engine.compute_renewal_date(admitted, plan),
        )
        saved = self.store.add_member(member)
        logger.info("Added member %s (%s, %s)", saved.id, saved.name, saved.plan)
        return saved

    def update_member(self, member_id: str, name=None, contact=None, admission_date=None, plan=None) -> Member:
        """
        Edit member fields. next_payment_due follows admission date and plan;
        fee status is kept as is.
        """
        current = self.store.get_member(member_id)
        name = current.name if name is None else name
        contact = current.contact if contact is None else contact
        admission_date = current.admission_date if admission_date is None else admission_date
        plan = current.plan if plan is None else plan

        errors = validate_member_inputs(name, contact, admission_date, plan)
        if errors:
            raise ValidationError(errors)
        plan = engine.normalize_plan(plan)
        admitted = as_date(admission_date)

        updated = replace(current, name=name.strip(), contact=contact.strip(), admission_date=admitted, plan=plan)
        if admitted != current.admission_date or plan != current.plan:
            updated = replace(updated, next_payment_due=engine.compute_renewal_date(admitted, plan))
        saved = self.store.save_member(updated)
        logger.info("Updated member %s", member_id)
        return saved

    def delete_member(self, member_id: str) -> None:
        self.store.delete_member(member_id)
        logger.info("Deleted member %s and its attendance", member_id)

    def get_member(self, member_id: str) -> Member:
        return self.store.get_member(member_id)

    def list_members(self, search: str | None = None, status: str | None = None) -> list[Member]:
        # Re-filter locally so every backend answers the same way
        return list(engine.query_members(self.store.list_members(search, status), search, status))

    def summary(self) -> Summary:
        return engine.summarize(self.store.list_members())

    def due_soon(self, days: int = 7) -> list[Member]:
        """Paid members whose cycle ends within the next `days` days."""
        today = self._today()
        horizon = today + timedelta(days=days)
        members = [
            m for m in self.store.list_members(status=PAID)
            if today <= m.next_payment_due <= horizon
        ]
        return sorted(members, key=lambda m: m.next_payment_due)

    # ---------- Fees ----------

    def set_fee_status(self, member_id: str, status: str) -> Member:
        engine.validate_status(status)
        member = self.store.set_fee_status(member_id, status)
        logger.info("Fee status of member %s set to %s", member_id, status)
        return member

    def mark_paid(self, member_id: str) -> Member:
        """Record a payment and start the next billing cycle."""
        member = self.store.get_member(member_id)
        renewed = engine.renew_membership(member, self._today(), self.renewal_anchor)
        saved = self.store.save_member(renewed)
        logger.info("Renewed member %s until %s", member_id, saved.next_payment_due)
        return saved

    def run_overdue_sweep(self) -> int:
        today = self._today()
        transitioned = self.store.run_sweep(today)
        logger.info("Overdue sweep for %s: %d member(s) marked unpaid", today, transitioned)
        return transitioned

    # ---------- Attendance ----------

    def check_in(self, member_id: str) -> AttendanceRecord:
        self.store.get_member(member_id)
        records = self.store.list_attendance(member_id)
        updated = engine.check_in(records, member_id, self._now())
        record = self.store.save_attendance(updated[-1])
        logger.info("Member %s checked in at %s", member_id, record.check_in_time)
        return record

    def check_out(self, member_id: str) -> AttendanceRecord:
        self.store.get_member(member_id)
        now = self._now()
        records = self.store.list_attendance(member_id)
        session = engine.open_session(records, member_id, now.date())
        updated = engine.check_out(records, member_id, now)
        closed = next(r for r in updated if r.id == session.id)
        record = self.store.save_attendance(closed)
        logger.info("Member %s checked out at %s", member_id, record.check_out_time)
        return record

    def attendance_history(self, member_id: str | None = None) -> list[AttendanceRecord]:
        return self.store.list_attendance(member_id)

    def attendance_for_day(self, day: date | None = None) -> list[AttendanceRecord]:
        day = day or self._today()
        return [r for r in self.store.list_attendance() if r.check_in_time.date() == day]
