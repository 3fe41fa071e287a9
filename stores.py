"""
stores.py
Persistence port for members and attendance, with three adapters:
in-memory, local SQLite file, and a REST API client.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date

import requests

import db
import engine
from exceptions import ConfigError, MemberNotFound, StoreError
from models import PAID, AttendanceRecord, Member
from utils import (
    attendance_from_dict,
    attendance_to_dict,
    format_date,
    format_timestamp,
    member_from_dict,
    member_to_dict,
    parse_iso,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


class MemberStore(ABC):
    """Storage for members and their attendance records."""

    @abstractmethod
    def list_members(self, search: str | None = None, status: str | None = None) -> list[Member]:
        ...

    @abstractmethod
    def get_member(self, member_id: str) -> Member:
        ...

    @abstractmethod
    def add_member(self, member: Member) -> Member:
        ...

    @abstractmethod
    def save_member(self, member: Member) -> Member:
        ...

    @abstractmethod
    def delete_member(self, member_id: str) -> None:
        """Remove the member together with its attendance records."""

    @abstractmethod
    def set_fee_status(self, member_id: str, status: str) -> Member:
        ...

    @abstractmethod
    def compare_and_set_status(
        self, member_id: str, expected_status: str, expected_due: date, new_status: str
    ) -> bool:
        """
        Write new_status only if the record still has expected_status and
        expected_due. Returns whether the write happened.
        """

    @abstractmethod
    def list_attendance(self, member_id: str | None = None) -> list[AttendanceRecord]:
        ...

    @abstractmethod
    def save_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        ...

    def run_sweep(self, today: date) -> int:
        """
        Flip overdue paid members to unpaid. Returns how many were flipped.
        """
        transitioned = 0
        for member in engine.sweep(self.list_members(), today):
            try:
                landed = self.compare_and_set_status(
                    member.id, PAID, member.next_payment_due, member.fee_status
                )
            except MemberNotFound:
                landed = False
            if landed:
                transitioned += 1
            else:
                logger.warning("Skipped sweep update for member %s: record changed", member.id)
        return transitioned


class InMemoryStore(MemberStore):
    """Process-local store. Insertion order is list order."""

    def __init__(self, members=(), attendance=()):
        self._lock = threading.RLock()
        self._members: dict[str, Member] = {m.id: m for m in members}
        self._attendance: dict[str, AttendanceRecord] = {r.id: r for r in attendance}

    def list_members(self, search=None, status=None):
        with self._lock:
            snapshot = list(self._members.values())
        return list(engine.query_members(snapshot, search, status))

    def get_member(self, member_id):
        with self._lock:
            try:
                return self._members[member_id]
            except KeyError:
                raise MemberNotFound(member_id) from None

    def add_member(self, member):
        with self._lock:
            if member.id in self._members:
                raise StoreError(f"Member '{member.id}' already exists")
            self._members[member.id] = member
        return member

    def save_member(self, member):
        with self._lock:
            if member.id not in self._members:
                raise MemberNotFound(member.id)
            self._members[member.id] = member
        return member

    def delete_member(self, member_id):
        with self._lock:
            if self._members.pop(member_id, None) is None:
                raise MemberNotFound(member_id)
            self._attendance = {
                rid: r for rid, r in self._attendance.items() if r.member_id != member_id
            }

    def set_fee_status(self, member_id, status):
        with self._lock:
            member = engine.apply_fee_status_override(self.get_member(member_id), status)
            self._members[member_id] = member
        return member

    def compare_and_set_status(self, member_id, expected_status, expected_due, new_status):
        engine.validate_status(new_status)
        with self._lock:
            current = self._members.get(member_id)
            if current is None:
                raise MemberNotFound(member_id)
            if current.fee_status != expected_status or current.next_payment_due != expected_due:
                return False
            self._members[member_id] = replace(current, fee_status=new_status)
            return True

    def list_attendance(self, member_id=None):
        with self._lock:
            records = list(self._attendance.values())
        if member_id is not None:
            records = [r for r in records if r.member_id == member_id]
        return records

    def save_attendance(self, record):
        with self._lock:
            if record.member_id not in self._members:
                raise MemberNotFound(record.member_id)
            self._attendance[record.id] = record
        return record


def _row_to_member(row) -> Member:
    return Member(
        id=row["id"],
        name=row["name"],
        contact=row["contact"],
        admission_date=parse_iso(row["admission_date"]),
        plan=row["plan"],
        fee_status=row["fee_status"],
        next_payment_due=parse_iso(row["next_payment_due"]),
    )


def _row_to_attendance(row) -> AttendanceRecord:
    out = row["check_out_time"]
    return AttendanceRecord(
        id=row["id"],
        member_id=row["member_id"],
        check_in_time=parse_timestamp(row["check_in_time"]),
        check_out_time=parse_timestamp(out) if out else None,
    )


class SqliteStore(MemberStore):
    """Local persistent store backed by a SQLite file."""

    def __init__(self, db_file=db.DB_FILE):
        self.db_file = db_file
        db.init_db(db_file)

    def list_members(self, search=None, status=None):
        sql = "SELECT * FROM members WHERE 1=1"
        params = []

        if status is not None:
            sql += " AND fee_status = ?"
            params.append(engine.validate_status(status))

        sql += " ORDER BY rowid ASC"
        logger.debug("Listing members: %s %s", sql, params)
        rows = db.fetch_all(self.db_file, sql, tuple(params))
        # SQLite lower() folds ASCII only, so text matching stays in Python
        return list(engine.query_members((_row_to_member(r) for r in rows), search))

    def get_member(self, member_id):
        row = db.fetch_one(self.db_file, "SELECT * FROM members WHERE id = ?", (member_id,))
        if row is None:
            raise MemberNotFound(member_id)
        return _row_to_member(row)

    def add_member(self, member):
        try:
            db.execute(
                self.db_file,
                """
                INSERT INTO members(id, name, contact, admission_date, plan, fee_status, next_payment_due)
                VALUES(?,?,?,?,?,?,?)
                """,
                (
                    member.id,
                    member.name,
                    member.contact,
                    format_date(member.admission_date),
                    member.plan,
                    member.fee_status,
                    format_date(member.next_payment_due),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise StoreError(f"Could not insert member '{member.id}': {exc}") from exc
        return member

    def save_member(self, member):
        changed = db.execute(
            self.db_file,
            """
            UPDATE members SET name=?, contact=?, admission_date=?, plan=?,
                fee_status=?, next_payment_due=?
            WHERE id=?
            """,
            (
                member.name,
                member.contact,
                format_date(member.admission_date),
                member.plan,
                member.fee_status,
                format_date(member.next_payment_due),
                member.id,
            ),
        )
        if not changed:
            raise MemberNotFound(member.id)
        return member

    def delete_member(self, member_id):
        if not db.execute(self.db_file, "DELETE FROM members WHERE id = ?", (member_id,)):
            raise MemberNotFound(member_id)

    def set_fee_status(self, member_id, status):
        changed = db.execute(
            self.db_file,
            "UPDATE members SET fee_status = ? WHERE id = ?",
            (engine.validate_status(status), member_id),
        )
        if not changed:
            raise MemberNotFound(member_id)
        return self.get_member(member_id)

    def compare_and_set_status(self, member_id, expected_status, expected_due, new_status):
        changed = db.execute(
            self.db_file,
            """
            UPDATE members SET fee_status = ?
            WHERE id = ? AND fee_status = ? AND next_payment_due = ?
            """,
            (engine.validate_status(new_status), member_id, expected_status, format_date(expected_due)),
        )
        if changed:
            return True
        # Distinguish a missed compare from a missing record
        self.get_member(member_id)
        return False

    def list_attendance(self, member_id=None):
        if member_id is None:
            rows = db.fetch_all(self.db_file, "SELECT * FROM attendance ORDER BY check_in_time, rowid")
        else:
            rows = db.fetch_all(
                self.db_file,
                "SELECT * FROM attendance WHERE member_id = ? ORDER BY check_in_time, rowid",
                (member_id,),
            )
        return [_row_to_attendance(r) for r in rows]

    def save_attendance(self, record):
        try:
            db.execute(
                self.db_file,
                """
                INSERT INTO attendance(id, member_id, check_in_time, check_out_time) VALUES(?,?,?,?)
                ON CONFLICT(id) DO UPDATE SET check_out_time=excluded.check_out_time
                """,
                (
                    record.id,
                    record.member_id,
                    format_timestamp(record.check_in_time),
                    format_timestamp(record.check_out_time) if record.check_out_time else None,
                ),
            )
        except sqlite3.IntegrityError as exc:
            # Foreign key: the member does not exist
            raise MemberNotFound(record.member_id) from exc
        return record


class HttpStore(MemberStore):
    """Client for a REST API exposing members and attendance."""

    def __init__(self, base_url: str, timeout: float = 10, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, member_id: str | None = None, ok=(), **kwargs):
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise StoreError(f"request error: {exc}") from exc
        if r.status_code in ok:
            return r
        if r.status_code == 404 and member_id is not None:
            raise MemberNotFound(member_id)
        if not 200 <= r.status_code < 300:
            logger.warning("%s %s returned %s", method, url, r.status_code)
            raise StoreError(f"{method} {path} returned {r.status_code}: {r.text}")
        return r

    def list_members(self, search=None, status=None):
        params = {}
        needle = (search or "").strip()
        if needle:
            params["search"] = needle
        if status is not None:
            params["status"] = engine.validate_status(status)
        r = self._request("GET", "/members", params=params)
        return [member_from_dict(d) for d in r.json()]

    def get_member(self, member_id):
        r = self._request("GET", f"/members/{member_id}", member_id=member_id)
        return member_from_dict(r.json())

    def add_member(self, member):
        r = self._request("POST", "/members", json=member_to_dict(member))
        return member_from_dict(r.json())

    def save_member(self, member):
        r = self._request("PUT", f"/members/{member.id}", member_id=member.id, json=member_to_dict(member))
        return member_from_dict(r.json())

    def delete_member(self, member_id):
        self._request("DELETE", f"/members/{member_id}", member_id=member_id)

    def set_fee_status(self, member_id, status):
        r = self._request(
            "PATCH",
            f"/members/{member_id}/fee-status",
            member_id=member_id,
            json={"feeStatus": engine.validate_status(status)},
        )
        return member_from_dict(r.json())

    def compare_and_set_status(self, member_id, expected_status, expected_due, new_status):
        r = self._request(
            "PATCH",
            f"/members/{member_id}/fee-status",
            member_id=member_id,
            ok=(409,),
            json={
                "feeStatus": engine.validate_status(new_status),
                "expected": {"feeStatus": expected_status, "nextPaymentDue": format_date(expected_due)},
            },
        )
        return r.status_code != 409

    def run_sweep(self, today):
        r = self._request("POST", "/members/sweep", json={"today": format_date(today)})
        return int(r.json()["transitioned"])

    def list_attendance(self, member_id=None):
        params = {"memberId": member_id} if member_id is not None else {}
        r = self._request("GET", "/attendance", params=params)
        return [attendance_from_dict(d) for d in r.json()]

    def save_attendance(self, record):
        r = self._request(
            "PUT",
            f"/attendance/{record.id}",
            member_id=record.member_id,
            json=attendance_to_dict(record),
        )
        return attendance_from_dict(r.json())


def make_store(settings) -> MemberStore:
    backend = settings.store_backend
    if backend == "memory":
        return InMemoryStore()
    if backend == "sqlite":
        return SqliteStore(settings.db_file)
    if backend == "http":
        return HttpStore(settings.api_url, timeout=settings.api_timeout)
    raise ConfigError(f"Unknown store backend '{backend}'")
