"""Tests for the in-memory and SQLite stores."""

from dataclasses import replace
from datetime import date, datetime

import pytest

from exceptions import InvalidStatus, MemberNotFound, StoreError
from models import PAID, UNPAID, AttendanceRecord
from stores import SqliteStore


class TestMembers:
    """CRUD behaviour shared by every local store."""

    def test_add_and_get(self, store, make_member):
        member = make_member()
        store.add_member(member)

        assert store.get_member("m1") == member

    def test_add_duplicate_id(self, store, make_member):
        store.add_member(make_member())
        with pytest.raises(StoreError):
            store.add_member(make_member())

    def test_get_missing(self, store):
        with pytest.raises(MemberNotFound) as exc_info:
            store.get_member("nope")
        assert exc_info.value.member_id == "nope"

    def test_list_preserves_insertion_order(self, store, make_member):
        for i, name in enumerate(["Zed", "Amy", "Bob"]):
            store.add_member(make_member(id=f"m{i}", name=name))

        assert [m.name for m in store.list_members()] == ["Zed", "Amy", "Bob"]

    def test_list_search_and_status(self, store, make_member):
        store.add_member(make_member(id="1", name="John Doe"))
        store.add_member(make_member(id="2", name="Jane Smith", contact="+91 9876543211", fee_status=UNPAID))
        store.add_member(make_member(id="3", name="Johnny", contact="555-0100", fee_status=UNPAID))

        assert [m.id for m in store.list_members(search="jane")] == ["2"]
        assert [m.id for m in store.list_members(search="0100")] == ["3"]
        assert [m.id for m in store.list_members(status=UNPAID)] == ["2", "3"]
        assert [m.id for m in store.list_members(search="john", status=PAID)] == ["1"]

    def test_list_search_folds_non_ascii_case(self, store, make_member):
        store.add_member(make_member(id="1", name="ÉMILE Zola"))
        store.add_member(make_member(id="2", name="Ödön Horváth", fee_status=UNPAID))

        assert [m.id for m in store.list_members(search="émile")] == ["1"]
        assert [m.id for m in store.list_members(search="öDÖN", status=UNPAID)] == ["2"]
        assert [m.id for m in store.list_members(search="   ")] == ["1", "2"]

    def test_list_invalid_status(self, store):
        with pytest.raises(InvalidStatus):
            store.list_members(status="late")

    def test_save(self, store, make_member):
        store.add_member(make_member())
        edited = replace(make_member(), name="John Q. Doe")

        store.save_member(edited)

        assert store.get_member("m1").name == "John Q. Doe"

    def test_save_missing(self, store, make_member):
        with pytest.raises(MemberNotFound):
            store.save_member(make_member())

    def test_save_keeps_position(self, store, make_member):
        store.add_member(make_member(id="a"))
        store.add_member(make_member(id="b"))
        store.save_member(make_member(id="a", name="Renamed"))

        assert [m.id for m in store.list_members()] == ["a", "b"]

    def test_delete(self, store, make_member):
        store.add_member(make_member())
        store.delete_member("m1")

        assert store.list_members() == []
        with pytest.raises(MemberNotFound):
            store.get_member("m1")

    def test_delete_missing(self, store):
        with pytest.raises(MemberNotFound):
            store.delete_member("nope")

    def test_delete_cascades_attendance(self, store, make_member):
        store.add_member(make_member(id="a"))
        store.add_member(make_member(id="b"))
        store.save_attendance(AttendanceRecord(id="r1", member_id="a", check_in_time=datetime(2024, 4, 16, 8)))
        store.save_attendance(AttendanceRecord(id="r2", member_id="b", check_in_time=datetime(2024, 4, 16, 9)))

        store.delete_member("a")

        assert [r.id for r in store.list_attendance()] == ["r2"]


class TestFeeStatus:
    """Status writes and compare-and-set."""

    def test_set_fee_status(self, store, make_member):
        store.add_member(make_member())

        updated = store.set_fee_status("m1", UNPAID)

        assert updated.fee_status == UNPAID
        assert updated.next_payment_due == make_member().next_payment_due
        assert store.get_member("m1").fee_status == UNPAID

    def test_set_fee_status_invalid(self, store, make_member):
        store.add_member(make_member())
        with pytest.raises(InvalidStatus):
            store.set_fee_status("m1", "late")
        assert store.get_member("m1").fee_status == PAID

    def test_set_fee_status_missing(self, store):
        with pytest.raises(MemberNotFound):
            store.set_fee_status("nope", PAID)

    def test_compare_and_set_hit(self, store, make_member):
        member = make_member()
        store.add_member(member)

        assert store.compare_and_set_status("m1", PAID, member.next_payment_due, UNPAID) is True
        assert store.get_member("m1").fee_status == UNPAID

    def test_compare_and_set_status_mismatch(self, store, make_member):
        member = make_member(fee_status=UNPAID)
        store.add_member(member)

        assert store.compare_and_set_status("m1", PAID, member.next_payment_due, UNPAID) is False

    def test_compare_and_set_due_mismatch(self, store, make_member):
        """A renewal that moved the due date makes the compare miss."""
        member = make_member()
        store.add_member(replace(member, next_payment_due=date(2024, 5, 16)))

        assert store.compare_and_set_status("m1", PAID, member.next_payment_due, UNPAID) is False
        assert store.get_member("m1").fee_status == PAID

    def test_compare_and_set_missing(self, store):
        with pytest.raises(MemberNotFound):
            store.compare_and_set_status("nope", PAID, date(2024, 1, 1), UNPAID)


class TestRunSweep:
    """Store-level sweep."""

    def test_counts_transitions(self, store, make_member):
        store.add_member(make_member(id="overdue", next_payment_due=date(2024, 4, 15)))
        store.add_member(make_member(id="current", next_payment_due=date(2024, 5, 15)))
        store.add_member(make_member(id="unpaid", fee_status=UNPAID, next_payment_due=date(2024, 1, 1)))

        assert store.run_sweep(date(2024, 4, 16)) == 1
        assert store.get_member("overdue").fee_status == UNPAID
        assert store.get_member("current").fee_status == PAID
        assert store.get_member("unpaid").fee_status == UNPAID

    def test_idempotent(self, store, make_member):
        store.add_member(make_member(next_payment_due=date(2024, 4, 15)))

        assert store.run_sweep(date(2024, 4, 16)) == 1
        assert store.run_sweep(date(2024, 4, 16)) == 0

    def test_skips_records_changed_mid_sweep(self, store, make_member, monkeypatch):
        """A member renewed between read and write is not clobbered."""
        stale = make_member(next_payment_due=date(2024, 4, 15))
        store.add_member(stale)
        renewed = replace(stale, next_payment_due=date(2024, 5, 16))
        real_list = store.list_members

        def list_then_renew(*args, **kwargs):
            members = real_list(*args, **kwargs)
            store.save_member(renewed)
            return members

        monkeypatch.setattr(store, "list_members", list_then_renew)

        assert store.run_sweep(date(2024, 4, 16)) == 0
        assert store.get_member("m1") == renewed


class TestAttendance:
    """Attendance persistence."""

    def test_save_and_list(self, store, make_member):
        store.add_member(make_member())
        record = AttendanceRecord(id="r1", member_id="m1", check_in_time=datetime(2024, 4, 16, 7, 30, 15, 250))

        store.save_attendance(record)

        assert store.list_attendance() == [record]
        assert store.list_attendance("m1") == [record]
        assert store.list_attendance("other") == []

    def test_save_updates_existing(self, store, make_member):
        store.add_member(make_member())
        record = AttendanceRecord(id="r1", member_id="m1", check_in_time=datetime(2024, 4, 16, 7, 30))
        store.save_attendance(record)

        closed = replace(record, check_out_time=datetime(2024, 4, 16, 9, 0))
        store.save_attendance(closed)

        assert store.list_attendance("m1") == [closed]

    def test_save_for_missing_member(self, store):
        record = AttendanceRecord(id="r1", member_id="ghost", check_in_time=datetime(2024, 4, 16, 7, 30))
        with pytest.raises(MemberNotFound):
            store.save_attendance(record)


class TestSqlitePersistence:
    """Data survives reopening the SQLite file."""

    def test_reopen(self, tmp_path, make_member):
        path = tmp_path / "gym.db"
        SqliteStore(path).add_member(make_member())

        reopened = SqliteStore(path)

        assert reopened.get_member("m1") == make_member()
