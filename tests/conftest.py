"""Pytest configuration for gym membership tests."""

from datetime import date

import pytest

from models import PAID, Member
from service import MembershipService
from stores import InMemoryStore, SqliteStore

TODAY = date(2024, 4, 16)


@pytest.fixture
def make_member():
    """Factory for Member values with sensible defaults."""

    def _make(id="m1", name="John Doe", contact="+91 9876543210",
              admission_date=date(2024, 1, 15), plan="Monthly",
              fee_status=PAID, next_payment_due=None):
        if next_payment_due is None:
            next_payment_due = {
                "Monthly": date(2024, 2, 15),
                "Quarterly": date(2024, 4, 15),
            }.get(plan, date(2024, 2, 15))
        return Member(
            id=id,
            name=name,
            contact=contact,
            admission_date=admission_date,
            plan=plan,
            fee_status=fee_status,
            next_payment_due=next_payment_due,
        )

    return _make


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Each local store adapter in turn."""
    if request.param == "memory":
        return InMemoryStore()
    return SqliteStore(tmp_path / "gym.db")


@pytest.fixture
def service(store):
    """Service over the parametrized store with the clock pinned to TODAY."""
    return MembershipService(store, today=lambda: TODAY)
