from datetime import datetime, timezone
from decimal import Decimal

import pytest

from firebase_store import (
    get_paid_settlements,
    get_settlements,
    mark_settlement_paid,
    save_balances,
    save_settlements,
)
from settlement import optimize_settlements

NOW = datetime(2025, 5, 10, tzinfo=timezone.utc)
NAMES = {"A": "Alice", "B": "Bob", "C": "Carol"}


def test_save_balances(fake_db):
    summary = save_balances("household_1", {"A": Decimal("20.00"), "B": Decimal("-20.00")}, NAMES)

    assert summary["saved_count"] == 2
    stored = fake_db.document_data("households", "household_1", "results", "balances", "balances", "B")
    assert stored["net_balance"] == -20.0
    assert stored["display_name"] == "Bob"


def test_save_settlements_assigns_ids_and_replaces_previous_run(fake_db):
    first_run = optimize_settlements({"A": 2000, "B": -1000, "C": -1000}, NAMES, now=NOW)
    save_settlements("household_1", first_run)

    second_run = optimize_settlements({"A": 1000, "B": -1000}, NAMES, now=NOW)
    summary = save_settlements("household_1", second_run)

    assert summary["settlement_ids"] == ["S001"]
    stored = get_settlements("household_1")
    assert len(stored) == 1
    assert stored[0].settlement_id == "S001"
    assert stored[0].household_id == "household_1"
    assert stored[0].amount == Decimal("10.00")
    assert second_run[0].settlement_id == "S001"


def test_mark_settlement_paid(fake_db):
    save_settlements("household_1", optimize_settlements({"A": 1500, "B": -1500}, NAMES, now=NOW))

    paid = mark_settlement_paid("household_1", "S001")

    assert paid.is_settled
    assert get_settlements("household_1")[0].settled_at == paid.settled_at
    assert mark_settlement_paid("household_1", "S001").settled_at == paid.settled_at


def test_mark_unknown_settlement_paid(fake_db):
    with pytest.raises(LookupError):
        mark_settlement_paid("household_1", "S999")


def test_paid_settlements_survive_the_next_run(fake_db):
    save_settlements("household_1", optimize_settlements({"A": 2000, "B": -1000, "C": -1000}, NAMES, now=NOW))
    mark_settlement_paid("household_1", "S001")

    summary = save_settlements("household_1", optimize_settlements({"A": 1000, "C": -1000}, NAMES, now=NOW))

    assert summary["paid_ids"] == ["S001"]
    assert summary["settlement_ids"] == ["S002"]
    stored = get_settlements("household_1")
    assert [(s.settlement_id, s.from_member_id, s.is_settled) for s in stored] == [
        ("S001", "B", True),
        ("S002", "C", False),
    ]
    assert [s.settlement_id for s in get_paid_settlements("household_1")] == ["S001"]
