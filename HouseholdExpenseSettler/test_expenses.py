import pytest

from expenses import add_expense, delete_expense, get_expenses, mark_participant_settled


def _add(household_id, **overrides):
    kwargs = {
        "household_id": household_id,
        "title": "Electricity bill",
        "amount": 90,
        "paid_by": "A",
        "category": "Utilities",
        "split_among": ["A", "B", "C"],
        "paid_at": "2025-05-01",
    }
    kwargs.update(overrides)
    return add_expense(**kwargs)


def test_add_expense_starts_everyone_unsettled(household, fake_db):
    expense = _add(household, notes="  May  ")

    assert expense.expense_id == "E001"
    assert expense.settled == {"A": False, "B": False, "C": False}
    assert expense.notes == "May"
    stored = fake_db.document_data("households", household, "expenses", "E001")
    assert stored["amount"] == 90.0
    assert stored["split_among"] == ["A", "B", "C"]


def test_get_expenses_round_trips(household):
    _add(household)
    _add(household, title="Groceries", amount=42.5, category="Groceries", paid_by="B", split_among=["B", "C"])

    expenses = sorted(get_expenses(household), key=lambda e: e.expense_id)

    assert [e.expense_id for e in expenses] == ["E001", "E002"]
    assert expenses[1].amount == 42.5
    assert not expenses[1].is_fully_settled


@pytest.mark.parametrize("overrides", [
    {"amount": 0},
    {"amount": -3},
    {"amount": True},
    {"category": "Travel"},
    {"split_among": []},
    {"split_among": ["A", "A"]},
    {"split_among": ["A", "Z"]},
    {"paid_by": "Z"},
    {"paid_at": "May 1st"},
    {"title": ""},
])
def test_add_expense_validation(household, overrides):
    with pytest.raises(ValueError):
        _add(household, **overrides)


def test_mark_participant_settled_updates_only_that_flag(household, fake_db):
    _add(household)

    expense = mark_participant_settled(household, "E001", "B")

    assert expense.settled == {"A": False, "B": True, "C": False}
    stored = fake_db.document_data("households", household, "expenses", "E001")
    assert stored["settled"] == {"A": False, "B": True, "C": False}


def test_mark_participant_settled_errors(household):
    _add(household, split_among=["A", "B"])

    with pytest.raises(LookupError):
        mark_participant_settled(household, "E404", "B")
    with pytest.raises(ValueError):
        mark_participant_settled(household, "E001", "C")


def test_delete_expense(household):
    _add(household)

    delete_expense(household, "E001")

    assert get_expenses(household) == []
    with pytest.raises(LookupError):
        delete_expense(household, "E001")
