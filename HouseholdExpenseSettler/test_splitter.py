from decimal import Decimal

import pytest

from exceptions import InvalidExpenseError, UnknownMemberError
from expenses import Expense
from splitter import (
    UNKNOWN_MEMBER_NAME,
    UnknownMemberPolicy,
    accumulate_balances,
    compute_balances,
    partition_expenses,
)


def test_single_expense_split_three_ways(roster, make_expense):
    balances = compute_balances([make_expense(30, "A", ["A", "B", "C"])], roster)

    assert balances == {"A": Decimal("20.00"), "B": Decimal("-10.00"), "C": Decimal("-10.00")}


def test_two_expenses_net_out(roster, make_expense):
    expenses = [
        make_expense(60, "A", ["A", "B"]),
        make_expense(40, "B", ["A", "B"]),
    ]

    balances = compute_balances(expenses, roster)

    assert balances["A"] == Decimal("10.00")
    assert balances["B"] == Decimal("-10.00")
    assert balances["C"] == Decimal("0.00")


def test_every_roster_member_gets_a_balance(roster):
    assert compute_balances([], roster) == {
        "A": Decimal("0.00"), "B": Decimal("0.00"), "C": Decimal("0.00")
    }


def test_payer_outside_split_is_credited_full_amount(roster, make_expense):
    balances = compute_balances([make_expense(20, "C", ["A", "B"])], roster)

    assert balances == {"A": Decimal("-10.00"), "B": Decimal("-10.00"), "C": Decimal("20.00")}


def test_remainder_cents_keep_balances_zero_sum(roster, make_expense):
    sheet = accumulate_balances([make_expense(10, "A", ["A", "B", "C"])], roster)

    # 1000 cents / 3: A gets the extra cent
    assert sheet.balances_cents == {"A": 666, "B": -333, "C": -333}
    assert sum(sheet.balances_cents.values()) == 0


def test_remainder_does_not_depend_on_split_order(roster, make_expense):
    forward = accumulate_balances([make_expense(10, "B", ["A", "B", "C"])], roster)
    backward = accumulate_balances([make_expense(10, "B", ["C", "B", "A"])], roster)

    assert forward.balances_cents == backward.balances_cents


def test_settled_participants_are_not_debited(roster, make_expense):
    expense = make_expense(30, "A", ["A", "B", "C"], settled={"A": False, "B": True, "C": False})

    sheet = accumulate_balances([expense], roster)

    assert sheet.balances_cents == {"A": 2000, "B": 0, "C": -1000}
    assert sheet.settled_cents == 1000


def test_fully_settled_expense_still_credits_payer(roster, make_expense):
    expense = make_expense(30, "A", ["A", "B", "C"], settled={"A": True, "B": True, "C": True})

    sheet = accumulate_balances([expense], roster)

    assert sheet.balances_cents == {"A": 3000, "B": 0, "C": 0}
    assert sheet.settled_cents == 3000
    assert sum(sheet.balances_cents.values()) == sheet.settled_cents


def test_missing_settled_flag_counts_as_unsettled(roster, make_expense):
    expense = make_expense(30, "A", ["A", "B", "C"], settled={})

    assert accumulate_balances([expense], roster).balances_cents == {"A": 2000, "B": -1000, "C": -1000}


@pytest.mark.parametrize("amount", [0, -15, "abc", None, float("nan")])
def test_invalid_amount_is_rejected(roster, make_expense, amount):
    sheet = accumulate_balances([make_expense(amount, "A", ["A", "B"], expense_id="E_BAD")], roster)

    assert [r.expense_id for r in sheet.rejections] == ["E_BAD"]
    assert isinstance(sheet.rejections[0].error, InvalidExpenseError)
    assert all(cents == 0 for cents in sheet.balances_cents.values())


def test_empty_split_is_rejected_not_divided(roster, make_expense):
    sheet = accumulate_balances([make_expense(30, "A", [], settled={})], roster)

    assert len(sheet.rejections) == 1
    assert "split set is empty" in str(sheet.rejections[0].error)


def test_duplicate_participant_is_rejected(roster, make_expense):
    sheet = accumulate_balances([make_expense(30, "A", ["B", "B"])], roster)

    assert isinstance(sheet.rejections[0].error, InvalidExpenseError)


def test_unknown_participant_rejects_only_that_expense(roster, make_expense):
    expenses = [
        make_expense(30, "A", ["A", "Z"], expense_id="E_UNKNOWN"),
        make_expense(20, "A", ["A", "B"]),
    ]

    sheet = accumulate_balances(expenses, roster)

    assert len(sheet.rejections) == 1
    rejection = sheet.rejections[0]
    assert rejection.expense_id == "E_UNKNOWN"
    assert isinstance(rejection.error, UnknownMemberError)
    assert rejection.error.member_ids == ["Z"]
    assert sheet.balances_cents == {"A": 1000, "B": -1000, "C": 0}
    assert rejection.to_dict()["error_type"] == "UnknownMemberError"


def test_unknown_payer_is_rejected(roster, make_expense):
    sheet = accumulate_balances([make_expense(30, "Z", ["A", "B"])], roster)

    assert isinstance(sheet.rejections[0].error, UnknownMemberError)
    assert "Z" not in sheet.balances_cents


def test_placeholder_policy_keeps_unknown_member(roster, make_expense):
    sheet = accumulate_balances(
        [make_expense(30, "A", ["A", "Z"])], roster, policy=UnknownMemberPolicy.PLACEHOLDER
    )

    assert sheet.rejections == []
    assert sheet.balances_cents["Z"] == -1500
    assert sheet.names["Z"] == UNKNOWN_MEMBER_NAME


def test_policy_accepts_plain_string(roster, make_expense):
    sheet = accumulate_balances([make_expense(30, "A", ["A", "Z"])], roster, policy="placeholder")

    assert sheet.balances_cents["A"] == 1500


def test_expense_without_payer_is_rejected_not_raised(roster, make_expense):
    # A stored document with no paid_by field comes back as paid_by=None
    incomplete = Expense.from_dict({"expense_id": "E009", "amount": 20, "split_among": ["A", "B"]})

    sheet = accumulate_balances([make_expense(30, "A", ["A", "B", "C"]), incomplete], roster)

    assert [r.expense_id for r in sheet.rejections] == ["E009"]
    assert isinstance(sheet.rejections[0].error, InvalidExpenseError)
    assert sheet.balances_cents == {"A": 2000, "B": -1000, "C": -1000}


@pytest.mark.parametrize("paid_by,split_among", [
    (None, ["A", "B"]),
    ("", ["A", "B"]),
    (7, ["A", "B"]),
    ("A", ["A", None]),
    ("A", ["A", 3]),
    ("A", "AB"),
    ("A", [["B"]]),
])
def test_malformed_member_ids_are_rejected(roster, make_expense, paid_by, split_among):
    expense = make_expense(30, paid_by, split_among, settled={}, expense_id="E_BAD")

    for policy in UnknownMemberPolicy:
        sheet = accumulate_balances([expense], roster, policy=policy)

        assert [r.expense_id for r in sheet.rejections] == ["E_BAD"]
        assert isinstance(sheet.rejections[0].error, InvalidExpenseError)


def test_settled_flags_must_be_a_mapping(roster, make_expense):
    sheet = accumulate_balances([make_expense(30, "A", ["A", "B"], settled=["B"])], roster)

    assert "settled flags" in str(sheet.rejections[0].error)


def test_unknown_member_message_tolerates_non_string_ids():
    error = UnknownMemberError("E001", [None, 42])

    assert "None, 42" in str(error)


def test_partition_keeps_input_order(roster, make_expense):
    expenses = [
        make_expense(10, "A", ["B"], expense_id="E001"),
        make_expense(10, "Z", ["B"], expense_id="E002"),
        make_expense(12.5, "C", ["A"], expense_id="E003"),
    ]

    accepted, rejections = partition_expenses(expenses, roster)

    assert [(e.expense_id, cents) for e, cents in accepted] == [("E001", 1000), ("E003", 1250)]
    assert [r.expense_id for r in rejections] == ["E002"]
