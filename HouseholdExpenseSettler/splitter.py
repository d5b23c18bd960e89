"""
Splitter Module

This module handles the balance calculation for the household expense
settler.

Features:
    - Equal splitting among the participants of each expense
    - Per-member net balance calculation in integer cents
    - Per-participant settled flags (settled shares are not debited)
    - Skip-and-report validation of malformed expenses

Data Model:
    Input - expenses (list of Expense objects):
        - expense_id: string
        - amount: float (must be > 0)
        - paid_by: member id of the payer
        - split_among: non-empty list of member ids
        - settled: dict of member id -> bool

    Input - members (list of Member objects):
        - member_id: string
        - display_name: string

    Output - BalanceSheet:
        - balances_cents: dict member id -> signed cents
          (positive = household owes this member, negative = member owes)
        - settled_cents: total of shares already marked settled
        - rejections: list of ExpenseRejection

Functions:
    partition_expenses: Separate usable expenses from rejected ones.
    accumulate_balances: Build a BalanceSheet from expenses and members.
    compute_balances: Per-member balances as two-place Decimals.
"""

import logging
from decimal import Decimal
from enum import Enum

from exceptions import InvalidExpenseError, SettlementError, UnknownMemberError
from utils import allocate_shares, from_cents, to_cents

logger = logging.getLogger("household_settler.splitter")

UNKNOWN_MEMBER_NAME = "Unknown"


class UnknownMemberPolicy(str, Enum):
    """What to do with an expense that references an id missing from the roster."""
    REJECT = "reject"
    PLACEHOLDER = "placeholder"


class ExpenseRejection:
    """
    An expense left out of the computation, with the reason.

    Attributes:
        expense_id (str): ID of the rejected expense.
        error (SettlementError): The validation error.
    """

    def __init__(self, expense_id: str, error: SettlementError):
        self.expense_id = expense_id
        self.error = error

    def to_dict(self) -> dict:
        """Convert rejection to a JSON-friendly dictionary."""
        return {
            "expense_id": self.expense_id,
            "error_type": type(self.error).__name__,
            "reason": str(self.error)
        }

    def __repr__(self) -> str:
        return f"ExpenseRejection(expense_id='{self.expense_id}', error={type(self.error).__name__})"


class BalanceSheet:
    """
    Intermediate result of balance accumulation.

    Attributes:
        balances_cents (dict[str, int]): member id -> signed balance in cents.
        names (dict[str, str]): member id -> display name.
        settled_cents (int): Shares excluded because they are marked settled.
            The payer is still credited for them, so the balances sum to
            exactly this amount.
        rejections (list[ExpenseRejection]): Expenses that were skipped.
    """

    def __init__(self, balances_cents: dict, names: dict, settled_cents: int, rejections: list):
        self.balances_cents = balances_cents
        self.names = names
        self.settled_cents = settled_cents
        self.rejections = rejections

    def balances(self) -> dict[str, Decimal]:
        """Balances converted to two-place Decimals."""
        return {
            member_id: from_cents(cents)
            for member_id, cents in self.balances_cents.items()
        }


def _validate_expense(expense, known_ids: set, policy: UnknownMemberPolicy) -> int:
    """
    Validate an expense before it touches any balance.

    Args:
        expense: Expense object.
        known_ids: Member ids on the roster.
        policy: Unknown member policy.

    Returns:
        int: Expense amount in cents.

    Raises:
        InvalidExpenseError: Non-numeric or non-positive amount, missing or
            non-string payer or participant id, empty or duplicated split
            set, settled flags that are not a mapping.
        UnknownMemberError: Payer or participant missing from the roster
            (REJECT policy only).
    """
    try:
        amount_cents = to_cents(expense.amount)
    except ValueError:
        raise InvalidExpenseError(expense.expense_id, f"amount is not a number: {expense.amount!r}")
    if amount_cents <= 0:
        raise InvalidExpenseError(expense.expense_id, f"amount must be positive, got {expense.amount}")

    if not isinstance(expense.paid_by, str) or not expense.paid_by:
        raise InvalidExpenseError(expense.expense_id, f"payer id is missing or not a string: {expense.paid_by!r}")

    if expense.split_among is None:
        split_among = []
    elif isinstance(expense.split_among, (list, tuple)):
        split_among = list(expense.split_among)
    else:
        raise InvalidExpenseError(expense.expense_id, f"split set is not a list: {expense.split_among!r}")
    if not split_among:
        raise InvalidExpenseError(expense.expense_id, "split set is empty")
    bad_ids = [member_id for member_id in split_among if not isinstance(member_id, str) or not member_id]
    if bad_ids:
        raise InvalidExpenseError(expense.expense_id, f"split set has missing or non-string ids: {bad_ids!r}")
    if len(set(split_among)) != len(split_among):
        raise InvalidExpenseError(expense.expense_id, "split set lists a participant more than once")

    if expense.settled is not None and not isinstance(expense.settled, dict):
        raise InvalidExpenseError(expense.expense_id, f"settled flags are not a mapping: {expense.settled!r}")

    if policy == UnknownMemberPolicy.REJECT:
        unknown = [
            member_id for member_id in [expense.paid_by] + split_among
            if member_id not in known_ids
        ]
        if unknown:
            raise UnknownMemberError(expense.expense_id, list(dict.fromkeys(unknown)))

    return amount_cents


def partition_expenses(
    expenses: list,
    members: list,
    policy: UnknownMemberPolicy = UnknownMemberPolicy.REJECT
) -> tuple[list, list]:
    """
    Separate expenses the engine can use from the ones it must skip.

    Analytics and explanations go through this too, so every report counts
    the same expenses the balances do.

    Returns:
        tuple: (accepted, rejections) where accepted is a list of
        (expense, amount_cents) pairs in input order and rejections is a
        list of ExpenseRejection.
    """
    policy = UnknownMemberPolicy(policy)
    known_ids = {m.member_id for m in members}

    accepted = []
    rejections = []
    for expense in expenses:
        try:
            accepted.append((expense, _validate_expense(expense, known_ids, policy)))
        except SettlementError as e:
            rejections.append(ExpenseRejection(expense.expense_id, e))
    return accepted, rejections


def accumulate_balances(
    expenses: list,
    members: list,
    policy: UnknownMemberPolicy = UnknownMemberPolicy.REJECT
) -> BalanceSheet:
    """
    Accumulate per-member balances from expenses.

    For each valid expense:
        1. The payer is credited the full amount
        2. Each participant whose settled flag is not True is debited their
           share; a participant missing from the settled mapping counts as
           unsettled

    A payer who is also an unsettled participant is credited the amount and
    debited their own share, so on net they are credited for everyone
    else's share. A payer is credited the full amount even when some
    participants are settled.

    Args:
        expenses: List of Expense objects.
        members: List of Member objects.
        policy: REJECT skips expenses with unknown ids and reports an
            UnknownMemberError. PLACEHOLDER keeps them and names the
            unknown member "Unknown".

    Returns:
        BalanceSheet: Balances, names, settled surplus and rejections.
    """
    names = {m.member_id: m.display_name for m in members}

    # Every roster member appears in the result, even with a zero balance
    balances = {member_id: 0 for member_id in names}
    settled_cents = 0

    accepted, rejections = partition_expenses(expenses, members, policy)
    for rejection in rejections:
        logger.warning("Skipping expense %s: %s", rejection.expense_id, rejection.error)

    for expense, amount_cents in accepted:
        for member_id in [expense.paid_by] + list(expense.split_among):
            if member_id not in balances:
                balances[member_id] = 0
                names[member_id] = UNKNOWN_MEMBER_NAME

        balances[expense.paid_by] += amount_cents

        shares = allocate_shares(amount_cents, list(expense.split_among))
        settled_flags = expense.settled or {}
        for participant_id, share_cents in shares.items():
            if settled_flags.get(participant_id, False):
                settled_cents += share_cents
            else:
                balances[participant_id] -= share_cents

    logger.debug(
        "Accumulated balances for %d members from %d expenses (%d rejected)",
        len(balances), len(expenses), len(rejections)
    )
    return BalanceSheet(balances, names, settled_cents, rejections)


def compute_balances(
    expenses: list,
    members: list,
    policy: UnknownMemberPolicy = UnknownMemberPolicy.REJECT
) -> dict[str, Decimal]:
    """
    Calculate per-member net balances.

    Rejected expenses are logged and left out; use
    settlement.settle_household to get the rejections back.

    Returns:
        dict[str, Decimal]: member id -> balance, positive when the member
        is owed money.
    """
    return accumulate_balances(expenses, members, policy).balances()
