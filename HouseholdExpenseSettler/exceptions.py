"""
Exceptions Module

Domain exceptions for the settlement engine.

Hierarchy:
    SettlementError
        - InvalidExpenseError: expense record cannot be split
        - UnknownMemberError: expense references an id missing from the roster
        - ResidualImbalanceError: matching pass left an unexplained balance

InvalidExpenseError and UnknownMemberError describe bad input for a single
expense and are collected as rejections. ResidualImbalanceError signals a
defect in the engine itself and is only raised in strict mode.
"""


class SettlementError(Exception):
    """Base exception for settlement engine errors."""
    pass


class InvalidExpenseError(SettlementError):
    """Raised when an expense has a non-positive amount or an unusable split set."""

    def __init__(self, expense_id, reason: str):
        self.expense_id = expense_id
        self.reason = reason
        super().__init__(f"Expense {expense_id} is invalid: {reason}")


class UnknownMemberError(SettlementError):
    """Raised when an expense references a member id that is not in the household."""

    def __init__(self, expense_id, member_ids: list[str]):
        self.expense_id = expense_id
        self.member_ids = member_ids
        super().__init__(
            f"Expense {expense_id} references unknown member(s): {', '.join(map(str, member_ids))}"
        )


class ResidualImbalanceError(SettlementError):
    """Raised when balances remain after matching that settled shares do not explain."""

    def __init__(self, unresolved_debt_cents: int, unresolved_credit_cents: int, expected_surplus_cents: int):
        self.unresolved_debt_cents = unresolved_debt_cents
        self.unresolved_credit_cents = unresolved_credit_cents
        self.expected_surplus_cents = expected_surplus_cents
        super().__init__(
            "Settlement matching left an imbalance: "
            f"debt={unresolved_debt_cents}c, credit={unresolved_credit_cents}c, "
            f"expected surplus={expected_surplus_cents}c"
        )
