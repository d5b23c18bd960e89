"""
Expenses Module

This module handles all expense-related operations for the household
expense settler.

Features:
    - Add/delete expenses
    - Categorize expenses (Rent, Utilities, Groceries, ...)
    - Track who paid and who shares the cost
    - Per-participant settled flags

Data Model:
    Expense stored at: households/{household_id}/expenses/{expense_id}
    Fields:
        - expense_id: string (E001, E002, ... format)
        - title: string
        - amount: float (must be > 0)
        - paid_by: string (member_id who paid)
        - paid_at: string (YYYY-MM-DD)
        - category: string (see VALID_CATEGORIES)
        - split_among: list of member_ids
        - settled: dict of member_id -> bool
        - notes: string or None

Functions:
    add_expense: Add a new expense to a household.
    get_expenses: Get all expenses for a household.
    mark_participant_settled: Mark one participant's share as paid.
    delete_expense: Delete an expense.
"""

import logging
from typing import Optional

from config.firebase_config import get_db
from utils import next_sequential_id, to_cents, validate_date, validate_non_empty_string

logger = logging.getLogger("household_settler.expenses")

# Valid expense categories
VALID_CATEGORIES = {
    "Rent", "Utilities", "Groceries", "Dining",
    "Entertainment", "Transportation", "Household", "Other"
}


class Expense:
    """
    Represents a single shared expense.

    Attributes:
        expense_id (str): Unique identifier in E### format.
        title (str): Short description.
        amount (float): Amount of the expense (must be > 0).
        paid_by (str): Member ID of who paid.
        split_among (list[str]): Member IDs sharing the cost.
        settled (dict[str, bool]): Member ID -> share already paid.
        category (str): One of VALID_CATEGORIES.
        paid_at (str | None): Date of expense (YYYY-MM-DD).
        notes (str | None): Optional notes.
    """

    def __init__(
        self,
        expense_id: str,
        amount: float,
        paid_by: str,
        split_among: list[str],
        settled: Optional[dict] = None,
        title: str = "",
        category: str = "Other",
        paid_at: Optional[str] = None,
        notes: Optional[str] = None
    ):
        self.expense_id = expense_id
        self.title = title
        self.amount = amount
        self.paid_by = paid_by
        self.paid_at = paid_at
        self.category = category
        self.split_among = split_among
        self.settled = settled if settled is not None else {}
        self.notes = notes

    @property
    def is_fully_settled(self) -> bool:
        """True when every participant's share is marked settled."""
        return all(self.settled.get(member_id, False) for member_id in self.split_among)

    def to_dict(self) -> dict:
        """Convert expense to dictionary for Firestore storage."""
        return {
            "expense_id": self.expense_id,
            "title": self.title,
            "amount": self.amount,
            "paid_by": self.paid_by,
            "paid_at": self.paid_at,
            "category": self.category,
            "split_among": self.split_among,
            "settled": self.settled,
            "notes": self.notes
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Expense":
        """Create an Expense instance from a dictionary."""
        return cls(
            expense_id=data.get("expense_id"),
            title=data.get("title", ""),
            amount=data.get("amount"),
            paid_by=data.get("paid_by"),
            paid_at=data.get("paid_at"),
            category=data.get("category", "Other"),
            split_among=data.get("split_among", []),
            settled=data.get("settled", {}),
            notes=data.get("notes")
        )

    def __repr__(self) -> str:
        return f"Expense(id='{self.expense_id}', paid_by='{self.paid_by}', amount={self.amount}, category='{self.category}')"


def _household_ref(household_id: str):
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")
    return db.collection("households").document(household_id)


def add_expense(
    household_id: str,
    title: str,
    amount: float,
    paid_by: str,
    category: str,
    split_among: list[str],
    paid_at: str,
    notes: Optional[str] = None
) -> Expense:
    """
    Add a new expense to a household.

    Args:
        household_id: The ID of the household.
        title: Short description of the expense.
        amount: Amount of the expense (must be > 0).
        paid_by: Member ID of who paid the expense.
        category: One of VALID_CATEGORIES.
        split_among: Member IDs sharing the cost.
        paid_at: Date of the expense (YYYY-MM-DD).
        notes: Optional notes.

    Returns:
        Expense: The created expense object.

    Raises:
        ValueError: If input validation fails.
        RuntimeError: If Firestore is not available.

    Notes:
        - Payer does NOT have to be in split_among
        - Every participant starts unsettled, the payer included; a payer
          in the split set nets out their own share
        - No cost splitting is performed here
    """
    validate_non_empty_string(household_id, "household_id")
    title = validate_non_empty_string(title, "title")
    validate_non_empty_string(paid_by, "paid_by")
    validate_date(paid_at, "paid_at")

    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or to_cents(amount) <= 0:
        raise ValueError(f"amount must be a positive number, got: {amount}")

    if category not in VALID_CATEGORIES:
        raise ValueError(f"category must be one of {sorted(VALID_CATEGORIES)}, got: {category}")

    if not isinstance(split_among, list) or len(split_among) == 0:
        raise ValueError("split_among must be a non-empty list of member IDs")
    if len(set(split_among)) != len(split_among):
        raise ValueError("split_among must not list a member more than once")

    household_ref = _household_ref(household_id)

    # Payer and participants must be members of the household
    member_ids = {doc.id for doc in household_ref.collection("members").stream()}
    if paid_by not in member_ids:
        raise ValueError(f"paid_by '{paid_by}' is not a member of household {household_id}")
    for member_id in split_among:
        if member_id not in member_ids:
            raise ValueError(f"'{member_id}' is not a member of household {household_id}")

    expenses_ref = household_ref.collection("expenses")
    expense_id = next_sequential_id((doc.id for doc in expenses_ref.stream()), "E")

    expense = Expense(
        expense_id=expense_id,
        title=title,
        amount=float(amount),
        paid_by=paid_by,
        paid_at=paid_at,
        category=category,
        split_among=list(split_among),
        settled={member_id: False for member_id in split_among},
        notes=notes.strip() if notes else None
    )
    expenses_ref.document(expense.expense_id).set(expense.to_dict())
    logger.debug("Added expense %s (%s) to household %s", expense_id, amount, household_id)

    return expense


def get_expenses(household_id: str) -> list[Expense]:
    """
    Get all expenses for a household.

    Raises:
        ValueError: If household_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    docs = _household_ref(household_id).collection("expenses").stream()
    return [Expense.from_dict(doc.to_dict()) for doc in docs]


def mark_participant_settled(household_id: str, expense_id: str, member_id: str) -> Expense:
    """
    Mark a participant's share of an expense as paid.

    Updates only the "settled.<member_id>" field so concurrent updates for
    other participants are not overwritten.

    Returns:
        Expense: The updated expense.

    Raises:
        ValueError: If an ID is invalid or the member is not in the split set.
        LookupError: If the expense does not exist.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    validate_non_empty_string(expense_id, "expense_id")
    validate_non_empty_string(member_id, "member_id")

    doc_ref = _household_ref(household_id).collection("expenses").document(expense_id)
    doc = doc_ref.get()
    if not doc.exists:
        raise LookupError(f"Expense {expense_id} not found in household {household_id}")

    expense = Expense.from_dict(doc.to_dict())
    if member_id not in expense.split_among:
        raise ValueError(f"Member {member_id} does not share expense {expense_id}")

    doc_ref.update({f"settled.{member_id}": True})
    expense.settled[member_id] = True
    logger.info("Marked %s settled on expense %s", member_id, expense_id)

    return expense


def delete_expense(household_id: str, expense_id: str) -> None:
    """
    Delete an expense.

    Raises:
        ValueError: If an ID is invalid.
        LookupError: If the expense does not exist.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    validate_non_empty_string(expense_id, "expense_id")

    doc_ref = _household_ref(household_id).collection("expenses").document(expense_id)
    if not doc_ref.get().exists:
        raise LookupError(f"Expense {expense_id} not found in household {household_id}")
    doc_ref.delete()
    logger.info("Deleted expense %s from household %s", expense_id, household_id)
