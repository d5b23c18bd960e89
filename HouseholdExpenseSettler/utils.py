"""
Utilities Module

This module provides money helpers and validators for the household
expense settler.

Features:
    - Conversion between currency amounts and integer cents
    - Exact equal-split allocation of an amount in cents
    - Currency formatting
    - Sequential ID generation and input validation

Functions:
    to_cents: Convert a currency amount to integer cents.
    from_cents: Convert integer cents to a two-place Decimal.
    allocate_shares: Split cents equally with the remainder handed out by id.
    format_currency: Format amount with currency symbol.
    generate_id: Generate a formatted identifier.
    next_sequential_id: Next M###/E###/S### id for a collection.
    validate_non_empty_string: Validate a required string field.
    validate_date: Validate a YYYY-MM-DD date.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_cents(amount) -> int:
    """
    Convert a currency amount to integer cents.

    Floats go through str() first so that 0.1 becomes exactly 10 cents.
    Amounts with more than two decimal places are rounded half up.

    Args:
        amount: int, float, str or Decimal amount.

    Returns:
        int: Amount in cents.

    Raises:
        ValueError: If the amount is not a finite number.
    """
    if isinstance(amount, bool):
        raise ValueError(f"amount must be a number, got: {amount!r}")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"amount must be a number, got: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"amount must be a finite number, got: {amount!r}")
    return int(value.quantize(CENT, rounding=ROUND_HALF_UP) * 100)


def from_cents(cents: int) -> Decimal:
    """
    Convert integer cents to a Decimal with two decimal places.

    Args:
        cents: Amount in cents.

    Returns:
        Decimal: e.g. 1050 -> Decimal("10.50").
    """
    return (Decimal(cents) / 100).quantize(CENT)


def allocate_shares(amount_cents: int, participant_ids: list[str]) -> dict[str, int]:
    """
    Split an amount equally among participants, exactly, in cents.

    Every participant gets amount // n cents. The leftover cents
    (amount % n) go one each to participants in ascending id order, so the
    shares always sum to amount_cents and do not depend on list order.

    Args:
        amount_cents: Total to split.
        participant_ids: Non-empty list of distinct participant ids.

    Returns:
        dict[str, int]: participant id -> share in cents.
    """
    base, remainder = divmod(amount_cents, len(participant_ids))
    shares = {}
    for index, participant_id in enumerate(sorted(participant_ids)):
        shares[participant_id] = base + (1 if index < remainder else 0)
    return shares


def format_currency(amount, symbol: str = "$") -> str:
    """
    Format a monetary amount with the currency symbol.

    Args:
        amount: The amount to format.
        symbol: Currency symbol (default: $).

    Returns:
        str: Formatted string like "$1,234.56".
    """
    return f"{symbol}{Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP):,}"


def generate_id(prefix: str = "ID", number: int = 1) -> str:
    """
    Generate a formatted identifier.

    Args:
        prefix: Prefix for the ID (e.g., "M", "E", "S").
        number: Numeric value to format.

    Returns:
        str: Formatted ID like "M001", "E042".
    """
    return f"{prefix}{number:03d}"


def next_sequential_id(existing_ids, prefix: str) -> str:
    """
    Generate the next sequential identifier for a collection.

    IDs that do not follow the <prefix>### format (e.g., legacy data) are
    ignored. Starts from <prefix>001 when none match.

    Args:
        existing_ids: Iterable of document IDs already in the collection.
        prefix: ID prefix ("M", "E", "S").

    Returns:
        str: Next ID, e.g. "E004" after "E003".
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    max_num = 0
    for doc_id in existing_ids:
        match = pattern.match(doc_id)
        if match:
            max_num = max(max_num, int(match.group(1)))
    return generate_id(prefix, max_num + 1)


def validate_non_empty_string(value: str, field_name: str) -> str:
    """
    Validate that a string is non-empty.

    Returns:
        str: The stripped value.

    Raises:
        ValueError: If value is empty or not a string.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return value.strip()


def validate_date(date_str: str, field_name: str) -> str:
    """
    Validate date string format (YYYY-MM-DD).

    Raises:
        ValueError: If date format is invalid.
    """
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be in YYYY-MM-DD format, got: {date_str}")
    return date_str
