from decimal import Decimal

import pytest

from utils import (
    allocate_shares,
    format_currency,
    from_cents,
    next_sequential_id,
    to_cents,
    validate_date,
    validate_non_empty_string,
)


@pytest.mark.parametrize("amount,expected", [
    (30, 3000),
    (0.1, 10),
    ("12.345", 1235),
    (Decimal("-4.5"), -450),
])
def test_to_cents(amount, expected):
    assert to_cents(amount) == expected


@pytest.mark.parametrize("amount", [None, "twelve", True, float("inf")])
def test_to_cents_rejects_non_numbers(amount):
    with pytest.raises(ValueError):
        to_cents(amount)


def test_from_cents_keeps_two_places():
    assert str(from_cents(1050)) == "10.50"
    assert from_cents(-333) == Decimal("-3.33")


def test_allocate_shares_sums_to_total():
    shares = allocate_shares(1001, ["C", "A", "B"])

    assert shares == {"A": 334, "B": 334, "C": 333}
    assert sum(shares.values()) == 1001


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(Decimal("7"), symbol="€") == "€7.00"


def test_next_sequential_id_skips_legacy_ids():
    assert next_sequential_id(["E001", "E007", "legacy-uuid", "S009"], "E") == "E008"
    assert next_sequential_id([], "M") == "M001"


def test_validators():
    assert validate_non_empty_string("  Alice ", "name") == "Alice"
    with pytest.raises(ValueError):
        validate_non_empty_string("   ", "name")
    assert validate_date("2025-05-10", "paid_at") == "2025-05-10"
    with pytest.raises(ValueError):
        validate_date("10/05/2025", "paid_at")
