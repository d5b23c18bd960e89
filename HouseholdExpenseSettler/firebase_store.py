"""
Firebase Store Module

This module saves computed results to Firebase Firestore for the household
expense settler and records settlements as paid.

Features:
    - Save balances per member
    - Save settlement transactions (replacing the previous unpaid run)
    - Read stored settlements
    - Read the settlements recorded as paid
    - Mark a stored settlement as paid

Firestore Structure:
    households/{household_id}/results/balances/balances/{member_id}
        - member_id: string
        - display_name: string
        - net_balance: float
        - updated_at: timestamp

    households/{household_id}/results/settlements/settlements/{settlement_id}
        - settlement_id: string (S001, S002, ...)
        - household_id: string
        - from_member_id / from_member_name: string
        - to_member_id / to_member_name: string
        - amount: float
        - created_at: timestamp
        - settled_at: timestamp or None

Functions:
    save_balances: Save member balances to Firestore.
    save_settlements: Save settlement transactions to Firestore.
    get_settlements: Read stored settlements.
    get_paid_settlements: Read settlements recorded as paid.
    mark_settlement_paid: Record a stored settlement as paid.
"""

import logging
from datetime import datetime, timezone

from config.firebase_config import get_db
from settlement import Settlement
from utils import next_sequential_id, validate_non_empty_string

logger = logging.getLogger("household_settler.store")


def _get_timestamp() -> str:
    """Current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def _results_collection(household_id: str, name: str):
    """households/{household_id}/results/{name}/{name}"""
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")
    return db.collection("households").document(household_id) \
             .collection("results").document(name) \
             .collection(name)


def save_balances(household_id: str, balances: dict, names: dict) -> dict:
    """
    Save member balances to Firestore.

    Args:
        household_id: The ID of the household.
        balances: member_id -> Decimal balance.
        names: member_id -> display name.

    Returns:
        dict: Summary with saved_count, member_ids and updated_at.

    Raises:
        ValueError: If household_id is invalid.
        RuntimeError: If Firestore is not available.

    Notes:
        - Overwrites existing balance documents (idempotent)
    """
    validate_non_empty_string(household_id, "household_id")
    balances_ref = _results_collection(household_id, "balances")

    timestamp = _get_timestamp()
    saved_ids = []

    for member_id, balance in balances.items():
        balances_ref.document(member_id).set({
            "member_id": member_id,
            "display_name": names.get(member_id, member_id),
            "net_balance": float(balance),
            "updated_at": timestamp
        })
        saved_ids.append(member_id)

    logger.debug("Saved %d balances for household %s", len(saved_ids), household_id)
    return {
        "saved_count": len(saved_ids),
        "member_ids": saved_ids,
        "updated_at": timestamp
    }


def save_settlements(household_id: str, settlements: list[Settlement]) -> dict:
    """
    Save settlement transactions to Firestore.

    The previous run's unpaid documents are deleted first so a shorter
    result does not leave stale settlements behind. Settlements already
    recorded as paid are kept; they are the payments the engine books
    against the balances (see get_paid_settlements). Each new settlement
    gets the next sequential ID after the kept ones (S001, S002, ...) and
    the household ID, set on the object as well.

    Args:
        household_id: The ID of the household.
        settlements: Settlement objects from the engine.

    Returns:
        dict: Summary with saved_count, settlement_ids, paid_ids and updated_at.

    Raises:
        ValueError: If household_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    settlements_ref = _results_collection(household_id, "settlements")

    paid_ids = []
    for doc in settlements_ref.stream():
        if doc.to_dict().get("settled_at"):
            paid_ids.append(doc.id)
        else:
            settlements_ref.document(doc.id).delete()

    saved_ids = []
    for settlement in settlements:
        settlement.settlement_id = next_sequential_id(paid_ids + saved_ids, "S")
        settlement.household_id = household_id
        settlements_ref.document(settlement.settlement_id).set(settlement.to_dict())
        saved_ids.append(settlement.settlement_id)

    logger.info("Saved %d settlements for household %s", len(saved_ids), household_id)
    return {
        "saved_count": len(saved_ids),
        "settlement_ids": saved_ids,
        "paid_ids": paid_ids,
        "updated_at": _get_timestamp()
    }


def get_settlements(household_id: str) -> list[Settlement]:
    """
    Read stored settlements, ordered by settlement ID.

    Raises:
        ValueError: If household_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    docs = _results_collection(household_id, "settlements").stream()
    settlements = [Settlement.from_dict(doc.to_dict()) for doc in docs]
    settlements.sort(key=lambda s: s.settlement_id or "")
    return settlements


def get_paid_settlements(household_id: str) -> list[Settlement]:
    """Stored settlements that have been recorded as paid."""
    return [s for s in get_settlements(household_id) if s.is_settled]


def mark_settlement_paid(household_id: str, settlement_id: str) -> Settlement:
    """
    Record a stored settlement as paid by setting settled_at.

    Paid settlements survive later save_settlements calls and are booked
    against the balances on every following run, so the debt they cover
    is not emitted again. Marking an already paid settlement again keeps
    the original settled_at.

    Returns:
        Settlement: The updated settlement.

    Raises:
        ValueError: If an ID is invalid.
        LookupError: If the settlement does not exist.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    validate_non_empty_string(settlement_id, "settlement_id")

    doc_ref = _results_collection(household_id, "settlements").document(settlement_id)
    doc = doc_ref.get()
    if not doc.exists:
        raise LookupError(f"Settlement {settlement_id} not found in household {household_id}")

    settlement = Settlement.from_dict(doc.to_dict())
    if settlement.is_settled:
        return settlement

    settled_at = datetime.now(timezone.utc)
    doc_ref.update({"settled_at": settled_at.isoformat()})
    settlement.settled_at = settled_at
    logger.info(
        "Settlement %s paid: %s -> %s %s",
        settlement_id, settlement.from_member_id, settlement.to_member_id, settlement.amount
    )
    return settlement
