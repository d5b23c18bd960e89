"""
Settlement Module

This module turns household expenses into settlement instructions
("who pays whom how much").

Features:
    - Convert net balances into settlement transactions
    - Reduce the number of transactions with a greedy matching
    - Exact integer-cent arithmetic (no rounding tolerance)
    - Report skipped expenses alongside the result
    - Book settlements already recorded as paid before matching

Data Model:
    Input - balances (dict keyed by member_id): signed cents from
        splitter.accumulate_balances (positive = owed money)

    Output - list of Settlement:
        - from_member_id / from_member_name: debtor who pays
        - to_member_id / to_member_name: creditor who receives
        - amount: Decimal, two decimal places, always > 0
        - created_at: datetime (UTC)

Functions:
    optimize_settlements: Convert balances into settlement transactions.
    settle_household: Balances, settlements and rejections in one report.
    compute_settlements: Settlements only.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from exceptions import ResidualImbalanceError
from splitter import UnknownMemberPolicy, accumulate_balances
from utils import from_cents, to_cents

logger = logging.getLogger("household_settler.settlement")


class Settlement:
    """
    A directed payment instruction.

    Advisory output until a caller records it as paid (settled_at).

    Attributes:
        from_member_id (str): Debtor who pays.
        from_member_name (str): Debtor display name.
        to_member_id (str): Creditor who receives.
        to_member_name (str): Creditor display name.
        amount (Decimal): Positive amount with two decimal places.
        created_at (datetime): When the instruction was computed.
        settlement_id (str | None): S### id once persisted.
        household_id (str | None): Household the settlement belongs to.
        settled_at (datetime | None): When the payment was recorded.
    """

    def __init__(
        self,
        from_member_id: str,
        from_member_name: str,
        to_member_id: str,
        to_member_name: str,
        amount: Decimal,
        created_at: datetime,
        settlement_id: Optional[str] = None,
        household_id: Optional[str] = None,
        settled_at: Optional[datetime] = None
    ):
        self.from_member_id = from_member_id
        self.from_member_name = from_member_name
        self.to_member_id = to_member_id
        self.to_member_name = to_member_name
        self.amount = amount
        self.created_at = created_at
        self.settlement_id = settlement_id
        self.household_id = household_id
        self.settled_at = settled_at

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None

    def to_dict(self) -> dict:
        """Convert settlement to dictionary for Firestore storage and JSON."""
        return {
            "settlement_id": self.settlement_id,
            "household_id": self.household_id,
            "from_member_id": self.from_member_id,
            "from_member_name": self.from_member_name,
            "to_member_id": self.to_member_id,
            "to_member_name": self.to_member_name,
            "amount": float(self.amount),
            "created_at": self.created_at.isoformat(),
            "settled_at": self.settled_at.isoformat() if self.settled_at else None
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Settlement":
        """Create a Settlement from a stored dictionary."""
        settled_at = data.get("settled_at")
        return cls(
            from_member_id=data.get("from_member_id"),
            from_member_name=data.get("from_member_name"),
            to_member_id=data.get("to_member_id"),
            to_member_name=data.get("to_member_name"),
            amount=from_cents(to_cents(data.get("amount", 0))),
            created_at=datetime.fromisoformat(data["created_at"]),
            settlement_id=data.get("settlement_id"),
            household_id=data.get("household_id"),
            settled_at=datetime.fromisoformat(settled_at) if settled_at else None
        )

    def __repr__(self) -> str:
        return (
            f"Settlement(from='{self.from_member_id}', to='{self.to_member_id}', "
            f"amount={self.amount})"
        )


class SettlementReport:
    """
    Everything one engine run produces.

    Attributes:
        balances (dict[str, Decimal]): Net balance per member.
        settlements (list[Settlement]): Payment instructions.
        rejections (list[ExpenseRejection]): Expenses left out, with reasons.
        settled_total (Decimal): Shares already marked settled; the payers
            keep this as unmatched credit.
        paid_total (Decimal): Recorded settlement payments booked against
            the balances.
    """

    def __init__(
        self,
        balances: dict,
        settlements: list,
        rejections: list,
        settled_total: Decimal,
        paid_total: Decimal = Decimal("0.00")
    ):
        self.balances = balances
        self.settlements = settlements
        self.rejections = rejections
        self.settled_total = settled_total
        self.paid_total = paid_total

    def to_dict(self) -> dict:
        return {
            "balances": {member_id: float(amount) for member_id, amount in self.balances.items()},
            "settlements": [s.to_dict() for s in self.settlements],
            "rejections": [r.to_dict() for r in self.rejections],
            "settled_total": float(self.settled_total),
            "paid_total": float(self.paid_total)
        }


def optimize_settlements(
    balances_cents: dict[str, int],
    names: dict[str, str],
    now: Optional[datetime] = None
) -> list[Settlement]:
    """
    Convert net balances into settlement transactions.

    Uses a greedy two-pointer matching:
        1. Split members into creditors (balance > 0) and debtors (balance < 0)
        2. Sort both by the size of their balance, largest first, ties by id
        3. Match the current creditor with the current debtor for the
           smaller of the two remaining amounts
        4. Move past whichever side reaches zero; stop when either list runs out

    Matching the largest obligations first tends to keep the number of
    transactions low but is not guaranteed to find the minimum; that is a
    set-partition problem and NP-hard in general.

    Args:
        balances_cents: member id -> signed balance in cents.
        names: member id -> display name.
        now: Timestamp stamped on every settlement (default: current UTC time).

    Returns:
        list[Settlement]: Transactions in matching order.

    Notes:
        - Does NOT modify input balances
        - Does NOT write to Firebase
    """
    created_at = now or datetime.now(timezone.utc)

    # [member_id, remaining cents], remaining always stored as positive
    creditors = [[member_id, cents] for member_id, cents in balances_cents.items() if cents > 0]
    debtors = [[member_id, -cents] for member_id, cents in balances_cents.items() if cents < 0]

    creditors.sort(key=lambda x: (-x[1], x[0]))
    debtors.sort(key=lambda x: (-x[1], x[0]))

    settlements = []
    creditor_idx = 0
    debtor_idx = 0

    while creditor_idx < len(creditors) and debtor_idx < len(debtors):
        creditor_id, credit = creditors[creditor_idx]
        debtor_id, debt = debtors[debtor_idx]

        transfer = min(credit, debt)
        settlements.append(Settlement(
            from_member_id=debtor_id,
            from_member_name=names.get(debtor_id, debtor_id),
            to_member_id=creditor_id,
            to_member_name=names.get(creditor_id, creditor_id),
            amount=from_cents(transfer),
            created_at=created_at
        ))

        creditors[creditor_idx][1] = credit - transfer
        debtors[debtor_idx][1] = debt - transfer

        if creditors[creditor_idx][1] == 0:
            creditor_idx += 1
        if debtors[debtor_idx][1] == 0:
            debtor_idx += 1

    return settlements


def _check_residual(balances_cents: dict[str, int], settlements: list[Settlement], settled_cents: int) -> None:
    """
    Apply the settlements and verify what is left over.

    Every debtor must end at zero. The credit left over must equal the
    shares that were already settled outside the engine, since the payer is
    credited for them but nobody is debited.

    Raises:
        ResidualImbalanceError: If either condition fails.
    """
    remaining = dict(balances_cents)
    for s in settlements:
        cents = to_cents(s.amount)
        remaining[s.from_member_id] += cents
        remaining[s.to_member_id] -= cents

    unresolved_debt = -sum(cents for cents in remaining.values() if cents < 0)
    unresolved_credit = sum(cents for cents in remaining.values() if cents > 0)
    if unresolved_debt != 0 or unresolved_credit != settled_cents:
        raise ResidualImbalanceError(unresolved_debt, unresolved_credit, settled_cents)


def _apply_payments(sheet, payments: list[Settlement]) -> int:
    """
    Book recorded payments against accumulated balances.

    A paid settlement raises the payer's balance and lowers the receiver's
    by its amount, so the next run does not ask for the same money again.
    Settlements without settled_at are ignored.

    Returns:
        int: Total cents applied.
    """
    applied = 0
    for payment in payments:
        if not payment.is_settled:
            continue
        for member_id, name in (
            (payment.from_member_id, payment.from_member_name),
            (payment.to_member_id, payment.to_member_name),
        ):
            if member_id not in sheet.balances_cents:
                sheet.balances_cents[member_id] = 0
                sheet.names[member_id] = name or member_id

        cents = to_cents(payment.amount)
        sheet.balances_cents[payment.from_member_id] += cents
        sheet.balances_cents[payment.to_member_id] -= cents
        applied += cents
    return applied


def settle_household(
    expenses: list,
    members: list,
    policy: UnknownMemberPolicy = UnknownMemberPolicy.REJECT,
    strict: bool = False,
    now: Optional[datetime] = None,
    payments: Optional[list[Settlement]] = None
) -> SettlementReport:
    """
    Compute balances and settlements for a household.

    Malformed expenses are skipped and returned as rejections so one bad
    record does not block settlement for everyone else.

    Args:
        expenses: List of Expense objects.
        members: List of Member objects.
        policy: Unknown member policy (see splitter.accumulate_balances).
        strict: Verify the matching result and raise ResidualImbalanceError
            if it does not balance.
        now: Timestamp for the settlements.
        payments: Settlements already recorded as paid. They are booked
            against the balances before matching.

    Returns:
        SettlementReport: balances, settlements, rejections, settled_total,
        paid_total.
    """
    sheet = accumulate_balances(expenses, members, policy)
    paid_cents = _apply_payments(sheet, payments or [])
    settlements = optimize_settlements(sheet.balances_cents, sheet.names, now=now)

    # Payments move money between members, so the expected surplus is unchanged
    if strict:
        _check_residual(sheet.balances_cents, settlements, sheet.settled_cents)

    logger.info(
        "Computed %d settlements from %d expenses (%d rejected, %s already paid)",
        len(settlements), len(expenses), len(sheet.rejections), from_cents(paid_cents)
    )
    return SettlementReport(
        balances=sheet.balances(),
        settlements=settlements,
        rejections=sheet.rejections,
        settled_total=from_cents(sheet.settled_cents),
        paid_total=from_cents(paid_cents)
    )


def compute_settlements(
    expenses: list,
    members: list,
    policy: UnknownMemberPolicy = UnknownMemberPolicy.REJECT,
    strict: bool = False,
    now: Optional[datetime] = None,
    payments: Optional[list[Settlement]] = None
) -> list[Settlement]:
    """Settlements only; see settle_household for the full report."""
    return settle_household(
        expenses, members, policy=policy, strict=strict, now=now, payments=payments
    ).settlements
