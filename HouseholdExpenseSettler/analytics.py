"""
Analytics Module

This module provides analytics and transparency reports for the household
expense settler.

Features:
    - Category-wise expense breakdown
    - Per-member payer totals
    - Outstanding (unsettled) share per member
    - Smart warnings for spending imbalances
    - Per-member expense breakdown explanations

Data Model:
    Input - members: list of Member objects with:
        - member_id: string
        - display_name: string

    Input - expenses: list of Expense objects with:
        - expense_id: string
        - title: string
        - paid_by: string
        - amount: float
        - category: string
        - split_among: list of member ids
        - settled: dict of member id -> bool

    Output - dict containing:
        - analytics: dict with category_breakdown, payer_totals, etc.
        - warnings: list of warning strings

Only expenses the settlement engine accepts are counted, under the same
unknown member policy (see splitter.partition_expenses).

Functions:
    generate_analytics: Generate analytics and warnings from expense data.
    explain_member_share: Get detailed breakdown for one member.
    explain_all_members: Get detailed breakdown for all members.
"""

from collections import defaultdict
from decimal import Decimal

from splitter import UnknownMemberPolicy, partition_expenses
from utils import allocate_shares, format_currency, from_cents


def _percentage(part: int, whole: int) -> Decimal:
    return (Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("0.01"))


def generate_analytics(
    members: list,
    expenses: list,
    currency_symbol: str = "$",
    policy: UnknownMemberPolicy = UnknownMemberPolicy.REJECT
) -> dict:
    """
    Generate analytics and smart warnings from expense data.

    Analytics computed:
        - total_spent: Sum of all valid expenses
        - category_breakdown: Total amount spent per category
        - payer_totals: Total amount paid by each member
        - outstanding_by_member: Unsettled share each member still owes
        - unsettled_expense_count: Expenses where someone still owes the payer

    Warnings generated (rule-based):
        - If one member paid > 40% of total household cost
        - If one category > 50% of total spend

    Args:
        members: List of Member objects.
        expenses: List of Expense objects.
        currency_symbol: Symbol used in warning messages.
        policy: Unknown member policy, as for the settlement run.

    Returns:
        dict: Contains two keys:
            - analytics: dict with the values above
            - warnings: list of warning strings
    """
    names = {m.member_id: m.display_name for m in members}
    accepted, _ = partition_expenses(expenses, members, policy)

    category_totals = defaultdict(int)
    payer_totals = defaultdict(int)
    outstanding = defaultdict(int)
    total_spent = 0
    unsettled_count = 0

    for expense, amount_cents in accepted:
        category_totals[expense.category] += amount_cents
        payer_totals[expense.paid_by] += amount_cents
        total_spent += amount_cents

        settled_flags = expense.settled or {}
        has_unsettled = False
        for member_id, share_cents in allocate_shares(amount_cents, list(expense.split_among)).items():
            # Payer's own share is not owed to anyone
            if member_id != expense.paid_by and not settled_flags.get(member_id, False):
                outstanding[member_id] += share_cents
                has_unsettled = True
        if has_unsettled:
            unsettled_count += 1

    analytics = {
        "total_spent": float(from_cents(total_spent)),
        "category_breakdown": {
            category: float(from_cents(cents))
            for category, cents in category_totals.items()
        },
        "payer_totals": {
            member_id: float(from_cents(cents))
            for member_id, cents in payer_totals.items()
        },
        "outstanding_by_member": {
            member_id: float(from_cents(cents))
            for member_id, cents in outstanding.items()
        },
        "unsettled_expense_count": unsettled_count
    }

    warnings = []
    if total_spent > 0:
        total_label = format_currency(from_cents(total_spent), currency_symbol)

        # Rule 1: If one member paid > 40% of total household cost
        for member_id, cents in payer_totals.items():
            percentage = _percentage(cents, total_spent)
            if percentage > 40:
                warnings.append(
                    f"Warning: {names.get(member_id, member_id)} paid {percentage}% of total expenses "
                    f"({format_currency(from_cents(cents), currency_symbol)} of {total_label})"
                )

        # Rule 2: If one category > 50% of total spend
        for category, cents in category_totals.items():
            percentage = _percentage(cents, total_spent)
            if percentage > 50:
                warnings.append(
                    f"Warning: '{category}' accounts for {percentage}% of total spend "
                    f"({format_currency(from_cents(cents), currency_symbol)} of {total_label})"
                )

    return {
        "analytics": analytics,
        "warnings": warnings
    }


def explain_member_share(
    member_id: str,
    members: list,
    expenses: list,
    policy: UnknownMemberPolicy = UnknownMemberPolicy.REJECT
) -> dict:
    """
    Generate a detailed explanation of a member's position.

    For each expense the member is part of (as payer or participant):
        - Shows expense details (id, title, category, amount, payer)
        - Shows the member's share and whether it is already settled

    Args:
        member_id: ID of the member to explain.
        members: List of Member objects.
        expenses: List of Expense objects.
        policy: Unknown member policy, as for the settlement run.

    Returns:
        dict: Explanation containing:
            - member_id, display_name
            - expense_contributions: list of per-expense dicts
            - total_paid: float (sum of amounts the member paid)
            - total_owed: float (unsettled shares still owed)
            - total_settled: float (shares already marked settled)

    Notes:
        - Expenses the settlement engine rejects are skipped; the
          settlement report lists them separately.
    """
    names = {m.member_id: m.display_name for m in members}
    if member_id not in names:
        return {
            "member_id": member_id,
            "display_name": None,
            "expense_contributions": [],
            "total_paid": 0.0,
            "total_owed": 0.0,
            "total_settled": 0.0,
            "error": f"Member {member_id} not found"
        }

    contributions = []
    paid_cents = 0
    owed_cents = 0
    settled_cents = 0

    for expense, amount_cents in partition_expenses(expenses, members, policy)[0]:
        split_among = list(expense.split_among)
        is_payer = expense.paid_by == member_id
        is_participant = member_id in split_among
        if not (is_payer or is_participant):
            continue

        if is_payer:
            paid_cents += amount_cents

        share_cents = 0
        settled = False
        if is_participant:
            share_cents = allocate_shares(amount_cents, split_among)[member_id]
            settled = bool((expense.settled or {}).get(member_id, False))
            if settled:
                settled_cents += share_cents
            else:
                owed_cents += share_cents

        contributions.append({
            "expense_id": expense.expense_id,
            "title": expense.title,
            "category": expense.category,
            "amount": float(from_cents(amount_cents)),
            "paid_by": names.get(expense.paid_by, expense.paid_by),
            "num_participants": len(split_among),
            "member_share": float(from_cents(share_cents)),
            "settled": settled
        })

    return {
        "member_id": member_id,
        "display_name": names[member_id],
        "expense_contributions": contributions,
        "total_paid": float(from_cents(paid_cents)),
        "total_owed": float(from_cents(owed_cents)),
        "total_settled": float(from_cents(settled_cents))
    }


def explain_all_members(
    members: list,
    expenses: list,
    policy: UnknownMemberPolicy = UnknownMemberPolicy.REJECT
) -> list[dict]:
    """Explain every member's position, ordered by member_id."""
    explanations = [
        explain_member_share(m.member_id, members, expenses, policy)
        for m in members
    ]
    explanations.sort(key=lambda x: x["member_id"])
    return explanations
