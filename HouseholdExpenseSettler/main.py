"""
HouseholdExpenseSettler - FastAPI Web Backend

This module serves as the main entry point for the household expense
settlement API.

Features:
    - RESTful API for managing households, members and expenses
    - Integration with Firebase Firestore backend
    - Balance and settlement calculations
    - Analytics and transparency reports

Endpoints:
    POST   /households                                              - Create a household
    POST   /households/{household_id}/members                       - Add member
    GET    /households/{household_id}/members                       - List members
    POST   /households/{household_id}/expenses                      - Add expense
    GET    /households/{household_id}/expenses                      - List expenses
    DELETE /households/{household_id}/expenses/{expense_id}         - Delete expense
    POST   /households/{household_id}/expenses/{expense_id}/settle/{member_id}
                                                                    - Mark a share settled
    GET    /households/{household_id}/balances                      - Compute balances
    GET    /households/{household_id}/settlements                   - Compute and persist settlements
    GET    /households/{household_id}/settlements/stored            - Get stored settlements
    POST   /households/{household_id}/settlements/{settlement_id}/paid
                                                                    - Mark settlement paid
    GET    /households/{household_id}/explanations                  - Transparency report

Usage:
    uvicorn main:app --reload
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from analytics import explain_all_members, generate_analytics
from config.firebase_config import get_db
from config.logging_config import configure_logging
from config.settings import ConfigurationError, get_settings
from exceptions import SettlementError
from expenses import (
    VALID_CATEGORIES,
    Expense,
    add_expense,
    delete_expense,
    get_expenses,
    mark_participant_settled,
)
from firebase_store import (
    get_paid_settlements,
    get_settlements,
    mark_settlement_paid,
    save_balances,
    save_settlements,
)
from members import VALID_ROLES, Member, add_member, get_member, get_members
from settlement import settle_household
from splitter import UnknownMemberPolicy

configure_logging()
logger = logging.getLogger("household_settler.api")


# =============================================================================
# Pydantic Models for Request/Response Validation
# =============================================================================

class HouseholdCreate(BaseModel):
    """Request model for creating a new household."""
    name: Optional[str] = Field(None, description="Optional household name")


class HouseholdResponse(BaseModel):
    """Response model for household creation."""
    household_id: str
    message: str


class MemberCreate(BaseModel):
    """Request model for adding a member."""
    display_name: str = Field(..., min_length=1, description="Member display name")
    email: Optional[str] = Field(None, description="Optional email")
    role: str = Field("Member", description="Owner, Admin or Member")


class MemberResponse(BaseModel):
    """Response model for member data."""
    member_id: str
    display_name: str
    email: Optional[str]
    role: str
    joined_at: Optional[str]


class ExpenseCreate(BaseModel):
    """Request model for adding an expense."""
    title: str = Field(..., min_length=1, description="Expense title")
    amount: float = Field(..., gt=0, description="Expense amount (must be > 0)")
    paid_by: str = Field(..., min_length=1, description="Member ID of payer")
    category: str = Field(..., description="Expense category")
    split_among: list[str] = Field(..., min_length=1, description="Member IDs sharing the cost")
    paid_at: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="Expense date (YYYY-MM-DD)")
    notes: Optional[str] = Field(None, description="Optional notes")


class ExpenseResponse(BaseModel):
    """Response model for expense data."""
    expense_id: str
    title: str
    amount: float
    paid_by: str
    category: str
    split_among: list[str]
    settled: dict[str, bool]
    paid_at: Optional[str]
    notes: Optional[str]


class BalancesResponse(BaseModel):
    """Response model for computed balances."""
    balances: dict[str, float]
    rejections: list


class SettlementsResponse(BaseModel):
    """Response model for a settlement run."""
    balances: dict[str, float]
    settlements: list
    rejections: list
    settled_total: float
    paid_total: float
    analytics: dict
    warnings: list


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Household Expense Settler",
    description="Shared household expenses reduced to who pays whom",
    version="1.0.0"
)


# =============================================================================
# Helper Functions
# =============================================================================

def _generate_household_id() -> str:
    """
    Generate a unique household ID.

    Format: household_{short_uuid}
    """
    return f"household_{uuid.uuid4().hex[:8]}"


def _member_response(m: Member) -> MemberResponse:
    return MemberResponse(**m.to_dict())


def _expense_response(e: Expense) -> ExpenseResponse:
    return ExpenseResponse(**e.to_dict())


def _engine_options() -> dict:
    settings = get_settings()
    return {
        "policy": UnknownMemberPolicy(settings["unknown_member_policy"]),
        "strict": settings["strict"]
    }


def _raise_http(e: Exception) -> None:
    """Translate a data-layer exception into an HTTPException."""
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, ConfigurationError):
        logger.error("Invalid server configuration: %s", e)
        raise HTTPException(status_code=500, detail="Server configuration error")
    if isinstance(e, ValueError):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, LookupError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, SettlementError):
        logger.error("Settlement computation failed: %s", e)
        raise HTTPException(status_code=500, detail="Settlement computation failed")
    if isinstance(e, RuntimeError):
        raise HTTPException(status_code=503, detail=str(e))
    logger.exception("Unexpected error")
    raise HTTPException(status_code=500, detail=str(e))


# =============================================================================
# API Endpoints
# =============================================================================

@app.post("/households", response_model=HouseholdResponse, status_code=201)
async def create_household(household_data: HouseholdCreate = None):
    """
    Create a new household.

    Request flow:
        1. Generate unique household_id
        2. Create household document in Firestore
        3. Return household_id to client
    """
    try:
        db = get_db()
        if db is None:
            raise HTTPException(status_code=503, detail="Database not available")

        household_id = _generate_household_id()
        db.collection("households").document(household_id).set({
            "household_id": household_id,
            "name": household_data.name if household_data and household_data.name else household_id,
            "created_at": datetime.now(timezone.utc).isoformat()
        })
        logger.info("Created household %s", household_id)

        return HouseholdResponse(
            household_id=household_id,
            message="Household created successfully"
        )

    except Exception as e:
        _raise_http(e)


@app.post("/households/{household_id}/members", response_model=MemberResponse, status_code=201)
async def add_household_member(household_id: str, member_data: MemberCreate):
    """Add a member to a household."""
    try:
        if member_data.role not in VALID_ROLES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid role. Must be one of: {sorted(VALID_ROLES)}"
            )

        member = add_member(
            household_id=household_id,
            display_name=member_data.display_name,
            email=member_data.email,
            role=member_data.role
        )
        return _member_response(member)

    except Exception as e:
        _raise_http(e)


@app.get("/households/{household_id}/members", response_model=list[MemberResponse])
async def list_household_members(household_id: str):
    """List the members of a household."""
    try:
        return [_member_response(m) for m in get_members(household_id)]
    except Exception as e:
        _raise_http(e)


@app.post("/households/{household_id}/expenses", response_model=ExpenseResponse, status_code=201)
async def add_household_expense(household_id: str, expense_data: ExpenseCreate):
    """
    Add an expense to a household.

    Request flow:
        1. Validate input using Pydantic model
        2. Validate category is valid
        3. Call add_expense() from expenses.py
        4. Return created expense data
    """
    try:
        if expense_data.category not in VALID_CATEGORIES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid category. Must be one of: {sorted(VALID_CATEGORIES)}"
            )

        expense = add_expense(
            household_id=household_id,
            title=expense_data.title,
            amount=expense_data.amount,
            paid_by=expense_data.paid_by,
            category=expense_data.category,
            split_among=expense_data.split_among,
            paid_at=expense_data.paid_at,
            notes=expense_data.notes
        )
        return _expense_response(expense)

    except Exception as e:
        _raise_http(e)


@app.get("/households/{household_id}/expenses", response_model=list[ExpenseResponse])
async def list_household_expenses(household_id: str):
    """List the expenses of a household."""
    try:
        return [_expense_response(e) for e in get_expenses(household_id)]
    except Exception as e:
        _raise_http(e)


@app.delete("/households/{household_id}/expenses/{expense_id}", status_code=204)
async def remove_household_expense(household_id: str, expense_id: str):
    """Delete an expense."""
    try:
        delete_expense(household_id, expense_id)
    except Exception as e:
        _raise_http(e)


@app.post(
    "/households/{household_id}/expenses/{expense_id}/settle/{member_id}",
    response_model=ExpenseResponse
)
async def settle_expense_share(household_id: str, expense_id: str, member_id: str):
    """
    Mark one member's share of an expense as paid.

    Unknown member -> 404; member not sharing the expense -> 400.
    """
    try:
        get_member(household_id, member_id)
        return _expense_response(mark_participant_settled(household_id, expense_id, member_id))
    except Exception as e:
        _raise_http(e)


@app.get("/households/{household_id}/balances", response_model=BalancesResponse)
async def get_household_balances(household_id: str):
    """Compute current balances without persisting anything."""
    try:
        members = get_members(household_id)
        expenses = get_expenses(household_id)
        report = settle_household(
            expenses, members, payments=get_paid_settlements(household_id), **_engine_options()
        )

        return BalancesResponse(
            balances={member_id: float(b) for member_id, b in report.balances.items()},
            rejections=[r.to_dict() for r in report.rejections]
        )
    except Exception as e:
        _raise_http(e)


@app.get("/households/{household_id}/settlements", response_model=SettlementsResponse)
async def calculate_household_settlements(household_id: str):
    """
    Calculate and persist settlements for a household.

    Request flow:
        1. Fetch members and expenses from Firestore
        2. Compute balances and settlements (splitter.py, settlement.py),
           booking settlements already recorded as paid
        3. Generate analytics (analytics.py)
        4. Persist balances and settlements (firebase_store.py)
        5. Return the complete result, skipped expenses included
    """
    try:
        members = get_members(household_id)
        if not members:
            raise HTTPException(status_code=404, detail="No members found for this household")
        expenses = get_expenses(household_id)

        options = _engine_options()
        report = settle_household(
            expenses, members, payments=get_paid_settlements(household_id), **options
        )
        analytics_result = generate_analytics(
            members, expenses,
            currency_symbol=get_settings()["currency_symbol"],
            policy=options["policy"]
        )

        names = {m.member_id: m.display_name for m in members}
        save_balances(household_id, report.balances, names)
        save_settlements(household_id, report.settlements)

        result = report.to_dict()
        return SettlementsResponse(
            balances=result["balances"],
            settlements=result["settlements"],
            rejections=result["rejections"],
            settled_total=result["settled_total"],
            paid_total=result["paid_total"],
            analytics=analytics_result["analytics"],
            warnings=analytics_result["warnings"]
        )
    except Exception as e:
        _raise_http(e)


@app.get("/households/{household_id}/settlements/stored")
async def list_stored_settlements(household_id: str):
    """Get the settlements persisted by the last calculation."""
    try:
        return [s.to_dict() for s in get_settlements(household_id)]
    except Exception as e:
        _raise_http(e)


@app.post("/households/{household_id}/settlements/{settlement_id}/paid")
async def pay_settlement(household_id: str, settlement_id: str):
    """Record a stored settlement as paid."""
    try:
        return mark_settlement_paid(household_id, settlement_id).to_dict()
    except Exception as e:
        _raise_http(e)


@app.get("/households/{household_id}/explanations")
async def get_household_explanations(household_id: str):
    """Per-member breakdown of shares, payments and settled amounts."""
    try:
        return explain_all_members(
            get_members(household_id), get_expenses(household_id), policy=_engine_options()["policy"]
        )
    except Exception as e:
        _raise_http(e)


# =============================================================================
# Health Check Endpoint
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"status": "healthy", "service": "Household Expense Settler"}


# =============================================================================
# Run with: python main.py
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
