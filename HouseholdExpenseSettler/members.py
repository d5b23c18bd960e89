"""
Members Module

This module handles household member records for the household expense
settler.

Features:
    - Add members to a household
    - Retrieve one or all members

Data Model:
    Member stored at: households/{household_id}/members/{member_id}
    Fields:
        - member_id: string (M001, M002, ... format)
        - display_name: string
        - email: string or None
        - role: string (Owner, Admin, Member)
        - joined_at: string (YYYY-MM-DD) or None

Functions:
    add_member: Add a new member to a household.
    get_members: Get all members of a household.
    get_member: Get a single member.
"""

import logging
from datetime import date
from typing import Optional

from config.firebase_config import get_db
from utils import next_sequential_id, validate_non_empty_string

logger = logging.getLogger("household_settler.members")

VALID_ROLES = {"Owner", "Admin", "Member"}


class Member:
    """
    Represents a member of a household.

    Only member_id and display_name matter to the settlement engine; the
    other fields are carried for storage.

    Attributes:
        member_id (str): Unique, stable identifier.
        display_name (str): Name shown on settlements.
        email (str | None): Contact email.
        role (str): Owner, Admin or Member.
        joined_at (str | None): Date the member joined (YYYY-MM-DD).
    """

    def __init__(
        self,
        member_id: str,
        display_name: str,
        email: Optional[str] = None,
        role: str = "Member",
        joined_at: Optional[str] = None
    ):
        self.member_id = member_id
        self.display_name = display_name
        self.email = email
        self.role = role
        self.joined_at = joined_at

    def to_dict(self) -> dict:
        """Convert member to dictionary for Firestore storage."""
        return {
            "member_id": self.member_id,
            "display_name": self.display_name,
            "email": self.email,
            "role": self.role,
            "joined_at": self.joined_at
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Member":
        """Create a Member instance from a dictionary."""
        return cls(
            member_id=data.get("member_id"),
            display_name=data.get("display_name"),
            email=data.get("email"),
            role=data.get("role", "Member"),
            joined_at=data.get("joined_at")
        )

    def __repr__(self) -> str:
        return f"Member(id='{self.member_id}', name='{self.display_name}', role='{self.role}')"


def _members_collection(household_id: str):
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")
    return db.collection("households").document(household_id).collection("members")


def add_member(
    household_id: str,
    display_name: str,
    email: Optional[str] = None,
    role: str = "Member"
) -> Member:
    """
    Add a new member to a household.

    Args:
        household_id: The ID of the household.
        display_name: Name of the member.
        email: Optional email address.
        role: One of Owner, Admin, Member.

    Returns:
        Member: The created member object.

    Raises:
        ValueError: If input validation fails.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    display_name = validate_non_empty_string(display_name, "display_name")
    if role not in VALID_ROLES:
        raise ValueError(f"role must be one of {sorted(VALID_ROLES)}, got: {role}")

    members_ref = _members_collection(household_id)

    # Sequential member ID (M001, M002, ...)
    member_id = next_sequential_id((doc.id for doc in members_ref.stream()), "M")

    member = Member(
        member_id=member_id,
        display_name=display_name,
        email=email.strip() if email else None,
        role=role,
        joined_at=date.today().isoformat()
    )
    members_ref.document(member.member_id).set(member.to_dict())
    logger.debug("Added member %s to household %s", member_id, household_id)

    return member


def get_members(household_id: str) -> list[Member]:
    """
    Get all members of a household.

    Raises:
        ValueError: If household_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    docs = _members_collection(household_id).stream()
    return [Member.from_dict(doc.to_dict()) for doc in docs]


def get_member(household_id: str, member_id: str) -> Member:
    """
    Get a single member.

    Raises:
        ValueError: If an ID is invalid.
        LookupError: If the member does not exist.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(household_id, "household_id")
    validate_non_empty_string(member_id, "member_id")

    doc = _members_collection(household_id).document(member_id).get()
    if not doc.exists:
        raise LookupError(f"Member {member_id} not found in household {household_id}")
    return Member.from_dict(doc.to_dict())
