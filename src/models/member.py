"""Member model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict
from uuid import UUID


class MembershipTier(str, Enum):
    """Membership tier derived from cumulative loyalty points."""

    REGULAR = "REGULAR"
    PREMIUM = "PREMIUM"
    EXECUTIVE = "EXECUTIVE"


class Member(TypedDict):
    """members table row representation."""

    id: UUID
    email: str
    name: str | None
    membership_tier: str
    loyalty_points: int
    is_active: bool
    created_at: datetime


class MemberUpdate(TypedDict, total=False):
    """Data that the loyalty engine may update on a member."""

    membership_tier: str
    loyalty_points: int
