"""Loyalty program Pydantic schemas for API request/response models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.member import MembershipTier


class TierBenefits(BaseModel):
    """Benefits attached to a membership tier."""

    tier: MembershipTier
    min_points: int = Field(description="Cumulative points needed to reach the tier")
    points_multiplier: float = Field(description="Multiplier applied to points earned")
    discount_percentage: int = Field(description="Discount on shop purchases")
    benefits: list[str] = Field(default_factory=list)
    exclusive_access: list[str] = Field(default_factory=list)


class LoyaltyHistoryEntry(BaseModel):
    """One loyalty ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None
    order_id: UUID | None = None
    points: int
    reason: str
    note: str | None = Field(default=None, description="Admin reason for manual awards and tier changes")
    awarded_by: str | None = None
    created_at: datetime | None = None


class LoyaltyHistoryResponse(BaseModel):
    """Points history for a member."""

    history: list[LoyaltyHistoryEntry] = Field(default_factory=list)
    total_points_earned: int = 0


class LoyaltyStatusResponse(BaseModel):
    """Current loyalty standing of a member."""

    member_id: UUID
    current_points: int
    current_tier: MembershipTier
    points_to_next_tier: int = Field(description="0 when already at the top tier")
    tier_benefits: TierBenefits
    points_history: list[LoyaltyHistoryEntry] = Field(default_factory=list)
    total_order_value: float = 0.0
    total_orders: int = 0


class ManualPointsAward(BaseModel):
    """Request body for an admin point award."""

    points: int = Field(description="Points to add (negative to deduct)")
    reason: str = Field(min_length=1, max_length=500)
    awarded_by: str | None = Field(default=None, description="Identifier of the awarding admin")


class ManualPointsAwardResponse(BaseModel):
    """Result of an admin point award."""

    points_awarded: int
    new_total_points: int
    previous_tier: MembershipTier
    new_tier: MembershipTier
    tier_updated: bool


class TierAdjustment(BaseModel):
    """Request body for an admin tier change."""

    new_tier: MembershipTier
    reason: str = Field(min_length=1, max_length=500)
    adjusted_by: str | None = None


class TierAdjustmentResponse(BaseModel):
    """Result of an admin tier change."""

    previous_tier: MembershipTier
    new_tier: MembershipTier


class LeaderboardEntry(BaseModel):
    """One row of the loyalty leaderboard."""

    id: UUID
    name: str | None = None
    membership_tier: MembershipTier
    points: int


class LeaderboardResponse(BaseModel):
    """Top members by loyalty points."""

    items: list[LeaderboardEntry] = Field(default_factory=list)


class DigitalLibraryItem(BaseModel):
    """A digital product unlocked for a member."""

    model_config = ConfigDict(from_attributes=True)

    product_id: UUID
    product_name: str | None = None
    order_id: UUID
    access_level: str
    granted_at: datetime
    expires_at: datetime | None = None


class DigitalLibraryResponse(BaseModel):
    """Digital products unlocked for a member."""

    items: list[DigitalLibraryItem] = Field(default_factory=list)


class DigitalAccessCheckResponse(BaseModel):
    """Whether a member may open a digital product."""

    member_id: UUID
    product_id: UUID
    has_access: bool = Field(description="True when an unexpired grant exists")
