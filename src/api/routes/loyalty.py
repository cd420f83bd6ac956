"""Loyalty program and digital library API routes."""

from uuid import UUID

from fastapi import APIRouter, Query

from src.models.member import MembershipTier
from src.schemas.loyalty import (
    DigitalAccessCheckResponse,
    DigitalLibraryItem,
    DigitalLibraryResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    LoyaltyHistoryEntry,
    LoyaltyHistoryResponse,
    LoyaltyStatusResponse,
    ManualPointsAward,
    ManualPointsAwardResponse,
    TierAdjustment,
    TierAdjustmentResponse,
    TierBenefits,
)
from src.services.digital_access_service import DigitalAccessService
from src.services.loyalty_service import LoyaltyService, get_tier_benefits

router = APIRouter(prefix="/members/{member_id}", tags=["loyalty"])


@router.get(
    "/loyalty",
    response_model=LoyaltyStatusResponse,
    summary="Get loyalty status",
    description="Returns the member's points, tier, tier benefits and points history.",
)
async def get_loyalty_status(member_id: UUID) -> LoyaltyStatusResponse:
    """Get a member's loyalty standing.

    Raises:
        MemberNotFoundError: answered as 404 by the error middleware.
    """
    service = LoyaltyService()
    loyalty_status = await service.get_loyalty_status(member_id)

    return LoyaltyStatusResponse(**loyalty_status)


@router.get(
    "/loyalty/history",
    response_model=LoyaltyHistoryResponse,
    summary="Get points history",
)
async def get_points_history(member_id: UUID) -> LoyaltyHistoryResponse:
    """Get a member's ledger entries with the total points earned."""
    service = LoyaltyService()
    history = await service.get_points_history(member_id)

    return LoyaltyHistoryResponse(
        history=[LoyaltyHistoryEntry(**entry) for entry in history],
        total_points_earned=sum(entry["points"] for entry in history),
    )


@router.post(
    "/loyalty/points",
    response_model=ManualPointsAwardResponse,
    summary="Award points manually",
)
async def award_points(member_id: UUID, data: ManualPointsAward) -> ManualPointsAwardResponse:
    """Award or deduct points outside of an order.

    Raises:
        MemberNotFoundError: answered as 404 by the error middleware.
    """
    service = LoyaltyService()
    result = await service.award_manual_points(
        member_id,
        points=data.points,
        reason=data.reason,
        awarded_by=data.awarded_by,
    )

    return ManualPointsAwardResponse(**result)


@router.put(
    "/loyalty/tier",
    response_model=TierAdjustmentResponse,
    summary="Adjust membership tier",
)
async def adjust_tier(member_id: UUID, data: TierAdjustment) -> TierAdjustmentResponse:
    """Set a member's tier directly.

    Raises:
        MemberNotFoundError: answered as 404 by the error middleware.
    """
    service = LoyaltyService()
    result = await service.adjust_member_tier(
        member_id,
        new_tier=data.new_tier,
        reason=data.reason,
        adjusted_by=data.adjusted_by,
    )

    return TierAdjustmentResponse(**result)


@router.get(
    "/digital-library",
    response_model=DigitalLibraryResponse,
    summary="Get digital library",
)
async def get_digital_library(member_id: UUID) -> DigitalLibraryResponse:
    """List the digital products unlocked for a member."""
    service = DigitalAccessService()
    grants = await service.get_member_digital_library(member_id)
    return DigitalLibraryResponse(items=[DigitalLibraryItem(**grant) for grant in grants])


@router.get(
    "/digital-library/{product_id}",
    response_model=DigitalAccessCheckResponse,
    summary="Check digital product access",
)
async def check_digital_access(member_id: UUID, product_id: UUID) -> DigitalAccessCheckResponse:
    """Check whether a member holds an unexpired grant for a digital product."""
    service = DigitalAccessService()
    has_access = await service.has_digital_access(member_id, product_id)
    return DigitalAccessCheckResponse(member_id=member_id, product_id=product_id, has_access=has_access)


# Program-wide loyalty routes - mounted separately at /loyalty
program_router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@program_router.get(
    "/benefits",
    response_model=list[TierBenefits],
    summary="List tier benefits",
)
async def list_tier_benefits() -> list[TierBenefits]:
    """Get the benefits of every membership tier."""
    return [get_tier_benefits(tier) for tier in MembershipTier]


@program_router.get(
    "/leaderboard",
    response_model=LeaderboardResponse,
    summary="Get loyalty leaderboard",
)
async def get_leaderboard(
    limit: int = Query(default=20, ge=1, le=100, description="Number of members to return"),
) -> LeaderboardResponse:
    """Get active members ordered by loyalty points."""
    service = LoyaltyService()
    members = await service.get_leaderboard(limit=limit)
    return LeaderboardResponse(items=[LeaderboardEntry(**member) for member in members])
