"""Loyalty points and membership tier business logic."""

import logging
import math
from decimal import Decimal
from typing import Any
from uuid import UUID

from src.core.supabase import get_supabase_client
from src.models.fulfillment import FulfillmentStep, LoyaltyLedgerEntry
from src.models.member import MembershipTier, MemberUpdate
from src.schemas.fulfillment import LoyaltyAwardResult
from src.schemas.loyalty import TierBenefits
from src.services.fulfillment_step_service import FulfillmentStepService
from src.services.order_service import MemberNotFoundError, OrderService, digital_items

logger = logging.getLogger(__name__)

# Bonus points per unit of a digital product
DIGITAL_ITEM_BONUS_POINTS = 5

TIER_MULTIPLIERS: dict[MembershipTier, Decimal] = {
    MembershipTier.REGULAR: Decimal("1.0"),
    MembershipTier.PREMIUM: Decimal("1.5"),
    MembershipTier.EXECUTIVE: Decimal("2.0"),
}

# Minimum cumulative points per tier, highest first
TIER_THRESHOLDS: list[tuple[int, MembershipTier]] = [
    (10000, MembershipTier.EXECUTIVE),
    (5000, MembershipTier.PREMIUM),
    (0, MembershipTier.REGULAR),
]

TIER_BENEFITS: dict[MembershipTier, dict[str, Any]] = {
    MembershipTier.EXECUTIVE: {
        "discount_percentage": 20,
        "benefits": [
            "Free shipping on all orders",
            "Priority customer support",
            "Early access to new products",
            "Exclusive executive events",
            "Personal account manager",
            "Custom training programs",
        ],
        "exclusive_access": [
            "Executive-only products",
            "Advanced training materials",
            "Industry insider reports",
            "VIP networking events",
        ],
    },
    MembershipTier.PREMIUM: {
        "discount_percentage": 15,
        "benefits": [
            "Free shipping on orders over $100",
            "Priority customer support",
            "Early access to new products",
            "Premium member events",
            "Extended return policy",
        ],
        "exclusive_access": [
            "Premium-only products",
            "Advanced courses",
            "Industry reports",
        ],
    },
    MembershipTier.REGULAR: {
        "discount_percentage": 10,
        "benefits": [
            "Member pricing on all products",
            "Access to member-only content",
            "Monthly newsletter",
            "Basic customer support",
        ],
        "exclusive_access": [
            "Member-only products",
            "Basic courses",
        ],
    },
}


def parse_tier(value: str | None) -> MembershipTier:
    """Parse a stored tier, treating unknown values as REGULAR."""
    try:
        return MembershipTier(value)
    except ValueError:
        return MembershipTier.REGULAR


def get_tier_multiplier(tier: MembershipTier | str) -> Decimal:
    """Get the points multiplier for a tier."""
    return TIER_MULTIPLIERS[parse_tier(tier)]


def calculate_member_tier(total_points: int) -> MembershipTier:
    """Derive the membership tier from cumulative points."""
    for min_points, tier in TIER_THRESHOLDS:
        if total_points >= min_points:
            return tier
    return MembershipTier.REGULAR


def calculate_order_points(
    order_total: Decimal | float | str,
    digital_quantity: int,
    tier: MembershipTier | str,
) -> int:
    """Calculate points earned for an order.

    One point per whole dollar plus a bonus per digital unit, scaled by
    the member's tier multiplier and floored.

    Args:
        order_total: Order total amount.
        digital_quantity: Total quantity of digital items.
        tier: The member's tier before the award.

    Returns:
        int: Points to award.
    """
    base_points = math.floor(Decimal(str(order_total)))
    digital_bonus = digital_quantity * DIGITAL_ITEM_BONUS_POINTS
    return math.floor((base_points + digital_bonus) * get_tier_multiplier(tier))


def calculate_points_to_next_tier(current_points: int, tier: MembershipTier | str) -> int:
    """Points still needed to reach the next tier (0 at the top tier)."""
    tier = parse_tier(tier)
    if tier == MembershipTier.REGULAR:
        return max(0, 5000 - current_points)
    if tier == MembershipTier.PREMIUM:
        return max(0, 10000 - current_points)
    return 0


def get_tier_benefits(tier: MembershipTier | str) -> TierBenefits:
    """Get the benefits attached to a tier."""
    tier = parse_tier(tier)
    min_points = next(points for points, t in TIER_THRESHOLDS if t == tier)
    return TierBenefits(
        tier=tier,
        min_points=min_points,
        points_multiplier=float(TIER_MULTIPLIERS[tier]),
        **TIER_BENEFITS[tier],
    )


class LoyaltyService:
    """Service for awarding loyalty points and managing member tiers."""

    def __init__(
        self,
        order_service: OrderService | None = None,
        step_service: FulfillmentStepService | None = None,
    ) -> None:
        """Initialize loyalty service with clients."""
        self.client = get_supabase_client()
        self.order_service = order_service or OrderService()
        self.step_service = step_service or FulfillmentStepService()

    def _find_order_award(self, order_id: UUID | str) -> LoyaltyLedgerEntry | None:
        """Get the ledger row of an earlier award for this order, if any."""
        response = (
            self.client.table("loyalty_ledger")
            .select("*")
            .eq("order_id", str(order_id))
            .eq("reason", "order_purchase")
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None

    async def award_loyalty_points(self, order_id: UUID | str) -> LoyaltyAwardResult:
        """Award loyalty points for a completed order.

        Adds one ledger entry for the order, updates the member's running
        total and recomputes the tier. An order is only rewarded once;
        later calls report the earlier award as already applied.

        The ledger row is the record of the award: it is written before the
        member total and removed again if that update fails. A missing step
        marker alone never leads to a second award.

        Args:
            order_id: The order's UUID.

        Returns:
            LoyaltyAwardResult: Points awarded and any tier change.
        """
        try:
            order = await self.order_service.get_order_with_items(order_id)
            member = None
            if order and order.get("member_id"):
                member = await self.order_service.get_member(order["member_id"])

            if not order or not member:
                return LoyaltyAwardResult(
                    success=False,
                    error=f"Order {order_id} or associated member not found",
                )

            current_points = member.get("loyalty_points") or 0

            if await self.step_service.is_step_completed(order_id, FulfillmentStep.LOYALTY_POINTS):
                logger.info("Loyalty points already awarded for order %s, skipping", order_id)
                return LoyaltyAwardResult(
                    success=True,
                    new_total_points=current_points,
                    already_applied=True,
                )

            earlier_award = self._find_order_award(order_id)
            if earlier_award:
                logger.warning("Order %s has a ledger award but no step marker, restoring marker", order_id)
                await self._mark_awarded(order_id, earlier_award["points"])
                return LoyaltyAwardResult(
                    success=True,
                    new_total_points=current_points,
                    already_applied=True,
                )

            current_tier = parse_tier(member.get("membership_tier"))
            digital_quantity = sum(item["quantity"] for item in digital_items(order["order_items"]))
            points = calculate_order_points(order.get("total_amount") or 0, digital_quantity, current_tier)

            new_total_points = current_points + points
            new_tier = calculate_member_tier(new_total_points)
            tier_updated = new_tier != current_tier

            self.client.table("loyalty_ledger").insert(
                {
                    "member_id": str(member["id"]),
                    "order_id": str(order_id),
                    "points": points,
                    "reason": "order_purchase",
                }
            ).execute()

            member_update: MemberUpdate = {
                "loyalty_points": new_total_points,
                "membership_tier": new_tier.value,
            }
            try:
                self.client.table("members").update(member_update).eq("id", str(member["id"])).execute()
            except Exception:
                self.client.table("loyalty_ledger").delete().eq("order_id", str(order_id)).eq(
                    "reason", "order_purchase"
                ).execute()
                raise

            await self._mark_awarded(order_id, points)

            logger.info(
                "Awarded %d points to member %s for order %s (total %d, tier %s)",
                points,
                member["id"],
                order_id,
                new_total_points,
                new_tier.value,
            )

            return LoyaltyAwardResult(
                success=True,
                points_awarded=points,
                new_total_points=new_total_points,
                tier_updated=tier_updated,
                new_tier=new_tier.value if tier_updated else None,
            )

        except Exception as e:
            error_message = f"Error awarding loyalty points for order {order_id}: {e}"
            logger.error(error_message)
            return LoyaltyAwardResult(success=False, error=error_message)

    async def _mark_awarded(self, order_id: UUID | str, points: int) -> None:
        """Write the step marker; the ledger row already guards against a repeat."""
        try:
            await self.step_service.mark_step_completed(order_id, FulfillmentStep.LOYALTY_POINTS, {"points": points})
        except Exception as e:
            logger.error("Could not record loyalty step for order %s: %s", order_id, str(e))

    async def get_points_history(self, member_id: UUID | str) -> list[LoyaltyLedgerEntry]:
        """Get a member's ledger entries, newest first."""
        response = (
            self.client.table("loyalty_ledger")
            .select("*")
            .eq("member_id", str(member_id))
            .order("created_at", desc=True)
            .execute()
        )

        return response.data or []

    async def get_loyalty_status(self, member_id: UUID | str) -> dict[str, Any]:
        """Get a member's points, tier, benefits and purchase totals.

        Raises:
            MemberNotFoundError: If the member does not exist.
        """
        member = await self.order_service.get_member(member_id)
        if not member:
            raise MemberNotFoundError(member_id)

        current_points = member.get("loyalty_points") or 0
        tier = parse_tier(member.get("membership_tier"))

        orders_response = (
            self.client.table("orders")
            .select("total_amount")
            .eq("member_id", str(member_id))
            .eq("payment_status", "PAID")
            .execute()
        )
        paid_orders = orders_response.data or []

        return {
            "member_id": member["id"],
            "current_points": current_points,
            "current_tier": tier,
            "points_to_next_tier": calculate_points_to_next_tier(current_points, tier),
            "tier_benefits": get_tier_benefits(tier),
            "points_history": await self.get_points_history(member_id),
            "total_order_value": float(sum(Decimal(str(o.get("total_amount") or 0)) for o in paid_orders)),
            "total_orders": len(paid_orders),
        }

    async def award_manual_points(
        self,
        member_id: UUID | str,
        points: int,
        reason: str,
        awarded_by: str | None = None,
    ) -> dict[str, Any]:
        """Award (or deduct) points outside of an order.

        The balance never drops below zero. The ledger records the change
        actually applied, with the admin's reason as its note.

        Raises:
            MemberNotFoundError: If the member does not exist.
        """
        member = await self.order_service.get_member(member_id)
        if not member:
            raise MemberNotFoundError(member_id)

        previous_tier = parse_tier(member.get("membership_tier"))
        previous_points = member.get("loyalty_points") or 0
        new_total_points = max(0, previous_points + points)
        applied_points = new_total_points - previous_points
        new_tier = calculate_member_tier(new_total_points)

        self.client.table("loyalty_ledger").insert(
            {
                "member_id": str(member_id),
                "order_id": None,
                "points": applied_points,
                "reason": "manual_award",
                "note": reason,
                "awarded_by": awarded_by,
            }
        ).execute()

        self.client.table("members").update(
            {
                "loyalty_points": new_total_points,
                "membership_tier": new_tier.value,
            }
        ).eq("id", str(member_id)).execute()

        logger.info(
            "Manually awarded %d points (requested %d) to member %s: %s", applied_points, points, member_id, reason
        )

        return {
            "points_awarded": applied_points,
            "new_total_points": new_total_points,
            "previous_tier": previous_tier,
            "new_tier": new_tier,
            "tier_updated": previous_tier != new_tier,
        }

    async def adjust_member_tier(
        self,
        member_id: UUID | str,
        new_tier: MembershipTier,
        reason: str,
        adjusted_by: str | None = None,
    ) -> dict[str, Any]:
        """Set a member's tier directly.

        The change is recorded as a zero-point ledger entry noting the reason.

        Raises:
            MemberNotFoundError: If the member does not exist.
        """
        member = await self.order_service.get_member(member_id)
        if not member:
            raise MemberNotFoundError(member_id)

        previous_tier = parse_tier(member.get("membership_tier"))

        self.client.table("members").update(
            {"membership_tier": new_tier.value}
        ).eq("id", str(member_id)).execute()

        self.client.table("loyalty_ledger").insert(
            {
                "member_id": str(member_id),
                "order_id": None,
                "points": 0,
                "reason": "tier_adjustment",
                "note": reason,
                "awarded_by": adjusted_by,
            }
        ).execute()

        logger.info(
            "Member %s tier changed from %s to %s: %s",
            member_id,
            previous_tier.value,
            new_tier.value,
            reason,
        )

        return {"previous_tier": previous_tier, "new_tier": new_tier}

    async def get_leaderboard(self, limit: int = 20) -> list[dict[str, Any]]:
        """Get active members ordered by loyalty points."""
        response = (
            self.client.table("members")
            .select("id, name, membership_tier, loyalty_points")
            .eq("is_active", True)
            .order("loyalty_points", desc=True)
            .limit(limit)
            .execute()
        )

        return [
            {
                "id": member["id"],
                "name": member.get("name"),
                "membership_tier": parse_tier(member.get("membership_tier")),
                "points": member.get("loyalty_points") or 0,
            }
            for member in response.data or []
        ]
