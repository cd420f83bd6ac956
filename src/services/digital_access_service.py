"""Digital product access grants for purchasing members."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from src.core.supabase import get_supabase_client
from src.models.fulfillment import DigitalAccessGrant, FulfillmentStep
from src.schemas.fulfillment import DigitalAccessResult
from src.services.fulfillment_step_service import FulfillmentStepService
from src.services.order_service import OrderService, digital_items

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_LEVEL = "FULL"


class DigitalAccessService:
    """Service for unlocking digital products bought in an order."""

    def __init__(
        self,
        order_service: OrderService | None = None,
        step_service: FulfillmentStepService | None = None,
    ) -> None:
        """Initialize digital access service with clients."""
        self.client = get_supabase_client()
        self.order_service = order_service or OrderService()
        self.step_service = step_service or FulfillmentStepService()

    async def grant_digital_content_access(self, order_id: UUID | str) -> DigitalAccessResult:
        """Grant access to every digital product in an order.

        Each item is granted independently: a failing item is reported
        in `errors` and the remaining items are still granted. Grants are
        upserted per (order, product), so re-running is harmless.

        Args:
            order_id: The order's UUID.

        Returns:
            DigitalAccessResult: Granted product names and per-item errors.
        """
        try:
            order = await self.order_service.get_order_with_items(order_id)
        except Exception as e:
            error_message = f"Error granting digital content access for order {order_id}: {e}"
            logger.error(error_message)
            return DigitalAccessResult(success=False, errors=[error_message])

        if not order:
            return DigitalAccessResult(success=False, errors=[f"Order {order_id} not found"])

        granted_products: list[str] = []
        errors: list[str] = []
        granted_at = datetime.now(timezone.utc).isoformat()

        for item in digital_items(order["order_items"]):
            product = item["product"]
            try:
                self.client.table("digital_access_grants").upsert(
                    {
                        "member_id": order.get("member_id"),
                        "product_id": str(product["id"]),
                        "order_id": str(order_id),
                        "access_level": DEFAULT_ACCESS_LEVEL,
                        "granted_at": granted_at,
                        "expires_at": None,
                    },
                    on_conflict="order_id,product_id",
                ).execute()
                granted_products.append(product["name"])

            except Exception as e:
                error_message = f"Error granting access to {product.get('name', product['id'])}: {e}"
                errors.append(error_message)
                logger.error(error_message)

        if granted_products and not errors:
            try:
                await self.step_service.mark_step_completed(
                    order_id, FulfillmentStep.DIGITAL_ACCESS, {"products": granted_products}
                )
            except Exception as e:
                logger.warning("Could not record digital access step for order %s: %s", order_id, str(e))

        return DigitalAccessResult(
            success=not errors,
            granted_products=granted_products,
            errors=errors,
        )

    async def get_member_digital_library(self, member_id: UUID | str) -> list[DigitalAccessGrant]:
        """Get all digital products unlocked for a member.

        Args:
            member_id: The member's UUID.

        Returns:
            list[dict]: Grants with the product name embedded.
        """
        response = (
            self.client.table("digital_access_grants")
            .select("*, product:products(name)")
            .eq("member_id", str(member_id))
            .order("granted_at", desc=True)
            .execute()
        )

        return [
            {**grant, "product_name": (grant.get("product") or {}).get("name")}
            for grant in response.data or []
        ]

    async def has_digital_access(self, member_id: UUID | str, product_id: UUID | str) -> bool:
        """Check whether a member holds an unexpired grant for a product."""
        response = (
            self.client.table("digital_access_grants")
            .select("expires_at")
            .eq("member_id", str(member_id))
            .eq("product_id", str(product_id))
            .execute()
        )

        now = datetime.now(timezone.utc)
        for grant in response.data or []:
            expires_at = grant.get("expires_at")
            if expires_at is None or datetime.fromisoformat(expires_at) > now:
                return True
        return False
