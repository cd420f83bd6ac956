"""Local inventory updates after an order, mirrored to Shopify."""

import logging
from uuid import UUID

from src.core.supabase import get_supabase_client
from src.models.fulfillment import FulfillmentStep
from src.models.product import Product, ProductUpdate
from src.services.fulfillment_step_service import FulfillmentStepService
from src.services.order_service import OrderService
from src.services.shopify_service import ShopifyService

logger = logging.getLogger(__name__)


def tracks_inventory(product: Product) -> bool:
    """Print-on-demand and digital products have unlimited virtual stock."""
    return not product.get("printify_product_id") and not product.get("is_digital")


class InventoryService:
    """Service for decrementing stock levels after an order."""

    def __init__(
        self,
        order_service: OrderService | None = None,
        shopify_service: ShopifyService | None = None,
        step_service: FulfillmentStepService | None = None,
    ) -> None:
        """Initialize inventory service with clients."""
        self.client = get_supabase_client()
        self.order_service = order_service or OrderService()
        self.shopify_service = shopify_service or ShopifyService(self.order_service)
        self.step_service = step_service or FulfillmentStepService()

    async def update_inventory_after_order(self, order_id: UUID | str) -> None:
        """Decrement inventory for every stocked item of an order.

        The step marker is written first with the planned stock levels, so
        a decrement can never be applied twice for the same order. If a
        local write then fails, the marker is removed when nothing was
        written yet, or narrowed to the products that were decremented.

        The local write is authoritative. The Shopify inventory level is
        then set on a best-effort basis; a Shopify failure is logged and
        does not fail the update.

        Args:
            order_id: The order's UUID.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = await self.order_service.require_order_with_items(order_id)

        if await self.step_service.is_step_completed(order_id, FulfillmentStep.INVENTORY_UPDATE):
            logger.info("Inventory already updated for order %s, skipping", order_id)
            return

        stocked = [item for item in order["order_items"] if tracks_inventory(item["product"])]
        planned = {
            str(item["product"]["id"]): max(0, (item["product"].get("inventory") or 0) - item["quantity"])
            for item in stocked
        }

        await self.step_service.mark_step_completed(
            order_id, FulfillmentStep.INVENTORY_UPDATE, {"inventory": planned}
        )

        updated: dict[str, int] = {}
        try:
            for item in stocked:
                product = item["product"]
                product_id = str(product["id"])
                new_inventory = planned[product_id]

                update: ProductUpdate = {"inventory": new_inventory}
                self.client.table("products").update(update).eq("id", product_id).execute()
                updated[product_id] = new_inventory

                inventory_item_id = product.get("shopify_inventory_item_id")
                if inventory_item_id:
                    try:
                        await self.shopify_service.update_inventory_level(inventory_item_id, new_inventory)
                    except Exception as e:
                        logger.error(
                            "Failed to update Shopify inventory for product %s: %s",
                            product_id,
                            str(e),
                        )
        except Exception:
            not_applied = sorted(set(planned) - set(updated))
            if updated:
                logger.error(
                    "Inventory for order %s only partly updated; not decremented: %s",
                    order_id,
                    ", ".join(not_applied),
                )
                await self.step_service.mark_step_completed(
                    order_id,
                    FulfillmentStep.INVENTORY_UPDATE,
                    {"inventory": updated, "not_applied": not_applied},
                )
            else:
                await self.step_service.clear_step(order_id, FulfillmentStep.INVENTORY_UPDATE)
            raise

        logger.info("Inventory updated for order %s (%d products)", order_id, len(updated))
