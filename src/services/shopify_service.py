"""Shopify order and inventory operations used by fulfillment."""

import logging
from typing import Any
from uuid import UUID

from src.core.config import get_settings
from src.core.shopify import get_shopify_client
from src.core.vendor_http import VendorHTTPClient
from src.models.order import PaymentStatus
from src.services.order_service import OrderService, partition_items_by_vendor

logger = logging.getLogger(__name__)


def _vendor_id(value: Any) -> Any:
    """Shopify ids are integers; keep anything non-numeric as-is."""
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


class ShopifyService:
    """Service for Shopify Admin API calls made during fulfillment."""

    def __init__(self, order_service: OrderService | None = None) -> None:
        """Initialize Shopify service.

        The API client is resolved on first use so that a missing
        Shopify configuration only fails the calls that need it.
        """
        self.settings = get_settings()
        self.order_service = order_service or OrderService()
        self._api: VendorHTTPClient | None = None

    @property
    def api(self) -> VendorHTTPClient:
        """Get the Shopify API client."""
        if self._api is None:
            self._api = get_shopify_client()
        return self._api

    async def create_order_from_local(self, order_id: UUID | str) -> dict[str, Any]:
        """Create a Shopify order for the Shopify-routed items of a local order.

        Args:
            order_id: Local order UUID.

        Returns:
            dict: The Shopify order, including `id` and `order_number`.

        Raises:
            OrderNotFoundError: If the local order does not exist.
            ValueError: If the order has no Shopify items.
            VendorAPIError: If the Shopify call fails.
        """
        order = await self.order_service.require_order_with_items(order_id)
        shopify_items, _ = partition_items_by_vendor(order["order_items"])

        if not shopify_items:
            raise ValueError(f"No Shopify products found in order {order_id}")

        line_items = [
            {
                "variant_id": _vendor_id(item["product"].get("shopify_variant_id")),
                "quantity": item["quantity"],
                "price": str(item["unit_price"]),
            }
            for item in shopify_items
        ]

        financial_status = "paid" if order.get("payment_status") == PaymentStatus.PAID.value else "pending"

        response = await self.api.post(
            "/orders.json",
            json={
                "order": {
                    "email": order.get("customer_email"),
                    "line_items": line_items,
                    "financial_status": financial_status,
                    "send_receipt": False,
                    "send_fulfillment_receipt": False,
                }
            },
        )

        shopify_order = response["order"]
        logger.info("Created Shopify order %s for local order %s", shopify_order["id"], order_id)
        return shopify_order

    async def update_inventory_level(self, inventory_item_id: str | int, available: int) -> dict[str, Any]:
        """Set the available quantity of an inventory item at the configured location.

        Args:
            inventory_item_id: Shopify inventory item id.
            available: New available quantity.

        Returns:
            dict: The Shopify inventory level.
        """
        response = await self.api.post(
            "/inventory_levels/set.json",
            json={
                "location_id": _vendor_id(self.settings.shopify_location_id),
                "inventory_item_id": _vendor_id(str(inventory_item_id)),
                "available": available,
            },
            idempotent=True,
        )
        return response["inventory_level"]

    async def get_order(self, shopify_order_id: str | int) -> dict[str, Any]:
        """Get a Shopify order by id."""
        response = await self.api.get(f"/orders/{shopify_order_id}.json")
        return response["order"]
