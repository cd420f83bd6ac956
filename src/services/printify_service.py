"""Printify print-on-demand order operations used by fulfillment."""

import logging
from typing import Any
from uuid import UUID

from src.core.config import get_settings
from src.core.printify import get_printify_client
from src.core.vendor_http import VendorHTTPClient
from src.services.order_service import OrderService, partition_items_by_vendor

logger = logging.getLogger(__name__)


def build_printify_address(shipping_address: dict[str, Any], email: str | None) -> dict[str, Any]:
    """Map a local shipping address to Printify's `address_to` shape.

    Args:
        shipping_address: Address stored on the order.
        email: Customer email.

    Returns:
        dict: Printify address payload.
    """
    return {
        "first_name": shipping_address.get("first_name", ""),
        "last_name": shipping_address.get("last_name", ""),
        "email": email or "",
        "phone": shipping_address.get("phone", ""),
        "country": shipping_address.get("country") or "US",
        "region": shipping_address.get("state") or shipping_address.get("province") or "",
        "address1": shipping_address.get("address1", ""),
        "address2": shipping_address.get("address2", ""),
        "city": shipping_address.get("city", ""),
        "zip": shipping_address.get("zip") or shipping_address.get("postal_code") or "",
    }


class PrintifyService:
    """Service for Printify API calls made during fulfillment."""

    def __init__(self, order_service: OrderService | None = None) -> None:
        """Initialize Printify service.

        The API client is resolved on first use so that a missing
        Printify configuration only fails the calls that need it.
        """
        self.settings = get_settings()
        self.order_service = order_service or OrderService()
        self._api: VendorHTTPClient | None = None

    @property
    def api(self) -> VendorHTTPClient:
        """Get the Printify API client."""
        if self._api is None:
            self._api = get_printify_client()
        return self._api

    @property
    def shop_path(self) -> str:
        """Path prefix for the configured shop."""
        return f"/shops/{self.settings.printify_shop_id}"

    async def create_order_from_local(self, order_id: UUID | str) -> dict[str, Any]:
        """Create a Printify order for the print-on-demand items of a local order.

        Args:
            order_id: Local order UUID.

        Returns:
            dict: The Printify order, including `id` and `external_id`.

        Raises:
            OrderNotFoundError: If the local order does not exist.
            ValueError: If the order has no shipping address or no Printify items.
            VendorAPIError: If the Printify call fails.
        """
        order = await self.order_service.require_order_with_items(order_id)

        shipping_address = order.get("shipping_address")
        if not shipping_address:
            raise ValueError(f"No shipping address found for order {order_id}")

        _, printify_items = partition_items_by_vendor(order["order_items"])
        line_items = [
            {
                "product_id": item["product"]["printify_product_id"],
                "variant_id": item["product"].get("printify_variant_id"),
                "quantity": item["quantity"],
            }
            for item in printify_items
            if item["product"].get("printify_variant_id")
        ]

        if not line_items:
            raise ValueError(f"No Printify products found in order {order_id}")

        printify_order = await self.api.post(
            f"{self.shop_path}/orders.json",
            json={
                "external_id": order["order_number"],
                "line_items": line_items,
                "shipping_method": self.settings.printify_shipping_method,
                "is_printify_express": False,
                "send_shipping_notification": True,
                "address_to": build_printify_address(shipping_address, order.get("customer_email")),
            },
        )

        printify_order.setdefault("external_id", order["order_number"])
        logger.info("Created Printify order %s for local order %s", printify_order["id"], order_id)
        return printify_order

    async def send_order_to_production(self, printify_order_id: str) -> None:
        """Ask Printify to start producing an order."""
        await self.api.post(f"{self.shop_path}/orders/{printify_order_id}/send_to_production.json")
        logger.info("Printify order %s sent to production", printify_order_id)

    async def get_order(self, printify_order_id: str) -> dict[str, Any]:
        """Get a Printify order by id."""
        return await self.api.get(f"{self.shop_path}/orders/{printify_order_id}.json")
