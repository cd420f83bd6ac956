"""Order and member data access shared by the fulfillment services."""

import logging
from typing import Any
from uuid import UUID

from src.core.supabase import get_supabase_client
from src.models.member import Member
from src.models.order import Order, OrderItem, OrderUpdate

logger = logging.getLogger(__name__)

# Order row with line items and their products embedded via PostgREST relations
ORDER_WITH_ITEMS_SELECT = "*, order_items(*, product:products(*))"


class OrderNotFoundError(ValueError):
    """Raised when an order cannot be loaded."""

    def __init__(self, order_id: UUID | str) -> None:
        self.order_id = str(order_id)
        super().__init__(f"Order {order_id} not found")


class MemberNotFoundError(ValueError):
    """Raised when a member cannot be loaded."""

    def __init__(self, member_id: UUID | str) -> None:
        self.member_id = str(member_id)
        super().__init__(f"Member {member_id} not found")


class OrderService:
    """Service for loading and updating orders and members."""

    def __init__(self) -> None:
        """Initialize order service with Supabase client."""
        self.client = get_supabase_client()

    async def get_order(self, order_id: UUID | str) -> Order | None:
        """Get an order row without line items.

        Args:
            order_id: The order's UUID.

        Returns:
            dict | None: The order data or None if not found.
        """
        response = (
            self.client.table("orders")
            .select("*")
            .eq("id", str(order_id))
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def get_order_with_items(self, order_id: UUID | str) -> Order | None:
        """Get an order with its line items and their products.

        Args:
            order_id: The order's UUID.

        Returns:
            dict | None: The order data with `order_items` or None if not found.
        """
        response = (
            self.client.table("orders")
            .select(ORDER_WITH_ITEMS_SELECT)
            .eq("id", str(order_id))
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            return None

        order = response.data
        order["order_items"] = order.get("order_items") or []
        return order

    async def require_order_with_items(self, order_id: UUID | str) -> Order:
        """Get an order with items, raising if it does not exist.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = await self.get_order_with_items(order_id)
        if not order:
            raise OrderNotFoundError(order_id)
        return order

    async def update_order(self, order_id: UUID | str, data: OrderUpdate) -> dict[str, Any]:
        """Update fields on an order.

        Args:
            order_id: The order's UUID.
            data: Columns to update.

        Returns:
            dict: The updated order row, or empty dict if nothing matched.
        """
        response = (
            self.client.table("orders")
            .update(data)
            .eq("id", str(order_id))
            .execute()
        )

        if response.data:
            return response.data[0]

        logger.warning("Order not found for update: %s", order_id)
        return {}

    async def get_member(self, member_id: UUID | str) -> Member | None:
        """Get a member row.

        Args:
            member_id: The member's UUID.

        Returns:
            dict | None: The member data or None if not found.
        """
        response = (
            self.client.table("members")
            .select("*")
            .eq("id", str(member_id))
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None


def partition_items_by_vendor(
    items: list[OrderItem],
) -> tuple[list[OrderItem], list[OrderItem]]:
    """Split order items into Shopify-routed and Printify-routed lists.

    Args:
        items: Order items with embedded products.

    Returns:
        tuple: (shopify_items, printify_items)
    """
    shopify_items = [item for item in items if item["product"].get("shopify_product_id")]
    printify_items = [item for item in items if item["product"].get("printify_product_id")]
    return shopify_items, printify_items


def digital_items(items: list[OrderItem]) -> list[OrderItem]:
    """Return the order items whose product is digital."""
    return [item for item in items if item["product"].get("is_digital")]
