"""Order model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import Any, TypedDict
from uuid import UUID

from src.models.product import Product


class OrderStatus(str, Enum):
    """Order fulfillment status values matching the database enum."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    CONFIRMED = "CONFIRMED"
    IN_PRODUCTION = "IN_PRODUCTION"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    """Order payment status values."""

    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


class VendorSyncStatus(str, Enum):
    """Sync status of an order against a vendor."""

    PENDING = "PENDING"
    SYNCED = "SYNCED"
    FAILED = "FAILED"


class OrderItem(TypedDict):
    """order_items table row with its product embedded.

    Loaded through the PostgREST relation `product:products(*)`.
    """

    id: UUID
    order_id: UUID
    product_id: UUID
    quantity: int
    unit_price: float
    product: Product


class Order(TypedDict):
    """orders table row representation.

    Represents an order stored in the orders table, with its
    line items embedded when loaded for fulfillment.
    """

    id: UUID
    order_number: str
    member_id: UUID | None
    customer_email: str | None
    status: str
    payment_status: str
    total_amount: float
    shipping_address: dict[str, Any] | None
    shopify_order_id: str | None
    shopify_order_number: str | None
    shopify_sync_status: str | None
    shopify_last_sync: datetime | None
    printify_order_id: str | None
    printify_external_id: str | None
    printify_sync_status: str | None
    printify_last_sync: datetime | None
    order_items: list[OrderItem]
    created_at: datetime
    updated_at: datetime


class OrderUpdate(TypedDict, total=False):
    """Data that can be updated on an order during fulfillment."""

    status: str
    shopify_order_id: str
    shopify_order_number: str
    shopify_sync_status: str
    shopify_last_sync: str
    printify_order_id: str
    printify_external_id: str
    printify_sync_status: str
    printify_last_sync: str
