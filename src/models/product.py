"""Product model type definitions for database operations."""

from datetime import datetime
from typing import Any, TypedDict
from uuid import UUID


class Product(TypedDict):
    """products table row representation.

    A product ships through Shopify (shopify_product_id), is printed on
    demand by Printify (printify_product_id), or is purely digital.
    """

    id: UUID
    name: str
    sku: str
    inventory: int
    is_digital: bool
    shopify_product_id: str | None
    shopify_variant_id: str | None
    shopify_inventory_item_id: str | None
    printify_product_id: str | None
    printify_variant_id: int | None
    specifications: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime


class ProductUpdate(TypedDict, total=False):
    """Data that fulfillment may update on a product."""

    inventory: int
