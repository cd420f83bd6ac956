"""Order fulfillment Pydantic schemas for service results and API responses."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FulfillmentSteps(BaseModel):
    """Per-step outcome of a fulfillment run.

    Optional steps are None when they did not apply to the order; the
    fulfillment endpoint leaves them out of the response body.
    """

    model_config = ConfigDict(from_attributes=True)

    order_creation: bool = Field(default=False, description="Vendor orders created in Shopify/Printify")
    inventory_update: bool = Field(default=False, description="Local inventory decremented")
    printify_submission: bool | None = Field(
        default=None, description="Printify order sent to production (None if no Printify order)"
    )
    digital_access: bool | None = Field(
        default=None, description="Digital access granted (None if no digital items)"
    )
    loyalty_points: bool = Field(default=False, description="Loyalty points awarded")


class FulfillmentResult(BaseModel):
    """Aggregated result of the order fulfillment workflow."""

    model_config = ConfigDict(from_attributes=True)

    success: bool = Field(description="True when order creation, inventory and loyalty steps succeeded")
    fulfillment_steps: FulfillmentSteps = Field(default_factory=FulfillmentSteps)
    errors: list[str] = Field(default_factory=list, description="Human-readable step failures")
    skipped_steps: list[str] = Field(
        default_factory=list, description="Steps already applied by a previous run"
    )
    order_status: str | None = Field(default=None, description="Order status persisted after the run")


class OrderCreationResult(BaseModel):
    """Result of creating vendor orders for a local order."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    shopify_order_id: str | None = None
    printify_order_id: str | None = None
    error: str | None = None


class PrintifySubmissionResult(BaseModel):
    """Result of sending a Printify order to production."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    printify_order_id: str | None = None
    error: str | None = None


class DigitalAccessResult(BaseModel):
    """Result of granting digital access for an order."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    granted_products: list[str] = Field(default_factory=list, description="Names of unlocked products")
    errors: list[str] = Field(default_factory=list)


class LoyaltyAwardResult(BaseModel):
    """Result of awarding loyalty points for an order."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    points_awarded: int = 0
    new_total_points: int = 0
    tier_updated: bool | None = None
    new_tier: str | None = Field(default=None, description="Only set when the tier changed")
    already_applied: bool = Field(default=False, description="Points were awarded by an earlier run")
    error: str | None = None


class InventorySyncResponse(BaseModel):
    """Response for a standalone inventory sync."""

    success: bool
    message: str


class FulfillmentFlags(BaseModel):
    """Which fulfillment paths an order touches."""

    has_shopify_order: bool
    has_printify_order: bool
    has_digital_products: bool
    has_print_on_demand_products: bool


class FulfillmentStatusResponse(BaseModel):
    """Order status including vendor-side order payloads."""

    order_id: UUID
    status: str
    payment_status: str | None = None
    external_status: dict[str, Any] = Field(default_factory=dict)
    fulfillment_status: FulfillmentFlags


class VendorTracking(BaseModel):
    """Tracking details reported by one vendor."""

    shipments: list[dict[str, Any]] = Field(default_factory=list)
    tracking_numbers: list[str] = Field(default_factory=list)
    tracking_urls: list[str] = Field(default_factory=list)


class TrackingResponse(BaseModel):
    """Shipping and tracking information for an order."""

    success: bool
    shopify: VendorTracking | None = None
    printify: VendorTracking | None = None
    error: str | None = None


class VendorSyncInfo(BaseModel):
    """Sync state of an order against one vendor."""

    status: str | None = None
    last_sync: datetime | None = None
    order_id: str | None = None
    reference: str | None = Field(default=None, description="Order number or external id")


class FulfillmentHistoryResponse(BaseModel):
    """Fulfillment history for an order."""

    order_id: UUID
    current_status: str
    payment_status: str | None = None
    order_created: datetime | None = None
    last_updated: datetime | None = None
    shopify_sync: VendorSyncInfo
    printify_sync: VendorSyncInfo
    completed_steps: dict[str, datetime] = Field(default_factory=dict)
