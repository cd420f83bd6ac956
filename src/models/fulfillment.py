"""Fulfillment steps and the loyalty ledger and digital grant tables."""

from datetime import datetime
from enum import Enum
from typing import Literal, TypedDict
from uuid import UUID


class FulfillmentStep(str, Enum):
    """Steps of the order fulfillment workflow."""

    INVENTORY_UPDATE = "inventory_update"
    PRINTIFY_SUBMISSION = "printify_submission"
    DIGITAL_ACCESS = "digital_access"
    LOYALTY_POINTS = "loyalty_points"


LoyaltyReason = Literal["order_purchase", "manual_award", "tier_adjustment"]

AccessLevel = Literal["FULL"]


class LoyaltyLedgerEntry(TypedDict):
    """loyalty_ledger table row: one point-award event.

    At most one order_purchase row per order_id.
    """

    id: UUID
    member_id: UUID
    order_id: UUID | None
    points: int
    reason: LoyaltyReason
    note: str | None
    awarded_by: str | None
    created_at: datetime


class DigitalAccessGrant(TypedDict):
    """digital_access_grants table row.

    Unique per (order_id, product_id).
    """

    id: UUID
    member_id: UUID | None
    product_id: UUID
    order_id: UUID
    access_level: AccessLevel
    granted_at: datetime
    expires_at: datetime | None

