"""Database model type definitions."""

from src.models.fulfillment import (
    DigitalAccessGrant,
    FulfillmentStep,
    LoyaltyLedgerEntry,
)
from src.models.member import Member, MembershipTier
from src.models.order import Order, OrderItem, OrderStatus, PaymentStatus, VendorSyncStatus
from src.models.product import Product

__all__ = [
    "DigitalAccessGrant",
    "FulfillmentStep",
    "LoyaltyLedgerEntry",
    "Member",
    "MembershipTier",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "VendorSyncStatus",
]
