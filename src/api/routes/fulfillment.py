"""Order fulfillment API routes."""

import logging
from uuid import UUID

from fastapi import APIRouter, status

from src.api.middleware.error_handler import NotFoundError
from src.schemas.fulfillment import (
    DigitalAccessResult,
    FulfillmentFlags,
    FulfillmentHistoryResponse,
    FulfillmentResult,
    FulfillmentStatusResponse,
    InventorySyncResponse,
    LoyaltyAwardResult,
    PrintifySubmissionResult,
    TrackingResponse,
)
from src.services.fulfillment_service import FulfillmentService
from src.services.order_service import digital_items, partition_items_by_vendor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders/{order_id}/fulfillment", tags=["fulfillment"])


async def _require_order(service: FulfillmentService, order_id: UUID) -> dict:
    """Load an order with items or raise 404."""
    order = await service.order_service.get_order_with_items(order_id)
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


@router.post(
    "",
    response_model=FulfillmentResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Run order fulfillment",
    description="Creates vendor orders, updates inventory, starts production, grants digital access and awards loyalty points.",
)
async def complete_fulfillment(order_id: UUID) -> FulfillmentResult:
    """Run the complete fulfillment workflow for an order.

    Always returns the structured result; step failures are listed in
    `errors` and leave the order in PROCESSING for a later retry.

    Args:
        order_id: The order's UUID.

    Returns:
        FulfillmentResult: Step outcomes and errors.

    Raises:
        NotFoundError: 404 if the order does not exist.
    """
    service = FulfillmentService()
    await _require_order(service, order_id)

    result = await service.process_order_fulfillment(order_id)
    logger.info(
        "Fulfillment for order %s finished: success=%s, errors=%d",
        order_id,
        result.success,
        len(result.errors),
    )
    return result


@router.post(
    "/production",
    response_model=PrintifySubmissionResult,
    summary="Send Printify order to production",
)
async def submit_to_production(order_id: UUID) -> PrintifySubmissionResult:
    """Send the order's Printify order to production."""
    service = FulfillmentService()
    await _require_order(service, order_id)
    return await service.submit_printify_order_to_production(order_id)


@router.post(
    "/digital-access",
    response_model=DigitalAccessResult,
    summary="Grant digital access",
)
async def grant_digital_access(order_id: UUID) -> DigitalAccessResult:
    """Grant access to the digital products of an order."""
    service = FulfillmentService()
    await _require_order(service, order_id)
    return await service.digital_access_service.grant_digital_content_access(order_id)


@router.post(
    "/inventory",
    response_model=InventorySyncResponse,
    summary="Sync inventory for an order",
)
async def sync_inventory(order_id: UUID) -> InventorySyncResponse:
    """Decrement inventory for an order's stocked items.

    Raises:
        OrderNotFoundError: answered as 404 by the error middleware.
    """
    service = FulfillmentService()
    await service.inventory_service.update_inventory_after_order(order_id)

    return InventorySyncResponse(success=True, message="Inventory synchronized successfully")


@router.post(
    "/loyalty",
    response_model=LoyaltyAwardResult,
    summary="Award loyalty points for an order",
)
async def award_points(order_id: UUID) -> LoyaltyAwardResult:
    """Award loyalty points to the member who placed the order."""
    service = FulfillmentService()
    await _require_order(service, order_id)
    return await service.loyalty_service.award_loyalty_points(order_id)


@router.get(
    "/status",
    response_model=FulfillmentStatusResponse,
    summary="Get fulfillment status",
    description="Returns the order status, vendor-side order payloads and which fulfillment paths apply.",
)
async def get_fulfillment_status(order_id: UUID) -> FulfillmentStatusResponse:
    """Get the order status including vendor order payloads."""
    service = FulfillmentService()
    order = await _require_order(service, order_id)

    shopify_items, printify_items = partition_items_by_vendor(order["order_items"])
    external_status = await service.get_order_status(order_id)

    return FulfillmentStatusResponse(
        order_id=order["id"],
        status=order["status"],
        payment_status=order.get("payment_status"),
        external_status=external_status,
        fulfillment_status=FulfillmentFlags(
            has_shopify_order=bool(order.get("shopify_order_id")),
            has_printify_order=bool(order.get("printify_order_id")),
            has_digital_products=bool(digital_items(order["order_items"])),
            has_print_on_demand_products=bool(printify_items),
        ),
    )


@router.get(
    "/tracking",
    response_model=TrackingResponse,
    summary="Get shipping and tracking",
)
async def get_tracking(order_id: UUID) -> TrackingResponse:
    """Get tracking numbers and urls reported by Shopify and Printify."""
    service = FulfillmentService()
    tracking = await service.get_shipping_and_tracking(order_id)

    return TrackingResponse(success=True, **tracking)


@router.get(
    "/history",
    response_model=FulfillmentHistoryResponse,
    summary="Get fulfillment history",
)
async def get_history(order_id: UUID) -> FulfillmentHistoryResponse:
    """Get vendor sync state and completed fulfillment steps."""
    service = FulfillmentService()
    history = await service.get_fulfillment_history(order_id)

    return FulfillmentHistoryResponse(**history)
