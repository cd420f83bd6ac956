"""Order fulfillment workflow across Shopify, Printify and local bookkeeping."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from src.core.config import get_settings
from src.models.fulfillment import FulfillmentStep
from src.models.order import OrderStatus, VendorSyncStatus
from src.schemas.fulfillment import (
    FulfillmentResult,
    FulfillmentSteps,
    OrderCreationResult,
    PrintifySubmissionResult,
)
from src.services.digital_access_service import DigitalAccessService
from src.services.fulfillment_step_service import FulfillmentStepService
from src.services.inventory_service import InventoryService
from src.services.loyalty_service import LoyaltyService
from src.services.order_service import (
    OrderNotFoundError,
    OrderService,
    digital_items,
    partition_items_by_vendor,
)
from src.services.printify_service import PrintifyService
from src.services.shopify_service import ShopifyService

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FulfillmentService:
    """Coordinates the fulfillment steps for a single order.

    Steps run in a fixed order and each one records its own outcome;
    a failing step never stops the ones after it.
    """

    def __init__(self) -> None:
        """Initialize fulfillment service and the step services it drives."""
        self.settings = get_settings()
        self.order_service = OrderService()
        self.step_service = FulfillmentStepService()
        self.shopify_service = ShopifyService(self.order_service)
        self.printify_service = PrintifyService(self.order_service)
        self.inventory_service = InventoryService(
            self.order_service, self.shopify_service, self.step_service
        )
        self.digital_access_service = DigitalAccessService(self.order_service, self.step_service)
        self.loyalty_service = LoyaltyService(self.order_service, self.step_service)

    async def _create_shopify_order(self, order_id: UUID | str) -> str:
        shopify_order = await self.shopify_service.create_order_from_local(order_id)
        shopify_order_id = str(shopify_order["id"])

        await self.order_service.update_order(
            order_id,
            {
                "shopify_order_id": shopify_order_id,
                "shopify_order_number": str(shopify_order.get("order_number", "")),
                "shopify_sync_status": VendorSyncStatus.SYNCED.value,
                "shopify_last_sync": _now(),
            },
        )
        return shopify_order_id

    async def _create_printify_order(self, order_id: UUID | str) -> str:
        printify_order = await self.printify_service.create_order_from_local(order_id)
        printify_order_id = str(printify_order["id"])

        await self.order_service.update_order(
            order_id,
            {
                "printify_order_id": printify_order_id,
                "printify_external_id": printify_order.get("external_id"),
                "printify_sync_status": VendorSyncStatus.SYNCED.value,
                "printify_last_sync": _now(),
            },
        )
        return printify_order_id

    async def _run_vendor_call(self, vendor: str, call: Any, order_id: UUID | str) -> tuple[str | None, str | None]:
        """Run one vendor order creation, returning (vendor_order_id, error)."""
        try:
            return await call(order_id), None
        except Exception as e:
            error_message = f"Failed to create {vendor} order: {e}"
            logger.error(error_message)
            return None, error_message

    async def fulfill_order(self, order_id: UUID | str) -> OrderCreationResult:
        """Create the vendor orders for a local order.

        Items are routed to Shopify or Printify by their product's vendor
        ids. The two vendor calls are independent: both are attempted and
        each succeeds or fails on its own. A vendor whose order id is
        already on the local order is not called again.

        Args:
            order_id: The order's UUID.

        Returns:
            OrderCreationResult: Vendor order ids and joined error messages.
        """
        try:
            order = await self.order_service.get_order_with_items(order_id)
            if not order:
                return OrderCreationResult(success=False, error=f"Local order {order_id} not found")

            shopify_items, printify_items = partition_items_by_vendor(order["order_items"])
            shopify_order_id = order.get("shopify_order_id")
            printify_order_id = order.get("printify_order_id")

            calls = []
            if shopify_items and not shopify_order_id:
                calls.append(("shopify", self._run_vendor_call("Shopify", self._create_shopify_order, order_id)))
            if printify_items and not printify_order_id:
                calls.append(("printify", self._run_vendor_call("Printify", self._create_printify_order, order_id)))

            if self.settings.fulfillment_parallel_vendor_calls:
                outcomes = await asyncio.gather(*(coro for _, coro in calls))
            else:
                outcomes = [await coro for _, coro in calls]

            errors: list[str] = []
            for (vendor, _), (vendor_order_id, error) in zip(calls, outcomes):
                if error:
                    errors.append(error)
                elif vendor == "shopify":
                    shopify_order_id = vendor_order_id
                else:
                    printify_order_id = vendor_order_id

            return OrderCreationResult(
                success=not errors or bool(shopify_order_id or printify_order_id),
                shopify_order_id=shopify_order_id,
                printify_order_id=printify_order_id,
                error="; ".join(errors) if errors else None,
            )

        except Exception as e:
            error_message = f"Error fulfilling order {order_id}: {e}"
            logger.error(error_message)
            return OrderCreationResult(success=False, error=error_message)

    async def submit_printify_order_to_production(self, order_id: UUID | str) -> PrintifySubmissionResult:
        """Send an order's Printify order to production.

        Args:
            order_id: The order's UUID.

        Returns:
            PrintifySubmissionResult: Submission outcome.
        """
        try:
            order = await self.order_service.get_order(order_id)
            if not order:
                return PrintifySubmissionResult(success=False, error=f"Order {order_id} not found")

            printify_order_id = order.get("printify_order_id")
            if not printify_order_id:
                return PrintifySubmissionResult(
                    success=False,
                    error=f"No Printify order ID found for order {order_id}",
                )

            if await self.step_service.is_step_completed(order_id, FulfillmentStep.PRINTIFY_SUBMISSION):
                logger.info("Printify order %s already in production, skipping", printify_order_id)
                return PrintifySubmissionResult(success=True, printify_order_id=printify_order_id)

            await self.printify_service.send_order_to_production(printify_order_id)

            await self.order_service.update_order(
                order_id,
                {
                    "status": OrderStatus.IN_PRODUCTION.value,
                    "printify_sync_status": VendorSyncStatus.SYNCED.value,
                    "printify_last_sync": _now(),
                },
            )
            try:
                await self.step_service.mark_step_completed(
                    order_id, FulfillmentStep.PRINTIFY_SUBMISSION, {"printify_order_id": printify_order_id}
                )
            except Exception as e:
                logger.error("Could not record production step for order %s: %s", order_id, str(e))

            return PrintifySubmissionResult(success=True, printify_order_id=printify_order_id)

        except Exception as e:
            error_message = f"Error submitting Printify order to production for order {order_id}: {e}"
            logger.error(error_message)
            return PrintifySubmissionResult(success=False, error=error_message)

    async def process_order_fulfillment(self, order_id: UUID | str) -> FulfillmentResult:
        """Run the complete fulfillment workflow for an order.

        1. Create vendor orders (Shopify and/or Printify)
        2. Update inventory
        3. Send the Printify order to production, if there is one
        4. Grant digital access, if the order has digital items
        5. Award loyalty points

        The order ends up CONFIRMED when order creation, inventory and
        loyalty all succeeded, otherwise PROCESSING so it can be retried.
        Steps already applied by an earlier run are skipped.

        Args:
            order_id: The order's UUID.

        Returns:
            FulfillmentResult: Step outcomes and collected errors.
        """
        steps = FulfillmentSteps()
        errors: list[str] = []
        skipped: list[str] = []

        try:
            order = await self.order_service.get_order_with_items(order_id)
            if not order:
                return FulfillmentResult(success=False, fulfillment_steps=steps, errors=[f"Order {order_id} not found"])

            completed = await self.step_service.get_completed_steps(order_id)
            logger.info("Starting fulfillment for order %s (completed steps: %s)", order_id, sorted(completed))

            # Step 1: vendor orders
            creation = await self.fulfill_order(order_id)
            steps.order_creation = creation.success
            if creation.error:
                errors.append(creation.error)

            # Step 2: inventory
            if FulfillmentStep.INVENTORY_UPDATE.value in completed:
                steps.inventory_update = True
                skipped.append(FulfillmentStep.INVENTORY_UPDATE.value)
            else:
                try:
                    await self.inventory_service.update_inventory_after_order(order_id)
                    steps.inventory_update = True
                except Exception as e:
                    errors.append(f"Inventory update failed: {e}")

            # Step 3: Printify production
            if creation.printify_order_id:
                if FulfillmentStep.PRINTIFY_SUBMISSION.value in completed:
                    steps.printify_submission = True
                    skipped.append(FulfillmentStep.PRINTIFY_SUBMISSION.value)
                else:
                    submission = await self.submit_printify_order_to_production(order_id)
                    steps.printify_submission = submission.success
                    if submission.error:
                        errors.append(submission.error)

            # Step 4: digital access
            if digital_items(order["order_items"]):
                if FulfillmentStep.DIGITAL_ACCESS.value in completed:
                    steps.digital_access = True
                    skipped.append(FulfillmentStep.DIGITAL_ACCESS.value)
                else:
                    access = await self.digital_access_service.grant_digital_content_access(order_id)
                    steps.digital_access = access.success
                    errors.extend(access.errors)

            # Step 5: loyalty points
            if FulfillmentStep.LOYALTY_POINTS.value in completed:
                steps.loyalty_points = True
                skipped.append(FulfillmentStep.LOYALTY_POINTS.value)
            else:
                loyalty = await self.loyalty_service.award_loyalty_points(order_id)
                steps.loyalty_points = loyalty.success
                if loyalty.error:
                    errors.append(loyalty.error)

            overall_success = steps.order_creation and steps.inventory_update and steps.loyalty_points
            status = OrderStatus.CONFIRMED if overall_success else OrderStatus.PROCESSING

            await self.order_service.update_order(order_id, {"status": status.value})

            if overall_success:
                logger.info("Order %s fulfilled", order_id)
            else:
                logger.warning("Order %s fulfilled with errors: %s", order_id, errors)

            return FulfillmentResult(
                success=overall_success,
                fulfillment_steps=steps,
                errors=errors,
                skipped_steps=skipped,
                order_status=status.value,
            )

        except Exception as e:
            error_message = f"Error processing order fulfillment for {order_id}: {e}"
            logger.error(error_message)
            errors.append(error_message)
            return FulfillmentResult(
                success=False,
                fulfillment_steps=steps,
                errors=errors,
                skipped_steps=skipped,
            )

    async def get_order_status(self, order_id: UUID | str) -> dict[str, Any]:
        """Get the vendor-side order payloads for an order.

        Vendor lookups that fail are logged and left out.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = await self.order_service.get_order(order_id)
        if not order:
            raise OrderNotFoundError(order_id)

        result: dict[str, Any] = {}

        if order.get("shopify_order_id"):
            try:
                result["shopify"] = await self.shopify_service.get_order(order["shopify_order_id"])
            except Exception as e:
                logger.error("Error fetching Shopify order status: %s", str(e))

        if order.get("printify_order_id"):
            try:
                result["printify"] = await self.printify_service.get_order(order["printify_order_id"])
            except Exception as e:
                logger.error("Error fetching Printify order status: %s", str(e))

        return result

    async def get_shipping_and_tracking(self, order_id: UUID | str) -> dict[str, Any]:
        """Collect tracking numbers and urls from both vendors.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = await self.order_service.get_order(order_id)
        if not order:
            raise OrderNotFoundError(order_id)

        tracking: dict[str, Any] = {}

        if order.get("shopify_order_id"):
            try:
                shopify_order = await self.shopify_service.get_order(order["shopify_order_id"])
                fulfillments = shopify_order.get("fulfillments") or []
                tracking["shopify"] = {
                    "shipments": fulfillments,
                    "tracking_numbers": [f["tracking_number"] for f in fulfillments if f.get("tracking_number")],
                    "tracking_urls": [f["tracking_url"] for f in fulfillments if f.get("tracking_url")],
                }
            except Exception as e:
                logger.error("Error fetching Shopify tracking info: %s", str(e))

        if order.get("printify_order_id"):
            try:
                printify_order = await self.printify_service.get_order(order["printify_order_id"])
                shipments = printify_order.get("shipments") or []
                tracking["printify"] = {
                    "shipments": shipments,
                    "tracking_numbers": [s["number"] for s in shipments if s.get("number")],
                    "tracking_urls": [s["url"] for s in shipments if s.get("url")],
                }
            except Exception as e:
                logger.error("Error fetching Printify tracking info: %s", str(e))

        return tracking

    async def get_fulfillment_history(self, order_id: UUID | str) -> dict[str, Any]:
        """Get vendor sync state and completed steps for an order.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = await self.order_service.get_order(order_id)
        if not order:
            raise OrderNotFoundError(order_id)

        return {
            "order_id": order["id"],
            "current_status": order["status"],
            "payment_status": order.get("payment_status"),
            "order_created": order.get("created_at"),
            "last_updated": order.get("updated_at"),
            "shopify_sync": {
                "status": order.get("shopify_sync_status"),
                "last_sync": order.get("shopify_last_sync"),
                "order_id": order.get("shopify_order_id"),
                "reference": order.get("shopify_order_number"),
            },
            "printify_sync": {
                "status": order.get("printify_sync_status"),
                "last_sync": order.get("printify_last_sync"),
                "order_id": order.get("printify_order_id"),
                "reference": order.get("printify_external_id"),
            },
            "completed_steps": await self.step_service.get_completed_steps(order_id),
        }
