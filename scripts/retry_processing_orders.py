#!/usr/bin/env python
"""Script to re-run fulfillment for paid orders left in PROCESSING.

This script:
1. Finds paid orders whose status is still PROCESSING
2. Re-runs the fulfillment workflow for each of them
3. Reports which orders are now CONFIRMED and which still need attention

Steps that already succeeded for an order (inventory, production,
loyalty points) are skipped on the re-run, so it is safe to schedule.

Usage:
    python scripts/retry_processing_orders.py [--limit 50] [--dry-run]

Requirements:
    - SUPABASE_URL and SUPABASE_SECRET_KEY environment variables must be set
    - Shopify/Printify credentials for orders that need vendor calls
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.supabase import get_supabase_client
from src.models.order import OrderStatus, PaymentStatus
from src.services.fulfillment_service import FulfillmentService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def get_processing_orders(limit: int) -> list[dict]:
    """Get paid orders still waiting for fulfillment.

    Args:
        limit: Maximum number of orders to return.

    Returns:
        list[dict]: Order rows, oldest first.
    """
    client = get_supabase_client()
    response = (
        client.table("orders")
        .select("id, order_number")
        .eq("status", OrderStatus.PROCESSING.value)
        .eq("payment_status", PaymentStatus.PAID.value)
        .order("created_at")
        .limit(limit)
        .execute()
    )
    return response.data or []


async def retry_processing_orders(limit: int, dry_run: bool = False) -> dict:
    """Re-run fulfillment for orders in PROCESSING.

    Args:
        limit: Maximum number of orders to retry.
        dry_run: Only list the orders without running fulfillment.

    Returns:
        dict: Counts of processed, confirmed and still failing orders.
    """
    orders = get_processing_orders(limit)
    logger.info(f"Found {len(orders)} orders in {OrderStatus.PROCESSING.value}")

    confirmed = 0
    failed = 0
    service = FulfillmentService()

    for order in orders:
        order_id = order["id"]
        order_number = order.get("order_number", order_id)

        if dry_run:
            logger.info(f"[dry-run] Would retry order {order_number}")
            continue

        result = await service.process_order_fulfillment(order_id)
        if result.success:
            confirmed += 1
            logger.info(f"Order {order_number} confirmed (skipped: {', '.join(result.skipped_steps) or 'none'})")
        else:
            failed += 1
            for error in result.errors:
                logger.warning(f"Order {order_number}: {error}")

    return {
        "processed": len(orders),
        "confirmed": confirmed,
        "failed": failed,
    }


async def main() -> None:
    """Main entry point for the retry script."""
    parser = argparse.ArgumentParser(description="Re-run fulfillment for orders left in PROCESSING")
    parser.add_argument("--limit", type=int, default=50, help="Maximum number of orders to retry")
    parser.add_argument("--dry-run", action="store_true", help="List orders without retrying them")
    args = parser.parse_args()

    logger.info("Starting fulfillment retry...")

    try:
        results = await retry_processing_orders(args.limit, dry_run=args.dry_run)

        logger.info("=" * 60)
        logger.info("Fulfillment retry complete!")
        logger.info(f"Orders processed: {results['processed']}")
        logger.info(f"Orders confirmed: {results['confirmed']}")
        logger.info(f"Orders still failing: {results['failed']}")
        logger.info("=" * 60)

        if results["failed"] > 0:
            logger.warning("Some orders still need manual follow-up. Check logs for details.")
            sys.exit(1)

    except Exception as e:
        logger.error(f"Fulfillment retry failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
