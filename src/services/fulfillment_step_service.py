"""Per-order markers recording which fulfillment side effects were applied."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from src.core.supabase import get_supabase_client
from src.models.fulfillment import FulfillmentStep

logger = logging.getLogger(__name__)


class FulfillmentStepService:
    """Reads and writes rows of the fulfillment_steps table.

    A row (order_id, step) means the step's side effects were applied
    for that order and must not be applied again.
    """

    def __init__(self) -> None:
        """Initialize step service with Supabase client."""
        self.client = get_supabase_client()

    async def get_completed_steps(self, order_id: UUID | str) -> dict[str, str]:
        """Get the completed steps for an order.

        Args:
            order_id: The order's UUID.

        Returns:
            dict: Mapping of step name to completion timestamp.
        """
        response = (
            self.client.table("fulfillment_steps")
            .select("step, completed_at")
            .eq("order_id", str(order_id))
            .execute()
        )

        return {row["step"]: row["completed_at"] for row in response.data or []}

    async def is_step_completed(self, order_id: UUID | str, step: FulfillmentStep) -> bool:
        """Check whether a step was already applied for an order."""
        completed = await self.get_completed_steps(order_id)
        return step.value in completed

    async def mark_step_completed(
        self,
        order_id: UUID | str,
        step: FulfillmentStep,
        detail: dict[str, Any] | None = None,
    ) -> None:
        """Record that a step was applied for an order.

        Args:
            order_id: The order's UUID.
            step: The completed step.
            detail: Optional data describing what was applied.
        """
        self.client.table("fulfillment_steps").upsert(
            {
                "order_id": str(order_id),
                "step": step.value,
                "completed_at": datetime.now(timezone.utc).isoformat(),
                "detail": detail or {},
            },
            on_conflict="order_id,step",
        ).execute()

        logger.info("Order %s: step %s marked completed", order_id, step.value)

    async def clear_step(self, order_id: UUID | str, step: FulfillmentStep) -> None:
        """Remove a step marker so the step runs again on the next attempt."""
        self.client.table("fulfillment_steps").delete().eq("order_id", str(order_id)).eq("step", step.value).execute()

        logger.info("Order %s: step %s cleared", order_id, step.value)
