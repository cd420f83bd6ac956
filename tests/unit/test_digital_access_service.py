"""Unit tests for DigitalAccessService."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.models.fulfillment import FulfillmentStep
from src.services.digital_access_service import DigitalAccessService
from tests.factories import digital_product, make_item, make_order, shopify_product


@pytest.fixture
def order_service() -> AsyncMock:
    """Create a mock OrderService."""
    return AsyncMock()


@pytest.fixture
def step_service() -> AsyncMock:
    """Create a mock FulfillmentStepService."""
    return AsyncMock()


@pytest.fixture
def digital_access_service(
    table_client: MagicMock,
    order_service: AsyncMock,
    step_service: AsyncMock,
) -> DigitalAccessService:
    """Create DigitalAccessService with mocked dependencies."""
    with patch("src.services.digital_access_service.get_supabase_client", return_value=table_client):
        return DigitalAccessService(order_service, step_service)


class TestGrantDigitalContentAccess:
    """Tests for grant_digital_content_access."""

    @pytest.mark.asyncio
    async def test_grants_each_digital_item(
        self,
        digital_access_service: DigitalAccessService,
        order_service: AsyncMock,
        step_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test one grant per digital item and none for physical items."""
        order_service.get_order_with_items.return_value = make_order(
            [
                make_item(shopify_product()),
                make_item(digital_product()),
                make_item(digital_product(id="p-digital-2", name="Safety Toolkit")),
            ]
        )

        result = await digital_access_service.grant_digital_content_access("order-1")

        assert result.success is True
        assert result.granted_products == ["Estimating Masterclass", "Safety Toolkit"]
        assert result.errors == []

        grants = table_client.tables["digital_access_grants"]
        assert grants.upsert.call_count == 2
        row = grants.upsert.call_args_list[0][0][0]
        assert row["member_id"] == "member-1"
        assert row["product_id"] == "p-digital"
        assert row["order_id"] == "order-1"
        assert row["access_level"] == "FULL"
        assert row["expires_at"] is None
        assert grants.upsert.call_args_list[0][1] == {"on_conflict": "order_id,product_id"}

        step_service.mark_step_completed.assert_awaited_once()
        assert step_service.mark_step_completed.call_args[0][1] == FulfillmentStep.DIGITAL_ACCESS

    @pytest.mark.asyncio
    async def test_failing_item_does_not_block_others(
        self,
        digital_access_service: DigitalAccessService,
        order_service: AsyncMock,
        step_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test that one failing grant is reported and the rest are still granted."""
        order_service.get_order_with_items.return_value = make_order(
            [
                make_item(digital_product(id="p-digital-1", name="Bid Writing 101")),
                make_item(digital_product(id="p-digital-2", name="Safety Toolkit")),
            ]
        )

        def upsert(row: dict, on_conflict: str) -> MagicMock:
            if row["product_id"] == "p-digital-1":
                raise Exception("constraint violation")
            return MagicMock()

        table_client.tables["digital_access_grants"].upsert.side_effect = upsert

        result = await digital_access_service.grant_digital_content_access("order-1")

        assert result.success is False
        assert result.granted_products == ["Safety Toolkit"]
        assert result.errors == ["Error granting access to Bid Writing 101: constraint violation"]
        step_service.mark_step_completed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_order_not_found(
        self,
        digital_access_service: DigitalAccessService,
        order_service: AsyncMock,
    ) -> None:
        order_service.get_order_with_items.return_value = None

        result = await digital_access_service.grant_digital_content_access("order-x")

        assert result.success is False
        assert result.errors == ["Order order-x not found"]

    @pytest.mark.asyncio
    async def test_order_lookup_failure_is_reported(
        self,
        digital_access_service: DigitalAccessService,
        order_service: AsyncMock,
    ) -> None:
        order_service.get_order_with_items.side_effect = Exception("timeout")

        result = await digital_access_service.grant_digital_content_access("order-1")

        assert result.success is False
        assert result.errors == ["Error granting digital content access for order order-1: timeout"]


class TestDigitalLibrary:
    """Tests for member library queries."""

    @pytest.mark.asyncio
    async def test_get_member_digital_library(
        self,
        digital_access_service: DigitalAccessService,
        table_client: MagicMock,
    ) -> None:
        grants = table_client.tables["digital_access_grants"]
        grants.select.return_value.eq.return_value.order.return_value.execute.return_value = MagicMock(
            data=[{"id": "g-1", "product_id": "p-digital", "product": {"name": "Estimating Masterclass"}}]
        )

        library = await digital_access_service.get_member_digital_library("member-1")

        assert library[0]["product_name"] == "Estimating Masterclass"
        grants.select.return_value.eq.assert_called_with("member_id", "member-1")

    @pytest.mark.asyncio
    async def test_has_digital_access(
        self,
        digital_access_service: DigitalAccessService,
        table_client: MagicMock,
    ) -> None:
        """Test that only unexpired or open-ended grants count."""
        query = table_client.tables["digital_access_grants"].select.return_value.eq.return_value.eq.return_value
        expired = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()

        query.execute.return_value = MagicMock(data=[{"expires_at": expired}])
        assert await digital_access_service.has_digital_access("member-1", "p-digital") is False

        query.execute.return_value = MagicMock(data=[{"expires_at": expired}, {"expires_at": None}])
        assert await digital_access_service.has_digital_access("member-1", "p-digital") is True

        query.execute.return_value = MagicMock(data=[])
        assert await digital_access_service.has_digital_access("member-1", "p-digital") is False
