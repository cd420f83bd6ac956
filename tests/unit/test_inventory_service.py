"""Unit tests for InventoryService."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.vendor_http import VendorAPIError
from src.models.fulfillment import FulfillmentStep
from src.services.inventory_service import InventoryService, tracks_inventory
from src.services.order_service import OrderNotFoundError
from tests.factories import digital_product, make_item, make_order, make_product, printify_product, shopify_product


@pytest.fixture
def order_service() -> AsyncMock:
    """Create a mock OrderService."""
    return AsyncMock()


@pytest.fixture
def shopify_service() -> AsyncMock:
    """Create a mock ShopifyService."""
    return AsyncMock()


@pytest.fixture
def step_service() -> AsyncMock:
    """Create a mock FulfillmentStepService with no completed steps."""
    service = AsyncMock()
    service.is_step_completed.return_value = False
    return service


@pytest.fixture
def inventory_service(
    table_client: MagicMock,
    order_service: AsyncMock,
    shopify_service: AsyncMock,
    step_service: AsyncMock,
) -> InventoryService:
    """Create InventoryService with mocked dependencies."""
    with patch("src.services.inventory_service.get_supabase_client", return_value=table_client):
        return InventoryService(order_service, shopify_service, step_service)


def _product_updates(table_client: MagicMock) -> list[tuple[dict, str]]:
    """Collect (payload, product_id) for each products update."""
    products = table_client.tables["products"]
    payloads = [c[0][0] for c in products.update.call_args_list]
    ids = [c[0][1] for c in products.update.return_value.eq.call_args_list]
    return list(zip(payloads, ids))


class TestTracksInventory:
    """Tests for tracks_inventory."""

    def test_stocked_product(self) -> None:
        assert tracks_inventory(shopify_product()) is True

    def test_print_on_demand_and_digital_products_are_not_stocked(self) -> None:
        assert tracks_inventory(printify_product()) is False
        assert tracks_inventory(digital_product()) is False


class TestUpdateInventoryAfterOrder:
    """Tests for update_inventory_after_order."""

    @pytest.mark.asyncio
    async def test_decrements_stocked_items_and_mirrors_to_shopify(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        shopify_service: AsyncMock,
        step_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test local decrement, Shopify mirror and step marker."""
        order_service.require_order_with_items.return_value = make_order(
            [make_item(shopify_product(inventory=10), quantity=3)]
        )

        await inventory_service.update_inventory_after_order("order-1")

        assert _product_updates(table_client) == [({"inventory": 7}, "p-shopify")]
        shopify_service.update_inventory_level.assert_awaited_once_with("9001", 7)
        step_service.mark_step_completed.assert_awaited_once_with(
            "order-1", FulfillmentStep.INVENTORY_UPDATE, {"inventory": {"p-shopify": 7}}
        )

    @pytest.mark.asyncio
    async def test_inventory_never_goes_negative(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        shopify_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test that ordering more than is in stock clamps at zero."""
        order_service.require_order_with_items.return_value = make_order(
            [make_item(shopify_product(inventory=2), quantity=5)]
        )

        await inventory_service.update_inventory_after_order("order-1")

        assert _product_updates(table_client) == [({"inventory": 0}, "p-shopify")]
        shopify_service.update_inventory_level.assert_awaited_once_with("9001", 0)

    @pytest.mark.asyncio
    async def test_print_on_demand_and_digital_items_are_skipped(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        shopify_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        order_service.require_order_with_items.return_value = make_order(
            [
                make_item(printify_product(), quantity=2),
                make_item(digital_product(), quantity=1),
            ]
        )

        await inventory_service.update_inventory_after_order("order-1")

        table_client.tables["products"].update.assert_not_called()
        shopify_service.update_inventory_level.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_local_only_product_is_not_sent_to_shopify(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        shopify_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test that products without a Shopify inventory item are only updated locally."""
        order_service.require_order_with_items.return_value = make_order(
            [make_item(shopify_product(shopify_inventory_item_id=None, inventory=4), quantity=1)]
        )

        await inventory_service.update_inventory_after_order("order-1")

        assert _product_updates(table_client) == [({"inventory": 3}, "p-shopify")]
        shopify_service.update_inventory_level.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_shopify_failure_does_not_fail_update(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        shopify_service: AsyncMock,
        step_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test that the local write stands when the Shopify mirror fails."""
        order_service.require_order_with_items.return_value = make_order(
            [make_item(shopify_product(inventory=10), quantity=1)]
        )
        shopify_service.update_inventory_level.side_effect = VendorAPIError("shopify", "boom", 500)

        await inventory_service.update_inventory_after_order("order-1")

        assert _product_updates(table_client) == [({"inventory": 9}, "p-shopify")]
        step_service.mark_step_completed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_database_failure_propagates(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        step_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test that a failed local write fails the step and reopens it."""
        order_service.require_order_with_items.return_value = make_order(
            [make_item(shopify_product(), quantity=1)]
        )
        table_client.tables["products"].update.return_value.eq.return_value.execute.side_effect = Exception(
            "db down"
        )

        with pytest.raises(Exception, match="db down"):
            await inventory_service.update_inventory_after_order("order-1")

        step_service.mark_step_completed.assert_awaited_once_with(
            "order-1", FulfillmentStep.INVENTORY_UPDATE, {"inventory": {"p-shopify": 99}}
        )
        step_service.clear_step.assert_awaited_once_with("order-1", FulfillmentStep.INVENTORY_UPDATE)

    @pytest.mark.asyncio
    async def test_already_updated_order_is_skipped(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        step_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test that inventory is only decremented once per order."""
        order_service.require_order_with_items.return_value = make_order(
            [make_item(shopify_product(), quantity=1)]
        )
        step_service.is_step_completed.return_value = True

        await inventory_service.update_inventory_after_order("order-1")

        table_client.tables["products"].update.assert_not_called()
        step_service.mark_step_completed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_order_raises(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
    ) -> None:
        order_service.require_order_with_items.side_effect = OrderNotFoundError("order-x")

        with pytest.raises(OrderNotFoundError, match="Order order-x not found"):
            await inventory_service.update_inventory_after_order("order-x")

    @pytest.mark.asyncio
    async def test_marker_failure_leaves_stock_untouched(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        shopify_service: AsyncMock,
        step_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test that a failed marker write happens before any decrement, so a retry decrements once."""
        order_service.require_order_with_items.return_value = make_order(
            [make_item(shopify_product(inventory=10), quantity=3)]
        )
        step_service.mark_step_completed.side_effect = [Exception("marker write failed"), None]

        with pytest.raises(Exception, match="marker write failed"):
            await inventory_service.update_inventory_after_order("order-1")

        table_client.tables["products"].update.assert_not_called()
        shopify_service.update_inventory_level.assert_not_awaited()

        await inventory_service.update_inventory_after_order("order-1")

        assert _product_updates(table_client) == [({"inventory": 7}, "p-shopify")]
        shopify_service.update_inventory_level.assert_awaited_once_with("9001", 7)

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_marker_for_written_products(
        self,
        inventory_service: InventoryService,
        order_service: AsyncMock,
        step_service: AsyncMock,
        table_client: MagicMock,
    ) -> None:
        """Test that products already decremented are never decremented again."""
        order_service.require_order_with_items.return_value = make_order(
            [
                make_item(shopify_product(inventory=10), quantity=1),
                make_item(make_product(id="p-local", inventory=5), quantity=2),
            ]
        )
        table_client.tables["products"].update.return_value.eq.return_value.execute.side_effect = [
            MagicMock(),
            Exception("db down"),
        ]

        with pytest.raises(Exception, match="db down"):
            await inventory_service.update_inventory_after_order("order-1")

        assert step_service.mark_step_completed.await_args_list[-1].args == (
            "order-1",
            FulfillmentStep.INVENTORY_UPDATE,
            {"inventory": {"p-shopify": 9}, "not_applied": ["p-local"]},
        )
        step_service.clear_step.assert_not_awaited()
