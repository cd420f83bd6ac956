"""Unit tests for ShopifyService and the Shopify client factory."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.shopify import get_shopify_client
from src.services.order_service import OrderNotFoundError
from src.services.shopify_service import ShopifyService
from tests.factories import digital_product, make_item, make_order, printify_product, shopify_product


@pytest.fixture
def mock_settings() -> MagicMock:
    """Create mock settings."""
    settings = MagicMock()
    settings.shopify_location_id = "55555"
    return settings


@pytest.fixture
def order_service() -> AsyncMock:
    """Create a mock OrderService."""
    return AsyncMock()


@pytest.fixture
def shopify_service(mock_settings: MagicMock, order_service: AsyncMock) -> ShopifyService:
    """Create ShopifyService with a mocked API client."""
    with patch("src.services.shopify_service.get_settings", return_value=mock_settings):
        service = ShopifyService(order_service)
    service._api = AsyncMock()
    return service


class TestCreateOrderFromLocal:
    """Tests for create_order_from_local."""

    @pytest.mark.asyncio
    async def test_posts_only_shopify_items(
        self,
        shopify_service: ShopifyService,
        order_service: AsyncMock,
    ) -> None:
        order_service.require_order_with_items.return_value = make_order(
            [
                make_item(shopify_product(), quantity=2, unit_price=25.0),
                make_item(printify_product()),
                make_item(digital_product()),
            ]
        )
        shopify_service.api.post.return_value = {"order": {"id": 5550001, "order_number": 1001}}

        shopify_order = await shopify_service.create_order_from_local("order-1")

        assert shopify_order == {"id": 5550001, "order_number": 1001}
        path = shopify_service.api.post.call_args[0][0]
        payload = shopify_service.api.post.call_args[1]["json"]["order"]
        assert path == "/orders.json"
        assert payload["email"] == "member@namc.org"
        assert payload["financial_status"] == "paid"
        assert payload["send_receipt"] is False
        assert payload["line_items"] == [{"variant_id": 8001, "quantity": 2, "price": "25.0"}]

    @pytest.mark.asyncio
    async def test_unpaid_order_is_pending(
        self,
        shopify_service: ShopifyService,
        order_service: AsyncMock,
    ) -> None:
        order_service.require_order_with_items.return_value = make_order(
            [make_item(shopify_product())], payment_status="PENDING"
        )
        shopify_service.api.post.return_value = {"order": {"id": 1}}

        await shopify_service.create_order_from_local("order-1")

        payload = shopify_service.api.post.call_args[1]["json"]["order"]
        assert payload["financial_status"] == "pending"

    @pytest.mark.asyncio
    async def test_order_without_shopify_items_raises(
        self,
        shopify_service: ShopifyService,
        order_service: AsyncMock,
    ) -> None:
        order_service.require_order_with_items.return_value = make_order([make_item(printify_product())])

        with pytest.raises(ValueError, match="No Shopify products found in order order-1"):
            await shopify_service.create_order_from_local("order-1")

        shopify_service.api.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_order_raises(
        self,
        shopify_service: ShopifyService,
        order_service: AsyncMock,
    ) -> None:
        order_service.require_order_with_items.side_effect = OrderNotFoundError("order-x")

        with pytest.raises(OrderNotFoundError):
            await shopify_service.create_order_from_local("order-x")


class TestInventoryAndLookup:
    """Tests for inventory levels and order lookups."""

    @pytest.mark.asyncio
    async def test_update_inventory_level(self, shopify_service: ShopifyService) -> None:
        shopify_service.api.post.return_value = {"inventory_level": {"available": 7}}

        level = await shopify_service.update_inventory_level("9001", 7)

        assert level == {"available": 7}
        shopify_service.api.post.assert_awaited_once_with(
            "/inventory_levels/set.json",
            json={"location_id": 55555, "inventory_item_id": 9001, "available": 7},
            idempotent=True,
        )

    @pytest.mark.asyncio
    async def test_get_order(self, shopify_service: ShopifyService) -> None:
        shopify_service.api.get.return_value = {"order": {"id": 5550001}}

        order = await shopify_service.get_order("5550001")

        assert order == {"id": 5550001}
        shopify_service.api.get.assert_awaited_once_with("/orders/5550001.json")


class TestGetShopifyClient:
    """Tests for the Shopify client factory."""

    def test_unconfigured_store_raises(self) -> None:
        settings = MagicMock()
        settings.shopify_configured = False

        get_shopify_client.cache_clear()
        with patch("src.core.shopify.get_settings", return_value=settings):
            with pytest.raises(ValueError, match="Shopify is not configured"):
                get_shopify_client()
        get_shopify_client.cache_clear()

    def test_client_targets_admin_api(self) -> None:
        settings = MagicMock()
        settings.shopify_configured = True
        settings.shopify_store_domain = "namc.myshopify.com"
        settings.shopify_api_version = "2023-10"
        settings.shopify_access_token = "shpat_test"
        settings.vendor_timeout_seconds = 30.0
        settings.vendor_max_retries = 3

        get_shopify_client.cache_clear()
        with patch("src.core.shopify.get_settings", return_value=settings):
            client = get_shopify_client()
        get_shopify_client.cache_clear()

        assert client.vendor == "shopify"
        assert client.base_url == "https://namc.myshopify.com/admin/api/2023-10"
        assert client.headers["X-Shopify-Access-Token"] == "shpat_test"
