"""Shopify Admin API client configuration and singleton."""

import logging
from functools import lru_cache

from src.core.config import get_settings
from src.core.vendor_http import VendorHTTPClient

logger = logging.getLogger(__name__)


@lru_cache
def get_shopify_client() -> VendorHTTPClient:
    """Get cached Shopify Admin API client.

    Returns:
        VendorHTTPClient: Client bound to the store's Admin API base URL.

    Raises:
        ValueError: If Shopify credentials are not configured.
    """
    settings = get_settings()
    if not settings.shopify_configured:
        raise ValueError(
            "Shopify is not configured. Please set SHOPIFY_STORE_DOMAIN and SHOPIFY_ACCESS_TOKEN environment variables."
        )

    base_url = f"https://{settings.shopify_store_domain}/admin/api/{settings.shopify_api_version}"
    logger.info("Shopify client configured for %s", settings.shopify_store_domain)
    return VendorHTTPClient(
        vendor="shopify",
        base_url=base_url,
        headers={"X-Shopify-Access-Token": settings.shopify_access_token},
        timeout=settings.vendor_timeout_seconds,
        max_retries=settings.vendor_max_retries,
    )
