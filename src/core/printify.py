"""Printify API client configuration and singleton."""

import logging
from functools import lru_cache

from src.core.config import get_settings
from src.core.vendor_http import VendorHTTPClient

logger = logging.getLogger(__name__)

PRINTIFY_BASE_URL = "https://api.printify.com/v1"


@lru_cache
def get_printify_client() -> VendorHTTPClient:
    """Get cached Printify API client.

    Returns:
        VendorHTTPClient: Client authenticated with the Printify API token.

    Raises:
        ValueError: If Printify credentials are not configured.
    """
    settings = get_settings()
    if not settings.printify_configured:
        raise ValueError(
            "Printify is not configured. Please set PRINTIFY_API_TOKEN and PRINTIFY_SHOP_ID environment variables."
        )

    logger.info("Printify client configured for shop %s", settings.printify_shop_id)
    return VendorHTTPClient(
        vendor="printify",
        base_url=PRINTIFY_BASE_URL,
        headers={"Authorization": f"Bearer {settings.printify_api_token}"},
        timeout=settings.vendor_timeout_seconds,
        max_retries=settings.vendor_max_retries,
    )
