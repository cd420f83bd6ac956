"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="namc-shop-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")

    # Shopify
    shopify_store_domain: str = Field(default="", description="Shopify store domain (e.g. namc.myshopify.com)")
    shopify_access_token: str = Field(default="", description="Shopify Admin API access token")
    shopify_api_version: str = Field(default="2023-10", description="Shopify Admin API version")
    shopify_location_id: str = Field(default="", description="Shopify location used for inventory levels")

    # Printify
    printify_api_token: str = Field(default="", description="Printify API token")
    printify_shop_id: str = Field(default="", description="Printify shop ID")
    printify_shipping_method: int = Field(default=1, description="Printify shipping method for new orders")

    # Vendor HTTP
    vendor_timeout_seconds: float = Field(default=30.0, description="Timeout for vendor API requests")
    vendor_max_retries: int = Field(default=3, ge=1, description="Attempts per vendor request on transient errors")

    # Fulfillment
    fulfillment_parallel_vendor_calls: bool = Field(
        default=True,
        description="Create Shopify and Printify orders concurrently",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def shopify_configured(self) -> bool:
        """Check if Shopify credentials are present."""
        return bool(self.shopify_store_domain and self.shopify_access_token)

    @property
    def printify_configured(self) -> bool:
        """Check if Printify credentials are present."""
        return bool(self.printify_api_token and self.printify_shop_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
