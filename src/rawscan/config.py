"""Application configuration."""

import os
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class RateLimit(BaseModel):
    """Sliding-window quota for a single provider key."""

    window_seconds: float = Field(default=60.0, gt=0)
    max_requests: int = Field(default=60, ge=0)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    environment: str = _ENVIRONMENT
    admin_token: str | None = None
    debug: bool = False

    fdc_api_key: str = "DEMO_KEY"
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "RawScan/1.0 (nutrition-app)"

    rate_limit_window_seconds: float = 60.0
    rate_limit_max_requests: int = 60
    provider_rate_limits: dict[str, RateLimit] = Field(default_factory=dict)
    cache_ttl_seconds: int = 60 * 60 * 48
    default_serving_g: float = 30.0
    provider_timeout_seconds: float = 12.0

    curated_catalog_backend: Literal["bundled", "supabase"] = "bundled"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    curated_products_table: str = "curated_products"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_rate_limits(settings: Settings) -> tuple[RateLimit, dict[str, RateLimit]]:
    """Return the default quota and the per-provider overrides."""
    default = RateLimit(
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
    )
    overrides = {
        key.strip(): limit
        for key, limit in settings.provider_rate_limits.items()
        if key.strip()
    }
    return default, overrides
