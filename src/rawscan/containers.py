"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from rawscan.adapters.bundled_catalog import BundledCuratedCatalog
from rawscan.adapters.fdc_client import HttpxFdcClient
from rawscan.adapters.off_client import HttpxOpenFoodFactsClient
from rawscan.adapters.supabase_curated_catalog import SupabaseCuratedCatalog
from rawscan.config import Settings, parse_rate_limits
from rawscan.services.cache import ResolutionCache
from rawscan.services.nutrients import NutrientNormalizer
from rawscan.services.providers import (
    CuratedCatalog,
    CuratedCatalogProvider,
    OpenFoodFactsProvider,
    UsdaProvider,
)
from rawscan.services.rate_limiter import SlidingWindowRateLimiter
from rawscan.services.resolver import ProductResolver
from rawscan.services.scoring import ScoringEngine


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    resolver: ProductResolver
    scoring_engine: ScoringEngine
    close_resources: Callable[[], Awaitable[None]]


def build_curated_catalog(settings: Settings) -> CuratedCatalog:
    """Return the curated dataset backend selected by configuration."""
    if settings.curated_catalog_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the "
                "supabase curated catalog"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseCuratedCatalog(client, table=settings.curated_products_table)
    return BundledCuratedCatalog.default()


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    default_limit, overrides = parse_rate_limits(resolved_settings)
    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
        timeout=resolved_settings.provider_timeout_seconds,
    )
    off_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
        timeout=resolved_settings.provider_timeout_seconds,
    )
    local_provider = CuratedCatalogProvider(build_curated_catalog(resolved_settings))
    usda_provider = UsdaProvider(fdc_client)
    off_provider = OpenFoodFactsProvider(off_client)
    resolver = ProductResolver(
        providers=(local_provider, usda_provider, off_provider),
        cache=ResolutionCache(ttl_seconds=resolved_settings.cache_ttl_seconds),
        rate_limiter=SlidingWindowRateLimiter(
            default_limit=default_limit, overrides=overrides
        ),
        local_fallback=local_provider,
        search_providers=(usda_provider, off_provider),
        timeout_seconds=resolved_settings.provider_timeout_seconds,
        debug=resolved_settings.debug,
    )
    scoring_engine = ScoringEngine(
        NutrientNormalizer(default_serving_g=resolved_settings.default_serving_g)
    )

    async def close_resources() -> None:
        await fdc_client.close()
        await off_client.close()

    return AppContainer(
        settings=resolved_settings,
        resolver=resolver,
        scoring_engine=scoring_engine,
        close_resources=close_resources,
    )
