"""Tests for container wiring."""

import asyncio

import pytest

from rawscan.adapters.bundled_catalog import BundledCuratedCatalog
from rawscan.adapters.supabase_curated_catalog import SupabaseCuratedCatalog
from rawscan.config import RateLimit, Settings
from rawscan.containers import build_container, build_curated_catalog


def test_build_container_wires_providers_in_priority_order(settings) -> None:
    container = build_container(settings)

    resolver = container.resolver
    assert [provider.name for provider in resolver.providers] == ["local", "usda", "off"]
    assert [provider.name for provider in resolver.search_providers] == ["usda", "off"]
    assert resolver.local_fallback is resolver.providers[0]
    assert resolver.timeout_seconds == settings.provider_timeout_seconds
    assert container.scoring_engine.normalizer.default_serving_g == 30.0
    asyncio.run(container.close_resources())


def test_build_container_applies_rate_limit_overrides() -> None:
    settings = Settings(
        rate_limit_max_requests=5,
        provider_rate_limits={"usda": RateLimit(window_seconds=3600, max_requests=1000)},
    )

    container = build_container(settings)

    limiter = container.resolver.rate_limiter
    assert limiter.limit_for("off").max_requests == 5
    assert limiter.limit_for("usda").window_seconds == 3600
    asyncio.run(container.close_resources())


def test_bundled_catalog_is_the_default(settings) -> None:
    catalog = build_curated_catalog(settings)

    assert isinstance(catalog, BundledCuratedCatalog)
    assert len(catalog) == 16


def test_supabase_catalog_requires_credentials() -> None:
    settings = Settings(curated_catalog_backend="supabase", supabase_url=None)

    with pytest.raises(ValueError):
        build_curated_catalog(settings)


def test_supabase_catalog_uses_configured_table(monkeypatch) -> None:
    created: list[tuple[str, str]] = []

    def fake_create_client(url: str, key: str) -> object:
        created.append((url, key))
        return object()

    monkeypatch.setattr("rawscan.containers.create_client", fake_create_client)
    settings = Settings(
        curated_catalog_backend="supabase",
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        curated_products_table="products_v2",
    )

    catalog = build_curated_catalog(settings)

    assert isinstance(catalog, SupabaseCuratedCatalog)
    assert catalog.table == "products_v2"
    assert created == [("https://example.supabase.co", "service-key")]
