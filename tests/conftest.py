"""Shared test fixtures."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from rawscan.adapters.bundled_catalog import BundledCuratedCatalog
from rawscan.adapters.fdc_client import FdcClient
from rawscan.adapters.off_client import OpenFoodFactsClient
from rawscan.config import RateLimit, Settings
from rawscan.containers import AppContainer
from rawscan.domain.errors import ErrorKind
from rawscan.domain.products import (
    Nutriments,
    NutritionBasis,
    Product,
    ProductSource,
    ServingSize,
)
from rawscan.services.cache import ResolutionCache
from rawscan.services.nutrients import NutrientNormalizer
from rawscan.services.providers import (
    CuratedCatalogProvider,
    FetchResult,
    ProviderAdapter,
    SearchableProvider,
    SearchPage,
)
from rawscan.services.rate_limiter import SlidingWindowRateLimiter
from rawscan.services.resolver import ProductResolver
from rawscan.services.scoring import ScoringEngine


def make_product(**overrides) -> Product:  # type: ignore[no-untyped-def]
    values: dict[str, object] = {
        "barcode": "0000000000017",
        "name": "Test Granola",
        "source": ProductSource.USDA,
        "nutriments": Nutriments(
            energy_kcal=450,
            carbohydrates=60,
            sugars=20,
            fiber=6,
            protein=10,
            fat=18,
            saturated_fat=3,
            sodium_mg=150,
        ),
        "nutrition_basis": NutritionBasis.PER_100G,
        "serving_size": ServingSize(amount=1, unit="cup", weight_grams=50),
        "ingredients_text": "Rolled oats, honey, almonds, sunflower oil.",
    }
    values.update(overrides)
    return Product(**values)  # type: ignore[arg-type]


@dataclass
class FakeProvider(ProviderAdapter):
    """Provider answering from in-memory maps and recording every call."""

    name: str
    products: dict[str, Product] = field(default_factory=dict)
    errors: dict[str, ErrorKind] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def fetch(self, barcode: str) -> FetchResult:
        self.calls.append(barcode)
        if barcode in self.errors:
            return FetchResult.miss(self.errors[barcode])
        product = self.products.get(barcode)
        if product is None:
            return FetchResult.miss()
        return FetchResult.hit(product)


@dataclass
class FakeSearchProvider(SearchableProvider):
    """Search provider returning fixed products."""

    name: str
    products: list[Product] = field(default_factory=list)
    error: ErrorKind | None = None
    calls: list[tuple[str, int]] = field(default_factory=list)

    async def search(self, query: str, limit: int) -> SearchPage:
        self.calls.append((query, limit))
        if self.error is not None:
            return SearchPage(error=self.error)
        return SearchPage(
            products=tuple(self.products[:limit]), total_count=len(self.products)
        )


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with a canned search payload."""

    payload: dict[str, object] = field(default_factory=lambda: {"foods": []})
    error: Exception | None = None
    calls: list[tuple[str, int, tuple[str, ...]]] = field(default_factory=list)

    async def search_foods(
        self,
        query: str,
        page_size: int = 25,
        data_types: Sequence[str] = ("Branded",),
    ) -> dict[str, object]:
        self.calls.append((query, page_size, tuple(data_types)))
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeOffClient(OpenFoodFactsClient):
    """Fake Open Food Facts client with canned payloads."""

    product_payload: dict[str, object] = field(
        default_factory=lambda: {"status": 0, "status_verbose": "product not found"}
    )
    search_payload: dict[str, object] = field(
        default_factory=lambda: {"count": 0, "products": []}
    )
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    async def get_product(self, barcode: str) -> dict[str, object]:
        self.calls.append(barcode)
        if self.error is not None:
            raise self.error
        return self.product_payload

    async def search_products(
        self, query: str, page_size: int = 10
    ) -> dict[str, object]:
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return self.search_payload


@dataclass
class ManualClock:
    """Monotonic clock advanced by hand."""

    now: float = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class ManualUtcClock:
    """Wall clock advanced by hand."""

    now: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        admin_token="admin-token",
        fdc_api_key="fdc-key",
        curated_catalog_backend="bundled",
    )


@pytest.fixture
def usda_provider() -> FakeProvider:
    return FakeProvider(name="usda")


@pytest.fixture
def off_provider() -> FakeProvider:
    return FakeProvider(name="off")


@pytest.fixture
def local_provider() -> CuratedCatalogProvider:
    return CuratedCatalogProvider(BundledCuratedCatalog.default())


@pytest.fixture
def resolver(
    local_provider: CuratedCatalogProvider,
    usda_provider: FakeProvider,
    off_provider: FakeProvider,
) -> ProductResolver:
    return ProductResolver(
        providers=(local_provider, usda_provider, off_provider),
        cache=ResolutionCache(),
        rate_limiter=SlidingWindowRateLimiter(
            default_limit=RateLimit(window_seconds=60, max_requests=100)
        ),
        local_fallback=local_provider,
        timeout_seconds=1.0,
    )


@pytest.fixture
def scoring_engine() -> ScoringEngine:
    return ScoringEngine(NutrientNormalizer())


@pytest.fixture
def container(
    settings: Settings, resolver: ProductResolver, scoring_engine: ScoringEngine
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        resolver=resolver,
        scoring_engine=scoring_engine,
        close_resources=close_resources,
    )
