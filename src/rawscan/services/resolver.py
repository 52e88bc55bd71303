"""Product resolution across cache, catalogs and barcode variants."""

import asyncio
import logging
import math
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from rawscan.domain.errors import ErrorKind
from rawscan.domain.products import Product, ProductLookup, ProductSearch
from rawscan.services.barcodes import NormalizedBarcode, normalize_barcode
from rawscan.services.cache import ResolutionCache
from rawscan.services.providers import (
    CuratedCatalogProvider,
    FetchResult,
    ProviderAdapter,
    SearchableProvider,
    SearchPage,
)
from rawscan.services.rate_limiter import SlidingWindowRateLimiter

DEFAULT_SEARCH_LIMIT = 10

logger = logging.getLogger(__name__)


class ResolutionState(StrEnum):
    START = "start"
    CACHE_LOOKUP = "cache_lookup"
    CACHE_HIT = "cache_hit"
    PROVIDER_LOOP = "provider_loop"
    ALT_BARCODE_LOOP = "alt_barcode_loop"
    LOCAL_FALLBACK = "local_fallback"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    ERROR = "error"


TERMINAL_STATES = frozenset(
    {
        ResolutionState.CACHE_HIT,
        ResolutionState.RESOLVED,
        ResolutionState.NOT_FOUND,
        ResolutionState.ERROR,
    }
)


@dataclass(frozen=True)
class Resolution:
    """Terminal state of one resolution run."""

    state: ResolutionState
    product: Product | None = None
    error: str | None = None

    def to_lookup(self) -> ProductLookup:
        if self.state is ResolutionState.ERROR:
            return ProductLookup.failed(self.error or "Product resolution failed")
        if self.product is None:
            return ProductLookup.missing()
        return ProductLookup.found(
            self.product, from_cache=self.state is ResolutionState.CACHE_HIT
        )


@dataclass
class ProductResolver:
    """Resolves scanned codes to products.

    ``providers`` are consulted in priority order, one attempt per provider per
    candidate barcode, each gated by the rate limiter. A provider that turns out
    unreachable or throttled is skipped for the rest of the request. Hits are
    cached under the canonical barcode.
    """

    providers: Sequence[ProviderAdapter]
    cache: ResolutionCache
    rate_limiter: SlidingWindowRateLimiter
    local_fallback: CuratedCatalogProvider | None = None
    search_providers: Sequence[SearchableProvider] = ()
    timeout_seconds: float = 12.0
    debug: bool = False

    async def resolve_product(self, raw_barcode: str) -> ProductLookup:
        """Resolve a scanned code into a product, a not-found or an error."""
        resolution = await self.resolve(raw_barcode)
        return resolution.to_lookup()

    async def resolve(self, raw_barcode: str) -> Resolution:
        """Run the resolution state machine to a terminal state."""
        try:
            return await self._run(normalize_barcode(raw_barcode))
        except Exception as exc:
            logger.exception("Failed to resolve barcode %r", raw_barcode)
            return Resolution(
                ResolutionState.ERROR,
                error=f"Failed to resolve product ({ErrorKind.INTERNAL}): {exc}",
            )

    async def _run(self, barcode: NormalizedBarcode) -> Resolution:
        state = ResolutionState.START
        product: Product | None = None
        unavailable: set[str] = set()
        while state not in TERMINAL_STATES:
            self._trace(barcode, state)
            match state:
                case ResolutionState.START:
                    state = (
                        ResolutionState.NOT_FOUND
                        if barcode.is_empty
                        else ResolutionState.CACHE_LOOKUP
                    )
                case ResolutionState.CACHE_LOOKUP:
                    self.cache.sweep()
                    product = self.cache.get(barcode.canonical)
                    if product is not None:
                        product = product.with_barcode(barcode.raw)
                        state = ResolutionState.CACHE_HIT
                    else:
                        state = ResolutionState.PROVIDER_LOOP
                case ResolutionState.PROVIDER_LOOP:
                    product = await self._first_hit(barcode.canonical, unavailable)
                    state = (
                        ResolutionState.RESOLVED
                        if product is not None
                        else ResolutionState.ALT_BARCODE_LOOP
                    )
                case ResolutionState.ALT_BARCODE_LOOP:
                    for alternate in barcode.alternates:
                        product = await self._first_hit(alternate, unavailable)
                        if product is not None:
                            product = product.with_barcode(barcode.raw)
                            break
                    state = (
                        ResolutionState.RESOLVED
                        if product is not None
                        else ResolutionState.LOCAL_FALLBACK
                    )
                case ResolutionState.LOCAL_FALLBACK:
                    product = await self._fallback(barcode)
                    state = (
                        ResolutionState.RESOLVED
                        if product is not None
                        else ResolutionState.NOT_FOUND
                    )

        self._trace(barcode, state)
        if state is ResolutionState.RESOLVED and product is not None:
            self.cache.put(barcode.canonical, product)
            logger.info("Resolved %s from %s", barcode.canonical, product.source)
        return Resolution(state, product=product)

    async def _first_hit(
        self, candidate: str, unavailable: set[str]
    ) -> Product | None:
        for provider in self.providers:
            if provider.name in unavailable:
                continue
            if not self.rate_limiter.try_acquire(provider.name):
                logger.info("Rate limit reached for %s; skipping", provider.name)
                continue
            result = await self._fetch(provider, candidate)
            if result.found and result.product is not None:
                return result.product
            if result.error in (ErrorKind.UNREACHABLE, ErrorKind.RATE_LIMITED):
                unavailable.add(provider.name)
                logger.warning(
                    "Provider %s unavailable for %s: %s",
                    provider.name,
                    candidate,
                    result.error,
                )
        return None

    async def _fallback(self, barcode: NormalizedBarcode) -> Product | None:
        if self.local_fallback is None:
            return None
        result = await self._bounded(
            self.local_fallback.fetch_any(barcode.lookup_variants()),
            self.local_fallback.name,
        )
        if not result.found or result.product is None:
            return None
        return result.product.with_barcode(barcode.raw)

    async def _fetch(self, provider: ProviderAdapter, candidate: str) -> FetchResult:
        return await self._bounded(provider.fetch(candidate), provider.name)

    async def _bounded(
        self, call: Awaitable[FetchResult], provider_name: str
    ) -> FetchResult:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except TimeoutError:
            logger.warning(
                "Provider %s timed out after %.1fs", provider_name, self.timeout_seconds
            )
            return FetchResult.miss(ErrorKind.UNREACHABLE)

    async def search_products(
        self, query: str, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> ProductSearch:
        """Free-text search; the first provider fills half the slots."""
        query = (query or "").strip()
        if not query or limit <= 0:
            return ProductSearch(ok=True)
        try:
            return await self._search(query, limit)
        except Exception as exc:
            logger.exception("Product search failed for %r", query)
            return ProductSearch(ok=False, error=f"Product search failed: {exc}")

    async def _search(self, query: str, limit: int) -> ProductSearch:
        collected: list[Product] = []
        total = 0
        failures: list[str] = []
        for index, provider in enumerate(self.search_providers):
            slots = math.ceil(limit / 2) if index == 0 else limit - len(collected)
            if slots <= 0:
                break
            key = f"{provider.name}-search"
            if not self.rate_limiter.try_acquire(key):
                logger.info("Rate limit reached for %s; skipping", key)
                failures.append(f"{provider.name}: {ErrorKind.RATE_LIMITED}")
                continue
            page = await self._bounded_search(provider, query, slots)
            if page.error is not None:
                failures.append(f"{provider.name}: {page.error}")
                continue
            earlier = [product.name.lower() for product in collected]
            for product in page.products[:slots]:
                if index > 0 and _overlaps(product.name.lower(), earlier):
                    continue
                collected.append(product)
            total += page.total_count

        if not collected and failures and len(failures) == len(self.search_providers):
            return ProductSearch(ok=False, error="; ".join(failures))
        return ProductSearch(
            ok=True, products=tuple(collected[:limit]), total_count=total
        )

    async def _bounded_search(
        self, provider: SearchableProvider, query: str, limit: int
    ) -> SearchPage:
        try:
            return await asyncio.wait_for(
                provider.search(query, limit), timeout=self.timeout_seconds
            )
        except TimeoutError:
            logger.warning("Provider %s search timed out", provider.name)
            return SearchPage(error=ErrorKind.UNREACHABLE)

    def _trace(self, barcode: NormalizedBarcode, state: ResolutionState) -> None:
        if self.debug:
            logger.debug("Resolution %s -> %s", barcode.canonical, state)


def _overlaps(name: str, earlier: Sequence[str]) -> bool:
    return any(name in other or other in name for other in earlier)
