"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from rawscan.api.admin import router as admin_router
from rawscan.api.schemas import (
    LookupResponse,
    ProductPayload,
    ScoreRequest,
    SearchResponse,
)
from rawscan.app_logging import configure_logging
from rawscan.containers import AppContainer
from rawscan.domain.profiles import UserProfile

RETRY_MESSAGE = "Product lookup failed. Please try again in a moment."


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(logging.DEBUG if container.settings.debug else logging.INFO)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/products/search")
    async def search_products(
        request: Request,
        q: str = Query(default=""),
        limit: int = Query(default=10, ge=1, le=50),
    ) -> dict[str, object]:
        """Free-text search across the remote catalogs."""
        state_container: AppContainer = request.app.state.container
        search = await state_container.resolver.search_products(q, limit)
        return SearchResponse.from_search(search).model_dump(mode="json")

    @app.get("/products/{barcode}")
    async def get_product(barcode: str, request: Request) -> JSONResponse:
        """Resolve a scanned barcode."""
        state_container: AppContainer = request.app.state.container
        lookup = await state_container.resolver.resolve_product(barcode)
        payload = LookupResponse.from_lookup(lookup)
        if not lookup.ok:
            logger.error("Lookup for %s failed: %s", barcode, lookup.error)
            payload.error = RETRY_MESSAGE
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=payload.model_dump(mode="json"),
            )
        return JSONResponse(content=payload.model_dump(mode="json"))

    @app.post("/products/{barcode}/score")
    async def score_barcode(
        barcode: str, profile: UserProfile, request: Request
    ) -> dict[str, object]:
        """Resolve a barcode and score it for the supplied profile."""
        state_container: AppContainer = request.app.state.container
        lookup = await state_container.resolver.resolve_product(barcode)
        if not lookup.ok:
            logger.error("Lookup for %s failed: %s", barcode, lookup.error)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=RETRY_MESSAGE,
            )
        if lookup.product is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Product {barcode} is not in any catalog",
            )
        result = state_container.scoring_engine.score_product(lookup.product, profile)
        return {
            "product": ProductPayload.from_product(lookup.product).model_dump(
                mode="json"
            ),
            "from_cache": lookup.from_cache,
            "score": result.as_dict(),
        }

    @app.post("/score")
    async def score_product(body: ScoreRequest, request: Request) -> dict[str, object]:
        """Score a caller-supplied product."""
        state_container: AppContainer = request.app.state.container
        result = state_container.scoring_engine.score_product(
            body.product.to_product(), body.profile
        )
        return result.as_dict()

    return app
