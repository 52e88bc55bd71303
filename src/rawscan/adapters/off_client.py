"""Open Food Facts API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

_PRODUCT_FIELDS = ",".join(
    [
        "code",
        "product_name",
        "product_name_en",
        "brands",
        "image_front_small_url",
        "image_front_url",
        "image_url",
        "categories",
        "categories_tags",
        "ingredients_text",
        "ingredients_text_en",
        "allergens",
        "allergens_tags",
        "serving_size",
        "serving_quantity",
        "nutriments",
    ]
)


class OpenFoodFactsClient(Protocol):
    """Interface for Open Food Facts API interactions."""

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode and return raw API data."""

    async def search_products(
        self, query: str, page_size: int = 10
    ) -> dict[str, object]:
        """Search products by free text and return raw API data."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 15.0

    @classmethod
    def create(
        cls, base_url: str, user_agent: str, timeout: float = 15.0
    ) -> "HttpxOpenFoodFactsClient":
        """Create a client; Open Food Facts asks callers to identify themselves."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(
                headers={"User-Agent": user_agent, "Accept": "application/json"}
            ),
            timeout=timeout,
        )

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode."""
        url = f"{self.base_url}/api/v2/product/{barcode}.json"
        response = await self.http_client.get(
            url, params={"fields": _PRODUCT_FIELDS}, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    async def search_products(
        self, query: str, page_size: int = 10
    ) -> dict[str, object]:
        """Full-text product search."""
        url = f"{self.base_url}/cgi/search.pl"
        response = await self.http_client.get(
            url,
            params={
                "search_terms": query,
                "page_size": page_size,
                "json": 1,
                "fields": _PRODUCT_FIELDS,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
