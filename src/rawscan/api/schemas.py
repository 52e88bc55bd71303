"""Pydantic models for the HTTP API payloads."""

from pydantic import BaseModel, Field, field_validator

from rawscan.domain.products import (
    Nutriments,
    NutritionBasis,
    Product,
    ProductLookup,
    ProductSearch,
    ProductSource,
    ServingSize,
)
from rawscan.domain.profiles import UserProfile


class ServingSizePayload(BaseModel):
    """Labeled serving payload."""

    amount: float = Field(gt=0)
    unit: str = "g"
    weight_grams: float | None = Field(default=None, gt=0)


class ProductPayload(BaseModel):
    """Product payload; ``nutriments`` holds only the reported amounts."""

    barcode: str = Field(min_length=1)
    name: str = Field(min_length=1)
    source: ProductSource = ProductSource.LOCAL
    nutriments: dict[str, float] = Field(default_factory=dict)
    nutrition_basis: NutritionBasis = NutritionBasis.PER_100G
    brand: str | None = None
    categories: list[str] = Field(default_factory=list)
    ingredients_text: str | None = None
    allergens: list[str] = Field(default_factory=list)
    serving_size: ServingSizePayload | None = None
    image_url: str | None = None

    @field_validator("nutriments")
    @classmethod
    def _known_non_negative(cls, value: dict[str, float]) -> dict[str, float]:
        known = set(Nutriments.names())
        unknown = sorted(set(value) - known)
        if unknown:
            raise ValueError(f"unknown nutrients: {', '.join(unknown)}")
        negative = sorted(name for name, amount in value.items() if amount < 0)
        if negative:
            raise ValueError(f"negative nutrient amounts: {', '.join(negative)}")
        return value

    def to_product(self) -> Product:
        serving = self.serving_size
        return Product(
            barcode=self.barcode,
            name=self.name,
            source=self.source,
            nutriments=Nutriments(**self.nutriments),
            nutrition_basis=self.nutrition_basis,
            brand=self.brand,
            categories=tuple(self.categories),
            ingredients_text=self.ingredients_text,
            allergens=tuple(self.allergens),
            serving_size=(
                ServingSize(serving.amount, serving.unit, serving.weight_grams)
                if serving
                else None
            ),
            image_url=self.image_url,
        )

    @classmethod
    def from_product(cls, product: Product) -> "ProductPayload":
        serving = product.serving_size
        return cls(
            barcode=product.barcode,
            name=product.name,
            source=product.source,
            nutriments=product.nutriments.as_dict(),
            nutrition_basis=product.nutrition_basis,
            brand=product.brand,
            categories=list(product.categories),
            ingredients_text=product.ingredients_text,
            allergens=list(product.allergens),
            serving_size=(
                ServingSizePayload(
                    amount=serving.amount,
                    unit=serving.unit,
                    weight_grams=serving.weight_grams,
                )
                if serving
                else None
            ),
            image_url=product.image_url,
        )


class ScoreRequest(BaseModel):
    """Score a caller-supplied product."""

    product: ProductPayload
    profile: UserProfile = Field(default_factory=UserProfile)


class LookupResponse(BaseModel):
    ok: bool
    product: ProductPayload | None = None
    not_found: bool = False
    error: str | None = None
    from_cache: bool = False

    @classmethod
    def from_lookup(cls, lookup: ProductLookup) -> "LookupResponse":
        return cls(
            ok=lookup.ok,
            product=ProductPayload.from_product(lookup.product) if lookup.product else None,
            not_found=lookup.not_found,
            error=lookup.error,
            from_cache=lookup.from_cache,
        )


class SearchResponse(BaseModel):
    ok: bool
    products: list[ProductPayload] = Field(default_factory=list)
    total_count: int = 0
    error: str | None = None

    @classmethod
    def from_search(cls, search: ProductSearch) -> "SearchResponse":
        return cls(
            ok=search.ok,
            products=[ProductPayload.from_product(p) for p in search.products],
            total_count=search.total_count,
            error=search.error,
        )
