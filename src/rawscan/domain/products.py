"""Product domain models."""

from dataclasses import dataclass, field, fields, replace
from enum import StrEnum


class NutritionBasis(StrEnum):
    """Reporting basis of a product's nutrient amounts."""

    PER_SERVING = "per_serving"
    PER_100G = "per_100g"


class ProductSource(StrEnum):
    """Catalog that produced a product record."""

    LOCAL = "local"
    USDA = "usda"
    OFF = "off"


@dataclass(frozen=True)
class Nutriments:
    """Sparse nutrient amounts; ``None`` means not reported.

    Macronutrients are in grams, energy in kcal and sodium in milligrams.
    Micronutrients are in milligrams, except vitamins A, D, K, B12 and folate
    which are in micrograms.
    """

    energy_kcal: float | None = None
    carbohydrates: float | None = None
    sugars: float | None = None
    fiber: float | None = None
    protein: float | None = None
    fat: float | None = None
    saturated_fat: float | None = None
    sodium_mg: float | None = None
    salt: float | None = None
    vitamin_a: float | None = None
    vitamin_c: float | None = None
    vitamin_d: float | None = None
    vitamin_e: float | None = None
    vitamin_k: float | None = None
    thiamin: float | None = None
    riboflavin: float | None = None
    niacin: float | None = None
    vitamin_b6: float | None = None
    folate: float | None = None
    vitamin_b12: float | None = None
    calcium: float | None = None
    iron: float | None = None
    magnesium: float | None = None
    phosphorus: float | None = None
    potassium: float | None = None
    zinc: float | None = None

    @classmethod
    def names(cls) -> tuple[str, ...]:
        """Return every nutrient field name."""
        return tuple(item.name for item in fields(cls))

    def as_dict(self) -> dict[str, float]:
        """Return only the reported nutrients."""
        return {
            name: value
            for name in self.names()
            if (value := getattr(self, name)) is not None
        }

    def scaled(self, factor: float) -> "Nutriments":
        """Return a copy with every reported amount multiplied by ``factor``."""
        return replace(
            self, **{name: value * factor for name, value in self.as_dict().items()}
        )


@dataclass(frozen=True)
class ServingSize:
    """Labeled serving; ``weight_grams`` is the mass when it is known."""

    amount: float
    unit: str
    weight_grams: float | None = None


@dataclass(frozen=True)
class Product:
    """Canonical representation of a scannable good."""

    barcode: str
    name: str
    source: ProductSource
    nutriments: Nutriments = field(default_factory=Nutriments)
    nutrition_basis: NutritionBasis = NutritionBasis.PER_100G
    brand: str | None = None
    categories: tuple[str, ...] = ()
    ingredients_text: str | None = None
    allergens: tuple[str, ...] = ()
    serving_size: ServingSize | None = None
    image_url: str | None = None

    def with_barcode(self, barcode: str) -> "Product":
        """Return a copy attached to a different barcode."""
        return replace(self, barcode=barcode)


@dataclass(frozen=True)
class ProductLookup:
    """Result envelope for a single barcode resolution.

    Exactly one of ``product``, ``not_found`` or ``error`` carries the outcome.
    """

    ok: bool
    product: Product | None = None
    not_found: bool = False
    error: str | None = None
    from_cache: bool = False

    @classmethod
    def found(cls, product: Product, *, from_cache: bool = False) -> "ProductLookup":
        return cls(ok=True, product=product, from_cache=from_cache)

    @classmethod
    def missing(cls) -> "ProductLookup":
        return cls(ok=True, not_found=True)

    @classmethod
    def failed(cls, message: str) -> "ProductLookup":
        return cls(ok=False, error=message)


@dataclass(frozen=True)
class ProductSearch:
    """Result envelope for a free-text product search."""

    ok: bool
    products: tuple[Product, ...] = ()
    total_count: int = 0
    error: str | None = None
