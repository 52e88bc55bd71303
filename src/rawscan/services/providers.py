"""Provider adapters mapping catalog payloads to canonical products.

Adapters build one request per call, map a successful payload into a
:class:`Product` and classify failures. They never cache, retry or consult each
other; the resolver owns those concerns.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

import httpx

from rawscan.adapters.fdc_client import FdcClient
from rawscan.adapters.off_client import OpenFoodFactsClient
from rawscan.domain.errors import ErrorKind, MalformedPayloadError
from rawscan.domain.products import (
    Nutriments,
    NutritionBasis,
    Product,
    ProductSource,
    ServingSize,
)

SALT_PER_MG_SODIUM = 2.54 / 1000
KJ_PER_KCAL = 4.184
UNKNOWN_PRODUCT_NAME = "Unknown Product"

_GRAM_UNITS = {"g", "grm", "gram", "grams"}

_FDC_NUTRIENT_IDS = {
    1008: "energy_kcal",
    1005: "carbohydrates",
    2000: "sugars",
    1063: "sugars",
    1079: "fiber",
    1003: "protein",
    1004: "fat",
    1258: "saturated_fat",
    1093: "sodium_mg",
    1106: "vitamin_a",
    1162: "vitamin_c",
    1114: "vitamin_d",
    1109: "vitamin_e",
    1185: "vitamin_k",
    1165: "thiamin",
    1166: "riboflavin",
    1167: "niacin",
    1175: "vitamin_b6",
    1177: "folate",
    1178: "vitamin_b12",
    1087: "calcium",
    1089: "iron",
    1090: "magnesium",
    1091: "phosphorus",
    1092: "potassium",
    1095: "zinc",
}

# Open Food Facts reports every *_100g amount in grams.
_OFF_NUTRIENT_KEYS: dict[str, tuple[str, float]] = {
    "energy-kcal_100g": ("energy_kcal", 1.0),
    "carbohydrates_100g": ("carbohydrates", 1.0),
    "sugars_100g": ("sugars", 1.0),
    "fiber_100g": ("fiber", 1.0),
    "proteins_100g": ("protein", 1.0),
    "fat_100g": ("fat", 1.0),
    "saturated-fat_100g": ("saturated_fat", 1.0),
    "sodium_100g": ("sodium_mg", 1000.0),
    "salt_100g": ("salt", 1.0),
    "vitamin-a_100g": ("vitamin_a", 1e6),
    "vitamin-c_100g": ("vitamin_c", 1000.0),
    "vitamin-d_100g": ("vitamin_d", 1e6),
    "vitamin-e_100g": ("vitamin_e", 1000.0),
    "vitamin-k_100g": ("vitamin_k", 1e6),
    "vitamin-b1_100g": ("thiamin", 1000.0),
    "vitamin-b2_100g": ("riboflavin", 1000.0),
    "vitamin-pp_100g": ("niacin", 1000.0),
    "vitamin-b6_100g": ("vitamin_b6", 1000.0),
    "vitamin-b9_100g": ("folate", 1e6),
    "vitamin-b12_100g": ("vitamin_b12", 1e6),
    "calcium_100g": ("calcium", 1000.0),
    "iron_100g": ("iron", 1000.0),
    "magnesium_100g": ("magnesium", 1000.0),
    "phosphorus_100g": ("phosphorus", 1000.0),
    "potassium_100g": ("potassium", 1000.0),
    "zinc_100g": ("zinc", 1000.0),
}

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a single adapter call."""

    found: bool
    product: Product | None = None
    error: ErrorKind | None = None

    @classmethod
    def hit(cls, product: Product) -> "FetchResult":
        return cls(found=True, product=product)

    @classmethod
    def miss(cls, error: ErrorKind = ErrorKind.NOT_FOUND) -> "FetchResult":
        return cls(found=False, error=error)


@dataclass(frozen=True)
class SearchPage:
    """Products returned by one provider for a free-text query."""

    products: tuple[Product, ...] = ()
    total_count: int = 0
    error: ErrorKind | None = None


class ProviderAdapter(Protocol):
    """A catalog that can be asked for one barcode."""

    name: str

    async def fetch(self, barcode: str) -> FetchResult:
        """Look up a barcode and classify the outcome."""


class SearchableProvider(Protocol):
    """A catalog that supports free-text search."""

    name: str

    async def search(self, query: str, limit: int) -> SearchPage:
        """Return up to ``limit`` products matching ``query``."""


class CuratedCatalog(Protocol):
    """Keyed storage behind the curated local dataset."""

    async def lookup(self, keys: Sequence[str]) -> Mapping[str, object] | None:
        """Return the row stored under the first key that has one."""


@dataclass
class CuratedCatalogProvider(ProviderAdapter):
    """Adapter over the curated local dataset."""

    catalog: CuratedCatalog
    name: str = ProductSource.LOCAL.value

    async def fetch(self, barcode: str) -> FetchResult:
        """Exact-key lookup."""
        return await self.fetch_any([barcode])

    async def fetch_any(self, keys: Sequence[str]) -> FetchResult:
        """Look up several key shapes in one pass; first stored key wins."""
        try:
            row = await self.catalog.lookup(keys)
            if row is None:
                return FetchResult.miss()
            return FetchResult.hit(map_curated_row(row))
        except (httpx.HTTPError, ValueError) as exc:
            return _failure(self.name, ",".join(keys), exc)


@dataclass
class UsdaProvider(ProviderAdapter):
    """Adapter over USDA FoodData Central branded foods."""

    fdc_client: FdcClient
    name: str = ProductSource.USDA.value
    page_size: int = 25

    async def fetch(self, barcode: str) -> FetchResult:
        """Search by GTIN and accept only an exact GTIN/UPC match."""
        try:
            payload = await self.fdc_client.search_foods(
                barcode, page_size=self.page_size, data_types=("Branded",)
            )
            food = _match_gtin(_fdc_foods(payload), barcode)
            if food is None:
                return FetchResult.miss()
            return FetchResult.hit(map_fdc_food(food, barcode))
        except (httpx.HTTPError, ValueError) as exc:
            return _failure(self.name, barcode, exc)

    async def search(self, query: str, limit: int) -> SearchPage:
        """Search branded and foundation foods."""
        try:
            payload = await self.fdc_client.search_foods(
                query, page_size=limit, data_types=("Branded", "Foundation")
            )
            foods = _fdc_foods(payload)
        except (httpx.HTTPError, ValueError) as exc:
            return SearchPage(error=_search_failure(self.name, query, exc))
        products = []
        for food in foods[:limit]:
            barcode = str(food.get("gtinUpc") or f"usda-{food.get('fdcId')}")
            try:
                products.append(map_fdc_food(food, barcode))
            except MalformedPayloadError as exc:
                _logger.debug("Skipping malformed USDA food %s: %s", barcode, exc)
        total = payload.get("totalHits")
        return SearchPage(
            products=tuple(products),
            total_count=total if isinstance(total, int) else len(products),
        )


@dataclass
class OpenFoodFactsProvider(ProviderAdapter):
    """Adapter over the crowd-sourced Open Food Facts catalog."""

    client: OpenFoodFactsClient
    name: str = ProductSource.OFF.value

    async def fetch(self, barcode: str) -> FetchResult:
        try:
            payload = await self.client.get_product(barcode)
            product = map_off_payload(payload, barcode)
            if product is None:
                return FetchResult.miss()
            return FetchResult.hit(product)
        except (httpx.HTTPError, ValueError) as exc:
            return _failure(self.name, barcode, exc)

    async def search(self, query: str, limit: int) -> SearchPage:
        try:
            payload = await self.client.search_products(query, page_size=limit)
            _require_object(payload, "search response")
            items = payload.get("products") or []
            if not isinstance(items, list):
                raise MalformedPayloadError("products is not a list")
        except (httpx.HTTPError, ValueError) as exc:
            return SearchPage(error=_search_failure(self.name, query, exc))
        products = []
        for item in items[:limit]:
            if not isinstance(item, Mapping) or not item.get("code"):
                continue
            try:
                products.append(map_off_product(item, str(item["code"])))
            except MalformedPayloadError as exc:
                _logger.debug("Skipping malformed OFF product: %s", exc)
        total = payload.get("count")
        return SearchPage(
            products=tuple(products),
            total_count=total if isinstance(total, int) else len(products),
        )


def classify_failure(exc: Exception) -> ErrorKind:
    """Map a transport or payload exception onto the error taxonomy."""
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        if status_code == httpx.codes.NOT_FOUND:
            return ErrorKind.NOT_FOUND
        if status_code == httpx.codes.TOO_MANY_REQUESTS:
            return ErrorKind.RATE_LIMITED
        return ErrorKind.UNREACHABLE
    if isinstance(exc, httpx.HTTPError):
        return ErrorKind.UNREACHABLE
    return ErrorKind.MALFORMED


def _failure(provider: str, barcode: str, exc: Exception) -> FetchResult:
    kind = classify_failure(exc)
    if kind is not ErrorKind.NOT_FOUND:
        _logger.warning(
            "Provider %s lookup failed for %s (%s): %s", provider, barcode, kind, exc
        )
    return FetchResult.miss(kind)


def _search_failure(provider: str, query: str, exc: Exception) -> ErrorKind:
    kind = classify_failure(exc)
    _logger.warning("Provider %s search failed for %r (%s): %s", provider, query, kind, exc)
    return kind


def map_curated_row(row: Mapping[str, object]) -> Product:
    """Map a curated dataset row to a product."""
    barcode = row.get("barcode")
    name = row.get("name")
    if not barcode or not isinstance(name, str) or not name:
        raise MalformedPayloadError("curated row needs a barcode and a name")
    raw_nutriments = row.get("nutriments") or {}
    if not isinstance(raw_nutriments, Mapping):
        raise MalformedPayloadError("nutriments is not a mapping")
    known = set(Nutriments.names())
    values: dict[str, float | None] = {
        key: _to_float(value) for key, value in raw_nutriments.items() if key in known
    }
    return Product(
        barcode=str(barcode),
        name=name,
        brand=_text(row.get("brand")),
        categories=_tags(row.get("categories")),
        ingredients_text=_text(row.get("ingredients_text")),
        allergens=_tags(row.get("allergens")),
        serving_size=_curated_serving(row.get("serving_size")),
        nutriments=Nutriments(**_with_sodium_and_salt(values)),
        nutrition_basis=_basis(row.get("nutrition_basis")),
        source=ProductSource.LOCAL,
        image_url=_text(row.get("image_url")),
    )


def map_fdc_food(food: Mapping[str, object], barcode: str) -> Product:
    """Map an FDC food (search hit or detail payload) to a per-100g product."""
    food_nutrients = food.get("foodNutrients") or []
    if not isinstance(food_nutrients, list):
        raise MalformedPayloadError("foodNutrients is not a list")
    values: dict[str, float | None] = {}
    for nutrient in food_nutrients:
        if not isinstance(nutrient, Mapping):
            raise MalformedPayloadError("foodNutrients entry is not an object")
        nutrient_info = nutrient.get("nutrient") or {}
        if not isinstance(nutrient_info, Mapping):
            raise MalformedPayloadError("nutrient is not an object")
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        if not isinstance(nutrient_id, int) or isinstance(nutrient_id, bool):
            continue
        field_name = _FDC_NUTRIENT_IDS.get(nutrient_id)
        amount = nutrient.get("amount", nutrient.get("value"))
        if field_name is None or amount is None or values.get(field_name) is not None:
            continue
        values[field_name] = _to_float(amount)

    category = food.get("foodCategory") or food.get("brandedFoodCategory")
    if isinstance(category, Mapping):
        category = category.get("description")
    return Product(
        barcode=barcode,
        name=_text(food.get("description")) or UNKNOWN_PRODUCT_NAME,
        brand=_text(food.get("brandOwner")) or _text(food.get("brandName")),
        categories=_tags([category] if category else None),
        ingredients_text=_text(food.get("ingredients")),
        serving_size=_fdc_serving(food.get("servingSize"), food.get("servingSizeUnit")),
        nutriments=Nutriments(**_with_sodium_and_salt(values)),
        nutrition_basis=NutritionBasis.PER_100G,
        source=ProductSource.USDA,
    )


def map_off_payload(payload: Mapping[str, object], barcode: str) -> Product | None:
    """Map a product lookup response; ``None`` when the catalog has no entry."""
    _require_object(payload, "product response")
    product = payload.get("product")
    if payload.get("status") != 1 or not product:
        return None
    if not isinstance(product, Mapping):
        raise MalformedPayloadError("product is not an object")
    return map_off_product(product, str(payload.get("code") or barcode))


def map_off_product(product: Mapping[str, object], barcode: str) -> Product:
    """Map an Open Food Facts product object to a per-100g product."""
    raw_nutriments = product.get("nutriments") or {}
    if not isinstance(raw_nutriments, Mapping):
        raise MalformedPayloadError("nutriments is not an object")
    values: dict[str, float | None] = {}
    for key, (field_name, factor) in _OFF_NUTRIENT_KEYS.items():
        amount = _to_float(raw_nutriments.get(key))
        if amount is not None:
            values[field_name] = amount * factor
    if values.get("energy_kcal") is None:
        energy_kj = _to_float(raw_nutriments.get("energy_100g"))
        if energy_kj is not None:
            values["energy_kcal"] = energy_kj / KJ_PER_KCAL

    brands = _text(product.get("brands"))
    return Product(
        barcode=barcode,
        name=_text(product.get("product_name"))
        or _text(product.get("product_name_en"))
        or UNKNOWN_PRODUCT_NAME,
        brand=brands.split(",")[0].strip() if brands else None,
        categories=_tags(product.get("categories_tags") or product.get("categories")),
        ingredients_text=_text(product.get("ingredients_text"))
        or _text(product.get("ingredients_text_en")),
        allergens=_tags(product.get("allergens_tags") or product.get("allergens")),
        serving_size=_off_serving(product.get("serving_quantity")),
        nutriments=Nutriments(**_with_sodium_and_salt(values)),
        nutrition_basis=NutritionBasis.PER_100G,
        source=ProductSource.OFF,
        image_url=_text(product.get("image_front_small_url"))
        or _text(product.get("image_front_url"))
        or _text(product.get("image_url")),
    )


def _fdc_foods(payload: Mapping[str, object]) -> list[Mapping[str, object]]:
    _require_object(payload, "search response")
    foods = payload.get("foods") or []
    if not isinstance(foods, list) or not all(isinstance(f, Mapping) for f in foods):
        raise MalformedPayloadError("foods is not a list of objects")
    return foods


def _match_gtin(
    foods: list[Mapping[str, object]], barcode: str
) -> Mapping[str, object] | None:
    """Return the food whose GTIN/UPC equals ``barcode`` ignoring leading zeros."""
    target = barcode.lstrip("0")
    if not target:
        return None
    for food in foods:
        gtin = str(food.get("gtinUpc") or "").strip()
        if gtin and gtin.lstrip("0") == target:
            return food
    return None


def _with_sodium_and_salt(values: dict[str, float | None]) -> dict[str, float | None]:
    """Derive whichever of sodium (mg) and salt (g) the provider left out."""
    sodium_mg = values.get("sodium_mg")
    salt = values.get("salt")
    if salt is None and sodium_mg is not None:
        values["salt"] = sodium_mg * SALT_PER_MG_SODIUM
    elif sodium_mg is None and salt is not None:
        values["sodium_mg"] = salt / SALT_PER_MG_SODIUM
    return values


def _to_float(value: object) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise MalformedPayloadError(f"invalid nutrient amount: {value!r}")
    try:
        amount = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError(f"invalid nutrient amount: {value!r}") from exc
    if not math.isfinite(amount) or amount < 0:
        raise MalformedPayloadError(f"invalid nutrient amount: {value!r}")
    return amount


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _tags(value: object) -> tuple[str, ...]:
    """Normalise a tag list or comma-separated string; drops language prefixes."""
    if value is None:
        return ()
    if isinstance(value, str):
        items: list[object] = value.split(",")
    elif isinstance(value, list | tuple):
        items = list(value)
    else:
        raise MalformedPayloadError(f"invalid tag list: {value!r}")
    tags = []
    for item in items:
        if not isinstance(item, str):
            continue
        tag = item.strip()
        if len(tag) > 3 and tag[2] == ":" and tag[:2].isalpha():
            tag = tag[3:]
        if tag:
            tags.append(tag)
    return tuple(tags)


def _basis(value: object) -> NutritionBasis:
    if value is None:
        return NutritionBasis.PER_100G
    try:
        return NutritionBasis(str(value))
    except ValueError as exc:
        raise MalformedPayloadError(f"unknown nutrition basis: {value!r}") from exc


def _curated_serving(value: object) -> ServingSize | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise MalformedPayloadError("serving_size is not an object")
    amount = _to_float(value.get("amount"))
    if amount is None:
        raise MalformedPayloadError("serving_size needs an amount")
    return ServingSize(
        amount=amount,
        unit=str(value.get("unit") or "g"),
        weight_grams=_to_float(value.get("weight_grams")),
    )


def _fdc_serving(amount: object, unit: object) -> ServingSize | None:
    size = _to_float(amount)
    if not size:
        return None
    unit_text = str(unit or "g").strip().lower()
    weight = size if unit_text in _GRAM_UNITS else None
    return ServingSize(amount=size, unit=unit_text, weight_grams=weight)


def _off_serving(quantity: object) -> ServingSize | None:
    try:
        grams = _to_float(quantity)
    except MalformedPayloadError:
        return None
    if not grams:
        return None
    return ServingSize(amount=grams, unit="g", weight_grams=grams)


def _require_object(payload: object, what: str) -> None:
    if not isinstance(payload, Mapping):
        raise MalformedPayloadError(f"{what} is not an object")
