"""Tests for provider adapters and payload mapping."""

import asyncio

import httpx
import pytest

from rawscan.adapters.bundled_catalog import BundledCuratedCatalog
from rawscan.domain.errors import ErrorKind
from rawscan.domain.products import NutritionBasis, ProductSource, ServingSize
from rawscan.services.providers import (
    CuratedCatalogProvider,
    OpenFoodFactsProvider,
    UsdaProvider,
    classify_failure,
)
from tests.conftest import FakeFdcClient, FakeOffClient

COKE_FOOD = {
    "fdcId": 2345678,
    "description": "COCA-COLA",
    "gtinUpc": "049000028391",
    "brandOwner": "The Coca-Cola Company",
    "ingredients": "CARBONATED WATER, HIGH FRUCTOSE CORN SYRUP, CARAMEL COLOR",
    "foodCategory": "Soda",
    "servingSize": 355,
    "servingSizeUnit": "ml",
    "foodNutrients": [
        {"nutrientId": 1008, "value": 39},
        {"nutrientId": 2000, "value": 11},
        {"nutrientId": 1005, "value": 11},
        {"nutrientId": 1093, "value": 13},
        {"nutrientId": 1162, "value": 0},
        {"nutrientId": 9999, "value": 5},
    ],
}


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://example.test/resource")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


def test_usda_requires_exact_gtin_match_ignoring_leading_zeros() -> None:
    client = FakeFdcClient(
        payload={
            "foods": [
                {"gtinUpc": "049000028999", "description": "Other cola"},
                COKE_FOOD,
            ]
        }
    )
    provider = UsdaProvider(client)

    result = asyncio.run(provider.fetch("0049000028391"))

    assert result.found
    product = result.product
    assert product.name == "COCA-COLA"
    assert product.barcode == "0049000028391"
    assert product.source is ProductSource.USDA
    assert product.nutrition_basis is NutritionBasis.PER_100G
    assert product.brand == "The Coca-Cola Company"
    assert product.categories == ("Soda",)
    assert product.nutriments.sugars == 11
    assert product.nutriments.sodium_mg == 13
    assert product.nutriments.salt == pytest.approx(13 * 2.54 / 1000)
    assert product.nutriments.vitamin_c == 0
    assert product.nutriments.protein is None
    assert product.serving_size == ServingSize(amount=355, unit="ml", weight_grams=None)
    assert client.calls == [("0049000028391", 25, ("Branded",))]


def test_usda_without_exact_match_is_not_found() -> None:
    client = FakeFdcClient(
        payload={"foods": [{"gtinUpc": "111", "description": "Unrelated"}]}
    )

    result = asyncio.run(UsdaProvider(client).fetch("0049000028391"))

    assert not result.found
    assert result.error is ErrorKind.NOT_FOUND


def test_usda_gram_serving_sets_weight() -> None:
    food = {**COKE_FOOD, "servingSize": 28, "servingSizeUnit": "GRM"}
    client = FakeFdcClient(payload={"foods": [food]})

    result = asyncio.run(UsdaProvider(client).fetch("049000028391"))

    assert result.product.serving_size.weight_grams == 28


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (_status_error(429), ErrorKind.RATE_LIMITED),
        (_status_error(503), ErrorKind.UNREACHABLE),
        (_status_error(404), ErrorKind.NOT_FOUND),
        (httpx.ConnectError("refused"), ErrorKind.UNREACHABLE),
        (ValueError("bad json"), ErrorKind.MALFORMED),
    ],
)
def test_usda_failures_are_classified(error: Exception, kind: ErrorKind) -> None:
    client = FakeFdcClient(error=error)

    result = asyncio.run(UsdaProvider(client).fetch("049000028391"))

    assert not result.found
    assert result.error is kind


def test_usda_non_numeric_nutrient_is_malformed() -> None:
    food = {**COKE_FOOD, "foodNutrients": [{"nutrientId": 1063, "value": "lots"}]}
    client = FakeFdcClient(payload={"foods": [food]})

    result = asyncio.run(UsdaProvider(client).fetch("049000028391"))

    assert result.error is ErrorKind.MALFORMED


def test_usda_search_maps_branded_and_foundation_foods() -> None:
    client = FakeFdcClient(
        payload={
            "totalHits": 40,
            "foods": [COKE_FOOD, {"fdcId": 42, "description": "Apples, raw"}],
        }
    )

    page = asyncio.run(UsdaProvider(client).search("cola", 5))

    assert [p.barcode for p in page.products] == ["049000028391", "usda-42"]
    assert page.total_count == 40
    assert client.calls == [("cola", 5, ("Branded", "Foundation"))]


def test_off_maps_per_100g_payload() -> None:
    client = FakeOffClient(
        product_payload={
            "status": 1,
            "code": "3017620422003",
            "product": {
                "product_name": "Nutella",
                "brands": "Ferrero, Nutella",
                "categories_tags": ["en:spreads", "en:sweet-spreads"],
                "allergens_tags": ["en:milk", "en:nuts"],
                "ingredients_text": "Sugar, palm oil, hazelnuts",
                "image_front_small_url": "https://images.example/nutella.jpg",
                "serving_quantity": "15",
                "nutriments": {
                    "energy_100g": 2252,
                    "sugars_100g": 56.3,
                    "proteins_100g": 6.3,
                    "sodium_100g": 0.0428,
                    "calcium_100g": 0.108,
                    "vitamin-d_100g": 0.0000015,
                },
            },
        }
    )

    result = asyncio.run(OpenFoodFactsProvider(client).fetch("3017620422003"))

    product = result.product
    assert product.source is ProductSource.OFF
    assert product.brand == "Ferrero"
    assert product.categories == ("spreads", "sweet-spreads")
    assert product.allergens == ("milk", "nuts")
    assert product.image_url == "https://images.example/nutella.jpg"
    assert product.serving_size == ServingSize(amount=15, unit="g", weight_grams=15)
    assert product.nutriments.energy_kcal == pytest.approx(2252 / 4.184)
    assert product.nutriments.sodium_mg == pytest.approx(42.8)
    assert product.nutriments.salt == pytest.approx(42.8 * 2.54 / 1000)
    assert product.nutriments.calcium == pytest.approx(108)
    assert product.nutriments.vitamin_d == pytest.approx(1.5)
    assert product.nutriments.fat is None


def test_off_missing_product_is_not_found() -> None:
    result = asyncio.run(OpenFoodFactsProvider(FakeOffClient()).fetch("123"))

    assert result.error is ErrorKind.NOT_FOUND


def test_off_malformed_payloads() -> None:
    not_an_object = FakeOffClient(product_payload={"status": 1, "product": "oops"})
    bad_amount = FakeOffClient(
        product_payload={
            "status": 1,
            "product": {"product_name": "X", "nutriments": {"sugars_100g": "n/a"}},
        }
    )

    first = asyncio.run(OpenFoodFactsProvider(not_an_object).fetch("123"))
    second = asyncio.run(OpenFoodFactsProvider(bad_amount).fetch("123"))

    assert first.error is ErrorKind.MALFORMED
    assert second.error is ErrorKind.MALFORMED


def test_non_object_responses_are_malformed() -> None:
    off = OpenFoodFactsProvider(
        FakeOffClient(
            product_payload=["not", "an", "object"],
            search_payload=["not", "an", "object"],
        )
    )
    usda = UsdaProvider(FakeFdcClient(payload=["not", "an", "object"]))

    assert asyncio.run(off.fetch("123")).error is ErrorKind.MALFORMED
    assert asyncio.run(off.search("cola", 5)).error is ErrorKind.MALFORMED
    assert asyncio.run(usda.fetch("049000028391")).error is ErrorKind.MALFORMED
    assert asyncio.run(usda.search("cola", 5)).error is ErrorKind.MALFORMED


def test_usda_ignores_non_integer_nutrient_ids() -> None:
    food = {
        **COKE_FOOD,
        "foodNutrients": [
            {"nutrient": {"id": [1008]}, "amount": 39},
            {"nutrient": {"id": True}, "amount": 5},
            {"nutrientId": 1003, "value": 2},
        ],
    }
    client = FakeFdcClient(payload={"foods": [food]})

    result = asyncio.run(UsdaProvider(client).fetch("049000028391"))

    assert result.found
    assert result.product.nutriments.energy_kcal is None
    assert result.product.nutriments.protein == 2


def test_off_search_skips_products_without_code() -> None:
    client = FakeOffClient(
        search_payload={
            "count": 2,
            "products": [
                {"product_name": "No code"},
                {"code": "5449000000996", "product_name": "Coca-Cola"},
            ],
        }
    )

    page = asyncio.run(OpenFoodFactsProvider(client).search("cola", 5))

    assert [p.barcode for p in page.products] == ["5449000000996"]
    assert page.total_count == 2


def test_off_search_failure_is_reported() -> None:
    client = FakeOffClient(error=httpx.ReadTimeout("slow"))

    page = asyncio.run(OpenFoodFactsProvider(client).search("cola", 5))

    assert page.products == ()
    assert page.error is ErrorKind.UNREACHABLE


def test_curated_provider_maps_rows() -> None:
    provider = CuratedCatalogProvider(BundledCuratedCatalog.default())

    result = asyncio.run(provider.fetch("049000028391"))

    product = result.product
    assert product.source is ProductSource.LOCAL
    assert product.nutrition_basis is NutritionBasis.PER_SERVING
    assert product.serving_size.weight_grams == 355
    assert product.nutriments.sugars == 39
    assert product.nutriments.salt == pytest.approx(45 * 2.54 / 1000)


def test_curated_rows_are_keyed_by_canonical_barcode_too() -> None:
    provider = CuratedCatalogProvider(BundledCuratedCatalog.default())

    result = asyncio.run(provider.fetch("0049000028391"))

    assert result.product.name == "Coca-Cola Classic"
    assert result.product.barcode == "049000028391"


def test_curated_provider_first_key_wins() -> None:
    provider = CuratedCatalogProvider(BundledCuratedCatalog.default())

    result = asyncio.run(provider.fetch_any(["missing", "3017620422003", "049000028391"]))

    assert result.product.name == "Nutella Hazelnut Spread"


def test_curated_provider_rejects_malformed_rows() -> None:
    catalog = BundledCuratedCatalog.from_rows([{"barcode": "123", "name": ""}])

    result = asyncio.run(CuratedCatalogProvider(catalog).fetch("123"))

    assert result.error is ErrorKind.MALFORMED


def test_classify_failure_treats_timeouts_as_unreachable() -> None:
    assert classify_failure(httpx.ConnectTimeout("slow")) is ErrorKind.UNREACHABLE
