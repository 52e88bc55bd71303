"""Curated product dataset shipped with the service."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from rawscan.services.barcodes import normalize_barcode
from rawscan.services.providers import CuratedCatalog


def _row(  # noqa: PLR0913
    barcode: str,
    name: str,
    brand: str,
    categories: list[str],
    ingredients_text: str,
    allergens: list[str],
    nutriments: dict[str, float],
    *,
    basis: str = "per_100g",
    serving_size: dict[str, object] | None = None,
) -> dict[str, object]:
    return {
        "barcode": barcode,
        "name": name,
        "brand": brand,
        "categories": categories,
        "ingredients_text": ingredients_text,
        "allergens": allergens,
        "nutriments": nutriments,
        "nutrition_basis": basis,
        "serving_size": serving_size,
    }


CURATED_PRODUCTS: tuple[dict[str, object], ...] = (
    _row(
        "049000028391",
        "Coca-Cola Classic",
        "Coca-Cola",
        ["beverages", "sodas", "cola"],
        "Carbonated water, high fructose corn syrup, caramel color, "
        "phosphoric acid, natural flavors, caffeine.",
        [],
        {
            "energy_kcal": 140,
            "carbohydrates": 39,
            "sugars": 39,
            "fiber": 0,
            "protein": 0,
            "fat": 0,
            "saturated_fat": 0,
            "sodium_mg": 45,
        },
        basis="per_serving",
        serving_size={"amount": 12, "unit": "fl oz", "weight_grams": 355},
    ),
    _row(
        "012000638398",
        "Pepsi Cola",
        "PepsiCo",
        ["beverages", "sodas", "cola"],
        "Carbonated water, high fructose corn syrup, caramel color, sugar, "
        "phosphoric acid, caffeine, citric acid, natural flavor.",
        [],
        {
            "energy_kcal": 150,
            "carbohydrates": 41,
            "sugars": 41,
            "fiber": 0,
            "protein": 0,
            "fat": 0,
            "saturated_fat": 0,
            "sodium_mg": 30,
        },
        basis="per_serving",
        serving_size={"amount": 12, "unit": "fl oz", "weight_grams": 355},
    ),
    _row(
        "028400064316",
        "Lay's Classic Potato Chips",
        "Frito-Lay",
        ["snacks", "chips", "potato-chips"],
        "Potatoes, vegetable oil (sunflower, corn, and/or canola oil), salt.",
        [],
        {
            "energy_kcal": 536,
            "carbohydrates": 50,
            "sugars": 0.9,
            "fiber": 4.5,
            "protein": 7.1,
            "fat": 35.7,
            "saturated_fat": 12.5,
            "sodium_mg": 536,
        },
        serving_size={"amount": 1, "unit": "oz", "weight_grams": 28},
    ),
    _row(
        "044000032319",
        "Oreo Original Cookies",
        "Nabisco",
        ["snacks", "cookies", "sandwich-cookies"],
        "Sugar, unbleached enriched flour, palm and/or canola oil, cocoa, "
        "high fructose corn syrup, leavening, cornstarch, salt, soy lecithin, "
        "vanillin, chocolate.",
        ["wheat", "soy"],
        {
            "energy_kcal": 480,
            "carbohydrates": 70,
            "sugars": 33,
            "fiber": 3.3,
            "protein": 6.7,
            "fat": 20,
            "saturated_fat": 6.7,
            "sodium_mg": 400,
        },
        serving_size={"amount": 3, "unit": "cookies", "weight_grams": 34},
    ),
    _row(
        "011110421234",
        "2% Reduced Fat Milk",
        "Great Value",
        ["dairy", "milk", "reduced-fat-milk"],
        "Reduced fat milk, vitamin A palmitate, vitamin D3.",
        ["milk"],
        {
            "energy_kcal": 50,
            "carbohydrates": 5,
            "sugars": 5,
            "fiber": 0,
            "protein": 3.3,
            "fat": 2,
            "saturated_fat": 1.3,
            "sodium_mg": 44,
        },
        serving_size={"amount": 1, "unit": "cup", "weight_grams": 240},
    ),
    _row(
        "041303054321",
        "Greek Yogurt Plain",
        "Chobani",
        ["dairy", "yogurt", "greek-yogurt"],
        "Cultured pasteurized nonfat milk, live and active cultures.",
        ["milk"],
        {
            "energy_kcal": 59,
            "carbohydrates": 3.6,
            "sugars": 3.6,
            "fiber": 0,
            "protein": 10,
            "fat": 0.4,
            "saturated_fat": 0.3,
            "sodium_mg": 36,
        },
        serving_size={"amount": 1, "unit": "container", "weight_grams": 150},
    ),
    _row(
        "016000275447",
        "Cheerios Original",
        "General Mills",
        ["breakfast", "cereals", "whole-grain-cereals"],
        "Whole grain oats, corn starch, sugar, salt, tripotassium phosphate, "
        "vitamin E.",
        ["oats"],
        {
            "energy_kcal": 367,
            "carbohydrates": 73.3,
            "sugars": 3.3,
            "fiber": 10,
            "protein": 13.3,
            "fat": 6.7,
            "saturated_fat": 1.7,
            "sodium_mg": 500,
        },
    ),
    _row(
        "038000845321",
        "Frosted Flakes",
        "Kellogg's",
        ["breakfast", "cereals", "sweetened-cereals"],
        "Milled corn, sugar, malt flavor, contains 2% or less of salt, "
        "BHT for freshness.",
        [],
        {
            "energy_kcal": 375,
            "carbohydrates": 91.7,
            "sugars": 33.3,
            "fiber": 0.8,
            "protein": 4.2,
            "fat": 0.8,
            "saturated_fat": 0.4,
            "sodium_mg": 458,
        },
    ),
    _row(
        "072250007894",
        "Wonder Bread Classic White",
        "Wonder",
        ["bakery", "bread", "white-bread"],
        "Enriched wheat flour, water, sugar, yeast, soybean oil, salt, "
        "calcium propionate, monoglycerides, calcium sulfate, ammonium sulfate.",
        ["wheat", "soy"],
        {
            "energy_kcal": 266,
            "carbohydrates": 50,
            "sugars": 6.7,
            "fiber": 3.3,
            "protein": 10,
            "fat": 3.3,
            "saturated_fat": 1,
            "sodium_mg": 500,
        },
        serving_size={"amount": 1, "unit": "slice", "weight_grams": 25},
    ),
    _row(
        "057000004057",
        "Heinz Tomato Ketchup",
        "Heinz",
        ["condiments", "ketchup", "tomato-sauces"],
        "Tomato concentrate, distilled vinegar, high fructose corn syrup, "
        "corn syrup, salt, spice, onion powder, natural flavoring.",
        [],
        {
            "energy_kcal": 112,
            "carbohydrates": 27.4,
            "sugars": 22.8,
            "fiber": 0.3,
            "protein": 1.2,
            "fat": 0.1,
            "saturated_fat": 0,
            "sodium_mg": 1120,
        },
        serving_size={"amount": 1, "unit": "tbsp", "weight_grams": 17},
    ),
    _row(
        "071921008765",
        "Stouffer's Lasagna with Meat Sauce",
        "Stouffer's",
        ["frozen", "meals", "pasta"],
        "Cooked pasta, water, tomatoes, cooked beef, part skim mozzarella "
        "cheese, ricotta cheese, modified corn starch, contains less than 2% "
        "of salt, sugar, spices.",
        ["wheat", "milk", "eggs"],
        {
            "energy_kcal": 151,
            "carbohydrates": 13.6,
            "sugars": 4.5,
            "fiber": 1.8,
            "protein": 9.1,
            "fat": 7.3,
            "saturated_fat": 3.6,
            "sodium_mg": 545,
        },
        serving_size={"amount": 1, "unit": "cup", "weight_grams": 215},
    ),
    _row(
        "051000012345",
        "Campbell's Chicken Noodle Soup",
        "Campbell's",
        ["canned", "soups", "chicken-soup"],
        "Chicken stock, enriched egg noodles, chicken meat, carrots, celery, "
        "salt, chicken fat, monosodium glutamate, modified food starch.",
        ["wheat", "eggs"],
        {
            "energy_kcal": 25,
            "carbohydrates": 3.3,
            "sugars": 0.8,
            "fiber": 0.4,
            "protein": 1.7,
            "fat": 0.8,
            "saturated_fat": 0.4,
            "sodium_mg": 375,
        },
        serving_size={"amount": 1, "unit": "cup", "weight_grams": 245},
    ),
    _row(
        "033383000001",
        "Bananas",
        "Fresh",
        ["fresh", "fruits", "tropical-fruits"],
        "Fresh bananas",
        [],
        {
            "energy_kcal": 89,
            "carbohydrates": 22.8,
            "sugars": 12.2,
            "fiber": 2.6,
            "protein": 1.1,
            "fat": 0.3,
            "saturated_fat": 0.1,
            "sodium_mg": 1,
        },
        serving_size={"amount": 1, "unit": "medium", "weight_grams": 118},
    ),
    _row(
        "033383000002",
        "Apples - Gala",
        "Fresh",
        ["fresh", "fruits", "apples"],
        "Fresh apples",
        [],
        {
            "energy_kcal": 52,
            "carbohydrates": 13.8,
            "sugars": 10.4,
            "fiber": 2.4,
            "protein": 0.3,
            "fat": 0.2,
            "saturated_fat": 0,
            "sodium_mg": 1,
        },
        serving_size={"amount": 1, "unit": "medium", "weight_grams": 182},
    ),
    _row(
        "3017620422003",
        "Nutella Hazelnut Spread",
        "Ferrero",
        ["spreads", "sweet-spreads", "chocolate-spreads"],
        "Sugar, palm oil, hazelnuts (13%), skimmed milk powder (8.7%), "
        "fat-reduced cocoa (7.4%), emulsifier: lecithins (soya), vanillin.",
        ["milk", "nuts", "soy"],
        {
            "energy_kcal": 539,
            "carbohydrates": 57.5,
            "sugars": 56.3,
            "fiber": 0,
            "protein": 6.3,
            "fat": 30.9,
            "saturated_fat": 10.6,
            "sodium_mg": 107,
        },
    ),
    _row(
        "025000056789",
        "Kind Dark Chocolate Nuts & Sea Salt Bar",
        "Kind",
        ["snacks", "bars", "nut-bars"],
        "Almonds, peanuts, dark chocolate, honey, glucose syrup, rice flour, "
        "sea salt, soy lecithin, vanilla extract.",
        ["nuts", "peanuts", "soy"],
        {
            "energy_kcal": 500,
            "carbohydrates": 35,
            "sugars": 15,
            "fiber": 7,
            "protein": 15,
            "fat": 35,
            "saturated_fat": 8,
            "sodium_mg": 125,
        },
        serving_size={"amount": 1, "unit": "bar", "weight_grams": 40},
    ),
)


@dataclass
class BundledCuratedCatalog(CuratedCatalog):
    """Curated catalog held in process memory.

    Rows are keyed by their declared barcode and by its canonical 13-digit form.
    """

    _rows: dict[str, Mapping[str, object]] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, object]]) -> "BundledCuratedCatalog":
        rows = list(rows)
        keyed: dict[str, Mapping[str, object]] = {}
        for row in rows:
            keyed.setdefault(str(row["barcode"]), row)
        for row in rows:
            canonical = normalize_barcode(str(row["barcode"])).canonical
            if canonical:
                keyed.setdefault(canonical, row)
        return cls(_rows=keyed)

    @classmethod
    def default(cls) -> "BundledCuratedCatalog":
        return cls.from_rows(CURATED_PRODUCTS)

    async def lookup(self, keys: Sequence[str]) -> Mapping[str, object] | None:
        """Return the row for the first key with an exact entry."""
        for key in keys:
            row = self._rows.get(key)
            if row is not None:
                return row
        return None

    def __len__(self) -> int:
        return len({str(row["barcode"]) for row in self._rows.values()})
