"""Per-serving nutrient normalization."""

from dataclasses import dataclass

from rawscan.domain.products import Nutriments, NutritionBasis, Product

DEFAULT_SERVING_G = 30.0


@dataclass(frozen=True)
class ServingNutrients:
    """Nutrients for one serving of a product.

    ``serving_weight_g`` is the mass used to scale per-100g data (``None`` for
    per-serving data) and ``serving_assumed`` is set when it is the default
    serving rather than a declared one.
    """

    nutriments: Nutriments
    net_carbs: float | None
    serving_weight_g: float | None = None
    serving_assumed: bool = False


@dataclass
class NutrientNormalizer:
    """Resolves the nutrition basis of a product into per-serving amounts."""

    default_serving_g: float = DEFAULT_SERVING_G

    def normalize(self, product: Product) -> ServingNutrients:
        if product.nutrition_basis is NutritionBasis.PER_SERVING:
            return ServingNutrients(
                nutriments=product.nutriments,
                net_carbs=net_carbs(product.nutriments),
            )

        declared = product.serving_size.weight_grams if product.serving_size else None
        weight = declared or self.default_serving_g
        nutriments = product.nutriments.scaled(weight / 100)
        return ServingNutrients(
            nutriments=nutriments,
            net_carbs=net_carbs(nutriments),
            serving_weight_g=weight,
            serving_assumed=not declared,
        )


def net_carbs(nutriments: Nutriments) -> float | None:
    """Carbohydrates minus fiber; unknown fiber counts as none."""
    if nutriments.carbohydrates is None:
        return None
    return max(0.0, nutriments.carbohydrates - (nutriments.fiber or 0.0))
