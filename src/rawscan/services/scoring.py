"""Personalized product scoring."""

import hashlib
import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from rawscan.domain.products import Product
from rawscan.domain.profiles import (
    AvoidIngredient,
    BodyGoal,
    DietType,
    HealthGoal,
    UserProfile,
)
from rawscan.domain.scoring import FitBreakdown, ScoreResult
from rawscan.services import rules
from rawscan.services.nutrients import NutrientNormalizer, ServingNutrients
from rawscan.services.rules import RuleTarget

SCORE_VERSION = "p1.1"

SAFETY_WEIGHT = 0.65
FIT_WEIGHT = 0.35

SAFETY_BASELINE = 82.0
SUGAR_TIERS = ((12.0, 15.0), (6.0, 8.0))
SATURATED_FAT_TIERS = ((4.0, 10.0), (2.0, 5.0))
SODIUM_MG_TIERS = ((400.0, 10.0), (200.0, 5.0))
ADDITIVE_ALLOWANCE = 3
ADDITIVE_PENALTY = 2.0

DIET_WEIGHT = 0.43
HEALTH_GOAL_WEIGHT = 0.29
INGREDIENT_WEIGHT = 0.21
BODY_GOAL_WEIGHT = 0.07

SEED_OIL_PENALTY_CAP = 0.35
PREFERRED_BONUS_CAP = 0.08
NEUTRAL = 0.5

# Target calorie split (protein, carbohydrates, fat).
BALANCED_MACROS = (0.30, 0.40, 0.30)
MAINTAIN_MACROS = (0.25, 0.45, 0.30)

_logger = logging.getLogger(__name__)


@dataclass
class ScoringEngine:
    """Combines a profile-free safety score with a profile fit score.

    The engine performs no I/O and holds no mutable state, so one instance can
    be shared across requests.
    """

    normalizer: NutrientNormalizer = field(default_factory=NutrientNormalizer)

    def score_product(
        self, product: Product, profile: UserProfile | Mapping[str, object]
    ) -> ScoreResult:
        """Score a product for a profile.

        Raises ``pydantic.ValidationError`` when ``profile`` is a malformed
        mapping and ``TypeError`` when ``product`` is not a :class:`Product`.
        """
        if not isinstance(product, Product):
            raise TypeError(f"expected Product, got {type(product).__name__}")
        if not isinstance(profile, UserProfile):
            profile = UserProfile.model_validate(profile)

        nutrients = self.normalizer.normalize(product)
        ingredients = (product.ingredients_text or "").lower()
        safety = safety_score(nutrients, ingredients)
        fit = fit_breakdown(nutrients, ingredients, profile)
        final_score = _round_half_up(
            _clamp(SAFETY_WEIGHT * safety + FIT_WEIGHT * fit.score, 0.0, 100.0)
        )
        _logger.debug(
            "Scored %s: safety=%.1f fit=%.1f final=%d",
            product.barcode,
            safety,
            fit.score,
            final_score,
        )
        return ScoreResult(
            gtin=product.barcode,
            final_score=final_score,
            safety_score=safety,
            fit=fit,
            notes=explain(nutrients, ingredients, profile),
            score_version=SCORE_VERSION,
            inputs_hash=inputs_hash(product, nutrients, profile),
        )


def safety_score(nutrients: ServingNutrients, ingredients: str) -> float:
    """Profile-free score from per-serving nutrients and additive load."""
    values = nutrients.nutriments
    score = SAFETY_BASELINE
    score -= _tiered_penalty(values.sugars, SUGAR_TIERS)
    score -= _tiered_penalty(values.saturated_fat, SATURATED_FAT_TIERS)
    score -= _tiered_penalty(values.sodium_mg, SODIUM_MG_TIERS)
    additives = rules.count_occurrences(RuleTarget.ADDITIVE, ingredients)
    if additives > ADDITIVE_ALLOWANCE:
        score -= additives * ADDITIVE_PENALTY
    return _clamp(score, 0.0, 100.0)


def fit_breakdown(
    nutrients: ServingNutrients, ingredients: str, profile: UserProfile
) -> FitBreakdown:
    diet = diet_suitability(nutrients, ingredients, profile)
    health = health_goal_alignment(nutrients, profile)
    preference = ingredient_preference(ingredients, profile)
    body = body_goal_alignment(nutrients, profile.body_goal)
    score = 100 * (
        DIET_WEIGHT * diet
        + HEALTH_GOAL_WEIGHT * health
        + INGREDIENT_WEIGHT * preference
        + BODY_GOAL_WEIGHT * body
    )
    return FitBreakdown(
        score=_clamp(score, 0.0, 100.0),
        diet_suitability=diet,
        health_goal_alignment=health,
        ingredient_preference=preference,
        body_goal_alignment=body,
    )


def diet_suitability(
    nutrients: ServingNutrients, ingredients: str, profile: UserProfile
) -> float:
    values = nutrients.nutriments
    match profile.diet_type:
        case DietType.VEGAN:
            return 0.0 if rules.contains(RuleTarget.ANIMAL_PRODUCT, ingredients) else 1.0
        case DietType.VEGETARIAN:
            return 0.0 if rules.contains(RuleTarget.MEAT, ingredients) else 1.0
        case DietType.CARNIVORE:
            score = 0.8
            if _above(values.protein, 10):
                score += 0.2
            if _above(values.sugars, 3):
                score -= 0.3
            score -= 0.1 * rules.count_matching(RuleTarget.PLANT, ingredients)
            return _clamp(score, 0.0, 1.0)
        case DietType.GLUTEN_FREE:
            if rules.contains(RuleTarget.GLUTEN, ingredients):
                return max(0.0, 1.0 - profile.strictness.diet_type)
            return 1.0
        case DietType.WHOLE_FOODS:
            markers = rules.count_matching(RuleTarget.UPF_MARKER, ingredients)
            return max(0.0, 1.0 - 0.1 * markers)
        case _:
            additives = rules.count_occurrences(RuleTarget.ADDITIVE, ingredients)
            if additives <= ADDITIVE_ALLOWANCE:
                return 1.0
            return max(0.7, 1.0 - 0.05 * additives)


def health_goal_alignment(nutrients: ServingNutrients, profile: UserProfile) -> float:
    """Average goal curve raised to the health-goal strictness; 1 with no goals."""
    if not profile.health_goals:
        return 1.0
    scores = [_goal_curve(goal, nutrients) for goal in profile.health_goals]
    average = sum(scores) / len(scores)
    return average ** profile.strictness.health_goals


def _goal_curve(goal: HealthGoal, nutrients: ServingNutrients) -> float:
    values = nutrients.nutriments
    match goal:
        case HealthGoal.LOW_SUGAR:
            return _decay(values.sugars)
        case HealthGoal.LOW_FAT:
            return _decay(values.fat)
        case HealthGoal.HIGH_PROTEIN:
            if values.protein is None:
                return NEUTRAL
            return 1 / (1 + math.exp(-0.4 * (values.protein - 7)))
        case HealthGoal.KETO:
            if nutrients.net_carbs is None:
                return NEUTRAL
            return math.exp(-max(0.0, nutrients.net_carbs - 2) / 1.5)
        case HealthGoal.BALANCED:
            split = _calorie_split(nutrients)
            if split is None:
                return NEUTRAL
            if not any(split):
                return 0.0
            return _cosine(split, BALANCED_MACROS)
    return 1.0


def ingredient_preference(ingredients: str, profile: UserProfile) -> float:
    score = 1.0
    if profile.avoids(AvoidIngredient.SEED_OILS):
        penalty = sum(r.weight for r in rules.matching_rules(RuleTarget.SEED_OIL, ingredients))
        score += max(-SEED_OIL_PENALTY_CAP, penalty)
    if profile.avoids(AvoidIngredient.ARTIFICIAL_COLORS) and rules.contains(
        RuleTarget.ARTIFICIAL_COLOR, ingredients
    ):
        score -= 0.20
    score += sum(r.weight for r in rules.matching_rules(RuleTarget.SWEETENER, ingredients))
    bonus = sum(r.weight for r in rules.matching_rules(RuleTarget.PREFERRED, ingredients))
    score += min(PREFERRED_BONUS_CAP, bonus)
    return _clamp(score, 0.0, 1.0)


def body_goal_alignment(nutrients: ServingNutrients, body_goal: BodyGoal) -> float:
    values = nutrients.nutriments
    kcal, protein = values.energy_kcal, values.protein
    match body_goal:
        case BodyGoal.LOSE_WEIGHT:
            score = 0.5
            if kcal is not None and kcal < 80:
                score += 0.3
            elif _above(kcal, 200):
                score -= 0.2
            if _above(protein, 8):
                score += 0.2
            elif _above(protein, 4):
                score += 0.1
            if values.fiber is not None and values.fiber >= 2:
                score += 0.1
            return _clamp(score, 0.0, 1.0)
        case BodyGoal.GAIN_WEIGHT:
            score = 0.5
            if _above(kcal, 250) and _above(protein, 5):
                score += 0.4
            elif _above(kcal, 150):
                score += 0.2
            if _above(protein, 6):
                score += 0.1
            return _clamp(score, 0.0, 1.0)
        case _:
            split = _calorie_split(nutrients)
            if split is None or not any(split):
                return NEUTRAL
            distance = sum(abs(a - b) for a, b in zip(split, MAINTAIN_MACROS))
            return max(0.3, min(1.0, 1.0 - distance))


def explain(
    nutrients: ServingNutrients, ingredients: str, profile: UserProfile
) -> tuple[str, ...]:
    """Human-readable bullets re-derived from the scored inputs."""
    values = nutrients.nutriments
    goals = set(profile.health_goals)
    notes: list[str] = []

    if HealthGoal.LOW_SUGAR in goals:
        _flag(notes, values.sugars, low=2, high=6, good="Low sugar ✅", bad="High sugar ❌")
    if HealthGoal.HIGH_PROTEIN in goals and values.protein is not None:
        if values.protein > 8:
            notes.append("High protein ✅")
        elif values.protein < 2:
            notes.append("Low protein ❌")
    if HealthGoal.LOW_FAT in goals:
        _flag(notes, values.fat, low=3, high=6, good="Low fat ✅", bad="High fat ❌")
    if HealthGoal.KETO in goals:
        _flag(
            notes,
            nutrients.net_carbs,
            low=2,
            high=3,
            good="Keto-friendly ✅",
            bad="Too many carbs for keto ❌",
        )

    if profile.avoids(AvoidIngredient.SEED_OILS) and rules.contains(
        RuleTarget.SEED_OIL, ingredients
    ):
        notes.append("Contains seed oils ❌")
    if profile.avoids(AvoidIngredient.ARTIFICIAL_COLORS) and rules.contains(
        RuleTarget.ARTIFICIAL_COLOR, ingredients
    ):
        notes.append("Contains artificial colors ❌")
    if rules.contains(RuleTarget.SWEETENER, ingredients):
        notes.append("Contains artificial sweeteners ❌")

    match profile.diet_type:
        case DietType.VEGAN:
            if rules.contains(RuleTarget.ANIMAL_PRODUCT, ingredients):
                notes.append("Contains animal products ❌")
            else:
                notes.append("Vegan-friendly ✅")
        case DietType.VEGETARIAN:
            if rules.contains(RuleTarget.MEAT, ingredients):
                notes.append("Contains meat or fish ❌")
            else:
                notes.append("Vegetarian-friendly ✅")
        case DietType.GLUTEN_FREE:
            if rules.contains(RuleTarget.GLUTEN, ingredients):
                notes.append("Contains gluten ❌")
            else:
                notes.append("Gluten-free ✅")

    if nutrients.serving_assumed:
        notes.append(
            f"No serving size declared; assumed {nutrients.serving_weight_g:g} g"
        )
    return tuple(notes)


def inputs_hash(
    product: Product, nutrients: ServingNutrients, profile: UserProfile
) -> str:
    """Digest of the product and profile fields that feed the score."""
    payload = {
        "product": {
            "barcode": product.barcode,
            "nutriments": product.nutriments.as_dict(),
            "nutrition_basis": product.nutrition_basis.value,
            "serving_weight_g": nutrients.serving_weight_g,
            "ingredients_text": product.ingredients_text,
        },
        "profile": {
            "body_goal": profile.body_goal.value,
            "health_goals": [goal.value for goal in profile.health_goals],
            "diet_type": profile.diet_type.value,
            "avoid_ingredients": [item.value for item in profile.avoid_ingredients],
            "strictness": {
                "diet_type": profile.strictness.diet_type,
                "health_goals": profile.strictness.health_goals,
            },
        },
        "score_version": SCORE_VERSION,
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _calorie_split(nutrients: ServingNutrients) -> tuple[float, float, float] | None:
    values = nutrients.nutriments
    if values.protein is None or values.carbohydrates is None or values.fat is None:
        return None
    calories = (values.protein * 4, values.carbohydrates * 4, values.fat * 9)
    total = sum(calories)
    if total <= 0:
        return (0.0, 0.0, 0.0)
    return (calories[0] / total, calories[1] / total, calories[2] / total)


def _cosine(left: tuple[float, ...], right: tuple[float, ...]) -> float:
    dot = sum(a * b for a, b in zip(left, right))
    return dot / (math.hypot(*left) * math.hypot(*right))


def _decay(amount: float | None) -> float:
    if amount is None:
        return NEUTRAL
    return math.exp(-amount / 2)


def _tiered_penalty(amount: float | None, tiers: tuple[tuple[float, float], ...]) -> float:
    """Penalty of the first (threshold, penalty) tier the amount exceeds."""
    if amount is None:
        return 0.0
    for threshold, penalty in tiers:
        if amount > threshold:
            return penalty
    return 0.0


def _flag(
    notes: list[str], amount: float | None, *, low: float, high: float, good: str, bad: str
) -> None:
    if amount is None:
        return
    if amount < low:
        notes.append(good)
    elif amount > high:
        notes.append(bad)


def _above(amount: float | None, threshold: float) -> bool:
    return amount is not None and amount > threshold


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
