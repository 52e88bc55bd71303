"""User dietary profile consumed by the scoring engine."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class BodyGoal(StrEnum):
    LOSE_WEIGHT = "lose_weight"
    GAIN_WEIGHT = "gain_weight"
    MAINTAIN_WEIGHT = "maintain_weight"


class HealthGoal(StrEnum):
    LOW_SUGAR = "low_sugar"
    HIGH_PROTEIN = "high_protein"
    LOW_FAT = "low_fat"
    KETO = "keto"
    BALANCED = "balanced"


class DietType(StrEnum):
    WHOLE_FOODS = "whole_foods"
    VEGAN = "vegan"
    VEGETARIAN = "vegetarian"
    CARNIVORE = "carnivore"
    GLUTEN_FREE = "gluten_free"
    BALANCED = "balanced"


class AvoidIngredient(StrEnum):
    SEED_OILS = "seed_oils"
    ARTIFICIAL_COLORS = "artificial_colors"


class Strictness(BaseModel):
    """Strictness coefficients for the diet and health-goal components."""

    model_config = ConfigDict(frozen=True)

    diet_type: float = Field(default=0.8, ge=0.0, le=1.0)
    health_goals: float = Field(default=0.7, ge=0.0, le=1.0)


class UserProfile(BaseModel):
    """Dietary profile owned by the surrounding application."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    body_goal: BodyGoal = BodyGoal.MAINTAIN_WEIGHT
    health_goals: tuple[HealthGoal, ...] = ()
    diet_type: DietType = DietType.BALANCED
    avoid_ingredients: tuple[AvoidIngredient, ...] = ()
    strictness: Strictness = Field(default_factory=Strictness)

    def avoids(self, ingredient: AvoidIngredient) -> bool:
        """Return True when the user flagged an ingredient category."""
        return ingredient in self.avoid_ingredients
