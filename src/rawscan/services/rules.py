"""Ingredient and additive detection rules.

Each rule pairs a target category with a case-insensitive pattern and a weight.
Penalty weights are negative and bonus weights positive; detection-only rules
carry no weight.
"""

import re
from dataclasses import dataclass
from enum import StrEnum


class RuleTarget(StrEnum):
    ADDITIVE = "additive"
    ANIMAL_PRODUCT = "animal_product"
    MEAT = "meat"
    PLANT = "plant"
    GLUTEN = "gluten"
    UPF_MARKER = "upf_marker"
    SEED_OIL = "seed_oil"
    ARTIFICIAL_COLOR = "artificial_color"
    SWEETENER = "sweetener"
    PREFERRED = "preferred"


@dataclass(frozen=True)
class IngredientRule:
    target: RuleTarget
    pattern: re.Pattern[str]
    weight: float = 0.0

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def occurrences(self, text: str) -> int:
        return sum(1 for _ in self.pattern.finditer(text))


def _rule(target: RuleTarget, pattern: str, weight: float = 0.0) -> IngredientRule:
    return IngredientRule(target, re.compile(pattern, re.IGNORECASE), weight)


def _keywords(target: RuleTarget, *words: str, weight: float = 0.0) -> list[IngredientRule]:
    return [_rule(target, rf"\b{re.escape(word)}", weight) for word in words]


INGREDIENT_RULES: tuple[IngredientRule, ...] = (
    # Additives are counted per occurrence.
    _rule(RuleTarget.ADDITIVE, r"\bE\s?-?\d{3,4}[a-z]?\b"),
    _rule(RuleTarget.ADDITIVE, r"sodium benzoate"),
    _rule(RuleTarget.ADDITIVE, r"potassium sorbate"),
    _rule(RuleTarget.ADDITIVE, r"citric acid"),
    _rule(RuleTarget.ADDITIVE, r"ascorbic acid"),
    _rule(RuleTarget.ADDITIVE, r"natural flavors?"),
    _rule(RuleTarget.ADDITIVE, r"artificial flavors?"),
    _rule(RuleTarget.ADDITIVE, r"modified (?:\w+ )?starch"),
    _rule(RuleTarget.ADDITIVE, r"lecithin"),
    _rule(RuleTarget.ADDITIVE, r"carrageenan"),
    *_keywords(
        RuleTarget.ANIMAL_PRODUCT,
        "milk",
        "egg",
        "meat",
        "fish",
        "honey",
        "gelatin",
        "whey",
        "casein",
        "lactose",
    ),
    *_keywords(
        RuleTarget.MEAT, "meat", "fish", "gelatin", "beef", "pork", "chicken", "turkey"
    ),
    *_keywords(RuleTarget.PLANT, "grain", "wheat", "rice", "bean", "lentil"),
    *_keywords(RuleTarget.GLUTEN, "wheat", "barley", "rye", "gluten", "malt"),
    *_keywords(
        RuleTarget.UPF_MARKER,
        "emulsifier",
        "stabilizer",
        "thickener",
        "artificial flavor",
        "natural flavor",
        "modified starch",
        "high fructose corn syrup",
        "corn syrup",
        "dextrose",
        "maltodextrin",
        "monosodium glutamate",
        "msg",
    ),
    _rule(RuleTarget.SEED_OIL, r"sunflower oil", -0.15),
    _rule(RuleTarget.SEED_OIL, r"safflower oil", -0.15),
    _rule(RuleTarget.SEED_OIL, r"\bsoy(?:bean)? oil", -0.15),
    _rule(RuleTarget.SEED_OIL, r"canola oil", -0.15),
    _rule(RuleTarget.SEED_OIL, r"\bcorn oil", -0.15),
    _rule(RuleTarget.SEED_OIL, r"cottonseed oil", -0.15),
    *_keywords(
        RuleTarget.ARTIFICIAL_COLOR, "red 40", "yellow 5", "blue 1", "artificial color"
    ),
    _rule(RuleTarget.SWEETENER, r"aspartame", -0.25),
    _rule(RuleTarget.SWEETENER, r"sucralose", -0.20),
    _rule(RuleTarget.SWEETENER, r"acesulfame", -0.20),
    _rule(RuleTarget.PREFERRED, r"extra virgin olive oil", 0.04),
    _rule(RuleTarget.PREFERRED, r"avocado oil", 0.03),
    _rule(RuleTarget.PREFERRED, r"grass[- ]fed", 0.03),
    _rule(RuleTarget.PREFERRED, r"raw honey", 0.02),
)


def rules_for(target: RuleTarget) -> tuple[IngredientRule, ...]:
    return tuple(rule for rule in INGREDIENT_RULES if rule.target is target)


def matching_rules(target: RuleTarget, text: str) -> tuple[IngredientRule, ...]:
    """Return the rules of ``target`` whose pattern occurs in ``text``."""
    return tuple(rule for rule in rules_for(target) if rule.matches(text))


def contains(target: RuleTarget, text: str) -> bool:
    return any(rule.matches(text) for rule in rules_for(target))


def count_matching(target: RuleTarget, text: str) -> int:
    """Number of distinct rules of ``target`` that match."""
    return len(matching_rules(target, text))


def count_occurrences(target: RuleTarget, text: str) -> int:
    """Total pattern occurrences of ``target`` rules in ``text``."""
    return sum(rule.occurrences(text) for rule in rules_for(target))
