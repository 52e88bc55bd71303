"""Score result models."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class FitBreakdown:
    """Profile-dependent sub-score and its four components in [0, 1]."""

    score: float
    diet_suitability: float
    health_goal_alignment: float
    ingredient_preference: float
    body_goal_alignment: float


@dataclass(frozen=True)
class ScoreResult:
    """Personalized score for one product and one profile."""

    gtin: str
    final_score: int
    safety_score: float
    fit: FitBreakdown
    notes: tuple[str, ...]
    score_version: str
    inputs_hash: str

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable representation."""
        payload = asdict(self)
        payload["notes"] = list(self.notes)
        return payload
