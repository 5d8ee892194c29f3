"""
@brief
Prioritization weights attached to the exported allocation configuration.

@details
Users weight eight allocation criteria by sliders, by drag-and-drop
ranking, by a pairwise comparison matrix, or by picking a preset profile.
All four methods end in the same normalized weight vector (sums to 1).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from pydantic import BaseModel, Field, field_validator

CRITERIA: tuple[str, ...] = (
    "fulfillment",
    "fairness",
    "priorityLevel",
    "efficiency",
    "skillMatch",
    "costOptimization",
    "timeline",
    "quality",
)

PRESET_PROFILES: dict[str, dict[str, float]] = {
    "Maximize Fulfillment": {
        "fulfillment": 0.3,
        "fairness": 0.1,
        "priorityLevel": 0.2,
        "efficiency": 0.1,
        "skillMatch": 0.1,
        "costOptimization": 0.05,
        "timeline": 0.1,
        "quality": 0.05,
    },
    "Fair Distribution": {
        "fulfillment": 0.15,
        "fairness": 0.3,
        "priorityLevel": 0.15,
        "efficiency": 0.1,
        "skillMatch": 0.1,
        "costOptimization": 0.05,
        "timeline": 0.1,
        "quality": 0.05,
    },
    "Priority-Driven": {
        "fulfillment": 0.2,
        "fairness": 0.1,
        "priorityLevel": 0.4,
        "efficiency": 0.1,
        "skillMatch": 0.1,
        "costOptimization": 0.05,
        "timeline": 0.1,
        "quality": 0.05,
    },
    "Efficiency Focused": {
        "fulfillment": 0.15,
        "fairness": 0.1,
        "priorityLevel": 0.15,
        "efficiency": 0.3,
        "skillMatch": 0.1,
        "costOptimization": 0.1,
        "timeline": 0.1,
        "quality": 0.05,
    },
    "Cost-Conscious": {
        "fulfillment": 0.15,
        "fairness": 0.1,
        "priorityLevel": 0.15,
        "efficiency": 0.15,
        "skillMatch": 0.1,
        "costOptimization": 0.3,
        "timeline": 0.1,
        "quality": 0.05,
    },
    "Balanced Approach": {c: 0.125 for c in CRITERIA},
}


class PrioritizationWeights(BaseModel):
    """
    @brief
    Weight per allocation criterion.

    @details
    Weights are non-negative; unknown criteria are rejected. Missing
    criteria default to 0 after construction through one of the builders.
    """

    model_config = {"extra": "forbid", "frozen": True}

    weights: dict[str, float] = Field(default_factory=lambda: {c: 1.0 for c in CRITERIA})

    @field_validator("weights")
    @classmethod
    def _known_and_non_negative(cls, v: dict[str, float]) -> dict[str, float]:
        unknown = sorted(set(v) - set(CRITERIA))
        if unknown:
            raise ValueError(f"Unknown criteria: {', '.join(unknown)}")
        if any(w < 0 for w in v.values()):
            raise ValueError("Weights must be non-negative")
        return v

    @property
    def total(self) -> float:
        return sum(self.weights.values())

    def normalized(self) -> PrioritizationWeights:
        """Scale weights to sum to 1; an all-zero vector is returned unchanged."""
        total = self.total
        if total == 0:
            return self
        return PrioritizationWeights(weights={c: w / total for c, w in self.weights.items()})

    @classmethod
    def from_preset(cls, name: str) -> PrioritizationWeights:
        try:
            return cls(weights=dict(PRESET_PROFILES[name]))
        except KeyError:
            raise ValueError(
                f"Unknown preset {name!r}; choose one of: {', '.join(PRESET_PROFILES)}"
            ) from None

    @classmethod
    def from_ranking(cls, ranked: Sequence[str]) -> PrioritizationWeights:
        """
        @brief
        Derive weights from a best-first ranking.

        @details
        The first of n ranked criteria gets weight n, the last gets 1; the
        result is normalized. Criteria absent from the ranking get 0.
        """
        n = len(ranked)
        weights = {c: 0.0 for c in CRITERIA}
        for index, criterion in enumerate(ranked):
            weights[criterion] = float(n - index)
        return cls(weights=weights).normalized()

    @classmethod
    def from_pairwise(cls, matrix: Mapping[str, Mapping[str, float]]) -> PrioritizationWeights:
        """
        @brief
        Derive weights from a pairwise comparison matrix by row sums.

        @details
        `matrix[a][b]` states how much more important `a` is than `b`.
        Each criterion's weight is the sum of its row, then normalized.
        """
        weights = {c: float(sum(matrix.get(c, {}).values())) for c in CRITERIA}
        return cls(weights=weights).normalized()


__all__ = ["CRITERIA", "PRESET_PROFILES", "PrioritizationWeights"]
