import pytest
from pydantic import ValidationError

from alchemist.schemas.priorities import CRITERIA, PRESET_PROFILES, PrioritizationWeights


def test_default_weights_normalize_evenly():
    # --- Act ---
    weights = PrioritizationWeights().normalized()

    # --- Assert ---
    assert set(weights.weights) == set(CRITERIA)
    assert weights.total == pytest.approx(1.0)
    assert weights.weights["fairness"] == pytest.approx(1 / len(CRITERIA))


def test_presets_sum_to_one():
    for name in PRESET_PROFILES:
        assert PrioritizationWeights.from_preset(name).total == pytest.approx(1.0)

    with pytest.raises(ValueError):
        PrioritizationWeights.from_preset("Chaos")


def test_from_ranking_weights_best_first():
    """
    @brief
    Ranking of n criteria gives weights n..1, normalized.
    """
    # --- Act ---
    weights = PrioritizationWeights.from_ranking(["quality", "fairness", "timeline"])

    # --- Assert ---
    assert weights.weights["quality"] == pytest.approx(3 / 6)
    assert weights.weights["fairness"] == pytest.approx(2 / 6)
    assert weights.weights["timeline"] == pytest.approx(1 / 6)
    assert weights.weights["efficiency"] == 0.0


def test_from_pairwise_uses_row_sums():
    # --- Arrange ---
    matrix = {
        "fulfillment": {"fairness": 3.0},
        "fairness": {"fulfillment": 1.0},
    }

    # --- Act ---
    weights = PrioritizationWeights.from_pairwise(matrix)

    # --- Assert ---
    assert weights.weights["fulfillment"] == pytest.approx(0.75)
    assert weights.weights["fairness"] == pytest.approx(0.25)


def test_invalid_weights_rejected():
    with pytest.raises(ValidationError):
        PrioritizationWeights(weights={"luck": 1.0})
    with pytest.raises(ValidationError):
        PrioritizationWeights(weights={"quality": -1.0})


def test_all_zero_weights_stay_zero():
    weights = PrioritizationWeights(weights={c: 0.0 for c in CRITERIA})

    assert weights.normalized().total == 0.0
