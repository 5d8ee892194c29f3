import pytest

from alchemist.errors import SuggestionError
from alchemist.schemas.models import Client, ValidationConfig
from alchemist.schemas.rules import PhaseWindowRule
from alchemist.suggestions.gate import SuggestionGate
from alchemist.validator.validator import ValidationContext


class _StaticSource:
    """Suggestion source returning a fixed candidate."""

    def __init__(self, candidate):
        self.candidate = candidate
        self.prompts = []

    def suggest(self, context):
        self.prompts.append(context)
        return self.candidate


class _FailingSource:
    def suggest(self, context):
        raise TimeoutError("model did not answer")


@pytest.fixture()
def gate(dataset) -> SuggestionGate:
    ctx = ValidationContext(
        clients=dataset["clients"], workers=dataset["workers"], tasks=dataset["tasks"]
    )
    return SuggestionGate(ctx)


def test_accepts_consistent_rule(gate):
    """
    @brief
    A suggested rule is parsed and the full pass runs with it appended.
    """
    # --- Arrange ---
    candidate = {"type": "phaseWindow", "parameters": {"task": "T1", "phases": [1, 2]}}

    # --- Act ---
    review = gate.review_rule(candidate)

    # --- Assert ---
    assert review.accepted is True
    assert isinstance(review.candidate, PhaseWindowRule)
    assert review.findings == []
    assert gate.context.rules == []


def test_rejects_rule_creating_a_cycle(gate):
    # --- Act ---
    review = gate.review_rule({"type": "coRun", "parameters": {"tasks": ["T1", "T2"]}})

    # --- Assert ---
    assert review.accepted is False
    assert "circular_dependency" in [f.type for f in review.findings]


def test_unparseable_rule_is_rejected_with_reason(gate):
    # --- Act ---
    review = gate.review_rule({"type": "teleport", "parameters": {}})

    # --- Assert ---
    assert review.accepted is False
    assert review.candidate is None
    assert review.findings == []
    assert "teleport" in review.reasons[0]


def test_correction_is_revalidated_against_dataset(gate, dataset):
    """
    @brief
    A corrected row replaces the original in a copy; the caller's data is untouched.
    """
    # --- Arrange ---
    fix = {**dataset["clients"][1], "RequestedTaskIDs": "T1,T9"}

    # --- Act ---
    review = gate.review_correction("client", 1, fix)

    # --- Assert ---
    assert isinstance(review.candidate, Client)
    assert review.accepted is False
    assert [(f.type, f.row_index) for f in review.findings] == [("unknown_reference", 1)]
    assert gate.context.clients[1]["RequestedTaskIDs"] == ["T2"]


def test_correction_that_fails_to_parse(gate, dataset):
    # --- Arrange ---
    fix = {**dataset["clients"][0], "PriorityLevel": "urgent"}

    # --- Act ---
    review = gate.review_correction("client", 0, fix)

    # --- Assert ---
    assert review.accepted is False
    assert review.reasons == ["PriorityLevel must be an integer"]


def test_correction_judged_against_configured_priority_bounds(dataset):
    """
    @brief
    A priority inside a widened configured range is accepted.

    @details
    The same value is still an out_of_range error under the default bounds.
    """
    # --- Arrange ---
    ctx = ValidationContext(
        clients=dataset["clients"], workers=dataset["workers"], tasks=dataset["tasks"]
    )
    fix = {**dataset["clients"][0], "PriorityLevel": 7}

    # --- Act ---
    wide_gate = SuggestionGate(ctx, ValidationConfig(priority_max=10))
    wide = wide_gate.review_correction("client", 0, fix)
    default = SuggestionGate(ctx).review_correction("client", 0, fix)

    # --- Assert ---
    assert wide.accepted is True
    assert wide.candidate.priority_level == 7
    assert wide.findings == []
    assert default.accepted is False
    assert [(f.type, f.row_index) for f in default.findings] == [("out_of_range", 0)]


def test_correction_row_out_of_range(gate, dataset):
    with pytest.raises(SuggestionError):
        gate.review_correction("task", 5, dataset["tasks"][0])


def test_request_wraps_source_failures(gate):
    # --- Arrange ---
    source = _StaticSource({"type": "coRun", "parameters": {"tasks": ["T1"]}})

    # --- Act ---
    candidate = gate.request(source, {"prompt": "keep T1 together"})

    # --- Assert ---
    assert candidate["type"] == "coRun"
    assert source.prompts == [{"prompt": "keep T1 together"}]
    with pytest.raises(SuggestionError):
        gate.request(_FailingSource(), {})
    with pytest.raises(SuggestionError):
        gate.request(_StaticSource(["not", "a", "mapping"]), {})
