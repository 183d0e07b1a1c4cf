import json

import pytest
from pydantic import ValidationError

from app.agent.artifacts import SelectionInput
from app.agent.errors import ErrorCategory, PipelineError
from app.agent.selection_agent import build_selection_prompt, match_concept, parse_selection_response
from app.tests.fakes import CONCEPTS_DATA, concepts, design_spec


@pytest.fixture
def selection_input():
    return SelectionInput(design_spec=design_spec(), concepts=concepts())


def test_selection_returns_the_moodboard_instance(selection_input):
    # The model echoes the concept back with colors rewritten as a list.
    echoed = dict(CONCEPTS_DATA[1], colors=["Orange", "Charcoal"])
    raw = json.dumps({"selectedConcept": echoed, "selectionRationale": "Most dynamic.", "score": 87.6})

    output = parse_selection_response(raw, selection_input)

    assert output.selected_concept is selection_input.concepts[1]
    assert output.selected_concept.colors == "Orange energy over charcoal"
    assert output.score == 88


def test_selection_accepts_a_bare_name(selection_input):
    raw = json.dumps({"selectedConcept": "  wave ", "selectionRationale": "Fluid.", "score": 70})

    output = parse_selection_response(raw, selection_input)

    assert output.selected_concept.name == "Wave"


def test_selection_recovers_from_broken_json(selection_input):
    raw = (
        "Here is my choice:\n"
        '{"selectedConcept": {"name": "Orbit", "colors": ["#111111"]}, "selectionRationale": "Most scalable."\n'
        '"score": 90'
    )

    output = parse_selection_response(raw, selection_input)

    assert output.selected_concept.name == "Orbit"
    assert output.selection_rationale == "Most scalable."
    assert output.score == 90


def test_selection_unknown_concept(selection_input):
    raw = json.dumps({"selectedConcept": {"name": "Galaxy"}, "selectionRationale": "New idea.", "score": 99})

    with pytest.raises(PipelineError) as exc_info:
        parse_selection_response(raw, selection_input)

    error = exc_info.value.error
    assert error.category == ErrorCategory.VALIDATION
    assert error.message == "Selected concept does not match any moodboard concept"
    assert error.context["candidates"] == ["Orbit", "Summit", "Wave"]


def test_selection_rejects_boolean_score(selection_input):
    raw = json.dumps({"selectedConcept": {"name": "Orbit"}, "selectionRationale": "Good.", "score": True})

    with pytest.raises(ValidationError):
        parse_selection_response(raw, selection_input)


def test_selection_rejects_out_of_range_score(selection_input):
    raw = json.dumps({"selectedConcept": {"name": "Orbit"}, "selectionRationale": "Good.", "score": 140})

    with pytest.raises(ValidationError):
        parse_selection_response(raw, selection_input)


def test_match_concept_is_case_and_space_insensitive():
    candidates = concepts()
    assert match_concept({"name": "SUMMIT"}, candidates) is candidates[1]
    assert match_concept("", candidates) is None
    assert match_concept(None, candidates) is None


def test_selection_prompt_lists_every_concept(selection_input):
    prompt = build_selection_prompt(selection_input)

    for name in ("Orbit", "Summit", "Wave"):
        assert f'"name": "{name}"' in prompt
