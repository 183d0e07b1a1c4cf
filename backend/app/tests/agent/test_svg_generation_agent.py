import json

import pytest

from app.agent.artifacts import SVGGenerationInput
from app.agent.errors import ErrorCategory, PipelineError
from app.agent.svg_generation_agent import (
    DEFAULT_RATIONALE,
    build_svg_prompt,
    ensure_namespace,
    parse_svg_response,
    strip_unsupported_elements,
)
from app.tests.fakes import SVG_NS, VALID_SVG, concepts, design_spec


@pytest.fixture
def svg_input():
    return SVGGenerationInput(design_spec=design_spec(), concept=concepts()[0])


def test_svg_response_is_hardened(svg_input):
    svg = (
        '<svg width="300" height="300" viewBox="0 0 300 300"><title>Acme</title><desc>Acme logo mark</desc>'
        "<style>.a{fill:red}</style>"
        '<circle cx="150" cy="150" r="100" fill="#1A2B3C" onclick="go()"/></svg>'
    )
    raw = json.dumps(
        {
            "svg": svg,
            "designRationale": "A bold circle.",
            "designPrinciples": {"colorTheory": "Navy conveys trust", "composition": "Centered"},
        }
    )

    output = parse_svg_response(raw, svg_input)

    assert SVG_NS in output.svg
    assert "<style" not in output.svg
    assert "onclick" not in output.svg
    assert output.design_rationale == "A bold circle."
    assert output.design_principles.color_theory == "Navy conveys trust"
    assert output.artifact.validation.is_valid
    assert output.artifact.byte_size == len(output.svg.encode("utf-8"))
    assert output.artifact.design_quality.typography == 80
    assert set(output.model_dump(by_alias=True)) == {"svg", "designRationale", "designPrinciples"}


def test_svg_response_with_bare_markup(svg_input):
    raw = f"Here is your logo:\n{VALID_SVG}\nHope you like it!"

    output = parse_svg_response(raw, svg_input)

    assert output.svg.startswith("<svg")
    assert output.design_rationale == DEFAULT_RATIONALE
    assert output.design_principles is None


def test_svg_response_ignores_malformed_principles(svg_input):
    raw = json.dumps({"svg": VALID_SVG, "designRationale": "Simple.", "designPrinciples": {"composition": 3}})

    output = parse_svg_response(raw, svg_input)

    assert output.design_principles is None


def test_svg_response_without_markup(svg_input):
    with pytest.raises(PipelineError) as exc_info:
        parse_svg_response('{"designRationale": "I forgot the SVG"}', svg_input)

    assert exc_info.value.error.category == ErrorCategory.API
    assert exc_info.value.error.retryable


def test_svg_response_that_cannot_be_repaired(svg_input):
    oversized = f'<svg {SVG_NS} viewBox="0 0 10 10"><desc>{"a" * 16000}</desc></svg>'

    with pytest.raises(PipelineError) as exc_info:
        parse_svg_response(json.dumps({"svg": oversized, "designRationale": "Too much."}), svg_input)

    error = exc_info.value.error
    assert error.category == ErrorCategory.SVG_VALIDATION
    assert error.message == "Generated SVG failed validation and could not be repaired"
    assert "SVG exceeds maximum allowed size of 15KB" in error.context["remaining_issues"]


def test_ensure_namespace():
    assert ensure_namespace("<svg><rect/></svg>") == f"<svg {SVG_NS}><rect/></svg>"
    assert ensure_namespace(VALID_SVG) == VALID_SVG


def test_strip_unsupported_elements():
    svg, removed = strip_unsupported_elements(
        f'<svg {SVG_NS}><image href="x.png"/><g><script>x()</script><rect/></g></svg>'
    )

    assert svg == f"<svg {SVG_NS}><g><rect/></g></svg>"
    assert removed == ["image", "script"]


def test_svg_prompt_includes_the_concept(svg_input):
    prompt = build_svg_prompt(svg_input)

    assert '"name": "Orbit"' in prompt
    assert "#1A2B3C" in prompt
