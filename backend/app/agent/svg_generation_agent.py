import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from app.agent import svg_markup as sm
from app.agent.artifacts import DesignPrinciples, SVGGenerationInput, SVGGenerationOutput
from app.agent.base import StageSpec
from app.agent.cache import LRUCache
from app.agent.errors import PipelineError, api_error, svg_error
from app.agent.json_recovery import safe_json_parse
from app.agent.prompts.svg_generation import SVG_ALLOWED_ELEMENTS, SVG_GENERATION_SYSTEM_PROMPT
from app.agent.svg_design import assess_design_quality
from app.agent.svg_validator import build_artifact, process_svg
from app.core.config import settings

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
DEFAULT_RATIONALE = "Design rationale not available due to parsing error."

ALLOWED_ELEMENTS = frozenset(name.lower() for name in SVG_ALLOWED_ELEMENTS)
SVG_FALLBACK_KEYS = ("svg", "designRationale", "designPrinciples")

_SVG_MARKUP_RE = re.compile(r"<svg[\s\S]*</svg>", re.IGNORECASE)
_RATIONALE_RE = re.compile(r'"designRationale"\s*:\s*"((?:[^"\\]|\\.)*)"')


def build_svg_prompt(stage_input: SVGGenerationInput, cache: LRUCache | None = None) -> str:
    return (
        "Create the SVG logo for this brand using the selected concept.\n\n"
        f"# Design Specification:\n{json.dumps(stage_input.design_spec.model_dump(), indent=2)}\n\n"
        f"# Selected Concept:\n{json.dumps(stage_input.concept.model_dump(), indent=2)}"
    )


def ensure_namespace(svg: str) -> str:
    """Add the SVG namespace to the root element when the model left it out."""
    tokens = sm.tokenize(svg)
    root_index = sm.find_root(tokens)
    if root_index is None or tokens[root_index].has_attr("xmlns"):
        return svg
    tokens[root_index] = tokens[root_index].with_attr("xmlns", SVG_NAMESPACE)
    return sm.render(tokens)


def strip_unsupported_elements(svg: str) -> tuple[str, list[str]]:
    """Drop every element outside the logo element whitelist."""
    tokens, removed = sm.drop_elements(sm.tokenize(svg), lambda token: token.local_name not in ALLOWED_ELEMENTS)
    if not removed:
        return svg, []
    return sm.render(tokens), list(dict.fromkeys(removed))


def _extract_markup(raw_text: str) -> dict[str, Any]:
    data = safe_json_parse(raw_text, fallback_keys=SVG_FALLBACK_KEYS) or {}
    if isinstance(data.get("svg"), str) and "<svg" in data["svg"].lower():
        return data

    # Models sometimes answer with bare markup or JSON too broken to recover.
    match = _SVG_MARKUP_RE.search(raw_text or "")
    if match is None:
        raise PipelineError(
            api_error(
                "SVG generation response did not contain SVG markup",
                retryable=True,
                stage="svg_generation",
                response_preview=(raw_text or "")[:200],
            )
        )
    rationale = _RATIONALE_RE.search(raw_text)
    logger.warning("Falling back to extracting SVG markup directly from the model response.")
    return {
        "svg": match.group(0),
        "designRationale": rationale.group(1) if rationale else DEFAULT_RATIONALE,
        "designPrinciples": data.get("designPrinciples"),
    }


def _design_principles(value: Any) -> DesignPrinciples | None:
    if not isinstance(value, dict):
        return None
    # Optional block; malformed principles are dropped.
    try:
        return DesignPrinciples.model_validate(value)
    except ValidationError as exc:
        logger.warning("Ignoring malformed designPrinciples: %s", exc.error_count())
        return None


def parse_svg_response(
    raw_text: str, stage_input: SVGGenerationInput, cache: LRUCache | None = None
) -> SVGGenerationOutput:
    """Extract the SVG and harden it; only a document that validates is accepted."""
    data = _extract_markup(raw_text)
    svg = ensure_namespace(data["svg"].strip())

    svg, removed = strip_unsupported_elements(svg)
    if removed:
        logger.warning("Removed unsupported SVG elements: %s", ", ".join(removed))

    processed = process_svg(svg, cache=cache)
    if not processed.success:
        remaining = processed.repair.remaining_issues if processed.repair else processed.validation.errors
        raise PipelineError(
            svg_error(
                "Generated SVG failed validation and could not be repaired",
                stage="svg_generation",
                remaining_issues=list(remaining),
            )
        )

    return SVGGenerationOutput(
        svg=processed.svg,
        design_rationale=str(data.get("designRationale") or DEFAULT_RATIONALE),
        design_principles=_design_principles(data.get("designPrinciples")),
        artifact=build_artifact(
            processed.svg,
            validation=processed.validation,
            design_quality=assess_design_quality(processed.svg, cache=cache)[1],
            cache=cache,
        ),
    )


def svg_generation_stage() -> StageSpec[SVGGenerationInput, SVGGenerationOutput]:
    return StageSpec(
        name="svg_generation",
        system_prompt=SVG_GENERATION_SYSTEM_PROMPT,
        build_prompt=build_svg_prompt,
        parse_response=parse_svg_response,
        model=settings.MODEL_SVG,
        fallback_models=tuple(settings.MODEL_FALLBACKS),
        temperature=0.5,
        max_tokens=4000,
        critical=True,
        max_regenerations=1,
    )
