import json
import logging
import re
from typing import Any

from app.agent.artifacts import AccessibilityInput, AccessibilityOutput, AccessibilityScore
from app.agent.base import StageSpec
from app.agent.cache import LRUCache
from app.agent.errors import PipelineError, svg_error
from app.agent.json_recovery import safe_json_parse
from app.agent.prompts.accessibility import ACCESSIBILITY_SYSTEM_PROMPT
from app.agent.svg_accessibility import accessibility_feedback, apply_accessibility_fixes, assess_accessibility
from app.agent.svg_validator import process_svg
from app.core.config import settings

logger = logging.getLogger(__name__)

# Logos already scoring at least this well are accepted without a model call.
GOOD_ENOUGH_SCORE = 80

AI_IMPROVEMENTS = "Applied AI-based accessibility improvements"
AUTOMATED_IMPROVEMENTS = "Applied automated accessibility improvements"

_SVG_MARKUP_RE = re.compile(r"<svg[\s\S]*</svg>", re.IGNORECASE)


def _output(svg: str, assessment: AccessibilityScore, modifications: list[str]) -> AccessibilityOutput:
    return AccessibilityOutput(
        svg=svg,
        is_valid=True,
        accessibility_score=assessment.overall,
        design_feedback=accessibility_feedback(assessment),
        modifications=modifications,
        accessibility_assessment=assessment,
    )


def _assess_valid(svg: str, cache: LRUCache | None) -> AccessibilityScore:
    validation, assessment = assess_accessibility(svg, cache=cache)
    if not validation.is_valid:
        raise PipelineError(
            svg_error(
                "Cannot assess accessibility of an invalid SVG",
                stage="accessibility",
                errors=list(validation.errors),
            )
        )
    return assessment


def resolve_accessibility_locally(
    stage_input: AccessibilityInput, cache: LRUCache | None = None
) -> AccessibilityOutput | None:
    assessment = _assess_valid(stage_input.svg, cache)
    if assessment.overall >= GOOD_ENOUGH_SCORE:
        logger.info("SVG already scores %s for accessibility; skipping improvements.", assessment.overall)
        return _output(stage_input.svg, assessment, [])
    return None


def automated_accessibility_output(
    stage_input: AccessibilityInput, cache: LRUCache | None = None
) -> AccessibilityOutput:
    """Deterministic improvements, also used when the model is unavailable."""
    fixed, modifications = apply_accessibility_fixes(stage_input.svg, stage_input.design_spec.brand_name)
    processed = process_svg(fixed, cache=cache)
    if not processed.success:
        logger.warning("Automated accessibility fixes produced an invalid SVG; keeping the original.")
        return _output(stage_input.svg, _assess_valid(stage_input.svg, cache), [])
    assessment = _assess_valid(processed.svg, cache)
    return _output(processed.svg, assessment, [AUTOMATED_IMPROVEMENTS, *modifications])


def build_accessibility_prompt(stage_input: AccessibilityInput, cache: LRUCache | None = None) -> str:
    _, assessment = assess_accessibility(stage_input.svg, cache=cache)
    return (
        f"Improve the accessibility of this SVG logo for the brand \"{stage_input.design_spec.brand_name}\".\n\n"
        f"# Current SVG:\n{stage_input.svg}\n\n"
        f"# Automated Assessment:\n{json.dumps(assessment.model_dump(by_alias=True), indent=2)}"
    )


def _candidate_svg(raw_text: str) -> tuple[str | None, list[str]]:
    data = safe_json_parse(raw_text, fallback_keys=("svg",)) or {}
    svg = data.get("svg")
    if not isinstance(svg, str) or "<svg" not in svg.lower():
        match = _SVG_MARKUP_RE.search(raw_text or "")
        svg = match.group(0) if match else None
    reported: Any = data.get("modifications")
    modifications = [str(item) for item in reported] if isinstance(reported, list) else []
    return svg, modifications


def parse_accessibility_response(
    raw_text: str, stage_input: AccessibilityInput, cache: LRUCache | None = None
) -> AccessibilityOutput:
    """
    Accept the model's SVG only if it validates and scores better than the
    original; otherwise fall back to the automated improvements.
    """
    baseline = _assess_valid(stage_input.svg, cache)
    candidate, reported = _candidate_svg(raw_text)
    if candidate:
        processed = process_svg(candidate.strip(), cache=cache)
        if processed.success:
            validation, assessment = assess_accessibility(processed.svg, cache=cache)
            if validation.is_valid and assessment.overall > baseline.overall:
                logger.info("Accepted model accessibility improvements (%s -> %s).", baseline.overall, assessment.overall)
                return _output(processed.svg, assessment, [AI_IMPROVEMENTS, *reported])
            logger.info(
                "Model accessibility improvements did not raise the score (%s -> %s).",
                baseline.overall,
                assessment.overall,
            )
        else:
            logger.warning("Model returned an SVG that could not be validated; using automated fixes.")
    return automated_accessibility_output(stage_input, cache)


def accessibility_stage() -> StageSpec[AccessibilityInput, AccessibilityOutput]:
    return StageSpec(
        name="accessibility",
        system_prompt=ACCESSIBILITY_SYSTEM_PROMPT,
        build_prompt=build_accessibility_prompt,
        parse_response=parse_accessibility_response,
        resolve_locally=resolve_accessibility_locally,
        model=settings.MODEL_ACCESSIBILITY,
        fallback_models=tuple(settings.MODEL_FALLBACKS),
        temperature=0.2,
        max_tokens=4000,
        critical=False,
    )
