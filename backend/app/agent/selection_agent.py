import json
import logging
from typing import Any

from app.agent.artifacts import Concept, SelectionInput, SelectionOutput
from app.agent.base import StageSpec, parse_json_response
from app.agent.cache import LRUCache
from app.agent.errors import PipelineError, validation_error
from app.agent.prompts.selection import SELECTION_SYSTEM_PROMPT
from app.core.config import settings

logger = logging.getLogger(__name__)

SELECTION_FALLBACK_KEYS = ("selectedConcept", "selectionRationale", "score")


def build_selection_prompt(stage_input: SelectionInput, cache: LRUCache | None = None) -> str:
    concepts = [concept.model_dump() for concept in stage_input.concepts]
    return (
        "Choose the strongest logo concept for this brand.\n\n"
        f"# Design Specification:\n{json.dumps(stage_input.design_spec.model_dump(), indent=2)}\n\n"
        f"# Candidate Concepts:\n{json.dumps(concepts, indent=2)}"
    )


def _normalize_name(value: Any) -> str:
    return " ".join(str(value).split()).casefold()


def match_concept(selected: Any, concepts: list[Concept]) -> Concept | None:
    """Find the moodboard concept the model picked, by name."""
    if isinstance(selected, dict):
        selected = selected.get("name")
    if not isinstance(selected, str) or not selected.strip():
        return None
    wanted = _normalize_name(selected)
    for concept in concepts:
        if _normalize_name(concept.name) == wanted:
            return concept
    return None


def parse_selection_response(
    raw_text: str, stage_input: SelectionInput, cache: LRUCache | None = None
) -> SelectionOutput:
    """
    The selected concept is always the moodboard's own instance. Models often
    rewrite fields of the concept they copy back (colors as a list, trimmed
    descriptions), so only the name is trusted.
    """
    data = parse_json_response(raw_text, stage="selection", fallback_keys=SELECTION_FALLBACK_KEYS)
    selected = data.get("selectedConcept")
    concept = match_concept(selected, stage_input.concepts)
    if concept is None:
        name = selected.get("name") if isinstance(selected, dict) else selected
        raise PipelineError(
            validation_error(
                "Selected concept does not match any moodboard concept",
                selected=name,
                candidates=[candidate.name for candidate in stage_input.concepts],
            )
        )
    logger.info("Selection stage picked concept %r.", concept.name)
    return SelectionOutput.model_validate(
        {
            "selectedConcept": concept,
            "selectionRationale": data.get("selectionRationale"),
            "score": data.get("score"),
        }
    )


def selection_stage() -> StageSpec[SelectionInput, SelectionOutput]:
    return StageSpec(
        name="selection",
        system_prompt=SELECTION_SYSTEM_PROMPT,
        build_prompt=build_selection_prompt,
        parse_response=parse_selection_response,
        model=settings.MODEL_SELECTION,
        fallback_models=tuple(settings.MODEL_FALLBACKS),
        temperature=0.3,
        max_tokens=1500,
        critical=True,
        max_regenerations=1,
    )
