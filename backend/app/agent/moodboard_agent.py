import json

from app.agent.artifacts import DesignSpec, MoodboardOutput
from app.agent.base import StageSpec, parse_json_response
from app.agent.cache import LRUCache
from app.agent.prompts.moodboard import MOODBOARD_SYSTEM_PROMPT
from app.core.config import settings


def build_moodboard_prompt(design_spec: DesignSpec, cache: LRUCache | None = None) -> str:
    return (
        "Create three distinct logo concepts for this design specification.\n\n"
        f"# Design Specification:\n{json.dumps(design_spec.model_dump(), indent=2)}"
    )


def parse_moodboard_response(raw_text: str, design_spec: DesignSpec, cache: LRUCache | None = None) -> MoodboardOutput:
    data = parse_json_response(raw_text, stage="moodboard", fallback_keys=())
    return MoodboardOutput.model_validate(data)


def moodboard_stage() -> StageSpec[DesignSpec, MoodboardOutput]:
    return StageSpec(
        name="moodboard",
        system_prompt=MOODBOARD_SYSTEM_PROMPT,
        build_prompt=build_moodboard_prompt,
        parse_response=parse_moodboard_response,
        model=settings.MODEL_MOODBOARD,
        fallback_models=tuple(settings.MODEL_FALLBACKS),
        temperature=0.7,
        max_tokens=2500,
        critical=True,
        max_regenerations=1,
    )
