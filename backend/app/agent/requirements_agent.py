from app.agent.artifacts import DesignSpec, LogoBrief
from app.agent.base import StageSpec, parse_json_response
from app.agent.cache import LRUCache
from app.agent.prompts.requirements import REQUIREMENTS_SYSTEM_PROMPT
from app.core.config import settings

REQUIRED_KEYS = (
    "brand_name",
    "brand_description",
    "style_preferences",
    "color_palette",
    "imagery",
    "target_audience",
    "additional_requests",
    "industry",
    "industry_confidence",
    "uniqueness_level",
)


def build_requirements_prompt(brief: LogoBrief, cache: LRUCache | None = None) -> str:
    prompt = (
        "Analyze this logo brief and extract the key design requirements as structured JSON.\n\n"
        f"# Logo Brief:\n{brief.brief.strip()}"
    )
    if brief.image_descriptions:
        prompt += (
            "\n\n# Reference Images:\nThe client also provided reference images with these descriptions:\n- "
            + "\n- ".join(brief.image_descriptions)
        )
    if brief.industry:
        prompt += f"\n\n# Industry:\nThe client says the brand belongs to: {brief.industry}"
    return prompt


def parse_requirements_response(raw_text: str, brief: LogoBrief, cache: LRUCache | None = None) -> DesignSpec:
    """
    Validate the model's specification. An industry hint from the client wins
    over a missing industry in the response.
    """
    data = parse_json_response(raw_text, stage="requirements", fallback_keys=REQUIRED_KEYS)
    if brief.industry and not data.get("industry"):
        data["industry"] = brief.industry
    return DesignSpec.model_validate(data)


def requirements_stage() -> StageSpec[LogoBrief, DesignSpec]:
    return StageSpec(
        name="requirements",
        system_prompt=REQUIREMENTS_SYSTEM_PROMPT,
        build_prompt=build_requirements_prompt,
        parse_response=parse_requirements_response,
        model=settings.MODEL_REQUIREMENTS,
        fallback_models=tuple(settings.MODEL_FALLBACKS),
        temperature=0.2,
        max_tokens=1500,
        critical=True,
        max_regenerations=1,
    )
