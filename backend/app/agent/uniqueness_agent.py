from app.agent.artifacts import UniquenessInput, UniquenessOutput
from app.agent.base import StageSpec, parse_json_response
from app.agent.cache import LRUCache
from app.agent.prompts.uniqueness import UNIQUENESS_SYSTEM_PROMPT
from app.core.config import settings

UNIQUENESS_FALLBACK_KEYS = ("isUnique", "uniquenessScore")
# Caps on the comparison logos included in the prompt.
MAX_EXISTING_LOGOS = 5
MAX_EXISTING_LOGO_CHARS = 4000


def build_uniqueness_prompt(stage_input: UniquenessInput, cache: LRUCache | None = None) -> str:
    spec = stage_input.design_spec
    prompt = (
        "Assess how distinctive this logo is.\n\n"
        f"# Brand:\n{spec.brand_name}: {spec.brand_description}\n"
        f"Industry: {spec.industry or 'unspecified'}\n\n"
        f"# Generated SVG:\n{stage_input.svg}"
    )
    existing = stage_input.existing_logos[:MAX_EXISTING_LOGOS]
    if existing:
        prompt += "\n\n# Existing Logos To Compare Against:"
        for index, logo in enumerate(existing, start=1):
            prompt += f"\n\n## Logo {index}\n{logo[:MAX_EXISTING_LOGO_CHARS]}"
    else:
        prompt += (
            "\n\nNo existing logos were supplied; compare against well-known logos in the "
            f"{spec.industry or 'same'} industry."
        )
    return prompt


def parse_uniqueness_response(
    raw_text: str, stage_input: UniquenessInput, cache: LRUCache | None = None
) -> UniquenessOutput:
    data = parse_json_response(raw_text, stage="uniqueness", fallback_keys=UNIQUENESS_FALLBACK_KEYS)
    return UniquenessOutput.model_validate(data)


def uniqueness_stage() -> StageSpec[UniquenessInput, UniquenessOutput]:
    return StageSpec(
        name="uniqueness",
        system_prompt=UNIQUENESS_SYSTEM_PROMPT,
        build_prompt=build_uniqueness_prompt,
        parse_response=parse_uniqueness_response,
        model=settings.MODEL_UNIQUENESS,
        fallback_models=tuple(settings.MODEL_FALLBACKS),
        temperature=0.3,
        max_tokens=2000,
        critical=False,
        max_regenerations=1,
    )
