"""
The contract every pipeline stage follows.

A stage is described by a `StageSpec` (prompts, parser, model settings) and
executed by `run_stage`, which owns the model call, response parsing and the
conversion of any failure into a `StageFailure`.
"""
import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from app.agent.artifacts import StageMetrics
from app.agent.cache import LRUCache
from app.agent.errors import AppError, ErrorCategory, PipelineError, api_error, normalize_error
from app.agent.json_recovery import DEFAULT_FALLBACK_KEYS, safe_json_parse
from app.agent.llm_client import LLMClient

logger = logging.getLogger(__name__)

InType = TypeVar("InType")
OutType = TypeVar("OutType")

# Failures that mean the model produced a bad response rather than the call failing.
REGENERABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.VALIDATION,
        ErrorCategory.API,
        ErrorCategory.SVG_PARSING,
        ErrorCategory.SVG_VALIDATION,
    }
)


@dataclass(frozen=True)
class StageSpec(Generic[InType, OutType]):
    name: str
    system_prompt: str
    build_prompt: Callable[[InType, LRUCache | None], str]
    parse_response: Callable[[str, InType, LRUCache | None], OutType]
    resolve_locally: Callable[[InType, LRUCache | None], OutType | None] | None = None
    model: str | None = None
    fallback_models: tuple[str, ...] = ()
    temperature: float | None = None
    max_tokens: int | None = None
    critical: bool = True
    max_regenerations: int = 0


@dataclass
class StageSuccess(Generic[OutType]):
    stage: str
    output: OutType
    metrics: StageMetrics = field(default_factory=StageMetrics)
    success: Literal[True] = True


@dataclass
class StageFailure:
    stage: str
    error: AppError
    metrics: StageMetrics = field(default_factory=StageMetrics)
    success: Literal[False] = False


StageResult = StageSuccess[Any] | StageFailure


def parse_json_response(raw_text: str, *, stage: str, fallback_keys=DEFAULT_FALLBACK_KEYS) -> dict[str, Any]:
    """Recover the JSON object in a model response or raise a retryable `api` error."""
    data = safe_json_parse(raw_text, fallback_keys=fallback_keys)
    if data is None:
        raise PipelineError(
            api_error(
                f"Could not parse the {stage} response as JSON",
                retryable=True,
                stage=stage,
                response_preview=(raw_text or "")[:200],
            )
        )
    return data


async def run_stage(
    spec: StageSpec[InType, OutType],
    stage_input: InType,
    *,
    client: LLMClient,
    cache: LRUCache | None = None,
) -> StageResult:
    """Execute one stage. Never raises except for cancellation."""
    metrics = StageMetrics(model=spec.model or client.model_name)
    started = time.perf_counter()

    try:
        if spec.resolve_locally is not None:
            local_output = spec.resolve_locally(stage_input, cache)
            if local_output is not None:
                metrics.elapsed_seconds = time.perf_counter() - started
                logger.info("Stage %s resolved locally without a model call.", spec.name)
                return StageSuccess(stage=spec.name, output=local_output, metrics=metrics)

        user_prompt = spec.build_prompt(stage_input, cache)
        regenerations = 0
        while True:
            logger.info("Running stage %s (generation %s/%s)...", spec.name, regenerations + 1, spec.max_regenerations + 1)
            response = await client.invoke(
                spec.system_prompt,
                user_prompt,
                model=spec.model,
                fallback_models=spec.fallback_models,
                temperature=spec.temperature,
                max_tokens=spec.max_tokens,
            )
            metrics.model = response.model
            metrics.attempts += response.attempts
            metrics.prompt_tokens += response.prompt_tokens
            metrics.completion_tokens += response.completion_tokens

            try:
                output = spec.parse_response(response.text, stage_input, cache)
                break
            except Exception as exc:
                error = normalize_error(exc)
                if error.category not in REGENERABLE_CATEGORIES or regenerations >= spec.max_regenerations:
                    raise
                regenerations += 1
                logger.warning(
                    "Stage %s produced an unusable response (%s). Regenerating (%s/%s)...",
                    spec.name,
                    error.message,
                    regenerations,
                    spec.max_regenerations,
                )
    except asyncio.CancelledError:
        logger.info("Stage %s cancelled.", spec.name)
        raise
    except Exception as exc:
        metrics.elapsed_seconds = time.perf_counter() - started
        error = normalize_error(exc, context={"stage": spec.name})
        logger.error("Stage %s failed [%s]: %s", spec.name, error.code.value, error.message)
        return StageFailure(stage=spec.name, error=error, metrics=metrics)

    metrics.elapsed_seconds = time.perf_counter() - started
    logger.info("Stage %s completed in %.2fs.", spec.name, metrics.elapsed_seconds)
    return StageSuccess(stage=spec.name, output=output, metrics=metrics)
