import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

from pydantic import BaseModel

from app.agent.accessibility_agent import accessibility_stage, automated_accessibility_output
from app.agent.artifacts import (
    AccessibilityInput,
    AccessibilityOutput,
    GenerationResult,
    LogoBrief,
    SelectionInput,
    StageMetrics,
    SVGGenerationInput,
    UniquenessInput,
    UniquenessOutput,
)
from app.agent.base import StageSpec, run_stage
from app.agent.cache import LRUCache
from app.agent.errors import AppError, ErrorCategory, PipelineError, create_app_error, normalize_error, public_error
from app.agent.llm_client import LLMClient
from app.agent.moodboard_agent import moodboard_stage
from app.agent.requirements_agent import requirements_stage
from app.agent.selection_agent import selection_stage
from app.agent.svg_generation_agent import svg_generation_stage
from app.agent.svg_validator import validate_svg
from app.agent.uniqueness_agent import uniqueness_stage
from app.core.config import settings

logger = logging.getLogger(__name__)

STAGE_MESSAGES = {
    "requirements": "Analyzing the brief...",
    "moodboard": "Exploring visual concepts...",
    "selection": "Selecting the strongest concept...",
    "svg_generation": "Drawing the logo...",
    "accessibility": "Checking accessibility...",
    "uniqueness": "Checking uniqueness...",
}


class _Aborted(Exception):
    def __init__(self, error: AppError):
        super().__init__(error.message)
        self.error = error


class _Cancelled(Exception):
    pass


def _event(status: str, **payload: Any) -> str:
    return json.dumps({"status": status, **payload}, default=str)


def _dump(output: Any) -> Any:
    if isinstance(output, BaseModel):
        return output.model_dump(mode="json", by_alias=True)
    return output


def serialize_result(result: GenerationResult, *, debug: bool | None = None) -> dict[str, Any]:
    """JSON payload for a finished run; warnings go through `public_error`."""
    payload = result.model_dump(mode="json", by_alias=True, exclude={"warnings"})
    payload["warnings"] = [public_error(warning, debug=debug) for warning in result.warnings]
    return payload


def default_cache() -> LRUCache:
    return LRUCache(max_size=settings.CACHE_MAX_ENTRIES, ttl_seconds=settings.CACHE_TTL_SECONDS)


class PipelineRun:
    """
    One sequential pass through the six stages. `events()` yields the JSON
    progress events; once it is exhausted `result` or `error` is set.
    """

    def __init__(
        self,
        brief: LogoBrief,
        *,
        client: LLMClient | None = None,
        cache: LRUCache | None = None,
        cancel_event: asyncio.Event | None = None,
    ):
        self.run_id = uuid.uuid4().hex
        self.brief = brief
        self.client = client
        self.cache = cache if cache is not None else default_cache()
        self.cancel_event = cancel_event
        self.metrics: dict[str, StageMetrics] = {}
        self.warnings: list[AppError] = []
        self.result: GenerationResult | None = None
        self.error: AppError | None = None
        self.cancelled = False

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise _Cancelled()

    async def _stage(self, spec: StageSpec, stage_input: Any, outputs: dict[str, Any]) -> AsyncIterator[str]:
        self._check_cancelled()
        yield _event(spec.name, message=STAGE_MESSAGES.get(spec.name, f"Running {spec.name}..."))

        result = await run_stage(spec, stage_input, client=self.client, cache=self.cache)
        self.metrics[spec.name] = result.metrics
        if result.success:
            outputs[spec.name] = result.output
            yield _event(f"{spec.name}_done", artifact=_dump(result.output))
            return

        if spec.critical:
            raise _Aborted(result.error)

        logger.warning("Non-critical stage %s failed; continuing: %s", spec.name, result.error.message)
        self.warnings.append(result.error)
        yield _event("warning", stage=spec.name, message=result.error.message, error=public_error(result.error))

    async def events(self) -> AsyncIterator[str]:
        yield _event("starting", message="Initializing pipeline...", run_id=self.run_id)
        outputs: dict[str, Any] = {}

        try:
            if self.client is None:
                self.client = LLMClient()

            async for event in self._stage(requirements_stage(), self.brief, outputs):
                yield event
            design_spec = outputs["requirements"]

            async for event in self._stage(moodboard_stage(), design_spec, outputs):
                yield event
            moodboard = outputs["moodboard"]

            selection_input = SelectionInput(design_spec=design_spec, concepts=moodboard.concepts)
            async for event in self._stage(selection_stage(), selection_input, outputs):
                yield event
            selection = outputs["selection"]

            svg_input = SVGGenerationInput(design_spec=design_spec, concept=selection.selected_concept)
            async for event in self._stage(svg_generation_stage(), svg_input, outputs):
                yield event
            svg_generation = outputs["svg_generation"]

            accessibility_input = AccessibilityInput(svg=svg_generation.svg, design_spec=design_spec)
            async for event in self._stage(accessibility_stage(), accessibility_input, outputs):
                yield event
            accessibility: AccessibilityOutput | None = outputs.get("accessibility")
            if accessibility is None:
                accessibility = self._fallback_accessibility(accessibility_input)
                if accessibility is not None:
                    yield _event("accessibility_done", artifact=_dump(accessibility), fallback=True)

            final_svg = accessibility.svg if accessibility is not None else svg_generation.svg

            uniqueness: UniquenessOutput | None = None
            if self.brief.include_uniqueness_analysis:
                uniqueness_input = UniquenessInput(
                    svg=final_svg,
                    design_spec=design_spec,
                    existing_logos=self.brief.existing_logos,
                )
                async for event in self._stage(uniqueness_stage(), uniqueness_input, outputs):
                    yield event
                uniqueness = outputs.get("uniqueness")

            self._check_cancelled()
            self.result = GenerationResult(
                run_id=self.run_id,
                brief=self.brief,
                design_spec=design_spec,
                moodboard=moodboard,
                selection=selection,
                svg_generation=svg_generation,
                final_svg=final_svg,
                validation=validate_svg(final_svg, cache=self.cache),
                accessibility=accessibility,
                uniqueness=uniqueness,
                warnings=list(self.warnings),
                metrics=dict(self.metrics),
            )
        except _Cancelled:
            self.cancelled = True
            logger.info("Pipeline %s cancelled before completion.", self.run_id)
            yield _event("cancelled", message="Generation cancelled.", run_id=self.run_id)
            return
        except _Aborted as exc:
            self.error = exc.error
            logger.error("Pipeline %s aborted: %s", self.run_id, exc.error.message)
            yield _event("error", message=exc.error.message, error=public_error(exc.error))
            return
        except Exception as exc:
            self.error = normalize_error(exc, context={"run_id": self.run_id})
            logger.error("Pipeline error: %s", exc, exc_info=True)
            yield _event("error", message=self.error.message, error=public_error(self.error))
            return

        logger.info("Pipeline %s completed with %s warning(s).", self.run_id, len(self.warnings))
        yield _event(
            "completed",
            message="Logo generated successfully!",
            artifact=serialize_result(self.result),
        )

    def _fallback_accessibility(self, stage_input: AccessibilityInput) -> AccessibilityOutput | None:
        try:
            return automated_accessibility_output(stage_input, self.cache)
        except PipelineError as exc:
            logger.warning("Automated accessibility fallback failed: %s", exc.error.message)
            self.warnings.append(exc.error)
            return None


def run_pipeline_generator(
    brief: LogoBrief,
    *,
    client: LLMClient | None = None,
    cache: LRUCache | None = None,
    cancel_event: asyncio.Event | None = None,
) -> AsyncIterator[str]:
    """Yield the JSON progress events of one pipeline run, for SSE streaming."""
    return PipelineRun(brief, client=client, cache=cache, cancel_event=cancel_event).events()


async def run_pipeline(
    brief: LogoBrief,
    *,
    client: LLMClient | None = None,
    cache: LRUCache | None = None,
    cancel_event: asyncio.Event | None = None,
) -> GenerationResult:
    """Run the whole pipeline and return its result, raising PipelineError on a critical failure."""
    run = PipelineRun(brief, client=client, cache=cache, cancel_event=cancel_event)
    async for _ in run.events():
        pass
    if run.result is not None:
        return run.result
    if run.cancelled:
        raise PipelineError(
            create_app_error("Generation was cancelled", category=ErrorCategory.USER_INPUT, retryable=False)
        )
    raise PipelineError(run.error or create_app_error("Pipeline finished without a result"))
