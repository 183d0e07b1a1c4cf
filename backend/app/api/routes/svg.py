"""Deterministic SVG hardening tools, useful for testing prompts and debugging model output."""
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.agent.artifacts import (
    AccessibilityScore,
    DesignProcessResult,
    DesignQualityScore,
    OptimizationResult,
    ProcessResult,
    RepairResult,
    ValidationResult,
)
from app.agent.json_recovery import DEFAULT_FALLBACK_KEYS, safe_json_parse
from app.agent.svg_accessibility import accessibility_feedback, assess_accessibility
from app.agent.svg_design import assess_design_quality, process_with_design_assessment
from app.agent.svg_validator import optimize_svg, process_svg, repair_svg, validate_svg
from app.api.deps import CacheDep

router = APIRouter()


class SVGRequest(BaseModel):
    svg: str


class ProcessSVGRequest(SVGRequest):
    repair: bool = True
    optimize: bool = True


class AccessibilityReport(BaseModel):
    validation: ValidationResult
    assessment: AccessibilityScore
    feedback: str


class DesignReport(BaseModel):
    validation: ValidationResult
    assessment: DesignQualityScore


class ProcessDesignRequest(ProcessSVGRequest):
    assess_design: bool = True


class RecoverJSONRequest(BaseModel):
    text: str
    fallback_keys: list[str] = Field(default_factory=lambda: list(DEFAULT_FALLBACK_KEYS))


class RecoverJSONResponse(BaseModel):
    recovered: bool
    data: dict[str, Any] | None = None


@router.post("/validate", response_model=ValidationResult)
def validate(payload: SVGRequest, cache: CacheDep) -> ValidationResult:
    return validate_svg(payload.svg, cache=cache)


@router.post("/repair", response_model=RepairResult)
def repair(payload: SVGRequest, cache: CacheDep) -> RepairResult:
    return repair_svg(payload.svg, cache=cache)


@router.post("/optimize", response_model=OptimizationResult)
def optimize(payload: SVGRequest, cache: CacheDep) -> OptimizationResult:
    return optimize_svg(payload.svg, cache=cache)


@router.post("/process", response_model=ProcessResult)
def process(payload: ProcessSVGRequest, cache: CacheDep) -> ProcessResult:
    return process_svg(payload.svg, repair=payload.repair, optimize=payload.optimize, cache=cache)


@router.post("/accessibility", response_model=AccessibilityReport, response_model_by_alias=True)
def accessibility(payload: SVGRequest, cache: CacheDep) -> AccessibilityReport:
    validation, assessment = assess_accessibility(payload.svg, cache=cache)
    return AccessibilityReport(
        validation=validation,
        assessment=assessment,
        feedback=accessibility_feedback(assessment),
    )


@router.post("/design", response_model=DesignReport, response_model_by_alias=True)
def design(payload: SVGRequest, cache: CacheDep) -> DesignReport:
    validation, assessment = assess_design_quality(payload.svg, cache=cache)
    return DesignReport(validation=validation, assessment=assessment)


@router.post("/process-design", response_model=DesignProcessResult, response_model_by_alias=True)
def process_design(payload: ProcessDesignRequest, cache: CacheDep) -> DesignProcessResult:
    return process_with_design_assessment(
        payload.svg,
        repair=payload.repair,
        optimize=payload.optimize,
        assess_design=payload.assess_design,
        cache=cache,
    )


@router.post("/recover-json", response_model=RecoverJSONResponse)
def recover_json(payload: RecoverJSONRequest) -> RecoverJSONResponse:
    data = safe_json_parse(payload.text, fallback_keys=payload.fallback_keys)
    return RecoverJSONResponse(recovered=data is not None, data=data)
