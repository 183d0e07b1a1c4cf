import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator

from app.agent.errors import AppError

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def _whole_score(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("score must be a number, not a boolean")
    if isinstance(value, float):
        return round(value)
    return value


class LogoBrief(BaseModel):
    """Pipeline input as submitted by the UI."""
    brief: str = Field(min_length=1, description="Natural-language description of the brand and the logo wanted")
    image_descriptions: list[str] = Field(default_factory=list, description="Descriptions of reference images")
    industry: str | None = Field(default=None, description="Industry hint supplied by the user")
    existing_logos: list[str] = Field(
        default_factory=list,
        description="SVG markup of existing logos the result should be compared against for uniqueness",
    )
    include_uniqueness_analysis: bool = True


class DesignSpec(BaseModel):
    """Artifact produced by the Requirements stage."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    brand_name: str = Field(min_length=1, description="Extracted brand name")
    brand_description: str = Field(min_length=1, description="Concise description of what the brand is/does")
    style_preferences: str = Field(min_length=1, description="Design style, aesthetics, look and feel")
    color_palette: str = Field(min_length=1, description="Preferred colors or color meanings")
    imagery: str = Field(min_length=1, description="Icons, symbols, or visual elements to include")
    target_audience: str = Field(min_length=1, description="Who the brand targets")
    additional_requests: str = Field(default="", description="Any other specific requests from the brief")
    industry: str | None = Field(default=None, description="Primary industry category (e.g., Technology, Finance)")
    industry_confidence: float | None = Field(default=None, ge=0, le=1)
    uniqueness_level: int | None = Field(default=None, ge=0, le=10)

    @field_validator("industry_confidence", mode="before")
    @classmethod
    def _percent_to_ratio(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool) and 1 < value <= 100:
            return value / 100
        return value


class Concept(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(min_length=1, description="Short, evocative name for the concept")
    description: str = Field(min_length=1, description="The visual concept, its symbolism and how it meets the brief")
    style: str = Field(min_length=1, description="Specific design style (e.g., Geometric Minimalism)")
    colors: str = Field(min_length=1, description="Descriptive summary of the palette and its rationale")
    color_hex_codes: list[str] = Field(min_length=1, description="Explicit hex codes for the palette")
    imagery: str = Field(min_length=1, description="Concrete visual elements and their composition")

    @field_validator("colors", mode="before")
    @classmethod
    def _join_color_list(cls, value: Any) -> Any:
        if isinstance(value, list):
            return ", ".join(str(item) for item in value)
        return value

    @field_validator("color_hex_codes")
    @classmethod
    def _check_hex_codes(cls, value: list[str]) -> list[str]:
        codes = [code.strip() for code in value]
        invalid = [code for code in codes if not HEX_COLOR_RE.match(code)]
        if invalid:
            raise ValueError(f"invalid hex color code(s): {', '.join(invalid)}")
        return codes


class MoodboardOutput(BaseModel):
    """Artifact produced by the Moodboard stage."""
    concepts: list[Concept] = Field(min_length=3)


class SelectionOutput(BaseModel):
    """Artifact produced by the Selection stage."""
    model_config = ConfigDict(populate_by_name=True)

    selected_concept: Concept = Field(alias="selectedConcept")
    selection_rationale: str = Field(alias="selectionRationale", min_length=1)
    score: int = Field(ge=0, le=100)

    round_score = field_validator("score", mode="before")(_whole_score)


class DesignPrinciples(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    color_theory: str = Field(default="", alias="colorTheory")
    composition: str = ""
    visual_weight: str = Field(default="", alias="visualWeight")
    typography: str = ""
    negative_space: str = Field(default="", alias="negativeSpace")


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["security", "validation", "warning", "repair"]
    severity: Literal["low", "medium", "high", "critical"]
    message: str


class ValidationResult(BaseModel):
    """Outcome of the structural/security validator."""
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    violations: dict[str, bool] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)
    security_score: int = Field(ge=0, le=100)
    accessibility_score: int = Field(ge=0, le=100)
    optimization_score: int = Field(ge=0, le=100)

    @model_validator(mode="after")
    def _validity_matches_errors(self) -> "ValidationResult":
        if self.is_valid != (not self.errors):
            raise ValueError("is_valid must be true exactly when there are no errors")
        return self


class RepairResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    svg: str
    is_repaired: bool
    modifications: list[str] = Field(default_factory=list)
    remaining_issues: list[str] = Field(default_factory=list)
    issues_fixed: list[ValidationIssue] = Field(default_factory=list)
    issues_remaining: list[ValidationIssue] = Field(default_factory=list)


class OptimizationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    svg: str
    original_size: int
    optimized_size: int
    reduction_percent: int
    optimizations: list[str] = Field(default_factory=list)


class ProcessResult(BaseModel):
    """Validate -> repair -> optimize outcome for one document."""
    model_config = ConfigDict(frozen=True)

    original: str
    svg: str
    validation: ValidationResult
    repair: RepairResult | None = None
    optimization: OptimizationResult | None = None
    success: bool
    overall_score: int = Field(ge=0, le=100)


class AccessibilityScore(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    color_contrast: int = Field(ge=0, le=100, alias="colorContrast")
    text_alternatives: int = Field(ge=0, le=100, alias="textAlternatives")
    semantic_structure: int = Field(ge=0, le=100, alias="semanticStructure")
    scalability: int = Field(ge=0, le=100)
    interactive_elements: int = Field(ge=0, le=100, alias="interactiveElements")
    overall: int = Field(ge=0, le=100, alias="overallAccessibility")
    suggestions: list[str] = Field(default_factory=list, alias="accessibilitySuggestions")


class DesignQualityScore(BaseModel):
    """Heuristic design grades; `technical_quality` comes from validation."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    color_harmony: int = Field(ge=0, le=100, alias="colorHarmony")
    composition: int = Field(ge=0, le=100)
    visual_weight: int = Field(ge=0, le=100, alias="visualWeight")
    typography: int = Field(ge=0, le=100)
    negative_space: int = Field(ge=0, le=100, alias="negativeSpace")
    overall_aesthetic: int = Field(ge=0, le=100, alias="overallAesthetic")
    technical_quality: int = Field(ge=0, le=100, alias="technicalQuality")
    suggestions: list[str] = Field(default_factory=list, alias="designSuggestions")


class DesignProcessResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    svg: str
    validation: ValidationResult
    repair: RepairResult | None = None
    optimization: OptimizationResult | None = None
    success: bool
    design_quality: DesignQualityScore | None = Field(default=None, alias="designQuality")


class SVGArtifact(BaseModel):
    """A generated SVG document plus the metadata derived from it."""
    model_config = ConfigDict(frozen=True)

    markup: str
    byte_size: int
    validation: ValidationResult
    accessibility: AccessibilityScore | None = None
    design_quality: DesignQualityScore | None = None


class SVGGenerationOutput(BaseModel):
    """Artifact produced by the SVG-Generation stage."""
    model_config = ConfigDict(populate_by_name=True)

    svg: str
    design_rationale: str = Field(alias="designRationale")
    design_principles: DesignPrinciples | None = Field(default=None, alias="designPrinciples")
    artifact: SVGArtifact | None = Field(default=None, exclude=True)


class AccessibilityOutput(BaseModel):
    """Artifact produced by the Accessibility stage."""
    model_config = ConfigDict(populate_by_name=True)

    svg: str
    is_valid: bool = Field(alias="isValid")
    accessibility_score: int = Field(ge=0, le=100, alias="accessibilityScore")
    design_feedback: str = Field(alias="designFeedback")
    modifications: list[str] = Field(default_factory=list)
    accessibility_assessment: AccessibilityScore | None = Field(default=None, alias="accessibilityAssessment")


class SimilarityIssue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = Field(min_length=1)
    severity: Literal["low", "medium", "high"]
    element_type: Literal["shape", "color", "typography", "composition", "concept"] = Field(alias="elementType")
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("severity", "element_type", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class UniquenessOutput(BaseModel):
    """Artifact produced by the Uniqueness stage."""
    model_config = ConfigDict(populate_by_name=True)

    is_unique: StrictBool = Field(alias="isUnique")
    uniqueness_score: int = Field(ge=0, le=100, alias="uniquenessScore")
    similarity_issues: list[SimilarityIssue] = Field(alias="similarityIssues")
    recommendations: list[str]

    round_score = field_validator("uniqueness_score", mode="before")(_whole_score)


class SelectionInput(BaseModel):
    design_spec: DesignSpec
    concepts: list[Concept] = Field(min_length=1)


class SVGGenerationInput(BaseModel):
    design_spec: DesignSpec
    concept: Concept


class AccessibilityInput(BaseModel):
    svg: str
    design_spec: DesignSpec


class UniquenessInput(BaseModel):
    svg: str
    design_spec: DesignSpec
    existing_logos: list[str] = Field(default_factory=list)


class StageMetrics(BaseModel):
    model: str | None = None
    attempts: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    elapsed_seconds: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class GenerationResult(BaseModel):
    """Everything the UI needs once a pipeline run completes."""
    run_id: str
    brief: LogoBrief
    design_spec: DesignSpec
    moodboard: MoodboardOutput
    selection: SelectionOutput
    svg_generation: SVGGenerationOutput
    final_svg: str
    validation: ValidationResult
    accessibility: AccessibilityOutput | None = None
    uniqueness: UniquenessOutput | None = None
    warnings: list[AppError] = Field(default_factory=list)
    metrics: dict[str, StageMetrics] = Field(default_factory=dict)
