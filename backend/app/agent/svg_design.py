"""
Design quality scoring for SVG logos.

`assess_design_quality` grades a validated document on color harmony,
composition, visual weight, typography and negative space, folds in the
technical scores from validation and suggests improvements. Everything is a
heuristic over the markup itself; nothing is rendered.
"""
import colorsys
import logging
import math
import re
from statistics import mean

from app.agent import svg_markup as sm
from app.agent.artifacts import DesignProcessResult, DesignQualityScore, ValidationResult
from app.agent.cache import LRUCache, cached_call
from app.agent.svg_accessibility import RGB, calculate_luminance, extract_colors
from app.agent.svg_validator import process_svg, validate_svg

logger = logging.getLogger(__name__)

WEIGHTS = {
    "color_harmony": 0.25,
    "composition": 0.25,
    "visual_weight": 0.20,
    "typography": 0.15,
    "negative_space": 0.15,
}
GOLDEN_RATIO = 1.618
# Score given to logos without any text.
TYPOGRAPHY_NOT_APPLICABLE = 80

INVALID_SVG_SUGGESTION = "Fix validation errors before assessing design quality"
DEFAULT_SUGGESTION = "Design meets quality standards. Consider minor refinements for further enhancement."

ViewBox = tuple[float, float, float, float]
Point = tuple[float, float]

_LEADING_NUMBER_RE = re.compile(r"^\s*(-?\d*\.?\d+)")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_COMMAND_POINT_RE = re.compile(r"[A-Za-z]\s*(-?\d+(?:\.\d+)?)\s*,?\s*(-?\d+(?:\.\d+)?)")
_MOVE_POINT_RE = re.compile(r"[Mm]\s*(-?\d+(?:\.\d+)?)\s*,?\s*(-?\d+(?:\.\d+)?)")
_VIEW_BOX_SEPARATOR_RE = re.compile(r"[\s,]+")


def _number(value: str | None) -> float | None:
    if not value:
        return None
    match = _LEADING_NUMBER_RE.match(value)
    return float(match.group(1)) if match else None


def _view_box(root: sm.Token | None) -> ViewBox | None:
    value = root.attr("viewBox") if root is not None else None
    if not value:
        return None
    parts = _VIEW_BOX_SEPARATOR_RE.split(value.strip())
    if len(parts) != 4:
        return None
    try:
        min_x, min_y, width, height = (float(part) for part in parts)
    except ValueError:
        return None
    return min_x, min_y, width, height


def _shapes(tokens: list[sm.Token], name: str) -> list[sm.Token]:
    return [token for token in sm.elements(tokens) if token.local_name == name]


def _path_data(tokens: list[sm.Token]) -> list[str]:
    return [d for d in (token.attr("d") for token in _shapes(tokens, "path")) if d]


def _rect_box(token: sm.Token) -> tuple[float, float, float, float] | None:
    width, height = _number(token.attr("width")), _number(token.attr("height"))
    if width is None or height is None:
        return None
    return _number(token.attr("x")) or 0.0, _number(token.attr("y")) or 0.0, width, height


def _circle_center(token: sm.Token) -> Point:
    return _number(token.attr("cx")) or 0.0, _number(token.attr("cy")) or 0.0


def _clamp(score: float) -> int:
    return max(0, min(100, round(score)))


# ---------------------------------------------------------------------------
# Color harmony
# ---------------------------------------------------------------------------

def hue(color: RGB) -> float:
    """Hue in degrees, 0 for grays."""
    red, green, blue = (channel / 255 for channel in color)
    return colorsys.rgb_to_hls(red, green, blue)[0] * 360


def _is_complementary(first: float, second: float) -> bool:
    return abs(abs(first - second) - 180) <= 20


def detect_harmonies(colors: list[RGB]) -> dict[str, bool]:
    """Which classic color-wheel schemes the palette follows."""
    hues = sorted(hue(color) for color in colors)
    pairs = [(hues[i], hues[j]) for i in range(len(hues)) for j in range(i + 1, len(hues))]

    hue_range = max(hues) - min(hues) if hues else 0
    complementary_pairs = sum(1 for first, second in pairs if _is_complementary(first, second))

    triadic = False
    for i in range(len(hues)):
        for j in range(i + 1, len(hues)):
            for k in range(j + 1, len(hues)):
                first_gap = (hues[j] - hues[i]) % 360
                second_gap = (hues[k] - hues[j]) % 360
                if abs(first_gap - 120) <= 20 and abs(second_gap - 120) <= 20:
                    triadic = True

    return {
        "monochromatic": len({math.floor(value / 10 + 0.5) * 10 for value in hues}) <= 1,
        "analogous": 2 <= len(hues) <= 5 and (hue_range <= 60 or hue_range >= 300),
        "complementary": complementary_pairs >= 1,
        "triadic": triadic,
        "tetradic": len(hues) >= 4 and complementary_pairs >= 2,
    }


def _contrast_adjustment(colors: list[RGB]) -> int:
    if len(colors) < 2:
        return 0
    luminances = [calculate_luminance(color) for color in colors]
    ratio = (max(luminances) + 0.05) / (min(luminances) + 0.05)
    if ratio >= 7:
        return 15
    if ratio >= 4.5:
        return 10
    if ratio >= 3:
        return 0
    return -10


def color_harmony_score(colors: list[RGB]) -> int:
    score = 100
    if len(colors) > 5:
        score -= (len(colors) - 5) * 5

    if len(colors) >= 2:
        harmonies = detect_harmonies(colors)
        if harmonies["monochromatic"]:
            score += 10
        elif harmonies["analogous"]:
            score += 15
        elif harmonies["complementary"]:
            score += 10
        elif harmonies["triadic"] or harmonies["tetradic"]:
            score += 5
        else:
            score -= 20

    return _clamp(score + _contrast_adjustment(colors))


# ---------------------------------------------------------------------------
# Composition and visual weight
# ---------------------------------------------------------------------------

def _move_points(path_data: list[str]) -> list[Point]:
    return [
        (float(match.group(1)), float(match.group(2)))
        for d in path_data
        for match in _MOVE_POINT_RE.finditer(d)
    ]


def _on_rule_of_thirds(path_data: list[str], view_box: ViewBox) -> bool:
    min_x, min_y, width, height = view_box
    intersections = [
        (min_x + width * column / 3, min_y + height * row / 3)
        for row in (1, 2)
        for column in (1, 2)
    ]
    tolerance = min(width, height) * 0.1
    return any(
        math.dist(point, intersection) < tolerance
        for point in _move_points(path_data)
        for intersection in intersections
    )


def _composition_score(tokens: list[sm.Token], view_box: ViewBox | None) -> int:
    score = 70
    if view_box is None:
        return _clamp(score - 20)

    _, _, width, height = view_box
    if height > 0:
        ratio = width / height
        if abs(ratio - GOLDEN_RATIO) < 0.2 or abs(ratio - 1 / GOLDEN_RATIO) < 0.2:
            score += 10
        if abs(ratio - 1) < 0.1:
            score += 5

    path_data = _path_data(tokens)
    coordinates = [float(number) for d in path_data for number in _NUMBER_RE.findall(d)]
    if coordinates:
        spread = max(coordinates) - min(coordinates)
        largest = max(width, height)
        if spread > largest * 0.5:
            score += 10
        elif spread < largest * 0.3:
            score -= 10
        if _on_rule_of_thirds(path_data, view_box):
            score += 10

    return _clamp(score)


def _weight_points(tokens: list[sm.Token]) -> list[Point]:
    points = [
        (float(match.group(1)), float(match.group(2)))
        for d in _path_data(tokens)
        for match in _COMMAND_POINT_RE.finditer(d)
    ]
    points.extend(_circle_center(token) for token in _shapes(tokens, "circle"))
    for token in _shapes(tokens, "rect"):
        box = _rect_box(token)
        if box is not None:
            x, y, width, height = box
            points.append((x + width / 2, y + height / 2))
    return points


def _visual_weight_score(tokens: list[sm.Token], view_box: ViewBox | None) -> int:
    score = 75
    if view_box is None:
        return score

    min_x, min_y, width, height = view_box
    center_x, center_y = min_x + width / 2, min_y + height / 2
    # top-left, top-right, bottom-left, bottom-right
    quadrants = [0, 0, 0, 0]
    for x, y in _weight_points(tokens):
        quadrants[(2 if y >= center_y else 0) + (1 if x >= center_x else 0)] += 1

    total = sum(quadrants)
    if total == 0:
        return score

    deviation = mean(abs(count / total * 100 - 25) for count in quadrants)
    if deviation < 10:
        score += 15
    elif deviation < 20:
        score += 5
    elif deviation > 40:
        score -= 15
    elif deviation > 30:
        score -= 10

    score -= quadrants.count(0) * 5
    return _clamp(score)


# ---------------------------------------------------------------------------
# Typography
# ---------------------------------------------------------------------------

def _attribute_values(tokens: list[sm.Token], name: str) -> list[str]:
    return [value for value in (token.attr(name) for token in sm.elements(tokens)) if value]


def _font_families(tokens: list[sm.Token]) -> set[str]:
    return {family.strip().lower() for family in _attribute_values(tokens, "font-family")}


def _typography_score(tokens: list[sm.Token], view_box: ViewBox | None) -> int:
    texts = _shapes(tokens, "text")
    if not texts:
        return TYPOGRAPHY_NOT_APPLICABLE

    score = 70
    families = _font_families(tokens)
    if len(families) > 2:
        score -= (len(families) - 2) * 10

    sizes = sorted(
        size for size in (_number(value) for value in _attribute_values(tokens, "font-size")) if size is not None
    )
    if len(sizes) > 1 and sizes[0] != 0:
        ratio = sizes[-1] / sizes[0]
        if 1.5 < ratio < 4:
            score += 10
        elif ratio <= 1.2:
            score -= 10
        elif ratio >= 5:
            score -= 5

    too_small = False
    well_positioned = True
    for token in texts:
        size = _number(token.attr("font-size"))
        if size is not None and size < 8:
            too_small = True
        x, y = _number(token.attr("x")), _number(token.attr("y"))
        if x is None or y is None or view_box is None:
            continue
        min_x, min_y, width, height = view_box
        margin = min(width, height) * 0.05
        if not (min_x + margin <= x <= min_x + width - margin and min_y + margin <= y <= min_y + height - margin):
            well_positioned = False

    if too_small:
        score -= 15
    if not well_positioned:
        score -= 10
    if _attribute_values(tokens, "letter-spacing") or _attribute_values(tokens, "kerning"):
        score += 10
    if any(value.strip().lower() in ("start", "middle", "end") for value in _attribute_values(tokens, "text-anchor")):
        score += 5

    return _clamp(score)


# ---------------------------------------------------------------------------
# Negative space
# ---------------------------------------------------------------------------

def _anchor_points(tokens: list[sm.Token]) -> list[Point]:
    points: list[Point] = []
    for token in _shapes(tokens, "rect"):
        box = _rect_box(token)
        if box is not None:
            x, y, width, height = box
            points.append((x + width / 2, y + height / 2))
    points.extend(_circle_center(token) for token in _shapes(tokens, "circle"))
    for d in _path_data(tokens):
        start = _MOVE_POINT_RE.search(d)
        if start:
            points.append((float(start.group(1)), float(start.group(2))))
    return points


def is_clustered(tokens: list[sm.Token], view_box: ViewBox | None) -> bool:
    """True when shapes sit closer together on average than 15% of the canvas size."""
    if view_box is None:
        return False
    points = _anchor_points(tokens)
    if len(points) < 2:
        return False
    _, _, width, height = view_box
    average_distance = mean(
        math.dist(points[i], points[j]) for i in range(len(points)) for j in range(i + 1, len(points))
    )
    return average_distance < (width + height) / 2 * 0.15


def _negative_space_score(tokens: list[sm.Token], view_box: ViewBox | None) -> int:
    score = 70
    if view_box is None:
        return score
    _, _, width, height = view_box
    total_area = width * height
    if total_area <= 0:
        return score

    filled = 0.0
    for token in _shapes(tokens, "rect"):
        box = _rect_box(token)
        if box is not None:
            filled += box[2] * box[3]
    for token in _shapes(tokens, "circle"):
        radius = _number(token.attr("r"))
        if radius is not None:
            filled += math.pi * radius * radius
    # Path areas are not computed; each path counts as 5% of the canvas.
    filled += len(_shapes(tokens, "path")) * total_area * 0.05

    negative = 100 - filled / total_area * 100
    if 40 <= negative <= 70:
        score += 20
    elif 70 < negative <= 85:
        score += 10
    elif negative > 85:
        score -= 10
    elif negative >= 25:
        score -= 5
    else:
        score -= 15

    score += -5 if is_clustered(tokens, view_box) else 10
    return _clamp(score)


# ---------------------------------------------------------------------------
# Assessment
# ---------------------------------------------------------------------------

def _suggestions(
    scores: dict[str, int], colors: list[RGB], tokens: list[sm.Token], view_box: ViewBox | None
) -> list[str]:
    suggestions: list[str] = []

    color_harmony = scores["color_harmony"]
    if color_harmony < 70:
        if len(colors) > 5:
            suggestions.append("Consider reducing the number of colors to 3-5 for better harmony")
        if color_harmony < 50:
            suggestions.append("Apply color theory principles like complementary, analogous, or monochromatic schemes")
        if _contrast_adjustment(colors) < 0:
            suggestions.append("Increase contrast between colors for better visibility and impact")

    composition = scores["composition"]
    if composition < 70:
        if view_box is None:
            suggestions.append("Add a proper viewBox attribute for consistent scaling")
        if composition < 60:
            suggestions.append("Consider applying the golden ratio (1:1.618) or rule of thirds to element placement")
        if composition < 50:
            suggestions.append("Improve overall balance and structure of the composition")

    visual_weight = scores["visual_weight"]
    if visual_weight < 60:
        suggestions.append("Redistribute visual elements for better balance across the design")
    if visual_weight < 50:
        suggestions.append("Create clearer visual hierarchy through size, color, and position variations")

    typography = scores["typography"]
    if _shapes(tokens, "text") and typography < 70:
        if len(_font_families(tokens)) > 2:
            suggestions.append("Limit font families to 1-2 for more cohesive typography")
        if typography < 60:
            suggestions.append("Improve letter spacing and alignment for better typographic quality")
        if typography < 50:
            suggestions.append("Enhance text legibility through better sizing and positioning")

    negative_space = scores["negative_space"]
    if negative_space < 60:
        suggestions.append("Create more intentional use of negative space for balance")
    if negative_space < 50:
        suggestions.append(
            "Reduce element clustering to create better spacing and breathing room"
            if is_clustered(tokens, view_box)
            else "Improve balance between filled areas and negative space"
        )

    return suggestions or [DEFAULT_SUGGESTION]


def technical_quality(validation: ValidationResult) -> int:
    """Mean of the validator's security, accessibility and optimization scores; 0 if any is 0."""
    scores = (validation.security_score, validation.accessibility_score, validation.optimization_score)
    if not all(scores):
        return 0
    return round(mean(scores))


def _assess(svg: str, cache: LRUCache | None) -> tuple[ValidationResult, DesignQualityScore]:
    validation = validate_svg(svg, cache=cache)
    if not validation.is_valid:
        return validation, DesignQualityScore(
            color_harmony=0,
            composition=0,
            visual_weight=0,
            typography=0,
            negative_space=0,
            overall_aesthetic=0,
            technical_quality=0,
            suggestions=[INVALID_SVG_SUGGESTION],
        )

    tokens = sm.tokenize(svg)
    root_index = sm.find_root(tokens)
    view_box = _view_box(tokens[root_index] if root_index is not None else None)
    colors = extract_colors(tokens)

    scores = {
        "color_harmony": color_harmony_score(colors),
        "composition": _composition_score(tokens, view_box),
        "visual_weight": _visual_weight_score(tokens, view_box),
        "typography": _typography_score(tokens, view_box),
        "negative_space": _negative_space_score(tokens, view_box),
    }
    overall = _clamp(sum(scores[name] * weight for name, weight in WEIGHTS.items()))
    logger.debug("Design scores %s, overall %s", scores, overall)
    return validation, DesignQualityScore(
        **scores,
        overall_aesthetic=overall,
        technical_quality=technical_quality(validation),
        suggestions=_suggestions(scores, colors, tokens, view_box),
    )


def assess_design_quality(
    svg: str, *, cache: LRUCache | None = None
) -> tuple[ValidationResult, DesignQualityScore]:
    """Validate `svg` and grade its design. Invalid documents score zero everywhere."""
    return cached_call(cache, "svg.design", (svg,), lambda: _assess(svg, cache))


def process_with_design_assessment(
    svg: str,
    *,
    repair: bool = True,
    optimize: bool = True,
    assess_design: bool = True,
    cache: LRUCache | None = None,
) -> DesignProcessResult:
    """Validate, repair and optimize `svg`, then grade the design of the result."""
    processed = process_svg(svg, repair=repair, optimize=optimize, cache=cache)
    design_quality = None
    if assess_design:
        _, design_quality = assess_design_quality(processed.svg, cache=cache)
    return DesignProcessResult(
        svg=processed.svg,
        validation=processed.validation,
        repair=processed.repair,
        optimization=processed.optimization,
        success=processed.success,
        design_quality=design_quality,
    )
