"""
Accessibility scoring for SVG logos.

`assess_accessibility` grades a document on five weighted criteria (color
contrast, text alternatives, semantic structure, scalability and interactive
elements) and produces improvement suggestions. `apply_accessibility_fixes`
performs the deterministic subset of those improvements.
"""
import html
import logging
import re

from app.agent import svg_markup as sm
from app.agent.artifacts import AccessibilityScore, ValidationResult
from app.agent.cache import LRUCache, cached_call
from app.agent.svg_validator import is_event_handler, validate_svg

logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]

WEIGHTS = {
    "color_contrast": 0.30,
    "text_alternatives": 0.25,
    "semantic_structure": 0.15,
    "scalability": 0.20,
    "interactive_elements": 0.10,
}
SUGGESTION_THRESHOLD = 70

INVALID_SVG_SUGGESTION = "Fix validation errors before assessing accessibility"
DEFAULT_SUGGESTION = (
    "SVG meets basic accessibility standards. For enhanced accessibility, "
    "consider adding more descriptive text alternatives."
)

SHAPE_ELEMENTS = frozenset({"path", "circle", "ellipse", "rect", "line", "polyline", "polygon"})
COLOR_ATTRIBUTES = ("fill", "stroke", "stop-color", "color")
ACCESSIBLE_ATTRIBUTES = ("aria-label", "role", "tabindex", "aria-describedby")

NAMED_COLORS: dict[str, RGB] = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "orange": (255, 165, 0),
    "purple": (128, 0, 128),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
    "silver": (192, 192, 192),
    "navy": (0, 0, 128),
    "teal": (0, 128, 128),
    "maroon": (128, 0, 0),
    "olive": (128, 128, 0),
    "lime": (0, 255, 0),
    "aqua": (0, 255, 255),
    "cyan": (0, 255, 255),
    "fuchsia": (255, 0, 255),
    "magenta": (255, 0, 255),
    "pink": (255, 192, 203),
    "brown": (165, 42, 42),
    "gold": (255, 215, 0),
}

_HEX_RE = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$")
_RGB_RE = re.compile(r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+\s*)?\)$")
_STYLE_DECLARATION_RE = re.compile(r"([\w-]+)\s*:\s*([^;]+)")
_ABSOLUTE_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)(?:px|pt)?$")
_RELATIVE_SIZE_RE = re.compile(r"^\d*\.?\d+(?:em|rem|%)$")
_THIN_STROKE_RE = re.compile(r"^(?:0|0\.\d+|1)$")
_TINY_DIMENSION_RE = re.compile(r"^(?:0\.\d+|[1-3])$")
_PATH_COMMAND_RE = re.compile(r"[MLHVCSQTAZmlhvcsqtaz]")
_INTEGER_FONT_SIZE_RE = re.compile(r"^(\d+)$")


def parse_color(value: str | None) -> RGB | None:
    """Parse a hex, rgb()/rgba() or named color. Gradients, `none` and `currentColor` yield None."""
    if not value:
        return None
    value = value.strip().lower()
    hex_match = _HEX_RE.match(value)
    if hex_match:
        digits = hex_match.group(1)
        if len(digits) == 3:
            digits = "".join(char * 2 for char in digits)
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    rgb_match = _RGB_RE.match(value)
    if rgb_match:
        red, green, blue = (min(255, int(channel)) for channel in rgb_match.groups())
        return red, green, blue
    return NAMED_COLORS.get(value)


def calculate_luminance(color: RGB) -> float:
    """WCAG 2.1 relative luminance."""
    def channel(component: int) -> float:
        c = component / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    red, green, blue = color
    return 0.2126 * channel(red) + 0.7152 * channel(green) + 0.0722 * channel(blue)


def contrast_ratio(first: RGB, second: RGB) -> float:
    lighter, darker = sorted((calculate_luminance(first), calculate_luminance(second)), reverse=True)
    return (lighter + 0.05) / (darker + 0.05)


def _style_properties(token: sm.Token) -> dict[str, str]:
    style = token.attr("style") or ""
    return {name.strip().lower(): value.strip() for name, value in _STYLE_DECLARATION_RE.findall(style)}


def _property(token: sm.Token, name: str) -> str | None:
    value = token.attr(name)
    if value is not None:
        return value
    return _style_properties(token).get(name)


def extract_colors(tokens: list[sm.Token]) -> list[RGB]:
    """Distinct colors used by fill, stroke, stop-color and color, in document order."""
    colors: dict[RGB, None] = {}
    for token in sm.elements(tokens):
        for name in COLOR_ATTRIBUTES:
            color = parse_color(_property(token, name))
            if color is not None:
                colors[color] = None
    return list(colors)


def _contrast_score(tokens: list[sm.Token]) -> int:
    colors = extract_colors(tokens)
    if len(colors) <= 1:
        return 80

    element_tokens = sm.elements(tokens)
    texts = [token for token in element_tokens if token.local_name == "text"]
    if texts:
        text_colors = [
            parse_color(token.attr("fill")) if token.has_attr("fill") else NAMED_COLORS["black"]
            for token in texts
        ]
        backgrounds = []
        for token in element_tokens:
            if token.local_name != "rect":
                continue
            fill = token.attr("fill")
            if fill is None:
                backgrounds.append(NAMED_COLORS["white"])
            elif fill.strip().lower() != "none":
                backgrounds.append(parse_color(fill))
        text_colors = [color for color in text_colors if color] or [NAMED_COLORS["black"]]
        backgrounds = [color for color in backgrounds if color] or [NAMED_COLORS["white"]]
        best = max(contrast_ratio(text, background) for text in text_colors for background in backgrounds)
        if best >= 7:
            return 100
        if best >= 4.5:
            return 80
        if best >= 3:
            return 60
        return 30

    luminances = sorted(calculate_luminance(color) for color in colors)
    ratio = (luminances[-1] + 0.05) / (luminances[0] + 0.05)
    if ratio >= 7:
        score = 90
    elif ratio >= 4.5:
        score = 75
    elif ratio >= 3:
        score = 60
    else:
        score = 40
    adjacent = min((high + 0.05) / (low + 0.05) for low, high in zip(luminances, luminances[1:]))
    if adjacent < 1.5 and len(colors) > 2:
        score -= 15
    return score


def _first_text(tokens: list[sm.Token], name: str) -> str:
    for index, token in enumerate(tokens):
        if token.kind == sm.START and token.local_name == name:
            return sm.text_content(tokens, index).strip()
    return ""


def _text_alternatives_score(tokens: list[sm.Token], root: sm.Token) -> int:
    score = 0
    title = _first_text(tokens, "title")
    desc = _first_text(tokens, "desc")
    if title:
        score += 30
        if len(title) < 3:
            score -= 15
        elif len(title) > 60:
            score -= 5
    if desc:
        score += 30
        if len(desc) < 10:
            score -= 10
    if (root.attr("aria-label") or "").strip():
        score += 20
    if (root.attr("role") or "").strip():
        score += 20
    return score


def _semantic_structure_score(tokens: list[sm.Token], root: sm.Token) -> int:
    score = 50
    element_tokens = sm.elements(tokens)
    groups = [token for token in element_tokens if token.local_name == "g"]
    if groups:
        labeled = sum(1 for g in groups if g.has_attr("aria-label") or g.has_attr("aria-labelledby")) / len(groups)
        if labeled >= 0.8:
            score += 25
        elif labeled >= 0.5:
            score += 15
        elif labeled > 0:
            score += 5
        with_role = sum(1 for g in groups if g.has_attr("role")) / len(groups)
        if with_role >= 0.5:
            score += 20
        elif with_role > 0:
            score += 10
    else:
        shapes = sum(1 for token in element_tokens if token.local_name in SHAPE_ELEMENTS)
        score += 10 if shapes <= 3 else -15

    if root.has_attr("aria-labelledby"):
        score += 15
    if (root.attr("role") or "").strip().lower() == "img":
        score += 10

    depth = sm.max_depth(tokens)
    if depth > 10:
        score -= 20
    elif depth > 7:
        score -= 10
    elif depth > 5:
        score -= 5
    return score


def _font_sizes(tokens: list[sm.Token]) -> list[str]:
    sizes = []
    for token in sm.elements(tokens):
        if token.local_name in ("text", "tspan"):
            size = _property(token, "font-size")
            if size:
                sizes.append(size.strip().lower())
    return sizes


def _complexity(tokens: list[sm.Token]) -> str:
    element_tokens = sm.elements(tokens)
    shapes = sum(1 for token in element_tokens if token.local_name in SHAPE_ELEMENTS)
    complex_paths = sum(
        1
        for token in element_tokens
        if token.local_name == "path" and len(_PATH_COMMAND_RE.findall(token.attr("d") or "")) > 30
    )
    if shapes > 50 or complex_paths > 5:
        return "high"
    if shapes > 20 or complex_paths > 2:
        return "medium"
    return "low"


def _scalability_score(tokens: list[sm.Token], root: sm.Token) -> int:
    score = 70
    if not root.has_attr("viewBox"):
        score -= 50
    if root.has_attr("preserveAspectRatio"):
        score += 10

    sizes = _font_sizes(tokens)
    absolute = [float(match.group(1)) for match in map(_ABSOLUTE_SIZE_RE.match, sizes) if match]
    if any(size < 10 for size in absolute):
        score -= 25
    if any(size > 50 for size in absolute):
        score -= 10
    relative = sum(1 for size in sizes if _RELATIVE_SIZE_RE.match(size))
    if sizes and relative == len(sizes):
        score += 15
    elif relative:
        score += 5

    element_tokens = sm.elements(tokens)
    if any(_THIN_STROKE_RE.match((_property(token, "stroke-width") or "").strip()) for token in element_tokens):
        score -= 15
    if any(
        _TINY_DIMENSION_RE.match((token.attr(name) or "").strip())
        for token in element_tokens
        if token is not root
        for name in ("width", "height", "r")
    ):
        score -= 15

    complexity = _complexity(tokens)
    if complexity == "high":
        score -= 20
    elif complexity == "medium":
        score -= 10
    return score


def _interactive_elements(tokens: list[sm.Token]) -> list[sm.Token]:
    return [
        token
        for token in sm.elements(tokens)
        if token.local_name == "a"
        or any(is_event_handler(attribute) for attribute in token.attrs)
        or (token.attr("cursor") or "").strip().lower() == "pointer"
        or (token.attr("role") or "").strip().lower() in ("button", "link")
    ]


def _has_focus_style(tokens: list[sm.Token]) -> bool:
    return any(
        token.kind == sm.START and token.local_name == "style" and ":focus" in sm.text_content(tokens, index)
        for index, token in enumerate(tokens)
    )


def _interactive_score(tokens: list[sm.Token]) -> int:
    interactive = _interactive_elements(tokens)
    if not interactive:
        return 80

    score = 50
    accessible = sum(1 for token in interactive if any(token.has_attr(name) for name in ACCESSIBLE_ATTRIBUTES))
    share = accessible / len(interactive)
    if share == 1:
        score += 40
    elif share >= 0.75:
        score += 30
    elif share >= 0.5:
        score += 15
    elif share > 0:
        score += 5
    else:
        score -= 20

    score += 10 if any(token.has_attr("tabindex") for token in sm.elements(tokens)) else -15
    if _has_focus_style(tokens):
        score += 10
    return score


def _suggestions(scores: dict[str, int], tokens: list[sm.Token], root: sm.Token) -> list[str]:
    element_tokens = sm.elements(tokens)
    grouped: dict[str, list[str]] = {}

    contrast = scores["color_contrast"]
    if contrast < 50:
        grouped["color_contrast"] = [
            "Increase color contrast to meet WCAG 2.1 AA standards (minimum 4.5:1 for normal text)"
        ]
    else:
        grouped["color_contrast"] = ["Consider improving color contrast for better accessibility"]

    text_alternatives = []
    if not _first_text(tokens, "title"):
        text_alternatives.append("Add a descriptive <title> element for screen readers")
    if not _first_text(tokens, "desc"):
        text_alternatives.append("Add a <desc> element to provide additional context")
    if not root.has_attr("aria-label"):
        text_alternatives.append("Add an aria-label attribute to the SVG element")
    grouped["text_alternatives"] = text_alternatives

    structure = []
    groups = [token for token in element_tokens if token.local_name == "g"]
    labeled = [token for token in groups if token.has_attr("aria-label")]
    if len(groups) > 3 and len(labeled) < len(groups) / 2:
        structure.append("Add aria-label attributes to group elements to improve screen reader navigation")
    if (root.attr("role") or "").strip().lower() != "img":
        structure.append('Add role="img" to the SVG element to ensure proper screen reader interpretation')
    grouped["semantic_structure"] = structure

    scalability = []
    if not root.has_attr("viewBox"):
        scalability.append("Add a viewBox attribute to ensure proper scaling at different sizes")
    if any(_ABSOLUTE_SIZE_RE.match(size) for size in _font_sizes(tokens)):
        scalability.append("Use relative font sizes (em or %) instead of absolute values for better scaling")
    if scores["scalability"] < 50:
        scalability.append("Simplify complex paths or elements that may become illegible at small sizes")
    if any(_THIN_STROKE_RE.match((_property(token, "stroke-width") or "").strip()) for token in element_tokens):
        scalability.append("Increase thin stroke widths to ensure visibility at small sizes")
    grouped["scalability"] = scalability

    interactive_suggestions = []
    interactive = _interactive_elements(tokens)
    if interactive:
        if not any(token.has_attr("tabindex") for token in element_tokens):
            interactive_suggestions.append(
                "Add tabindex attributes to interactive elements for keyboard accessibility"
            )
        if not all(token.has_attr("aria-label") for token in interactive):
            interactive_suggestions.append("Add aria-label to interactive elements to describe their purpose")
        if not _has_focus_style(tokens):
            interactive_suggestions.append(
                "Add focus styles to provide visual indication when elements are focused"
            )
    grouped["interactive_elements"] = interactive_suggestions

    failing = sorted(
        (name for name in WEIGHTS if scores[name] < SUGGESTION_THRESHOLD),
        key=lambda name: (scores[name], -WEIGHTS[name]),
    )
    suggestions = list(dict.fromkeys(text for name in failing for text in grouped[name]))
    return suggestions or [DEFAULT_SUGGESTION]


def _clamp(score: float) -> int:
    return max(0, min(100, round(score)))


def _assess(svg: str, cache: LRUCache | None) -> tuple[ValidationResult, AccessibilityScore]:
    validation = validate_svg(svg, cache=cache)
    tokens = sm.tokenize(svg) if validation.is_valid else []
    root_index = sm.find_root(tokens)
    if not validation.is_valid or root_index is None:
        return validation, AccessibilityScore(
            color_contrast=0,
            text_alternatives=0,
            semantic_structure=0,
            scalability=0,
            interactive_elements=0,
            overall=0,
            suggestions=[INVALID_SVG_SUGGESTION],
        )

    root = tokens[root_index]
    scores = {
        "color_contrast": _clamp(_contrast_score(tokens)),
        "text_alternatives": _clamp(_text_alternatives_score(tokens, root)),
        "semantic_structure": _clamp(_semantic_structure_score(tokens, root)),
        "scalability": _clamp(_scalability_score(tokens, root)),
        "interactive_elements": _clamp(_interactive_score(tokens)),
    }
    overall = _clamp(sum(scores[name] * weight for name, weight in WEIGHTS.items()))
    logger.debug("Accessibility scores %s, overall %s", scores, overall)
    return validation, AccessibilityScore(
        **scores,
        overall=overall,
        suggestions=_suggestions(scores, tokens, root),
    )


def assess_accessibility(
    svg: str, *, cache: LRUCache | None = None
) -> tuple[ValidationResult, AccessibilityScore]:
    """Validate `svg` and grade its accessibility. Invalid documents score zero everywhere."""
    return cached_call(cache, "svg.accessibility", (svg,), lambda: _assess(svg, cache))


def accessibility_feedback(score: AccessibilityScore | None) -> str:
    if score is None:
        return "Unable to assess SVG accessibility."
    if score.overall >= 90:
        feedback = "Excellent accessibility! This SVG meets all major accessibility requirements."
    elif score.overall >= 75:
        feedback = "Good accessibility. This SVG meets most accessibility requirements."
    elif score.overall >= 50:
        feedback = "Moderate accessibility. This SVG meets basic accessibility requirements but could be improved."
    else:
        feedback = "Poor accessibility. This SVG needs significant improvements to meet accessibility standards."
    if score.suggestions:
        feedback += "\n\nSuggested improvements:\n" + "\n".join(f"- {text}" for text in score.suggestions)
    return feedback


def apply_accessibility_fixes(svg: str, brand_name: str) -> tuple[str, list[str]]:
    """
    Apply the deterministic accessibility improvements to `svg`.

    Returns the new markup and a description of each change. Markup without a
    root `<svg>` element is returned unchanged.
    """
    tokens = sm.tokenize(svg)
    root_index = sm.find_root(tokens)
    if root_index is None:
        return svg, []

    brand = html.escape(brand_name.strip() or "Brand")
    modifications: list[str] = []
    root = tokens[root_index]

    if not root.has_attr("role"):
        root = root.with_attr("role", "img")
        modifications.append('Added role="img" to the SVG element')
    if not root.has_attr("aria-label"):
        root = root.with_attr("aria-label", f"{brand} Logo")
        modifications.append("Added aria-label to the SVG element")
    if not root.has_attr("viewBox"):
        width = _ABSOLUTE_SIZE_RE.match((root.attr("width") or "").strip())
        height = _ABSOLUTE_SIZE_RE.match((root.attr("height") or "").strip())
        if width and height:
            view_box = f"0 0 {float(width.group(1)):g} {float(height.group(1)):g}"
        else:
            view_box = "0 0 100 100"
        root = root.with_attr("viewBox", view_box)
        modifications.append("Added viewBox attribute")
    tokens[root_index] = root

    if root.kind == sm.START:
        names = {token.local_name for token in sm.elements(tokens)}
        inserted: list[sm.Token] = []
        if "title" not in names:
            inserted += [
                sm.text_token("\n  "),
                sm.element_token("title"),
                sm.text_token(f"{brand} Logo"),
                sm.end_token("title"),
            ]
            modifications.append("Added title element")
        if "desc" not in names:
            inserted += [
                sm.text_token("\n  "),
                sm.element_token("desc"),
                sm.text_token(f"Logo for {brand}"),
                sm.end_token("desc"),
            ]
            modifications.append("Added desc element")
        tokens[root_index + 1:root_index + 1] = inserted

    labeled_links = widened_strokes = relative_fonts = False
    for index, token in enumerate(tokens):
        if not token.is_element:
            continue
        if token.local_name == "a" and not token.has_attr("aria-label"):
            token = token.with_attr("aria-label", f"{brand} link")
            labeled_links = True
        font_size = _INTEGER_FONT_SIZE_RE.match((token.attr("font-size") or "").strip())
        if font_size and int(font_size.group(1)) < 10:
            token = token.with_attr("font-size", f"{int(font_size.group(1)) / 10:g}em")
            relative_fonts = True
        if _THIN_STROKE_RE.match((token.attr("stroke-width") or "").strip()):
            token = token.with_attr("stroke-width", "1.5")
            widened_strokes = True
        tokens[index] = token

    if labeled_links:
        modifications.append("Added aria-label to links")
    if relative_fonts:
        modifications.append("Converted small font sizes to relative units")
    if widened_strokes:
        modifications.append("Increased thin stroke widths")
    return sm.render(tokens), modifications
