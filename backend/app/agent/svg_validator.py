"""
Structural and security checks for model-generated SVG, plus the repair and
optimization passes that run before a document is accepted.

Every function here is pure: inputs are never modified and the same markup
always yields the same result, which is what makes the results cacheable.
"""
import logging
import re
from collections.abc import Callable
from statistics import mean

from app.agent import svg_markup as sm
from app.agent.artifacts import (
    AccessibilityScore,
    DesignQualityScore,
    OptimizationResult,
    ProcessResult,
    RepairResult,
    SVGArtifact,
    ValidationIssue,
    ValidationResult,
)
from app.agent.cache import LRUCache, cached_call

logger = logging.getLogger(__name__)

MAX_SVG_BYTES = 15 * 1024
MAX_NODE_COUNT = 1000
MAX_NESTING_DEPTH = 20

DISALLOWED_ELEMENTS = frozenset({
    "foreignobject",
    "iframe",
    "use",
    "embed",
    "object",
    "audio",
    "video",
    "animate",
    "set",
    "animatetransform",
    "animatemotion",
})
DISALLOWED_ATTRIBUTES = frozenset({"href", "xlink:href", "eval", "javascript", "data"})
DISALLOWED_PROTOCOLS = ("javascript", "data", "vbscript", "file")
URL_ATTRIBUTES = frozenset({"href", "xlink:href", "src", "data"})
REQUIRED_ROOT_ATTRIBUTES = ("width", "height", "viewBox")

VIOLATION_KEYS = (
    "empty_content",
    "missing_svg_tags",
    "oversized",
    "has_scripts",
    "has_disallowed_elements",
    "has_event_handlers",
    "has_disallowed_attributes",
    "has_disallowed_protocols",
    "has_external_urls",
    "excessive_nodes",
    "malformed_xml",
    "missing_required_attributes",
    "missing_accessibility",
)

EDITOR_PREFIXES = ("inkscape:", "sodipodi:", "sketch:")
EDITOR_NAMESPACE_DECLARATIONS = frozenset({"xmlns:inkscape", "xmlns:sodipodi", "xmlns:sketch"})
WHITESPACE_PRESERVING = frozenset({"text", "tspan", "title", "desc"})

_PROTOCOL_RE = re.compile(rf"({'|'.join(DISALLOWED_PROTOCOLS)}):", re.IGNORECASE)
_NUMERIC_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)(?:px)?\s*$")
_LONG_DECIMAL_RE = re.compile(r"\d+\.\d{3,}")
_TRUNCATE_DECIMAL_RE = re.compile(r"(\d+\.\d{2})\d+")
_WHITESPACE_BETWEEN_TAGS_RE = re.compile(r">\s{2,}<")
_EMPTY_GROUP_RE = re.compile(r"<g\b[^>]*>\s*</g>|<g\b[^>]*/>")
_EDITOR_MARKUP_RE = re.compile(r"inkscape:|sodipodi:|xmlns:i=|sketch:type")
_WHITESPACE_RUN_RE = re.compile(r"\s{2,}")


def byte_size(svg: str) -> int:
    return len(svg.encode("utf-8"))


def is_event_handler(attribute: sm.Attribute) -> bool:
    name = attribute.name.lower()
    return len(name) > 2 and name.startswith("on")


def is_disallowed_attribute(attribute: sm.Attribute) -> bool:
    return attribute.name.lower() in DISALLOWED_ATTRIBUTES


def disallowed_protocol(value: str | None) -> str | None:
    """Return the dangerous URL scheme in `value`, ignoring case and whitespace."""
    if not value:
        return None
    match = _PROTOCOL_RE.search(re.sub(r"\s+", "", value))
    return match.group(1).lower() if match else None


def _issue_severity(message: str) -> str:
    lowered = message.lower()
    if "script" in lowered or "event handler" in lowered or "dangerous" in lowered:
        return "critical"
    if "disallowed" in lowered or "external" in lowered:
        return "high"
    return "medium"


def _well_formedness_problems(tokens: list[sm.Token]) -> list[str]:
    problems: list[str] = []
    stack: list[str] = []
    for token in tokens:
        if token.kind == sm.TEXT and "<" in token.raw:
            problems.append("unescaped '<' in text content")
        elif token.is_element:
            for attribute in token.attrs:
                if attribute.quote is None:
                    problems.append(f"attribute '{attribute.name}' on <{token.name}> has no value")
                elif attribute.quote == "":
                    problems.append(f"attribute '{attribute.name}' on <{token.name}> is not quoted")
                elif "<" in attribute.value or ">" in attribute.value:
                    problems.append(f"attribute '{attribute.name}' on <{token.name}> contains '<' or '>'")
            if token.kind == sm.START:
                stack.append(token.name)
        elif token.kind == sm.END:
            if not stack:
                problems.append(f"unexpected closing tag </{token.name}>")
            elif stack[-1] != token.name:
                problems.append(f"closing tag </{token.name}> does not match <{stack[-1]}>")
                if token.name in stack:
                    while stack[-1] != token.name:
                        stack.pop()
                    stack.pop()
            else:
                stack.pop()
    for name in reversed(stack):
        problems.append(f"unclosed tag <{name}>")
    return problems


def _optimization_score(svg: str, tokens: list[sm.Token], size: int) -> int:
    score = 100
    if _WHITESPACE_BETWEEN_TAGS_RE.search(svg):
        score -= 10
    if any(token.kind == sm.COMMENT for token in tokens):
        score -= 5
    if _EMPTY_GROUP_RE.search(svg):
        score -= 5
    if any(token.is_element and token.local_name == "metadata" for token in tokens):
        score -= 5
    if _EDITOR_MARKUP_RE.search(svg):
        score -= 10
    score -= min(20, 2 * len(_LONG_DECIMAL_RE.findall(svg)))
    if size > 10 * 1024:
        score -= 15
    elif size > 5 * 1024:
        score -= 5
    return score


def _clamp(score: int) -> int:
    return max(0, min(100, score))


def _validate(svg: str) -> ValidationResult:
    violations = dict.fromkeys(VIOLATION_KEYS, False)
    errors: list[str] = []
    security_issues: set[str] = set()
    warnings: list[str] = []

    def fail(key: str, message: str, *, security: bool = False) -> None:
        violations[key] = True
        errors.append(message)
        if security:
            security_issues.add(message)

    if not isinstance(svg, str) or not svg.strip():
        fail("empty_content", "SVG content is empty")
        return _result(violations, errors, warnings, security_issues, 0, 0, 0)

    lowered = svg.lower()
    if "<svg" not in lowered or "</svg>" not in lowered:
        fail("missing_svg_tags", "SVG is missing <svg> opening or closing tag")
        return _result(violations, errors, warnings, security_issues, 0, 0, 0)

    size = byte_size(svg)
    tokens = sm.tokenize(svg)
    element_tokens = sm.elements(tokens)

    if size > MAX_SVG_BYTES:
        fail("oversized", f"SVG exceeds maximum allowed size of {MAX_SVG_BYTES // 1024}KB")

    if any(token.local_name == "script" for token in element_tokens):
        fail("has_scripts", "SVG contains disallowed <script> element", security=True)

    disallowed_names = _unique(token.name for token in element_tokens if token.local_name in DISALLOWED_ELEMENTS)
    for name in disallowed_names:
        fail("has_disallowed_elements", f"SVG contains disallowed element: <{name}>", security=True)

    attributes = [attribute for token in element_tokens for attribute in token.attrs]
    for name in _unique(attribute.name for attribute in attributes if is_event_handler(attribute)):
        fail("has_event_handlers", f"SVG contains event handler attribute: {name}", security=True)
    for name in _unique(attribute.name for attribute in attributes if is_disallowed_attribute(attribute)):
        fail("has_disallowed_attributes", f"SVG contains disallowed attribute: {name}", security=True)
    for protocol in _unique(disallowed_protocol(attribute.value) for attribute in attributes):
        if protocol:
            fail("has_disallowed_protocols", f"SVG contains disallowed protocol: {protocol}:", security=True)

    if len(element_tokens) > MAX_NODE_COUNT:
        fail("excessive_nodes", f"SVG exceeds maximum node count of {MAX_NODE_COUNT}")

    problems = _well_formedness_problems(tokens)
    if problems:
        fail("malformed_xml", f"SVG contains malformed XML: {'; '.join(problems[:3])}")

    if any(
        attribute.name.lower() in URL_ATTRIBUTES and attribute.value and "://" in attribute.value
        for attribute in attributes
    ):
        violations["has_external_urls"] = True
        warnings.append("SVG contains external URL references which may be a security risk")

    root_index = sm.find_root(tokens)
    root = tokens[root_index] if root_index is not None else None
    for name in REQUIRED_ROOT_ATTRIBUTES:
        if root is None or not root.has_attr(name):
            violations["missing_required_attributes"] = True
            warnings.append(f"SVG root element is missing recommended attribute: {name}")

    if not any(token.local_name in ("title", "desc") for token in element_tokens):
        violations["missing_accessibility"] = True
        warnings.append("SVG is missing title or desc elements for accessibility")

    if sm.max_depth(tokens) > MAX_NESTING_DEPTH:
        warnings.append("SVG has excessive nesting levels which may cause rendering issues")

    security_score = 100
    for key in ("has_scripts", "has_disallowed_elements", "has_disallowed_protocols"):
        if violations[key]:
            security_score -= 25
    # Event handlers and other disallowed attributes share one penalty.
    if violations["has_event_handlers"] or violations["has_disallowed_attributes"]:
        security_score -= 25
    for key in ("has_external_urls", "oversized", "excessive_nodes"):
        if violations[key]:
            security_score -= 10

    accessibility_score = 100
    if violations["missing_accessibility"]:
        accessibility_score -= 50
    if violations["missing_required_attributes"]:
        accessibility_score -= 20

    return _result(
        violations,
        errors,
        warnings,
        security_issues,
        security_score,
        accessibility_score,
        _optimization_score(svg, tokens, size),
    )


def _unique(values) -> list:
    return list(dict.fromkeys(values))


def _result(
    violations: dict[str, bool],
    errors: list[str],
    warnings: list[str],
    security_issues: set[str],
    security_score: int,
    accessibility_score: int,
    optimization_score: int,
) -> ValidationResult:
    issues = [
        ValidationIssue(
            type="security" if message in security_issues else "validation",
            severity=_issue_severity(message),
            message=message,
        )
        for message in errors
    ]
    issues.extend(ValidationIssue(type="warning", severity="low", message=message) for message in warnings)
    return ValidationResult(
        is_valid=not errors,
        violations=violations,
        errors=errors,
        warnings=warnings,
        issues=issues,
        security_score=_clamp(security_score),
        accessibility_score=_clamp(accessibility_score),
        optimization_score=_clamp(optimization_score),
    )


def validate_svg(svg: str, *, cache: LRUCache | None = None) -> ValidationResult:
    """Run every structural and security check against `svg`."""
    return cached_call(cache, "svg.validate", (svg,), lambda: _validate(svg))


# ---------------------------------------------------------------------------
# Repair
# ---------------------------------------------------------------------------

TokenPass = Callable[[list[sm.Token]], tuple[list[sm.Token], list[str]]]


def _drop_scripts(tokens: list[sm.Token]) -> tuple[list[sm.Token], list[str]]:
    kept, removed = sm.drop_elements(tokens, lambda token: token.local_name == "script")
    return kept, ["Removed script elements"] if removed else []


def _drop_disallowed_elements(tokens: list[sm.Token]) -> tuple[list[sm.Token], list[str]]:
    kept, removed = sm.drop_elements(tokens, lambda token: token.local_name in DISALLOWED_ELEMENTS)
    return kept, [f"Removed <{name}> elements" for name in _unique(removed)]


def _map_elements(
    tokens: list[sm.Token], transform: Callable[[sm.Token], sm.Token]
) -> tuple[list[sm.Token], bool]:
    changed = False
    result: list[sm.Token] = []
    for token in tokens:
        if token.is_element:
            updated = transform(token)
            changed = changed or updated is not token
            result.append(updated)
        else:
            result.append(token)
    return result, changed


def _drop_dangerous_attributes(tokens: list[sm.Token]) -> tuple[list[sm.Token], list[str]]:
    removed: list[str] = []

    def strip(token: sm.Token) -> sm.Token:
        def dangerous(attribute: sm.Attribute) -> bool:
            if is_event_handler(attribute) or is_disallowed_attribute(attribute):
                removed.append(attribute.name)
                return True
            return False

        return token.without_attrs(dangerous)

    tokens, _ = _map_elements(tokens, strip)
    if not removed:
        return tokens, []
    return tokens, [f"Removed dangerous attributes: {', '.join(_unique(removed))}"]


def _drop_dangerous_urls(tokens: list[sm.Token]) -> tuple[list[sm.Token], list[str]]:
    protocols: list[str] = []

    def strip(token: sm.Token) -> sm.Token:
        def carries_protocol(attribute: sm.Attribute) -> bool:
            protocol = disallowed_protocol(attribute.value)
            if protocol:
                protocols.append(protocol)
                return True
            return False

        return token.without_attrs(carries_protocol)

    tokens, _ = _map_elements(tokens, strip)
    if not protocols:
        return tokens, []
    return tokens, [f"Removed URLs with disallowed protocol: {', '.join(_unique(protocols))}"]


def _add_view_box(tokens: list[sm.Token]) -> tuple[list[sm.Token], list[str]]:
    root_index = sm.find_root(tokens)
    if root_index is None:
        return tokens, []
    root = tokens[root_index]
    if root.has_attr("viewBox"):
        return tokens, []
    width = _NUMERIC_RE.match(root.attr("width") or "")
    height = _NUMERIC_RE.match(root.attr("height") or "")
    if not (width and height):
        return tokens, []
    tokens = list(tokens)
    tokens[root_index] = root.with_attr("viewBox", f"0 0 {width.group(1)} {height.group(1)}")
    return tokens, ["Added viewBox attribute based on width and height"]


def _escape_invalid_characters(tokens: list[sm.Token]) -> tuple[list[sm.Token], list[str]]:
    escaped_values = False
    quoted_values = False
    escaped_text = False
    result: list[sm.Token] = []
    for token in tokens:
        if token.is_element:
            attrs: list[sm.Attribute] = []
            changed = False
            for attribute in token.attrs:
                value, quote = attribute.value, attribute.quote
                if value is None:
                    value, quote = attribute.name, '"'
                    quoted_values = changed = True
                elif quote == "":
                    quote = '"'
                    quoted_values = changed = True
                if "<" in value or ">" in value:
                    value = value.replace("<", "&lt;").replace(">", "&gt;")
                    escaped_values = changed = True
                attrs.append(sm.Attribute(attribute.name, value, quote))
            result.append(token.replace_attrs(attrs) if changed else token)
        elif token.kind == sm.TEXT and "<" in token.raw:
            result.append(sm.text_token(token.raw.replace("<", "&lt;")))
            escaped_text = True
        else:
            result.append(token)

    modifications = []
    if escaped_values:
        modifications.append("Escaped invalid characters in attribute values")
    if quoted_values:
        modifications.append("Quoted unquoted attribute values")
    if escaped_text:
        modifications.append("Escaped stray '<' characters in text content")
    return result, modifications


def _balance_tags(tokens: list[sm.Token]) -> tuple[list[sm.Token], list[str]]:
    stack: list[str] = []
    result: list[sm.Token] = []
    changed = False
    for token in tokens:
        if token.kind == sm.START:
            stack.append(token.name)
            result.append(token)
        elif token.kind == sm.END:
            if token.name not in stack:
                # Stray closing tag.
                changed = True
                continue
            while stack[-1] != token.name:
                result.append(sm.end_token(stack.pop()))
                changed = True
            stack.pop()
            result.append(token)
        else:
            result.append(token)
    while stack:
        result.append(sm.end_token(stack.pop()))
        changed = True
    return result, ["Closed unbalanced tags"] if changed else []


REPAIR_PASSES: tuple[TokenPass, ...] = (
    _drop_scripts,
    _drop_disallowed_elements,
    _drop_dangerous_attributes,
    _drop_dangerous_urls,
    _add_view_box,
    _escape_invalid_characters,
    _balance_tags,
)


def _repair(svg: str) -> RepairResult:
    initial = _validate(svg)
    if initial.is_valid:
        return RepairResult(svg=svg, is_repaired=False, remaining_issues=list(initial.warnings))

    if initial.violations["empty_content"] or initial.violations["missing_svg_tags"]:
        return RepairResult(
            svg=svg,
            is_repaired=False,
            remaining_issues=list(initial.errors),
            issues_remaining=list(initial.issues),
        )

    tokens = sm.tokenize(svg)
    modifications: list[str] = []
    for repair_pass in REPAIR_PASSES:
        tokens, applied = repair_pass(tokens)
        modifications.extend(applied)
    repaired = sm.render(tokens)
    final = _validate(repaired)

    if not final.is_valid:
        logger.warning("SVG repair could not resolve: %s", "; ".join(final.errors))
        return RepairResult(
            svg=svg,
            is_repaired=False,
            remaining_issues=list(final.errors),
            issues_remaining=list(final.issues),
        )

    remaining_messages = {issue.message for issue in final.issues}
    logger.info("Repaired SVG with %s modification(s).", len(modifications))
    return RepairResult(
        svg=repaired,
        is_repaired=True,
        modifications=modifications,
        remaining_issues=list(final.warnings),
        issues_fixed=[issue for issue in initial.issues if issue.message not in remaining_messages],
        issues_remaining=list(final.issues),
    )


def repair_svg(svg: str, *, cache: LRUCache | None = None) -> RepairResult:
    """
    Attempt to turn an invalid SVG into a valid one.

    Valid input comes back untouched. If the repaired document still fails
    validation the original markup is returned with `is_repaired=False`.
    """
    return cached_call(cache, "svg.repair", (svg,), lambda: _repair(svg))


# ---------------------------------------------------------------------------
# Optimization
# ---------------------------------------------------------------------------

def _is_editor_name(name: str) -> bool:
    return name.lower().startswith(EDITOR_PREFIXES)


def _clean_attributes(token: sm.Token, found: set[str]) -> sm.Token:
    attrs: list[sm.Attribute] = []
    for attribute in token.attrs:
        name = attribute.name.lower()
        if _is_editor_name(name) or name in EDITOR_NAMESPACE_DECLARATIONS:
            found.add("editor")
            continue
        if attribute.value == "":
            found.add("empty")
            continue
        if attribute.value and not name.startswith("xmlns"):
            truncated = _TRUNCATE_DECIMAL_RE.sub(r"\1", attribute.value)
            if truncated != attribute.value:
                found.add("decimals")
                attrs.append(sm.Attribute(attribute.name, truncated, attribute.quote))
                continue
        attrs.append(attribute)
    if len(attrs) == len(token.attrs) and all(a is b for a, b in zip(attrs, token.attrs)):
        return token
    return token.replace_attrs(attrs)


def _strip_whitespace_text(tokens: list[sm.Token]) -> tuple[list[sm.Token], bool, bool]:
    result: list[sm.Token] = []
    open_names: list[str] = []
    removed = collapsed = False
    for token in tokens:
        if token.kind == sm.START:
            open_names.append(token.local_name)
        elif token.kind == sm.END and open_names:
            open_names.pop()
        elif token.kind == sm.TEXT:
            preserving = any(name in WHITESPACE_PRESERVING for name in open_names)
            if not preserving:
                if not token.raw.strip():
                    removed = True
                    continue
                text = _WHITESPACE_RUN_RE.sub(" ", token.raw)
                if text != token.raw:
                    collapsed = True
                    token = sm.text_token(text)
        result.append(token)
    return result, removed, collapsed


def _drop_empty_groups(tokens: list[sm.Token]) -> tuple[list[sm.Token], bool]:
    removed_any = False
    while True:
        result: list[sm.Token] = []
        removed = False
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if token.kind == sm.EMPTY and token.local_name == "g":
                removed = True
                index += 1
                continue
            if (
                token.kind == sm.START
                and token.local_name == "g"
                and index + 1 < len(tokens)
                and tokens[index + 1].kind == sm.END
                and tokens[index + 1].name == token.name
            ):
                removed = True
                index += 2
                continue
            result.append(token)
            index += 1
        tokens = result
        if not removed:
            return tokens, removed_any
        removed_any = True


def _optimize(svg: str, cache: LRUCache | None = None) -> OptimizationResult:
    original_size = byte_size(svg)
    # Markup hidden in comments of a broken document can surface once they are removed.
    if not validate_svg(svg, cache=cache).is_valid:
        logger.debug("Skipping optimization of an SVG that does not validate.")
        return OptimizationResult(svg=svg, original_size=original_size, optimized_size=original_size, reduction_percent=0)

    optimizations: list[str] = []
    tokens = sm.tokenize(svg)

    without_comments = [token for token in tokens if token.kind != sm.COMMENT]
    if len(without_comments) != len(tokens):
        optimizations.append("Removed comments")
    tokens = without_comments

    tokens, removed = sm.drop_elements(tokens, lambda token: token.local_name == "metadata")
    if removed:
        optimizations.append("Removed metadata")

    tokens, editor_elements = sm.drop_elements(tokens, lambda token: _is_editor_name(token.name))

    found: set[str] = set()
    tokens, _ = _map_elements(tokens, lambda token: _clean_attributes(token, found))
    if editor_elements or "editor" in found:
        optimizations.append("Removed editor-specific elements and attributes")
    if "empty" in found:
        optimizations.append("Removed empty attributes")
    if "decimals" in found:
        optimizations.append("Truncated decimal precision to two places")

    tokens, stripped, collapsed = _strip_whitespace_text(tokens)
    if stripped:
        optimizations.append("Removed whitespace between tags")
    if collapsed:
        optimizations.append("Collapsed whitespace runs")

    tokens, removed_groups = _drop_empty_groups(tokens)
    if removed_groups:
        optimizations.append("Removed empty groups")

    normalized = [token.normalized() if token.is_element or token.kind == sm.END else token for token in tokens]
    if any(before.render() != after.render() for before, after in zip(tokens, normalized)):
        optimizations.append("Normalized tag whitespace")

    optimized = sm.render(normalized)
    optimized_size = byte_size(optimized)
    if optimized_size > original_size:
        logger.debug("Optimization grew the SVG from %s to %s bytes, keeping the original.", original_size, optimized_size)
        return OptimizationResult(
            svg=svg,
            original_size=original_size,
            optimized_size=original_size,
            reduction_percent=0,
        )

    reduction = round((original_size - optimized_size) / original_size * 100) if original_size else 0
    return OptimizationResult(
        svg=optimized,
        original_size=original_size,
        optimized_size=optimized_size,
        reduction_percent=reduction,
        optimizations=optimizations,
    )


def optimize_svg(svg: str, *, cache: LRUCache | None = None) -> OptimizationResult:
    """Shrink a valid `svg` without changing how it renders. Invalid input is returned unchanged."""
    return cached_call(cache, "svg.optimize", (svg,), lambda: _optimize(svg, cache))


# ---------------------------------------------------------------------------
# Validate -> repair -> optimize
# ---------------------------------------------------------------------------

def overall_score(validation: ValidationResult) -> int:
    scores = [
        score
        for score in (validation.security_score, validation.accessibility_score, validation.optimization_score)
        if score > 0
    ]
    return round(mean(scores)) if scores else 50


def _process(svg: str, repair: bool, optimize: bool) -> ProcessResult:
    validation = _validate(svg)
    repair_result: RepairResult | None = None
    current = svg

    if not validation.is_valid:
        if repair:
            repair_result = _repair(svg)
        if repair_result is None or not repair_result.is_repaired:
            return ProcessResult(
                original=svg,
                svg=svg,
                validation=validation,
                repair=repair_result,
                success=False,
                overall_score=0,
            )
        current = repair_result.svg
        validation = _validate(current)

    optimization: OptimizationResult | None = None
    if optimize:
        optimization = _optimize(current)
        optimized_validation = _validate(optimization.svg)
        if optimized_validation.is_valid:
            current, validation = optimization.svg, optimized_validation
        else:
            logger.warning("Optimization invalidated the SVG (%s), keeping the unoptimized markup.",
                           "; ".join(optimized_validation.errors))
            optimization = None

    return ProcessResult(
        original=svg,
        svg=current,
        validation=validation,
        repair=repair_result,
        optimization=optimization,
        success=True,
        overall_score=overall_score(validation),
    )


def process_svg(
    svg: str,
    *,
    repair: bool = True,
    optimize: bool = True,
    cache: LRUCache | None = None,
) -> ProcessResult:
    """Validate, repair when needed, then optimize an SVG document."""
    return cached_call(cache, "svg.process", (svg, repair, optimize), lambda: _process(svg, repair, optimize))


def build_artifact(
    svg: str,
    *,
    validation: ValidationResult | None = None,
    accessibility: AccessibilityScore | None = None,
    design_quality: DesignQualityScore | None = None,
    cache: LRUCache | None = None,
) -> SVGArtifact:
    return SVGArtifact(
        markup=svg,
        byte_size=byte_size(svg),
        validation=validation or validate_svg(svg, cache=cache),
        accessibility=accessibility,
        design_quality=design_quality,
    )
