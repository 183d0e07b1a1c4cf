import unittest

from app.agent.artifacts import ValidationResult
from app.agent.cache import LRUCache
from app.agent.svg_validator import (
    VIOLATION_KEYS,
    build_artifact,
    disallowed_protocol,
    optimize_svg,
    overall_score,
    process_svg,
    repair_svg,
    validate_svg,
)
from app.tests.fakes import SVG_NS, VALID_SVG


def _with_body(body: str, root_attrs: str = 'width="100" height="100" viewBox="0 0 100 100"') -> str:
    return f"<svg {SVG_NS} {root_attrs}><title>Acme Logo</title><desc>Logo for Acme</desc>{body}</svg>"


SCRIPT_SVG = _with_body('<script>alert("x")</script><circle cx="50" cy="50" r="40"/>')
OVERSIZED_SVG = _with_body("<text>" + "a" * 16000 + "</text>")


class TestValidateSVG(unittest.TestCase):
    def test_valid_document(self):
        result = validate_svg(VALID_SVG)
        self.assertTrue(result.is_valid)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.warnings, [])
        self.assertEqual(set(result.violations), set(VIOLATION_KEYS))
        self.assertFalse(any(result.violations.values()))
        self.assertEqual(
            (result.security_score, result.accessibility_score, result.optimization_score), (100, 100, 100)
        )

    def test_empty_content(self):
        for content in ("", "   ", None):
            result = validate_svg(content)
            self.assertFalse(result.is_valid)
            self.assertEqual(result.errors, ["SVG content is empty"])
            self.assertTrue(result.violations["empty_content"])
            self.assertEqual(result.security_score, 0)

    def test_missing_svg_tags(self):
        result = validate_svg("<div><p>not a logo</p></div>")
        self.assertEqual(result.errors, ["SVG is missing <svg> opening or closing tag"])
        self.assertTrue(result.violations["missing_svg_tags"])

    def test_script_element(self):
        result = validate_svg(SCRIPT_SVG)
        self.assertFalse(result.is_valid)
        self.assertIn("SVG contains disallowed <script> element", result.errors)
        self.assertTrue(result.violations["has_scripts"])
        self.assertEqual(result.security_score, 75)
        issue = result.issues[0]
        self.assertEqual((issue.type, issue.severity), ("security", "critical"))

    def test_disallowed_element(self):
        result = validate_svg(_with_body('<foreignObject width="10" height="10"></foreignObject>'))
        self.assertIn("SVG contains disallowed element: <foreignObject>", result.errors)
        self.assertEqual(result.issues[0].severity, "high")

    def test_event_handlers_and_attributes_share_one_penalty(self):
        result = validate_svg(_with_body('<circle r="40" onclick="steal()" href="#a"/>'))
        self.assertIn("SVG contains event handler attribute: onclick", result.errors)
        self.assertIn("SVG contains disallowed attribute: href", result.errors)
        self.assertEqual(result.security_score, 75)

    def test_protocol_detection_ignores_case_and_whitespace(self):
        self.assertEqual(disallowed_protocol("JaVaScript :alert(1)"), "javascript")
        self.assertEqual(disallowed_protocol("url(data:image/png;base64,AAA)"), "data")
        self.assertIsNone(disallowed_protocol("http://www.w3.org/2000/svg"))

        result = validate_svg(_with_body('<rect width="5" height="5" style="fill: red; x: JaVa Script:go()"/>'))
        self.assertIn("SVG contains disallowed protocol: javascript:", result.errors)
        self.assertTrue(result.violations["has_disallowed_protocols"])

    def test_external_url_is_a_warning(self):
        result = validate_svg(_with_body('<a href="https://example.com"><circle r="40"/></a>'))
        self.assertIn("SVG contains external URL references which may be a security risk", result.warnings)
        self.assertEqual(result.security_score, 65)

    def test_oversized(self):
        result = validate_svg(OVERSIZED_SVG)
        self.assertIn("SVG exceeds maximum allowed size of 15KB", result.errors)
        self.assertEqual(result.security_score, 90)
        self.assertEqual(result.optimization_score, 85)

    def test_excessive_nodes(self):
        result = validate_svg(_with_body("<g/>" * 1001))
        self.assertTrue(result.violations["excessive_nodes"])
        self.assertIn("SVG exceeds maximum node count of 1000", result.errors)

    def test_malformed_markup(self):
        result = validate_svg(_with_body('<g><circle r="40"/>'))
        self.assertTrue(result.violations["malformed_xml"])
        self.assertTrue(any(error.startswith("SVG contains malformed XML") for error in result.errors))

    def test_unquoted_attribute_is_malformed(self):
        result = validate_svg(_with_body('<circle r=40 fill="red"/>'))
        self.assertTrue(result.violations["malformed_xml"])

    def test_missing_recommended_attributes_and_text_alternatives(self):
        result = validate_svg(f'<svg {SVG_NS}><rect width="10" height="10"/></svg>')
        self.assertTrue(result.is_valid)
        self.assertIn("SVG root element is missing recommended attribute: width", result.warnings)
        self.assertIn("SVG root element is missing recommended attribute: viewBox", result.warnings)
        self.assertIn("SVG is missing title or desc elements for accessibility", result.warnings)
        self.assertEqual(result.accessibility_score, 30)

    def test_deep_nesting_is_a_warning(self):
        result = validate_svg(_with_body("<g>" * 21 + '<circle r="1"/>' + "</g>" * 21))
        self.assertTrue(result.is_valid)
        self.assertIn("SVG has excessive nesting levels which may cause rendering issues", result.warnings)

    def test_optimization_penalties(self):
        svg = _with_body('<!-- c --><metadata>m</metadata><path d="M 1.12345 2.12345"/>')
        self.assertEqual(validate_svg(svg).optimization_score, 86)

    def test_results_are_cached(self):
        cache = LRUCache()
        first = validate_svg(VALID_SVG, cache=cache)
        second = validate_svg(VALID_SVG, cache=cache)
        self.assertIs(first, second)
        self.assertEqual(cache.hits, 1)


class TestRepairSVG(unittest.TestCase):
    def test_valid_input_is_untouched(self):
        result = repair_svg(VALID_SVG)
        self.assertFalse(result.is_repaired)
        self.assertEqual(result.svg, VALID_SVG)
        self.assertEqual(result.modifications, [])

    def test_removes_scripts(self):
        result = repair_svg(SCRIPT_SVG)
        self.assertTrue(result.is_repaired)
        self.assertNotIn("script", result.svg)
        self.assertIn("Removed script elements", result.modifications)
        self.assertIn(
            "SVG contains disallowed <script> element", [issue.message for issue in result.issues_fixed]
        )
        self.assertTrue(validate_svg(result.svg).is_valid)

    def test_removes_event_handlers_and_dangerous_urls(self):
        svg = _with_body(
            '<circle r="40" onclick="steal()"/><rect width="5" height="5" style="x:javascript:alert(1)"/>'
        )
        result = repair_svg(svg)
        self.assertTrue(result.is_repaired)
        self.assertIn("Removed dangerous attributes: onclick", result.modifications)
        self.assertIn("Removed URLs with disallowed protocol: javascript", result.modifications)
        self.assertNotIn("onclick", result.svg)
        self.assertNotIn("javascript", result.svg)

    def test_synthesizes_view_box(self):
        svg = f'<svg {SVG_NS} width="100" height="50"><title>t</title><script>x()</script></svg>'
        result = repair_svg(svg)
        self.assertIn('viewBox="0 0 100 50"', result.svg)
        self.assertIn("Added viewBox attribute based on width and height", result.modifications)

    def test_closes_unbalanced_tags(self):
        result = repair_svg(_with_body('<g><circle r="40"/>'))
        self.assertTrue(result.is_repaired)
        self.assertIn("Closed unbalanced tags", result.modifications)
        self.assertIn('<circle r="40"/></g></svg>', result.svg)

    def test_quotes_and_escapes_invalid_characters(self):
        result = repair_svg(_with_body('<text font-family="a<b">1 < 2</text><circle r=40/>'))
        self.assertTrue(result.is_repaired)
        self.assertIn('font-family="a&lt;b"', result.svg)
        self.assertIn("1 &lt; 2", result.svg)
        self.assertIn('r="40"', result.svg)
        self.assertIn("Quoted unquoted attribute values", result.modifications)

    def test_unrepairable_input_returns_original(self):
        result = repair_svg(OVERSIZED_SVG)
        self.assertFalse(result.is_repaired)
        self.assertEqual(result.svg, OVERSIZED_SVG)
        self.assertIn("SVG exceeds maximum allowed size of 15KB", result.remaining_issues)

    def test_repair_is_idempotent(self):
        once = repair_svg(SCRIPT_SVG).svg
        self.assertEqual(repair_svg(once).svg, once)


class TestOptimizeSVG(unittest.TestCase):
    def test_strips_redundant_content(self):
        svg = (
            f'<svg {SVG_NS} viewBox="0 0 10 10">\n'
            "  <!-- editor -->\n"
            "  <metadata><rdf>x</rdf></metadata>\n"
            "  <g></g>\n"
            '  <path d="M1.23456 2.34567L3 4" fill=""/>\n'
            "</svg>"
        )
        result = optimize_svg(svg)
        self.assertEqual(result.svg, f'<svg {SVG_NS} viewBox="0 0 10 10"><path d="M1.23 2.34L3 4"/></svg>')
        for optimization in (
            "Removed comments",
            "Removed metadata",
            "Removed empty attributes",
            "Truncated decimal precision to two places",
            "Removed whitespace between tags",
            "Removed empty groups",
        ):
            self.assertIn(optimization, result.optimizations)
        self.assertLess(result.optimized_size, result.original_size)
        self.assertGreater(result.reduction_percent, 0)

    def test_keeps_whitespace_inside_text(self):
        svg = _with_body('<text x="1"> Hello  World </text>')
        self.assertIn("> Hello  World <", optimize_svg(svg).svg)

    def test_minimal_document_is_unchanged(self):
        svg = f'<svg {SVG_NS}><rect width="1" height="1"/></svg>'
        result = optimize_svg(svg)
        self.assertEqual(result.svg, svg)
        self.assertEqual(result.reduction_percent, 0)
        self.assertEqual(result.optimizations, [])

    def test_invalid_document_is_not_optimized(self):
        svg = _with_body('<sc<!-- hidden -->ript>alert(1)</script>\n  <circle r="4"/>')
        result = optimize_svg(svg)
        self.assertEqual(result.svg, svg)
        self.assertEqual(result.optimizations, [])
        self.assertEqual(result.optimized_size, result.original_size)

    def test_optimization_preserves_validity(self):
        samples = [
            VALID_SVG,
            SCRIPT_SVG,
            _with_body('<g><circle r="40"/>'),
            _with_body('<!-- note -->\n  <g>\n    <path d="M1.23456 2L3 4"/>\n  </g>'),
        ]
        for svg in samples:
            if validate_svg(repair_svg(svg).svg).is_valid:
                optimized = optimize_svg(svg).svg
                self.assertTrue(validate_svg(repair_svg(optimized).svg).is_valid, svg)


class TestProcessSVG(unittest.TestCase):
    def test_valid_document(self):
        result = process_svg(VALID_SVG)
        self.assertTrue(result.success)
        self.assertIsNone(result.repair)
        self.assertIsNotNone(result.optimization)
        self.assertEqual(result.overall_score, 100)

    def test_repairs_before_optimizing(self):
        result = process_svg(SCRIPT_SVG)
        self.assertTrue(result.success)
        self.assertTrue(result.repair.is_repaired)
        self.assertNotIn("script", result.svg)
        self.assertTrue(result.validation.is_valid)

    def test_unrepairable_document(self):
        result = process_svg(OVERSIZED_SVG)
        self.assertFalse(result.success)
        self.assertEqual(result.overall_score, 0)
        self.assertEqual(result.svg, OVERSIZED_SVG)

    def test_repair_can_be_disabled(self):
        result = process_svg(SCRIPT_SVG, repair=False)
        self.assertFalse(result.success)
        self.assertIsNone(result.repair)

    def test_cached(self):
        cache = LRUCache()
        self.assertIs(process_svg(VALID_SVG, cache=cache), process_svg(VALID_SVG, cache=cache))

    def test_overall_score_ignores_zero_scores(self):
        partial = ValidationResult(is_valid=True, security_score=0, accessibility_score=80, optimization_score=60)
        self.assertEqual(overall_score(partial), 70)
        nothing = ValidationResult(is_valid=True, security_score=0, accessibility_score=0, optimization_score=0)
        self.assertEqual(overall_score(nothing), 50)

    def test_build_artifact(self):
        artifact = build_artifact(VALID_SVG)
        self.assertEqual(artifact.byte_size, len(VALID_SVG.encode("utf-8")))
        self.assertTrue(artifact.validation.is_valid)


if __name__ == "__main__":
    unittest.main()
