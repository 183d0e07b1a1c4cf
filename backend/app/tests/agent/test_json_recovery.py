import json
import unittest

from app.agent.json_recovery import extract_fields, safe_json_parse


class TestSafeJsonParse(unittest.TestCase):
    def test_plain_json(self):
        self.assertEqual(safe_json_parse('{"a": 1, "b": [1, 2]}'), {"a": 1, "b": [1, 2]})

    def test_strips_markdown_fences_and_trailing_commas(self):
        text = '```json\n{"score": 90, "tags": ["a", "b",],}\n```'
        self.assertEqual(safe_json_parse(text), {"score": 90, "tags": ["a", "b"]})

    def test_ignores_prose_around_the_object(self):
        text = 'Here is the result you asked for: {"name": "Orbit"} Let me know!'
        self.assertEqual(safe_json_parse(text), {"name": "Orbit"})

    def test_raw_line_breaks_inside_strings(self):
        text = '{"description": "line one\nline two\tend"}'
        self.assertEqual(safe_json_parse(text), {"description": "line one line two end"})

    def test_control_characters_are_dropped(self):
        self.assertEqual(safe_json_parse('{"a": "x\x00y\x07z"}'), {"a": "xyz"})

    def test_inserts_missing_comma_between_members(self):
        self.assertEqual(safe_json_parse('{"a": "x" "b": "y"}'), {"a": "x", "b": "y"})

    def test_escapes_quotes_inside_rationale(self):
        text = '{"selectionRationale": "It is "bold" and clean", "score": 88}'
        self.assertEqual(
            safe_json_parse(text),
            {"selectionRationale": 'It is "bold" and clean', "score": 88},
        )

    def test_free_text_ending_in_a_backslash_is_left_intact(self):
        data = {"name": "x", "description": "path C:\\", "style": "flat"}
        self.assertEqual(safe_json_parse(json.dumps(data)), data)
        self.assertEqual(safe_json_parse(f"```json\n{json.dumps(data)}\n```"), data)

    def test_escaped_backslash_before_a_quote_closes_the_value(self):
        text = '{"description": "path C:\\\\", "selectionRationale": "It is "bold"", "score": 1}'
        self.assertEqual(
            safe_json_parse(text),
            {"description": "path C:\\", "selectionRationale": 'It is "bold"', "score": 1},
        )

    def test_non_string_input(self):
        self.assertIsNone(safe_json_parse(None))
        self.assertIsNone(safe_json_parse(42))

    def test_no_json_at_all(self):
        self.assertIsNone(safe_json_parse("I could not produce a logo today."))

    def test_top_level_array_is_not_an_object(self):
        self.assertIsNone(safe_json_parse("[1, 2, 3]"))

    def test_falls_back_to_field_extraction(self):
        text = (
            'Sure. {"selectedConcept": {"name": "Nova"}, '
            '"selectionRationale": "Strong silhouette", "score": 91'
        )
        self.assertEqual(
            safe_json_parse(text),
            {"selectedConcept": {"name": "Nova"}, "selectionRationale": "Strong silhouette", "score": 91},
        )

    def test_custom_fallback_keys(self):
        text = '{"isUnique": true, "uniquenessScore": 72, "similarityIssues": [}'
        result = safe_json_parse(text, fallback_keys=("isUnique", "uniquenessScore"))
        self.assertEqual(result, {"isUnique": True, "uniquenessScore": 72})


class TestExtractFields(unittest.TestCase):
    def test_decodes_escaped_svg_markup(self):
        text = '{"svg": "<svg width=\\"10\\"></svg>", "designRationale": "Clean"'
        result = extract_fields(text)
        self.assertEqual(result["svg"], '<svg width="10"></svg>')
        self.assertEqual(result["designRationale"], "Clean")

    def test_rationale_followed_by_score_on_next_line(self):
        text = '"selectionRationale": "Most scalable."\n"score": 7.5'
        self.assertEqual(
            extract_fields(text, ("selectionRationale", "score")),
            {"selectionRationale": "Most scalable.", "score": 7.5},
        )

    def test_nothing_recoverable(self):
        self.assertIsNone(extract_fields("no fields here"))
        self.assertIsNone(extract_fields(""))


if __name__ == "__main__":
    unittest.main()
