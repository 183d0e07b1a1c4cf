"""
Best-effort recovery of a JSON object from free-form model output.

`safe_json_parse` never raises: malformed input yields `None` or a partial
object assembled by the field-extraction fallback.
"""
import json
import logging
import re
from collections.abc import Iterable, Iterator
from typing import Any

logger = logging.getLogger(__name__)

FREE_TEXT_FIELDS: tuple[str, ...] = (
    "selectionRationale",
    "designRationale",
    "brand_description",
    "description",
)

DEFAULT_FALLBACK_KEYS: tuple[str, ...] = (
    "selectedConcept",
    "selectionRationale",
    "score",
    "svg",
    "designRationale",
    "isUnique",
    "uniquenessScore",
)

_LEADING_FENCE_RE = re.compile(r"^```(?:json|JSON)?\s*")
_TRAILING_FENCE_RE = re.compile(r"\s*```$")
_LINE_BREAKS_RE = re.compile(r"[\t\n\r]")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1F\x7F-\x9F]")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_MISSING_COMMA_RE = re.compile(r'"(\s*)"([A-Za-z_][\w-]*)"\s*:')
_NEXT_KEY_OR_END_RE = re.compile(r'\s*(?:,\s*"[A-Za-z_][\w-]*"\s*:|})')


def _strip_fences(text: str) -> str:
    text = _LEADING_FENCE_RE.sub("", text, count=1)
    return _TRAILING_FENCE_RE.sub("", text, count=1)


def _slice_object(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def _insert_missing_commas(text: str) -> str:
    # A closing quote directly followed by a new `"key":` is a dropped separator.
    return _MISSING_COMMA_RE.sub(r'",\1"\2":', text)


def _is_escaped(text: str, position: int) -> bool:
    # A quote is escaped only by an odd run of backslashes.
    backslashes = 0
    while position - backslashes - 1 >= 0 and text[position - backslashes - 1] == "\\":
        backslashes += 1
    return backslashes % 2 == 1


def _escape_free_text_field(text: str, key: str) -> str:
    opener = re.search(rf'"{re.escape(key)}"\s*:\s*"', text)
    if not opener:
        return text
    value_start = opener.end()

    # The value ends at the first unescaped quote followed by another key or the
    # closing brace. Quotes before that point belong to the value.
    value_end = -1
    for match in re.finditer(r'"', text[value_start:]):
        position = value_start + match.start()
        if _is_escaped(text, position):
            continue
        if _NEXT_KEY_OR_END_RE.match(text, position + 1):
            value_end = position
            break
    if value_end == -1:
        return text

    value = text[value_start:value_end]
    unescaped = [index for index, char in enumerate(value) if char == '"' and not _is_escaped(value, index)]
    if not unescaped:
        return text
    pieces = []
    previous = 0
    for index in unescaped:
        pieces.append(value[previous:index])
        pieces.append('\\"')
        previous = index + 1
    pieces.append(value[previous:])
    return text[:value_start] + "".join(pieces) + text[value_end:]


def _prepare(text: str) -> str | None:
    sliced = _slice_object(_strip_fences(text.strip()))
    if sliced is None:
        return None
    # Raw line breaks become spaces, every other control character is dropped.
    cleaned = _CONTROL_CHARS_RE.sub("", _LINE_BREAKS_RE.sub(" ", sliced))
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", cleaned)
    return _insert_missing_commas(cleaned)


def _escape_free_text(text: str) -> str:
    for key in FREE_TEXT_FIELDS:
        text = _escape_free_text_field(text, key)
    return text


def _decode_json_string(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"', strict=False)
    except ValueError:
        return raw.replace('\\"', '"').replace("\\\\", "\\")


def extract_fields(text: str, keys: Iterable[str] = DEFAULT_FALLBACK_KEYS) -> dict[str, Any] | None:
    """
    Pull individual top-level values for `keys` straight out of `text` with
    regular expressions. Returns whatever could be recovered, or None.
    """
    if not isinstance(text, str) or not text:
        return None

    # Models often break the rationale across lines or drop the comma before `score`.
    text = re.sub(r'("selectionRationale"\s*:\s*"[^"]*")\s*\n?\s*("score")', r"\1, \2", text)

    recovered: dict[str, Any] = {}
    for key in keys:
        quoted_key = re.escape(key)

        object_match = re.search(rf'"{quoted_key}"\s*:\s*(\{{[^{{}}]*\}})', text)
        if object_match:
            try:
                recovered[key] = json.loads(object_match.group(1), strict=False)
                continue
            except ValueError:
                pass

        string_match = re.search(rf'"{quoted_key}"\s*:\s*"((?:[^"\\]|\\.)*)"', text, re.DOTALL)
        if string_match:
            recovered[key] = _decode_json_string(string_match.group(1))
            continue

        number_match = re.search(rf'"{quoted_key}"\s*:\s*(-?\d+(?:\.\d+)?)', text)
        if number_match:
            number = number_match.group(1)
            recovered[key] = float(number) if "." in number else int(number)
            continue

        bool_match = re.search(rf'"{quoted_key}"\s*:\s*(true|false)\b', text)
        if bool_match:
            recovered[key] = bool_match.group(1) == "true"

    return recovered or None


def _candidates(text: str) -> Iterator[str]:
    # Least invasive first, so well-formed input is never rewritten.
    sliced = _slice_object(_strip_fences(text.strip()))
    if sliced is None:
        return
    yield sliced
    prepared = _prepare(text)
    if prepared is not None:
        yield prepared
        yield _escape_free_text(prepared)


def safe_json_parse(text: Any, *, fallback_keys: Iterable[str] = DEFAULT_FALLBACK_KEYS) -> dict[str, Any] | None:
    """Parse the single JSON object a model response is expected to contain."""
    if not isinstance(text, str):
        return None

    try:
        for candidate in _candidates(text):
            try:
                parsed = json.loads(candidate)
            except ValueError as exc:
                logger.debug("JSON parse attempt failed: %s", exc)
                continue
            return parsed if isinstance(parsed, dict) else None

        recovered = extract_fields(text, fallback_keys)
        if recovered is not None:
            logger.info("Recovered %s field(s) from malformed JSON response.", len(recovered))
        return recovered
    except (RecursionError, re.error) as exc:
        logger.warning("JSON recovery gave up: %s", exc)
        return None
