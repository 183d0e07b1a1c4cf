"""
Lossless tokenizer for SVG markup.

Markup is split once into tags, text and the XML odds and ends; untouched tokens
render back to their exact source text so passes that change nothing leave the
document byte-identical. Passes never mutate tokens: `Token.replace_attrs` and
friends return new tokens.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace

START = "start"
END = "end"
EMPTY = "empty"
TEXT = "text"
COMMENT = "comment"
CDATA = "cdata"
PI = "pi"
DOCTYPE = "doctype"

ELEMENT_KINDS = (START, EMPTY)

_NAME = r"[A-Za-z_][\w:.-]*"
_ATTRIBUTE = r"""[^\s=/>"'<]+(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+?(?=\s|/?>)))?"""

_TOKEN_RE = re.compile(
    r"(?P<comment><!--.*?-->)"
    r"|(?P<cdata><!\[CDATA\[.*?\]\]>)"
    r"|(?P<pi><\?.*?\?>)"
    r"|(?P<doctype><!(?i:doctype)[^>]*>)"
    rf"|(?P<end></\s*(?P<end_name>{_NAME})\s*>)"
    rf"|(?P<tag><(?P<name>{_NAME})(?P<attrs>(?:\s+{_ATTRIBUTE})*)\s*(?P<slash>/)?>)",
    re.DOTALL,
)

_ATTR_RE = re.compile(
    r"""([^\s=/>"'<]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+?)(?=\s|/?>|$)))?""",
    re.DOTALL,
)


@dataclass(frozen=True)
class Attribute:
    name: str
    value: str | None
    # '"' or "'" for quoted values, "" for unquoted ones, None for bare names.
    quote: str | None = '"'

    def render(self) -> str:
        if self.value is None:
            return self.name
        quote = self.quote or '"'
        return f"{self.name}={quote}{self.value}{quote}"


@dataclass(frozen=True)
class Token:
    kind: str
    raw: str
    name: str = ""
    attrs: tuple[Attribute, ...] = field(default_factory=tuple)
    dirty: bool = False

    @property
    def is_element(self) -> bool:
        return self.kind in ELEMENT_KINDS

    @property
    def local_name(self) -> str:
        return self.name.split(":", 1)[-1].lower()

    def attr(self, name: str) -> str | None:
        lowered = name.lower()
        for attribute in self.attrs:
            if attribute.name.lower() == lowered:
                return attribute.value
        return None

    def has_attr(self, name: str) -> bool:
        lowered = name.lower()
        return any(attribute.name.lower() == lowered for attribute in self.attrs)

    def render(self) -> str:
        if not self.dirty:
            return self.raw
        if self.kind == END:
            return f"</{self.name}>"
        if self.kind in ELEMENT_KINDS:
            parts = [self.name, *(attribute.render() for attribute in self.attrs)]
            closer = "/>" if self.kind == EMPTY else ">"
            return f"<{' '.join(parts)}{closer}"
        return self.raw

    def replace_attrs(self, attrs: Iterable[Attribute]) -> Token:
        return replace(self, attrs=tuple(attrs), dirty=True)

    def with_attr(self, name: str, value: str) -> Token:
        lowered = name.lower()
        updated: list[Attribute] = []
        found = False
        for attribute in self.attrs:
            if attribute.name.lower() == lowered:
                updated.append(Attribute(attribute.name, value, attribute.quote or '"'))
                found = True
            else:
                updated.append(attribute)
        if not found:
            updated.append(Attribute(name, value))
        return self.replace_attrs(updated)

    def without_attrs(self, predicate: Callable[[Attribute], bool]) -> Token:
        kept = [attribute for attribute in self.attrs if not predicate(attribute)]
        if len(kept) == len(self.attrs):
            return self
        return self.replace_attrs(kept)

    def normalized(self) -> Token:
        """Force re-serialization with canonical whitespace."""
        return replace(self, dirty=True)


def text_token(text: str) -> Token:
    return Token(kind=TEXT, raw=text)


def end_token(name: str) -> Token:
    return Token(kind=END, raw=f"</{name}>", name=name)


def element_token(name: str, attrs: Iterable[Attribute] = (), *, empty: bool = False) -> Token:
    return Token(kind=EMPTY if empty else START, raw="", name=name, attrs=tuple(attrs), dirty=True)


def _parse_attrs(source: str) -> tuple[Attribute, ...]:
    attrs: list[Attribute] = []
    for match in _ATTR_RE.finditer(source):
        name, double, single, bare = match.groups()
        if double is not None:
            attrs.append(Attribute(name, double, '"'))
        elif single is not None:
            attrs.append(Attribute(name, single, "'"))
        elif bare is not None:
            attrs.append(Attribute(name, bare, ""))
        else:
            attrs.append(Attribute(name, None, None))
    return tuple(attrs)


def tokenize(markup: str) -> list[Token]:
    tokens: list[Token] = []
    position = 0
    for match in _TOKEN_RE.finditer(markup):
        if match.start() > position:
            tokens.append(text_token(markup[position:match.start()]))
        raw = match.group(0)
        if match.group("comment") is not None:
            tokens.append(Token(kind=COMMENT, raw=raw))
        elif match.group("cdata") is not None:
            tokens.append(Token(kind=CDATA, raw=raw))
        elif match.group("pi") is not None:
            tokens.append(Token(kind=PI, raw=raw))
        elif match.group("doctype") is not None:
            tokens.append(Token(kind=DOCTYPE, raw=raw))
        elif match.group("end") is not None:
            tokens.append(Token(kind=END, raw=raw, name=match.group("end_name")))
        else:
            kind = EMPTY if match.group("slash") else START
            tokens.append(
                Token(kind=kind, raw=raw, name=match.group("name"), attrs=_parse_attrs(match.group("attrs") or ""))
            )
        position = match.end()
    if position < len(markup):
        tokens.append(text_token(markup[position:]))
    return tokens


def render(tokens: Iterable[Token]) -> str:
    return "".join(token.render() for token in tokens)


def elements(tokens: Iterable[Token]) -> list[Token]:
    return [token for token in tokens if token.is_element]


def find_root(tokens: list[Token]) -> int | None:
    for index, token in enumerate(tokens):
        if token.is_element and token.local_name == "svg":
            return index
    return None


def matching_end(tokens: list[Token], start_index: int) -> int | None:
    """Index of the end tag closing the element opened at `start_index`."""
    opener = tokens[start_index]
    if opener.kind == EMPTY:
        return start_index
    depth = 0
    for index in range(start_index, len(tokens)):
        token = tokens[index]
        if token.kind == START:
            depth += 1
        elif token.kind == END:
            depth -= 1
            if depth == 0:
                return index if token.name == opener.name else None
    return None


def drop_elements(tokens: list[Token], predicate: Callable[[Token], bool]) -> tuple[list[Token], list[str]]:
    """
    Remove every element matching `predicate` together with its subtree.
    An opener without a matching end tag is removed on its own.
    Returns the new token list and the names of the removed elements.
    """
    kept: list[Token] = []
    removed: list[str] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.is_element and predicate(token):
            removed.append(token.name)
            end_index = matching_end(tokens, index)
            index = (end_index if end_index is not None else index) + 1
            continue
        kept.append(token)
        index += 1
    return kept, removed


def element_depths(tokens: Iterable[Token]) -> Iterable[tuple[int, Token]]:
    """Yield (depth, token) for every element, the root being depth 1."""
    depth = 0
    for token in tokens:
        if token.kind == START:
            depth += 1
            yield depth, token
        elif token.kind == EMPTY:
            yield depth + 1, token
        elif token.kind == END:
            depth = max(0, depth - 1)


def max_depth(tokens: Iterable[Token]) -> int:
    return max((depth for depth, _ in element_depths(tokens)), default=0)


def text_content(tokens: list[Token], start_index: int) -> str:
    """Concatenated text inside the element opened at `start_index`."""
    end_index = matching_end(tokens, start_index)
    if end_index is None or end_index == start_index:
        return ""
    return "".join(token.raw for token in tokens[start_index + 1:end_index] if token.kind in (TEXT, CDATA))
