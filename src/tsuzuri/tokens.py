from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

__all__ = [
    "ANNOTATION_PATTERN",
    "Annotated",
    "Plain",
    "Token",
    "deserialize_tokens",
    "format_annotation",
    "serialize_tokens",
    "tokenize",
    "tokens_to_text",
]

# [Base](Reading); neither part may be empty or contain any of []()<>.
ANNOTATION_PATTERN = re.compile(r"\[([^\[\]()<>]+)\]\(([^\[\]()<>]+)\)")


def format_annotation(base: str, reading: str) -> str:
    return f"[{base}]({reading})"


@dataclass(frozen=True, slots=True)
class Plain:
    """A single character outside any annotation."""

    char: str

    @property
    def text(self) -> str:
        return self.char


@dataclass(frozen=True, slots=True)
class Annotated:
    """
    An indivisible base span carrying its pronunciation.

    Two annotated tokens are equal only when both the base and the reading
    match, so a changed reading shows up as a replacement in diffs.
    """

    base: str
    reading: str

    @property
    def text(self) -> str:
        return format_annotation(self.base, self.reading)


Token = Union[Plain, Annotated]


def tokenize(text: str | None) -> list[Token]:
    """
    Split ``text`` into annotation-aware tokens.

    Well-formed ``[Base](Reading)`` spans become one :class:`Annotated` token;
    every other character (including the brackets of malformed markup) becomes
    its own :class:`Plain` token.
    """
    tokens: list[Token] = []
    if not text:
        return tokens
    pos = 0
    length = len(text)
    while pos < length:
        ch = text[pos]
        if ch == "[":
            match = ANNOTATION_PATTERN.match(text, pos)
            if match:
                tokens.append(Annotated(base=match.group(1), reading=match.group(2)))
                pos = match.end()
                continue
        tokens.append(Plain(ch))
        pos += 1
    return tokens


def tokens_to_text(tokens: Iterable[Token]) -> str:
    return "".join(token.text for token in tokens)


def serialize_tokens(tokens: Iterable[Token]) -> list[dict[str, object]]:
    payload: list[dict[str, object]] = []
    for token in tokens:
        if isinstance(token, Annotated):
            payload.append({"type": "annotated", "base": token.base, "reading": token.reading})
        else:
            payload.append({"type": "plain", "text": token.char})
    return payload


def deserialize_tokens(data: Iterable[Mapping[str, object]]) -> list[Token]:
    tokens: list[Token] = []
    for entry in data:
        if not isinstance(entry, Mapping):
            continue
        kind = entry.get("type")
        if kind == "annotated":
            base = entry.get("base")
            reading = entry.get("reading")
            if not isinstance(base, str) or not isinstance(reading, str):
                continue
            if not base or not reading:
                continue
            tokens.append(Annotated(base=base, reading=reading))
        elif kind == "plain":
            char = entry.get("text")
            if not isinstance(char, str) or len(char) != 1:
                continue
            tokens.append(Plain(char))
    return tokens
