from __future__ import annotations

import re
from enum import Enum
from typing import Hashable, Iterable, NamedTuple, Sequence

from .nlp import char_script
from .tokens import Annotated, Plain, Token, tokenize, tokens_to_text

__all__ = [
    "DIFF_PATTERN",
    "EditKind",
    "EditOp",
    "GRANULARITIES",
    "accept_diff",
    "diff",
    "edit_script",
    "group_tokens",
    "reject_diff",
    "serialize_edit_script",
    "split_diff",
]

GRANULARITIES = ("char", "word")

DIFF_PATTERN = re.compile(r"<(ins|del)>(.*?)</\1>", re.DOTALL)


class EditKind(str, Enum):
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


class EditOp(NamedTuple):
    kind: EditKind
    text: str


_TAGS = {EditKind.INSERT: "ins", EditKind.DELETE: "del"}


def _unit_class(token: Token) -> str:
    if isinstance(token, Annotated):
        return "annotated"
    script = char_script(token.char)
    if script in ("han", "kana"):
        return "cjk"
    return script


def group_tokens(tokens: Sequence[Token], granularity: str = "char") -> list[tuple[Token, ...]]:
    """
    Group tokens into diff units.

    ``char`` keeps one token per unit. ``word`` merges runs of letters,
    runs of CJK characters and runs of whitespace; punctuation and annotated
    spans stay single units.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown diff granularity: {granularity!r}")
    if granularity == "char":
        return [(token,) for token in tokens]
    units: list[tuple[Token, ...]] = []
    current: list[Token] = []
    current_class = ""
    for token in tokens:
        cls = _unit_class(token)
        mergeable = cls in ("word", "cjk", "space")
        if current and mergeable and cls == current_class:
            current.append(token)
            continue
        if current:
            units.append(tuple(current))
        current = [token]
        current_class = cls if mergeable else ""
    if current:
        units.append(tuple(current))
    return units


def _unit_text(unit: Hashable) -> str:
    if isinstance(unit, tuple):
        return tokens_to_text(unit)
    if isinstance(unit, (Plain, Annotated)):
        return unit.text
    return str(unit)


def edit_script(old: Sequence[Hashable], new: Sequence[Hashable]) -> list[EditOp]:
    """
    Return the LCS edit script turning ``old`` into ``new``.

    ``table[i][j]`` holds the LCS length of the last ``i`` units of ``old``
    and the last ``j`` units of ``new``, so walking from ``(n, m)`` down to
    ``(0, 0)`` yields the operations in text order. Equal units are always
    consumed together; otherwise the larger neighbour wins and ties prefer an
    insertion.
    """
    n = len(old)
    m = len(new)
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        a = old[n - i]
        row = table[i]
        prev = table[i - 1]
        for j in range(1, m + 1):
            if a == new[m - j]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    ops: list[EditOp] = []
    i, j = n, m
    while i > 0 or j > 0:
        if i > 0 and j > 0 and old[n - i] == new[m - j]:
            ops.append(EditOp(EditKind.EQUAL, _unit_text(old[n - i])))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or table[i][j - 1] >= table[i - 1][j]):
            ops.append(EditOp(EditKind.INSERT, _unit_text(new[m - j])))
            j -= 1
        else:
            ops.append(EditOp(EditKind.DELETE, _unit_text(old[n - i])))
            i -= 1
    return ops


def _merge_runs(ops: Iterable[EditOp]) -> list[EditOp]:
    merged: list[EditOp] = []
    for op in ops:
        if not op.text:
            continue
        if merged and merged[-1].kind == op.kind:
            merged[-1] = EditOp(op.kind, merged[-1].text + op.text)
        else:
            merged.append(op)
    return merged


def serialize_edit_script(ops: Iterable[EditOp]) -> str:
    pieces: list[str] = []
    for op in _merge_runs(ops):
        tag = _TAGS.get(op.kind)
        if tag is None:
            pieces.append(op.text)
        else:
            pieces.append(f"<{tag}>{op.text}</{tag}>")
    return "".join(pieces)


def diff(old_text: str | None, new_text: str | None, *, granularity: str = "char") -> str:
    """
    Diff two (possibly annotated) texts into ``<ins>``/``<del>`` markup.

    Annotated spans are compared as whole units and are never split.

    Inputs are journal text, not diff markup: literal ``<ins>``/``<del>``
    tags are copied through unescaped, so they read as diff spans in the
    result. Such text is outside the supported input; equal runs are still
    copied verbatim.
    """
    old_text = old_text or ""
    new_text = new_text or ""
    if not old_text and not new_text:
        return ""
    if not old_text:
        return f"<ins>{new_text}</ins>"
    if not new_text:
        return f"<del>{old_text}</del>"
    old_units = group_tokens(tokenize(old_text), granularity)
    new_units = group_tokens(tokenize(new_text), granularity)
    return serialize_edit_script(edit_script(old_units, new_units))


def split_diff(markup: str | None) -> list[EditOp]:
    """Parse diff markup back into merged runs; stray tags stay literal text."""
    ops: list[EditOp] = []
    if not markup:
        return ops
    pos = 0
    for match in DIFF_PATTERN.finditer(markup):
        if match.start() > pos:
            ops.append(EditOp(EditKind.EQUAL, markup[pos:match.start()]))
        kind = EditKind.INSERT if match.group(1) == "ins" else EditKind.DELETE
        ops.append(EditOp(kind, match.group(2)))
        pos = match.end()
    if pos < len(markup):
        ops.append(EditOp(EditKind.EQUAL, markup[pos:]))
    return _merge_runs(ops)


def accept_diff(markup: str | None) -> str:
    """Keep insertions and drop deletions (the corrected text)."""
    return "".join(op.text for op in split_diff(markup) if op.kind != EditKind.DELETE)


def reject_diff(markup: str | None) -> str:
    """Keep deletions and drop insertions (the original text)."""
    return "".join(op.text for op in split_diff(markup) if op.kind != EditKind.INSERT)
