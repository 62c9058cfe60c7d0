from __future__ import annotations

from typing import Iterable, Mapping, NamedTuple, Union

from .logging_utils import debug_log
from .nlp import (
    ScriptSegmenter,
    Segment,
    Segmenter,
    SegmenterUnavailableError,
    create_segmenter,
    is_phonetic,
    resolve_locale,
)
from .tokens import Annotated, format_annotation, tokenize

__all__ = [
    "ReadingPair",
    "annotate_word",
    "build_reading_table",
    "trim_common_suffix",
    "weave",
]

_DELIMITERS = frozenset("[]()<>")

# Key pairs accepted for dict-shaped reading entries, in lookup order.
_PAIR_KEYS = (
    ("surfaceForm", "pronunciation"),
    ("surface", "reading"),
    ("word", "reading"),
)


class ReadingPair(NamedTuple):
    surface: str
    reading: str


ReadingPairs = Union[
    Mapping[str, str],
    Iterable[Union[ReadingPair, tuple[str, str], Mapping[str, object]]],
    None,
]


def _pair_from_entry(entry: object) -> tuple[object, object] | None:
    if isinstance(entry, Mapping):
        for surface_key, reading_key in _PAIR_KEYS:
            if surface_key in entry:
                return entry.get(surface_key), entry.get(reading_key)
        return None
    if isinstance(entry, (tuple, list)) and len(entry) == 2:
        return entry[0], entry[1]
    return None


def build_reading_table(pairs: ReadingPairs) -> dict[str, str]:
    """
    Normalize reading pairs into ``{surface: reading}``.

    Accepts a mapping, ``(surface, reading)`` tuples, or dicts using the
    generative service's ``surfaceForm``/``pronunciation`` keys. Later
    duplicates replace earlier ones; empty or non-string entries are dropped.
    """
    table: dict[str, str] = {}
    if not pairs:
        return table
    items: Iterable[object]
    if isinstance(pairs, Mapping):
        items = pairs.items()
    else:
        items = pairs
    for entry in items:
        pair = _pair_from_entry(entry)
        if pair is None:
            continue
        surface, reading = pair
        if not isinstance(surface, str) or not isinstance(reading, str):
            continue
        surface = surface.strip()
        reading = reading.strip()
        if not surface or not reading:
            continue
        table[surface] = reading
    return table


def trim_common_suffix(surface: str, reading: str) -> tuple[str, str, str]:
    """
    Split off the trailing phonetic run shared by ``surface`` and ``reading``.

    Returns ``(core, reading_core, suffix)``; the comparison stops at the
    first mismatch or ideographic character.
    """
    shared = 0
    limit = min(len(surface), len(reading))
    while shared < limit:
        ch = surface[-1 - shared]
        if ch != reading[-1 - shared] or not is_phonetic(ch):
            break
        shared += 1
    core = surface[: len(surface) - shared]
    reading_core = reading[: len(reading) - shared]
    return core, reading_core, surface[len(surface) - shared :]


def annotate_word(surface: str, reading: str) -> str:
    """Return the minimal ``[core](reading)`` markup for one surface word."""
    if not reading or reading == surface:
        return surface
    core, reading_core, suffix = trim_common_suffix(surface, reading)
    if not core or not reading_core:
        return surface
    if _DELIMITERS.intersection(core) or _DELIMITERS.intersection(reading_core):
        return surface
    return format_annotation(core, reading_core) + suffix


def _weave_run(run: str, table: Mapping[str, str], segmenter: Segmenter, max_len: int) -> str:
    segments: list[Segment] = segmenter.segment(run)
    pieces: list[str] = []
    idx = 0
    while idx < len(segments):
        segment = segments[idx]
        if not segment.word_like:
            pieces.append(segment.text)
            idx += 1
            continue
        # Longest run of consecutive word segments that names a table entry.
        best_end = -1
        best_surface = ""
        candidate = ""
        for end in range(idx, len(segments)):
            if not segments[end].word_like:
                break
            candidate += segments[end].text
            if len(candidate) > max_len:
                break
            if candidate in table:
                best_end = end
                best_surface = candidate
        if best_end < 0:
            pieces.append(segment.text)
            idx += 1
            continue
        pieces.append(annotate_word(best_surface, table[best_surface]))
        idx = best_end + 1
    return "".join(pieces)


def _woven_tail_length(
    previous: Annotated, run: str, table: Mapping[str, str], max_len: int
) -> int:
    """
    Length of the prefix of ``run`` that ``previous`` already left as its suffix.

    ``[来](き)ます`` is what :func:`annotate_word` makes of ``来ます``; when that
    surface is in the table the ``ます`` belongs to the annotation and is not
    looked up again.
    """
    for size in range(min(len(run), max_len - len(previous.base)), 0, -1):
        surface = previous.base + run[:size]
        reading = table.get(surface)
        if reading is None:
            continue
        if annotate_word(surface, reading) == previous.text + run[:size]:
            return size
    return 0


def _weave_plain(
    run: str,
    previous: Annotated | None,
    table: Mapping[str, str],
    segmenter: Segmenter,
    max_len: int,
) -> str:
    skip = _woven_tail_length(previous, run, table, max_len) if previous is not None else 0
    if skip == len(run):
        return run
    return run[:skip] + _weave_run(run[skip:], table, segmenter, max_len)


def weave(
    text: str | None,
    reading_pairs: ReadingPairs,
    *,
    language: str | None = None,
    segmenter: Segmenter | str | None = None,
) -> str:
    """
    Insert ``[Base](Reading)`` markup for every surface form found in ``text``.

    Existing annotations are kept intact and never re-woven. Without a usable
    reading table, a supported language or a working segmenter the text is
    returned unchanged.
    """
    if not text:
        return text or ""
    table = {
        surface: reading
        for surface, reading in build_reading_table(reading_pairs).items()
        if reading != surface
    }
    if not table:
        return text
    locale = None
    if language is not None:
        locale = resolve_locale(language)
        if locale is None:
            debug_log(f"weave skipped: no word segmentation for language {language!r}")
            return text
    if segmenter is None:
        segmenter = ScriptSegmenter()
    elif isinstance(segmenter, str):
        try:
            segmenter = create_segmenter(segmenter, locale)
        except SegmenterUnavailableError as exc:
            debug_log(f"weave skipped: {exc}")
            return text

    max_len = max(len(surface) for surface in table)
    pieces: list[str] = []
    run: list[str] = []
    previous: Annotated | None = None
    for token in tokenize(text):
        if isinstance(token, Annotated):
            if run:
                pieces.append(_weave_plain("".join(run), previous, table, segmenter, max_len))
                run = []
            pieces.append(token.text)
            previous = token
        else:
            run.append(token.char)
    if run:
        pieces.append(_weave_plain("".join(run), previous, table, segmenter, max_len))
    return "".join(pieces)
