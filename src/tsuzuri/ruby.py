from __future__ import annotations

import re

from .diffing import EditKind, accept_diff, split_diff
from .nlp import Segmenter
from .tokens import ANNOTATION_PATTERN
from .weaving import ReadingPairs, weave

__all__ = [
    "DEFAULT_DEL_CLASS",
    "DEFAULT_INS_CLASS",
    "render",
    "render_diff_html",
    "speech_text",
    "strip",
]

DEFAULT_INS_CLASS = "diff-ins"
DEFAULT_DEL_CLASS = "diff-del"

# Text parts of a rendered ruby element hold no tags and no bracket markup.
_RUBY_HTML = (
    r"<ruby>([^<>\[\]]*)"
    r"(?:<rp>[^<>\[\]]*</rp>)?<rt>[^<>\[\]]*</rt>(?:<rp>[^<>\[\]]*</rp>)?"
    r"</ruby>"
)
_STRIP_PATTERN = re.compile(f"{_RUBY_HTML}|{ANNOTATION_PATTERN.pattern}")


def _base_text(match: re.Match[str]) -> str:
    ruby_base = match.group(1)
    return ruby_base if ruby_base is not None else match.group(2)


def render(markup: str | None) -> str:
    """Turn ``[Base](Reading)`` into ``<ruby>Base<rt>Reading</rt></ruby>``."""
    if not markup:
        return ""
    return ANNOTATION_PATTERN.sub(r"<ruby>\1<rt>\2</rt></ruby>", markup)


def strip(markup: str | None) -> str:
    """
    Remove readings, keeping only the base text.

    Handles both the bracket markup and the rendered ``<ruby>`` form, so text
    that already went through :func:`render` can still be sent to speech
    synthesis. Both forms are removed in one pass; the result is never
    rescanned, so ``strip(render(text)) == strip(text)``.
    """
    if not markup:
        return ""
    return _STRIP_PATTERN.sub(_base_text, markup)


def render_diff_html(
    diff_markup: str | None,
    *,
    reading_pairs: ReadingPairs = None,
    language: str | None = None,
    segmenter: Segmenter | str | None = None,
    show_readings: bool = True,
    ins_class: str = DEFAULT_INS_CLASS,
    del_class: str = DEFAULT_DEL_CLASS,
) -> str:
    """
    Render diff markup for display.

    Every run is woven with ``reading_pairs`` separately so annotations never
    straddle an ``<ins>``/``<del>`` boundary. With ``show_readings`` off the
    readings are stripped instead of rendered.
    """
    pieces: list[str] = []
    for op in split_diff(diff_markup):
        text = op.text
        if show_readings:
            if reading_pairs:
                text = weave(text, reading_pairs, language=language, segmenter=segmenter)
            text = render(text)
        else:
            text = strip(text)
        if op.kind == EditKind.INSERT:
            pieces.append(f'<span class="{ins_class}">{text}</span>')
        elif op.kind == EditKind.DELETE:
            pieces.append(f'<span class="{del_class}">{text}</span>')
        else:
            pieces.append(text)
    return "".join(pieces)


def speech_text(markup: str | None) -> str:
    """Plain corrected text for speech synthesis: no readings, no deletions."""
    return strip(accept_diff(markup))
