from __future__ import annotations

import os
import shlex
import unicodedata
import warnings
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import NamedTuple, Protocol

__all__ = [
    "MecabSegmenter",
    "ScriptSegmenter",
    "Segment",
    "Segmenter",
    "SegmenterUnavailableError",
    "SEGMENTER_NAMES",
    "char_script",
    "contains_ideograph",
    "create_segmenter",
    "get_unidic_dicdir",
    "is_ideographic",
    "is_phonetic",
    "resolve_locale",
]

SEGMENTER_NAMES = ("script", "mecab")


class SegmenterUnavailableError(RuntimeError):
    """Raised when a word segmentation backend cannot be initialized."""


class Segment(NamedTuple):
    text: str
    word_like: bool


class Segmenter(Protocol):
    def segment(self, text: str) -> list[Segment]: ...


# Languages with word-level segmentation support, keyed by the names the
# journal UI and the generative service use.
_LOCALE_ALIASES = {
    "ja": "ja",
    "japanese": "ja",
    "日本語": "ja",
    "zh": "zh",
    "chinese": "zh",
    "mandarin": "zh",
    "中文": "zh",
    "ko": "ko",
    "korean": "ko",
    "한국어": "ko",
    "en": "en",
    "english": "en",
    "de": "de",
    "german": "de",
    "deutsch": "de",
    "fr": "fr",
    "french": "fr",
    "français": "fr",
    "es": "es",
    "spanish": "es",
    "español": "es",
    "it": "it",
    "italian": "it",
    "pt": "pt",
    "portuguese": "pt",
    "ru": "ru",
    "russian": "ru",
}


def resolve_locale(language: str | None) -> str | None:
    """Map a language name or locale tag to a supported base locale."""
    if not language:
        return None
    key = language.strip().lower().replace("_", "-")
    if key in _LOCALE_ALIASES:
        return _LOCALE_ALIASES[key]
    base = key.split("-", 1)[0]
    return _LOCALE_ALIASES.get(base)


def is_ideographic(ch: str) -> bool:
    if not ch:
        return False
    code = ord(ch)
    return (
        0x4E00 <= code <= 0x9FFF
        or 0x3400 <= code <= 0x4DBF
        or 0x20000 <= code <= 0x2A6DF
        or 0x2A700 <= code <= 0x2B73F
        or 0x2B740 <= code <= 0x2B81F
        or 0x2B820 <= code <= 0x2CEAF
        or 0x2CEB0 <= code <= 0x2EBEF
        or 0x30000 <= code <= 0x3134F
        or 0xF900 <= code <= 0xFAFF
        or 0x2F800 <= code <= 0x2FA1F
        or ch in "々〆ヵヶ"
    )


def is_phonetic(ch: str) -> bool:
    return bool(ch) and not is_ideographic(ch)


def contains_ideograph(text: str) -> bool:
    return any(is_ideographic(ch) for ch in text)


def _is_kana(ch: str) -> bool:
    code = ord(ch)
    return (
        0x3041 <= code <= 0x309F
        or 0x30A0 <= code <= 0x30FF
        or 0x31F0 <= code <= 0x31FF
        or 0xFF66 <= code <= 0xFF9F
    )


def char_script(ch: str) -> str:
    """Classify a character as ``han``, ``kana``, ``word``, ``space`` or ``punct``."""
    if ch.isspace():
        return "space"
    if is_ideographic(ch):
        return "han"
    if _is_kana(ch):
        return "kana"
    if ch.isalnum() or ch in "'_’":
        return "word"
    if unicodedata.category(ch).startswith("M"):
        return "word"
    return "punct"


class ScriptSegmenter:
    """
    Dictionary-free segmenter driven by character scripts.

    Alphabetic runs (with apostrophes) form one word; whitespace runs and
    punctuation marks are non-word segments. Han and kana characters are
    emitted one per segment because unspaced scripts carry no boundary
    information without a dictionary; the weaver joins consecutive segments
    when looking up surface forms.
    """

    def segment(self, text: str) -> list[Segment]:
        segments: list[Segment] = []
        if not text:
            return segments
        start = 0
        current = char_script(text[0])
        for idx in range(1, len(text) + 1):
            script = char_script(text[idx]) if idx < len(text) else ""
            if script == current and script in ("word", "space"):
                continue
            chunk = text[start:idx]
            segments.append(Segment(chunk, current in ("word", "han", "kana")))
            start = idx
            current = script
        return segments


def get_unidic_dicdir() -> Path | None:
    env_dir = os.environ.get("TSUZURI_UNIDIC_DIR")
    if env_dir:
        candidate = Path(env_dir).expanduser()
        if (candidate / "dicrc").exists():
            return candidate
    try:
        import unidic  # type: ignore
    except ImportError:
        return None
    dicdir = Path(getattr(unidic, "DICDIR", ""))
    if dicdir and (dicdir / "dicrc").exists():
        return dicdir
    return None


@dataclass
class _Morpheme:
    surface: str
    start: int
    end: int


def _build_tagger():
    try:
        import fugashi  # type: ignore
    except ImportError as exc:
        raise SegmenterUnavailableError(
            "segmenter 'mecab' needs fugashi; install tsuzuri[mecab] or use 'script'."
        ) from exc

    dicdir = get_unidic_dicdir()
    if dicdir is None:
        warnings.warn(
            "No UniDic found (set TSUZURI_UNIDIC_DIR); "
            "Japanese word boundaries come from MeCab's default dictionary.",
            RuntimeWarning,
            stacklevel=3,
        )
        try:
            return fugashi.Tagger()
        except RuntimeError as exc:
            raise SegmenterUnavailableError(f"MeCab has no usable dictionary: {exc}") from exc

    args = f"-d {shlex.quote(str(dicdir))}"
    # Named UniDic features; older fugashi releases lack the wrapper.
    features = getattr(fugashi.fugashi, "UnidicFeatures29", None)
    try:
        if features is None:
            return fugashi.GenericTagger(args)
        return fugashi.GenericTagger(args, features)
    except RuntimeError as exc:
        raise SegmenterUnavailableError(f"MeCab rejected UniDic at {dicdir}: {exc}") from exc


class MecabSegmenter:
    """
    Japanese word boundaries from MeCab.

    Each morpheme surface becomes one segment, so :func:`tsuzuri.weaving.weave`
    can match reading-table entries like ``食べます`` that span several
    morphemes. Text MeCab skips (spaces) is kept as non-word segments.
    """

    def __init__(self) -> None:
        self._tagger = _build_tagger()

    def _morphemes(self, text: str) -> list[_Morpheme]:
        morphemes: list[_Morpheme] = []
        pos = 0
        for raw in self._tagger(text):
            surface = raw.surface
            if not surface:
                continue
            start = text.find(surface, pos)
            if start == -1:
                start = pos
            end = start + len(surface)
            morphemes.append(_Morpheme(surface=surface, start=start, end=end))
            pos = end
        return morphemes

    def segment(self, text: str) -> list[Segment]:
        segments: list[Segment] = []
        if not text:
            return segments
        pos = 0
        for morpheme in self._morphemes(text):
            if morpheme.start > pos:
                segments.append(Segment(text[pos:morpheme.start], False))
            word_like = any(char_script(ch) in ("han", "kana", "word") for ch in morpheme.surface)
            segments.append(Segment(text[morpheme.start:morpheme.end], word_like))
            pos = morpheme.end
        if pos < len(text):
            segments.append(Segment(text[pos:], False))
        return segments


@lru_cache(maxsize=None)
def _shared_mecab() -> MecabSegmenter:
    return MecabSegmenter()


def create_segmenter(name: str, locale: str | None = None) -> Segmenter:
    """
    Return the segmenter called ``name`` for ``locale``.

    MeCab only segments Japanese; other locales use the script segmenter.
    Raises :class:`SegmenterUnavailableError` when MeCab cannot be loaded.
    """
    if name not in SEGMENTER_NAMES:
        raise ValueError(f"Unknown segmenter: {name!r}")
    if name == "mecab" and locale in (None, "ja"):
        return _shared_mecab()
    return ScriptSegmenter()
