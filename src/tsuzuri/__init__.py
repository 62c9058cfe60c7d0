from __future__ import annotations

import tomllib
from importlib import metadata
from pathlib import Path


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover - installed without a source tree
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("tsuzuri")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


from .diffing import EditKind, EditOp, accept_diff, diff, reject_diff  # noqa: E402
from .ruby import render, render_diff_html, speech_text, strip  # noqa: E402
from .tokens import Annotated, Plain, Token, tokenize  # noqa: E402
from .weaving import ReadingPair, weave  # noqa: E402

__all__ = [
    "Annotated",
    "EditKind",
    "EditOp",
    "Plain",
    "ReadingPair",
    "Token",
    "accept_diff",
    "diff",
    "reject_diff",
    "render",
    "render_diff_html",
    "speech_text",
    "strip",
    "tokenize",
    "weave",
    "__version__",
]
