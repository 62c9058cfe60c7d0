from __future__ import annotations

import sys
from copy import copy, deepcopy
from typing import Any
from urllib.parse import unquote

from uvicorn.config import LOGGING_CONFIG
from uvicorn.logging import AccessFormatter as UvicornAccessFormatter

_DEBUG_LOG = False


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def debug_enabled() -> bool:
    return _DEBUG_LOG


def debug_log(message: str) -> None:
    if _DEBUG_LOG:
        print(f"[tsuzuri debug] {message}", file=sys.stderr)


def _readable_request_path(path: object) -> object:
    # GET /api/render and /api/strip carry annotation markup in ``?text=``.
    if not isinstance(path, str) or "%" not in path:
        return path
    return unquote(path, encoding="utf-8", errors="replace")


class Utf8AccessFormatter(UvicornAccessFormatter):
    """
    Access log formatter for the tsuzuri service.

    ``GET /api/strip?text=%5B%E9%A3%9F%5D...`` is logged as
    ``GET /api/strip?text=[食]...`` so the journal text in a request can be read
    off the log. Records without the five access-line arguments are passed to
    uvicorn untouched.
    """

    def formatMessage(self, record):  # type: ignore[override]
        args = record.args
        if not isinstance(args, tuple) or len(args) != 5:
            return super().formatMessage(record)
        client_addr, method, path, http_version, status_code = args
        readable = copy(record)
        path = _readable_request_path(path)
        readable.args = (client_addr, method, path, http_version, status_code)
        return super().formatMessage(readable)


def build_uvicorn_log_config(debug: bool = False) -> dict[str, Any]:
    """
    uvicorn ``log_config`` for ``tsuzuri serve``.

    Access lines go through :class:`Utf8AccessFormatter`; ``--debug`` lowers
    every uvicorn logger to ``DEBUG`` alongside :func:`debug_log`.
    """
    config = deepcopy(LOGGING_CONFIG)
    formatter = config.get("formatters", {}).get("access")
    if isinstance(formatter, dict):
        formatter["()"] = "tsuzuri.logging_utils.Utf8AccessFormatter"
    if debug:
        for logger in config.get("loggers", {}).values():
            if isinstance(logger, dict) and "level" in logger:
                logger["level"] = "DEBUG"
    return config
