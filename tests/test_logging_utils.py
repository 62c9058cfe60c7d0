from __future__ import annotations

import logging

from tsuzuri.logging_utils import (
    Utf8AccessFormatter,
    build_uvicorn_log_config,
    debug_log,
    set_debug_logging,
)


def _access_record(path: str) -> logging.LogRecord:
    return logging.LogRecord(
        "uvicorn.access",
        logging.INFO,
        __file__,
        1,
        '%s - "%s %s HTTP/%s" %d',
        ("127.0.0.1:5000", "GET", path, "1.1", 200),
        None,
    )


def test_access_formatter_decodes_query_text() -> None:
    formatter = Utf8AccessFormatter(fmt="%(request_line)s", use_colors=False)
    message = formatter.formatMessage(_access_record("/api/strip?text=%E9%A3%9F%E3%81%B9"))
    assert message == "GET /api/strip?text=食べ HTTP/1.1"


def test_access_formatter_shows_annotation_markup() -> None:
    formatter = Utf8AccessFormatter(fmt="%(request_line)s", use_colors=False)
    record = _access_record("/api/render?text=%5B%E9%A3%9F%5D%28%E3%81%9F%29")
    assert formatter.formatMessage(record) == "GET /api/render?text=[食](た) HTTP/1.1"


def test_access_formatter_keeps_plain_paths() -> None:
    formatter = Utf8AccessFormatter(fmt="%(request_line)s", use_colors=False)
    assert formatter.formatMessage(_access_record("/api/health")) == "GET /api/health HTTP/1.1"


def test_log_config_uses_utf8_formatter() -> None:
    config = build_uvicorn_log_config()
    assert config["formatters"]["access"]["()"] == "tsuzuri.logging_utils.Utf8AccessFormatter"
    debug_config = build_uvicorn_log_config(debug=True)
    assert debug_config["loggers"]["uvicorn"]["level"] == "DEBUG"


def test_debug_log_is_silent_until_enabled(capsys) -> None:
    debug_log("hidden")
    set_debug_logging(True)
    try:
        debug_log("shown")
    finally:
        set_debug_logging(False)
    captured = capsys.readouterr()
    assert captured.err == "[tsuzuri debug] shown\n"
    assert captured.out == ""
