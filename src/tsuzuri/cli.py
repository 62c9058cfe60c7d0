from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import uvicorn
from rich.console import Console
from rich.text import Text

from . import __version__
from .config import ConfigError, EngineConfig, load_config
from .diffing import GRANULARITIES, EditKind, diff, split_diff
from .logging_utils import build_uvicorn_log_config, debug_log, set_debug_logging
from .nlp import SEGMENTER_NAMES
from .ruby import render, speech_text, strip
from .tokens import serialize_tokens, tokenize
from .weaving import build_reading_table, weave

COMMANDS = ("diff", "weave", "render", "strip", "speech", "tokenize", "serve")

_DIFF_STYLES = {
    EditKind.INSERT: "bold green underline",
    EditKind.DELETE: "red strike",
}


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"tsuzuri {__version__}",
    )


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        help="Path to a TOML config file (defaults to $TSUZURI_CONFIG).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging on stderr.",
    )


def _add_text_arg(parser: argparse.ArgumentParser, name: str, help_text: str) -> None:
    parser.add_argument(
        name,
        help=f"{help_text} Use '-' to read stdin or '@path' to read a UTF-8 file.",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tsuzuri",
        description=(
            "Annotation-aware diffing and reading alignment for journal text. "
            f"Commands: {', '.join(COMMANDS)}."
        ),
    )
    _add_version_flag(ap)
    ap.add_argument("command", choices=COMMANDS, help="Subcommand to run.")
    return ap


def build_diff_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tsuzuri diff",
        description="Diff an original and a corrected text into <ins>/<del> markup.",
    )
    _add_common_flags(ap)
    _add_text_arg(ap, "old", "Original text.")
    _add_text_arg(ap, "new", "Corrected text.")
    ap.add_argument(
        "-g",
        "--granularity",
        choices=GRANULARITIES,
        help="Diff unit: single characters (default) or whole words.",
    )
    ap.add_argument(
        "--color",
        action="store_true",
        help="Print a highlighted diff instead of raw markup.",
    )
    return ap


def build_weave_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tsuzuri weave",
        description="Insert [Base](Reading) markup using a reading table.",
    )
    _add_common_flags(ap)
    _add_text_arg(ap, "text", "Plain or partially annotated text.")
    ap.add_argument(
        "-p",
        "--pairs",
        help=(
            "JSON file with readings: an object {surface: reading} or a list of "
            "{surfaceForm, pronunciation} entries."
        ),
    )
    ap.add_argument(
        "--pair",
        action="append",
        default=[],
        metavar="SURFACE=READING",
        help="Add a single reading (repeatable).",
    )
    ap.add_argument("-l", "--language", help="Language name or locale tag (default from config).")
    ap.add_argument("--segmenter", choices=SEGMENTER_NAMES, help="Word segmentation backend.")
    return ap


def build_markup_parser(command: str) -> argparse.ArgumentParser:
    descriptions = {
        "render": "Render [Base](Reading) markup as <ruby> HTML.",
        "strip": "Strip readings, leaving the base text.",
        "speech": "Plain corrected text from diff markup (no readings, no deletions).",
        "tokenize": "Print the annotation-aware token sequence as JSON.",
    }
    ap = argparse.ArgumentParser(prog=f"tsuzuri {command}", description=descriptions[command])
    _add_common_flags(ap)
    _add_text_arg(ap, "text", "Input text.")
    return ap


def build_serve_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tsuzuri serve",
        description="Serve the engine over HTTP for the journal UI.",
    )
    _add_common_flags(ap)
    ap.add_argument("--host", help="Interface to bind (default from config).")
    ap.add_argument("--port", type=int, help="Port to bind (default from config).")
    return ap


def _read_text_arg(value: str) -> str:
    if value == "-":
        return sys.stdin.read()
    if value.startswith("@") and len(value) > 1:
        path = Path(value[1:]).expanduser()
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SystemExit(f"Failed to read {path}: {exc}") from exc
    return value


def _load_pairs(args: argparse.Namespace) -> dict[str, str]:
    table: dict[str, str] = {}
    if args.pairs:
        path = Path(args.pairs).expanduser()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SystemExit(f"Failed to read readings from {path}: {exc}") from exc
        if not isinstance(data, (list, dict)):
            raise SystemExit(f"Readings in {path} must be a JSON list or object.")
        table.update(build_reading_table(data))
    for item in args.pair:
        surface, sep, reading = item.partition("=")
        if not sep:
            raise SystemExit(f"Invalid --pair value (expected SURFACE=READING): {item}")
        table.update(build_reading_table([(surface, reading)]))
    return table


def _prepare(args: argparse.Namespace) -> EngineConfig:
    set_debug_logging(bool(getattr(args, "debug", False)))
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        raise SystemExit(str(exc)) from exc
    debug_log(f"config: {config}")
    return config


def _print_colored_diff(markup: str) -> None:
    console = Console()
    text = Text()
    for op in split_diff(markup):
        text.append(op.text, style=_DIFF_STYLES.get(op.kind, ""))
    console.print(text, soft_wrap=True)


def _run_diff(args: argparse.Namespace) -> int:
    config = _prepare(args)
    granularity = args.granularity or config.granularity
    markup = diff(_read_text_arg(args.old), _read_text_arg(args.new), granularity=granularity)
    if args.color:
        _print_colored_diff(markup)
    else:
        print(markup)
    return 0


def _run_weave(args: argparse.Namespace) -> int:
    config = _prepare(args)
    table = _load_pairs(args)
    if not table:
        debug_log("weave: empty reading table")
    language = args.language or config.language
    segmenter = args.segmenter or config.segmenter
    print(weave(_read_text_arg(args.text), table, language=language, segmenter=segmenter))
    return 0


def _run_markup(command: str, args: argparse.Namespace) -> int:
    _prepare(args)
    text = _read_text_arg(args.text)
    if command == "render":
        print(render(text))
    elif command == "strip":
        print(strip(text))
    elif command == "speech":
        print(speech_text(text))
    else:
        print(json.dumps(serialize_tokens(tokenize(text)), ensure_ascii=False))
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    from .web import create_app

    config = _prepare(args)
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    try:
        app = create_app(config)
    except ConfigError as exc:
        raise SystemExit(str(exc)) from exc
    print(f"Serving tsuzuri on http://{config.host}:{config.port}/")
    print("Press Ctrl+C to stop.\n")
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_config=build_uvicorn_log_config(bool(args.debug)),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "diff":
        return _run_diff(build_diff_parser().parse_args(argv[1:]))
    if argv and argv[0] == "weave":
        return _run_weave(build_weave_parser().parse_args(argv[1:]))
    if argv and argv[0] in {"render", "strip", "speech", "tokenize"}:
        command = argv[0]
        return _run_markup(command, build_markup_parser(command).parse_args(argv[1:]))
    if argv and argv[0] == "serve":
        return _run_serve(build_serve_parser().parse_args(argv[1:]))

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 1
    parser.parse_args(argv)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
