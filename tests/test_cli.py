from __future__ import annotations

import io
import json
import re

import pytest

import tsuzuri.cli as cli


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TSUZURI_CONFIG", "TSUZURI_LANGUAGE", "TSUZURI_SEGMENTER", "TSUZURI_GRANULARITY"):
        monkeypatch.delenv(name, raising=False)
    yield
    cli.set_debug_logging(False)


def test_diff_command(capsys) -> None:
    assert cli.main(["diff", "I go school", "I go to school"]) == 0
    assert capsys.readouterr().out == "I go <ins>to </ins>school\n"


def test_diff_command_word_granularity(capsys) -> None:
    assert cli.main(["diff", "-g", "word", "I goed home", "I went home"]) == 0
    assert capsys.readouterr().out == "I <ins>went</ins><del>goed</del> home\n"


def test_diff_command_colored_output(capsys) -> None:
    assert cli.main(["diff", "--color", "I go school", "I go to school"]) == 0
    out = re.sub(r"\x1b\[[0-9;]*m", "", capsys.readouterr().out)
    assert "I go to school" in out
    assert "<ins>" not in out


def test_diff_reads_files_and_stdin(tmp_path, monkeypatch, capsys) -> None:
    old_path = tmp_path / "old.txt"
    old_path.write_text("[食](た)べます", encoding="utf-8")
    monkeypatch.setattr(cli.sys, "stdin", io.StringIO("[食](た)べました"))
    assert cli.main(["diff", f"@{old_path}", "-"]) == 0
    assert capsys.readouterr().out == "[食](た)べま<ins>した</ins><del>す</del>\n"


def test_missing_input_file_exits(tmp_path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["strip", f"@{tmp_path / 'nope.txt'}"])
    assert "nope.txt" in str(excinfo.value)


def test_weave_command_with_pairs_file(tmp_path, capsys) -> None:
    pairs_path = tmp_path / "pairs.json"
    pairs_path.write_text(
        json.dumps([{"surfaceForm": "食べます", "pronunciation": "たべます"}], ensure_ascii=False),
        encoding="utf-8",
    )
    assert cli.main(["weave", "パンを食べます", "--pairs", str(pairs_path)]) == 0
    assert capsys.readouterr().out == "パンを[食](た)べます\n"


def test_weave_command_inline_pairs(capsys) -> None:
    assert cli.main(["weave", "明日", "--pair", "明日=あした"]) == 0
    assert capsys.readouterr().out == "[明日](あした)\n"


def test_weave_command_rejects_bad_pair() -> None:
    with pytest.raises(SystemExit):
        cli.main(["weave", "明日", "--pair", "明日"])


def test_markup_commands(capsys) -> None:
    assert cli.main(["render", "[食](た)べ"]) == 0
    assert cli.main(["strip", "[食](た)べ"]) == 0
    assert cli.main(["speech", "<del>[食](た)べ</del><ins>[飲](の)み</ins>ます"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["<ruby>食<rt>た</rt></ruby>べ", "食べ", "飲みます"]


def test_tokenize_command(capsys) -> None:
    assert cli.main(["tokenize", "a[食](た)"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload[1] == {"type": "annotated", "base": "食", "reading": "た"}


def test_invalid_config_exits(tmp_path) -> None:
    path = tmp_path / "bad.toml"
    path.write_text('segmenter = "icu"\n', encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["strip", "x", "--config", str(path)])
    assert "segmenter" in str(excinfo.value)


def test_debug_flag_logs_to_stderr(capsys) -> None:
    assert cli.main(["weave", "明日", "--debug"]) == 0
    captured = capsys.readouterr()
    assert captured.out == "明日\n"
    assert "[tsuzuri debug]" in captured.err


def test_serve_uses_config_and_log_config(monkeypatch, capsys) -> None:
    calls: dict[str, object] = {}

    def _fake_run(app, host, port, log_config):
        calls["host"] = host
        calls["port"] = port
        calls["formatter"] = log_config["formatters"]["access"]["()"]

    monkeypatch.setattr(cli.uvicorn, "run", _fake_run)
    assert cli.main(["serve", "--port", "9100"]) == 0
    assert calls == {
        "host": "127.0.0.1",
        "port": 9100,
        "formatter": "tsuzuri.logging_utils.Utf8AccessFormatter",
    }
    assert "http://127.0.0.1:9100/" in capsys.readouterr().out


def test_no_command_prints_help(capsys) -> None:
    assert cli.main([]) == 1
    assert "usage: tsuzuri" in capsys.readouterr().out


def test_unknown_command_errors() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["frobnicate"])
    assert excinfo.value.code == 2
