from __future__ import annotations

import pytest

from tsuzuri.config import ConfigError, EngineConfig, load_config


def test_defaults_without_file() -> None:
    config = load_config(env={})
    assert config == EngineConfig()


def test_toml_table_and_env_overrides(tmp_path) -> None:
    path = tmp_path / "tsuzuri.toml"
    path.write_text(
        '[tsuzuri]\nlanguage = "English"\ngranularity = "word"\nport = 9000\nshow-readings = false\n',
        encoding="utf-8",
    )
    config = load_config(path, env={"TSUZURI_GRANULARITY": "char"})
    assert config.language == "English"
    assert config.granularity == "char"
    assert config.port == 9000
    assert config.show_readings is False


def test_config_path_from_env(tmp_path) -> None:
    path = tmp_path / "conf.toml"
    path.write_text('segmenter = "mecab"\n', encoding="utf-8")
    config = load_config(env={"TSUZURI_CONFIG": str(path)})
    assert config.segmenter == "mecab"


@pytest.mark.parametrize(
    "body",
    [
        'language = "Klingon"\n',
        'segmenter = "icu"\n',
        'granularity = "line"\n',
        "port = 0\n",
        'port = "many"\n',
        'colour = "red"\n',
        "[tsuzuri\n",
        "tsuzuri = 3\n",
    ],
)
def test_invalid_config_raises(tmp_path, body: str) -> None:
    path = tmp_path / "bad.toml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path / "missing.toml", env={})
    assert "missing.toml" in str(excinfo.value)
