from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping

from .diffing import GRANULARITIES
from .nlp import SEGMENTER_NAMES, resolve_locale
from .ruby import DEFAULT_DEL_CLASS, DEFAULT_INS_CLASS

__all__ = [
    "ConfigError",
    "EngineConfig",
    "load_config",
]

CONFIG_ENV = "TSUZURI_CONFIG"

_ENV_OVERRIDES = {
    "TSUZURI_LANGUAGE": "language",
    "TSUZURI_SEGMENTER": "segmenter",
    "TSUZURI_GRANULARITY": "granularity",
}


class ConfigError(ValueError):
    """Raised when a configuration file or value is invalid."""


@dataclass(slots=True)
class EngineConfig:
    language: str = "ja"
    segmenter: str = "script"
    granularity: str = "char"
    show_readings: bool = True
    ins_class: str = DEFAULT_INS_CLASS
    del_class: str = DEFAULT_DEL_CLASS
    host: str = "127.0.0.1"
    port: int = 8765

    def validate(self) -> None:
        if resolve_locale(self.language) is None:
            raise ConfigError(f"Unsupported language: {self.language!r}")
        if self.segmenter not in SEGMENTER_NAMES:
            choices = ", ".join(SEGMENTER_NAMES)
            raise ConfigError(f"segmenter must be one of {choices}; got {self.segmenter!r}")
        if self.granularity not in GRANULARITIES:
            choices = ", ".join(GRANULARITIES)
            raise ConfigError(f"granularity must be one of {choices}; got {self.granularity!r}")
        if not 0 < self.port < 65536:
            raise ConfigError(f"port out of range: {self.port}")


def _read_toml(path: Path) -> dict[str, object]:
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    section = data.get("tsuzuri", data)
    if not isinstance(section, dict):
        raise ConfigError(f"[tsuzuri] in {path} must be a table.")
    return section


def _coerce(name: str, expected: type, value: object) -> object:
    if expected is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in {"1", "true", "yes", "on", "0", "false", "no", "off"}:
            return value.lower() in {"1", "true", "yes", "on"}
    elif expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                pass
    elif isinstance(value, str):
        return value
    raise ConfigError(f"{name} must be a {expected.__name__}; got {value!r}")


_FIELD_TYPES = {"show_readings": bool, "port": int}


def _apply(config: EngineConfig, values: Mapping[str, object]) -> EngineConfig:
    known = {f.name for f in fields(EngineConfig)}
    updates: dict[str, object] = {}
    for key, value in values.items():
        name = key.replace("-", "_")
        if name not in known:
            raise ConfigError(f"Unknown config key: {key}")
        updates[name] = _coerce(name, _FIELD_TYPES.get(name, str), value)
    return replace(config, **updates)


def load_config(path: Path | str | None = None, env: Mapping[str, str] | None = None) -> EngineConfig:
    """
    Build an :class:`EngineConfig` from defaults, a TOML file and ``TSUZURI_*`` variables.

    The file is ``path`` or ``$TSUZURI_CONFIG``; its ``[tsuzuri]`` table (or the
    top level when absent) is applied first, then environment overrides.
    """
    if env is None:
        env = os.environ
    config = EngineConfig()
    if path is None:
        env_path = env.get(CONFIG_ENV)
        if env_path:
            path = env_path
    if path is not None:
        config = _apply(config, _read_toml(Path(path).expanduser()))
    overrides = {field: env[name] for name, field in _ENV_OVERRIDES.items() if env.get(name)}
    if overrides:
        config = _apply(config, overrides)
    config.validate()
    return config
