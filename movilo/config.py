"""
Configuration for parsing and playback.

Defaults reproduce the lab export conventions the parsers were written
against; a YAML file can override any field:

    parser:
      missing_sentinels: ["0.000000", "-9999"]
      plate_count: 2
    playback:
      looping: false
"""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml


LOGGER_NAME = "Movilo"

MARKER_EXTENSIONS: Tuple[str, ...] = (".txt", ".tsv", ".csv")
FORCE_EXTENSIONS: Tuple[str, ...] = (".txt", ".tsv", ".csv", ".mot")


@dataclass(frozen=True)
class ParserConfig:
    """Settings shared by the marker and force parsers."""

    # Exact field text the lab export writes for "no sample"
    missing_sentinels: Tuple[str, ...] = ("0.000000",)
    marker_extensions: Tuple[str, ...] = MARKER_EXTENSIONS
    force_extensions: Tuple[str, ...] = FORCE_EXTENSIONS
    header_sentinel: str = "endheader"
    # None accepts any number of plates (at least one)
    plate_count: Optional[int] = 2
    # Completeness (percent) below which a parse logs a warning
    completeness_warning_percent: float = 90.0


@dataclass(frozen=True)
class PlaybackConfig:
    """Settings for the timeline controller and the parse workers."""

    looping: bool = True
    parse_workers: int = 1


@dataclass(frozen=True)
class MoviloConfig:
    parser: ParserConfig = field(default_factory=ParserConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "MoviloConfig":
        """Build a config from a nested mapping, ignoring unknown keys."""
        raw = raw or {}
        return cls(
            parser=_merge(ParserConfig(), raw.get("parser") or {}),
            playback=_merge(PlaybackConfig(), raw.get("playback") or {}),
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "MoviloConfig":
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        if raw is not None and not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level")
        return cls.from_dict(raw)


def _merge(base, overrides: Dict[str, Any]):
    if not isinstance(overrides, dict):
        raise ValueError(f"Config section for {type(base).__name__} must be a mapping, got {overrides!r}")
    known = {f.name: f for f in fields(base)}
    updates = {}
    for key, value in overrides.items():
        if key not in known:
            logging.getLogger(f"{LOGGER_NAME}.config").warning(
                f"Ignoring unknown config key '{key}' for {type(base).__name__}"
            )
            continue
        updates[key] = _coerce(type(base).__name__, known[key], getattr(base, key), value)
    return replace(base, **updates)


def _coerce(owner: str, spec, default: Any, value: Any) -> Any:
    """Check a YAML value against the type of the field's default."""
    name = f"{owner}.{spec.name}"

    if value is None:
        if type(None) in getattr(spec.type, "__args__", ()):
            return None
        raise ValueError(f"Config value {name} may not be null")

    if isinstance(default, tuple):
        # A single string stands for a one-item list
        items = [value] if isinstance(value, str) else value
        if not isinstance(items, (list, tuple)):
            raise ValueError(f"Config value {name} must be a list of strings, got {value!r}")
        for item in items:
            if not isinstance(item, str):
                # YAML has already turned e.g. 0.000000 into 0.0; the text is lost
                raise ValueError(
                    f"Config value {name} item {item!r} must be a string; "
                    f"quote it in the YAML file so its exact text is kept"
                )
        return tuple(items)

    if isinstance(default, bool) or isinstance(value, bool):
        if type(value) is not type(default):
            raise ValueError(f"Config value {name} must be {type(default).__name__}, got {value!r}")
        return value

    if isinstance(default, float) and isinstance(value, int):
        return float(value)

    if not isinstance(value, type(default)):
        raise ValueError(f"Config value {name} must be {type(default).__name__}, got {value!r}")
    return value


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Install the package log format on the root logger (for scripts)."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )
    return logging.getLogger(LOGGER_NAME)


DEFAULT_CONFIG = MoviloConfig()
