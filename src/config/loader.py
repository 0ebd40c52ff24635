"""
Config loader: YAML file -> frozen dataclass tree, validated against JSON Schema.

The default input time zone can be overridden with LEDGER_TIMEZONE, so one
config file can be shared between machines in different zones.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml

logger = logging.getLogger("ledger.config")

DEFAULT_FILENAME_PATTERN = "T-${YYYY}${MM}${DD}-${HH}${mm}-${PAIR}-${ACTION}"

CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "timezone": {"type": "string", "minLength": 1},
        "notes": {
            "type": "object",
            "properties": {
                "trades_root": {"type": "string", "minLength": 1},
                "filename_pattern": {"type": "string", "pattern": r"^T-"},
                "body_template_path": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "journal": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "minLength": 1},
                "echo_stdout": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


class ConfigError(Exception):
    """Raised when the config file is unparseable or fails schema validation."""


@dataclass(frozen=True)
class NotesConfig:
    trades_root: str = "trades"
    filename_pattern: str = DEFAULT_FILENAME_PATTERN
    body_template_path: str = "templates/trade-body.md"


@dataclass(frozen=True)
class JournalConfig:
    path: str = "data/journal.jsonl"
    echo_stdout: bool = False


@dataclass(frozen=True)
class AppConfig:
    notes: NotesConfig = NotesConfig()
    journal: JournalConfig = JournalConfig()
    timezone: str = "UTC"


def _validate_schema(data: dict[str, Any]) -> None:
    try:
        jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise ConfigError(f"Config validation failed: {exc.message}") from exc


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """
    Load configuration from a YAML file.

    Relative note and journal paths are resolved against the config file's
    directory. LEDGER_TIMEZONE, when set, replaces ``timezone``.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config is not valid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    _validate_schema(raw)

    base_dir = config_path.resolve().parent

    def _resolve(p: str) -> str:
        return str(p if Path(p).is_absolute() else base_dir / p)

    n_raw = raw.get("notes", {})
    notes_cfg = NotesConfig(
        trades_root=_resolve(n_raw.get("trades_root", "trades")),
        filename_pattern=n_raw.get("filename_pattern", DEFAULT_FILENAME_PATTERN),
        body_template_path=_resolve(n_raw.get("body_template_path", "templates/trade-body.md")),
    )

    j_raw = raw.get("journal", {})
    j_cfg = JournalConfig(
        path=_resolve(j_raw.get("path", "data/journal.jsonl")),
        echo_stdout=bool(j_raw.get("echo_stdout", False)),
    )

    tz = os.environ.get("LEDGER_TIMEZONE") or raw.get("timezone", "UTC")
    if os.environ.get("LEDGER_TIMEZONE"):
        logger.debug("Time zone overridden by LEDGER_TIMEZONE: %s", tz)

    return AppConfig(notes=notes_cfg, journal=j_cfg, timezone=tz)
