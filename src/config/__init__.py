"""
Configuration loader.

App config: reads config.yaml, validates it against JSON Schema, and
applies the LEDGER_TIMEZONE environment override.
"""

from config.loader import (
    AppConfig,
    ConfigError,
    JournalConfig,
    NotesConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "ConfigError",
    "JournalConfig",
    "NotesConfig",
    "load_config",
]
