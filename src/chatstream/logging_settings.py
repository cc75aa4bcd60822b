"""Helpers for parsing the simple logging settings file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

_LEVEL_MAP: dict[str, int | None] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": None,
}

_LEVEL_KEYS = ("terminal", "sessions")
_DEFAULT_LEVELS: dict[str, str] = {"terminal": "warning", "sessions": "info"}
_DEFAULT_RETENTION_HOURS = 48


@dataclass(frozen=True)
class LoggingSettings:
    terminal_level: int | None
    sessions_level: int | None
    retention_hours: int


def _resolve_level(value: str, default: str) -> int | None:
    normalized = value.strip().lower()
    if normalized in _LEVEL_MAP:
        return _LEVEL_MAP[normalized]
    return _LEVEL_MAP[default]


def parse_logging_settings(path: Path) -> LoggingSettings:
    """Parse ``key = value`` lines; unknown keys and bad values fall back to defaults.

    ``terminal`` is the console level, ``sessions`` the level of the
    date-stamped session log file, ``retention_hours`` how long old session
    logs are kept (0 disables cleanup). ``off`` disables a destination.
    """

    levels: dict[str, int | None] = {
        key: _LEVEL_MAP[_DEFAULT_LEVELS[key]] for key in _LEVEL_KEYS
    }
    retention_hours = _DEFAULT_RETENTION_HOURS

    if path.exists():
        for raw_line in path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = (part.strip() for part in line.split("=", 1))
            normalized_key = key.lower()
            if normalized_key == "retention_hours":
                try:
                    retention_hours = max(0, int(value))
                except ValueError:
                    retention_hours = _DEFAULT_RETENTION_HOURS
            elif normalized_key in _LEVEL_KEYS:
                levels[normalized_key] = _resolve_level(
                    value, _DEFAULT_LEVELS[normalized_key]
                )

    return LoggingSettings(
        terminal_level=levels["terminal"],
        sessions_level=levels["sessions"],
        retention_hours=retention_hours,
    )


__all__ = ["LoggingSettings", "parse_logging_settings"]
