"""Severity level names for dump headers."""

from __future__ import annotations

import logging

EXCEPTION_LEVEL_DESCRIPTION = "E_EXCEPTION"

_DEFAULT_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARNING",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}


class LevelConverter:
    """Resolve a numeric severity to its display name."""

    def __init__(self, names: dict[int, str] | None = None) -> None:
        self._names = dict(_DEFAULT_NAMES)
        if names:
            self._names.update(names)

    def register(self, level: int, name: str) -> None:
        self._names[level] = name

    def describe(self, level: int) -> str:
        try:
            return self._names[level]
        except KeyError:
            return f"Level {level}"
