"""Environment variable parsing utilities."""

from __future__ import annotations

from typing import Iterable

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool_env(value: str | None) -> bool | None:
    """Parse a boolean from an environment variable string.

    Returns True for "1", "true", "yes", "on" and False for "0", "false",
    "no", "off" (case-insensitive). Returns None for unset or unrecognised
    values so callers can fall back to their defaults.
    """
    if value is None:
        return None
    token = value.strip().lower()
    if token in _TRUE_VALUES:
        return True
    if token in _FALSE_VALUES:
        return False
    return None


def parse_int_env(value: str | None) -> int | None:
    """Parse an integer; None when unset or unparsable."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        return None


def parse_float_env(value: str | None) -> float | None:
    """Parse a float; None when unset or unparsable."""
    if value is None:
        return None
    try:
        return float(value.strip())
    except (TypeError, ValueError):
        return None


def parse_choice_env(value: str | None, choices: Iterable[str]) -> str | None:
    """Return the lower-cased value when it is one of ``choices``."""
    if value is None:
        return None
    token = value.strip().lower()
    allowed = {choice.lower() for choice in choices}
    return token if token in allowed else None


def parse_str_env(value: str | None) -> str | None:
    """Return a stripped string, treating blank values as unset."""
    if value is None:
        return None
    token = value.strip()
    return token or None
