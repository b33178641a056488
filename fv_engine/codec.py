"""Typed value codec for temporal column types.

Converts wire strings into localized display text and into editable input
text, and editable text back into wire strings. Timezone-bearing types are
shown and edited in the viewer's local time; ``from_editable`` re-attaches the
viewer's UTC offset. Nothing here raises: unparsable input falls back to the
generic cell formatter.

Canonical wire forms (the ones that round-trip exactly through
``from_editable(to_editable(x))``)::

    date         2025-02-01
    time         13:25:47
    timetz       13:25:47+03:00          (viewer offset)
    timestamp    2025-02-01T10:00:00
    timestamptz  2025-02-01T10:00:00+03:00  (viewer offset)

Values carrying a foreign offset round-trip to the same instant, re-expressed
in the viewer's offset.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Literal, get_args

from fv_engine.cell_format import format_cell_value

logger = logging.getLogger(__name__)

CanonicalType = Literal["date", "time", "timetz", "timestamp", "timestamptz"]

CANONICAL_TYPES: tuple[str, ...] = get_args(CanonicalType)

_TYPE_ALIASES: dict[str, CanonicalType] = {
    "date": "date",
    "time": "time",
    "timetz": "timetz",
    "timewtz": "timetz",
    "timestamp": "timestamp",
    "timestamptz": "timestamptz",
    "timestampwtz": "timestamptz",
}

_TZ_TYPES = {"timetz", "timestamptz"}

_OFFSET = r"Z|[+-]\d{2}(?::?\d{2})?"
_TIME_RE = re.compile(rf"^(\d{{2}}):(\d{{2}})(?::(\d{{2}}))?(?:\.\d+)?\s*({_OFFSET})?")
_TIMESTAMP_RE = re.compile(
    rf"^(\d{{4}})-(\d{{2}})-(\d{{2}})"
    rf"(?:[T ](\d{{2}}):(\d{{2}})(?::(\d{{2}}))?(?:\.(\d+))?)?"
    rf"\s*({_OFFSET})?$"
)
_EDIT_TIME_SHORT = re.compile(r"^\d{2}:\d{2}$")
_EDIT_TIMESTAMP_SHORT = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}$")
_TRAILING_OFFSET = re.compile(rf"(?:{_OFFSET})$")

DISPLAY_DATE = "%d.%m.%Y"
DISPLAY_DATETIME = "%d.%m.%Y %H:%M:%S"
EDIT_DATETIME = "%Y-%m-%dT%H:%M:%S"
CLOCK = "%H:%M:%S"


def canonical_type(raw_type: Any) -> CanonicalType | None:
    """Resolve a backend type tag (including aliases) to a canonical type."""
    if not isinstance(raw_type, str):
        return None
    return _TYPE_ALIASES.get(raw_type.strip().lower())


def _viewer_tz(tz: tzinfo | None) -> tzinfo:
    if tz is not None:
        return tz
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else timezone.utc


def _parse_offset(token: str | None) -> timezone | None:
    if not token:
        return None
    if token == "Z":
        return timezone.utc
    sign = -1 if token[0] == "-" else 1
    digits = token[1:].replace(":", "")
    hours = int(digits[:2])
    minutes = int(digits[2:4]) if len(digits) >= 4 else 0
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def format_offset(delta: timedelta | None) -> str:
    """Render a UTC offset as ``±HH:MM``."""
    total = int((delta or timedelta(0)).total_seconds())
    sign = "-" if total < 0 else "+"
    total = abs(total)
    return f"{sign}{total // 3600:02d}:{(total % 3600) // 60:02d}"


def viewer_offset(tz: tzinfo | None = None, at: datetime | None = None) -> str:
    """The viewer's UTC offset, evaluated at ``at`` (default: now)."""
    zone = _viewer_tz(tz)
    moment = at.replace(tzinfo=zone) if at is not None else datetime.now(zone)
    return format_offset(moment.utcoffset())


def _parse_clock(value: str) -> tuple[time, str | None]:
    match = _TIME_RE.match(value)
    if not match:
        raise ValueError(f"not a time value: {value!r}")
    hours, minutes, seconds, offset = match.groups()
    clock = time(int(hours), int(minutes), int(seconds or 0))
    return clock, offset


def _parse_timestamp(value: str) -> tuple[datetime, str | None]:
    match = _TIMESTAMP_RE.match(value)
    if not match:
        raise ValueError(f"not a timestamp value: {value!r}")
    year, month, day, hours, minutes, seconds, fraction, offset = match.groups()
    micro = int((fraction or "0")[:6].ljust(6, "0"))
    moment = datetime(
        int(year),
        int(month),
        int(day),
        int(hours or 0),
        int(minutes or 0),
        int(seconds or 0),
        micro,
        tzinfo=_parse_offset(offset),
    )
    return moment, offset


def _clock_in_viewer(clock: time, offset: str, zone: tzinfo) -> time:
    reference = datetime.now(zone).date()
    moment = datetime.combine(reference, clock, tzinfo=_parse_offset(offset))
    return moment.astimezone(zone).time()


def _to_viewer(moment: datetime, zone: tzinfo) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(zone)


def _is_ambiguous(moment: datetime) -> bool:
    if moment.tzinfo is None:
        return False
    return moment.replace(fold=0).utcoffset() != moment.replace(fold=1).utcoffset()


def to_display(raw: Any, datatype: Any, tz: tzinfo | None = None) -> str:
    """Render a wire value as localized display text."""
    if raw is None:
        return ""
    if not isinstance(raw, str):
        return format_cell_value(raw)
    value = raw.strip()
    if not value:
        return ""

    kind = canonical_type(datatype)
    try:
        if kind == "date":
            return date.fromisoformat(value[:10]).strftime(DISPLAY_DATE)
        if kind == "time":
            clock, _ = _parse_clock(value)
            return clock.strftime(CLOCK)
        if kind == "timetz":
            clock, offset = _parse_clock(value)
            if not offset:
                return clock.strftime(CLOCK)
            local = _clock_in_viewer(clock, offset, _viewer_tz(tz))
            return f"{local.strftime(CLOCK)} ({offset})"
        if kind == "timestamp":
            moment, _ = _parse_timestamp(value)
            return _to_viewer(moment, _viewer_tz(tz)).strftime(DISPLAY_DATETIME)
        if kind == "timestamptz":
            moment, offset = _parse_timestamp(value)
            base = _to_viewer(moment, _viewer_tz(tz)).strftime(DISPLAY_DATETIME)
            return f"{base} ({offset})" if offset else base
    except (ValueError, OverflowError) as exc:
        logger.debug("Display fallback for %r (%s): %s", value, kind, exc)
    return format_cell_value(value)


def to_editable(raw: Any, datatype: Any, tz: tzinfo | None = None) -> str:
    """Produce input text suitable for editing and re-submission."""
    if raw is None:
        return ""
    if not isinstance(raw, str):
        return format_cell_value(raw)
    value = raw.strip()
    if not value:
        return ""

    kind = canonical_type(datatype)
    if kind is None:
        return raw
    try:
        if kind == "date":
            return date.fromisoformat(value[:10]).isoformat()
        if kind in ("time", "timetz"):
            clock, offset = _parse_clock(value)
            if kind == "timetz" and offset:
                clock = _clock_in_viewer(clock, offset, _viewer_tz(tz))
            return clock.strftime(CLOCK)
        moment, _ = _parse_timestamp(value)
        if kind == "timestamptz" or moment.tzinfo is not None:
            moment = _to_viewer(moment, _viewer_tz(tz))
        text = moment.strftime(EDIT_DATETIME)
        if kind == "timestamptz" and _is_ambiguous(moment):
            # Repeated wall time after a fall-back: keep the offset so it survives editing.
            text += format_offset(moment.utcoffset())
        return text
    except (ValueError, OverflowError) as exc:
        logger.debug("Editable fallback for %r (%s): %s", value, kind, exc)
    return format_cell_value(value)


def from_editable(text: Any, datatype: Any, tz: tzinfo | None = None) -> str:
    """Turn edited input text back into a wire value."""
    if text is None:
        return ""
    value = str(text).strip()
    if not value:
        return ""

    kind = canonical_type(datatype)
    if kind in ("time", "timetz"):
        if _EDIT_TIME_SHORT.match(value):
            value = f"{value}:00"
        if kind == "timetz" and _TIME_RE.match(value) and not _TRAILING_OFFSET.search(value):
            value = f"{value}{viewer_offset(tz)}"
        return value
    if kind in ("timestamp", "timestamptz"):
        if _EDIT_TIMESTAMP_SHORT.match(value):
            value = f"{value}:00"
        if kind == "timestamptz" and not _has_timestamp_offset(value):
            try:
                moment, _ = _parse_timestamp(value)
            except (ValueError, OverflowError) as exc:
                logger.debug("Cannot attach offset to %r: %s", value, exc)
                return value
            value = f"{value}{viewer_offset(tz, at=moment)}"
        return value
    return value


def _has_timestamp_offset(value: str) -> bool:
    # The date part contains '-' separators, so only inspect the clock part.
    _, sep, clock = value.replace(" ", "T").partition("T")
    return bool(sep) and bool(_TRAILING_OFFSET.search(clock))
