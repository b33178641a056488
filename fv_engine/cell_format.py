"""Generic, never-failing formatter for arbitrary cell values."""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping, Sequence

_ISO_DATE_LIKE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d{1,3})?)?(?:Z|[+\-]\d{2}:\d{2})?)?$"
)

_MAX_DEPTH = 2
_MAX_LIST_ITEMS = 6
_MAX_MAPPING_ITEMS = 8
PLACEHOLDER = "—"

DomainFormatter = Callable[[Any], "str | None"]


def is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def is_editable_value(value: Any) -> bool:
    """Only primitive cells can be edited in place."""
    return is_primitive(value)


def _primitive_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _compact(value: Any, depth: int = 0) -> str:
    if is_primitive(value):
        return _primitive_text(value)
    if isinstance(value, Mapping):
        if depth >= _MAX_DEPTH:
            return "{…}"
        entries = list(value.items())
        shown = ", ".join(
            f"{key}: {_compact(item, depth + 1)}" for key, item in entries[:_MAX_MAPPING_ITEMS]
        )
        more = " …" if len(entries) > _MAX_MAPPING_ITEMS else ""
        return f"{{ {shown}{more} }}"
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if depth >= _MAX_DEPTH:
            return f"[{len(value)}]"
        shown = ", ".join(_compact(item, depth + 1) for item in list(value)[:_MAX_LIST_ITEMS])
        more = "…" if len(value) > _MAX_LIST_ITEMS else ""
        return f"[{shown}{more}]"
    return str(value)


def _plan_fact_formatter(value: Any) -> str | None:
    # Budget cells arrive as {"total": {"plan": ..., "fact": ...}}, amounts optionally nested.
    if not isinstance(value, Mapping) or "total" not in value:
        return None
    total = value.get("total") or {}
    if not isinstance(total, Mapping):
        return None

    def _amount(item: Any) -> Any:
        if isinstance(item, Mapping):
            return item.get("amount", item)
        return item

    plan = _amount(total.get("plan"))
    fact = _amount(total.get("fact"))
    plan_text = PLACEHOLDER if plan is None else _compact(plan)
    fact_text = PLACEHOLDER if fact is None else _compact(fact)
    return f"plan: {plan_text} / fact: {fact_text}"


DOMAIN_FORMATTERS: list[DomainFormatter] = [_plan_fact_formatter]


def format_cell_value(value: Any) -> str:
    """Render any cell value as text without raising."""
    if value is None:
        return ""
    if is_primitive(value):
        if isinstance(value, str) and _ISO_DATE_LIKE.match(value):
            return value
        return _primitive_text(value)
    for formatter in DOMAIN_FORMATTERS:
        out = formatter(value)
        if isinstance(out, str):
            return out
    return _compact(value)


def cell_to_text(value: Any) -> str:
    """Flatten a cell for searching; list cells are joined with spaces."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(_primitive_text(item) if is_primitive(item) else _compact(item) for item in value)
    if is_primitive(value):
        return _primitive_text(value)
    return format_cell_value(value)
