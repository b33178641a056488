"""In-memory data source backed by a JSON fixture.

Fixture layout::

    {
      "form_id": 1,
      "widget_id": 10,
      "sub_orders": [0, 1],
      "main": {"columns": [...], "data": [...], "displayed_widget": {...}},
      "tree": {"5-A": [...], "5": [...]},
      "sub": {"0": {"columns": [...], "data": [{"parent_keys": {...}, ...}]}},
      "table_meta": {"10": {"tableId": 3, "hasInsertQuery": true}}
    }

Main rows are filtered by equality on the value of every column whose
``table_column_id`` matches a filter. Tree branches are looked up by
``"{table_column_id}-{value}"`` first and by column id second. Sub rows match
when their ``parent_keys`` equal the requested primary keys.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from fv_common.errors import ConfigurationError, FetchFailure
from fv_engine.api import WireFilter

logger = logging.getLogger(__name__)


class StaticDataSource:
    """Serves display payloads from a fixture dictionary."""

    def __init__(self, fixture: Mapping[str, Any], *, latency: float = 0.0) -> None:
        if not isinstance(fixture, Mapping):
            raise ConfigurationError(
                "Fixture must be a JSON object", context={"type": type(fixture).__name__}
            )
        self._fixture = fixture
        self._latency = latency
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    @classmethod
    def from_file(cls, path: str | Path, *, latency: float = 0.0) -> "StaticDataSource":
        fixture_path = Path(path)
        try:
            payload = json.loads(fixture_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigurationError(
                f"Fixture not found: {fixture_path}", context={"path": str(fixture_path)}, cause=exc
            ) from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"Fixture is not valid JSON: {exc}", context={"path": str(fixture_path)}, cause=exc
            ) from exc
        return cls(payload, latency=latency)

    @property
    def form_id(self) -> int:
        return int(self._fixture.get("form_id", 1))

    @property
    def widget_id(self) -> int | None:
        value = self._fixture.get("widget_id")
        return int(value) if value is not None else None

    @property
    def sub_orders(self) -> list[int]:
        return [int(order) for order in self._fixture.get("sub_orders", [])]

    async def _pause(self) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)

    async def fetch_main_display(self, form_id: int, filters: Sequence[WireFilter]) -> Any:
        self.calls.append(("main", (form_id, [dict(item) for item in filters])))
        await self._pause()
        main = self.section("main")
        if main is None:
            raise FetchFailure("Fixture has no main display", context={"form_id": form_id})
        payload = copy.deepcopy(dict(main))
        payload["data"] = [
            row for row in payload.get("data", []) if _matches(row, payload.get("columns", []), filters)
        ]
        return payload

    async def fetch_tree_branch(self, form_id: int, filters: Sequence[WireFilter]) -> Any:
        self.calls.append(("tree", (form_id, [dict(item) for item in filters])))
        await self._pause()
        tree = self.section("tree") or {}
        for item in filters:
            column_id = item.get("table_column_id")
            for key in (f"{column_id}-{item.get('value')}", str(column_id)):
                if key in tree:
                    return copy.deepcopy(tree[key])
        return []

    async def fetch_sub_display(
        self, form_id: int, sub_order: int, primary_keys: Mapping[str, Any]
    ) -> Any:
        self.calls.append(("sub", (form_id, sub_order, dict(primary_keys))))
        await self._pause()
        subs = self.section("sub") or {}
        sub = subs.get(str(sub_order))
        if sub is None:
            raise FetchFailure(
                f"No sub display for order {sub_order}",
                context={"form_id": form_id, "sub_order": sub_order},
            )
        payload = copy.deepcopy(dict(sub))
        wanted = {key: str(value) for key, value in primary_keys.items()}
        payload["data"] = [
            row
            for row in payload.get("data", [])
            if {key: str(value) for key, value in (row.get("parent_keys") or {}).items()} == wanted
        ]
        return payload

    async def fetch_table_meta(self, widget_id: int) -> Any:
        self.calls.append(("table_meta", (widget_id,)))
        await self._pause()
        metas = self.section("table_meta") or {}
        meta = metas.get(str(widget_id))
        if meta is None:
            raise FetchFailure(
                f"No table meta for widget {widget_id}", context={"widget_id": widget_id}
            )
        return copy.deepcopy(meta)

    def section(self, name: str) -> Any:
        """Raw fixture section (``main``, ``tree``, ``sub`` or ``table_meta``)."""
        return self._fixture.get(name)


def _matches(row: Mapping[str, Any], columns: Sequence[Any], filters: Sequence[WireFilter]) -> bool:
    values = row.get("values") or []
    for item in filters:
        wanted = str(item.get("value"))
        positions = [
            position
            for position, column in enumerate(columns)
            if isinstance(column, Mapping)
            and column.get("table_column_id") == item.get("table_column_id")
        ]
        if not positions:
            logger.debug("Filter on unknown column %s ignored", item.get("table_column_id"))
            continue
        if not any(
            position < len(values) and str(values[position]) == wanted for position in positions
        ):
            return False
    return True
