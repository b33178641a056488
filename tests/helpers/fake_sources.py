"""Controllable remote data sources for navigator and view-model tests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence


@dataclass
class PendingCall:
    kind: str
    args: tuple[Any, ...]
    future: asyncio.Future = field(repr=False)

    def resolve(self, value: Any) -> None:
        self.future.set_result(value)

    def fail(self, exc: BaseException) -> None:
        self.future.set_exception(exc)


class ScriptedSource:
    """Answers immediately through ``responders`` or parks calls as pending.

    A responder may return a value or an exception instance to raise.
    """

    def __init__(self, responders: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self.responders: dict[str, Callable[..., Any]] = dict(responders or {})
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.pending: list[PendingCall] = []

    def calls_of(self, kind: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == kind]

    def take(self, kind: str) -> PendingCall:
        for index, call in enumerate(self.pending):
            if call.kind == kind:
                return self.pending.pop(index)
        raise AssertionError(f"no pending {kind} call")

    async def _dispatch(self, kind: str, *args: Any) -> Any:
        self.calls.append((kind, args))
        responder = self.responders.get(kind)
        if responder is not None:
            result = responder(*args)
            if isinstance(result, BaseException):
                raise result
            return result
        future = asyncio.get_running_loop().create_future()
        self.pending.append(PendingCall(kind, args, future))
        return await future

    async def fetch_main_display(self, form_id: int, filters: Sequence[Mapping[str, Any]]) -> Any:
        return await self._dispatch("main", form_id, [dict(item) for item in filters])

    async def fetch_tree_branch(self, form_id: int, filters: Sequence[Mapping[str, Any]]) -> Any:
        return await self._dispatch("tree", form_id, [dict(item) for item in filters])

    async def fetch_sub_display(
        self, form_id: int, sub_order: int, primary_keys: Mapping[str, Any]
    ) -> Any:
        return await self._dispatch("sub", form_id, sub_order, dict(primary_keys))

    async def fetch_table_meta(self, widget_id: int) -> Any:
        return await self._dispatch("table_meta", widget_id)


async def wait_for_pending(source: ScriptedSource, count: int = 1, *, spins: int = 100) -> None:
    """Yield to the loop until ``count`` calls are parked."""
    for _ in range(spins):
        if len(source.pending) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} pending call(s), got {len(source.pending)}")


def display(columns: Sequence[Mapping[str, Any]], rows: Sequence[Mapping[str, Any]], **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"columns": list(columns), "data": list(rows)}
    payload.update(extra)
    return payload


BRANCH_COLUMNS: list[dict[str, Any]] = [
    {"widget_column_id": 1, "table_column_id": 5, "column_name": "Region", "column_order": 1},
    {"widget_column_id": 2, "table_column_id": 7, "column_name": "City", "column_order": 2},
    {"widget_column_id": 3, "table_column_id": 8, "column_name": "Kind", "column_order": 3},
]

BRANCH_ROWS: list[dict[str, Any]] = [
    {"primary_keys": {"id": 1}, "values": ["A", "B", "x"]},
    {"primary_keys": {"id": 2}, "values": ["A", "C", "y"]},
    {"primary_keys": {"id": 3}, "values": ["D", "B", "x"]},
]


def filtered_main(form_id: int, filters: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """Equality-filter ``BRANCH_ROWS`` the way a backend would."""
    positions = {column["table_column_id"]: index for index, column in enumerate(BRANCH_COLUMNS)}
    rows = [
        row
        for row in BRANCH_ROWS
        if all(str(row["values"][positions[item["table_column_id"]]]) == item["value"] for item in filters)
    ]
    return display(BRANCH_COLUMNS, rows)
