"""Contracts the engine consumes from the remote data-access layer."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

WireFilter = Mapping[str, Any]


@runtime_checkable
class RemoteDataSource(Protocol):
    """Non-blocking access to display payloads.

    Implementations return untyped JSON-like structures; the engine validates
    them with :mod:`fv_engine.payloads`. Any exception raised here is treated
    as a fetch failure. Filters arrive already in wire form
    (``{"table_column_id": int, "value": str}``).
    """

    async def fetch_main_display(self, form_id: int, filters: Sequence[WireFilter]) -> Any:
        """Return ``{"columns": [...], "data": [...]}`` for the main view."""

    async def fetch_tree_branch(self, form_id: int, filters: Sequence[WireFilter]) -> Any:
        """Return one tree node or a list of nodes."""

    async def fetch_sub_display(
        self, form_id: int, sub_order: int, primary_keys: Mapping[str, Any]
    ) -> Any:
        """Return the child view correlated to ``primary_keys``."""

    async def fetch_table_meta(self, widget_id: int) -> Any:
        """Return ``{"tableId", "hasInsertQuery", "hasUpdateQuery", "hasDeleteQuery"}``."""
