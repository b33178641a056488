"""Typed gateway over a :class:`RemoteDataSource`."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Iterable, Mapping

from fv_common.errors import FetchFailure, FormViewError, wrap_error
from fv_engine.interfaces import RemoteDataSource
from fv_engine.models import DisplayPayload, Filter, TableMeta, TreeNode
from fv_engine.payloads import parse_display_payload, parse_table_meta, parse_tree_branch

logger = logging.getLogger(__name__)


async def call_remote(
    awaitable: Awaitable[Any], *, operation: str, context: Mapping[str, Any]
) -> Any:
    """Await a remote call, converting transport errors into FetchFailure."""
    try:
        return await awaitable
    except FormViewError:
        raise
    except Exception as exc:
        raise wrap_error(
            FetchFailure,
            f"{operation} failed: {exc}",
            context=context,
            cause=exc,
        ) from exc


def to_wire_filters(filters: Iterable[Filter]) -> list[dict[str, Any]]:
    return [item.to_wire() for item in filters]


class RemoteGateway:
    """Calls the data source and validates each response at the boundary."""

    def __init__(self, source: RemoteDataSource) -> None:
        self._source = source

    @property
    def source(self) -> RemoteDataSource:
        return self._source

    async def main_display(self, form_id: int, filters: Iterable[Filter]) -> DisplayPayload:
        wire = to_wire_filters(filters)
        raw = await call_remote(
            self._source.fetch_main_display(form_id, wire),
            operation="Loading the main view",
            context={"form_id": form_id, "filters": wire},
        )
        return parse_display_payload(raw)

    async def tree_branch(self, form_id: int, filters: Iterable[Filter]) -> tuple[TreeNode, ...]:
        wire = to_wire_filters(filters)
        raw = await call_remote(
            self._source.fetch_tree_branch(form_id, wire),
            operation="Loading the tree branch",
            context={"form_id": form_id, "filters": wire},
        )
        return parse_tree_branch(raw)

    async def sub_display(
        self, form_id: int, sub_order: int, primary_keys: Mapping[str, Any]
    ) -> DisplayPayload:
        raw = await call_remote(
            self._source.fetch_sub_display(form_id, sub_order, dict(primary_keys)),
            operation="Loading the sub view",
            context={"form_id": form_id, "sub_order": sub_order, "primary_keys": dict(primary_keys)},
        )
        return parse_display_payload(raw)

    async def table_meta(self, widget_id: int) -> TableMeta:
        raw = await call_remote(
            self._source.fetch_table_meta(widget_id),
            operation="Loading table metadata",
            context={"widget_id": widget_id},
        )
        return parse_table_meta(raw)
