"""Hierarchical filter and tree drill-down navigation for the main view."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from fv_common.errors import FetchFailure, FormViewError, wrap_error
from fv_engine.generation import CommitGuard, SessionEpoch, Ticket
from fv_engine.interfaces import RemoteDataSource
from fv_engine.models import DisplayPayload, Filter, TreeNode, tree_key
from fv_engine.remote import RemoteGateway

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class NavigatorState(str, Enum):
    """Derived navigation state of the main view."""

    IDLE = "idle"
    FILTERED = "filtered"
    EXPANDED = "expanded"


class FilterNavigator:
    """Owns the active filter set, the main view and the tree cache.

    Filters and the main view are committed together: a failed fetch leaves
    both untouched, and a result from a superseded session or an older
    operation is discarded.
    """

    def __init__(
        self,
        source: RemoteDataSource,
        epoch: SessionEpoch | None = None,
        *,
        on_filters_changed: Optional[Listener] = None,
    ) -> None:
        self._remote = RemoteGateway(source)
        self._guard = CommitGuard(epoch or SessionEpoch(), "filter-navigator")
        self._on_filters_changed = on_filters_changed
        self._listeners: list[Listener] = []
        self._form_id: int | None = None
        self._filters: dict[int, Filter] = {}
        self._main_view: DisplayPayload | None = None
        self._tree_cache: dict[str, tuple[TreeNode, ...]] = {}
        self._expanded_key: str | None = None

    @property
    def form_id(self) -> int | None:
        return self._form_id

    @property
    def filters(self) -> tuple[Filter, ...]:
        return tuple(self._filters.values())

    @property
    def main_view(self) -> DisplayPayload | None:
        return self._main_view

    @property
    def tree_cache(self) -> Mapping[str, tuple[TreeNode, ...]]:
        return MappingProxyType(self._tree_cache)

    @property
    def expanded_key(self) -> str | None:
        return self._expanded_key

    @property
    def state(self) -> NavigatorState:
        if self._expanded_key is not None:
            return NavigatorState.EXPANDED
        if self._filters:
            return NavigatorState.FILTERED
        return NavigatorState.IDLE

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback invoked after every committed change."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def select_form(self, form_id: int | None) -> None:
        """Start a new session synchronously; in-flight results are dropped."""
        self._guard.invalidate()
        self._form_id = form_id
        self._filters = {}
        self._main_view = None
        self._tree_cache = {}
        self._expanded_key = None
        logger.debug("Filter navigator switched to form %s", form_id)
        self._notify()

    def collapse(self) -> None:
        if self._expanded_key is None:
            return
        self._expanded_key = None
        self._notify()

    async def load(self) -> bool:
        """Fetch the main view for the current filter set."""
        return await self._commit_main(dict(self._filters), operation="load")

    async def apply_nested_filter(self, table_column_id: int, value: Any) -> bool:
        """Add or replace the filter on one column, keeping the others."""
        merged = {
            key: item for key, item in self._filters.items() if key != table_column_id
        }
        merged[table_column_id] = Filter(table_column_id=table_column_id, value=value)
        return await self._commit_main(merged, operation="nested filter")

    async def apply_tree_root_filter(self, table_column_id: int, value: Any) -> bool:
        """Replace all filters with one and load its tree branch alongside."""
        form_id = self._form_id
        if form_id is None:
            logger.debug("Tree root filter ignored: no active form")
            return False

        filters = {table_column_id: Filter(table_column_id=table_column_id, value=value)}
        ticket = self._guard.issue()
        results = await asyncio.gather(
            self._remote.main_display(form_id, filters.values()),
            self._remote.tree_branch(form_id, filters.values()),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                self._raise_unless_stale(ticket, result, operation="tree root filter")
                return False

        main_view, branch = results
        if not self._guard.try_commit(ticket):
            return False
        key = tree_key(table_column_id, value)
        self._filters = filters
        self._main_view = main_view
        self._tree_cache[key] = branch
        self._expanded_key = key
        logger.debug("Tree branch %s loaded with %d node(s)", key, len(branch))
        self._filters_changed()
        return True

    async def reset_all(self) -> bool:
        """Drop every filter, the tree cache and expansion, then reload."""
        if self._form_id is None:
            self._filters = {}
            self._tree_cache = {}
            self._expanded_key = None
            self._notify()
            return False
        return await self._commit_main({}, operation="reset", clear_tree=True)

    async def _commit_main(
        self,
        filters: dict[int, Filter],
        *,
        operation: str,
        clear_tree: bool = False,
    ) -> bool:
        form_id = self._form_id
        if form_id is None:
            logger.debug("%s ignored: no active form", operation.capitalize())
            return False

        ticket = self._guard.issue()
        try:
            main_view = await self._remote.main_display(form_id, filters.values())
        except FormViewError as exc:
            self._raise_unless_stale(ticket, exc, operation=operation)
            return False

        if not self._guard.try_commit(ticket):
            return False
        self._filters = filters
        self._main_view = main_view
        if clear_tree:
            self._tree_cache = {}
            self._expanded_key = None
        self._filters_changed()
        return True

    def _raise_unless_stale(
        self, ticket: Ticket, exc: BaseException, *, operation: str
    ) -> None:
        if not self._guard.can_commit(ticket):
            logger.debug("Ignoring failure of superseded %s: %s", operation, exc)
            return
        logger.warning("Main view %s failed: %s", operation, exc)
        if isinstance(exc, FormViewError):
            raise exc
        if isinstance(exc, Exception):
            raise wrap_error(
                FetchFailure, f"{operation} failed: {exc}", cause=exc
            ) from exc
        raise exc

    def _filters_changed(self) -> None:
        if self._on_filters_changed is not None:
            self._on_filters_changed()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Filter navigator listener failed")
