"""Loads CRUD capabilities of the table behind the selected widget."""

from __future__ import annotations

import logging
from typing import Callable

from fv_common.errors import FormViewError
from fv_engine.api import CommitGuard, RemoteDataSource, RemoteGateway, SessionEpoch, TableMeta

logger = logging.getLogger(__name__)


class TableMetaLoader:
    """Fetches :class:`TableMeta` once per widget and keeps the last result."""

    def __init__(self, source: RemoteDataSource, epoch: SessionEpoch | None = None) -> None:
        self._remote = RemoteGateway(source)
        self._guard = CommitGuard(epoch or SessionEpoch(), "table-meta")
        self._widget_id: int | None = None
        self._meta: TableMeta | None = None
        self._error: str | None = None
        self._loading = False
        self._listeners: list[Callable[[], None]] = []

    @property
    def widget_id(self) -> int | None:
        return self._widget_id

    @property
    def meta(self) -> TableMeta | None:
        return self._meta

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def reset(self, widget_id: int | None = None) -> None:
        self._guard.invalidate()
        self._widget_id = widget_id
        self._meta = None
        self._error = None
        self._loading = False
        self._notify()

    async def load(self, widget_id: int | None = None) -> bool:
        """Load metadata for ``widget_id`` (or reload the current widget)."""
        if widget_id is not None and widget_id != self._widget_id:
            self.reset(widget_id)
        target = self._widget_id
        if target is None:
            return False

        ticket = self._guard.issue()
        self._loading = True
        self._error = None
        self._notify()
        try:
            meta = await self._remote.table_meta(target)
        except FormViewError as exc:
            if not self._guard.can_commit(ticket):
                return False
            logger.warning("Failed to load table meta for widget %s: %s", target, exc)
            self._error = str(exc)
            self._loading = False
            self._notify()
            return False

        if not self._guard.try_commit(ticket):
            return False
        self._meta = meta
        self._loading = False
        self._notify()
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Table meta listener failed")
