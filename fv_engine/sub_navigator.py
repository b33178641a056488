"""Sub-record (detail) navigation driven by row selection."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Mapping, Optional

from fv_common.errors import FormViewError
from fv_engine.generation import CommitGuard, SessionEpoch
from fv_engine.interfaces import RemoteDataSource
from fv_engine.models import DisplayPayload, Row, RowView, SubSelection, primary_key_token
from fv_engine.remote import RemoteGateway

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


def _dedupe(orders: Iterable[int]) -> tuple[int, ...]:
    seen: dict[int, None] = {}
    for order in orders:
        seen.setdefault(int(order), None)
    return tuple(seen)


class SubRecordNavigator:
    """Tracks the selected row and the active sub-widget tab.

    Selection changes are applied immediately; the sub view itself is only
    replaced when the matching fetch is still the latest one for the current
    context.
    """

    def __init__(
        self,
        source: RemoteDataSource,
        epoch: SessionEpoch | None = None,
        *,
        form_id: int | None = None,
        available_orders: Iterable[int] = (),
    ) -> None:
        self._remote = RemoteGateway(source)
        self._guard = CommitGuard(epoch or SessionEpoch(), "sub-navigator")
        self._listeners: list[Listener] = []
        self._form_id = form_id
        self._orders = _dedupe(available_orders)
        self._selection = SubSelection(active_sub_order=self._default_order())
        self._sub_view: DisplayPayload | None = None

    @property
    def form_id(self) -> int | None:
        return self._form_id

    @property
    def available_orders(self) -> tuple[int, ...]:
        return self._orders

    @property
    def selection(self) -> SubSelection:
        return self._selection

    @property
    def sub_view(self) -> DisplayPayload | None:
        return self._sub_view

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _default_order(self) -> int | None:
        return self._orders[0] if self._orders else None

    def set_context(self, form_id: int | None, available_orders: Iterable[int] = ()) -> None:
        """Reset selection and sub view for a new parent context."""
        self._guard.invalidate()
        self._form_id = form_id
        self._orders = _dedupe(available_orders)
        self._selection = SubSelection(active_sub_order=self._default_order())
        self._sub_view = None
        self._notify()

    def set_available_orders(self, orders: Iterable[int]) -> None:
        """Replace the tab list, falling back to its first entry when needed."""
        self._orders = _dedupe(orders)
        active = self._selection.active_sub_order
        if active is None or active not in self._orders:
            healed = self._default_order()
            if healed != active:
                logger.debug("Active sub order %s unavailable; using %s", active, healed)
                self._selection = replace(self._selection, active_sub_order=healed)
        self._notify()

    def clear_selection(self) -> None:
        """Forget the selected row and its sub view; the active tab is kept."""
        self._guard.invalidate()
        self._selection = SubSelection(active_sub_order=self._selection.active_sub_order)
        self._sub_view = None
        self._notify()

    async def on_row_selected(self, row: Row | RowView | Mapping[str, Any]) -> bool:
        """Select a row and load its sub view; rows without keys are ignored."""
        primary_keys = _primary_keys_of(row)
        if not primary_keys:
            logger.debug("Row without primary keys selected; ignored")
            return False

        order = self._selection.active_sub_order
        if order is None:
            order = self._default_order()
        self._selection = SubSelection(
            last_primary_keys=dict(primary_keys),
            selected_row_key=primary_key_token(primary_keys),
            active_sub_order=order,
        )
        self._notify()
        if self._form_id is None or order is None:
            return False
        return await self._load(order, primary_keys)

    async def on_sub_order_changed(self, order: int) -> bool:
        """Switch tabs; the sub view is only fetched once a row was selected."""
        self._selection = replace(self._selection, active_sub_order=int(order))
        self._notify()
        primary_keys = self._selection.last_primary_keys
        if self._form_id is None or not primary_keys:
            return False
        return await self._load(int(order), primary_keys)

    async def _load(self, order: int, primary_keys: Mapping[str, Any]) -> bool:
        form_id = self._form_id
        if form_id is None:
            logger.debug("Sub fetch skipped: no parent form")
            return False
        ticket = self._guard.issue()
        try:
            payload = await self._remote.sub_display(form_id, order, primary_keys)
        except FormViewError as exc:
            if not self._guard.can_commit(ticket):
                logger.debug("Ignoring failure of superseded sub fetch: %s", exc)
                return False
            logger.warning("Sub view fetch failed: %s", exc)
            raise

        if not self._guard.try_commit(ticket):
            return False
        self._sub_view = payload
        if payload.sub_orders:
            self.set_available_orders(payload.sub_orders)
        else:
            self._notify()
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Sub navigator listener failed")


def _primary_keys_of(row: Row | RowView | Mapping[str, Any] | Any) -> Optional[Mapping[str, Any]]:
    if isinstance(row, RowView):
        return row.row.primary_keys
    if isinstance(row, Row):
        return row.primary_keys
    if isinstance(row, Mapping):
        keys = row.get("primary_keys")
        return keys if isinstance(keys, Mapping) else None
    return None
