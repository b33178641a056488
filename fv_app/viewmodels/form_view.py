"""Form view-model: one selected-form session exposed as pull snapshots."""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Iterator, Mapping

from fv_app.services.column_scale import ColumnScaleContext
from fv_app.services.table_meta import TableMetaLoader
from fv_app.settings import EngineSettings
from fv_common.errors import FormViewError
from fv_common.observable import Observable
from fv_engine.api import (
    EMPTY_PLAN,
    ColumnDescriptor,
    DisplayedWidget,
    DisplayPayload,
    Filter,
    FilterNavigator,
    HeaderGroup,
    HeaderPlan,
    NavigatorState,
    RemoteDataSource,
    Row,
    RowView,
    SearchIndex,
    SearchMode,
    SessionEpoch,
    SubRecordNavigator,
    SubSelection,
    TableMeta,
    TreeNode,
    build_header_plan,
    build_index,
    search,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchState:
    enabled: bool = True
    query: str = ""
    mode: SearchMode = SearchMode.AUTO


@dataclass(frozen=True)
class SubViewSnapshot:
    selection: SubSelection = field(default_factory=SubSelection)
    available_orders: tuple[int, ...] = ()
    groups: tuple[HeaderGroup, ...] = ()
    render_columns: tuple[ColumnDescriptor, ...] = ()
    value_index: Mapping[str, int] = field(default_factory=dict)
    rows: tuple[RowView, ...] = ()
    displayed_widget: DisplayedWidget | None = None


@dataclass(frozen=True)
class FormViewSnapshot:
    form_id: int | None
    widget_id: int | None
    state: NavigatorState
    groups: tuple[HeaderGroup, ...]
    render_columns: tuple[ColumnDescriptor, ...]
    value_index: Mapping[str, int]
    read_only: Mapping[str, bool]
    rows: tuple[RowView, ...]
    total_rows: int
    filters: tuple[Filter, ...]
    tree_cache: Mapping[str, tuple[TreeNode, ...]]
    expanded_key: str | None
    sub: SubViewSnapshot
    search: SearchState
    displayed_widget: DisplayedWidget | None
    table_meta: TableMeta | None
    schema_warnings: tuple[str, ...]
    last_error: str | None
    column_scale: float = 1.0


def _empty_snapshot(settings: EngineSettings, column_scale: float = 1.0) -> FormViewSnapshot:
    return FormViewSnapshot(
        form_id=None,
        widget_id=None,
        state=NavigatorState.IDLE,
        groups=(),
        render_columns=(),
        value_index=MappingProxyType({}),
        read_only=MappingProxyType({}),
        rows=(),
        total_rows=0,
        filters=(),
        tree_cache=MappingProxyType({}),
        expanded_key=None,
        sub=SubViewSnapshot(),
        search=SearchState(enabled=settings.search_enabled, mode=settings.search_mode),
        displayed_widget=None,
        table_meta=None,
        schema_warnings=(),
        last_error=None,
        column_scale=column_scale,
    )


class FormViewModel:
    """Coordinates navigators, header plans and search for one form session.

    Presentation code reads :meth:`snapshot` (or subscribes to changes) and
    mutates state only through the operations below. Fetch failures are
    recorded as ``last_error`` instead of propagating.
    """

    def __init__(
        self,
        source: RemoteDataSource,
        settings: EngineSettings | None = None,
        *,
        column_scale: ColumnScaleContext | None = None,
    ) -> None:
        self._settings = settings or EngineSettings()
        self._column_scale = column_scale
        self._epoch = SessionEpoch()
        self._subs = SubRecordNavigator(source, self._epoch)
        self._filters = FilterNavigator(
            source, self._epoch, on_filters_changed=self._on_filters_committed
        )
        self._meta = TableMetaLoader(source, self._epoch)
        self._tokens = itertools.count(1)

        self._widget_id: int | None = None
        self._plan: HeaderPlan = EMPTY_PLAN
        self._plan_source: DisplayPayload | None = None
        self._view_token: int = next(self._tokens)
        self._index: SearchIndex = build_index((), (), {}, source_token=self._view_token)
        self._sub_plan: HeaderPlan = EMPTY_PLAN
        self._sub_source: DisplayPayload | None = None
        self._search = SearchState(
            enabled=self._settings.search_enabled, mode=self._settings.search_mode
        )
        self._last_error: str | None = None
        self._suspended = 0
        self._snapshot: Observable[FormViewSnapshot] = Observable(
            _empty_snapshot(self._settings, self._scale())
        )

        self._filters.subscribe(self._on_main_changed)
        self._subs.subscribe(self._on_sub_changed)
        self._meta.subscribe(self._publish)
        if column_scale is not None:
            column_scale.subscribe(self._on_scale_changed)

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def plan(self) -> HeaderPlan:
        return self._plan

    @property
    def search_index(self) -> SearchIndex:
        return self._index

    def snapshot(self) -> FormViewSnapshot:
        return self._snapshot.snapshot()

    def subscribe(self, listener: Callable[[FormViewSnapshot], None]) -> Callable[[], None]:
        return self._snapshot.subscribe(listener)

    def unsubscribe(self, listener: Callable[[FormViewSnapshot], None]) -> None:
        self._snapshot.unsubscribe(listener)

    # Session

    def select_form(
        self,
        form_id: int | None,
        *,
        widget_id: int | None = None,
        sub_orders: Iterable[int] = (),
    ) -> None:
        """Switch sessions synchronously; nothing from the old session survives."""
        self._epoch.advance(form_id)
        with self._batch():
            self._widget_id = widget_id
            self._last_error = None
            self._search = SearchState(enabled=self._search.enabled, mode=self._search.mode)
            self._subs.set_context(form_id, sub_orders)
            self._filters.select_form(form_id)
            self._meta.reset(widget_id)
        logger.debug("Selected form %s (widget %s)", form_id, widget_id)

    async def open_form(
        self,
        form_id: int,
        *,
        widget_id: int | None = None,
        sub_orders: Iterable[int] = (),
    ) -> bool:
        self.select_form(form_id, widget_id=widget_id, sub_orders=sub_orders)
        return await self.refresh()

    async def refresh(self) -> bool:
        """Reload the main view for the current filters and the table meta."""
        loaded = await self._guarded(self._filters.load())
        if self._widget_id is not None:
            await self._meta.load()
        return loaded

    # Filters and tree

    async def apply_nested_filter(self, table_column_id: int, value: Any) -> bool:
        return await self._guarded(self._filters.apply_nested_filter(table_column_id, value))

    async def apply_tree_root_filter(self, table_column_id: int, value: Any) -> bool:
        return await self._guarded(self._filters.apply_tree_root_filter(table_column_id, value))

    async def reset_all(self) -> bool:
        return await self._guarded(self._filters.reset_all())

    def collapse_tree(self) -> None:
        self._filters.collapse()

    # Sub records

    async def select_row(self, row: Row | RowView) -> bool:
        return await self._guarded(self._subs.on_row_selected(row))

    async def change_sub_order(self, order: int) -> bool:
        return await self._guarded(self._subs.on_sub_order_changed(order))

    async def reload_table_meta(self) -> bool:
        return await self._meta.load()

    # Search

    def set_search_enabled(self, enabled: bool) -> None:
        query = self._search.query if enabled else ""
        self._search = SearchState(enabled=enabled, query=query, mode=self._search.mode)
        self._publish()

    def set_search_query(self, query: str) -> None:
        if not self._search.enabled:
            logger.debug("Search query ignored while search is disabled")
            return
        self._search = SearchState(enabled=True, query=query or "", mode=self._search.mode)
        self._publish()

    def set_search_mode(self, mode: SearchMode | str) -> None:
        self._search = SearchState(
            enabled=self._search.enabled, query=self._search.query, mode=SearchMode(mode)
        )
        self._publish()

    def search_results(self) -> list[RowView]:
        if not self._search.enabled:
            return self._index.all_rows()
        return search(
            self._index,
            self._search.query,
            self._search.mode,
            options=self._settings.fuzzy_options(),
            expected_token=self._view_token,
        )

    # Internals

    async def _guarded(self, operation: Awaitable[bool]) -> bool:
        epoch = self._epoch.current
        try:
            committed = await operation
        except FormViewError as exc:
            if self._epoch.is_current(epoch):
                self._last_error = str(exc)
                self._publish()
            return False
        if committed and self._last_error is not None:
            self._last_error = None
            self._publish()
        return committed

    def _on_filters_committed(self) -> None:
        self._sync_main()
        self._subs.clear_selection()

    def _on_main_changed(self) -> None:
        self._sync_main()
        self._publish()

    def _scale(self) -> float:
        return self._column_scale.snapshot() if self._column_scale is not None else 1.0

    def _on_scale_changed(self, scale: float) -> None:
        logger.debug("Column scale changed to %.2f", scale)
        self._publish()

    def _on_sub_changed(self) -> None:
        view = self._subs.sub_view
        if view is not self._sub_source:
            self._sub_source = view
            self._sub_plan = build_header_plan(view.columns) if view is not None else EMPTY_PLAN
        self._publish()

    def _sync_main(self) -> None:
        view = self._filters.main_view
        if view is self._plan_source:
            return
        self._plan_source = view
        self._plan = build_header_plan(view.columns) if view is not None else EMPTY_PLAN
        self._view_token = next(self._tokens)
        self._index = build_index(
            view.data if view is not None else (),
            self._plan.render_columns,
            self._plan.value_index,
            source_token=self._view_token,
        )
        if view is not None and view.schema_warnings:
            logger.warning(
                "Main view for form %s loaded with %d schema warning(s)",
                self._filters.form_id,
                len(view.schema_warnings),
            )
        if view is not None and view.sub_orders:
            self._subs.set_available_orders(view.sub_orders)

    def _sub_snapshot(self) -> SubViewSnapshot:
        view = self._subs.sub_view
        rows = tuple(RowView(row, index) for index, row in enumerate(view.data)) if view else ()
        return SubViewSnapshot(
            selection=self._subs.selection,
            available_orders=self._subs.available_orders,
            groups=self._sub_plan.groups,
            render_columns=self._sub_plan.render_columns,
            value_index=self._sub_plan.value_index,
            rows=rows,
            displayed_widget=view.displayed_widget if view else None,
        )

    @contextmanager
    def _batch(self) -> Iterator[None]:
        self._suspended += 1
        try:
            yield
        finally:
            self._suspended -= 1
        self._publish()

    def _publish(self) -> None:
        if self._suspended:
            return
        view = self._filters.main_view
        self._snapshot.set(
            FormViewSnapshot(
                form_id=self._filters.form_id,
                widget_id=self._widget_id,
                state=self._filters.state,
                groups=self._plan.groups,
                render_columns=self._plan.render_columns,
                value_index=self._plan.value_index,
                read_only=self._plan.read_only,
                rows=tuple(self.search_results()),
                total_rows=len(self._index.entries),
                filters=self._filters.filters,
                tree_cache=MappingProxyType(dict(self._filters.tree_cache)),
                expanded_key=self._filters.expanded_key,
                sub=self._sub_snapshot(),
                search=self._search,
                displayed_widget=view.displayed_widget if view else None,
                table_meta=self._meta.meta,
                schema_warnings=view.schema_warnings if view else (),
                last_error=self._last_error,
                column_scale=self._scale(),
            )
        )


def build_form_view_model(
    source: RemoteDataSource,
    settings: EngineSettings | None = None,
    *,
    column_scale: ColumnScaleContext | None = None,
) -> FormViewModel:
    return FormViewModel(source, settings, column_scale=column_scale)
