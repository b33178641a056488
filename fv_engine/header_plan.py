"""Header plan builder: render order, grouping and value addressing.

``build_header_plan`` is a pure function of the column list. Sorting and
grouping only affect what is rendered; the addressing map (column key ->
position in ``Row.values``) is always derived from the original, unsorted
column list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Sequence

from fv_engine.cell_format import PLACEHOLDER
from fv_engine.models import (
    ColumnDescriptor,
    Row,
    SYNTHETIC_BASE,
    column_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeaderGroup:
    """Columns sharing one widget column, rendered under a single title."""

    id: int
    title: str
    labels: tuple[str, ...]
    member_columns: tuple[ColumnDescriptor, ...]


@dataclass(frozen=True)
class StylesColumnMeta:
    """Where the per-row styles blob lives and how style names map to columns."""

    value_index: int
    read_only: bool
    table_column_name_map: Mapping[str, str]
    column_name_to_table_column_name: Mapping[str, str]


@dataclass(frozen=True)
class HeaderPlan:
    groups: tuple[HeaderGroup, ...] = ()
    render_columns: tuple[ColumnDescriptor, ...] = ()
    value_index: Mapping[str, int] = field(default_factory=dict)
    read_only: Mapping[str, bool] = field(default_factory=dict)
    styles: StylesColumnMeta | None = None

    def index_of(self, column: ColumnDescriptor) -> int | None:
        return self.value_index.get(column_key(column))

    def value_for(self, row: Row, column: ColumnDescriptor) -> object | None:
        """Resolve a row's value for a column through the addressing map."""
        return row.value_at(self.index_of(column))

    def is_read_only(self, column: ColumnDescriptor) -> bool:
        return self.read_only.get(column_key(column), is_column_read_only(column))


EMPTY_PLAN = HeaderPlan()


def _render_sort_key(column: ColumnDescriptor) -> tuple[int, int, int]:
    return (
        column.column_order,
        column.ref_column_order or 0,
        column.combobox_column_order or 0,
    )


def order_for_render(columns: Sequence[ColumnDescriptor]) -> list[ColumnDescriptor]:
    """Stable sort by column, reference and combobox order."""
    return sorted(columns, key=_render_sort_key)


def normalize_identity(column: ColumnDescriptor) -> ColumnDescriptor:
    """Give combobox columns their synthetic table column id."""
    if (
        column.is_combobox
        and column.combobox_column_id is not None
        and column.table_column_id is not None
        and column.write_table_column_id is None
    ):
        return column.model_copy(
            update={
                "write_table_column_id": column.table_column_id,
                "table_column_id": SYNTHETIC_BASE - int(column.combobox_column_id),
            }
        )
    return column


def is_column_read_only(column: ColumnDescriptor) -> bool:
    if not column.visible:
        return True
    if column.is_combobox:
        return True
    if column.table_column_id is None:
        return True
    return column.read_only


def column_label(column: ColumnDescriptor) -> str:
    for candidate in (column.combobox_alias, column.ref_column_name):
        text = (candidate or "").strip()
        if text:
            return text
    return PLACEHOLDER


def group_title(column: ColumnDescriptor) -> str:
    title = (column.column_name or "").strip()
    return title or f"Column #{column.widget_column_id}"


def build_value_index(columns: Sequence[ColumnDescriptor]) -> dict[str, int]:
    """Map ``"{widget_column_id}:{synthetic_id}"`` to the value position.

    A duplicate key keeps its first position so the map stays a bijection.
    """
    index: dict[str, int] = {}
    for offset, column in enumerate(columns):
        position = column.position if column.position is not None else offset
        key = column_key(column)
        if key in index:
            logger.warning(
                "Duplicate column key %s at position %d (first seen at %d); ignored",
                key,
                position,
                index[key],
            )
            continue
        index[key] = position
    return index


def build_groups(columns: Sequence[ColumnDescriptor]) -> list[HeaderGroup]:
    """Fold render-ordered columns into groups keyed by widget column.

    Hidden members are left out of their group; a group whose members are all
    hidden is not rendered at all.
    """
    buckets: dict[int, list[ColumnDescriptor]] = {}
    first_order: dict[int, int] = {}
    for column in columns:
        wc_id = column.widget_column_id
        if wc_id not in buckets:
            buckets[wc_id] = []
            first_order[wc_id] = column.column_order
        buckets[wc_id].append(column)

    groups: list[HeaderGroup] = []
    for wc_id in sorted(buckets, key=lambda item: (first_order[item], item)):
        members = buckets[wc_id]
        visible = [column for column in members if column.visible]
        if not visible:
            continue
        groups.append(
            HeaderGroup(
                id=wc_id,
                title=group_title(members[0]),
                labels=tuple(column_label(column) for column in visible),
                member_columns=tuple(visible),
            )
        )
    return groups


def _styles_meta(
    columns: Sequence[ColumnDescriptor], value_index: Mapping[str, int]
) -> StylesColumnMeta | None:
    styles_column = next((column for column in columns if column.kind == "styles"), None)
    if styles_column is None:
        return None
    name_map: dict[str, str] = {}
    reverse: dict[str, str] = {}
    for column in columns:
        if column.table_column_name and column.column_name:
            name_map[column.table_column_name] = column.column_name
            reverse[column.column_name] = column.table_column_name
    position = value_index.get(column_key(styles_column))
    if position is None:
        position = styles_column.position if styles_column.position is not None else columns.index(styles_column)
    return StylesColumnMeta(
        value_index=position,
        read_only=styles_column.read_only,
        table_column_name_map=MappingProxyType(name_map),
        column_name_to_table_column_name=MappingProxyType(reverse),
    )


def build_header_plan(columns: Sequence[ColumnDescriptor]) -> HeaderPlan:
    """Compute the render plan, addressing map and read-only flags."""
    original = list(columns)
    value_index = build_value_index(original)

    normalized = [normalize_identity(column) for column in order_for_render(original)]
    renderable = [column for column in normalized if column.kind != "styles"]
    groups = build_groups(renderable)
    render_columns = tuple(column for group in groups for column in group.member_columns)

    read_only = {column_key(column): is_column_read_only(column) for column in normalized}

    return HeaderPlan(
        groups=tuple(groups),
        render_columns=render_columns,
        value_index=MappingProxyType(value_index),
        read_only=MappingProxyType(read_only),
        styles=_styles_meta(original, value_index),
    )
