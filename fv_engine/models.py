"""Typed shapes for column metadata, rows, filters and tree branches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SYNTHETIC_BASE = -1_000_000
MISSING_COLUMN_ID = -1

ColumnKind = Literal["plain", "combobox", "styles"]
Scalar = Union[str, int, float, bool, None]


def kind_from_type(raw_type: Any) -> ColumnKind:
    """Map the backend ``type`` tag onto a column kind."""
    if isinstance(raw_type, str):
        token = raw_type.strip().lower()
        if token == "combobox":
            return "combobox"
        if token == "styles":
            return "styles"
    return "plain"


class ColumnDescriptor(BaseModel):
    """One column of a display snapshot, as delivered by the backend."""

    widget_column_id: int
    table_column_id: Optional[int] = None
    column_name: str = ""
    column_order: int = 0
    ref_column_order: Optional[int] = None
    combobox_column_order: Optional[int] = None
    combobox_column_id: Optional[int] = None
    ref_column_name: Optional[str] = None
    combobox_alias: Optional[str] = None
    table_column_name: Optional[str] = None
    datatype: Optional[str] = Field(default=None, alias="type")
    kind: ColumnKind = "plain"
    visible: bool = True
    read_only: bool = False
    position: Optional[int] = Field(default=None, ge=0)
    write_table_column_id: Optional[int] = None

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _merge_backend_flags(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        merged = dict(data)
        raw_type = merged.get("type", merged.get("datatype"))
        if "kind" not in merged or merged.get("kind") is None:
            merged["kind"] = kind_from_type(raw_type)
        if not isinstance(raw_type, str):
            merged.pop("type", None)
            merged.pop("datatype", None)
        meta = merged.get("meta")
        meta_readonly = isinstance(meta, Mapping) and bool(meta.get("readonly"))
        flags = (
            merged.get("read_only"),
            merged.get("readonly"),
            merged.get("is_readonly"),
        )
        merged["read_only"] = meta_readonly or any(bool(flag) for flag in flags)
        if merged.get("visible") is None:
            merged["visible"] = True
        for key in ("column_order",):
            if merged.get(key) is None:
                merged[key] = 0
        if merged.get("column_name") is None:
            merged["column_name"] = ""
        return merged

    @property
    def is_combobox(self) -> bool:
        return self.kind == "combobox"


def synthetic_column_id(column: ColumnDescriptor) -> int:
    """Return the collision-free identity used to address a column's value.

    Combobox columns map to ``-1_000_000 - combobox_column_id``; a combobox
    without a combobox id degrades to the plain rule. Plain columns use their
    ``table_column_id`` (or -1 for computed columns). Columns already
    normalised by the header plan keep their synthetic id.
    """
    if column.is_combobox and column.write_table_column_id is not None:
        return column.table_column_id if column.table_column_id is not None else MISSING_COLUMN_ID
    if column.is_combobox and column.combobox_column_id is not None:
        return SYNTHETIC_BASE - int(column.combobox_column_id)
    if column.table_column_id is None:
        return MISSING_COLUMN_ID
    return int(column.table_column_id)


def column_key(column: ColumnDescriptor) -> str:
    """Addressing key ``"{widget_column_id}:{synthetic_id}"``."""
    return f"{column.widget_column_id}:{synthetic_column_id(column)}"


class Row(BaseModel):
    """One data row; ``values`` is aligned to the unsorted column list."""

    primary_keys: dict[str, Scalar] = Field(default_factory=dict)
    values: list[Any] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("primary_keys", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("values", mode="before")
    @classmethod
    def _values_to_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, tuple):
            return list(value)
        return value

    def value_at(self, index: int | None) -> Any:
        if index is None or index < 0 or index >= len(self.values):
            return None
        return self.values[index]

    @property
    def has_primary_keys(self) -> bool:
        return bool(self.primary_keys)


class Filter(BaseModel):
    """An equality filter on one table column."""

    table_column_id: int
    value: Union[str, int, float]

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """Filters travel with stringified values."""
        return {"table_column_id": self.table_column_id, "value": str(self.value)}


class TreeNode(BaseModel):
    """A lazily fetched tree branch entry; unknown fields are preserved."""

    table_column_id: Optional[int] = None
    name: str = ""
    sort: Optional[str] = None
    values: list[Any] = Field(default_factory=list)
    display_values: Optional[list[Any]] = None

    model_config = ConfigDict(frozen=True, extra="allow")


class DisplayedWidget(BaseModel):
    name: str = ""
    description: Optional[str] = None
    total: Optional[int] = None
    page: Optional[int] = None
    widget_order: Optional[int] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class SubWidget(BaseModel):
    widget_order: int
    name: str = ""
    description: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class DisplayPayload(BaseModel):
    """Column descriptors plus the row matrix for one form/filter combination."""

    columns: tuple[ColumnDescriptor, ...] = ()
    data: tuple[Row, ...] = ()
    displayed_widget: Optional[DisplayedWidget] = None
    sub_widgets: tuple[SubWidget, ...] = ()
    schema_warnings: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def sub_orders(self) -> list[int]:
        return [widget.widget_order for widget in self.sub_widgets]


class TableMeta(BaseModel):
    """CRUD capabilities of the table behind a widget."""

    table_id: int = Field(alias="tableId")
    has_insert_query: bool = Field(default=False, alias="hasInsertQuery")
    has_update_query: bool = Field(default=False, alias="hasUpdateQuery")
    has_delete_query: bool = Field(default=False, alias="hasDeleteQuery")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


def _key_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def primary_key_token(primary_keys: Mapping[str, Any]) -> str:
    """Canonical serialization: keys sorted, ``k:v`` pairs joined by ``|``.

    Values are written the way the backend writes them: ``true``/``false``,
    ``null`` and integral floats without a fraction.
    """
    return "|".join(f"{key}:{_key_text(primary_keys[key])}" for key in sorted(primary_keys))


def tree_key(table_column_id: int, value: Any) -> str:
    return f"{table_column_id}-{value}"


@dataclass(frozen=True)
class RowView:
    """A row plus its position in the untouched data set."""

    row: Row
    original_index: int


@dataclass(frozen=True)
class SubSelection:
    last_primary_keys: Mapping[str, Any] = field(default_factory=dict)
    selected_row_key: str | None = None
    active_sub_order: int | None = None
