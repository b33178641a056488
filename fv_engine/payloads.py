"""Validate untyped remote payloads into the engine's strict shapes.

Every remote response passes through one of the ``parse_*`` functions before
any navigator or builder sees it. A payload that cannot be interpreted at all
raises :class:`MalformedSchemaError`; individual malformed entries degrade
(skipped, or kept with a fallback identity) and are reported through
``DisplayPayload.schema_warnings`` without shifting value positions.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from fv_common.errors import MalformedSchemaError
from fv_engine.models import (
    ColumnDescriptor,
    DisplayedWidget,
    DisplayPayload,
    Row,
    SubWidget,
    TableMeta,
    TreeNode,
)

logger = logging.getLogger(__name__)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    return f"{location}: {first.get('msg', 'invalid')}"


def _as_sequence(value: Any, label: str) -> Sequence[Any]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return value
    raise MalformedSchemaError(
        f"Display payload field '{label}' must be a list",
        context={"field": label, "type": type(value).__name__},
    )


def parse_columns(raw_columns: Sequence[Any]) -> tuple[list[ColumnDescriptor], list[str]]:
    """Validate column descriptors, pinning each to its original position."""
    columns: list[ColumnDescriptor] = []
    warnings: list[str] = []
    for position, item in enumerate(raw_columns):
        if isinstance(item, ColumnDescriptor):
            column = item
        else:
            try:
                column = ColumnDescriptor.model_validate(item)
            except ValidationError as exc:
                message = f"column #{position} skipped ({_first_error(exc)})"
                logger.warning("Malformed column descriptor: %s", message)
                warnings.append(message)
                continue
        if column.position is None:
            column = column.model_copy(update={"position": position})
        if column.is_combobox and column.combobox_column_id is None:
            message = (
                f"combobox column {column.widget_column_id} has no combobox_column_id; "
                "addressed as a plain column"
            )
            logger.warning("Malformed column descriptor: %s", message)
            warnings.append(message)
        columns.append(column)
    return columns, warnings


def parse_rows(raw_rows: Sequence[Any]) -> tuple[list[Row], list[str]]:
    rows: list[Row] = []
    warnings: list[str] = []
    for index, item in enumerate(raw_rows):
        if isinstance(item, Row):
            rows.append(item)
            continue
        try:
            rows.append(Row.model_validate(item))
        except ValidationError as exc:
            message = f"row #{index} replaced by an empty row ({_first_error(exc)})"
            logger.warning("Malformed row: %s", message)
            warnings.append(message)
            rows.append(Row())
    return rows, warnings


def parse_display_payload(raw: Any) -> DisplayPayload:
    """Turn a main or sub display response into a :class:`DisplayPayload`."""
    if isinstance(raw, DisplayPayload):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedSchemaError(
            "Display payload must be a mapping",
            context={"type": type(raw).__name__},
        )
    if "columns" not in raw:
        raise MalformedSchemaError(
            "Display payload has no column list",
            context={"keys": sorted(str(key) for key in raw)},
        )

    columns, warnings = parse_columns(_as_sequence(raw.get("columns"), "columns"))
    rows, row_warnings = parse_rows(_as_sequence(raw.get("data"), "data"))
    warnings.extend(row_warnings)

    displayed_widget = None
    if isinstance(raw.get("displayed_widget"), Mapping):
        try:
            displayed_widget = DisplayedWidget.model_validate(raw["displayed_widget"])
        except ValidationError as exc:
            warnings.append(f"displayed_widget ignored ({_first_error(exc)})")

    sub_widgets: list[SubWidget] = []
    for index, item in enumerate(_as_sequence(raw.get("sub_widgets"), "sub_widgets")):
        try:
            sub_widgets.append(SubWidget.model_validate(item))
        except ValidationError as exc:
            warnings.append(f"sub_widget #{index} skipped ({_first_error(exc)})")

    return DisplayPayload(
        columns=tuple(columns),
        data=tuple(rows),
        displayed_widget=displayed_widget,
        sub_widgets=tuple(sub_widgets),
        schema_warnings=tuple(warnings),
    )


def parse_tree_branch(raw: Any) -> tuple[TreeNode, ...]:
    """Normalize a single node or a list of nodes into a tuple of nodes."""
    if raw is None:
        return ()
    if isinstance(raw, TreeNode):
        return (raw,)
    if isinstance(raw, Mapping):
        items: Sequence[Any] = [raw]
    elif isinstance(raw, (list, tuple)):
        items = raw
    else:
        raise MalformedSchemaError(
            "Tree branch must be a node or a list of nodes",
            context={"type": type(raw).__name__},
        )

    nodes: list[TreeNode] = []
    for index, item in enumerate(items):
        if isinstance(item, TreeNode):
            nodes.append(item)
            continue
        try:
            nodes.append(TreeNode.model_validate(item))
        except ValidationError as exc:
            logger.warning("Tree node #%d skipped: %s", index, _first_error(exc))
    return tuple(nodes)


def parse_table_meta(raw: Any) -> TableMeta:
    if isinstance(raw, TableMeta):
        return raw
    try:
        return TableMeta.model_validate(raw)
    except ValidationError as exc:
        raise MalformedSchemaError(
            "Table meta payload is invalid",
            context={"detail": _first_error(exc)},
            cause=exc,
        ) from exc
