"""Rich rendering of header plans and form view snapshots."""

from __future__ import annotations

import shutil
import sys
from datetime import tzinfo
from typing import IO, Any, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from fv_app.api import FormViewSnapshot, SubViewSnapshot
from fv_engine.api import (
    PLACEHOLDER,
    ColumnDescriptor,
    HeaderGroup,
    HeaderPlan,
    RowView,
    canonical_type,
    column_key,
    format_cell_value,
    to_display,
)

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red",
        "success": "green",
        "accent": "#3ea6ff",
    }
)


def header_label(group: HeaderGroup, label: str, column: ColumnDescriptor) -> str:
    """``Title`` for single plain columns, ``Title / label`` otherwise."""
    if len(group.member_columns) == 1 and (not column.is_combobox or label == PLACEHOLDER):
        return group.title
    return f"{group.title} / {label}"


def render_cell(value: Any, column: ColumnDescriptor, tz: tzinfo | None = None) -> str:
    if canonical_type(column.datatype) is not None:
        return to_display(value, column.datatype, tz)
    return format_cell_value(value)


def table_rows(
    groups: Sequence[HeaderGroup],
    value_index: Any,
    rows: Sequence[RowView],
    tz: tzinfo | None = None,
) -> tuple[list[str], list[list[str]]]:
    """Header labels plus one text row per visible row, in render order."""
    headers = ["#"]
    columns: list[ColumnDescriptor] = []
    for group in groups:
        for label, column in zip(group.labels, group.member_columns):
            headers.append(header_label(group, label, column))
            columns.append(column)
    body: list[list[str]] = []
    for view in rows:
        cells = [str(view.original_index)]
        for column in columns:
            cells.append(render_cell(view.row.value_at(value_index.get(column_key(column))), column, tz))
        body.append(cells)
    return headers, body


class FormConsole:
    """Console presenter for the ``fv`` command line."""

    def __init__(self, stream: IO[str] | None = None, *, tz: tzinfo | None = None):
        self.console = Console(
            theme=THEME,
            file=stream or sys.stdout,
            highlight=False,
            soft_wrap=True,
        )
        self.tz = tz

    def show_info(self, message: str) -> None:
        self.console.print(escape(message), style="info")

    def show_warning(self, message: str) -> None:
        self.console.print(escape(message), style="warning")

    def show_error(self, message: str) -> None:
        self.console.print(escape(message), style="error")

    def show_panel(self, message: str, title: str | None = None) -> None:
        panel = Panel(
            escape(message),
            title=escape(title) if title else None,
            border_style="accent",
            expand=True,
        )
        self.console.print(panel)

    def show_table(self, title: str, columns: Sequence[str], rows: list[Sequence[str]]) -> None:
        # Keep tables within the visible console width and fold long cells.
        term_width = self.console.size.width or shutil.get_terminal_size(fallback=(100, 24)).columns
        table_width = max(60, term_width - 2) if term_width > 0 else None
        table = Table(
            title=f"[b]{escape(title)}[/b]",
            border_style="accent",
            header_style="bold white",
            row_styles=("", "dim"),
            expand=table_width is None,
            width=table_width,
        )
        for column in columns:
            table.add_column(escape(column), overflow="fold")
        for row in rows:
            table.add_row(*[escape(str(cell)) for cell in row])
        self.console.print(table)

    def show_plan(self, plan: HeaderPlan, title: str = "Header plan") -> None:
        rows: list[Sequence[str]] = []
        for group in plan.groups:
            for label, column in zip(group.labels, group.member_columns):
                key = column_key(column)
                rows.append(
                    [
                        str(group.id),
                        group.title,
                        label,
                        key,
                        str(plan.value_index.get(key, "-")),
                        "yes" if plan.is_read_only(column) else "no",
                    ]
                )
        self.show_table(title, ["Group", "Title", "Label", "Key", "Position", "Read-only"], rows)
        if plan.styles is not None:
            self.show_info(f"Styles column at position {plan.styles.value_index}")

    def show_snapshot(self, snapshot: FormViewSnapshot) -> None:
        widget = snapshot.displayed_widget
        title = widget.name if widget and widget.name else f"Form {snapshot.form_id}"
        if widget and widget.description:
            self.show_info(widget.description)
        headers, body = table_rows(snapshot.groups, snapshot.value_index, snapshot.rows, self.tz)
        self.show_table(title, headers, body)

        summary = f"{len(snapshot.rows)} of {snapshot.total_rows} row(s)"
        if snapshot.filters:
            rendered = ", ".join(f"{item.table_column_id}={item.value}" for item in snapshot.filters)
            summary += f"; filters: {rendered}"
        if snapshot.search.query:
            summary += f"; search: {snapshot.search.query!r} ({snapshot.search.mode.value})"
        if snapshot.column_scale != 1.0:
            summary += f"; column scale x{snapshot.column_scale:.2f}"
        self.show_info(summary)

        if snapshot.expanded_key is not None:
            nodes = snapshot.tree_cache.get(snapshot.expanded_key, ())
            names = ", ".join(node.name or PLACEHOLDER for node in nodes) or PLACEHOLDER
            self.show_panel(names, title=f"Tree {snapshot.expanded_key}")
        for warning in snapshot.schema_warnings:
            self.show_warning(warning)
        if snapshot.last_error:
            self.show_error(snapshot.last_error)

    def show_sub_view(self, sub: SubViewSnapshot) -> None:
        selection = sub.selection
        title = f"Sub view {selection.active_sub_order} ({selection.selected_row_key or PLACEHOLDER})"
        if sub.displayed_widget and sub.displayed_widget.name:
            title = f"{sub.displayed_widget.name} ({selection.selected_row_key or PLACEHOLDER})"
        headers, body = table_rows(sub.groups, sub.value_index, sub.rows, self.tz)
        self.show_table(title, headers, body)
