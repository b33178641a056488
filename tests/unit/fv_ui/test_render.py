"""Tests for Rich rendering helpers."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from fv_engine.header_plan import HeaderPlan, build_header_plan
from fv_engine.models import ColumnDescriptor, Row, RowView
from fv_engine.payloads import parse_display_payload
from fv_ui.render import FormConsole, header_label, render_cell, table_rows


pytestmark = pytest.mark.unit_ui


@pytest.fixture
def plan_and_rows(branches_fixture: Path) -> tuple[HeaderPlan, list[RowView]]:
    raw = json.loads(branches_fixture.read_text(encoding="utf-8"))
    payload = parse_display_payload(raw["main"])
    rows = [RowView(row, index) for index, row in enumerate(payload.data)]
    return build_header_plan(payload.columns), rows


def test_header_labels_follow_grouping(plan_and_rows) -> None:
    plan, _ = plan_and_rows
    labels = [
        header_label(group, label, column)
        for group in plan.groups
        for label, column in zip(group.labels, group.member_columns)
    ]
    assert labels == ["Region", "City", "Opened", "Manager / Name", "Manager / Phone"]


def test_table_rows_resolve_values_through_addressing_map(plan_and_rows) -> None:
    plan, rows = plan_and_rows
    headers, body = table_rows(plan.groups, plan.value_index, rows)

    assert headers[0] == "#"
    assert body[0] == ["0", "North", "Oslo", "05.03.2024", "Ann", "111"]
    assert body[3] == ["3", "South", "Milan", "", "Dora", "444"]


def test_render_cell_uses_generic_formatting_for_untyped_columns() -> None:
    column = ColumnDescriptor(widget_column_id=1, table_column_id=2, column_name="Flag")
    assert render_cell(True, column) == "true"
    assert render_cell(["a", 1], column) == "[a, 1]"
    assert render_cell(None, column) == ""


def test_render_cell_formats_typed_columns_for_display() -> None:
    column = ColumnDescriptor(widget_column_id=1, table_column_id=2, type="date")
    assert render_cell("2024-03-05", column) == "05.03.2024"


def test_console_escapes_markup() -> None:
    stream = io.StringIO()
    FormConsole(stream).show_error("bad [bold]value[/bold]")
    assert "bad [bold]value[/bold]" in stream.getvalue()


def test_show_plan_lists_keys_and_styles_position(plan_and_rows) -> None:
    plan, _ = plan_and_rows
    stream = io.StringIO()

    FormConsole(stream).show_plan(plan)

    output = stream.getvalue()
    assert "4:-1000003" in output
    assert "Manager" in output
    assert "Styles column at position 5" in output


def test_show_table_renders_rows() -> None:
    stream = io.StringIO()
    row = RowView(Row(primary_keys={"id": 1}, values=["x"]), 0)
    plan = build_header_plan([ColumnDescriptor(widget_column_id=1, table_column_id=2, column_name="Name")])
    headers, body = table_rows(plan.groups, plan.value_index, [row])

    FormConsole(stream).show_table("People", headers, body)

    output = stream.getvalue()
    assert "People" in output
    assert "Name" in output
