"""Tests for the ``fv`` command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from fv_ui.cli import app


pytestmark = pytest.mark.unit_ui

runner = CliRunner()
WIDE = {"COLUMNS": "200"}


def _invoke(*args: str):
    return runner.invoke(app, list(args), env=WIDE)


def test_plan_lists_grouped_columns(branches_fixture: Path) -> None:
    result = _invoke("plan", str(branches_fixture))

    assert result.exit_code == 0, result.output
    assert "Manager" in result.output
    assert "4:-1000003" in result.output
    assert "Styles column at position 5" in result.output


def test_plan_rejects_payload_without_columns(tmp_path: Path) -> None:
    fixture = tmp_path / "broken.json"
    fixture.write_text(json.dumps({"main": {"data": []}}), encoding="utf-8")

    result = _invoke("plan", str(fixture))

    assert result.exit_code == 1
    assert "no column list" in result.output


def test_missing_fixture_exits_with_configuration_error(tmp_path: Path) -> None:
    result = _invoke("show", str(tmp_path / "absent.json"))

    assert result.exit_code == 2
    assert "Fixture not found" in result.output


def test_show_renders_main_view_and_table_meta(branches_fixture: Path) -> None:
    result = _invoke("show", str(branches_fixture))

    assert result.exit_code == 0, result.output
    assert "Branches" in result.output
    assert "4 of 4 row(s)" in result.output
    assert "05.03.2024" in result.output
    assert "Table 3: insert, update" in result.output


def test_show_with_tree_root_filter(branches_fixture: Path) -> None:
    result = _invoke("show", str(branches_fixture), "--tree", "5=North")

    assert result.exit_code == 0, result.output
    assert "2 of 2 row(s); filters: 5=North" in result.output
    assert "Tree 5-North" in result.output
    assert "Oslo, Bergen" in result.output
    assert "Milan" not in result.output


def test_show_with_search_query(branches_fixture: Path) -> None:
    result = _invoke("show", str(branches_fixture), "-q", "rome", "--mode", "exact")

    assert result.exit_code == 0, result.output
    assert "1 of 4 row(s); search: 'rome' (exact)" in result.output
    assert "Oslo" not in result.output


def test_show_with_row_selection_renders_sub_view(branches_fixture: Path) -> None:
    result = _invoke("show", str(branches_fixture), "--select", "0")

    assert result.exit_code == 0, result.output
    assert "Staff (id:1)" in result.output
    assert "Eva" in result.output

    assets = _invoke("show", str(branches_fixture), "--select", "0", "--sub-order", "1")
    assert "Assets (id:1)" in assets.output
    assert "Laptop" in assets.output


def test_show_reports_fetch_failure_with_exit_code(branches_fixture: Path, tmp_path: Path) -> None:
    fixture = json.loads(branches_fixture.read_text(encoding="utf-8"))
    del fixture["sub"]
    path = tmp_path / "no_sub.json"
    path.write_text(json.dumps(fixture), encoding="utf-8")

    result = _invoke("show", str(path), "--select", "0")

    assert result.exit_code == 1
    assert "No sub display for order 0" in result.output


def test_show_rejects_malformed_assignment(branches_fixture: Path) -> None:
    result = _invoke("show", str(branches_fixture), "--tree", "North")
    assert result.exit_code != 0


def test_format_converts_date() -> None:
    result = _invoke("format", "2024-03-05", "--type", "date")

    assert result.exit_code == 0, result.output
    assert "05.03.2024" in result.output
    assert "2024-03-05" in result.output


def test_format_rejects_unknown_type() -> None:
    result = _invoke("format", "2024-03-05", "--type", "money")

    assert result.exit_code == 2
    assert "Unknown type" in result.output


def test_show_reports_column_scale_for_wide_viewports(branches_fixture: Path) -> None:
    wide = _invoke("--viewport-width", "2560", "show", str(branches_fixture))
    default = _invoke("show", str(branches_fixture))

    assert wide.exit_code == 0, wide.output
    assert "4 of 4 row(s); column scale x1.26" in wide.output
    assert default.exit_code == 0, default.output
    assert "column scale" not in default.output
