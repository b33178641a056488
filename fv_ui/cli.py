"""
Command-line interface for the form view engine.

Loads a JSON fixture through the in-memory data source and renders header
plans, filtered/searched main views and sub views with Rich.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer

from fv_app.api import ColumnScaleContext, EngineSettings, FormViewModel, StaticDataSource
from fv_common.errors import FormViewError
from fv_common.logging import configure_logging
from fv_engine.api import (
    CANONICAL_TYPES,
    SearchMode,
    build_header_plan,
    canonical_type,
    from_editable,
    parse_display_payload,
    to_display,
    to_editable,
)
from fv_ui.render import FormConsole

app = typer.Typer(
    help="Inspect schema-driven form views from JSON fixtures.",
    no_args_is_help=True,
)

# One column scale per process; the root callback owns its lifecycle.
column_scale = ColumnScaleContext()


@app.callback()
def entry(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON."),
    viewport_width: int = typer.Option(
        1920, "--viewport-width", min=0, help="Viewport width in pixels used to scale columns."
    ),
) -> None:
    """Global options shared by every command."""
    configure_logging(debug=debug, json=json_logs or None, force=debug or json_logs)
    column_scale.init(viewport_width)
    ctx.call_on_close(column_scale.teardown)


def _parse_assignment(raw: str) -> tuple[int, str]:
    column, sep, value = raw.partition("=")
    if not sep:
        raise typer.BadParameter(f"Expected TABLE_COLUMN_ID=VALUE, got {raw!r}")
    try:
        return int(column.strip()), value
    except ValueError as exc:
        raise typer.BadParameter(f"Table column id must be an integer: {column!r}") from exc


def _load_settings(presenter: FormConsole, **overrides: object) -> EngineSettings:
    try:
        return EngineSettings.from_env(**overrides)
    except FormViewError as exc:
        presenter.show_error(str(exc))
        raise typer.Exit(2) from exc


def _load_source(presenter: FormConsole, fixture: Path) -> StaticDataSource:
    try:
        return StaticDataSource.from_file(fixture)
    except FormViewError as exc:
        presenter.show_error(str(exc))
        raise typer.Exit(2) from exc


@app.command("plan")
def plan_command(
    fixture: Path = typer.Argument(..., help="JSON fixture with a 'main' display payload."),
) -> None:
    """Print the header plan derived from the fixture's main columns."""
    presenter = FormConsole()
    source = _load_source(presenter, fixture)
    try:
        payload = parse_display_payload(source.section("main"))
    except FormViewError as exc:
        presenter.show_error(str(exc))
        raise typer.Exit(1) from exc
    presenter.show_plan(build_header_plan(payload.columns))
    for warning in payload.schema_warnings:
        presenter.show_warning(warning)


@app.command("show")
def show_command(
    fixture: Path = typer.Argument(..., help="JSON fixture to serve."),
    tree: Optional[str] = typer.Option(
        None, "--tree", help="Tree root filter as TABLE_COLUMN_ID=VALUE (replaces all filters)."
    ),
    filters: List[str] = typer.Option(
        [], "--filter", "-f", help="Nested filter as TABLE_COLUMN_ID=VALUE; repeatable."
    ),
    query: str = typer.Option("", "--query", "-q", help="In-memory search query."),
    mode: Optional[SearchMode] = typer.Option(None, "--mode", "-m", help="Search mode."),
    select: Optional[int] = typer.Option(
        None, "--select", help="Select the row at this position and show its sub view."
    ),
    sub_order: Optional[int] = typer.Option(None, "--sub-order", help="Sub view tab to show."),
) -> None:
    """Render the main view after applying filters and search."""
    presenter = FormConsole()
    settings = _load_settings(presenter, search_mode=mode)
    presenter.tz = settings.tzinfo()
    source = _load_source(presenter, fixture)
    tree_filter = _parse_assignment(tree) if tree else None
    nested = [_parse_assignment(item) for item in filters]

    view_model = FormViewModel(source, settings, column_scale=column_scale)

    async def _run() -> None:
        await view_model.open_form(
            source.form_id, widget_id=source.widget_id, sub_orders=source.sub_orders
        )
        if tree_filter is not None:
            await view_model.apply_tree_root_filter(*tree_filter)
        for column_id, value in nested:
            await view_model.apply_nested_filter(column_id, value)
        if query:
            view_model.set_search_query(query)
        if sub_order is not None:
            await view_model.change_sub_order(sub_order)
        if select is not None:
            rows = view_model.snapshot().rows
            match = next((row for row in rows if row.original_index == select), None)
            if match is None:
                presenter.show_warning(f"No visible row at position {select}")
            else:
                await view_model.select_row(match)

    asyncio.run(_run())
    snapshot = view_model.snapshot()
    presenter.show_snapshot(snapshot)
    if snapshot.sub.selection.selected_row_key is not None:
        presenter.show_sub_view(snapshot.sub)
    if snapshot.table_meta is not None:
        meta = snapshot.table_meta
        flags = [
            name
            for name, enabled in (
                ("insert", meta.has_insert_query),
                ("update", meta.has_update_query),
                ("delete", meta.has_delete_query),
            )
            if enabled
        ]
        presenter.show_info(f"Table {meta.table_id}: {', '.join(flags) or 'read-only'}")
    if snapshot.last_error:
        raise typer.Exit(1)


@app.command("format")
def format_command(
    value: str = typer.Argument(..., help="Wire value to convert."),
    datatype: str = typer.Option(..., "--type", "-t", help=f"One of: {', '.join(CANONICAL_TYPES)}."),
    timezone_name: Optional[str] = typer.Option(None, "--tz", help="Viewer timezone (IANA)."),
) -> None:
    """Show the display and editable forms of a temporal wire value."""
    presenter = FormConsole()
    if canonical_type(datatype) is None:
        presenter.show_error(f"Unknown type {datatype!r}; expected one of {', '.join(CANONICAL_TYPES)}")
        raise typer.Exit(2)
    settings = _load_settings(presenter, viewer_timezone=timezone_name)
    tz = settings.tzinfo()
    editable = to_editable(value, datatype, tz)
    presenter.show_table(
        f"{datatype} value",
        ["Form", "Text"],
        [
            ["display", to_display(value, datatype, tz)],
            ["editable", editable],
            ["wire", from_editable(editable, datatype, tz)],
        ],
    )


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
