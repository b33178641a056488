"""Tests for the table metadata loader."""

from __future__ import annotations

import asyncio

import pytest

from fv_app.services.table_meta import TableMetaLoader
from tests.helpers.fake_sources import ScriptedSource, wait_for_pending


pytestmark = pytest.mark.unit_app

META = {"tableId": 3, "hasInsertQuery": True}


def test_load_without_widget_does_nothing() -> None:
    source = ScriptedSource()
    loader = TableMetaLoader(source)

    assert asyncio.run(loader.load()) is False
    assert source.calls == []


def test_load_stores_meta_and_notifies() -> None:
    loader = TableMetaLoader(ScriptedSource({"table_meta": lambda widget_id: META}))
    states: list[bool] = []
    loader.subscribe(lambda: states.append(loader.loading))

    assert asyncio.run(loader.load(70)) is True

    assert loader.widget_id == 70
    assert loader.meta.table_id == 3
    assert loader.meta.has_insert_query is True
    assert loader.meta.has_update_query is False
    assert loader.error is None
    assert states[-2:] == [True, False]


def test_failure_is_recorded_as_error() -> None:
    loader = TableMetaLoader(ScriptedSource({"table_meta": lambda widget_id: RuntimeError("503")}))

    assert asyncio.run(loader.load(70)) is False
    assert "503" in loader.error
    assert loader.meta is None
    assert loader.loading is False


def test_result_for_previous_widget_is_dropped() -> None:
    source = ScriptedSource()
    loader = TableMetaLoader(source)

    async def scenario() -> bool:
        task = asyncio.create_task(loader.load(70))
        await wait_for_pending(source)
        loader.reset(71)
        source.take("table_meta").resolve(META)
        return await task

    assert asyncio.run(scenario()) is False
    assert loader.widget_id == 71
    assert loader.meta is None
