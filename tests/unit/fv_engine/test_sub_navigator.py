"""Tests for primary-key sub-record navigation."""

from __future__ import annotations

import asyncio

import pytest

from fv_common.errors import FetchFailure
from fv_engine.generation import SessionEpoch
from fv_engine.models import Row, RowView
from fv_engine.sub_navigator import SubRecordNavigator
from tests.helpers.fake_sources import ScriptedSource, display, wait_for_pending


pytestmark = pytest.mark.unit_engine

SUB_COLUMNS = [{"widget_column_id": 1, "table_column_id": 2, "column_name": "Child"}]


def _sub(form_id, order, keys):
    return display(SUB_COLUMNS, [{"primary_keys": {"cid": order}, "values": [f"{order}:{keys}"]}])


def _navigator(source: ScriptedSource, orders=(0, 1)) -> SubRecordNavigator:
    return SubRecordNavigator(source, SessionEpoch(), form_id=1, available_orders=orders)


def test_sub_order_switch_before_selection_does_not_fetch() -> None:
    source = ScriptedSource({"sub": _sub})
    navigator = _navigator(source)

    async def scenario() -> None:
        assert await navigator.on_sub_order_changed(1) is False
        assert source.calls == []
        assert await navigator.on_row_selected(Row(primary_keys={"id": 4})) is True

    asyncio.run(scenario())

    assert source.calls_of("sub") == [(1, 1, {"id": 4})]
    assert navigator.selection.active_sub_order == 1
    assert navigator.sub_view is not None


def test_row_selection_defaults_to_first_order_and_serializes_keys() -> None:
    source = ScriptedSource({"sub": _sub})
    navigator = _navigator(source, orders=(3, 5))

    asyncio.run(navigator.on_row_selected(RowView(Row(primary_keys={"b": 2, "a": "x"}), 0)))

    assert navigator.selection.selected_row_key == "a:x|b:2"
    assert navigator.selection.last_primary_keys == {"b": 2, "a": "x"}
    assert source.calls_of("sub") == [(1, 3, {"b": 2, "a": "x"})]


def test_row_without_primary_keys_is_a_no_op() -> None:
    source = ScriptedSource({"sub": _sub})
    navigator = _navigator(source)

    assert asyncio.run(navigator.on_row_selected(Row(values=["x"]))) is False
    assert source.calls == []
    assert navigator.selection.selected_row_key is None


def test_order_change_after_selection_refetches_with_last_keys() -> None:
    source = ScriptedSource({"sub": _sub})
    navigator = _navigator(source)

    async def scenario() -> None:
        await navigator.on_row_selected(Row(primary_keys={"id": 4}))
        await navigator.on_sub_order_changed(1)

    asyncio.run(scenario())
    assert source.calls_of("sub") == [(1, 0, {"id": 4}), (1, 1, {"id": 4})]


def test_available_orders_self_heal() -> None:
    navigator = _navigator(ScriptedSource())
    asyncio.run(navigator.on_sub_order_changed(1))
    assert navigator.selection.active_sub_order == 1

    navigator.set_available_orders([0, 2])
    assert navigator.selection.active_sub_order == 0

    navigator.set_available_orders([0, 2, 0])
    assert navigator.available_orders == (0, 2)
    assert navigator.selection.active_sub_order == 0

    navigator.set_available_orders([])
    assert navigator.selection.active_sub_order is None


def test_set_context_resets_before_any_fetch() -> None:
    source = ScriptedSource({"sub": _sub})
    navigator = _navigator(source)
    asyncio.run(navigator.on_row_selected(Row(primary_keys={"id": 4})))

    navigator.set_context(2, [7, 8])

    assert navigator.form_id == 2
    assert navigator.selection.last_primary_keys == {}
    assert navigator.selection.selected_row_key is None
    assert navigator.selection.active_sub_order == 7
    assert navigator.sub_view is None


def test_late_result_after_context_change_is_dropped() -> None:
    source = ScriptedSource()
    navigator = _navigator(source)

    async def scenario() -> bool:
        task = asyncio.create_task(navigator.on_row_selected(Row(primary_keys={"id": 4})))
        await wait_for_pending(source)
        navigator.set_context(2, [0])
        source.take("sub").resolve(_sub(1, 0, {"id": 4}))
        return await task

    assert asyncio.run(scenario()) is False
    assert navigator.sub_view is None


def test_sub_widgets_in_payload_update_available_orders() -> None:
    def _with_tabs(form_id, order, keys):
        payload = _sub(form_id, order, keys)
        payload["sub_widgets"] = [{"widget_order": 4, "name": "Lines"}, {"widget_order": 6}]
        return payload

    navigator = _navigator(ScriptedSource({"sub": _with_tabs}), orders=(0,))
    asyncio.run(navigator.on_row_selected(Row(primary_keys={"id": 1})))

    assert navigator.available_orders == (4, 6)
    assert navigator.selection.active_sub_order == 4


def test_fetch_failure_propagates_and_keeps_previous_view() -> None:
    source = ScriptedSource({"sub": _sub})
    navigator = _navigator(source)
    asyncio.run(navigator.on_row_selected(Row(primary_keys={"id": 1})))
    previous = navigator.sub_view

    source.responders["sub"] = lambda form_id, order, keys: OSError("boom")
    with pytest.raises(FetchFailure):
        asyncio.run(navigator.on_sub_order_changed(1))
    assert navigator.sub_view is previous


def test_selection_without_parent_form_records_keys_but_does_not_fetch() -> None:
    source = ScriptedSource({"sub": _sub})
    navigator = SubRecordNavigator(source, available_orders=(0,))

    async def scenario() -> tuple[bool, bool]:
        selected = await navigator.on_row_selected(Row(primary_keys={"id": 4}))
        switched = await navigator.on_sub_order_changed(0)
        return selected, switched

    assert asyncio.run(scenario()) == (False, False)
    assert source.calls == []
    assert navigator.selection.selected_row_key == "id:4"
    assert navigator.sub_view is None
