"""Tests for viewport-driven column scaling."""

from __future__ import annotations

import pytest

from fv_app.services.column_scale import ColumnScaleContext, calc_scale, scaled


pytestmark = pytest.mark.unit_app


@pytest.mark.parametrize(
    ("width", "expected"),
    [
        (None, 1.0),
        (1366, 1.0),
        (1920, 1.0),
        (2560, 1.26),
        (3840, 1.77),
        (7680, 2.0),
    ],
)
def test_calc_scale(width, expected) -> None:
    assert calc_scale(width) == expected


def test_scaled_rounds_pixels() -> None:
    assert scaled(100, 1.26) == 126
    assert scaled(33, 1.5) == 50


def test_updates_are_ignored_until_initialised() -> None:
    context = ColumnScaleContext()
    seen: list[float] = []
    context.subscribe(seen.append)

    assert context.update_viewport(3840) is False
    assert context.snapshot() == 1.0
    assert seen == []


def test_init_and_viewport_updates_notify_listeners() -> None:
    context = ColumnScaleContext()
    seen: list[float] = []
    context.subscribe(seen.append)

    assert context.init(2560) == 1.26
    assert context.update_viewport(2560) is False
    assert context.update_viewport(3840) is True
    assert context.scaled(100) == 177
    assert seen == [1.26, 1.77]


def test_teardown_resets_scale_and_drops_listeners() -> None:
    context = ColumnScaleContext()
    seen: list[float] = []
    context.subscribe(seen.append)
    context.init(3840)

    context.teardown()

    assert context.active is False
    assert context.snapshot() == 1.0
    context.init(2560)
    assert seen == [1.77]
