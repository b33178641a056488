"""Viewport-driven column width scaling."""

from __future__ import annotations

import logging
from typing import Callable

from fv_common.observable import Observable

logger = logging.getLogger(__name__)

BASE_WIDTH = 1920
MIN_SCALE = 1.0
MAX_SCALE = 2.0
SCALE_PER_1000PX = 0.4


def calc_scale(width: int | float | None) -> float:
    """Scale factor for a viewport width: 1.0 at 1920px, +0.4 per 1000px, at most 2.0."""
    if width is None or width <= BASE_WIDTH:
        return MIN_SCALE
    extra = (width - BASE_WIDTH) / 1000
    scale = MIN_SCALE + extra * SCALE_PER_1000PX
    return min(MAX_SCALE, round(scale * 100) / 100)


def scaled(px: int | float, scale: float) -> int:
    return round(px * scale)


class ColumnScaleContext:
    """Owns the current column scale for one application.

    Call :meth:`init` when the presentation layer starts and :meth:`teardown`
    when it stops; listeners are only notified while the context is active.
    """

    def __init__(self) -> None:
        self._scale: Observable[float] = Observable(MIN_SCALE)
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def init(self, width: int | float | None = None) -> float:
        self._active = True
        self._scale.set(calc_scale(width))
        logger.debug("Column scale context initialised at %.2f", self._scale.snapshot())
        return self._scale.snapshot()

    def teardown(self) -> None:
        self._active = False
        self._scale.clear_listeners()
        self._scale.set(MIN_SCALE)

    def update_viewport(self, width: int | float | None) -> bool:
        """Recompute the scale; True when it changed and listeners ran."""
        if not self._active:
            logger.debug("Viewport update ignored: column scale context inactive")
            return False
        return self._scale.set(calc_scale(width))

    def snapshot(self) -> float:
        return self._scale.snapshot()

    def subscribe(self, listener: Callable[[float], None]) -> Callable[[], None]:
        return self._scale.subscribe(listener)

    def unsubscribe(self, listener: Callable[[float], None]) -> None:
        self._scale.unsubscribe(listener)

    def scaled(self, px: int | float) -> int:
        return scaled(px, self._scale.snapshot())
