"""Explicit observable value with subscribe/unsubscribe and pull snapshots."""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Observable(Generic[T]):
    """Holds one value and notifies listeners when it changes.

    Listeners are called synchronously, in subscription order, only when the
    new value differs from the current one. A failing listener is logged and
    does not prevent the remaining listeners from running.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: list[Listener[T]] = []

    def snapshot(self) -> T:
        """Return the current value."""
        return self._value

    def set(self, value: T) -> bool:
        """Replace the value; return True when listeners were notified."""
        if value == self._value:
            return False
        self._value = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Observable listener %r failed", listener)
        return True

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener[T]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def clear_listeners(self) -> None:
        self._listeners.clear()
