"""Typed publish/subscribe channels.

One channel per signal (activity changes, ticks, connection open/close).
Subscribers are plain callables invoked synchronously, in subscription order,
inside the emitting call.  Everything runs on the event loop thread, so no
locking is needed.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeAlias, TypeVar

T = TypeVar("T")

Listener: TypeAlias = Callable[[T], Any]


class Subscription:
    """Handle returned by ``Channel.subscribe``; call ``unsubscribe()`` to detach."""

    __slots__ = ("_on_cancel", "active")

    def __init__(self, on_cancel: Callable[[], None]) -> None:
        self._on_cancel = on_cancel
        self.active = True

    def unsubscribe(self) -> None:
        """Detach the listener.  Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        self._on_cancel()


class Channel(Generic[T]):
    """Multicast event channel.

    Args:
        name: Label used in reprs and log lines.
        on_first: Called when the subscriber count goes from 0 to 1.
        on_last: Called when the subscriber count drops back to 0.

    """

    __slots__ = ("_listeners", "_next_id", "_on_first", "_on_last", "name")

    def __init__(
        self,
        name: str = "",
        *,
        on_first: Callable[[], None] | None = None,
        on_last: Callable[[], None] | None = None,
    ) -> None:
        self.name = name
        self._listeners: dict[int, Listener[T]] = {}
        self._next_id = 0
        self._on_first = on_first
        self._on_last = on_last

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener[T]) -> Subscription:
        """Register *listener* and return its subscription handle."""
        key = self._next_id
        self._next_id += 1
        self._listeners[key] = listener
        if len(self._listeners) == 1 and self._on_first is not None:
            self._on_first()
        return Subscription(lambda: self._remove(key))

    def emit(self, value: T) -> None:
        """Deliver *value* to every current listener.

        Iterates over a snapshot so listeners may unsubscribe (or subscribe
        others) while being called.
        """
        for key, listener in list(self._listeners.items()):
            if key in self._listeners:
                listener(value)

    def _remove(self, key: int) -> None:
        if self._listeners.pop(key, None) is None:
            return
        if not self._listeners and self._on_last is not None:
            self._on_last()

    def __repr__(self) -> str:
        return f"Channel({self.name!r}, subscribers={self.subscriber_count})"


class ValueSignal(Channel[T]):
    """A channel holding a current value that emits only on change.

    ``set()`` with a value equal to the current one is a no-op, so downstream
    listeners see each distinct transition exactly once.
    """

    __slots__ = ("_value",)

    def __init__(self, initial: T, name: str = "") -> None:
        super().__init__(name)
        self._value = initial

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Update the value; return True if it changed (and was emitted)."""
        if value == self._value:
            return False
        self._value = value
        self.emit(value)
        return True
