"""Interval manager — one shared repeating timer per distinct period.

Every source that polls every 2000 ms is driven by the same timer task.  All
timers are gated by the activity signal: while no client is connected the
timer tasks are cancelled outright, and they restart on the next connection
without anyone having to ask again.

Lifecycle of a ``SharedTimer``:
    first subscriber  -> registration created, task started (unless paused)
    activity "empty"  -> task cancelled, registration kept
    activity "active" -> task restarted
    last unsubscribe  -> task cancelled, registration dropped
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from pollcast.reactive.signals import Channel

if TYPE_CHECKING:
    from pollcast._types import PeriodMs
    from pollcast.observability.logger import SocketLogger
    from pollcast.reactive.signals import Listener, Subscription, ValueSignal


class SharedTimer:
    """A repeating timer multicasting tick numbers to its subscribers.

    The reference count is the number of tick subscribers; the owning
    ``IntervalManager`` drops the registration when it reaches zero.

    """

    __slots__ = ("_manager", "_task", "period_ms", "tick_count", "ticks")

    def __init__(self, period_ms: PeriodMs, manager: IntervalManager) -> None:
        self.period_ms = period_ms
        self.tick_count = 0
        self._manager = manager
        self._task: asyncio.Task[None] | None = None
        self.ticks: Channel[int] = Channel(
            f"interval:{period_ms}",
            on_first=self._sync,
            on_last=lambda: manager._release(self),
        )

    @property
    def ref_count(self) -> int:
        return self.ticks.subscriber_count

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _sync(self) -> None:
        """Start or stop the task to match the pause state and ref count."""
        if self._manager.is_paused or self.ref_count == 0:
            self.stop()
        else:
            self.start()

    def start(self) -> None:
        if self.is_running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Not inside the event loop yet; resume() runs once it is.
            return
        self._task = loop.create_task(self._run(), name=f"pollcast-interval-{self.period_ms}")
        self._manager.timers_started += 1

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        delay = self.period_ms / 1000
        while True:
            await asyncio.sleep(delay)
            self.tick_count += 1
            try:
                self.ticks.emit(self.tick_count)
            except Exception as exc:
                self._manager._logger.log("error", f"interval {self.period_ms}ms: {exc!r}")


class TickStream:
    """Subscribable view of the shared timer for one period.

    Subscribing creates the timer registration on demand, so a stream stays
    usable even after its timer has been released.
    """

    __slots__ = ("_manager", "period_ms")

    def __init__(self, manager: IntervalManager, period_ms: PeriodMs) -> None:
        self._manager = manager
        self.period_ms = period_ms

    def subscribe(self, listener: Listener[int]) -> Subscription:
        return self._manager._timer_for(self.period_ms).ticks.subscribe(listener)


class IntervalManager:
    """Owns the shared timers, keyed by period.

    Args:
        paused: Activity signal; ``True`` means no connection is open.
        logger: SocketLogger for interval log lines.

    """

    def __init__(self, paused: ValueSignal[bool], logger: SocketLogger) -> None:
        self._timers: dict[int, SharedTimer] = {}
        self._logger = logger
        self._paused = paused
        self.timers_started = 0
        paused.subscribe(self._on_pause_change)

    @property
    def is_paused(self) -> bool:
        return self._paused.value

    @property
    def timer_count(self) -> int:
        """Number of distinct timer registrations currently held."""
        return len(self._timers)

    @property
    def intervals(self) -> dict[int, SharedTimer]:
        """Snapshot of the registered timers, keyed by period."""
        return dict(self._timers)

    def get_interval(self, period_ms: PeriodMs) -> TickStream:
        """Return the tick stream for *period_ms* (shared across callers)."""
        return TickStream(self, int(period_ms))

    def resume(self) -> None:
        """(Re)start every timer that has subscribers, unless paused."""
        for timer in list(self._timers.values()):
            timer._sync()

    def shutdown(self) -> None:
        """Cancel every timer task (registrations are kept)."""
        for timer in self._timers.values():
            timer.stop()

    def _timer_for(self, period_ms: int) -> SharedTimer:
        timer = self._timers.get(period_ms)
        if timer is None:
            timer = SharedTimer(period_ms, self)
            self._timers[period_ms] = timer
            self._logger.log("interval", f"timer registered: {period_ms}ms")
        return timer

    def _release(self, timer: SharedTimer) -> None:
        timer.stop()
        if self._timers.get(timer.period_ms) is timer:
            del self._timers[timer.period_ms]
            self._logger.log("interval", f"timer released: {timer.period_ms}ms")

    def _on_pause_change(self, paused: bool) -> None:
        if paused:
            self.shutdown()
        else:
            self.resume()
