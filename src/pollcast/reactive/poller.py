"""Poll manager — per-source fetch, change detection and fan-out.

Each registered source owns a ``SourceState``: the last payload that passed
change detection and the set of connections subscribed to it.  On every tick
of the source's shared timer the manager runs one cycle:

    tick -> fetch -> compare(last, candidate)
              |            |-- unchanged -> idle
              |            `-- changed   -> last = candidate -> push to all
              `-- FetchError -> log, keep state, wait for next tick

Cycles for one source never overlap.  A tick that lands while a cycle is
still in flight is folded into a single follow-up cycle; ticks for different
sources run independently.

Subscriber removal happens synchronously in the connection's close
observer, and every push re-checks membership right before sending, so a
closed connection never receives a frame even when its close lands in the
middle of a fan-out.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from pollcast._errors import ConfigurationError, FetchError, UnknownRouteError
from pollcast.sources.source import coerce_source

if TYPE_CHECKING:
    from pollcast._types import Payload, SourceType
    from pollcast.observability.collector import StatsCollector
    from pollcast.observability.logger import SocketLogger
    from pollcast.reactive.intervals import IntervalManager
    from pollcast.reactive.signals import Subscription
    from pollcast.sources.source import Source
    from pollcast.transport import ClientConnection


class Fetcher(Protocol):
    async def fetch(self, source: Source) -> Payload: ...


def _settled_event() -> asyncio.Event:
    event = asyncio.Event()
    event.set()
    return event


@dataclass(slots=True, eq=False)
class SourceState:
    """Mutable per-source state.

    Attributes:
        source: The immutable source record.
        period_ms: Effective poll period.
        last_payload: Last payload that passed change detection.
        has_payload: False until the first successful cycle (a JSON ``null``
            payload is a real payload).
        subscribers: Connections currently attached to this source.
        settled: Set while no cycle is in flight.

    """

    source: Source
    period_ms: int
    last_payload: Payload = None
    has_payload: bool = False
    subscribers: set[ClientConnection] = field(default_factory=set)
    ticks: Subscription | None = None
    in_flight: bool = False
    pending: bool = False
    cycles: int = 0
    settled: asyncio.Event = field(default_factory=_settled_event)


class SourceRegistry:
    """Source states keyed by source type, in registration order."""

    __slots__ = ("_states",)

    def __init__(self) -> None:
        self._states: dict[SourceType, SourceState] = {}

    def get(self, source_type: SourceType) -> SourceState | None:
        return self._states.get(source_type)

    def add(self, state: SourceState) -> None:
        self._states[state.source.type] = state

    @property
    def types(self) -> tuple[SourceType, ...]:
        return tuple(self._states)

    def subscriber_counts(self) -> dict[SourceType, int]:
        return {t: len(s.subscribers) for t, s in self._states.items()}

    def __contains__(self, source_type: object) -> bool:
        return source_type in self._states

    def __iter__(self) -> Iterator[SourceState]:
        return iter(list(self._states.values()))

    def __len__(self) -> int:
        return len(self._states)


class PollManager:
    """Owns the source registry and runs every source's poll cycle.

    Args:
        interval_manager: Provides the shared tick streams.
        logger: SocketLogger for poll log lines.
        fetcher: Performs one fetch-and-decode per call.
        default_interval: Period for sources registered without one.
        collector: Optional StatsCollector for poll and broadcast events.

    """

    def __init__(
        self,
        interval_manager: IntervalManager,
        logger: SocketLogger,
        fetcher: Fetcher,
        *,
        default_interval: int,
        collector: StatsCollector | None = None,
    ) -> None:
        self._intervals = interval_manager
        self._logger = logger
        self._fetcher = fetcher
        self._default_interval = default_interval
        self._collector = collector
        self._registry = SourceRegistry()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def registry(self) -> SourceRegistry:
        return self._registry

    def add_sources(self, sources: Iterable[Source | Mapping[str, Any]]) -> list[Source]:
        """Register sources and start their ticking.

        The whole batch is validated first; nothing is registered when any
        entry is invalid or reuses a type.

        Raises:
            ConfigurationError: On a duplicate ``type`` or a malformed entry.

        """
        batch = self.check_sources(sources)
        for source in batch:
            state = SourceState(source=source, period_ms=source.period_or(self._default_interval))
            self._registry.add(state)
            stream = self._intervals.get_interval(state.period_ms)
            state.ticks = stream.subscribe(lambda _tick, st=state: self._on_tick(st))
            self._logger.log(
                "poll",
                f"{source.type}: polling {source.url} every {state.period_ms}ms "
                f"({source.payload_format})",
            )
        return batch

    def check_sources(self, sources: Iterable[Source | Mapping[str, Any]]) -> list[Source]:
        """Coerce and validate a batch without registering anything.

        Raises:
            ConfigurationError: On a duplicate ``type`` or a malformed entry.

        """
        batch = [coerce_source(entry) for entry in sources]
        seen: set[SourceType] = set()
        for source in batch:
            if source.type in self._registry or source.type in seen:
                msg = f"duplicate source type {source.type!r}"
                raise ConfigurationError(msg)
            seen.add(source.type)
        return batch

    async def open_client_poll(self, source_type: SourceType, conn: ClientConnection) -> bool:
        """Attach *conn* to a source and send it the current payload.

        Returns False (after logging) when no source has this type; the
        connection is left open without a data feed.  A connection attached
        to another source is moved: it follows at most one source.
        """
        state = self._registry.get(source_type)
        if state is None:
            self._logger.log(
                "error", UnknownRouteError(f"no source registered for type {source_type!r}")
            )
            return False

        for other in self._registry:
            if other is not state:
                self._detach(other, conn)
        state.subscribers.add(conn)
        conn.on_close(lambda closed, st=state: self._detach(st, closed))
        self._logger.log(
            "poll", f"{source_type}: client subscribed ({len(state.subscribers)} attached)"
        )
        if state.has_payload:
            await self._push(state, conn, state.last_payload)
        return True

    def _detach(self, state: SourceState, conn: ClientConnection) -> None:
        if conn in state.subscribers:
            state.subscribers.discard(conn)
            self._logger.log(
                "poll",
                f"{state.source.type}: client unsubscribed ({len(state.subscribers)} attached)",
            )

    # ----- tick handling -----

    def _on_tick(self, state: SourceState) -> None:
        if state.in_flight:
            state.pending = True
            return
        self._spawn_cycles(state)

    def _spawn_cycles(self, state: SourceState) -> None:
        self._claim(state)
        task = asyncio.get_running_loop().create_task(
            self._run_cycles(state), name=f"pollcast-poll-{state.source.type}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_cycles(self, state: SourceState) -> None:
        try:
            while True:
                state.pending = False
                await self._cycle(state)
                # Ticks coalesced before going idle are dropped.
                if not state.pending or self._intervals.is_paused:
                    break
        finally:
            state.pending = False
            self._settle(state)

    def _claim(self, state: SourceState) -> None:
        state.in_flight = True
        state.settled.clear()

    def _settle(self, state: SourceState) -> None:
        state.in_flight = False
        state.settled.set()

    async def poll_once(self, source_type: SourceType) -> bool:
        """Run one cycle for *source_type* now; return True if it broadcast.

        Waits for a cycle already in flight to finish first.  Ticks that
        arrive meanwhile get one follow-up cycle afterwards, unless the
        server has gone idle.

        Raises:
            UnknownRouteError: If no source has this type.

        """
        state = self._registry.get(source_type)
        if state is None:
            msg = f"no source registered for type {source_type!r}"
            raise UnknownRouteError(msg)
        while state.in_flight:
            await state.settled.wait()
        self._claim(state)
        try:
            return await self._cycle(state)
        finally:
            self._settle(state)
            if state.pending:
                state.pending = False
                if not self._intervals.is_paused:
                    self._spawn_cycles(state)

    async def _cycle(self, state: SourceState) -> bool:
        source = state.source
        state.cycles += 1
        t0 = time.perf_counter()
        try:
            candidate = await self._fetcher.fetch(source)
        except FetchError as exc:
            self._logger.log("error", exc)
            if self._collector is not None:
                self._collector.record_fetch_failure(source.type, str(exc))
            return False
        fetch_ms = (time.perf_counter() - t0) * 1000

        if state.has_payload:
            try:
                unchanged = source.is_unchanged(state.last_payload, candidate)
            except Exception as exc:
                self._logger.log("error", f"{source.type}: compare failed: {exc!r}")
                if self._collector is not None:
                    self._collector.record_fetch_failure(source.type, f"compare failed: {exc!r}")
                return False
            if unchanged:
                if self._collector is not None:
                    self._collector.record_poll(source.type, changed=False, fetch_ms=fetch_ms)
                return False

        state.last_payload = candidate
        state.has_payload = True
        if self._collector is not None:
            self._collector.record_poll(source.type, changed=True, fetch_ms=fetch_ms)
        await self._broadcast(state, candidate)
        return True

    async def _broadcast(self, state: SourceState, payload: Payload) -> int:
        targets = list(state.subscribers)
        t0 = time.perf_counter()
        results = await asyncio.gather(*(self._push(state, conn, payload) for conn in targets))
        notified = sum(results)
        failures = len(results) - notified
        self._logger.log("poll", f"{state.source.type}: update pushed to {notified} client(s)")
        if self._collector is not None:
            self._collector.record_broadcast(
                state.source.type,
                clients_notified=notified,
                failures=failures,
                duration_ms=(time.perf_counter() - t0) * 1000,
            )
        return notified

    async def _push(self, state: SourceState, conn: ClientConnection, payload: Payload) -> bool:
        if conn.closed or conn not in state.subscribers:
            return False
        try:
            await conn.send_json(payload)
        except Exception as exc:
            self._logger.log("error", f"{state.source.type}: push to {conn.client_id} failed: {exc!r}")
            return False
        return True

    async def aclose(self) -> None:
        """Detach from the timers and cancel in-flight cycles."""
        for state in self._registry:
            if state.ticks is not None:
                state.ticks.unsubscribe()
                state.ticks = None
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
