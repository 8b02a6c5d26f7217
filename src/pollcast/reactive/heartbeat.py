"""Heartbeat — periodic liveness pings for every open connection.

On each heartbeat tick every open connection is checked:

- ``is_alive`` still False from the previous round: it never answered,
  so it is terminated (``LivenessTimeout``)
- otherwise ``is_alive`` is cleared and a ping is sent; the pong sets it
  back to True

The liveness flag is only a tag on the connection.  Terminating drops the
socket; the transport still reports the close and owns the cleanup.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from pollcast._errors import LivenessTimeout

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from pollcast.observability.collector import StatsCollector
    from pollcast.observability.logger import SocketLogger
    from pollcast.reactive.intervals import IntervalManager
    from pollcast.reactive.signals import Channel, Subscription
    from pollcast.transport import ClientConnection


class HeartbeatMonitor:
    """Pings open connections on a fixed period and drops silent ones.

    Args:
        clients: Callable returning the currently open connections.
        logger: SocketLogger for heartbeat log lines.
        collector: Optional StatsCollector for terminations.

    """

    def __init__(
        self,
        clients: Callable[[], Iterable[ClientConnection]],
        logger: SocketLogger,
        collector: StatsCollector | None = None,
    ) -> None:
        self._clients = clients
        self._logger = logger
        self._collector = collector
        self._subscriptions: list[Subscription] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self.terminated = 0

    def start(
        self,
        intervals: IntervalManager,
        period_ms: int,
        opened: Channel[ClientConnection],
    ) -> None:
        """Begin pinging every *period_ms* and tag new connections alive."""
        self._subscriptions.append(opened.subscribe(self._on_open))
        self._subscriptions.append(
            intervals.get_interval(period_ms).subscribe(lambda _tick: self.check())
        )

    def stop(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()
        for task in list(self._tasks):
            task.cancel()

    def _on_open(self, conn: ClientConnection) -> None:
        conn.is_alive = True
        conn.pongs.subscribe(lambda _c: self._logger.log("heartbeat", "pong"))

    def check(self) -> None:
        """Run one heartbeat round over the open connections."""
        for conn in list(self._clients()):
            if conn.closed:
                continue
            if conn.is_alive is False:
                self._terminate(conn)
                continue
            conn.is_alive = False
            task = asyncio.get_running_loop().create_task(self._ping(conn))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def _terminate(self, conn: ClientConnection) -> None:
        self.terminated += 1
        self._logger.log("heartbeat", LivenessTimeout(f"client {conn.client_id} missed a ping"))
        if self._collector is not None:
            self._collector.record_heartbeat_termination(conn.client_id, conn.path)
        conn.terminate()

    async def _ping(self, conn: ClientConnection) -> None:
        try:
            await conn.ping()
        except Exception as exc:
            # The next round terminates it since is_alive stays False.
            self._logger.log("heartbeat", f"ping to {conn.client_id} failed: {exc!r}")
            return
        self._logger.log("heartbeat", "ping")
