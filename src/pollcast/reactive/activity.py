"""Connection activity tracker — derives the "no open connections" signal.

Listens to the transport's open/close channels, keeps the set of live
connections and publishes ``is_empty`` on a ``ValueSignal``.  Churn that
never crosses zero (a second client joining, one of two leaving) does not
emit; each real idle/active transition is logged and recorded exactly once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pollcast.reactive.signals import ValueSignal

if TYPE_CHECKING:
    from pollcast.observability.collector import StatsCollector
    from pollcast.observability.logger import SocketLogger
    from pollcast.reactive.signals import Channel
    from pollcast.transport import ClientConnection


class ConnectionActivityTracker:
    """Counts live connections and signals idle/active transitions.

    Args:
        logger: SocketLogger for connection and interval log lines.
        collector: Optional StatsCollector for open/close/activity events.

    Attributes:
        paused: ``ValueSignal[bool]``; True while no connection is open.
            Starts True.

    """

    def __init__(
        self,
        logger: SocketLogger,
        collector: StatsCollector | None = None,
    ) -> None:
        self._logger = logger
        self._collector = collector
        self._connections: set[ClientConnection] = set()
        self.paused: ValueSignal[bool] = ValueSignal(True, "paused")
        self.transitions = 0

    @property
    def count(self) -> int:
        return len(self._connections)

    @property
    def is_empty(self) -> bool:
        return self.paused.value

    def watch(
        self,
        opened: Channel[ClientConnection],
        closed: Channel[ClientConnection],
    ) -> None:
        """Subscribe to a transport's open/close channels."""
        opened.subscribe(self.connection_opened)
        closed.subscribe(self.connection_closed)

    def connection_opened(self, conn: ClientConnection) -> None:
        self._connections.add(conn)
        self._logger.log("websocket", f"client connected, pool: {self.count}")
        if self._collector is not None:
            self._collector.record_open(conn.client_id, conn.path, pool=self.count)
        self._recompute()

    def connection_closed(self, conn: ClientConnection) -> None:
        if conn not in self._connections:
            return
        self._connections.discard(conn)
        self._logger.log("websocket", f"client disconnected, pool: {self.count}")
        if self._collector is not None:
            self._collector.record_close(conn.client_id, conn.path, pool=self.count)
        self._recompute()

    def _recompute(self) -> None:
        empty = self.count == 0
        if empty == self.paused.value:
            return
        self.transitions += 1
        self._logger.log("interval", "idle" if empty else "active")
        if self._collector is not None:
            self._collector.record_activity(idle=empty, connections=self.count)
        self.paused.set(empty)
