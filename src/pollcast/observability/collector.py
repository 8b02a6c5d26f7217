"""Stats collector — records connection and poll events into the event log.

The server, the activity tracker, the poll manager and the heartbeat all
report through one collector so the ``/__pollcast/stats`` endpoint can read
a single log.

"""

from __future__ import annotations

from pollcast.observability.events import (
    ActivityChanged,
    ConnectionClosed,
    ConnectionOpened,
    FetchFailed,
    HeartbeatTerminated,
    PayloadBroadcast,
    SourcePolled,
    now_ns,
)
from pollcast.observability.log import EventLog


class StatsCollector:
    """Unified event collector.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Connection lifecycle -----

    def record_open(self, client_id: str, path: str, *, pool: int) -> None:
        self._log.append(
            ConnectionOpened(client_id=client_id, path=path, pool=pool, timestamp_ns=now_ns())
        )

    def record_close(self, client_id: str, path: str, *, pool: int) -> None:
        self._log.append(
            ConnectionClosed(client_id=client_id, path=path, pool=pool, timestamp_ns=now_ns())
        )

    def record_activity(self, *, idle: bool, connections: int) -> None:
        """Record an idle/active transition."""
        self._log.append(
            ActivityChanged(idle=idle, connections=connections, timestamp_ns=now_ns())
        )

    def record_heartbeat_termination(self, client_id: str, path: str) -> None:
        self._log.append(
            HeartbeatTerminated(client_id=client_id, path=path, timestamp_ns=now_ns())
        )

    # ----- Poll pipeline -----

    def record_poll(self, source_type: str, *, changed: bool, fetch_ms: float = 0.0) -> None:
        """Record a completed poll cycle."""
        self._log.append(
            SourcePolled(
                source_type=source_type,
                outcome="changed" if changed else "unchanged",
                fetch_ms=fetch_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_fetch_failure(self, source_type: str, error: str) -> None:
        self._log.append(
            FetchFailed(source_type=source_type, error=error, timestamp_ns=now_ns())
        )

    def record_broadcast(
        self,
        source_type: str,
        *,
        clients_notified: int = 0,
        failures: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        """Record a fan-out of a changed payload."""
        self._log.append(
            PayloadBroadcast(
                source_type=source_type,
                clients_notified=clients_notified,
                failures=failures,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )
