"""Socket monitor — connection and poll statistics for the running server.

Enabled with ``stats=True``.  Prints a stats line on every idle/active
transition (and every ``stats_interval`` ms when set) and serves the same
numbers as JSON at ``/__pollcast/stats``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pollcast.observability.stats import compute_activity_stats, compute_source_stats

if TYPE_CHECKING:
    from pollcast.server import BroadcastServer

STATS_ENDPOINT = "/__pollcast/stats"


class SocketMonitor:
    """Reports connection counts, transitions and per-source poll stats.

    Args:
        server: The BroadcastServer being monitored.

    """

    def __init__(self, server: BroadcastServer) -> None:
        self._server = server
        self._subscriptions = [server.tracker.paused.subscribe(self._on_transition)]
        interval = server.config.stats_interval
        if interval > 0:
            stream = server.interval_manager.get_interval(interval)
            self._subscriptions.append(stream.subscribe(lambda _tick: self.report()))

    def snapshot(self) -> dict[str, Any]:
        """Current statistics as a JSON-serialisable dict."""
        server = self._server
        log = server.collector.log
        sources: dict[str, Any] = {}
        for state in server.poll_manager.registry:
            entry = {
                "route": state.source.route,
                "period_ms": state.period_ms,
                "subscribers": len(state.subscribers),
                "has_payload": state.has_payload,
            }
            entry.update(compute_source_stats(log, state.source.type))
            sources[state.source.type] = entry

        return {
            "connections": server.tracker.count,
            "idle": server.tracker.is_empty,
            "transitions": compute_activity_stats(log),
            "timers": sorted(server.interval_manager.intervals),
            "sources": sources,
            "event_log": log.stats(),
        }

    def report(self) -> None:
        """Log a one-line summary."""
        snap = self.snapshot()
        per_source = ", ".join(
            f"{name}={info['subscribers']}" for name, info in snap["sources"].items()
        )
        state = "idle" if snap["idle"] else "active"
        self._server.logger.log(
            "stats",
            f"{state}, connections: {snap['connections']}, "
            f"timers: {len(snap['timers'])}, subscribers: {per_source or '-'}",
        )

    def _on_transition(self, _paused: bool) -> None:
        self.report()

    def stop(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()
