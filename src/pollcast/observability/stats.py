"""Aggregate statistics computed from the event log.

Backs the ``/__pollcast/stats`` endpoint and the periodic stats lines.

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pollcast.observability.events import (
    ActivityChanged,
    FetchFailed,
    PayloadBroadcast,
    SourcePolled,
)

if TYPE_CHECKING:
    from pollcast.observability.log import EventLog


def _percentile(data: list[float], pct: float) -> float:
    idx = int(len(data) * pct / 100)
    return data[min(idx, len(data) - 1)]


def compute_source_stats(
    log: EventLog,
    source_type: str,
    *,
    limit: int = 1000,
) -> dict[str, Any]:
    """Summarise recent poll activity for one source.

    Returns counts of polls, changes, failures and broadcasts, plus fetch
    latency percentiles when at least one poll succeeded.

    """
    polls = log.query(event_type=SourcePolled, source_type=source_type, limit=limit)
    failures = log.query(event_type=FetchFailed, source_type=source_type, limit=limit)
    broadcasts = log.query(event_type=PayloadBroadcast, source_type=source_type, limit=limit)

    result: dict[str, Any] = {
        "polls": len(polls),
        "changes": sum(1 for p in polls if p.outcome == "changed"),
        "failures": len(failures),
        "broadcasts": len(broadcasts),
        "clients_notified": sum(b.clients_notified for b in broadcasts),
    }
    if failures:
        result["last_error"] = failures[0].error

    if polls:
        latencies = sorted(p.fetch_ms for p in polls)
        result["fetch_ms"] = {
            "p50": round(_percentile(latencies, 50), 1),
            "p95": round(_percentile(latencies, 95), 1),
            "min": round(latencies[0], 1),
            "max": round(latencies[-1], 1),
        }
    return result


def compute_activity_stats(log: EventLog, *, limit: int = 1000) -> dict[str, int]:
    """Count idle and active transitions recorded in the log."""
    transitions = log.query(event_type=ActivityChanged, limit=limit)
    idle = sum(1 for t in transitions if t.idle)
    return {"idle": idle, "active": len(transitions) - idle}
