"""Observability — logging, event log and statistics for the socket server.

Aggregates events from:
- **Transport**: connection lifecycle (open, close, heartbeat terminations)
- **Activity tracker**: idle/active transitions
- **Poll manager**: poll outcomes, fetch failures, broadcasts

Quick Start:
    >>> from pollcast.observability import StatsCollector, EventLog
    >>> log = EventLog()
    >>> collector = StatsCollector(log)
    >>> collector.record_poll("rss-example", changed=True, fetch_ms=12.5)

"""

from pollcast.observability.collector import StatsCollector
from pollcast.observability.events import (
    ActivityChanged,
    ConnectionClosed,
    ConnectionOpened,
    FetchFailed,
    HeartbeatTerminated,
    PayloadBroadcast,
    ServerEvent,
    SourcePolled,
    now_ns,
)
from pollcast.observability.log import EventLog
from pollcast.observability.logger import LogRecord, SocketLogger

__all__ = [
    "ActivityChanged",
    "ConnectionClosed",
    "ConnectionOpened",
    "EventLog",
    "FetchFailed",
    "HeartbeatTerminated",
    "LogRecord",
    "PayloadBroadcast",
    "ServerEvent",
    "SocketLogger",
    "SourcePolled",
    "StatsCollector",
    "now_ns",
]
