"""Event log — queryable event store.

Stores a bounded ring buffer of ``ServerEvent`` objects for inspection.
Supports querying by event type, time range, and source type.

Thread Safety:
    All methods are protected by a ``threading.Lock`` so the stats endpoint
    may read while the event loop writes.

"""

import threading
from collections import deque
from typing import Any

from pollcast.observability.events import ServerEvent


class EventLog:
    """Bounded event store with query support.

    Events are stored in a ring buffer (deque with maxlen).  When the
    buffer is full, the oldest events are discarded automatically.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[ServerEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: ServerEvent) -> None:
        """Record an event in the log."""
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        source_type: str | None = None,
        limit: int = 100,
    ) -> list[ServerEvent]:
        """Query events with optional filters.

        Args:
            event_type: Only return events of this type.
            since_ns: Only return events after this timestamp (nanoseconds).
            source_type: Only return events for this source type (exact match).
            limit: Maximum number of events to return.

        Returns:
            List of matching events, most recent first.

        """
        with self._lock:
            results: list[ServerEvent] = []
            for event in reversed(self._events):
                if len(results) >= limit:
                    break

                if event_type is not None and not isinstance(event, event_type):
                    continue

                if since_ns and event.timestamp_ns < since_ns:
                    continue

                if source_type is not None and getattr(event, "source_type", None) != source_type:
                    continue

                results.append(event)

            return results

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Return summary statistics about stored events."""
        with self._lock:
            events = list(self._events)

        type_counts: dict[str, int] = {}
        for event in events:
            name = type(event).__name__
            type_counts[name] = type_counts.get(name, 0) + 1

        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": type_counts,
        }
