"""Event model for server observability.

Defines event types for the connection lifecycle and the poll pipeline.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

"""

import time
from dataclasses import dataclass
from typing import Literal, TypeAlias


# ---------------------------------------------------------------------------
# Connection lifecycle events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ConnectionOpened:
    """A client socket connected.

    Attributes:
        client_id: Transport-assigned connection identifier.
        path: Route the client connected through.
        pool: Number of open connections after this one opened.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    client_id: str
    path: str
    pool: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ConnectionClosed:
    """A client socket closed (either side)."""

    client_id: str
    path: str
    pool: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ActivityChanged:
    """The server went idle (no connections) or active again.

    Attributes:
        idle: True when the last connection closed.
        connections: Open connection count at the transition.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    idle: bool
    connections: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class HeartbeatTerminated:
    """A connection was terminated for missing a heartbeat ping."""

    client_id: str
    path: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Poll pipeline events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SourcePolled:
    """One poll cycle completed with a decoded payload.

    Attributes:
        source_type: Type key of the polled source.
        outcome: Whether the comparison reported a change.
        fetch_ms: Time spent fetching and decoding in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    source_type: str
    outcome: Literal["changed", "unchanged"]
    fetch_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class FetchFailed:
    """One poll cycle failed; the previous payload was kept."""

    source_type: str
    error: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class PayloadBroadcast:
    """A changed payload was fanned out to subscribers.

    Attributes:
        source_type: Type key of the source.
        clients_notified: Subscribers that received the payload.
        failures: Subscribers whose push raised.
        duration_ms: Time spent pushing in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    source_type: str
    clients_notified: int
    failures: int
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

ServerEvent: TypeAlias = (
    ConnectionOpened
    | ConnectionClosed
    | ActivityChanged
    | HeartbeatTerminated
    | SourcePolled
    | FetchFailed
    | PayloadBroadcast
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
