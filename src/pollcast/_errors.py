"""Pollcast error hierarchy.

All pollcast-specific errors inherit from PollcastError for easy catching.
"""


class PollcastError(Exception):
    """Base error for all pollcast operations."""


class ConfigurationError(PollcastError):
    """Invalid configuration or duplicate source registration."""


class UnknownRouteError(PollcastError):
    """A client connected through a route with no registered source."""


class FetchError(PollcastError):
    """One poll cycle failed to fetch or decode its source."""

    def __init__(self, source_type: str, message: str) -> None:
        super().__init__(f"{source_type}: {message}")
        self.source_type = source_type


class TransportError(PollcastError):
    """The socket server could not bind or listen."""


class LivenessTimeout(PollcastError):
    """A connection did not answer the previous heartbeat ping."""
