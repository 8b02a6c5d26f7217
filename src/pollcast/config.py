"""Pollcast configuration.

ServerConfig is the central configuration object, frozen after creation.
"""

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pollcast._errors import ConfigurationError

DEFAULT_INTERVAL_MS = 2000
HEARTBEAT_INTERVAL_MS = 20000
DEFAULT_PORT = 8080


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Configuration for a BroadcastServer.

    Attributes:
        root: Directory holding ``pollcast.toml`` / ``pollcast.yaml`` and any
              modules referenced by ``module:attr`` compare strategies.
              Always resolved to an absolute path on construction.
        host: Bind address for the socket server.
        port: Default bind port used when ``broadcast()`` gets no port.
        default_interval: Poll period in milliseconds for sources without one.
        check_heartbeat: Ping every connection periodically and terminate the
            ones that stop answering.
        heartbeat_interval: Milliseconds between heartbeat pings.
        request_options: Keyword arguments for the shared ``httpx.AsyncClient``
            (``headers``, ``timeout``, ``params``, ...).
        session_store: Mapping backing per-connection sessions
            (in-memory dict when omitted).
        transport_options: Keyword arguments passed through to
            ``websockets.asyncio.server.serve``.
        logging: Print tagged log lines to stderr.
        stats: Enable the SocketMonitor and the ``/__pollcast/stats`` endpoint.
        stats_interval: Milliseconds between periodic stats lines (0 = only
            on idle/active transitions).

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    default_interval: int = DEFAULT_INTERVAL_MS
    check_heartbeat: bool = False
    heartbeat_interval: int = HEARTBEAT_INTERVAL_MS
    request_options: Mapping[str, Any] = field(default_factory=dict)
    session_store: MutableMapping[str, Any] | None = None
    transport_options: Mapping[str, Any] = field(default_factory=dict)
    logging: bool = True
    stats: bool = False
    stats_interval: int = 0

    def __post_init__(self) -> None:
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if self.default_interval <= 0:
            msg = f"default_interval must be positive, got {self.default_interval}"
            raise ConfigurationError(msg)
        if self.heartbeat_interval <= 0:
            msg = f"heartbeat_interval must be positive, got {self.heartbeat_interval}"
            raise ConfigurationError(msg)
        if self.stats_interval < 0:
            msg = f"stats_interval must not be negative, got {self.stats_interval}"
            raise ConfigurationError(msg)

