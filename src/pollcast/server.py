"""Broadcast server — wires transport, activity, intervals and polling.

BroadcastServer is the public entry point.  Connection events flow from the
transport into the activity tracker, whose "no connections" signal gates the
interval manager; the poll manager consumes the shared ticks and pushes
changed payloads back through the transport to subscribed connections.

Quick start::

    from pollcast import BroadcastServer, first_item_field

    server = BroadcastServer(default_interval=2000, check_heartbeat=True)
    server.sources([
        {
            "type": "json-example",
            "url": "http://localhost:9000/json.json",
            "compare": first_item_field("pubDate"),
        },
    ])
    server.run(8080)
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from functools import partial
from typing import TYPE_CHECKING, Any

from pollcast._errors import ConfigurationError, TransportError
from pollcast.config import ServerConfig
from pollcast.observability.collector import StatsCollector
from pollcast.observability.log import EventLog
from pollcast.observability.logger import SocketLogger
from pollcast.reactive.activity import ConnectionActivityTracker
from pollcast.reactive.heartbeat import HeartbeatMonitor
from pollcast.reactive.intervals import IntervalManager
from pollcast.reactive.poller import PollManager
from pollcast.sessions import SessionManager
from pollcast.sources.fetcher import SourceFetcher
from pollcast.transport import SocketTransport

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from websockets.asyncio.server import Server

    from pollcast.observability.monitor import SocketMonitor
    from pollcast.reactive.poller import Fetcher
    from pollcast.sources.source import Source


class BroadcastServer:
    """Polls registered sources and pushes changes to WebSocket clients.

    Args:
        config: Server configuration; built from *overrides* when omitted.
        fetcher: Replacement fetcher (tests); defaults to a ``SourceFetcher``
            using ``config.request_options``.
        transport: Replacement transport (tests).
        **overrides: ``ServerConfig`` fields, applied on top of *config*.

    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        transport: SocketTransport | None = None,
        **overrides: Any,
    ) -> None:
        if config is None:
            config = ServerConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)
        self.config = config

        self.logger = SocketLogger(config.logging)
        self.collector = StatsCollector(EventLog())
        self.transport = transport or SocketTransport(self.logger, config.transport_options)

        # Connection events -> activity signal -> interval gate.
        self.tracker = ConnectionActivityTracker(self.logger, self.collector)
        self.tracker.watch(self.transport.opened, self.transport.closed)
        self.interval_manager = IntervalManager(self.tracker.paused, self.logger)

        self.sessions = SessionManager(config.session_store)
        self.sessions.watch(self.transport.opened, self.transport.closed)

        self.fetcher = fetcher or SourceFetcher(config.request_options)
        self.poll_manager = PollManager(
            self.interval_manager,
            self.logger,
            self.fetcher,
            default_interval=config.default_interval,
            collector=self.collector,
        )

        self.heartbeat: HeartbeatMonitor | None = None
        self.monitor: SocketMonitor | None = None
        self._server: Server | None = None
        self._t0 = time.perf_counter()

        if config.check_heartbeat:
            self._enable_heartbeat_check()

    def sources(self, sources: Iterable[Source | Mapping[str, Any]]) -> list[Source]:
        """Register sources and mount one route per source.

        Each source is reachable at ``/<path or type>``; connecting there
        subscribes the client to that source's updates.

        Raises:
            ConfigurationError: On a duplicate type or route, or a malformed
                entry.  Nothing from the batch is registered in that case.

        """
        batch = self.poll_manager.check_sources(sources)
        self._check_routes(batch)
        added = self.poll_manager.add_sources(batch)
        for source in added:
            self.transport.route(
                source.route, partial(self.poll_manager.open_client_poll, source.type)
            )
            self.logger.log("server", f"route enabled at {source.route}")
        return added

    def _check_routes(self, batch: list[Source]) -> None:
        taken = set(self.transport.routes)
        for source in batch:
            if source.route in taken:
                msg = f"route {source.route} for source {source.type!r} is already mounted"
                raise ConfigurationError(msg)
            taken.add(source.route)

    async def start(self, port: int | None = None) -> Server:
        """Bind the socket server and return once it is accepting.

        Raises:
            TransportError: If the port cannot be bound.  Not retried.

        """
        port = self.config.port if port is None else port

        if self.config.stats and self.monitor is None:
            from pollcast.observability.monitor import STATS_ENDPOINT, SocketMonitor

            self.monitor = SocketMonitor(self)
            self.transport.json_route(STATS_ENDPOINT, self.monitor.snapshot)

        try:
            self._server = await self.transport.start(self.config.host, port)
        except OSError as exc:
            self.logger.log("error", f"could not listen on port {port}: {exc}")
            msg = f"could not bind {self.config.host}:{port}: {exc}"
            raise TransportError(msg) from exc

        self.interval_manager.resume()
        self.logger.log("server", f"listening on port {port}")
        return self._server

    async def broadcast(self, port: int | None = None) -> None:
        """Serve until cancelled, then shut everything down."""
        server = await self.start(port)
        try:
            await server.serve_forever()
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop heartbeat, stats, polling, timers, transport and fetcher."""
        if self.heartbeat is not None:
            self.heartbeat.stop()
        if self.monitor is not None:
            self.monitor.stop()
        await self.poll_manager.aclose()
        self.interval_manager.shutdown()
        await self.transport.stop()
        if isinstance(self.fetcher, SourceFetcher):
            await self.fetcher.aclose()
        self._server = None

    def run(self, port: int | None = None) -> None:
        """Print the banner and serve on *port* until interrupted."""
        from pollcast.banner import print_banner

        port = self.config.port if port is None else port
        if self.config.logging:
            print_banner(
                self.config,
                list(self.poll_manager.registry),
                port=port,
                load_ms=(time.perf_counter() - self._t0) * 1000,
            )
        try:
            asyncio.run(self.broadcast(port))
        except KeyboardInterrupt:
            self.logger.log("server", "shutting down")

    def _enable_heartbeat_check(self) -> None:
        """Ping every open connection each ``heartbeat_interval`` ms."""
        self.heartbeat = HeartbeatMonitor(
            lambda: self.transport.clients, self.logger, self.collector
        )
        self.heartbeat.start(
            self.interval_manager, self.config.heartbeat_interval, self.transport.opened
        )
