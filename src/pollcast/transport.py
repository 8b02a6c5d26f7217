"""Socket transport — connection handles and route mounting over websockets.

``ClientConnection`` is the opaque handle the rest of pollcast works with:
a subscription key and push target that knows how to send, ping and
terminate.  ``WebSocketConnection`` implements it over a
``websockets`` server connection.

``SocketTransport`` accepts connections, dispatches each one to the route
handler mounted for its URL path, publishes open/close events on typed
channels, and answers plain HTTP GETs for mounted JSON endpoints (the stats
endpoint) before the WebSocket handshake.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import uuid
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, TypeAlias
from urllib.parse import urlsplit

from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed

from pollcast._errors import UnknownRouteError
from pollcast.reactive.signals import Channel, Subscription

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from websockets.asyncio.server import Server, ServerConnection
    from websockets.http11 import Request, Response

    from pollcast._types import ClientID, RoutePath
    from pollcast.observability.logger import SocketLogger
    from pollcast.reactive.signals import Listener

    RouteHandler: TypeAlias = Callable[[ClientConnection], Any]
    JSONHandler: TypeAlias = Callable[[], Any]


def normalize_path(path: str) -> RoutePath:
    """Strip query string and trailing slash; ensure a leading slash."""
    path = urlsplit(path).path or "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


class ClientConnection:
    """Handle for one live client socket.

    Subclasses implement ``send``, ``ping`` and ``terminate``.  Identity
    (not equality) is what subscriber sets key on.

    Attributes:
        client_id: Unique identifier for this connection.
        path: Route path the client connected through.
        is_alive: Heartbeat tag; cleared before each ping, set again by a pong.
        closed: True once the transport reported the close.

    """

    def __init__(self, path: str = "/", client_id: ClientID | None = None) -> None:
        self.client_id = client_id or uuid.uuid4().hex
        self.path = normalize_path(path)
        self.is_alive = True
        self.closed = False
        self._close_listeners: Channel[ClientConnection] = Channel(f"close:{self.client_id}")
        self.pongs: Channel[ClientConnection] = Channel(f"pong:{self.client_id}")

    def on_close(self, listener: Listener[ClientConnection]) -> Subscription:
        """Call *listener* once, synchronously, when the connection closes."""
        if self.closed:
            listener(self)
            return _noop_subscription()
        return self._close_listeners.subscribe(listener)

    def mark_closed(self) -> None:
        """Fire the close observers.  Idempotent."""
        if self.closed:
            return
        self.closed = True
        self._close_listeners.emit(self)

    def mark_alive(self) -> None:
        """Record an answered ping."""
        self.is_alive = True
        self.pongs.emit(self)

    async def send_json(self, payload: Any) -> None:
        await self.send(json.dumps(payload, default=str))

    async def send(self, message: str) -> None:
        raise NotImplementedError

    async def ping(self) -> None:
        """Send a ping; ``mark_alive()`` must run when the pong arrives."""
        raise NotImplementedError

    def terminate(self) -> None:
        """Drop the connection without a closing handshake."""
        raise NotImplementedError

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<{type(self).__name__} {self.client_id[:8]} {self.path} {state}>"


def _noop_subscription() -> Subscription:
    sub = Subscription(lambda: None)
    sub.active = False
    return sub


class WebSocketConnection(ClientConnection):
    """``ClientConnection`` backed by a websockets ``ServerConnection``."""

    def __init__(self, websocket: ServerConnection, path: str) -> None:
        super().__init__(path=path, client_id=str(websocket.id))
        self._ws = websocket

    async def send(self, message: str) -> None:
        await self._ws.send(message)

    async def ping(self) -> None:
        pong_waiter = await self._ws.ping()
        pong_waiter.add_done_callback(self._on_pong)

    def _on_pong(self, waiter: asyncio.Future[Any]) -> None:
        if not waiter.cancelled() and waiter.exception() is None:
            self.mark_alive()

    def terminate(self) -> None:
        self._ws.transport.abort()


class SocketTransport:
    """Accepts WebSocket connections and routes them by URL path.

    Args:
        logger: SocketLogger for connection log lines.
        options: Extra keyword arguments for ``websockets`` ``serve()``.

    """

    def __init__(self, logger: SocketLogger, options: Mapping[str, Any] | None = None) -> None:
        self._logger = logger
        self._options = dict(options or {})
        self._routes: dict[RoutePath, RouteHandler] = {}
        self._json_routes: dict[RoutePath, JSONHandler] = {}
        self._server: Server | None = None
        self.clients: set[ClientConnection] = set()
        self.opened: Channel[ClientConnection] = Channel("connection:open")
        self.closed: Channel[ClientConnection] = Channel("connection:close")

    @property
    def routes(self) -> frozenset[RoutePath]:
        return frozenset(self._routes)

    @property
    def server(self) -> Server | None:
        return self._server

    def route(self, path: str, handler: RouteHandler) -> None:
        """Mount *handler* for WebSocket connections at *path*."""
        self._routes[normalize_path(path)] = handler

    def json_route(self, path: str, handler: JSONHandler) -> None:
        """Answer plain HTTP GETs at *path* with ``handler()`` as JSON."""
        self._json_routes[normalize_path(path)] = handler

    async def start(self, host: str, port: int) -> Server:
        """Bind and start accepting connections.

        Raises:
            OSError: If the address cannot be bound.

        """
        self._server = await serve(
            self.handle,
            host,
            port,
            process_request=self._process_request,
            **self._options,
        )
        return self._server

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def handle(self, websocket: ServerConnection) -> None:
        """Connection handler: announce, route, drain until closed."""
        conn = WebSocketConnection(websocket, path=websocket.request.path)
        await self.run_connection(conn, websocket)

    async def run_connection(self, conn: ClientConnection, messages: Any) -> None:
        """Drive *conn* through open, routing and close.

        *messages* is an async iterable of incoming frames; iteration ends
        when the socket closes.  Incoming frames are ignored.
        """
        self.clients.add(conn)
        self.opened.emit(conn)
        try:
            handler = self._routes.get(conn.path)
            if handler is None:
                self._logger.log("error", UnknownRouteError(f"no source mounted at {conn.path}"))
            else:
                result = handler(conn)
                if inspect.isawaitable(result):
                    await result
            async for _frame in messages:
                pass
        except ConnectionClosed:
            pass
        finally:
            self.clients.discard(conn)
            conn.mark_closed()
            self.closed.emit(conn)

    def _process_request(self, connection: ServerConnection, request: Request) -> Response | None:
        handler = self._json_routes.get(normalize_path(request.path))
        if handler is None:
            return None
        body = json.dumps(handler(), indent=2, default=str)
        response = connection.respond(HTTPStatus.OK, body + "\n")
        del response.headers["Content-Type"]
        response.headers["Content-Type"] = "application/json"
        return response
