"""Per-connection sessions.

Each connection gets a session dict on open, stored in the configured
``session_store`` under its client id and dropped again on close.  Sessions
hold auxiliary client state only; polling never reads them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import MutableMapping

    from pollcast.reactive.signals import Channel
    from pollcast.transport import ClientConnection


class SessionManager:
    """Creates and discards connection sessions in a backing store.

    Args:
        store: Any mutable mapping; a plain dict when omitted.

    """

    def __init__(self, store: MutableMapping[str, Any] | None = None) -> None:
        self._store: MutableMapping[str, Any] = store if store is not None else {}

    @property
    def store(self) -> MutableMapping[str, Any]:
        return self._store

    def watch(
        self,
        opened: Channel[ClientConnection],
        closed: Channel[ClientConnection],
    ) -> None:
        opened.subscribe(self.open_session)
        closed.subscribe(self.close_session)

    def open_session(self, conn: ClientConnection) -> dict[str, Any]:
        session: dict[str, Any] = {"path": conn.path}
        self._store[conn.client_id] = session
        return session

    def close_session(self, conn: ClientConnection) -> None:
        self._store.pop(conn.client_id, None)

    def get(self, conn: ClientConnection) -> dict[str, Any] | None:
        """Return the session for *conn*, or None once it has closed."""
        return self._store.get(conn.client_id)

    def __len__(self) -> int:
        return len(self._store)
