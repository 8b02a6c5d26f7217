"""Pollcast — poll HTTP feeds, push changes over WebSockets.

Bridges pull-based sources (JSON APIs, RSS/XML feeds) to push-based
WebSocket clients.  Each source is polled on its own period, but sources
sharing a period share one timer; all polling stops while no client is
connected and resumes on the next connection.  A caller-supplied compare
strategy decides whether a fetched payload is new, and only new payloads
are pushed.

Quick start::

    import pollcast

    server = pollcast.BroadcastServer(default_interval=2000)
    server.sources([
        {
            "type": "rss-example",
            "url": "http://localhost:9000/rss.xml",
            "xml": True,
            "compare": pollcast.RssLatestItem(),
        },
    ])
    server.run(8080)

Clients then connect to ``ws://localhost:8080/rss-example``.

"""

__version__ = "0.1.0"
__all__ = [
    "BroadcastServer",
    "ChangeDetector",
    "RssLatestItem",
    "ServerConfig",
    "Source",
    "__version__",
    "first_item_field",
    "payloads_equal",
]

_LAZY = {
    "BroadcastServer": "pollcast.server",
    "ServerConfig": "pollcast.config",
    "Source": "pollcast.sources.source",
    "ChangeDetector": "pollcast.sources.source",
    "RssLatestItem": "pollcast.sources.strategies",
    "first_item_field": "pollcast.sources.strategies",
    "payloads_equal": "pollcast.sources.strategies",
}


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import pollcast`` fast; websockets and httpx load only when the
    server is actually used.
    """
    module_name = _LAZY.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
