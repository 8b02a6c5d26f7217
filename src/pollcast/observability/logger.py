"""Socket logger — tagged, coloured status lines on stderr.

Every line looks like ``  [category] message``.  Colour follows the category
and is disabled when ``NO_COLOR`` is set, ``TERM=dumb``, or stderr is not a
TTY.  Each message is also published on ``SocketLogger.channel`` whether or
not printing is enabled, so the stats monitor and tests can observe it.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

from pollcast.observability.events import now_ns
from pollcast.reactive.signals import Channel


def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


COLOR = _supports_color()

RESET = "\033[0m" if COLOR else ""
BOLD = "\033[1m" if COLOR else ""
DIM = "\033[2m" if COLOR else ""
RED = "\033[31m" if COLOR else ""
GREEN = "\033[32m" if COLOR else ""
YELLOW = "\033[33m" if COLOR else ""
BLUE = "\033[34m" if COLOR else ""
MAGENTA = "\033[35m" if COLOR else ""
CYAN = "\033[36m" if COLOR else ""

_CATEGORY_COLORS: dict[str, str] = {
    "server": CYAN,
    "websocket": BLUE,
    "interval": MAGENTA,
    "poll": GREEN,
    "heartbeat": DIM,
    "stats": YELLOW,
    "error": RED,
}


@dataclass(frozen=True, slots=True)
class LogRecord:
    """One message passed to ``SocketLogger.log``."""

    category: str
    message: str
    timestamp_ns: int


class SocketLogger:
    """Prints categorised log lines when enabled.

    Args:
        enabled: Print to stderr.  Records are published on ``channel``
            either way.

    """

    __slots__ = ("channel", "enabled")

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self.channel: Channel[LogRecord] = Channel("log")

    def log(self, category: str, message: object) -> None:
        record = LogRecord(category=category, message=str(message), timestamp_ns=now_ns())
        self.channel.emit(record)
        if not self.enabled:
            return
        color = _CATEGORY_COLORS.get(category, "")
        print(f"  {color}[{category}]{RESET} {record.message}", file=sys.stderr)
