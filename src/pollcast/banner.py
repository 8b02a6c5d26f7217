"""Startup banner — routes, intervals and the listening URL.

Printed to stderr by ``BroadcastServer.run()`` when logging is enabled.
Colours follow the logger's ``NO_COLOR`` / ``TERM`` detection.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from pollcast.observability.logger import BOLD, COLOR, CYAN, DIM, GREEN, RESET, YELLOW

if TYPE_CHECKING:
    from pollcast.config import ServerConfig
    from pollcast.reactive.poller import SourceState


def _clickable_url(url: str) -> str:
    """Wrap *url* in an OSC 8 hyperlink escape if the terminal supports it."""
    if not COLOR:
        return url
    return f"\033]8;;{url}\033\\{BOLD}{CYAN}{url}{RESET}\033]8;;\033\\"


def format_banner(
    config: ServerConfig,
    states: list[SourceState],
    *,
    port: int,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> str:
    """Build the banner text (without printing it)."""
    from pollcast import __version__

    header = f"  {BOLD}pollcast{RESET} {DIM}v{__version__}{RESET}"
    lines: list[str] = ["", header, f"  {DIM}{'─' * 43}{RESET}"]

    label = "source" if len(states) == 1 else "sources"
    timing = f" {DIM}in {load_ms:.0f}ms{RESET}" if load_ms > 0 else ""
    lines.append(f"  {DIM}├─{RESET} {len(states)} {label} registered{timing}")
    for state in states:
        source = state.source
        lines.append(
            f"  {DIM}│  {RESET}{GREEN}{source.route}{RESET} "
            f"{DIM}every {state.period_ms}ms, {source.payload_format}{RESET}"
        )

    if config.check_heartbeat:
        lines.append(f"  {DIM}├─{RESET} heartbeat every {config.heartbeat_interval}ms")
    if config.stats:
        lines.append(f"  {DIM}├─{RESET} stats on {DIM}/__pollcast/stats{RESET}")
    lines.append(f"  {DIM}└─{RESET} default interval: {config.default_interval}ms")

    host = "localhost" if config.host in ("0.0.0.0", "") else config.host
    lines.append("")
    lines.append(f"  {_clickable_url(f'ws://{host}:{port}')}")

    if warnings:
        lines.append("")
        lines.extend(f"  {YELLOW}!{RESET} {w}" for w in warnings)

    lines.append("")
    return "\n".join(lines)


def print_banner(
    config: ServerConfig,
    states: list[SourceState],
    *,
    port: int,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the pollcast startup banner to stderr."""
    warnings = list(warnings or [])
    if not states:
        warnings.append("no sources registered; clients will get no data")
    print(
        format_banner(config, states, port=port, load_ms=load_ms, warnings=warnings),
        file=sys.stderr,
    )
