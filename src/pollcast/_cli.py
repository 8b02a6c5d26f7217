"""Pollcast CLI — pollcast serve.

Entry point for the ``pollcast`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the pollcast CLI."""
    parser = argparse.ArgumentParser(
        prog="pollcast",
        description="Poll HTTP feeds and push changes to WebSocket clients.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the broadcast server for the sources in pollcast.toml / pollcast.yaml",
    )
    serve_parser.add_argument("root", nargs="?", default=".", help="Directory with the config file")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument(
        "--interval", type=int, default=None, dest="default_interval",
        help="Default poll interval in milliseconds",
    )
    serve_parser.add_argument(
        "--heartbeat", action="store_true", default=None, dest="check_heartbeat",
        help="Ping clients and drop unresponsive ones",
    )
    serve_parser.add_argument(
        "--stats", action="store_true", default=None,
        help="Report connection stats and serve /__pollcast/stats",
    )
    serve_parser.add_argument(
        "--quiet", action="store_false", default=None, dest="logging",
        help="Do not print log lines",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from pollcast import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from pollcast._errors import ConfigurationError, TransportError
    from pollcast.config_loader import load_config, load_sources
    from pollcast.server import BroadcastServer

    root = Path(args.root)
    try:
        config = load_config(
            root,
            host=args.host,
            port=args.port,
            default_interval=args.default_interval,
            check_heartbeat=args.check_heartbeat,
            stats=args.stats,
            logging=args.logging,
        )
        server = BroadcastServer(config)
        server.sources(load_sources(config.root))
    except ConfigurationError as exc:
        print(f"pollcast: configuration error: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        server.run()
    except TransportError as exc:
        print(f"pollcast: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
