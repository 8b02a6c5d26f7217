"""Shared type definitions for pollcast."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Unique key of a registered source (e.g., "rss-example")
SourceType: TypeAlias = str

# Decoded body of a source response (JSON value or XML dict tree)
Payload: TypeAlias = Any

# Connection identifier assigned by the transport
ClientID: TypeAlias = str

# Route URL path (e.g., "/rss-example")
RoutePath: TypeAlias = str

# Period of a shared timer, in milliseconds
PeriodMs: TypeAlias = int

# Plain-function change detector: truthy result means "unchanged"
CompareFunc: TypeAlias = Callable[[Payload, Payload], Any]
