"""Source records — what to poll, how often, and how to detect a change.

A ``Source`` is created once at registration and never mutated.  Its
``compare`` strategy is either a plain function ``(previous, current)`` or
an object implementing ``ChangeDetector``.  Only a truthy result means
"unchanged": ``False`` and ``None`` both count as a change.  Strategies get
complete decoded payloads and are responsible for coping with malformed or
missing fields themselves.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pollcast._errors import ConfigurationError
from pollcast.sources.strategies import payloads_equal

if TYPE_CHECKING:
    from pollcast._types import CompareFunc, Payload, RoutePath, SourceType


@runtime_checkable
class ChangeDetector(Protocol):
    """Strategy object deciding whether a freshly fetched payload is new."""

    def unchanged(self, previous: Payload, current: Payload) -> Any: ...


_SOURCE_KEYS = frozenset({"type", "url", "path", "period", "xml", "compare"})


@dataclass(frozen=True, slots=True)
class Source:
    """One externally polled endpoint.

    Attributes:
        type: Unique key; also the default route segment.
        url: Endpoint fetched on every tick.
        compare: Change detection strategy (defaults to payload equality).
        path: Route segment override (``/<path>`` instead of ``/<type>``).
        period: Poll period in milliseconds; ``None`` uses the server default.
        xml: Decode the body as XML instead of JSON.

    """

    type: SourceType
    url: str
    compare: CompareFunc | ChangeDetector = field(default=payloads_equal, compare=False)
    path: str | None = None
    period: int | None = None
    xml: bool = False

    def __post_init__(self) -> None:
        if not self.type:
            msg = "source type must be a non-empty string"
            raise ConfigurationError(msg)
        if not self.url:
            msg = f"source {self.type!r} has no url"
            raise ConfigurationError(msg)
        if self.period is not None and self.period <= 0:
            msg = f"source {self.type!r} period must be positive, got {self.period}"
            raise ConfigurationError(msg)
        if not (callable(self.compare) or isinstance(self.compare, ChangeDetector)):
            msg = f"source {self.type!r} compare must be callable or a ChangeDetector"
            raise ConfigurationError(msg)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Source:
        """Build a Source from a registration record (``dict`` or similar)."""
        unknown = set(data) - _SOURCE_KEYS
        if unknown:
            msg = f"unknown source keys: {', '.join(sorted(unknown))}"
            raise ConfigurationError(msg)
        try:
            return cls(**dict(data))
        except TypeError as exc:
            msg = f"invalid source record {dict(data)!r}: {exc}"
            raise ConfigurationError(msg) from exc

    @property
    def route(self) -> RoutePath:
        """URL path clients connect to for this source."""
        segment = (self.path or self.type).strip("/")
        return f"/{segment}"

    @property
    def payload_format(self) -> str:
        return "xml" if self.xml else "json"

    def period_or(self, default: int) -> int:
        return self.period if self.period is not None else default

    def is_unchanged(self, previous: Payload, current: Payload) -> bool:
        """Apply the compare strategy; only a truthy result means unchanged."""
        detector = self.compare
        if isinstance(detector, ChangeDetector):
            result = detector.unchanged(previous, current)
        else:
            result = detector(previous, current)
        return bool(result)


def coerce_source(entry: Source | Mapping[str, Any]) -> Source:
    """Accept a ``Source`` or a registration mapping."""
    if isinstance(entry, Source):
        return entry
    if isinstance(entry, Mapping):
        return Source.from_mapping(entry)
    msg = f"expected a Source or mapping, got {type(entry).__name__}"
    raise ConfigurationError(msg)
