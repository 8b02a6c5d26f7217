"""Sources — polled endpoints, their fetcher, and change detection strategies."""

from pollcast.sources.fetcher import SourceFetcher
from pollcast.sources.source import ChangeDetector, Source, coerce_source
from pollcast.sources.strategies import (
    RssLatestItem,
    first_item_field,
    payloads_equal,
    strategy_from_name,
)
from pollcast.sources.xml import parse_xml

__all__ = [
    "ChangeDetector",
    "RssLatestItem",
    "Source",
    "SourceFetcher",
    "coerce_source",
    "first_item_field",
    "parse_xml",
    "payloads_equal",
    "strategy_from_name",
]
