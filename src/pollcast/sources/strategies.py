"""Ready-made change detection strategies.

``payloads_equal`` is the default.  ``first_item_field`` suits JSON feeds
whose newest entry comes first; ``RssLatestItem`` suits RSS documents
decoded by ``pollcast.sources.xml.parse_xml``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pollcast._errors import ConfigurationError

if TYPE_CHECKING:
    from pollcast._types import CompareFunc, Payload


def payloads_equal(previous: Payload, current: Payload) -> bool:
    """Unchanged when the decoded payloads compare equal."""
    return previous == current


def first_item_field(field: str) -> CompareFunc:
    """Unchanged when the first list item's *field* is the same in both payloads.

    ``first_item_field("pubDate")`` treats ``[{"pubDate": "t1"}, ...]`` as
    unchanged until a payload arrives whose first entry has another
    ``pubDate``.  Empty or non-list payloads raise; the poller logs that and
    skips the cycle.
    """

    def compare(previous: Payload, current: Payload) -> bool:
        return previous[0][field] == current[0][field]

    compare.__name__ = f"first_item_{field}"
    return compare


def _rss_items(payload: Payload) -> list[Any]:
    try:
        return payload["rss"]["channel"][0].get("item") or []
    except (KeyError, IndexError, TypeError, AttributeError):
        return []


def _first_text(node: Any, key: str) -> Any:
    value = node.get(key) if isinstance(node, dict) else None
    if isinstance(value, list):
        return value[0] if value else None
    return value


class RssLatestItem:
    """Compare RSS feeds by item count and the newest item's ``pubDate``.

    - previous had items, current has none or a different count: changed
    - both have the same number of items: unchanged iff the first ``pubDate``
      matches
    - previous had no items: unchanged iff current has none either
    """

    __slots__ = ("field",)

    def __init__(self, field: str = "pubDate") -> None:
        self.field = field

    def unchanged(self, previous: Payload, current: Payload) -> bool:
        old_items = _rss_items(previous)
        new_items = _rss_items(current)
        if old_items:
            if not new_items or len(new_items) != len(old_items):
                return False
            return _first_text(old_items[0], self.field) == _first_text(new_items[0], self.field)
        return not new_items

    def __repr__(self) -> str:
        return f"RssLatestItem({self.field!r})"


def strategy_from_name(name: str) -> CompareFunc | RssLatestItem:
    """Resolve a strategy name used in config files.

    Accepted names: ``equal``, ``rss-latest``, ``rss-latest:<field>``,
    ``first-item:<field>``.

    Raises:
        ConfigurationError: For any other name.

    """
    kind, _, arg = name.partition(":")
    if kind == "equal" and not arg:
        return payloads_equal
    if kind == "rss-latest":
        return RssLatestItem(arg or "pubDate")
    if kind == "first-item" and arg:
        return first_item_field(arg)
    msg = f"unknown compare strategy {name!r}"
    raise ConfigurationError(msg)
