"""Tests for pollcast.sources — source records and compare strategies."""

from __future__ import annotations

import pytest

from pollcast._errors import ConfigurationError
from pollcast.sources import (
    ChangeDetector,
    RssLatestItem,
    Source,
    coerce_source,
    first_item_field,
    payloads_equal,
    strategy_from_name,
)


def _rss(*dates: str) -> dict:
    items = [{"title": [f"item {d}"], "pubDate": [d]} for d in dates]
    channel: dict = {"title": ["feed"]}
    if items:
        channel["item"] = items
    return {"rss": {"$": {"version": "2.0"}, "channel": [channel]}}


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------


class TestSource:
    """Construction, validation and derived values."""

    def test_defaults(self) -> None:
        s = Source(type="news", url="http://x/news.json")
        assert s.compare is payloads_equal
        assert s.route == "/news"
        assert s.payload_format == "json"
        assert s.period_or(2000) == 2000

    def test_path_override(self) -> None:
        s = Source(type="news", url="http://x", path="/feeds/news/")
        assert s.route == "/feeds/news"

    def test_period_override(self) -> None:
        assert Source(type="a", url="http://x", period=500).period_or(2000) == 500

    def test_xml_format(self) -> None:
        assert Source(type="a", url="http://x", xml=True).payload_format == "xml"

    def test_frozen(self) -> None:
        s = Source(type="a", url="http://x")
        with pytest.raises(AttributeError):
            s.url = "http://y"  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"type": "", "url": "http://x"}, "non-empty"),
            ({"type": "a", "url": ""}, "no url"),
            ({"type": "a", "url": "http://x", "period": 0}, "positive"),
            ({"type": "a", "url": "http://x", "compare": "equal"}, "callable"),
        ],
    )
    def test_invalid(self, kwargs: dict, match: str) -> None:
        with pytest.raises(ConfigurationError, match=match):
            Source(**kwargs)

    def test_from_mapping_rejects_unknown_keys(self) -> None:
        with pytest.raises(ConfigurationError, match="unknown source keys: interval"):
            Source.from_mapping({"type": "a", "url": "http://x", "interval": 5})

    def test_from_mapping_missing_url(self) -> None:
        with pytest.raises(ConfigurationError, match="invalid source record"):
            Source.from_mapping({"type": "a"})

    def test_coerce(self) -> None:
        s = Source(type="a", url="http://x")
        assert coerce_source(s) is s
        assert coerce_source({"type": "a", "url": "http://x"}) == s
        with pytest.raises(ConfigurationError, match="expected a Source or mapping"):
            coerce_source(["a", "http://x"])  # type: ignore[arg-type]


class TestIsUnchanged:
    """Only a truthy compare result means unchanged."""

    @pytest.mark.parametrize(
        ("result", "expected"),
        [(True, True), (1, True), ("yes", True), (False, False), (None, False), (0, False)],
    )
    def test_truthiness(self, result: object, expected: bool) -> None:
        s = Source(type="a", url="http://x", compare=lambda p, c: result)
        assert s.is_unchanged({}, {}) is expected

    def test_change_detector_object(self) -> None:
        class SameLength:
            def unchanged(self, previous, current):
                return len(previous) == len(current)

        detector = SameLength()
        assert isinstance(detector, ChangeDetector)
        s = Source(type="a", url="http://x", compare=detector)
        assert s.is_unchanged([1], [2])
        assert not s.is_unchanged([1], [1, 2])

    def test_compare_errors_propagate(self) -> None:
        s = Source(type="a", url="http://x", compare=first_item_field("id"))
        with pytest.raises(IndexError):
            s.is_unchanged([], [{"id": 1}])


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class TestFirstItemField:
    def test_same_field_unchanged(self) -> None:
        cmp = first_item_field("pubDate")
        assert cmp([{"pubDate": "t1", "x": 1}], [{"pubDate": "t1", "x": 2}])

    def test_different_field_changed(self) -> None:
        cmp = first_item_field("pubDate")
        assert not cmp([{"pubDate": "t1"}], [{"pubDate": "t2"}])

    def test_name(self) -> None:
        assert first_item_field("id").__name__ == "first_item_id"


class TestRssLatestItem:
    """Item count plus newest pubDate."""

    def test_same_items_unchanged(self) -> None:
        assert RssLatestItem().unchanged(_rss("d1", "d0"), _rss("d1", "d0"))

    def test_new_first_date_changed(self) -> None:
        assert not RssLatestItem().unchanged(_rss("d1", "d0"), _rss("d2", "d0"))

    def test_count_change_is_changed(self) -> None:
        assert not RssLatestItem().unchanged(_rss("d1"), _rss("d1", "d0"))

    def test_items_disappearing_is_changed(self) -> None:
        assert not RssLatestItem().unchanged(_rss("d1"), _rss())

    def test_both_empty_unchanged(self) -> None:
        assert RssLatestItem().unchanged(_rss(), _rss())

    def test_items_appearing_is_changed(self) -> None:
        assert not RssLatestItem().unchanged(_rss(), _rss("d1"))

    def test_malformed_payload_counts_as_empty(self) -> None:
        assert RssLatestItem().unchanged({"html": {}}, None)

    def test_custom_field(self) -> None:
        old = {"rss": {"channel": [{"item": [{"guid": ["1"]}]}]}}
        new = {"rss": {"channel": [{"item": [{"guid": ["2"]}]}]}}
        assert not RssLatestItem("guid").unchanged(old, new)
        assert repr(RssLatestItem("guid")) == "RssLatestItem('guid')"


class TestStrategyFromName:
    def test_equal(self) -> None:
        assert strategy_from_name("equal") is payloads_equal

    def test_rss_latest(self) -> None:
        assert strategy_from_name("rss-latest").field == "pubDate"
        assert strategy_from_name("rss-latest:guid").field == "guid"

    def test_first_item(self) -> None:
        cmp = strategy_from_name("first-item:pubDate")
        assert cmp([{"pubDate": 1}], [{"pubDate": 1}])

    @pytest.mark.parametrize("name", ["first-item", "sha256", "equal:x", ""])
    def test_unknown(self, name: str) -> None:
        with pytest.raises(ConfigurationError, match="unknown compare strategy"):
            strategy_from_name(name)
