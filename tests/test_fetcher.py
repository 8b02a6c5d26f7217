"""Tests for pollcast.sources.fetcher — HTTP fetch and decode."""

from __future__ import annotations

import httpx
import pytest

from pollcast._errors import FetchError
from pollcast.sources.fetcher import SourceFetcher
from pollcast.sources.source import Source

RSS = '<rss version="2.0"><channel><item><pubDate>d1</pubDate></item></channel></rss>'


def _handler(request: httpx.Request) -> httpx.Response:
    match request.url.path:
        case "/json":
            return httpx.Response(200, json=[{"pubDate": "t1"}])
        case "/rss":
            return httpx.Response(200, text=RSS, headers={"Content-Type": "application/rss+xml"})
        case "/broken-json":
            return httpx.Response(200, text="{not json")
        case "/broken-xml":
            return httpx.Response(200, text="<rss><channel>")
        case "/headers":
            return httpx.Response(200, json={"token": request.headers.get("x-token")})
        case _:
            return httpx.Response(404, text="not found")


def _fetcher(**client_kwargs) -> SourceFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler), **client_kwargs)
    return SourceFetcher(client=client)


class TestFetch:
    """Successful decoding."""

    @pytest.mark.asyncio
    async def test_json(self) -> None:
        fetcher = _fetcher()
        payload = await fetcher.fetch(Source(type="j", url="http://feeds.test/json"))
        assert payload == [{"pubDate": "t1"}]

    @pytest.mark.asyncio
    async def test_xml(self) -> None:
        fetcher = _fetcher()
        payload = await fetcher.fetch(Source(type="r", url="http://feeds.test/rss", xml=True))
        assert payload["rss"]["channel"][0]["item"][0]["pubDate"] == ["d1"]

    @pytest.mark.asyncio
    async def test_client_options_applied(self) -> None:
        fetcher = _fetcher(headers={"X-Token": "abc"})
        payload = await fetcher.fetch(Source(type="h", url="http://feeds.test/headers"))
        assert payload == {"token": "abc"}


class TestFetchErrors:
    """Every failure surfaces as FetchError."""

    @pytest.mark.asyncio
    async def test_http_status(self) -> None:
        with pytest.raises(FetchError, match="request failed") as exc_info:
            await _fetcher().fetch(Source(type="missing", url="http://feeds.test/nope"))
        assert exc_info.value.source_type == "missing"

    @pytest.mark.asyncio
    async def test_bad_json(self) -> None:
        with pytest.raises(FetchError, match="could not decode json"):
            await _fetcher().fetch(Source(type="j", url="http://feeds.test/broken-json"))

    @pytest.mark.asyncio
    async def test_bad_xml(self) -> None:
        with pytest.raises(FetchError, match="could not decode xml"):
            await _fetcher().fetch(Source(type="r", url="http://feeds.test/broken-xml", xml=True))

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = SourceFetcher(client=httpx.AsyncClient(transport=httpx.MockTransport(refuse)))
        with pytest.raises(FetchError, match="connection refused"):
            await fetcher.fetch(Source(type="j", url="http://feeds.test/json"))


class TestClientLifecycle:
    @pytest.mark.asyncio
    async def test_owned_client_built_lazily_and_closed(self) -> None:
        fetcher = SourceFetcher({"headers": {"User-Agent": "pollcast-test"}})
        client = fetcher.client
        assert client.headers["User-Agent"] == "pollcast-test"
        assert client.follow_redirects is True
        assert fetcher.client is client

        await fetcher.aclose()
        assert client.is_closed

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
        fetcher = SourceFetcher(client=client)
        await fetcher.aclose()
        assert not client.is_closed
        await client.aclose()
