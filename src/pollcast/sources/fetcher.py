"""Source fetcher — one fetch-and-decode cycle per call.

All sources share one ``httpx.AsyncClient`` built from the server's
``request_options`` (headers, timeout, params, auth, ...), so connections to
the same host are pooled across ticks.  Every network, HTTP-status and
decoding failure surfaces as ``FetchError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from xml.etree.ElementTree import ParseError

import httpx

from pollcast._errors import FetchError
from pollcast.sources.xml import parse_xml

if TYPE_CHECKING:
    from pollcast._types import Payload
    from pollcast.sources.source import Source

DEFAULT_TIMEOUT_S = 10.0


def decode_payload(source: Source, response: httpx.Response) -> Payload:
    """Decode *response* according to the source's payload format.

    Raises:
        FetchError: If the body is not valid JSON / XML.

    """
    try:
        if source.xml:
            return parse_xml(response.text)
        return response.json()
    except (ValueError, ParseError) as exc:
        msg = f"could not decode {source.payload_format} payload: {exc}"
        raise FetchError(source.type, msg) from exc


class SourceFetcher:
    """Performs fetches for every registered source.

    Args:
        request_options: Keyword arguments for ``httpx.AsyncClient``.
        client: Pre-built client (tests pass one with a ``MockTransport``).
            A client passed in is not closed by ``aclose()``.

    """

    def __init__(
        self,
        request_options: Mapping[str, Any] | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._options = dict(request_options or {})
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            options = {"timeout": DEFAULT_TIMEOUT_S, "follow_redirects": True, **self._options}
            self._client = httpx.AsyncClient(**options)
        return self._client

    async def fetch(self, source: Source) -> Payload:
        """Fetch ``source.url`` and return the decoded payload.

        Raises:
            FetchError: On transport errors, non-2xx status, or bad payloads.

        """
        try:
            response = await self.client.get(source.url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(source.type, f"request failed: {exc}") from exc
        return decode_payload(source, response)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
