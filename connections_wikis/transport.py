"""HTTP transport for the Connections Wikis API.

The client talks to the network only through the :class:`Transport`
protocol. :class:`HttpxTransport` is the default implementation built on
``httpx.AsyncClient``; it answers from a :class:`ResponseCache` when one
is configured and the request does not skip it.

Example:
    async with HttpxTransport("https://apps.example.com/wikis/") as transport:
        response = await transport.request(options)
        check_response(response, options.accept)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from connections_wikis import settings
from connections_wikis.cache import (
    CachedResponse,
    ResponseCache,
    cache_key,
    cached_headers,
)
from connections_wikis.exceptions import ContentTypeError, TransportError, status_error
from connections_wikis.options import BasicAuth, BearerAuth, RequestOptions

logger = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """Status, headers and decoded body of one response."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    from_cache: bool = False

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type") or self.headers.get("Content-Type") or ""


class Transport(Protocol):
    async def request(self, options: RequestOptions) -> TransportResponse: ...

    async def aclose(self) -> None: ...


def check_response(response: TransportResponse, accept: str | None) -> None:
    """Validate status code and content type of a response.

    Args:
        response: Response to validate
        accept: Expected content type prefix, or None to skip the check

    Raises:
        ResponseStatusError: Status is not 200 (InvalidIdentifierError when
            the service rejected a label as an invalid identifier)
        ContentTypeError: Status is 200 but the content type does not match
    """
    if response.status_code != 200:
        raise status_error(response.status_code, response.body)

    if accept and not response.content_type.startswith(accept):
        raise ContentTypeError(
            f"received response with unexpected content-type {response.content_type}"
        )


class HttpxTransport:
    """Async transport backed by ``httpx.AsyncClient``.

    A 200 response is written to the cache straight away unless the
    request asks for delayed caching or skips the cache write; delayed
    writes are left to the caller's cache directive.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        cache: ResponseCache | None = None,
        user_agent: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Wikis root URL (e.g., "https://apps.example.com/wikis/")
            timeout: Request timeout in seconds (default from settings)
            cache: Optional response cache
            user_agent: User-Agent header (default from settings)
            client: Preconfigured httpx client, mainly for tests
        """
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout if timeout is not None else settings.get_timeout()
        self.cache = cache
        self.user_agent = user_agent or settings.get_user_agent()
        self._client = client

    async def __aenter__(self) -> HttpxTransport:
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            )
        return self._client

    async def request(self, options: RequestOptions) -> TransportResponse:
        key = cache_key(options)
        if self.cache is not None and not options.skip_cache:
            entry = self.cache.get(key)
            if entry is not None:
                logger.debug("Cache hit for %s", key)
                return TransportResponse(
                    status_code=200,
                    headers=cached_headers(entry),
                    body=entry.body,
                    from_cache=True,
                )

        client = self._get_client()
        headers = dict(options.headers)
        auth = None
        if isinstance(options.auth, BearerAuth):
            headers["Authorization"] = f"Bearer {options.auth.token}"
        elif isinstance(options.auth, BasicAuth):
            auth = httpx.BasicAuth(options.auth.username, options.auth.password)

        logger.debug("GET %s %s", options.uri, dict(options.params))
        try:
            response = await client.get(
                options.uri,
                params=dict(options.params),
                headers=headers,
                auth=auth,
            )
        except httpx.RequestError as e:
            raise TransportError(f"Request to {options.uri} failed: {e}") from e

        result = TransportResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=_decode_body(response, options.json),
        )

        if (
            self.cache is not None
            and result.status_code == 200
            and not options.delay_caching
            and not options.skip_cache_store
        ):
            self.cache.set(key, CachedResponse(result.content_type, result.body))

        return result

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _decode_body(response: httpx.Response, as_json: bool) -> Any:
    if as_json and response.status_code == 200:
        try:
            return response.json()
        except ValueError:
            logger.debug("Expected JSON from %s, keeping text", response.url)
    return response.text
