"""Async client for the IBM Connections Wikis REST API.

Each public coroutine maps to one API call: it builds request options for
its endpoint, sends them through the transport, validates the response
and parses the body into models.

Example:
    from connections_wikis import BearerAuth, WikisClient

    async with WikisClient(
        "https://apps.example.com/wikis/", auth=BearerAuth(token)
    ) as client:
        page = await client.wiki_page({"wikiLabel": wiki, "pageLabel": page})
        html = await client.page_media({"wikiLabel": wiki, "pageLabel": page})
        nav = await client.navigation_feed({"wikiLabel": wiki})
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from connections_wikis import settings
from connections_wikis.cache import ResponseCache, apply_cache_directive
from connections_wikis.exceptions import (
    ConfigurationError,
    ResponseFormatError,
    ValidationError,
    WikisError,
)
from connections_wikis.models import (
    CacheDirective,
    NavigationFeed,
    NavigationItem,
    PageComment,
    PageSummary,
    PageVersion,
    VersionDetails,
    WikiPage,
    WikiSummary,
)
from connections_wikis.navigation import load_navigation_feed
from connections_wikis.options import (
    ENDPOINTS,
    Auth,
    BasicAuth,
    BearerAuth,
    RequestConfig,
    RequestOptions,
    build_request_options,
)
from connections_wikis.parsers import (
    parse_media,
    parse_page_comments,
    parse_page_versions,
    parse_pages_feed,
    parse_version_details,
    parse_wiki_page,
    parse_wikis_feed,
)
from connections_wikis.transport import HttpxTransport, Transport, check_response

logger = logging.getLogger(__name__)

T = TypeVar("T")

Query = Mapping[str, Any]


class WikisClient:
    """REST API client for IBM Connections Wikis.

    Methods take a ``query`` mapping using the service's own parameter
    names (``wikiLabel``, ``pageLabel``, ``versionLabel``, ``ps`` ...) and
    an optional per-call :class:`RequestConfig` layered over the client
    defaults.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        auth: Auth | None = None,
        timeout: float | None = None,
        transport: Transport | None = None,
        cache: ResponseCache | None = None,
        defaults: RequestConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Wikis root URL (default from settings)
            auth: Basic credentials or OAuth bearer token
            timeout: Request timeout in seconds (default from settings)
            transport: Custom transport; by default an HttpxTransport
            cache: Response cache shared with the default transport
            defaults: Request config applied to every call
        """
        base_url = base_url or settings.get_base_url()
        if not base_url and transport is None:
            raise ValueError(
                "base_url is required (or set CONNECTIONS_WIKIS_BASE_URL)"
            )
        self.base_url = (base_url or "").rstrip("/")
        self.cache = cache
        self.transport: Transport = transport or HttpxTransport(
            self.base_url, timeout=timeout, cache=cache
        )
        self.defaults = RequestConfig(
            delay_caching=settings.get_delay_caching(),
            stub_type_allowed=settings.get_stub_type_allowed(),
        ).merged(defaults)
        if auth is None:
            auth = _auth_from_settings()
        if auth is not None:
            self.defaults = self.defaults.merged(RequestConfig(auth=auth))

    async def __aenter__(self) -> WikisClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.aclose()

    def _options(
        self, endpoint: str, query: Query | None, config: RequestConfig | None
    ) -> RequestOptions:
        return build_request_options(
            ENDPOINTS[endpoint], query, self.defaults.merged(config)
        )

    async def _atom_request(
        self, options: RequestOptions, parser: Callable[[Any], T]
    ) -> T:
        response = await self.transport.request(options)
        check_response(response, options.accept)
        if options.delay_caching and not response.from_cache:
            apply_cache_directive(
                self.cache,
                options,
                CacheDirective.store(response.body),
                response.content_type,
            )
        return parser(response.body)

    # ------------------------------------------------------------------
    # Feeds and entries
    # ------------------------------------------------------------------

    async def wikis_feed(
        self, query: Query | None = None, config: RequestConfig | None = None
    ) -> list[WikiSummary]:
        """Wikis the authenticated user belongs to."""
        options = self._options("wikis_feed", query, config)
        return await self._atom_request(options, parse_wikis_feed)

    async def pages_feed(
        self, query: Query, config: RequestConfig | None = None
    ) -> list[PageSummary]:
        """Pages of one wiki. Requires ``wikiLabel``."""
        options = self._options("pages_feed", query, config)
        return await self._atom_request(options, parse_pages_feed)

    async def wiki_page(
        self, query: Query, config: RequestConfig | None = None
    ) -> WikiPage | None:
        """Page entry. Requires ``wikiLabel`` and ``pageLabel``."""
        options = self._options("wiki_page", query, config)
        return await self._atom_request(options, parse_wiki_page)

    async def page_comments(
        self, query: Query, config: RequestConfig | None = None
    ) -> list[PageComment]:
        options = self._options("page_comments", query, config)
        return await self._atom_request(options, parse_page_comments)

    async def page_versions(
        self, query: Query, config: RequestConfig | None = None
    ) -> list[PageVersion]:
        options = self._options("page_versions", query, config)
        return await self._atom_request(options, parse_page_versions)

    async def page_artifacts(
        self, query: Query, config: RequestConfig | None = None
    ) -> list[PageVersion] | list[PageComment]:
        """Page feed filtered by ``category``.

        ``category="version"`` yields versions, anything else comments.
        """
        options = self._options("page_artifacts", query, config)
        if query.get("category") == "version":
            return await self._atom_request(options, parse_page_versions)
        return await self._atom_request(options, parse_page_comments)

    async def page_version_details(
        self, query: Query, config: RequestConfig | None = None
    ) -> VersionDetails | None:
        """Single page version. Requires ``versionLabel`` as well."""
        options = self._options("page_version_details", query, config)
        return await self._atom_request(options, parse_version_details)

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def _media_options(
        self, content_url: str | None, config: RequestConfig
    ) -> RequestOptions:
        if not content_url:
            raise ValidationError("entry has no media content to load")
        # Media is always served from the basic realm
        uri = content_url.replace(self.base_url, "", 1).lstrip("/")
        return RequestOptions(
            endpoint="media",
            uri=uri.replace("oauth", "basic", 1),
            headers=dict(config.headers),
            auth=config.auth,
            accept=None,
            skip_cache=bool(config.skip_cache),
            delay_caching=bool(config.delay_caching),
        )

    async def page_media(
        self, query: Query, config: RequestConfig | None = None
    ) -> str:
        """HTML content of the current page version."""
        page = await self.wiki_page(query, config)
        options = self._media_options(
            page.content if page else None, self.defaults.merged(config)
        )
        return await self._atom_request(options, parse_media)

    async def version_media(
        self, query: Query, config: RequestConfig | None = None
    ) -> str:
        """HTML content of one page version."""
        version = await self.page_version_details(query, config)
        options = self._media_options(
            version.content if version else None, self.defaults.merged(config)
        )
        return await self._atom_request(options, parse_media)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def _fetch_navigation_children(
        self, options: RequestOptions, parent_id: str
    ) -> list[NavigationItem]:
        child_options = options.with_params(parent=parent_id).bypass_cache(store=True)
        response = await self.transport.request(child_options)
        check_response(response, child_options.accept)
        return _navigation_feed(response.body).items

    async def navigation_feed(
        self, query: Query, config: RequestConfig | None = None
    ) -> NavigationFeed:
        """Navigation tree of a wiki as a flat item list.

        Unless stub items are allowed, every stub is resolved with
        follow-up requests before the feed is returned and cached.
        A ``pageLabel`` in ``query`` narrows resolution to that page.

        Raises:
            ConfigurationError: Stubs must be resolved but delayed caching
                is off
        """
        options = self._options("navigation_feed", query, config)
        page_label = query.get("pageLabel")

        async def fetch_children(parent_id: str) -> list[NavigationItem]:
            return await self._fetch_navigation_children(options, parent_id)

        while True:
            response = await self.transport.request(options)
            check_response(response, options.accept)

            try:
                outcome = await load_navigation_feed(
                    _navigation_feed(response.body),
                    from_cache=response.from_cache,
                    options=options,
                    fetch_children=fetch_children,
                    page_label=page_label,
                )
            except ConfigurationError as e:
                apply_cache_directive(self.cache, options, e.cache_directive)
                raise

            if outcome.refetch:
                if options.skip_cache:
                    raise WikisError(
                        "transport answered from cache although the cache was skipped"
                    )
                options = options.bypass_cache()
                continue

            apply_cache_directive(
                self.cache, options, outcome.directive, response.content_type
            )
            return outcome.feed


def _auth_from_settings() -> Auth | None:
    credentials = settings.get_credentials()
    if "token" in credentials:
        return BearerAuth(credentials["token"])
    if credentials:
        return BasicAuth(credentials["username"], credentials["password"])
    return None


def _navigation_feed(body: Any) -> NavigationFeed:
    # Older cache entries hold the bare item list
    if isinstance(body, list):
        body = {"items": body}
    try:
        return NavigationFeed.model_validate(body or {})
    except PydanticValidationError as e:
        raise ResponseFormatError(
            f"received malformed navigation feed: {e.error_count()} error(s)"
        ) from e
