"""Request option construction for Connections Wikis endpoints.

Each public client method is backed by an :class:`Endpoint` describing its
URL template, the query-string keys the service accepts, the path
parameters it requires and the content type it answers with.
:func:`build_request_options` turns a caller query plus a
:class:`RequestConfig` into the :class:`RequestOptions` handed to the
transport.

Example:
    options = build_request_options(
        ENDPOINTS["wiki_page"],
        {"wikiLabel": "w1", "pageLabel": "p1", "acls": "true", "junk": 1},
        RequestConfig(auth=BearerAuth("token")),
    )
    options.uri     # "oauth/api/wiki/w1/page/p1/entry"
    options.params  # {"acls": "true"}
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from connections_wikis.exceptions import ValidationError

ATOM_CONTENT_TYPE = "application/atom+xml"
JSON_CONTENT_TYPE = "application/json"

# Query keys accepted by the feed endpoints (wikis and pages)
FEED_PARAMS = (
    "acls",
    "includeTags",
    "page",
    "ps",
    "role",
    "sI",
    "sortBy",
    "sortOrder",
)
# sO -> sort order, ps -> page size
ARTIFACT_PARAMS = ("sO", "ps")


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str


@dataclass(frozen=True)
class BearerAuth:
    """OAuth bearer token; routes requests through the ``oauth`` path."""

    token: str


Auth = BasicAuth | BearerAuth


def auth_path(auth: Auth | None) -> str:
    """URL path segment selecting the service's authentication realm."""
    if isinstance(auth, BearerAuth):
        return "oauth"
    return "basic"


@dataclass(frozen=True)
class Endpoint:
    """Static description of one API call."""

    name: str
    path: str
    query_params: tuple[str, ...] = ()
    required: tuple[str, ...] = ()
    accept: str = ATOM_CONTENT_TYPE
    fixed_params: Mapping[str, str] = field(default_factory=dict)
    json: bool = False


ENDPOINTS: dict[str, Endpoint] = {
    endpoint.name: endpoint
    for endpoint in (
        Endpoint("wikis_feed", "api/mywikis/feed", FEED_PARAMS),
        Endpoint(
            "pages_feed",
            "api/wiki/{wikiLabel}/feed",
            FEED_PARAMS,
            required=("wikiLabel",),
        ),
        Endpoint(
            "wiki_page",
            "api/wiki/{wikiLabel}/page/{pageLabel}/entry",
            ("acls", "includeTags"),
            required=("wikiLabel", "pageLabel"),
        ),
        Endpoint(
            "page_comments",
            "api/wiki/{wikiLabel}/page/{pageLabel}/feed",
            ARTIFACT_PARAMS,
            required=("wikiLabel", "pageLabel"),
        ),
        Endpoint(
            "page_versions",
            "api/wiki/{wikiLabel}/page/{pageLabel}/feed",
            ARTIFACT_PARAMS,
            required=("wikiLabel", "pageLabel"),
            fixed_params={"category": "version"},
        ),
        Endpoint(
            "page_artifacts",
            "api/wiki/{wikiLabel}/page/{pageLabel}/feed",
            (*ARTIFACT_PARAMS, "category"),
            required=("wikiLabel", "pageLabel"),
        ),
        Endpoint(
            "page_version_details",
            "api/wiki/{wikiLabel}/page/{pageLabel}/version/{versionLabel}/entry",
            ARTIFACT_PARAMS,
            required=("wikiLabel", "pageLabel", "versionLabel"),
        ),
        Endpoint(
            "navigation_feed",
            "api/wiki/{wikiLabel}/nav/feed",
            ("parent",),
            required=("wikiLabel",),
            accept=JSON_CONTENT_TYPE,
            json=True,
        ),
    )
}


@dataclass(frozen=True)
class RequestConfig:
    """Caller-supplied request behaviour.

    ``None`` means "inherit"; :meth:`merged` layers a per-call config over
    the client defaults.

    Attributes:
        headers: Extra request headers
        auth: Basic credentials or an OAuth bearer token
        skip_cache: Do not answer this request from the cache
        delay_caching: Defer the cache write until the result is complete
        stub_type_allowed: Return navigation stubs without resolving them
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    auth: Auth | None = None
    skip_cache: bool | None = None
    delay_caching: bool | None = None
    stub_type_allowed: bool | None = None

    def merged(self, override: RequestConfig | None) -> RequestConfig:
        if override is None:
            return self
        return RequestConfig(
            headers={**self.headers, **override.headers},
            auth=override.auth if override.auth is not None else self.auth,
            skip_cache=_pick(override.skip_cache, self.skip_cache),
            delay_caching=_pick(override.delay_caching, self.delay_caching),
            stub_type_allowed=_pick(
                override.stub_type_allowed, self.stub_type_allowed
            ),
        )


def _pick(value: bool | None, fallback: bool | None) -> bool | None:
    return fallback if value is None else value


@dataclass(frozen=True)
class RequestOptions:
    """Everything the transport needs to execute one request."""

    endpoint: str
    uri: str
    params: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    auth: Auth | None = None
    accept: str | None = ATOM_CONTENT_TYPE
    json: bool = False
    skip_cache: bool = False
    skip_cache_store: bool = False
    delay_caching: bool = False
    stub_type_allowed: bool = False

    def with_params(self, **params: Any) -> RequestOptions:
        return dataclasses.replace(self, params={**self.params, **params})

    def bypass_cache(self, store: bool = False) -> RequestOptions:
        """Skip the cache lookup, and with ``store`` also the cache write."""
        return dataclasses.replace(
            self,
            skip_cache=True,
            skip_cache_store=store or self.skip_cache_store,
        )


def pick_params(query: Mapping[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    """Keep whitelisted, non-None query keys; everything else is dropped."""
    return {
        key: query[key] for key in allowed if key in query and query[key] is not None
    }


def require(query: Mapping[str, Any], names: tuple[str, ...], endpoint: str) -> None:
    """Raise ValidationError for the first missing path parameter."""
    for name in names:
        if not query.get(name):
            raise ValidationError(f"{name} must be defined in [{endpoint}] request")


def build_request_options(
    endpoint: Endpoint,
    query: Mapping[str, Any] | None,
    config: RequestConfig | None = None,
) -> RequestOptions:
    """Build transport options for one endpoint call.

    Args:
        endpoint: Endpoint description
        query: Caller parameters (path labels and query-string keys)
        config: Merged caller/client request config

    Returns:
        RequestOptions with a relative ``uri``

    Raises:
        ValidationError: If a required path parameter is missing
    """
    query = query or {}
    config = config or RequestConfig()
    require(query, endpoint.required, endpoint.name)

    params = pick_params(query, endpoint.query_params)
    params.update(endpoint.fixed_params)

    path = endpoint.path.format(**{name: query[name] for name in endpoint.required})

    return RequestOptions(
        endpoint=endpoint.name,
        uri=f"{auth_path(config.auth)}/{path}",
        params=params,
        headers={**config.headers, "accept": endpoint.accept},
        auth=config.auth,
        accept=endpoint.accept,
        json=endpoint.json,
        skip_cache=bool(config.skip_cache),
        delay_caching=bool(config.delay_caching),
        stub_type_allowed=bool(config.stub_type_allowed),
    )
