"""Async client for the IBM Connections Wikis REST API.

Example:
    from connections_wikis import BasicAuth, WikisClient

    async with WikisClient(base_url, auth=BasicAuth(user, password)) as client:
        feed = await client.navigation_feed({"wikiLabel": wiki_label})
"""

from importlib.metadata import PackageNotFoundError, version

from .cache import MemoryCache, ResponseCache
from .client import WikisClient
from .exceptions import (
    ConfigurationError,
    ContentTypeError,
    InvalidIdentifierError,
    ResponseFormatError,
    ResponseStatusError,
    TransportError,
    ValidationError,
    WikisError,
)
from .models import (
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
from .options import BasicAuth, BearerAuth, RequestConfig
from .transport import HttpxTransport, Transport, TransportResponse

try:
    __version__ = version("connections-wikis")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    # Client
    "WikisClient",
    "RequestConfig",
    "BasicAuth",
    "BearerAuth",
    # Transport and cache
    "HttpxTransport",
    "Transport",
    "TransportResponse",
    "MemoryCache",
    "ResponseCache",
    "CacheDirective",
    # Models
    "NavigationFeed",
    "NavigationItem",
    "PageComment",
    "PageSummary",
    "PageVersion",
    "VersionDetails",
    "WikiPage",
    "WikiSummary",
    # Errors
    "WikisError",
    "ValidationError",
    "TransportError",
    "ResponseStatusError",
    "ResponseFormatError",
    "InvalidIdentifierError",
    "ContentTypeError",
    "ConfigurationError",
]
