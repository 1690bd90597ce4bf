"""Error types raised by the Connections Wikis client.

Every error carries an ``http_status`` so callers that proxy the service
can forward a meaningful status code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from connections_wikis.models import CacheDirective

# Message fragment the service returns when a non-UUID label is used
# as the ``parent`` filter of a navigation feed request.
INVALID_IDENTIFIER_MARKER = "Invalid UUID string"


class WikisError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class ValidationError(WikisError):
    """A required path parameter was not supplied; no request was sent."""

    def __init__(self, message: str) -> None:
        super().__init__(message, http_status=404)


class TransportError(WikisError):
    """The HTTP transport failed before a response was received."""


class ResponseStatusError(WikisError):
    """The service answered with a status other than 200."""


class InvalidIdentifierError(ResponseStatusError):
    """The service rejected a label because it is not a valid identifier."""


class ResponseFormatError(WikisError):
    """The service answered 200 with a body that does not have the expected shape."""

    def __init__(self, message: str) -> None:
        super().__init__(message, http_status=502)


class ContentTypeError(WikisError):
    """The service answered 200 with an unexpected content type."""

    def __init__(self, message: str) -> None:
        super().__init__(message, http_status=401)


class ConfigurationError(WikisError):
    """Request options cannot produce a valid result.

    Raised when a navigation feed contains stub items, stubs are not
    allowed and delayed caching is off. ``cache_directive`` tells the
    caller how to undo any cache write the transport already made.
    """

    def __init__(
        self, message: str, cache_directive: CacheDirective | None = None
    ) -> None:
        super().__init__(message, http_status=400)
        self.cache_directive = cache_directive


def status_error(status_code: int, body: object = None) -> ResponseStatusError:
    """Build the error for a non-200 response.

    The body is used as the message when it is a non-empty string.
    Bodies reporting an invalid identifier are classified as
    :class:`InvalidIdentifierError`.
    """
    if isinstance(body, str) and body:
        message = body
    else:
        message = "received response with unexpected status code"

    if INVALID_IDENTIFIER_MARKER in message:
        return InvalidIdentifierError(message, http_status=status_code)
    return ResponseStatusError(message, http_status=status_code)
