"""Response cache used by the HTTP transport.

The client never mutates cached data on its own; it only applies the
:class:`~connections_wikis.models.CacheDirective` values produced while
handling a response. Any object implementing :class:`ResponseCache` can
be plugged in; :class:`MemoryCache` keeps entries in a process-local dict.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from connections_wikis.models import CacheAction, CacheDirective
from connections_wikis.options import RequestOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedResponse:
    content_type: str | None
    body: Any


class ResponseCache(Protocol):
    def get(self, key: str) -> CachedResponse | None: ...

    def set(self, key: str, value: CachedResponse) -> None: ...

    def delete(self, key: str) -> None: ...


def cache_key(options: RequestOptions) -> str:
    """Key identifying a logical request: URI plus sorted query string."""
    query = "&".join(f"{k}={options.params[k]}" for k in sorted(options.params))
    return f"{options.uri}?{query}" if query else options.uri


class MemoryCache:
    """Dict-backed ResponseCache."""

    def __init__(self) -> None:
        self._entries: dict[str, CachedResponse] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> CachedResponse | None:
        return self._entries.get(key)

    def set(self, key: str, value: CachedResponse) -> None:
        self._entries[key] = value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


def apply_cache_directive(
    cache: ResponseCache | None,
    options: RequestOptions,
    directive: CacheDirective | None,
    content_type: str | None = None,
) -> None:
    """Store or drop the cached copy of the response for ``options``."""
    if cache is None or directive is None:
        return

    key = cache_key(options)
    if directive.action is CacheAction.store:
        payload = directive.payload
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump(mode="json")
        logger.debug("Caching %s", key)
        cache.set(key, CachedResponse(content_type=content_type, body=payload))
    elif directive.action is CacheAction.remove:
        logger.debug("Removing %s from cache", key)
        cache.delete(key)


def cached_headers(entry: CachedResponse) -> Mapping[str, str]:
    return {"content-type": entry.content_type} if entry.content_type else {}
