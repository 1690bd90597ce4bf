"""
Navigation feed stub resolution.

The ``nav/feed`` endpoint answers large wikis with a partial tree: some
items come back with ``type == "stub"`` and without their children. The
children of a stub are fetched with the same request filtered by
``parent=<id>``, and may themselves contain stubs.

Resolution runs level by level over a frontier of stub ids:

1. Fetch every id of the frontier concurrently
2. Keep only the parent's own record and its direct children
3. Non-stub items are collected, stub items form the next frontier
4. Stop when the frontier is empty

Ids that were already expanded are never queued again, so resolution ends
after at most one level per tree level.

:func:`load_navigation_feed` decides whether a feed needs resolving at all
and what the cache should do with the outcome. It returns a
:class:`~connections_wikis.models.CacheDirective` rather than touching the
cache.

Example:
    async def fetch_children(parent_id: str) -> list[NavigationItem]:
        ...

    outcome = await load_navigation_feed(
        feed, from_cache=False, options=options, fetch_children=fetch_children
    )
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass

from connections_wikis.exceptions import ConfigurationError, InvalidIdentifierError
from connections_wikis.models import CacheDirective, NavigationFeed, NavigationItem
from connections_wikis.options import RequestOptions

logger = logging.getLogger(__name__)

FetchChildren = Callable[[str], Awaitable[Sequence[NavigationItem]]]

DELAY_CACHING_REQUIRED = (
    '"delay_caching" must be true when stub items are not allowed '
    "and the navigation feed contains stub items"
)


def split_stubs(
    items: Iterable[NavigationItem],
) -> tuple[list[NavigationItem], list[str]]:
    """Partition items into resolved items and stub ids, keeping order."""
    resolved: list[NavigationItem] = []
    stub_ids: list[str] = []
    for item in items:
        if item.is_stub:
            stub_ids.append(item.id)
        else:
            resolved.append(item)
    return resolved, stub_ids


def related_items(
    items: Iterable[NavigationItem], parent_id: str
) -> list[NavigationItem]:
    """The parent's own record and its direct children; drop the rest."""
    return [item for item in items if item.id == parent_id or item.parent == parent_id]


def dedupe(items: Iterable[NavigationItem]) -> list[NavigationItem]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: dict[str, NavigationItem] = {}
    for item in items:
        seen.setdefault(item.id, item)
    return list(seen.values())


async def _fetch_level(
    frontier: Sequence[str], fetch_children: FetchChildren
) -> list[list[NavigationItem]]:
    """Fetch all frontier ids concurrently; the first failure cancels the rest."""
    tasks = [asyncio.ensure_future(fetch_children(parent_id)) for parent_id in frontier]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
    return [
        related_items(batch, parent_id)
        for parent_id, batch in zip(frontier, results, strict=True)
    ]


async def resolve_stubs(
    stub_ids: Sequence[str], fetch_children: FetchChildren
) -> list[NavigationItem]:
    """Expand stub ids until no stub remains.

    Args:
        stub_ids: Initial frontier
        fetch_children: Coroutine function returning the items filtered by
            ``parent=<id>``

    Returns:
        Every non-stub item found below the initial frontier, once per id.
        Order across siblings is not guaranteed.
    """
    frontier = list(dict.fromkeys(stub_ids))
    expanded: set[str] = set()
    resolved: dict[str, NavigationItem] = {}
    level = 0

    while frontier:
        level += 1
        logger.debug("Expanding %d stub(s) at level %d", len(frontier), level)
        expanded.update(frontier)

        next_frontier: dict[str, None] = {}
        for batch in await _fetch_level(frontier, fetch_children):
            for item in batch:
                if not item.is_stub:
                    resolved.setdefault(item.id, item)
                elif item.id in expanded:
                    logger.warning(
                        "Navigation item %s is still a stub after expansion", item.id
                    )
                else:
                    next_frontier[item.id] = None

        frontier = list(next_frontier)

    return list(resolved.values())


async def expand_navigation_items(
    items: Sequence[NavigationItem],
    fetch_children: FetchChildren,
    page_label: str | None = None,
) -> list[NavigationItem]:
    """Resolve all stubs of a feed into a flat, stub-free item list.

    When ``page_label`` is given, expansion starts from that page only.
    If the service rejects the label as a parent filter
    (:class:`InvalidIdentifierError`), expansion is retried once from every
    top-level stub.

    Args:
        items: Items of the original feed
        fetch_children: Coroutine function returning children of one id
        page_label: Page the caller is interested in, if any

    Returns:
        Resolved items followed by the feed's original non-stub items,
        deduplicated by id
    """
    valid_items, stub_ids = split_stubs(items)
    if not stub_ids:
        return valid_items

    if page_label:
        try:
            resolved = await resolve_stubs([page_label], fetch_children)
        except InvalidIdentifierError as e:
            logger.info(
                "Page label %s is not a valid parent filter (%s), "
                "expanding %d top-level stub(s) instead",
                page_label,
                e,
                len(stub_ids),
            )
            resolved = await resolve_stubs(stub_ids, fetch_children)
    else:
        resolved = await resolve_stubs(stub_ids, fetch_children)

    return dedupe([*resolved, *valid_items])


@dataclass
class NavigationOutcome:
    """Result of :func:`load_navigation_feed`.

    Attributes:
        feed: Feed to return to the caller (None when ``refetch`` is set)
        directive: What to do with the cached copy of the request
        refetch: The cached feed is unusable; reissue the request
            without reading the cache
    """

    feed: NavigationFeed | None
    directive: CacheDirective
    refetch: bool = False


async def load_navigation_feed(
    feed: NavigationFeed,
    *,
    from_cache: bool,
    options: RequestOptions,
    fetch_children: FetchChildren,
    page_label: str | None = None,
) -> NavigationOutcome:
    """Decide how a navigation feed response is completed and cached.

    Args:
        feed: Feed as received from the transport
        from_cache: Whether the transport answered from its cache
        options: Options of the request that produced ``feed``
        fetch_children: Coroutine function returning children of one id
        page_label: Page the caller is interested in, if any

    Returns:
        NavigationOutcome with the final feed and cache directive. A feed
        resolved below ``page_label`` is never stored.

    Raises:
        ConfigurationError: Stubs are present and not allowed while delayed
            caching is off; carries a remove directive for the cache
    """
    if options.stub_type_allowed or not feed.has_stubs:
        if not from_cache and options.delay_caching:
            return NavigationOutcome(feed, CacheDirective.store(feed))
        return NavigationOutcome(feed, CacheDirective.none())

    if from_cache:
        # A cached feed must never contain stubs
        logger.debug("Cached navigation feed contains stubs, refetching")
        return NavigationOutcome(None, CacheDirective.none(), refetch=True)

    if not options.delay_caching:
        logger.debug(DELAY_CACHING_REQUIRED)
        raise ConfigurationError(
            DELAY_CACHING_REQUIRED, cache_directive=CacheDirective.remove()
        )

    items = await expand_navigation_items(feed.items, fetch_children, page_label)
    resolved = NavigationFeed(items=items)
    logger.debug(
        "Resolved navigation feed: %d item(s) from %d stub(s)",
        len(items),
        len(feed.stub_ids()),
    )
    if page_label:
        # Only the page's subtree was expanded; the cache key covers the whole wiki
        return NavigationOutcome(resolved, CacheDirective.none())
    return NavigationOutcome(resolved, CacheDirective.store(resolved))
