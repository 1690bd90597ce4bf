"""Tests for navigation feed stub resolution and the feed orchestrator."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from connections_wikis.exceptions import (
    ConfigurationError,
    InvalidIdentifierError,
    ResponseStatusError,
)
from connections_wikis.models import CacheAction, NavigationFeed, NavigationItem
from connections_wikis.navigation import (
    dedupe,
    expand_navigation_items,
    load_navigation_feed,
    related_items,
    resolve_stubs,
    split_stubs,
)
from connections_wikis.options import RequestOptions
from tests.conftest import nav_item


def items(*raw: dict) -> list[NavigationItem]:
    return [NavigationItem.model_validate(r) for r in raw]


def children_from(tree: dict[str, list[dict]]) -> AsyncMock:
    """fetch_children mock answering from a parent id -> items mapping."""

    async def fetch(parent_id: str) -> list[NavigationItem]:
        if parent_id not in tree:
            raise ResponseStatusError(f"unknown parent {parent_id}", http_status=404)
        return items(*tree[parent_id])

    return AsyncMock(side_effect=fetch)


def ids(result) -> list[str]:
    return sorted(item.id for item in result)


def nav_options(**overrides) -> RequestOptions:
    values = {
        "endpoint": "navigation_feed",
        "uri": "basic/api/wiki/w1/nav/feed",
        "accept": "application/json",
        "json": True,
        "delay_caching": True,
        "stub_type_allowed": False,
    }
    values.update(overrides)
    return RequestOptions(**values)


# Stub A expands to stub B, B expands to C
MULTI_LEVEL = {
    "A": [nav_item("A", parent="root"), nav_item("B", "stub", parent="A")],
    "B": [nav_item("B", parent="A"), nav_item("C", parent="B")],
}


class TestHelpers:
    def test_split_stubs(self):
        valid, stub_ids = split_stubs(
            items(
                nav_item("root"),
                nav_item("A", "stub", "root"),
                nav_item("X", parent="root"),
            )
        )
        assert [i.id for i in valid] == ["root", "X"]
        assert stub_ids == ["A"]

    def test_related_items_drops_unrelated(self):
        batch = items(
            nav_item("A", parent="root"),
            nav_item("B", parent="A"),
            nav_item("Z", parent="elsewhere"),
        )
        assert [i.id for i in related_items(batch, "A")] == ["A", "B"]

    def test_dedupe_keeps_first(self):
        result = dedupe(items(nav_item("A", title="new"), nav_item("A", title="old")))
        assert len(result) == 1
        assert result[0].title == "new"


class TestResolveStubs:
    @pytest.mark.asyncio
    async def test_single_level(self):
        """One stub whose response contains itself and one child."""
        fetch = children_from(
            {"A": [nav_item("A"), nav_item("B", parent="A")]}
        )

        result = await resolve_stubs(["A"], fetch)

        assert ids(result) == ["A", "B"]
        assert all(not item.is_stub for item in result)
        fetch.assert_awaited_once_with("A")

    @pytest.mark.asyncio
    async def test_multi_level(self):
        """Stubs discovered while expanding are expanded on the next level."""
        fetch = children_from(MULTI_LEVEL)

        result = await resolve_stubs(["A"], fetch)

        assert ids(result) == ["A", "B", "C"]
        assert [call.args[0] for call in fetch.await_args_list] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_filters_over_inclusive_response(self):
        fetch = children_from(
            {
                "A": [
                    nav_item("A"),
                    nav_item("B", parent="A"),
                    nav_item("Q", parent="other"),
                    nav_item("S", "stub", parent="other"),
                ]
            }
        )

        result = await resolve_stubs(["A"], fetch)

        assert ids(result) == ["A", "B"]
        assert fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_siblings_fetched_concurrently(self):
        """All ids of one level are in flight before any of them completes."""
        in_flight = 0
        peak = 0

        async def fetch(parent_id: str):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return items(nav_item(parent_id))

        result = await resolve_stubs(["A", "B", "C"], fetch)

        assert ids(result) == ["A", "B", "C"]
        assert peak == 3

    @pytest.mark.asyncio
    async def test_duplicate_seed_ids_fetched_once(self):
        fetch = children_from({"A": [nav_item("A")]})

        await resolve_stubs(["A", "A"], fetch)

        fetch.assert_awaited_once_with("A")

    @pytest.mark.asyncio
    async def test_stub_shared_by_siblings_fetched_once(self):
        fetch = children_from(
            {
                "A": [nav_item("A"), nav_item("S", "stub", parent="A")],
                "B": [nav_item("B"), nav_item("S", "stub", parent="B")],
                "S": [nav_item("S", parent="A")],
            }
        )

        result = await resolve_stubs(["A", "B"], fetch)

        assert ids(result) == ["A", "B", "S"]
        assert fetch.await_count == 3

    @pytest.mark.asyncio
    async def test_stub_returning_itself_terminates(self):
        fetch = children_from({"A": [nav_item("A", "stub"), nav_item("B", parent="A")]})

        result = await resolve_stubs(["A"], fetch)

        assert ids(result) == ["B"]
        fetch.assert_awaited_once_with("A")

    @pytest.mark.asyncio
    async def test_error_aborts_level(self):
        fetch = children_from({"A": [nav_item("A")]})

        with pytest.raises(ResponseStatusError):
            await resolve_stubs(["A", "missing"], fetch)

    @pytest.mark.asyncio
    async def test_failure_cancels_pending_siblings(self):
        cancelled = asyncio.Event()

        async def fetch(parent_id: str):
            if parent_id == "bad":
                raise ResponseStatusError("boom", http_status=500)
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return []

        with pytest.raises(ResponseStatusError):
            await resolve_stubs(["slow", "bad"], fetch)
        for _ in range(3):
            await asyncio.sleep(0)

        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_idempotent(self):
        first = await resolve_stubs(["A"], children_from(MULTI_LEVEL))
        second = await resolve_stubs(["A"], children_from(MULTI_LEVEL))

        assert {i.id for i in first} == {i.id for i in second}


class TestExpandNavigationItems:
    FEED = items(
        nav_item("root"),
        nav_item("A", "stub", parent="root"),
        nav_item("X", parent="root"),
    )

    @pytest.mark.asyncio
    async def test_no_stubs_passthrough(self):
        fetch = AsyncMock()
        feed = items(nav_item("root"), nav_item("X", parent="root"))

        result = await expand_navigation_items(feed, fetch)

        assert result == feed
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_merges_resolved_with_original_items(self):
        result = await expand_navigation_items(self.FEED, children_from(MULTI_LEVEL))

        assert ids(result) == ["A", "B", "C", "X", "root"]
        assert all(not item.is_stub for item in result)

    @pytest.mark.asyncio
    async def test_original_non_stub_items_not_refetched(self):
        fetch = children_from(MULTI_LEVEL)

        await expand_navigation_items(self.FEED, fetch)

        fetched = {call.args[0] for call in fetch.await_args_list}
        assert fetched.isdisjoint({"root", "X"})

    @pytest.mark.asyncio
    async def test_no_duplicates_when_resolution_returns_known_item(self):
        tree = {"A": [nav_item("A", parent="root"), nav_item("root")]}
        # "root" is the parent's parent; filtered out by related_items
        result = await expand_navigation_items(self.FEED, children_from(tree))

        assert ids(result) == ["A", "X", "root"]

    @pytest.mark.asyncio
    async def test_page_label_seeds_resolution(self):
        fetch = children_from({"page": [nav_item("page", parent="root")]})

        result = await expand_navigation_items(self.FEED, fetch, page_label="page")

        fetch.assert_awaited_once_with("page")
        assert ids(result) == ["X", "page", "root"]

    @pytest.mark.asyncio
    async def test_invalid_page_label_falls_back_to_stub_ids(self):
        calls = []

        async def fetch(parent_id: str):
            calls.append(parent_id)
            if parent_id == "Welcome":
                raise InvalidIdentifierError(
                    "Invalid UUID string: Welcome", http_status=400
                )
            return items(*MULTI_LEVEL[parent_id])

        result = await expand_navigation_items(self.FEED, fetch, page_label="Welcome")

        assert calls == ["Welcome", "A", "B"]
        assert ids(result) == ["A", "B", "C", "X", "root"]

    @pytest.mark.asyncio
    async def test_fallback_failure_propagates(self):
        async def fetch(parent_id: str):
            if parent_id == "Welcome":
                raise InvalidIdentifierError("Invalid UUID string", http_status=400)
            raise ResponseStatusError("down", http_status=503)

        with pytest.raises(ResponseStatusError) as exc_info:
            await expand_navigation_items(self.FEED, fetch, page_label="Welcome")

        assert exc_info.value.http_status == 503

    @pytest.mark.asyncio
    async def test_other_errors_do_not_fall_back(self):
        fetch = AsyncMock(side_effect=ResponseStatusError("forbidden", http_status=403))

        with pytest.raises(ResponseStatusError):
            await expand_navigation_items(self.FEED, fetch, page_label="page")

        fetch.assert_awaited_once_with("page")


class TestLoadNavigationFeed:
    STUB_FEED = NavigationFeed.model_validate(
        {
            "items": [
                nav_item("root"),
                nav_item("A", "stub", parent="root"),
            ]
        }
    )
    PLAIN_FEED = NavigationFeed.model_validate(
        {"items": [nav_item("root"), nav_item("X", parent="root")]}
    )

    @pytest.mark.asyncio
    async def test_no_stubs_returned_unchanged(self):
        fetch = AsyncMock()

        outcome = await load_navigation_feed(
            self.PLAIN_FEED, from_cache=False, options=nav_options(), fetch_children=fetch
        )

        assert outcome.feed is self.PLAIN_FEED
        assert outcome.directive.action is CacheAction.store
        assert not outcome.refetch
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_store_when_served_from_cache(self):
        outcome = await load_navigation_feed(
            self.PLAIN_FEED,
            from_cache=True,
            options=nav_options(),
            fetch_children=AsyncMock(),
        )

        assert outcome.feed is self.PLAIN_FEED
        assert outcome.directive.action is CacheAction.none

    @pytest.mark.asyncio
    async def test_no_store_without_delay_caching(self):
        outcome = await load_navigation_feed(
            self.PLAIN_FEED,
            from_cache=False,
            options=nav_options(delay_caching=False),
            fetch_children=AsyncMock(),
        )

        assert outcome.directive.action is CacheAction.none

    @pytest.mark.asyncio
    async def test_stubs_allowed_returned_unresolved(self):
        fetch = AsyncMock()

        outcome = await load_navigation_feed(
            self.STUB_FEED,
            from_cache=False,
            options=nav_options(stub_type_allowed=True),
            fetch_children=fetch,
        )

        assert outcome.feed is self.STUB_FEED
        assert outcome.feed.has_stubs
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cached_stub_feed_requests_refetch(self):
        fetch = AsyncMock()

        outcome = await load_navigation_feed(
            self.STUB_FEED, from_cache=True, options=nav_options(), fetch_children=fetch
        )

        assert outcome.refetch
        assert outcome.feed is None
        assert outcome.directive.action is CacheAction.none
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stubs_without_delay_caching_is_configuration_error(self):
        fetch = AsyncMock()

        with pytest.raises(ConfigurationError) as exc_info:
            await load_navigation_feed(
                self.STUB_FEED,
                from_cache=False,
                options=nav_options(delay_caching=False),
                fetch_children=fetch,
            )

        assert exc_info.value.http_status == 400
        assert exc_info.value.cache_directive.action is CacheAction.remove
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolves_and_stores(self):
        fetch = children_from(MULTI_LEVEL)

        outcome = await load_navigation_feed(
            self.STUB_FEED, from_cache=False, options=nav_options(), fetch_children=fetch
        )

        assert ids(outcome.feed.items) == ["A", "B", "C", "root"]
        assert not outcome.feed.has_stubs
        assert outcome.directive.action is CacheAction.store
        assert outcome.directive.payload is outcome.feed

    @pytest.mark.asyncio
    async def test_page_label_result_not_stored(self):
        fetch = children_from({"page": [nav_item("page", parent="root")]})

        outcome = await load_navigation_feed(
            self.STUB_FEED,
            from_cache=False,
            options=nav_options(),
            fetch_children=fetch,
            page_label="page",
        )

        assert ids(outcome.feed.items) == ["page", "root"]
        assert outcome.directive.action is CacheAction.none

    @pytest.mark.asyncio
    async def test_resolution_error_propagates(self):
        fetch = AsyncMock(side_effect=ResponseStatusError("down", http_status=502))

        with pytest.raises(ResponseStatusError):
            await load_navigation_feed(
                self.STUB_FEED,
                from_cache=False,
                options=nav_options(),
                fetch_children=fetch,
            )
