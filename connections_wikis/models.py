"""
Data models for Connections Wikis responses.

Navigation feeds arrive as JSON and are validated into pydantic models
that keep any field the service adds. Atom responses are mapped field by
field in :mod:`connections_wikis.parsers` into the result models below.

CacheDirective is the value the navigation orchestrator hands back to the
client to describe what should happen to the cached copy of a response.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "STUB_TYPE",
    "NavigationItem",
    "NavigationFeed",
    "Author",
    "PageLinks",
    "WikiSummary",
    "PageSummary",
    "WikiPage",
    "PageComment",
    "PageVersion",
    "VersionDetails",
    "CacheAction",
    "CacheDirective",
]

STUB_TYPE = "stub"


# ============================================================================
# Navigation feed
# ============================================================================


class NavigationItem(BaseModel):
    """A node of a wiki navigation tree.

    A ``stub`` item is sent without its children; they have to be fetched
    with a follow-up request filtered by ``parent=<id>``.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    type: str = "normal"
    parent: str | None = None

    @property
    def is_stub(self) -> bool:
        return self.type == STUB_TYPE


class NavigationFeed(BaseModel):
    """Flat list of navigation items as returned by ``nav/feed``."""

    model_config = ConfigDict(extra="allow")

    items: list[NavigationItem] = Field(default_factory=list)

    @property
    def has_stubs(self) -> bool:
        return any(item.is_stub for item in self.items)

    def stub_ids(self) -> list[str]:
        return [item.id for item in self.items if item.is_stub]


# ============================================================================
# Atom results
# ============================================================================


class Author(BaseModel):
    id: str | None = None
    display_name: str | None = None


class PageLinks(BaseModel):
    """``link`` hrefs of an Atom entry, keyed by ``rel``."""

    self_url: str | None = None
    alternate: str | None = None
    edit: str | None = None
    edit_media: str | None = None
    enclosure: str | None = None
    related: str | None = None
    replies: str | None = None


class WikiSummary(BaseModel):
    """Entry of the ``mywikis`` feed."""

    id: str | None = None
    title: str | None = None


class PageSummary(BaseModel):
    """Entry of a wiki's page feed."""

    id: str | None = None
    title: str | None = None
    label: str | None = None


class WikiPage(BaseModel):
    """A single wiki page entry.

    ``content`` is the URL of the page's HTML media, not the HTML itself.
    """

    id: str | None = None
    title: str | None = None
    label: str | None = None
    summary: str | None = None
    content: str | None = None
    links: PageLinks = Field(default_factory=PageLinks)
    author: Author = Field(default_factory=Author)
    published_at: str | None = None
    updated_at: str | None = None


class PageComment(BaseModel):
    id: str | None = None
    content: str | None = None
    author: Author = Field(default_factory=Author)
    updated_at: str | None = None


class PageVersion(BaseModel):
    """Entry of a page's version feed."""

    id: str | None = None
    number: str | None = None
    links: PageLinks = Field(default_factory=PageLinks)
    author: Author = Field(default_factory=Author)
    updated_at: str | None = None


class VersionDetails(BaseModel):
    """A single page version entry."""

    id: str | None = None
    title: str | None = None
    number: str | None = None
    content: str | None = None
    links: PageLinks = Field(default_factory=PageLinks)
    author: Author = Field(default_factory=Author)
    updated_at: str | None = None


# ============================================================================
# Cache directives
# ============================================================================


class CacheAction(str, Enum):
    store = "store"
    remove = "remove"
    none = "none"


@dataclass(frozen=True)
class CacheDirective:
    """What the cache should do with the response that produced a result."""

    action: CacheAction
    payload: Any = None

    @classmethod
    def store(cls, payload: Any) -> CacheDirective:
        return cls(CacheAction.store, payload)

    @classmethod
    def remove(cls) -> CacheDirective:
        return cls(CacheAction.remove)

    @classmethod
    def none(cls) -> CacheDirective:
        return cls(CacheAction.none)
