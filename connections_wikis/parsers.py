"""Response parsers mapping Atom documents onto result models.

Parsers accept the raw response body. Fields missing from a document
are left as None; a body that cannot be parsed gives an empty list (feed
parsers) or None (entry parsers).
"""

from __future__ import annotations

import html
import re

from bs4 import BeautifulSoup
from lxml import etree

from connections_wikis import atom
from connections_wikis.models import (
    Author,
    PageComment,
    PageLinks,
    PageSummary,
    PageVersion,
    VersionDetails,
    WikiPage,
    WikiSummary,
)

_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>\s*", re.IGNORECASE)
_DOCTYPE = re.compile(r"<!DOCTYPE[^>]*>\s*", re.IGNORECASE)

# rel attribute -> PageLinks field
_LINK_RELS = {
    "self": "self_url",
    "alternate": "alternate",
    "edit": "edit",
    "edit-media": "edit_media",
    "enclosure": "enclosure",
    "related": "related",
    "replies": "replies",
}


def _links(entry: etree._Element) -> PageLinks:
    values = {}
    for rel, name in _LINK_RELS.items():
        values[name] = atom.attr(entry, f'link[rel="{rel}"]', "href")
    return PageLinks(**values)


def _author(entry: etree._Element) -> Author:
    return Author(
        id=atom.text(entry, "author snx:userid"),
        display_name=atom.text(entry, "author name"),
    )


def _single_entry(body: str | bytes | None) -> etree._Element | None:
    found = atom.entries(atom.parse(body))
    return found[0] if found else None


def parse_wikis_feed(body: str | bytes | None) -> list[WikiSummary]:
    """Parse ``mywikis/feed`` into id/title pairs."""
    return [
        WikiSummary(id=atom.text(entry, "id"), title=atom.text(entry, 'title[type="text"]'))
        for entry in atom.entries(atom.parse(body))
    ]


def parse_pages_feed(body: str | bytes | None) -> list[PageSummary]:
    """Parse ``wiki/{wikiLabel}/feed``."""
    return [
        PageSummary(
            id=atom.text(entry, "id"),
            title=atom.text(entry, 'title[type="text"]'),
            label=atom.text(entry, "td:label"),
        )
        for entry in atom.entries(atom.parse(body))
    ]


def parse_wiki_page(body: str | bytes | None) -> WikiPage | None:
    """Parse a page entry. ``content`` is the src URL of the page media."""
    entry = _single_entry(body)
    if entry is None:
        return None
    return WikiPage(
        id=atom.text(entry, "id"),
        title=atom.text(entry, 'title[type="text"]'),
        label=atom.text(entry, "td:label"),
        summary=atom.text(entry, "summary"),
        content=atom.attr(entry, 'content[type="text/html"]', "src"),
        links=_links(entry),
        author=_author(entry),
        published_at=atom.text(entry, "published"),
        updated_at=atom.text(entry, "updated"),
    )


def parse_page_comments(body: str | bytes | None) -> list[PageComment]:
    return [
        PageComment(
            id=atom.text(entry, "id"),
            content=atom.text(entry, 'content[type="text"]'),
            author=_author(entry),
            updated_at=atom.text(entry, "updated"),
        )
        for entry in atom.entries(atom.parse(body))
    ]


def parse_page_versions(body: str | bytes | None) -> list[PageVersion]:
    return [
        PageVersion(
            id=atom.text(entry, "id"),
            number=atom.text(entry, "td:versionLabel"),
            links=_links(entry),
            author=_author(entry),
            updated_at=atom.text(entry, "updated"),
        )
        for entry in atom.entries(atom.parse(body))
    ]


def parse_version_details(body: str | bytes | None) -> VersionDetails | None:
    entry = _single_entry(body)
    if entry is None:
        return None
    return VersionDetails(
        id=atom.text(entry, "id"),
        title=atom.text(entry, 'title[type="text"]'),
        number=atom.text(entry, "td:versionLabel"),
        content=atom.attr(entry, 'content[type="text/html"]', "src"),
        links=_links(entry),
        author=_author(entry),
        updated_at=atom.text(entry, "updated"),
    )


def parse_media(body: str | bytes | None) -> str:
    """Return page media HTML without XML declaration or doctype."""
    if not body:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    result = _DOCTYPE.sub("", _XML_DECLARATION.sub("", body, count=1), count=1)
    return html.unescape(result)


def media_text(content: str, max_chars: int | None = None) -> str:
    """
    Extract clean text from page media HTML.

    - Removes scripts and styles
    - Collapses whitespace
    - Truncates to max_chars when given
    """
    soup = BeautifulSoup(content, "html.parser")

    for element in soup(["script", "style"]):
        element.decompose()

    text = " ".join(soup.get_text(separator=" ", strip=True).split())

    if max_chars is not None and len(text) > max_chars:
        text = text[:max_chars]

    return text
