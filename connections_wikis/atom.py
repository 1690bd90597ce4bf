"""Atom/XML field extraction.

Queries use a small selector syntax close to CSS::

    title[type="text"]           atom:title with type="text"
    link[rel="edit-media"]       atom:link with rel="edit-media"
    author snx:userid            snx:userid anywhere below atom:author
    td:versionLabel              element in the ``td`` namespace
    content[src]                 atom:content that has a src attribute

Unprefixed tags live in the Atom namespace. Each space-separated step
matches descendants of the previous step's matches.

Parsing uses lxml's recovering parser and never raises: a body that cannot
be parsed yields ``None`` so callers degrade to empty results.
"""

from __future__ import annotations

import logging
import re

from lxml import etree

logger = logging.getLogger(__name__)

NAMESPACES = {
    "atom": "http://www.w3.org/2005/Atom",
    "snx": "http://www.ibm.com/xmlns/prod/sn",
    "app": "http://www.w3.org/2007/app",
    "openSearch": "http://a9.com/-/spec/opensearch/1.1/",
    "ibmsc": "http://www.ibm.com/search/content/2010",
    "td": "urn:ibm.com/td",
    "thr": "http://purl.org/syndication/thread/1.0",
    "fh": "http://purl.org/syndication/history/1.0",
}

_STEP = re.compile(
    r"^(?:(?P<prefix>[A-Za-z][\w]*):)?(?P<tag>[A-Za-z_][\w.-]*)(?:\[(?P<attrs>[^\]]*)\])?$"
)


def parse(text: str | bytes | None) -> etree._Element | None:
    """Parse an XML document, returning its root element or None."""
    if not text:
        return None
    if isinstance(text, str):
        text = text.encode("utf-8")
    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(text, parser)
    except etree.XMLSyntaxError as e:
        logger.debug("Unparseable XML body: %s", e)
        return None
    return root


def _step_to_xpath(step: str) -> str:
    match = _STEP.match(step)
    if match is None:
        raise ValueError(f"Unsupported selector step: {step!r}")

    prefix = match.group("prefix") or "atom"
    if prefix not in NAMESPACES:
        raise ValueError(f"Unknown namespace prefix: {prefix!r}")

    xpath = f"{prefix}:{match.group('tag')}"
    for raw in filter(None, (a.strip() for a in (match.group("attrs") or "").split(","))):
        name, _, value = raw.partition("=")
        name = name.strip()
        if value:
            value = value.strip().strip("\"'")
            xpath += f'[@{name}="{value}"]'
        else:
            xpath += f"[@{name}]"
    return xpath


def to_xpath(query: str) -> str:
    """Convert a selector into a relative XPath expression."""
    steps = query.split()
    if not steps:
        raise ValueError("Empty selector")
    return "/".join(f"descendant-or-self::{_step_to_xpath(s)}" for s in steps)


def select(node: etree._Element | None, query: str) -> list[etree._Element]:
    """All elements at or below ``node`` matching ``query``."""
    if node is None:
        return []
    return node.xpath(to_xpath(query), namespaces=NAMESPACES)


def first(node: etree._Element | None, query: str) -> etree._Element | None:
    matches = select(node, query)
    return matches[0] if matches else None


def text(node: etree._Element | None, query: str) -> str | None:
    """Text content of the first match, or None."""
    element = first(node, query)
    if element is None:
        return None
    return "".join(element.itertext())


def attr(node: etree._Element | None, query: str, name: str) -> str | None:
    """Attribute of the first match, or None."""
    element = first(node, query)
    if element is None:
        return None
    return element.get(name)


def entries(root: etree._Element | None) -> list[etree._Element]:
    """Entries of a feed; a bare entry document is its own single entry."""
    if root is None:
        return []
    if root.tag == f"{{{NAMESPACES['atom']}}}entry":
        return [root]
    return root.findall("atom:entry", namespaces=NAMESPACES)


def serialize(node: etree._Element | None) -> str:
    """Serialize an element to a unicode string ("" for None)."""
    if node is None:
        return ""
    return etree.tostring(node, encoding="unicode")
