"""Test fixtures for the Connections Wikis client.

Everything runs offline: the client talks to a FakeTransport that answers
from a handler function, and transport tests use ``httpx.MockTransport``.

Fixtures:
- Sample Atom documents (page entry, comments, versions, version entry)
- Navigation feed items
- FakeTransport and response helpers
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from connections_wikis.options import ATOM_CONTENT_TYPE, JSON_CONTENT_TYPE, RequestOptions
from connections_wikis.transport import TransportResponse

BASE_URL = "https://apps.example.com/wikis"

# =============================================================================
# Sample Atom documents
# =============================================================================

NS = (
    'xmlns="http://www.w3.org/2005/Atom" '
    'xmlns:snx="http://www.ibm.com/xmlns/prod/sn" '
    'xmlns:td="urn:ibm.com/td"'
)

AUTHOR = """\
  <author>
    <name>Ann Example</name>
    <snx:userid>20000001</snx:userid>
    <email>ann@example.com</email>
  </author>"""

PAGE_ENTRY_XML = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<entry {NS}>
  <id>urn:lsid:ibm.com:td:p1</id>
  <td:label>Welcome</td:label>
  <title type="text">Welcome to the wiki</title>
  <summary type="text">Start here</summary>
  <published>2017-01-10T10:00:00.000Z</published>
  <updated>2017-02-11T12:30:00.000Z</updated>
{AUTHOR}
  <content type="text/html" src="{BASE_URL}/oauth/api/wiki/w1/page/p1/media"/>
  <link rel="self" href="{BASE_URL}/basic/api/wiki/w1/page/p1/entry"/>
  <link rel="edit" href="{BASE_URL}/basic/api/wiki/w1/page/p1/entry?edit"/>
  <link rel="edit-media" href="{BASE_URL}/basic/api/wiki/w1/page/p1/media?edit"/>
  <link rel="enclosure" href="{BASE_URL}/basic/api/wiki/w1/page/p1/media?download=true"/>
  <link rel="related" href="{BASE_URL}/basic/api/wiki/w1/page/p1/related"/>
  <link rel="replies" href="{BASE_URL}/basic/api/wiki/w1/page/p1/feed"/>
</entry>
"""

COMMENTS_FEED_XML = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<feed {NS}>
  <id>urn:lsid:ibm.com:td:comments</id>
  <title type="text">Comments</title>
  <entry>
    <id>urn:lsid:ibm.com:td:c1</id>
    <title type="text">Re: Welcome</title>
    <content type="text">Nice page</content>
{AUTHOR}
    <updated>2017-03-01T09:00:00.000Z</updated>
  </entry>
  <entry>
    <id>urn:lsid:ibm.com:td:c2</id>
    <content type="text">Thanks &amp; welcome</content>
{AUTHOR}
    <updated>2017-03-02T09:00:00.000Z</updated>
  </entry>
</feed>
"""

VERSIONS_FEED_XML = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<feed {NS}>
  <id>urn:lsid:ibm.com:td:versions</id>
  <entry>
    <id>urn:lsid:ibm.com:td:v2</id>
    <td:versionLabel>2</td:versionLabel>
{AUTHOR}
    <updated>2017-02-11T12:30:00.000Z</updated>
    <link rel="self" href="{BASE_URL}/basic/api/wiki/w1/page/p1/version/v2/entry"/>
    <link rel="alternate" href="{BASE_URL}/home/wiki/w1/page/p1/version/v2"/>
  </entry>
  <entry>
    <id>urn:lsid:ibm.com:td:v1</id>
    <td:versionLabel>1</td:versionLabel>
{AUTHOR}
    <updated>2017-01-10T10:00:00.000Z</updated>
  </entry>
</feed>
"""

VERSION_ENTRY_XML = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<entry {NS}>
  <id>urn:lsid:ibm.com:td:v1</id>
  <td:versionLabel>1</td:versionLabel>
  <title type="text">Welcome to the wiki</title>
{AUTHOR}
  <content type="text/html" src="{BASE_URL}/basic/api/wiki/w1/page/p1/version/v1/media"/>
  <link rel="self" href="{BASE_URL}/basic/api/wiki/w1/page/p1/version/v1/entry"/>
  <updated>2017-01-10T10:00:00.000Z</updated>
</entry>
"""

WIKIS_FEED_XML = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<feed {NS}>
  <id>urn:lsid:ibm.com:td:mywikis</id>
  <title type="text">My wikis</title>
  <entry>
    <id>urn:lsid:ibm.com:td:w1</id>
    <title type="text">Team wiki</title>
  </entry>
  <entry>
    <id>urn:lsid:ibm.com:td:w2</id>
    <title type="text">Project wiki</title>
  </entry>
</feed>
"""

MEDIA_HTML = """\
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html><body><h1>Welcome</h1><script>track()</script><p>Fish &amp; chips</p></body></html>
"""


# =============================================================================
# Fake transport
# =============================================================================


def atom_response(body: str, status_code: int = 200) -> TransportResponse:
    return TransportResponse(
        status_code=status_code,
        headers={"content-type": f"{ATOM_CONTENT_TYPE};charset=UTF-8"},
        body=body,
    )


def json_response(
    body: Any, status_code: int = 200, from_cache: bool = False
) -> TransportResponse:
    return TransportResponse(
        status_code=status_code,
        headers={"content-type": f"{JSON_CONTENT_TYPE};charset=UTF-8"},
        body=body,
        from_cache=from_cache,
    )


class FakeTransport:
    """Transport answering from ``handler(options)``.

    The handler returns a TransportResponse or an exception to raise.
    Every request is recorded in ``requests``.
    """

    def __init__(self, handler: Callable[[RequestOptions], Any]) -> None:
        self.handler = handler
        self.requests: list[RequestOptions] = []
        self.closed = False

    async def request(self, options: RequestOptions) -> TransportResponse:
        self.requests.append(options)
        result = self.handler(options)
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True


def nav_item(id: str, type: str = "normal", parent: str | None = None, **extra):
    return {"id": id, "type": type, "parent": parent, **extra}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Ignore CONNECTIONS_WIKIS_* variables from the developer's shell."""
    import os

    for name in list(os.environ):
        if name.startswith("CONNECTIONS_WIKIS_"):
            monkeypatch.delenv(name, raising=False)
