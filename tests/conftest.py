"""Shared fixtures and sample documents."""

from typing import Callable, Dict, Union

import httpx
import pytest

from feedhub.db import IndexedStore, MemoryKV

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example Blog</title>
    <link>http://example.com/</link>
    <description>Posts from the example blog</description>
    <item>
      <title>First post</title>
      <link>http://example.com/posts/1</link>
      <guid>g1</guid>
      <pubDate>Mon, 01 Jan 2024 00:00:00 GMT</pubDate>
      <description>&lt;p&gt;Hello&lt;/p&gt;</description>
    </item>
    <item>
      <title>Second post</title>
      <link>http://example.com/posts/2</link>
      <guid>g2</guid>
      <pubDate>Tue, 02 Jan 2024 12:30:00 GMT</pubDate>
      <description>Second body</description>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Example</title>
  <subtitle>An Atom feed</subtitle>
  <link href="http://atom.example.org/" rel="alternate"/>
  <id>urn:uuid:feed</id>
  <updated>2024-03-01T10:00:00Z</updated>
  <entry>
    <title>Atom entry</title>
    <link href="http://atom.example.org/2024/03/01/entry" rel="alternate"/>
    <id>urn:uuid:entry-1</id>
    <published>2024-03-01T09:00:00Z</published>
    <updated>2024-03-01T10:00:00Z</updated>
    <content type="html">&lt;p&gt;Full &lt;em&gt;content&lt;/em&gt;&lt;/p&gt;</content>
    <summary>Short summary</summary>
  </entry>
  <entry>
    <title>Updated only</title>
    <link href="http://atom.example.org/2024/02/01/other" rel="alternate"/>
    <id>urn:uuid:entry-2</id>
    <updated>2024-02-01T08:00:00Z</updated>
    <summary>Only a summary</summary>
  </entry>
</feed>
"""

HTML_PAGE = b"""<!DOCTYPE html>
<html><head><title>Just a page</title></head><body><p>No feed here</p></body></html>
"""


def rss_with_items(*items: str, title: str = "Example Blog") -> bytes:
    """Build an RSS document from raw <item> bodies."""
    body = "".join(f"<item>{item}</item>" for item in items)
    return (
        f'<rss version="2.0"><channel><title>{title}</title>'
        f"<link>http://example.com/</link>{body}</channel></rss>"
    ).encode("utf-8")


Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def make_transport(routes: Dict[str, Route]) -> httpx.MockTransport:
    """MockTransport answering from a URL -> response map; unknown URLs get 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return route

    return httpx.MockTransport(handler)


def feed_response(content: bytes = RSS_FEED, content_type: str = "application/rss+xml") -> httpx.Response:
    return httpx.Response(200, content=content, headers={"content-type": content_type})


@pytest.fixture
def store() -> IndexedStore:
    """Store over a fresh in-memory backend."""
    return IndexedStore(MemoryKV())
