"""
Test doubles and sample documents shared by the unit and integration tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union

from feedsentry.database.models import AcceptedArticle, FeedSource
from feedsentry.utils.clock import Clock


SAMPLE_RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
    <channel>
        <title>Example News</title>
        <link>https://example.com</link>
        <description>Test feed for unit testing</description>
        <item>
            <title>OpenAI releases new model for software developers</title>
            <link>https://Example.com/news/openai-model?utm_source=rss#top</link>
            <description><![CDATA[<p>The <b>AI</b> software &amp; algorithm news</p>]]></description>
            <content:encoded><![CDATA[<div>Full <em>story</em> body</div>]]></content:encoded>
            <pubDate>Thu, 05 Sep 2024 12:00:00 GMT</pubDate>
            <dc:creator>Jane Doe</dc:creator>
            <category>AI</category>
        </item>
        <item>
            <title>Item without a link</title>
            <description>Nothing to point at</description>
        </item>
        <item>
            <title>Bitcoin price rallies as crypto markets recover</title>
            <link>https://example.com/news/bitcoin-rally</link>
            <description>Trading volume surged overnight.</description>
        </item>
    </channel>
</rss>"""

SAMPLE_ATOM_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
    <title>Example Science</title>
    <link href="https://example.org"/>
    <id>urn:example:feed</id>
    <updated>2024-09-07T00:00:01Z</updated>
    <entry>
        <title>Researchers publish study on vaccine treatment</title>
        <link rel="alternate" href="https://example.org/atom/vaccine-study"/>
        <id>urn:example:1</id>
        <published>2024-09-05T12:00:00Z</published>
        <updated>2024-09-05T12:00:00Z</updated>
        <summary>Medical research results from the laboratory</summary>
        <content type="html">&lt;p&gt;Full &lt;em&gt;content&lt;/em&gt; here&lt;/p&gt;</content>
        <author>
            <name>Atom Author</name>
        </author>
        <category term="Science"/>
    </entry>
    <entry>
        <title>Entry without a usable link</title>
        <id>urn:example:2</id>
        <updated>2024-09-05T12:00:00Z</updated>
    </entry>
</feed>"""

NOT_A_FEED = b"<html><head><title>Hello</title></head><body><p>Just a page</p></body></html>"


def build_rss(titles: List[str], base: str = "https://example.com/story") -> bytes:
    """RSS document with one linked item per title, in order."""
    items = "".join(
        f"<item><title>{title}</title><link>{base}/{index}</link></item>"
        for index, title in enumerate(titles)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?><rss version="2.0"><channel>'
        f"<title>Generated</title><link>https://example.com</link>{items}"
        "</channel></rss>"
    ).encode("utf-8")


class FakeClock(Clock):
    """Manually advanced clock.

    Sleeps advance ``now`` and return immediately, except sleeps of at least
    ``park_at`` seconds, which block until cancelled. Parking keeps timer
    loops from spinning while still letting backoff and cooldown complete.
    """

    def __init__(self, start: Optional[datetime] = None, park_at: Optional[float] = None):
        self.current = start or datetime(2024, 9, 7, 12, 0, tzinfo=timezone.utc)
        self.park_at = park_at
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self.park_at is not None and seconds >= self.park_at:
            await asyncio.Event().wait()
        self.advance(seconds)
        await asyncio.sleep(0)


HANG = object()


class FakeFetcher:
    """Scripted stand-in for SourceFetcher.

    ``responses`` maps feed URLs to bytes, an exception instance to raise, or
    HANG to block until cancelled.
    """

    def __init__(self, responses: Optional[Dict[str, Union[bytes, BaseException, object]]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []
        self.sessions_opened = 0
        self.sessions_closed = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.delay = 0.0

    async def __aenter__(self) -> "FakeFetcher":
        self.sessions_opened += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.sessions_closed += 1

    async def fetch(self, feed_url: str, timeout: Optional[float] = None) -> bytes:
        self.calls.append(feed_url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            response = self.responses[feed_url]
            if response is HANG:
                await asyncio.Event().wait()
            if isinstance(response, BaseException):
                raise response
            return response
        finally:
            self.in_flight -= 1


def make_source(source_id: str, feed_url: Optional[str] = None, **kwargs) -> FeedSource:
    return FeedSource(
        id=source_id,
        name=kwargs.pop("name", source_id.replace("-", " ").title()),
        url=kwargs.pop("url", "https://example.com"),
        feed_url=feed_url,
        **kwargs,
    )


def make_article(title: str, link: str, created_at: datetime, **kwargs) -> AcceptedArticle:
    return AcceptedArticle(
        title=title,
        link=link,
        category=kwargs.pop("category", "General"),
        source_id=kwargs.pop("source_id", "seed"),
        created_at=created_at,
        published_at=kwargs.pop("published_at", created_at),
        **kwargs,
    )


