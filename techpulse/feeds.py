"""
Feed Parser - Fetch RSS/Atom feeds and normalize their entries.

Handles:
- RSS 2.0 and Atom 1.0 formats
- Canonical URLs (tracking parameters and fragments removed)
- HTML stripping and snippet extraction
- Feed autodiscovery from HTML pages
- Rate limiting per domain
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

import aiohttp
import feedparser
from bs4 import BeautifulSoup

from .exceptions import MalformedFeed, SourceUnreachable

if TYPE_CHECKING:
    from .database.models import DBSource

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 300

# Query parameters that never change what a URL points to
TRACKING_PARAMS = {
    "fbclid", "gclid", "mc_cid", "mc_eid", "ref", "ref_src", "igshid",
    "guccounter", "cmpid", "ncid", "sr_share",
}


@dataclass
class FeedCandidate:
    """A normalized entry from a feed, not yet classified or stored."""
    url: str
    title: str
    content: str
    snippet: str
    published: datetime | None


def canonicalize_url(url: str) -> str:
    """
    Normalize a URL so that two links to the same article compare equal.

    Lowercases scheme and host, drops the fragment, tracking parameters
    (utm_* and friends) and a trailing slash on non-root paths.
    """
    url = (url or "").strip()
    if not url:
        return ""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url

    query = [
        (k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in TRACKING_PARAMS
    ]
    path = parsed.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/")

    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        path,
        parsed.params,
        urlencode(query),
        "",
    ))


def html_to_text(html: str | None) -> str:
    """Strip markup and collapse whitespace."""
    if not html:
        return ""
    if "<" not in html:
        return " ".join(html.split())
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ").split())


def make_snippet(text: str, max_chars: int = SNIPPET_LENGTH) -> str:
    """Cut text to max_chars at a word boundary."""
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    last_space = cut.rfind(" ")
    if last_space > max_chars * 0.6:
        cut = cut[:last_space]
    return cut.rstrip(" ,;:") + "…"


def _entry_published(entry) -> datetime | None:
    """Published (or updated) time of an entry as aware UTC."""
    for attr in ("published_parsed", "updated_parsed"):
        parsed = getattr(entry, attr, None)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return None


def _entry_link(entry) -> str:
    item_url = entry.get("link", "")
    if not item_url and hasattr(entry, "links"):
        for link in entry.links:
            if link.get("rel") == "alternate" or link.get("type") == "text/html":
                item_url = link.get("href", "")
                break
    return item_url


class FeedParser:
    """Fetches feeds over HTTP and parses them into FeedCandidates."""

    def __init__(self, timeout: float = 20.0, user_agent: str | None = None):
        self.timeout = timeout
        self.user_agent = user_agent or "TechPulse/1.0 (+https://github.com/techpulse)"
        self._domain_last_fetch: dict[str, float] = {}
        self._min_interval = 1.0  # Minimum seconds between requests to same domain

    async def fetch(self, source: "DBSource") -> list[FeedCandidate]:
        """
        Fetch and normalize the entries of a source's feed.

        Raises:
            SourceUnreachable: network error, timeout or non-2xx status
            MalformedFeed: body could not be parsed as a feed
        """
        content = await self._get(source.feed_url)
        return self._parse(source.feed_url, content)

    async def _get(self, url: str) -> bytes:
        domain = urlparse(url).netloc
        await self._rate_limit(domain)

        headers = {"User-Agent": self.user_agent}
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as resp:
                    resp.raise_for_status()
                    # Raw bytes; feedparser and BeautifulSoup detect the encoding
                    return await resp.read()
        except asyncio.TimeoutError as e:
            raise SourceUnreachable(f"Timed out after {self.timeout}s fetching {url}") from e
        except aiohttp.ClientResponseError as e:
            raise SourceUnreachable(f"HTTP {e.status} fetching {url}") from e
        except aiohttp.ClientError as e:
            raise SourceUnreachable(f"Cannot reach {url}: {e}") from e

    def _parse(self, url: str, content: bytes | str) -> list[FeedCandidate]:
        """Parse feed content using feedparser."""
        parsed = feedparser.parse(content)

        # Check for parse errors
        if parsed.bozo and not parsed.entries:
            raise MalformedFeed(f"Failed to parse feed {url}: {parsed.bozo_exception}")
        if parsed.bozo:
            logger.debug(f"Feed {url} parsed with warnings: {parsed.bozo_exception}")

        candidates = []
        for entry in parsed.entries:
            item_url = canonicalize_url(_entry_link(entry))
            if not item_url:
                continue

            # Extract content (prefer content over summary)
            raw = ""
            if hasattr(entry, "content") and entry.content:
                raw = entry.content[0].value
            elif hasattr(entry, "summary"):
                raw = entry.summary
            elif hasattr(entry, "description"):
                raw = entry.description

            text = html_to_text(raw)
            title = html_to_text(entry.get("title", "")) or "Untitled"

            candidates.append(FeedCandidate(
                url=item_url,
                title=title,
                content=text,
                snippet=make_snippet(text),
                published=_entry_published(entry),
            ))

        return candidates

    async def _rate_limit(self, domain: str):
        """Ensure minimum interval between requests to same domain."""
        now = time.time()
        if domain in self._domain_last_fetch:
            elapsed = now - self._domain_last_fetch[domain]
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
        self._domain_last_fetch[domain] = time.time()

    async def discover_feed(self, url: str) -> str | None:
        """
        Find feed URL from HTML page (autodiscovery).

        Returns the URL itself if it already parses as a feed, the discovered
        feed URL, or None if nothing was found.
        """
        body = await self._get(url)
        parsed = feedparser.parse(body)
        if parsed.entries:
            return url
        return self._discover_feed_from_html(body, url)

    def _discover_feed_from_html(self, html: bytes | str, base_url: str) -> str | None:
        """Extract feed URL from HTML content."""
        soup = BeautifulSoup(html, "html.parser")

        # Look for RSS/Atom link tags
        for link in soup.find_all("link", rel="alternate"):
            link_type = link.get("type", "")
            if "rss" in link_type or "atom" in link_type or "xml" in link_type:
                href = link.get("href")
                if href:
                    return urljoin(base_url, href)

        return None


def parse_feed_sync(content: bytes | str, url: str = "") -> list[FeedCandidate]:
    """
    Synchronous feed parsing (for use when content is already fetched).

    Useful for testing or when you already have the feed content.
    """
    parser = FeedParser()
    return parser._parse(url, content)
