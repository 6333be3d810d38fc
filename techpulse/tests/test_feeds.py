"""
Tests for feed fetching and normalization.
"""

from datetime import datetime, timezone

import pytest

from techpulse.database.models import DBSource
from techpulse.exceptions import MalformedFeed, SourceUnreachable
from techpulse.feeds import (
    FeedParser,
    canonicalize_url,
    html_to_text,
    make_snippet,
    parse_feed_sync,
)


RSS_SAMPLE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example Tech</title>
    <link>https://example.com</link>
    <item>
      <title>Acme raises $10M</title>
      <link>https://Example.com/a1/?utm_source=rss&amp;utm_medium=feed#comments</link>
      <description>&lt;p&gt;Acme, a &lt;b&gt;startup&lt;/b&gt;, closed its seed round.&lt;/p&gt;</description>
      <pubDate>Tue, 14 Oct 2025 09:30:00 GMT</pubDate>
    </item>
    <item>
      <title>No link here</title>
      <description>Skipped because it has nowhere to point.</description>
    </item>
    <item>
      <link>https://example.com/untitled</link>
      <description>Body only.</description>
    </item>
  </channel>
</rss>
"""

ATOM_SAMPLE = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Example</title>
  <entry>
    <title>Atom entry</title>
    <link rel="alternate" type="text/html" href="https://example.org/post/1"/>
    <id>urn:uuid:1</id>
    <updated>2025-10-14T12:00:00Z</updated>
    <content type="html">&lt;p&gt;Atom body text&lt;/p&gt;</content>
  </entry>
</feed>
"""


class TestCanonicalUrl:
    """Canonical URL rules."""

    def test_strips_tracking_and_fragment(self):
        assert canonicalize_url(
            "https://Example.com/a1/?utm_source=rss&utm_medium=feed#comments"
        ) == "https://example.com/a1"

    def test_keeps_meaningful_query(self):
        assert canonicalize_url("https://example.com/story?id=42&fbclid=xyz") == \
            "https://example.com/story?id=42"

    def test_root_path_keeps_slash(self):
        assert canonicalize_url("HTTPS://EXAMPLE.COM") == "https://example.com/"

    def test_same_article_variants_compare_equal(self):
        a = canonicalize_url("https://x.com/a1")
        b = canonicalize_url("https://X.com/a1/?utm_campaign=spring")
        assert a == b == "https://x.com/a1"

    def test_empty_and_relative(self):
        assert canonicalize_url("") == ""
        assert canonicalize_url("/relative/path") == "/relative/path"


class TestTextHelpers:
    def test_html_to_text_strips_markup_and_scripts(self):
        html = "<p>Hello <b>world</b></p><script>alert(1)</script>"
        assert html_to_text(html) == "Hello world"

    def test_snippet_short_text_unchanged(self):
        assert make_snippet("short text") == "short text"

    def test_snippet_cut_at_word_boundary(self):
        text = "word " * 100
        snippet = make_snippet(text.strip())
        assert len(snippet) <= 301
        assert snippet.endswith("…")
        assert not snippet[:-1].endswith(" ")


LATIN1_SAMPLE = """<?xml version="1.0" encoding="ISO-8859-1"?>
<rss version="2.0">
  <channel>
    <title>Exemple</title>
    <item>
      <title>Café numérique lève 5 MEUR</title>
      <link>https://example.fr/cafe</link>
      <description>Une levée de fonds pour le café.</description>
    </item>
  </channel>
</rss>
"""


class TestParsing:
    """Parsing already-fetched feed content."""

    def test_rss_entries_normalized(self):
        candidates = parse_feed_sync(RSS_SAMPLE, "https://example.com/feed")
        assert len(candidates) == 2

        first = candidates[0]
        assert first.url == "https://example.com/a1"
        assert first.title == "Acme raises $10M"
        assert first.content.startswith("Acme, a startup")
        assert "<" not in first.snippet
        assert first.published == datetime(2025, 10, 14, 9, 30, tzinfo=timezone.utc)

    def test_missing_title_defaults_to_untitled(self):
        candidates = parse_feed_sync(RSS_SAMPLE)
        assert candidates[1].title == "Untitled"
        assert candidates[1].published is None

    def test_atom_feed(self):
        candidates = parse_feed_sync(ATOM_SAMPLE)
        assert len(candidates) == 1
        assert candidates[0].url == "https://example.org/post/1"
        assert candidates[0].content == "Atom body text"
        assert candidates[0].published == datetime(2025, 10, 14, 12, 0, tzinfo=timezone.utc)

    def test_garbage_is_malformed(self):
        with pytest.raises(MalformedFeed):
            parse_feed_sync("this is <<< not a feed", "https://example.com/broken")

    def test_malformed_feed_is_retryable(self):
        assert MalformedFeed.retryable is True

    def test_non_utf8_bytes_use_declared_encoding(self):
        body = LATIN1_SAMPLE.encode("iso-8859-1")
        candidates = parse_feed_sync(body, "https://example.fr/feed")
        assert candidates[0].title == "Café numérique lève 5 MEUR"
        assert candidates[0].content == "Une levée de fonds pour le café."


class TestFetching:
    """Network failures map to SourceUnreachable."""

    @pytest.mark.asyncio
    async def test_unreachable_host(self):
        source = DBSource(
            id=1,
            name="Nowhere",
            url="http://127.0.0.1:9",
            feed_url="http://127.0.0.1:9/feed.xml",
            is_active=True,
            fetch_interval_minutes=30,
            last_fetched=None,
        )
        parser = FeedParser(timeout=2.0)
        with pytest.raises(SourceUnreachable):
            await parser.fetch(source)

    def test_discover_feed_from_html(self):
        html = """
        <html><head>
          <link rel="alternate" type="application/rss+xml" href="/feed.xml">
        </head><body></body></html>
        """
        parser = FeedParser()
        assert parser._discover_feed_from_html(html, "https://example.com/blog") == \
            "https://example.com/feed.xml"

    @pytest.mark.asyncio
    async def test_fetch_passes_raw_bytes_to_parser(self, monkeypatch):
        source = DBSource(
            id=1,
            name="Exemple",
            url="https://example.fr",
            feed_url="https://example.fr/feed",
            is_active=True,
            fetch_interval_minutes=30,
            last_fetched=None,
        )
        parser = FeedParser()

        async def fake_get(url):
            return LATIN1_SAMPLE.encode("iso-8859-1")

        monkeypatch.setattr(parser, "_get", fake_get)
        candidates = await parser.fetch(source)
        assert [c.url for c in candidates] == ["https://example.fr/cafe"]
        assert candidates[0].title == "Café numérique lève 5 MEUR"
