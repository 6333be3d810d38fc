"""
Source Registry - known feed endpoints and their fetch cadence.

Sources come from three places: the built-in defaults (registered when the
registry is empty), an optional OPML file, and explicit registration through
the API. Removing a source only deactivates it; its articles keep pointing
at it.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .database import Database, DBSource
from .exceptions import InvalidInput, NotFound, require_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceSpec:
    """A source definition prior to registration."""
    name: str
    url: str
    feed_url: str
    fetch_interval_minutes: int | None = None


DEFAULT_SOURCES: list[SourceSpec] = [
    SourceSpec("TechCrunch", "https://techcrunch.com", "https://techcrunch.com/feed/"),
    SourceSpec("The Verge", "https://www.theverge.com", "https://www.theverge.com/rss/index.xml"),
    SourceSpec("Wired", "https://www.wired.com", "https://www.wired.com/feed/rss"),
    SourceSpec("Ars Technica", "https://arstechnica.com", "https://feeds.arstechnica.com/arstechnica/index"),
    SourceSpec("Hacker News", "https://news.ycombinator.com", "https://hnrss.org/frontpage"),
    SourceSpec("Krebs on Security", "https://krebsonsecurity.com", "https://krebsonsecurity.com/feed/", 60),
]


def site_origin(url: str) -> str:
    """scheme://host of a URL."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url
    return f"{parsed.scheme}://{parsed.netloc}"


def parse_opml(xml_content: str) -> list[SourceSpec]:
    """
    Parse OPML XML content into source definitions.

    Nested folders are flattened; the folder structure carries no meaning
    for the registry.

    Raises:
        ValueError: If XML is invalid or not OPML format
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise ValueError(f"Invalid XML: {e}")

    if root.tag.lower() != "opml":
        raise ValueError(f"Not an OPML document (root element: {root.tag})")

    body = root.find("body")
    if body is None:
        raise ValueError("OPML document missing <body> element")

    specs: list[SourceSpec] = []
    for outline in body.iter("outline"):
        feed_url = outline.get("xmlUrl") or outline.get("xmlurl")
        if not feed_url:
            continue
        name = (outline.get("title") or outline.get("text") or "").strip()
        html_url = outline.get("htmlUrl") or outline.get("htmlurl") or site_origin(feed_url)
        specs.append(SourceSpec(
            name=name or urlparse(feed_url).netloc,
            url=html_url,
            feed_url=feed_url,
        ))
    return specs


def generate_opml(sources: list[DBSource], title: str = "TechPulse Sources") -> str:
    """Generate OPML XML for the given sources."""
    root = ET.Element("opml", version="2.0")
    head = ET.SubElement(root, "head")
    ET.SubElement(head, "title").text = title
    body = ET.SubElement(root, "body")

    for source in sources:
        ET.SubElement(
            body,
            "outline",
            type="rss",
            text=source.name,
            title=source.name,
            xmlUrl=source.feed_url,
            htmlUrl=source.url,
        )

    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(
        root, encoding="unicode"
    )


class SourceRegistry:
    """Registration, lookup and soft-deactivation of sources."""

    def __init__(self, db: Database, default_interval_minutes: int = 30):
        self.db = db
        self.default_interval_minutes = default_interval_minutes

    def register(self, spec: SourceSpec) -> DBSource:
        """Register a source (or reactivate the existing one with the same feed URL)."""
        existing = self.db.sources.get_by_feed_url(spec.feed_url)
        if existing:
            if not existing.is_active:
                self.db.set_source_active(existing.id, True)
                logger.info(f"Reactivated source {existing.name} ({existing.feed_url})")
            return self.db.get_source(existing.id)

        source_id = self.db.add_source(
            name=spec.name,
            url=spec.url,
            feed_url=spec.feed_url,
            fetch_interval_minutes=spec.fetch_interval_minutes or self.default_interval_minutes,
        )
        logger.info(f"Registered source {spec.name} ({spec.feed_url})")
        return self.db.get_source(source_id)

    def deactivate(self, source_id: int) -> DBSource:
        """Soft-delete a source. Raises NotFound for unknown IDs."""
        if not self.db.set_source_active(source_id, False):
            raise NotFound("Source not found")
        logger.info(f"Deactivated source {source_id}")
        return self.db.get_source(source_id)

    def active_sources(self) -> list[DBSource]:
        return self.db.get_sources(active_only=True)

    def seed(self, opml_path: str | None = None) -> int:
        """
        Populate an empty registry.

        Uses the OPML file when given and readable, otherwise DEFAULT_SOURCES.
        Returns the number of sources registered.
        """
        if self.db.sources.count() > 0:
            return 0

        specs = DEFAULT_SOURCES
        if opml_path:
            path = Path(opml_path)
            try:
                specs = parse_opml(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load sources from {path}: {e}; using defaults")
                specs = DEFAULT_SOURCES

        for spec in specs:
            self.register(spec)
        logger.info(f"Seeded source registry with {len(specs)} sources")
        return len(specs)

    def import_opml(self, xml_content: str) -> list[DBSource]:
        """Register every feed in an OPML document."""
        return [self.register(spec) for spec in parse_opml(xml_content)]

    def export_opml(self) -> str:
        return generate_opml(self.db.get_sources(active_only=True))

    def update(
        self,
        source_id: int,
        name: str | None = None,
        fetch_interval_minutes: int | None = None,
    ) -> DBSource:
        """Rename a source or change its fetch interval."""
        require_source(self.db.get_source(source_id))
        self.db.sources.update(source_id, name=name, fetch_interval_minutes=fetch_interval_minutes)
        return self.db.get_source(source_id)


def spec_for_feed(
    feed_url: str,
    name: str | None = None,
    url: str | None = None,
    fetch_interval_minutes: int | None = None,
) -> SourceSpec:
    """Build a SourceSpec, deriving missing name and site URL from the feed URL."""
    feed_url = feed_url.strip()
    parsed = urlparse(feed_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInput(f"Feed URL must be an absolute http(s) URL: {feed_url}")
    host = parsed.netloc.lower()
    return SourceSpec(
        name=(name or "").strip() or (host[4:] if host.startswith("www.") else host),
        url=url or site_origin(feed_url),
        feed_url=feed_url,
        fetch_interval_minutes=fetch_interval_minutes,
    )
