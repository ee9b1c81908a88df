"""Feed generation for Inkwell.

This module writes the machine-readable companions of a built site:
an RSS feed of posts and a sitemap of every HTML page. Both need absolute
URLs, so they are skipped when the site has no ``url`` configured.

Output only depends on the rendered pages, never on the wall clock, so
two builds of the same content produce identical feeds.

Classes:
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml.
    RSSGenerator: Generates feed.xml (RSS 2.0).
    FeedRegistry: Runs every registered generator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from .html_utils import escape_html

if TYPE_CHECKING:
    from .build import RenderedPage
    from .config import SiteConfig

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

FEED_LIMIT = 20


def _rfc822(value) -> str:
    # strftime %a/%b follow the process locale; feeds must not
    return (
        f"{_WEEKDAYS[value.weekday()]}, {value.day:02d} {_MONTHS[value.month - 1]} "
        f"{value.year:04d} {value.hour:02d}:{value.minute:02d}:{value.second:02d} +0000"
    )


def _site_base(config: SiteConfig) -> str:
    return f"{config.url}{config.baseurl}" if config.url else ""


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(self, pages: list[RenderedPage], config: SiteConfig) -> str | None:
        """Generate feed content, or None when the feed cannot be built."""
        ...

    def write(self, output_dir: Path, pages: list[RenderedPage], config: SiteConfig) -> bool:
        """Generate and write the feed.

        Returns:
            True if the feed was written, False if skipped.
        """
        content = self.generate(pages, config)
        if content is None:
            return False
        (output_dir / self.filename).write_text(content, encoding="utf-8")
        return True


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml listing every HTML page."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, pages: list[RenderedPage], config: SiteConfig) -> str | None:
        base_url = _site_base(config)
        if not base_url:
            return None
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for page in sorted(pages, key=lambda p: p.url):
            if not page.is_html:
                continue
            loc = escape_html(f"{base_url}{page.url}")
            if page.unit is not None and page.unit.date is not None:
                lastmod = page.unit.date.strftime("%Y-%m-%d")
                lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
            else:
                lines.append(f"  <url><loc>{loc}</loc></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed of the newest posts."""

    @property
    def filename(self) -> str:
        return "feed.xml"

    def generate(self, pages: list[RenderedPage], config: SiteConfig) -> str | None:
        base_url = _site_base(config)
        if not base_url:
            return None
        posts = [p for p in pages if p.unit is not None and p.unit.is_post]
        posts.sort(
            key=lambda p: (p.unit.date, p.unit.source_path.as_posix()), reverse=True
        )
        posts = posts[:FEED_LIMIT]

        title = escape_html(config.title or "Feed")
        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{title}</title>",
            f"<link>{escape_html(base_url)}/</link>",
            f"<description>{escape_html(config.description or config.title)}</description>",
        ]
        if posts:
            rss.append(f"<lastBuildDate>{_rfc822(posts[0].unit.date)}</lastBuildDate>")
        for page in posts:
            unit = page.unit
            link = escape_html(f"{base_url}{page.url}")
            categories = "".join(
                f"<category>{escape_html(name)}</category>" for name in unit.categories
            )
            rss.append(
                f"<item><title>{escape_html(unit.title)}</title><link>{link}</link>"
                f"<guid>{link}</guid>"
                f"<description>{escape_html(unit.excerpt or unit.title)}</description>"
                f"{categories}<pubDate>{_rfc822(unit.date)}</pubDate></item>"
            )
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry for managing feed generators."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self, output_dir: Path, pages: Iterable[RenderedPage], config: SiteConfig
    ) -> list[str]:
        """Generate all registered feeds.

        Returns:
            List of filenames that were written.
        """
        pages_list = list(pages)
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, pages_list, config):
                generated.append(generator.filename)
        return generated


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
