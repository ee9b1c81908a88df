"""Template rendering engine for Inkwell.

This module uses Jinja2 to substitute converted bodies and frontmatter
fields into layouts. Layouts are looked up in the project's ``_layouts``
and ``_includes`` first, then in the theme's, so a project can override
any theme file by name.

Key objects:
- TemplateEngine: Builds the Jinja2 environment and renders SitePages.
- ListingEntry: One line of the home page listing.
- listing_entries: The newest N posts as ListingEntry objects.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup
from pygments.formatters import HtmlFormatter

from .collections import CategoryCollection, PostCollection
from .config import SiteConfig
from .content import Layout, SitePage
from .errors import TemplateError
from .html_utils import join_root_url
from .utils import format_date, slugify

HOME_POST_LIMIT = 5

__all__ = ["HOME_POST_LIMIT", "ListingEntry", "TemplateEngine", "listing_entries"]


@dataclass(frozen=True)
class ListingEntry:
    """A post as it appears in the home page listing.

    Attributes:
        url: Root-relative URL of the post.
        title: Post title.
        date_label: Date as "Month DD, YYYY".
        excerpt: Plain-text first paragraph.
    """

    url: str
    title: str
    date_label: str
    excerpt: str = ""


def listing_entries(
    posts: Iterable[SitePage], limit: int = HOME_POST_LIMIT
) -> list[ListingEntry]:
    """Return the first ``limit`` posts as listing entries.

    Args:
        posts: Posts already ordered newest first.
        limit: Maximum number of entries.

    Returns:
        Up to ``limit`` ListingEntry objects in the given order.
    """
    entries = []
    for post in posts:
        if len(entries) >= limit:
            break
        entries.append(
            ListingEntry(
                url=post.url,
                title=post.title,
                date_label=format_date(post.date),
                excerpt=post.excerpt,
            )
        )
    return entries


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Site configuration.
        data: Merged ``_data`` files.
        env: Jinja2 environment.
        posts: All posts, newest first.
        categories: Posts grouped by category.
        latest_posts: Home page listing entries.
    """

    def __init__(
        self,
        project_root: Path,
        config: SiteConfig,
        theme_root: Path,
        data: dict[str, Any] | None = None,
    ):
        """Initialize the template engine.

        Args:
            project_root: Root directory of the project.
            config: Site configuration.
            theme_root: Directory of the selected theme.
            data: Global site data.
        """
        self.config = config
        self.data = data or {}
        self.env = Environment(
            loader=FileSystemLoader(
                [
                    project_root / "_layouts",
                    project_root / "_includes",
                    theme_root / "_layouts",
                    theme_root / "_includes",
                ]
            ),
            autoescape=select_autoescape(["html", "xml"]),
            keep_trailing_newline=True,
        )
        self.posts = PostCollection([])
        self.categories = CategoryCollection([])
        self.latest_posts: list[ListingEntry] = []
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["url_for"] = self._relative_url
        self.env.globals["pygments_css"] = self._pygments_css
        self.env.filters["date_to_string"] = self._date_to_string
        self.env.filters["relative_url"] = self._relative_url
        self.env.filters["absolute_url"] = self._absolute_url
        self.env.filters["slugify"] = slugify

    @staticmethod
    def _pygments_css() -> Markup:
        """Return Pygments CSS styles for the .highlight class."""
        return Markup(HtmlFormatter().get_style_defs(".highlight"))

    @staticmethod
    def _date_to_string(value: date | datetime | None) -> str:
        if value is None:
            return ""
        return format_date(value)

    def _relative_url(self, path: str) -> str:
        """Prefix a root-relative path with the configured baseurl."""
        if path.startswith(("http://", "https://", "//", "#", "mailto:")):
            return path
        return join_root_url(self.config.baseurl, path)

    def _absolute_url(self, path: str) -> str:
        """Turn a path into a full URL using the configured site url."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return join_root_url(self.config.url, self._relative_url(path))

    def update_collections(self, posts: Iterable[SitePage]) -> None:
        """Install the post collections shared by every page.

        Args:
            posts: All posts, newest first.
        """
        self.posts = PostCollection(posts)
        self.categories = CategoryCollection(self.posts)
        self.latest_posts = listing_entries(self.posts)

    def site_context(self) -> dict[str, Any]:
        """Return the ``site`` variable passed to every template."""
        site = self.config.as_context()
        site.update(
            {
                "data": self.data,
                "posts": self.posts,
                "categories": self.categories,
            }
        )
        return site

    def render_page(self, page: SitePage) -> str:
        """Render a page through its layout.

        Args:
            page: Page to render.

        Returns:
            Rendered HTML string.

        Raises:
            TemplateError: If the layout is unknown or has no template.
            jinja2.TemplateError: If the template is malformed or fails.
        """
        template = self.layout_template(page.layout, page.source_path)
        return template.render(
            site=self.site_context(),
            page=page,
            content=Markup(page.content),
            latest_posts=self.latest_posts,
        )

    def layout_template(self, layout: str, source_path: Path | None = None):
        """Resolve a layout name to its Jinja2 template.

        Raises:
            TemplateError: If the name is not a known layout or no template
                file exists for it in the project or the theme.
        """
        try:
            name = Layout(layout).value
        except ValueError as exc:
            choices = ", ".join(item.value for item in Layout)
            raise TemplateError(
                source_path,
                f"Unknown layout '{layout}' (expected one of: {choices})",
                exc,
            ) from exc
        template_name = f"{name}.html"
        try:
            return self.env.get_template(template_name)
        except TemplateNotFound as exc:
            raise TemplateError(
                source_path, f"Layout template not found: {template_name}", exc
            ) from exc
