"""Content loading for Inkwell.

This module discovers content files in a project and parses them into
immutable ContentUnit objects. It does not render anything: Markdown
conversion and layout substitution happen in the build step.

Key classes:
- ContentUnit: Frozen dataclass for one post or page.
- Layout: The layouts a unit may name.
- FileContentLoader: Finds post, draft and page files on disk.
- ContentStore: Read-only view of the content collection (list_posts,
  list_pages, load_unit).

Project conventions:
- ``_posts/YYYY-MM-DD-slug.md`` are posts, ``_drafts/*.md`` are drafts.
- Any other Markdown file outside ``_``/``.`` directories is a page, as is
  any HTML file that starts with a frontmatter block. HTML files without
  frontmatter are static files copied as they are.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import ParseError
from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .utils import is_html, is_internal_path, is_markdown, slugify, split_date_prefix, titleize

POSTS_DIR = "_posts"
DRAFTS_DIR = "_drafts"

DEFAULT_EXCLUDE = ("README.md", "LICENSE.md", "CHANGELOG.md", "node_modules", "vendor")


class Layout(str, Enum):
    """Layouts a content unit may reference."""

    POST = "post"
    PAGE = "page"
    HOME = "home"
    ABOUT = "about"


POST = "post"
PAGE = "page"


@dataclass(frozen=True)
class ContentUnit:
    """One post or page of the site.

    Attributes:
        title: Human-readable title.
        date: Publication date (wall-clock, naive); None for undated pages.
        layout: Layout name from frontmatter or the default for the kind.
        categories: Ordered, de-duplicated category names.
        body: Raw Markdown (or HTML) after the frontmatter block.
        source_path: Path relative to the project root.
        slug: URL slug from the filename (or frontmatter ``slug``).
        kind: "post" or "page".
        excerpt: Plain-text first paragraph.
        draft: Whether the unit comes from ``_drafts``.
        permalink: Explicit URL from frontmatter, overriding the pattern.
        frontmatter: The full frontmatter mapping.
    """

    title: str
    date: datetime | None
    layout: str
    categories: tuple[str, ...]
    body: str
    source_path: Path
    slug: str
    kind: str
    excerpt: str = ""
    draft: bool = False
    permalink: str | None = None
    frontmatter: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_post(self) -> bool:
        return self.kind == POST

    @property
    def is_markdown(self) -> bool:
        return is_markdown(self.source_path)


@dataclass(frozen=True)
class SitePage:
    """A content unit placed in the site: its URL and converted body.

    Templates see SitePage objects; unknown attributes are looked up on the
    underlying unit, so ``page.title`` and ``page.url`` both work.
    """

    unit: ContentUnit
    url: str
    content: str

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name == "unit":
            raise AttributeError(name)
        try:
            return getattr(self.unit, name)
        except AttributeError:
            return self.unit.frontmatter.get(name)


class FileContentLoader:
    """Finds content files under a project root.

    Attributes:
        project_root: Root directory of the project.
        exclude: Glob patterns (relative paths) that are never content.
    """

    def __init__(self, project_root: Path, exclude: tuple[str, ...] = DEFAULT_EXCLUDE):
        self.project_root = project_root
        self.exclude = tuple(exclude)

    def post_files(self, include_drafts: bool = False) -> list[Path]:
        """Return Markdown and HTML files in _posts (and _drafts if requested)."""
        folders = [POSTS_DIR] + ([DRAFTS_DIR] if include_drafts else [])
        files: list[Path] = []
        for folder in folders:
            root = self.project_root / folder
            if not root.is_dir():
                continue
            for path in sorted(root.rglob("*")):
                if path.is_dir() or path.name.startswith("."):
                    continue
                if is_markdown(path) or is_html(path):
                    files.append(path)
        return files

    def page_files(self) -> list[Path]:
        """Return candidate page files outside internal directories."""
        files: list[Path] = []
        for path in sorted(self.project_root.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.project_root)
            if is_internal_path(rel) or self.is_excluded(rel):
                continue
            if is_markdown(path) or is_html(path):
                files.append(path)
        return files

    def is_excluded(self, rel: Path) -> bool:
        """Check a relative path against the exclude patterns."""
        candidates = [rel.as_posix(), *(p.as_posix() for p in rel.parents if p.parts)]
        for pattern in self.exclude:
            pattern = pattern.strip("/")
            if any(fnmatch.fnmatch(candidate, pattern) for candidate in candidates):
                return True
        return False


class ContentStore:
    """Read-only view over a project's posts and pages.

    Every call reads the files afresh; the store keeps no state between
    builds. Any unit that cannot be parsed raises ParseError rather than
    being skipped, since a missing or mis-sorted post is a broken site.

    Attributes:
        project_root: Root directory of the project.
        include_drafts: Whether ``_drafts`` are part of list_posts().
    """

    def __init__(
        self,
        project_root: Path,
        include_drafts: bool = False,
        exclude: tuple[str, ...] = DEFAULT_EXCLUDE,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.project_root = project_root
        self.include_drafts = include_drafts
        self._loader = FileContentLoader(project_root, exclude)
        self._extractor = metadata_extractor or default_metadata_extractor

    def list_posts(self) -> list[ContentUnit]:
        """Return every post sorted by date, newest first.

        Ties on date are broken by source path (descending) so the order
        is total and repeatable.

        Raises:
            ParseError: If any post is malformed or lacks a title or date.
        """
        units = [self.load_unit(path) for path in self._loader.post_files(self.include_drafts)]
        return sorted(
            units, key=lambda u: (u.date, u.source_path.as_posix()), reverse=True
        )

    def list_pages(self) -> list[ContentUnit]:
        """Return every page with a layout, sorted by source path."""
        pages = []
        for path in self._loader.page_files():
            unit = self._load_page(path)
            if unit is not None:
                pages.append(unit)
        return pages

    def list_static_files(self) -> list[Path]:
        """Return HTML files without frontmatter, relative to the project root."""
        static = []
        for path in self._loader.page_files():
            if is_html(path) and self._load_page(path) is None:
                static.append(path.relative_to(self.project_root))
        return static

    def load_unit(self, source_path: Path | str) -> ContentUnit:
        """Parse one content file into a ContentUnit.

        Args:
            source_path: Path relative to the project root, or absolute.

        Returns:
            The parsed unit.

        Raises:
            ParseError: If the frontmatter is missing (posts), malformed, or
                lacks a required field, or the file cannot be read.
        """
        path = Path(source_path)
        if not path.is_absolute():
            path = self.project_root / path
        rel = path.relative_to(self.project_root)
        if rel.parts and rel.parts[0] in (POSTS_DIR, DRAFTS_DIR):
            return self._build_post(path, rel, draft=rel.parts[0] == DRAFTS_DIR)
        unit = self._load_page(path)
        if unit is None:
            raise ParseError(rel, "HTML file has no frontmatter; it is a static file")
        return unit

    def _read(self, path: Path, rel: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseError(rel, f"Cannot read file: {exc}", exc) from exc

    def _build_post(self, path: Path, rel: Path, draft: bool) -> ContentUnit:
        meta = self._extractor.extract(self._read(path, rel), rel)
        frontmatter = meta["frontmatter"]
        if frontmatter is None:
            raise ParseError(rel, "Post has no frontmatter block")
        title = frontmatter.get("title")
        if title is None or not str(title).strip():
            raise ParseError(rel, "Post is missing required field: title")
        date = meta.get("date")
        if date is None:
            if not draft:
                raise ParseError(rel, "Post is missing required field: date")
            date = datetime.fromtimestamp(path.stat().st_mtime).replace(microsecond=0)
        return self._make_unit(meta, rel, kind=POST, date=date, draft=draft)

    def _load_page(self, path: Path) -> ContentUnit | None:
        rel = path.relative_to(self.project_root)
        meta = self._extractor.extract(self._read(path, rel), rel)
        if meta["frontmatter"] is None and is_html(path):
            return None
        return self._make_unit(meta, rel, kind=PAGE, date=meta.get("date"), draft=False)

    def _make_unit(
        self,
        meta: dict[str, Any],
        rel: Path,
        kind: str,
        date: datetime | None,
        draft: bool,
    ) -> ContentUnit:
        frontmatter = meta["frontmatter"] or {}
        title = meta.get("title") or titleize(rel.name)
        layout = frontmatter.get("layout")
        if layout is None:
            layout = self._default_layout(rel, kind)
        slug = frontmatter.get("slug")
        if slug is None:
            _, remainder = split_date_prefix(rel.stem)
            slug = remainder or rel.stem
        permalink = frontmatter.get("permalink")
        return ContentUnit(
            title=str(title),
            date=date,
            layout=str(layout),
            categories=meta.get("categories", ()),
            body=meta["body"],
            source_path=rel,
            slug=slugify(str(slug)),
            kind=kind,
            excerpt=meta.get("excerpt", ""),
            draft=draft,
            permalink=str(permalink) if permalink else None,
            frontmatter=frontmatter,
        )

    @staticmethod
    def _default_layout(rel: Path, kind: str) -> str:
        if kind == POST:
            return Layout.POST.value
        if rel.parent == Path(".") and rel.stem == "index":
            return Layout.HOME.value
        return Layout.PAGE.value
