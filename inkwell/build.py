"""Site building functionality for Inkwell.

This module turns a project into a static site. A build is one synchronous
batch: load the configuration, read every content unit, render every page
in memory, and only then write the output. Output is assembled in a
staging directory and swapped into place at the end, so a failed build
never leaves a half-written site behind.

Key functions:
- render_site: Render content units into RenderedPage objects (no I/O
  besides reading templates).
- build_site: Full build from a project root to the output directory.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import TemplateSyntaxError

from .assets import ASSETS_DIR, AssetPipeline
from .config import CONFIG_FILENAME, SiteConfig, load_config, load_data, theme_dir
from .content import PAGE, ContentStore, ContentUnit, Layout, SitePage
from .errors import ConfigError, ParseError, TemplateError
from .feeds import create_default_feed_registry
from .permalinks import expand, url_for_page
from .renderers import RendererRegistry
from .templates import TemplateEngine
from .utils import ensure_clean_dir

# Output file of the site root; a page written here is the home page
HOME_OUTPUT = PurePosixPath("index.html")


@dataclass(frozen=True)
class RenderedPage:
    """One file of the built site.

    Attributes:
        url: Root-relative URL; a trailing slash means ``<url>/index.html``.
        html: Final page bytes (UTF-8).
        unit: The content unit the page came from, or None when generated.
    """

    url: str
    html: bytes
    unit: ContentUnit | None = None

    @property
    def source_path(self) -> Path | None:
        return self.unit.source_path if self.unit is not None else None

    @property
    def is_html(self) -> bool:
        return self.url.endswith(("/", ".html", ".htm"))

    def output_path(self) -> PurePosixPath:
        """Return the file path of this page relative to the output directory."""
        rel = self.url.lstrip("/")
        if not rel or rel.endswith("/"):
            rel = f"{rel}index.html"
        return PurePosixPath(rel)


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        pages: Every rendered page.
        output_dir: Directory where the site was built.
        config: Configuration the build used.
    """

    pages: list[RenderedPage]
    output_dir: Path
    config: SiteConfig


def unit_url(config: SiteConfig, unit: ContentUnit) -> str:
    """Compute the URL of a content unit.

    An explicit frontmatter ``permalink`` wins. Posts otherwise use the
    configured permalink pattern; pages derive their URL from their path.
    """
    if unit.permalink:
        url = unit.permalink if unit.permalink.startswith("/") else f"/{unit.permalink}"
    elif unit.is_post:
        url = expand(config.permalink, unit.date, unit.title, unit.slug, unit.categories)
    else:
        url = url_for_page(unit.source_path.as_posix())
    if ".." in PurePosixPath(url).parts:
        raise TemplateError(unit.source_path, f"URL escapes the output directory: {url}")
    return url


def render_site(
    config: SiteConfig,
    units: list[ContentUnit],
    project_root: Path,
    data: dict[str, Any] | None = None,
) -> list[RenderedPage]:
    """Render content units into pages.

    Every unit produces exactly one page. If no unit is written to the
    site root ``index.html``, a home page is rendered from the ``home``
    layout on its own.

    Args:
        config: Site configuration.
        units: Posts and pages to render.
        project_root: Root directory of the project (for layouts).
        data: Global site data.

    Returns:
        Rendered pages, posts first (newest first), then pages.

    Raises:
        TemplateError: If any page cannot be rendered, or two units share
            a URL.
    """
    theme_root = theme_dir(project_root, config.theme)
    if theme_root is None:
        raise ConfigError(project_root / CONFIG_FILENAME, f"Unknown theme: {config.theme}")
    registry = RendererRegistry(config.markdown, config.baseurl)
    engine = TemplateEngine(project_root, config, theme_root, data)

    posts = sorted(
        (u for u in units if u.is_post),
        key=lambda u: (u.date, u.source_path.as_posix()),
        reverse=True,
    )
    pages = sorted((u for u in units if not u.is_post), key=lambda u: u.source_path.as_posix())

    site_pages = [_place_unit(config, registry, unit) for unit in [*posts, *pages]]
    _check_unique_urls(site_pages)
    engine.update_collections(p for p in site_pages if p.is_post)

    rendered = [
        RenderedPage(url=page.url, html=_render(engine, page).encode("utf-8"), unit=page.unit)
        for page in site_pages
    ]
    if not any(page.output_path() == HOME_OUTPUT for page in rendered):
        home = _home_page(config)
        rendered.append(RenderedPage(url="/", html=_render(engine, home).encode("utf-8")))
    return rendered


def _place_unit(config: SiteConfig, registry: RendererRegistry, unit: ContentUnit) -> SitePage:
    renderer = registry.get_renderer(unit.source_path)
    if renderer is None:
        raise ParseError(unit.source_path, "Unsupported content file type")
    return SitePage(unit=unit, url=unit_url(config, unit), content=renderer.render(unit.body))


def _home_page(config: SiteConfig) -> SitePage:
    unit = ContentUnit(
        title=config.title or "Home",
        date=None,
        layout=Layout.HOME.value,
        categories=(),
        body="",
        source_path=Path("_layouts") / f"{Layout.HOME.value}.html",
        slug="index",
        kind=PAGE,
    )
    return SitePage(unit=unit, url="/", content="")


def _check_unique_urls(pages: list[SitePage]) -> None:
    seen: dict[PurePosixPath, Path] = {}
    for page in pages:
        key = RenderedPage(url=page.url, html=b"").output_path()
        if key in seen:
            raise TemplateError(
                page.source_path,
                f"URL {page.url} is already produced by {seen[key].as_posix()}",
            )
        seen[key] = page.source_path


def _render(engine: TemplateEngine, page: SitePage) -> str:
    try:
        return engine.render_page(page)
    except TemplateError:
        raise
    except TemplateSyntaxError as exc:
        raise TemplateError(
            page.source_path,
            f"Template syntax error in {exc.name or exc.filename} on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except Exception as exc:
        raise TemplateError(page.source_path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {error_msg}"
    return f"{error_type}: {error_msg}"


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include posts from ``_drafts``.
        output_dir_override: Write here instead of the configured output_dir.

    Returns:
        BuildResult containing all pages, the output directory and config.

    Raises:
        ConfigError: If the configuration is missing or invalid.
        ParseError: If any content unit is malformed.
        TemplateError: If any page cannot be rendered.
    """
    config = load_config(project_root)
    data = load_data(project_root)
    output_dir = output_dir_override or (project_root / config.output_dir)
    _check_output_dir(project_root, output_dir)

    store = ContentStore(
        project_root,
        include_drafts=include_drafts,
        exclude=(*config.exclude, ASSETS_DIR, *_output_patterns(project_root, output_dir)),
    )
    units = [*store.list_posts(), *store.list_pages()]
    static_files = store.list_static_files()
    pages = render_site(config, units, project_root, data)

    staging = output_dir.with_name(output_dir.name + ".staging")
    ensure_clean_dir(staging)
    try:
        for page in pages:
            _write_page(staging, page)
        for rel in static_files:
            dest = staging / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(project_root / rel, dest)
        create_default_feed_registry().generate_all(staging, pages, config)
        AssetPipeline(project_root, staging).run()
        _activate_staging(staging, output_dir)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    return BuildResult(pages=pages, output_dir=output_dir, config=config)


def _check_output_dir(project_root: Path, output_dir: Path) -> None:
    root = project_root.resolve()
    target = output_dir.resolve()
    if target == root or root.is_relative_to(target):
        raise ConfigError(
            project_root / CONFIG_FILENAME,
            f"Output directory {output_dir} would overwrite the project",
        )


def _output_patterns(project_root: Path, output_dir: Path) -> tuple[str, ...]:
    """Exclude patterns for the output tree and its staging siblings."""
    try:
        rel = output_dir.resolve().relative_to(project_root.resolve()).as_posix()
    except ValueError:
        return ()
    return (rel, f"{rel}.staging", f"{rel}.old")


def _write_page(output_dir: Path, page: RenderedPage) -> None:
    target = output_dir / page.output_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(page.html)


def _activate_staging(staging: Path, target: Path) -> None:
    """Swap the staging tree into place of the previous output."""
    backup = target.with_name(target.name + ".old")
    if backup.exists():
        shutil.rmtree(backup)
    if target.exists():
        os.replace(target, backup)
    os.replace(staging, target)
    if backup.exists():
        shutil.rmtree(backup)

