"""Body renderers for Inkwell.

This module converts the body of a content unit to HTML. Markdown goes
through mistune, configured for the dialect the site selected; HTML
bodies pass through unchanged. Rendering is a pure function of the input
text, so the same body always yields the same HTML.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with syntax highlighting.
- HTMLRenderer: Passes through HTML content.
- RendererRegistry: Picks the renderer for a source file.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .config import MarkdownEngine
from .html_utils import join_root_url
from .utils import is_html, is_markdown

IMAGES_PREFIX = "/assets/images/"

ENGINE_PLUGINS = {
    MarkdownEngine.KRAMDOWN: [
        "strikethrough",
        "footnotes",
        "table",
        "url",
        "def_list",
        "abbr",
    ],
    MarkdownEngine.GFM: ["strikethrough", "table", "url", "task_lists"],
    MarkdownEngine.MISTUNE: [],
}


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text (may contain inline HTML).

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-") or "section"


def _rewrite_image_path(src: str, baseurl: str = "") -> str:
    """Point relative image sources at the shared images directory.

    Args:
        src: Original image source.
        baseurl: Path prefix the site is served under.

    Returns:
        Rewritten image source path.
    """
    if not src or src.startswith(("http://", "https://", "//", "/", "data:")) or "{{" in src:
        return src
    return join_root_url(baseurl, f"{IMAGES_PREFIX}{src.removeprefix('./')}")


class _HighlightRenderer(mistune.HTMLRenderer):
    """mistune renderer with heading anchors, image rewriting and Pygments."""

    def __init__(self, baseurl: str = ""):
        super().__init__(escape=False)
        self._baseurl = baseurl
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def image(self, text: str, url: str | None = None, title: str | None = None) -> str:
        return super().image(text, _rewrite_image_path(url or "", self._baseurl), title)

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a fenced code block, highlighted when the language is known."""
        lang = info.split()[0] if info and info.strip() else None
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{lang}"' if lang else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML for one engine.

    Attributes:
        engine: The Markdown dialect in use.
        baseurl: Prefix for rewritten image paths.
    """

    source_type = "markdown"

    def __init__(self, engine: MarkdownEngine = MarkdownEngine.KRAMDOWN, baseurl: str = ""):
        self.engine = engine
        self.baseurl = baseurl

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, content: str) -> str:
        """Render Markdown content to HTML.

        A fresh mistune parser is built per call so heading IDs never leak
        between documents.
        """
        renderer = _HighlightRenderer(self.baseurl)
        markdown = mistune.create_markdown(
            renderer=renderer, plugins=ENGINE_PLUGINS[self.engine]
        )
        return markdown(content)


class HTMLRenderer:
    """Passes through HTML content unchanged."""

    source_type = "html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str) -> str:
        return content


class RendererRegistry:
    """Registry of body renderers, checked in registration order."""

    def __init__(self, engine: MarkdownEngine = MarkdownEngine.KRAMDOWN, baseurl: str = ""):
        self._renderers: list = []
        self.register(MarkdownRenderer(engine, baseurl))
        self.register(HTMLRenderer())

    def register(self, renderer) -> None:
        self._renderers.append(renderer)

    def get_renderer(self, path: Path):
        """Return the first renderer that can handle ``path``, or None."""
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None
