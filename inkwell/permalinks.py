"""Permalink patterns for Inkwell posts.

A permalink pattern is a URL template made of literal text and ``:token``
placeholders, e.g. ``/:year/:month/:day/:title/``. A handful of named
patterns (``date``, ``pretty``, ``none``) stand for common templates.

Tokens:
    :year        four-digit year
    :short_year  two-digit year
    :month       zero-padded month
    :i_month     month without padding
    :day         zero-padded day
    :i_day       day without padding
    :title       slug derived from the post title
    :slug        slug taken from the filename
    :categories  slugified categories joined by "/" (dropped when empty)
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime

from .utils import slugify

TOKEN_RE = re.compile(r":([a-z_]+)")

NAMED_PATTERNS = {
    "date": "/:categories/:year/:month/:day/:title.html",
    "pretty": "/:categories/:year/:month/:day/:title/",
    "none": "/:categories/:title.html",
}

TOKENS = frozenset(
    {"year", "short_year", "month", "i_month", "day", "i_day", "title", "slug", "categories"}
)


class UnknownTokenError(ValueError):
    """Raised when a pattern references a token that does not exist."""


def resolve_pattern(pattern: str) -> str:
    """Expand a named pattern and validate its tokens.

    Args:
        pattern: Named pattern or literal template.

    Returns:
        The literal template.

    Raises:
        UnknownTokenError: If the template uses an unknown token.
    """
    template = NAMED_PATTERNS.get(pattern.strip(), pattern.strip())
    unknown = sorted({t for t in TOKEN_RE.findall(template) if t not in TOKENS})
    if unknown:
        raise UnknownTokenError(
            f"Unknown permalink token(s): {', '.join(':' + t for t in unknown)}"
        )
    return template


def expand(
    template: str,
    date: datetime,
    title: str,
    slug: str,
    categories: Iterable[str] = (),
) -> str:
    """Fill a permalink template for one post.

    Args:
        template: Literal template (see resolve_pattern).
        date: Post date.
        title: Post title; its slug fills ``:title``.
        slug: Filename slug; fills ``:slug``.
        categories: Post categories in order.

    Returns:
        Root-relative URL with duplicate slashes collapsed.

    Examples:
        >>> expand("/:year/:month/:day/:title/", datetime(2025, 2, 5), "What the DER?", "der")
        '/2025/02/05/what-the-der/'
    """
    values = {
        "year": f"{date.year:04d}",
        "short_year": f"{date.year % 100:02d}",
        "month": f"{date.month:02d}",
        "i_month": str(date.month),
        "day": f"{date.day:02d}",
        "i_day": str(date.day),
        "title": slugify(title),
        "slug": slug or slugify(title),
        "categories": "/".join(slugify(c) for c in categories),
    }
    url = TOKEN_RE.sub(lambda m: values[m.group(1)], template)
    url = re.sub(r"/{2,}", "/", url)
    if not url.startswith("/"):
        url = f"/{url}"
    return url


def url_for_page(rel_path: str) -> str:
    """Derive the URL of a page from its path relative to the project root.

    ``index`` files map to their folder. Other Markdown files map to a pretty
    folder URL named after their slug; HTML files keep their file name.

    Examples:
        >>> url_for_page("index.md")
        '/'

        >>> url_for_page("docs/About Me.md")
        '/docs/about-me/'
    """
    parts = rel_path.replace("\\", "/").split("/")
    folders = [slugify(p) for p in parts[:-1] if p]
    stem, _, suffix = parts[-1].rpartition(".")
    if suffix.lower() in ("html", "htm") and stem != "index":
        return "/" + "/".join([*folders, parts[-1]])
    if stem != "index":
        folders.append(slugify(stem))
    path = "/".join(folders)
    return f"/{path}/" if path else "/"
