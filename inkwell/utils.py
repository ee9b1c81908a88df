"""Utility functions for Inkwell.

This module contains small string, date and path helpers used throughout
the Inkwell codebase.

Key functions:
    slugify: Convert titles and filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    split_date_prefix: Split a YYYY-MM-DD- prefix off a filename stem.
    format_date: Locale-invariant "Month DD, YYYY" date strings.
    first_paragraph: Plain-text excerpt of a Markdown body.
    is_markdown / is_html / is_internal_path: Source file classification.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
import unicodedata
from datetime import date, datetime
from pathlib import Path

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:-(.*))?$")


def slugify(name: str) -> str:
    """Convert a title or filename stem to a URL slug, dropping any date prefix.

    Args:
        name: Title text or filename stem.

    Returns:
        URL-friendly slug, or "index" when nothing usable remains.

    Examples:
        >>> slugify("What the DER?")
        'what-the-der'

        >>> slugify("2024-01-02-post-title")
        'post-title'
    """
    _, cleaned = split_date_prefix(name)
    cleaned = (
        unicodedata.normalize("NFKD", cleaned).encode("ascii", "ignore").decode("ascii")
    )
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Args:
        filename: Filename with or without extension.

    Returns:
        Human-readable title string.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    _, base = split_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def split_date_prefix(name: str) -> tuple[datetime | None, str]:
    """Split a YYYY-MM-DD- prefix off a filename stem.

    Args:
        name: Filename stem (without extension).

    Returns:
        Tuple of (date or None, remainder). An invalid calendar date such as
        2024-13-40 is treated as no prefix at all.

    Examples:
        >>> split_date_prefix("2025-02-05-what-the-der")
        (datetime(2025, 2, 5, 0, 0), 'what-the-der')
    """
    match = _DATE_PREFIX_RE.match(name)
    if not match:
        return None, name
    try:
        when = datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None, name
    return when, match.group(4) or ""


def format_date(value: date | datetime) -> str:
    """Format a date as "Month DD, YYYY" independent of the process locale.

    Examples:
        >>> format_date(datetime(2025, 2, 5))
        'February 05, 2025'
    """
    return f"{MONTH_NAMES[value.month - 1]} {value.day:02d}, {value.year:04d}"


def first_heading(text: str) -> str | None:
    """Return the text of the first level-1 Markdown heading, if any."""
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("# "):
            return stripped[2:].strip() or None
    return None


def first_paragraph(text: str, limit: int | None = None) -> str:
    """Extract the first prose paragraph from Markdown text as plain text.

    Headings, images, code fences, rules and raw HTML blocks are skipped.
    Inline Markdown emphasis and link syntax is flattened.

    Args:
        text: Markdown text content.
        limit: Optional maximum character length of the result.

    Returns:
        The first paragraph, or an empty string.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "```", "~~~", "---", "<", "{%", "|")):
            continue
        para = re.sub(r"!\[[^\]]*\]\([^)]*\)", "", para)
        para = re.sub(r"\[([^\]]+)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"[*_`]+", "", para)
        collapsed = " ".join(para.split())
        if limit is not None:
            return collapsed[:limit]
        return collapsed
    return ""


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file."""
    return path.suffix.lower() in (".md", ".markdown")


def is_html(path: Path) -> bool:
    """Check if a path is a plain HTML file."""
    return path.suffix.lower() in (".html", ".htm")


def is_internal_path(path: Path) -> bool:
    """Check if a path is internal (contains components starting with _ or .).

    Internal paths include layouts, includes, data, posts and drafts, which
    are read by dedicated loaders rather than treated as pages.

    Args:
        path: Path relative to the project root.

    Returns:
        True if any path component starts with an underscore or a dot.
    """
    return any(part.startswith(("_", ".")) for part in path.parts)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
