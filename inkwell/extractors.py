"""Metadata extractors for Inkwell.

This module turns the raw text of a content file into the metadata a
ContentUnit needs. Frontmatter parsing is strict: a malformed block is a
ParseError rather than silently treated as body text.

Key classes:
- TitleExtractor: Title from frontmatter, falling back to the first heading.
- DateExtractor: Date from frontmatter, falling back to the filename prefix.
- CategoryExtractor: Categories from ``categories`` and ``category`` keys.
- ExcerptExtractor: Plain-text first paragraph.
- CompositeMetadataExtractor: Runs all extractors and merges their results.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .errors import ParseError
from .utils import first_heading, first_paragraph, split_date_prefix

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def extract_frontmatter(text: str, path: Path) -> tuple[dict[str, Any] | None, str]:
    """Split YAML frontmatter from the body of a content file.

    Args:
        text: Raw file content.
        path: Path to the source file, for error context.

    Returns:
        Tuple of (frontmatter dict or None when there is no block, body).

    Raises:
        ParseError: If the block is unterminated, invalid YAML, or not a mapping.
    """
    text = text.lstrip("\ufeff")
    match = FRONTMATTER_RE.match(text)
    if not match:
        if re.match(r"\A---[ \t]*\r?\n", text):
            raise ParseError(path, "Unterminated frontmatter block (missing closing ---)")
        return None, text
    try:
        data = yaml.safe_load(match.group(1))
    except (yaml.YAMLError, ValueError) as exc:
        # ValueError: a timestamp-shaped value that is not a calendar date
        raise ParseError(path, f"Invalid frontmatter YAML: {exc}", exc) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError(path, "Frontmatter must be a mapping of keys to values")
    return data, text[match.end() :]


def parse_date(value: Any, path: Path) -> datetime:
    """Normalize a frontmatter date value to a naive datetime.

    Timezone offsets are dropped after parsing so the wall-clock time the
    author wrote is what ends up in URLs and listings.

    Args:
        value: A date, datetime or string from YAML.
        path: Path to the source file, for error context.

    Returns:
        Naive datetime.

    Raises:
        ParseError: If the value is not a recognizable date.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            pass
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).replace(tzinfo=None)
            except ValueError:
                continue
    raise ParseError(path, f"Unparsable date: {value!r}")


class TitleExtractor:
    """Extracts the title from frontmatter or the first level-1 heading."""

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        title = frontmatter.get("title")
        if title is not None and str(title).strip():
            return {"title": str(title).strip()}
        return {"title": first_heading(body)}


class DateExtractor:
    """Extracts the date from frontmatter, falling back to the filename.

    A frontmatter date always wins; it is an error for it to be unparsable.
    Files named ``YYYY-MM-DD-slug`` supply their prefix when frontmatter
    has no date.
    """

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        if frontmatter.get("date") is not None:
            return {"date": parse_date(frontmatter["date"], path)}
        prefix_date, _ = split_date_prefix(path.stem)
        return {"date": prefix_date}


class CategoryExtractor:
    """Merges ``categories`` (list or space-separated string) and ``category``."""

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        raw: list[str] = []
        categories = frontmatter.get("categories")
        if isinstance(categories, str):
            raw.extend(categories.split())
        elif isinstance(categories, (list, tuple)):
            raw.extend(str(c) for c in categories if c is not None)
        elif categories is not None:
            raise ParseError(path, "categories must be a list or a string")
        single = frontmatter.get("category")
        if single is not None:
            raw.append(str(single))
        seen: list[str] = []
        for name in raw:
            name = name.strip()
            if name and name not in seen:
                seen.append(name)
        return {"categories": tuple(seen)}


class ExcerptExtractor:
    """Extracts the first prose paragraph as a plain-text excerpt."""

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        excerpt = frontmatter.get("excerpt")
        if excerpt is not None:
            return {"excerpt": str(excerpt).strip()}
        return {"excerpt": first_paragraph(body)}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Runs every registered extractor over the parsed frontmatter and body,
    merging their results. Later extractors can override earlier ones.
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                TitleExtractor(),
                DateExtractor(),
                CategoryExtractor(),
                ExcerptExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        """Add an extractor to the composite."""
        self._extractors.append(extractor)

    def extract(self, text: str, path: Path) -> dict[str, Any]:
        """Parse the frontmatter of ``text`` and run all extractors.

        Returns:
            Dictionary with ``frontmatter`` (None when the file has no
            block), ``body`` and every extractor's keys.
        """
        frontmatter, body = extract_frontmatter(text, path)
        result: dict[str, Any] = {"frontmatter": frontmatter, "body": body}
        for extractor in self._extractors:
            result.update(extractor.extract(frontmatter or {}, body, path))
        return result


default_metadata_extractor = CompositeMetadataExtractor()
