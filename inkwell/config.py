"""Site configuration for Inkwell.

This module loads the global settings file (``_config.yml``) and the
optional data files under ``_data/``. Configuration is read once at the
start of a build and is immutable for the rest of it.

Key objects:
- SiteConfig: Frozen dataclass with the validated settings.
- MarkdownEngine: The Markdown dialects a site may select.
- load_config: Parse and validate ``_config.yml``.
- load_data: Merge ``_data/*.yml`` files into a single mapping.
- theme_dir: Locate a theme by name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .content import DEFAULT_EXCLUDE
from .errors import ConfigError
from .permalinks import UnknownTokenError, resolve_pattern

CONFIG_FILENAME = "_config.yml"

REQUIRED_KEYS = ("theme", "markdown", "permalink")

DEFAULT_CONFIG = {
    "title": "",
    "description": "",
    "url": "",
    "baseurl": "",
    "output_dir": "_site",
    "port": 4000,
    "ws_port": None,
    "exclude": list(DEFAULT_EXCLUDE),
}

# Bundled themes shipped inside the package
THEMES_DIR = Path(__file__).parent / "themes"


class MarkdownEngine(str, Enum):
    """Markdown dialects understood by the renderer."""

    KRAMDOWN = "kramdown"
    GFM = "gfm"
    MISTUNE = "mistune"


@dataclass(frozen=True)
class SiteConfig:
    """Validated global settings for one build.

    Attributes:
        theme: Theme name; layouts not found in the project come from it.
        markdown: Markdown engine used for every unit in the build.
        permalink: Expanded permalink pattern for posts.
        title: Site title.
        description: Site description, used by themes and feeds.
        url: Absolute site URL (scheme and host), used by feeds.
        baseurl: Path prefix the site is served under.
        output_dir: Output directory name relative to the project root.
        port: Preview server HTTP port.
        ws_port: Preview server live reload port (defaults to port + 1).
        exclude: Glob patterns of files that are never pages.
        extra: Every other key from the settings file.
    """

    theme: str
    markdown: MarkdownEngine
    permalink: str
    title: str = ""
    description: str = ""
    url: str = ""
    baseurl: str = ""
    output_dir: str = "_site"
    port: int = 4000
    ws_port: int | None = None
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE
    extra: dict[str, Any] = field(default_factory=dict)

    def as_context(self) -> dict[str, Any]:
        """Return the settings as a flat mapping for templates."""
        context = dict(self.extra)
        context.update(
            {
                "theme": self.theme,
                "markdown": self.markdown.value,
                "permalink": self.permalink,
                "title": self.title,
                "description": self.description,
                "url": self.url,
                "baseurl": self.baseurl,
            }
        )
        return context


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from _config.yml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Validated SiteConfig with defaults applied.

    Raises:
        ConfigError: If the file is missing, unreadable, not a mapping,
            lacks a required key, or holds an invalid value.
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        raise ConfigError(config_path, "Configuration file not found")
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigError(config_path, f"Invalid YAML: {exc}", exc) from exc
    if not isinstance(loaded, dict):
        raise ConfigError(config_path, "Configuration must be a mapping of keys")

    missing = [key for key in REQUIRED_KEYS if not loaded.get(key)]
    if missing:
        raise ConfigError(
            config_path, f"Missing required key(s): {', '.join(missing)}"
        )

    values = DEFAULT_CONFIG.copy()
    values.update(loaded)
    if "destination" in loaded and "output_dir" not in loaded:
        values["output_dir"] = loaded["destination"]

    theme = str(values["theme"])
    if theme_dir(project_root, theme) is None:
        raise ConfigError(config_path, f"Unknown theme: {theme}")

    try:
        engine = MarkdownEngine(str(values["markdown"]).lower())
    except ValueError as exc:
        choices = ", ".join(e.value for e in MarkdownEngine)
        raise ConfigError(
            config_path,
            f"Unknown markdown engine '{values['markdown']}' (expected one of: {choices})",
            exc,
        ) from exc

    try:
        permalink = resolve_pattern(str(values["permalink"]))
    except UnknownTokenError as exc:
        raise ConfigError(config_path, str(exc), exc) from exc

    try:
        port = int(values["port"])
        ws_port = int(values["ws_port"]) if values["ws_port"] is not None else None
    except (TypeError, ValueError) as exc:
        raise ConfigError(config_path, f"Ports must be integers: {exc}", exc) from exc

    exclude = values["exclude"]
    if isinstance(exclude, str):
        exclude = [exclude]
    if not isinstance(exclude, list):
        raise ConfigError(config_path, "exclude must be a list of patterns")

    known = set(DEFAULT_CONFIG) | set(REQUIRED_KEYS) | {"destination"}
    extra = {k: v for k, v in loaded.items() if k not in known}
    return SiteConfig(
        theme=theme,
        markdown=engine,
        permalink=permalink,
        title=str(values["title"] or ""),
        description=str(values["description"] or ""),
        url=str(values["url"] or "").rstrip("/"),
        baseurl=_normalize_baseurl(str(values["baseurl"] or "")),
        output_dir=str(values["output_dir"]),
        port=port,
        ws_port=ws_port,
        exclude=tuple(str(p) for p in exclude),
        extra=extra,
    )


def _normalize_baseurl(baseurl: str) -> str:
    stripped = baseurl.strip("/")
    return f"/{stripped}" if stripped else ""


def theme_dir(project_root: Path, name: str) -> Path | None:
    """Locate a theme directory by name.

    Project-local themes under ``_themes/<name>`` win over bundled ones.

    Args:
        project_root: Root directory of the project.
        name: Theme name from the configuration.

    Returns:
        Path to the theme directory, or None if no such theme exists.
    """
    if not name or "/" in name or "\\" in name or name.startswith("."):
        return None
    for base in (project_root / "_themes", THEMES_DIR):
        candidate = base / name
        if (candidate / "_layouts").is_dir():
            return candidate
    return None


def load_data(project_root: Path) -> dict[str, Any]:
    """Load site data from YAML files in the _data directory.

    Args:
        project_root: Root directory of the project.

    Returns:
        Mapping of file stem to parsed payload.

    Raises:
        ConfigError: If a data file is not valid YAML.
    """
    data_dir = project_root / "_data"
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    paths = sorted([*data_dir.glob("*.yml"), *data_dir.glob("*.yaml")])
    for path in paths:
        try:
            with open(path, encoding="utf-8") as f:
                payload = yaml.safe_load(f)
        except (yaml.YAMLError, ValueError) as exc:
            raise ConfigError(path, f"Invalid YAML: {exc}", exc) from exc
        data[path.stem] = payload if payload is not None else {}
    return data
