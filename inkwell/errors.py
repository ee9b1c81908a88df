"""Build errors for Inkwell.

Every failure that stops a build is raised as one of the classes below.
Each carries the file that caused it so the CLI can point the author at
the right place. The build never recovers from these: a site is either
built completely or not at all.

Classes:
    InkwellError: Base class with file context.
    ConfigError: Missing or invalid global settings.
    ParseError: Malformed frontmatter, missing required fields, bad dates.
    TemplateError: Unknown layout, template syntax or render failure.
"""

from __future__ import annotations

from pathlib import Path


class InkwellError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the file that caused the error, if known.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    kind = "Build"

    def __init__(
        self,
        source_path: Path | None,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        if source_path is None:
            super().__init__(message)
        else:
            super().__init__(f"{source_path}: {message}")


class ConfigError(InkwellError):
    """Raised at build start when _config.yml is missing or incomplete."""

    kind = "Config"


class ParseError(InkwellError):
    """Raised when a content file cannot be turned into a ContentUnit."""

    kind = "Parse"


class TemplateError(InkwellError):
    """Raised when a unit cannot be rendered through its layout."""

    kind = "Template"
