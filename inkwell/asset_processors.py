"""Asset processors for Inkwell.

Each processor handles one kind of static asset. The registry picks the
highest-priority processor that accepts a file.

Key classes:
- ImageProcessor: Re-saves raster images optimized with Pillow.
- JSProcessor: Minifies JavaScript with rjsmin.
- StaticAssetProcessor: Copies anything else unchanged.
- AssetProcessorRegistry: Registry for managing asset processors.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image
from rjsmin import jsmin


class BaseAssetProcessor(ABC):
    """Base class for asset processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor can handle the given asset."""
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> None:
        """Write the processed form of ``source`` to ``dest``."""
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Optimizes PNG, JPEG and WebP images using Pillow.

    Files Pillow cannot decode are copied unchanged.
    """

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        try:
            with Image.open(source) as img:
                img.save(dest, optimize=True)
        except (OSError, ValueError):
            shutil.copy2(source, dest)


class JSProcessor(BaseAssetProcessor):
    """Minifies JavaScript files with rjsmin."""

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".js" and not path.name.endswith(".min.js")

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        with open(source, encoding="utf-8") as f_in:
            minified = jsmin(f_in.read())
        with open(dest, "w", encoding="utf-8") as f_out:
            f_out.write(minified)


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies static assets without modification (fonts, CSS, SVG, ...)."""

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)


class AssetProcessorRegistry:
    """Registry for managing asset processors, ordered by priority."""

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset; returns False if no processor accepts it."""
        processor = self.get_processor(source)
        if processor is None:
            return False
        processor.process(source, dest)
        return True


def create_default_registry() -> AssetProcessorRegistry:
    """Create a registry with the image, JS and fallback processors."""
    registry = AssetProcessorRegistry()
    registry.register(ImageProcessor())
    registry.register(JSProcessor())
    registry.register(StaticAssetProcessor())
    return registry
