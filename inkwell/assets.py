"""Static asset pipeline for Inkwell.

Copies everything under the project's ``assets/`` directory into the
output tree, letting the processors in asset_processors optimize images
and minify scripts on the way.
"""

from __future__ import annotations

from pathlib import Path

from .asset_processors import AssetProcessorRegistry, create_default_registry

ASSETS_DIR = "assets"


class AssetPipeline:
    """Processes the ``assets/`` tree into ``<output>/assets/``.

    Attributes:
        project_root: Root directory of the project.
        assets_dir: Directory containing source assets.
        output_dir: Directory where processed assets are written.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        project_root: Path,
        output_dir: Path,
        processor_registry: AssetProcessorRegistry | None = None,
    ):
        self.project_root = project_root
        self.assets_dir = project_root / ASSETS_DIR
        self.output_dir = output_dir
        self.processor_registry = processor_registry or create_default_registry()

    def run(self) -> list[Path]:
        """Process every asset file.

        Returns:
            Paths of the assets written, relative to the output directory.
        """
        if not self.assets_dir.exists():
            return []
        target = self.output_dir / ASSETS_DIR
        written: list[Path] = []
        for item in sorted(self.assets_dir.rglob("*")):
            if item.is_dir() or item.name.startswith("."):
                continue
            rel = item.relative_to(self.assets_dir)
            dest = target / rel
            if self.processor_registry.process(item, dest):
                written.append(dest.relative_to(self.output_dir))
        return written
