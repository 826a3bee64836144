"""Directory scanner that builds the tree and the tag registry from disk."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from image_tagger.config.config import ConfigManager
from image_tagger.errors import DirectoryNotFound, InvalidTagName
from image_tagger.model.codec import IMAGE_EXTENSIONS, has_tags, is_image
from image_tagger.model.entities import Directory
from image_tagger.registry import TagRegistry
from image_tagger.tree import DirectoryTree, normalize_path

logger = logging.getLogger(__name__)

# Callback signature: (images_seen, filepath)
ProgressCallback = Callable[[int, str], None]

# Directories that are really application bundles, not folders of images.
BUNDLE_SUFFIXES = (".app", ".bundle")


@dataclass
class ScanResult:
    """Result of a directory scan."""

    directories: int = 0
    images: int = 0
    tagged: int = 0
    skipped: int = 0
    errors: int = 0
    error_files: list[str] = field(default_factory=list)


class DirectoryScanner:
    """Walk a directory tree, adding every image and the tags its name encodes."""

    def __init__(
        self,
        tree: DirectoryTree,
        registry: TagRegistry,
        config: ConfigManager | None = None,
    ):
        self._tree = tree
        self._registry = registry
        self._extensions = IMAGE_EXTENSIONS
        self._ignore_hidden = True
        if config:
            self._extensions = config.image_extensions() or IMAGE_EXTENSIONS
            self._ignore_hidden = config.get("scanning.ignore_hidden", True)

    def scan(
        self,
        root: str | Path,
        progress_callback: ProgressCallback | None = None,
    ) -> ScanResult:
        """Scan root recursively.

        Directories and images already in the tree are kept as they are, so
        scanning the same root twice adds nothing.

        Args:
            root: Directory to scan; becomes the tree root if the tree is empty.
            progress_callback: Called with (images_seen, filepath).

        Returns:
            ScanResult with counts of directories, images and tagged images.
        """
        root = normalize_path(root)
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")

        result = ScanResult()
        self._scan_directory(root, None, result, progress_callback)
        logger.info(
            f"Scanned {root}: {result.directories} directories, "
            f"{result.images} images ({result.tagged} tagged)"
        )
        return result

    def _scan_directory(
        self,
        path: Path,
        parent: Directory | None,
        result: ScanResult,
        progress_callback: ProgressCallback | None,
    ) -> None:
        try:
            directory = self._tree.find_directory_by_path(path)
        except DirectoryNotFound:
            directory = self._tree.create_directory(path, parent)
            result.directories += 1

        try:
            entries = sorted(os.listdir(path))
        except OSError as e:
            logger.error(f"Cannot list {path}: {e}")
            result.errors += 1
            result.error_files.append(str(path))
            return

        for name in entries:
            if self._ignore_hidden and name.startswith("."):
                continue
            child = path / name
            if child.is_dir():
                if name.lower().endswith(BUNDLE_SUFFIXES):
                    continue
                self._scan_directory(child, directory, result, progress_callback)
            elif is_image(name, self._extensions):
                self._add_image(child, directory, result)
                if progress_callback:
                    progress_callback(result.images + result.skipped, str(child))

    def _add_image(self, path: Path, directory: Directory, result: ScanResult) -> None:
        if self._tree.find_image_by_path(path) is not None:
            result.skipped += 1
            return

        tags = []
        if has_tags(path.name):
            try:
                tags = self._registry.derive_or_create_tags(path.name)
            except InvalidTagName as e:
                logger.warning(f"Treating {path.name} as untagged: {e}")
                result.errors += 1
                result.error_files.append(str(path))

        image = self._tree.add_image(path, directory, [t.name for t in tags])
        self._registry.add_image_to_tags(image, tags)
        result.images += 1
        if tags:
            result.tagged += 1
