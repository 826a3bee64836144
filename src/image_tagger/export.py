"""Rename log export and copying a tag's images into a folder of their own."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from image_tagger.model.entities import TIMESTAMP_FORMAT, Image, Tag

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Result of a tag export."""

    destination: Path | None = None
    total: int = 0
    copied: int = 0
    skipped: int = 0
    errors: int = 0
    error_files: list[str] = field(default_factory=list)


def rename_log_lines(
    images: Iterable[Image], timestamp_format: str = TIMESTAMP_FORMAT
) -> list[str]:
    """One line per rename, image by image, oldest first."""
    return [
        event.log_line(timestamp_format)
        for image in images
        for event in image.rename_history
    ]


def write_rename_log(
    images: Iterable[Image],
    log_path: str | Path,
    timestamp_format: str = TIMESTAMP_FORMAT,
) -> Path:
    """Write the rename log, replacing any previous file."""
    log_path = Path(log_path)
    lines = rename_log_lines(images, timestamp_format)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")
    logger.info(f"Wrote {len(lines)} rename(s) to {log_path}")
    return log_path


def export_tag_images(
    tag: Tag,
    images: Iterable[Image],
    export_root: str | Path,
) -> ExportResult:
    """Copy every image carrying tag into <export_root>/<tag name>/.

    Files already present in the destination are left alone, so exporting
    the same tag again only copies newly tagged images.
    """
    images = list(images)
    destination = Path(export_root).expanduser() / tag.name
    result = ExportResult(destination=destination, total=len(images))
    destination.mkdir(parents=True, exist_ok=True)

    for image in images:
        target = destination / image.name
        if target.exists():
            result.skipped += 1
            continue
        try:
            shutil.copy2(str(image.path), str(target))
            result.copied += 1
        except OSError as e:
            logger.error(f"Error exporting {image.path}: {e}")
            result.errors += 1
            result.error_files.append(str(image.path))

    logger.info(
        f"Exported tag '{tag.name}' to {destination}: "
        f"{result.copied} copied, {result.skipped} already present"
    )
    return result
