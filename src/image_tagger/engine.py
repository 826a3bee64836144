"""Rename/move engine.

This is the only place that renames or moves image files. Each operation
checks for a collision, performs the filesystem operation, and only then
updates the image's histories, the directory tree and the tag reverse index.
If the filesystem operation fails nothing in memory changes. There is no
journal: a crash between the file operation and the bookkeeping leaves the
snapshot on disk out of date.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from image_tagger.errors import FileMoveError, NameCollision, NoMatchingRevision
from image_tagger.model.codec import decode, encode
from image_tagger.model.entities import Directory, Image, RenameEvent, Tag
from image_tagger.registry import TagRegistry
from image_tagger.tree import DirectoryTree

logger = logging.getLogger(__name__)


def _unique(tags: Iterable[Tag]) -> list[Tag]:
    seen: dict[str, Tag] = {}
    for tag in tags:
        seen.setdefault(tag.name, tag)
    return list(seen.values())


class RenameEngine:
    """Keep files on disk, the tree and per-image history in agreement."""

    def __init__(
        self,
        tree: DirectoryTree,
        registry: TagRegistry,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._tree = tree
        self._registry = registry
        self._clock = clock

    def current_tags(self, image: Image) -> list[Tag]:
        """Registered tags in the image's current tag set, in order."""
        tags = (self._registry.get(name) for name in image.current_tag_names)
        return [tag for tag in tags if tag is not None]

    def apply_tag_change(self, image: Image, new_tags: Iterable[Tag]) -> RenameEvent:
        """Rename image to encode new_tags and record the change.

        Args:
            image: Image to retag.
            new_tags: The complete new tag set, in the order to encode it.

        Returns:
            The RenameEvent appended to the image's rename history.

        Raises:
            NameCollision: If another file already has the new name.
            FileMoveError: If the filesystem rename fails.
        """
        new_tags = _unique(new_tags)
        source = image.path
        target = self.target_path(image, new_tags)
        new_name = target.name

        if target != source:
            if target.exists():
                raise NameCollision(target)
            self._move_file(source, target)

        old_names = set(image.current_tag_names)
        new_names = tuple(tag.name for tag in new_tags)
        event = RenameEvent(old_name=source.name, new_name=new_name, timestamp=self._clock())
        image.record_tag_change(new_names, event)

        for name in old_names - set(new_names):
            tag = self._registry.get(name)
            if tag is not None:
                self._registry.remove_image_from_tag(image, tag)
        self._registry.add_image_to_tags(image, new_tags)

        logger.info(f"Renamed '{event.old_name}' to '{event.new_name}'")
        return event

    def add_tags(self, image: Image, tags: Iterable[Tag]) -> RenameEvent | None:
        """Append tags the image does not carry yet; None if there are none."""
        current = self.current_tags(image)
        additions = [t for t in _unique(tags) if not image.has_tag(t.name)]
        if not additions:
            return None
        return self.apply_tag_change(image, current + additions)

    def remove_tags(self, image: Image, tags: Iterable[Tag]) -> RenameEvent | None:
        """Drop tags the image carries; None if it carries none of them."""
        names = {t.name for t in tags}
        if not any(image.has_tag(name) for name in names):
            return None
        remaining = [t for t in self.current_tags(image) if t.name not in names]
        return self.apply_tag_change(image, remaining)

    def remove_tags_from_images(
        self, images: Iterable[Image], tags: Iterable[Tag]
    ) -> list[RenameEvent]:
        """Drop tags from several images, or from none of them.

        Every new name is checked before the first file is renamed, so a
        collision leaves all images, files and the reverse index untouched.

        Raises:
            NameCollision: If a new name is taken on disk or would be taken
                by another image of the same batch.
            FileMoveError: If the filesystem rename fails.
        """
        names = {t.name for t in tags}
        plan = []
        claimed = set()
        for image in images:
            if not any(image.has_tag(name) for name in names):
                continue
            remaining = [t for t in self.current_tags(image) if t.name not in names]
            target = self.target_path(image, remaining)
            if target in claimed or (target != image.path and target.exists()):
                raise NameCollision(target)
            claimed.add(target)
            plan.append((image, remaining))
        return [self.apply_tag_change(image, remaining) for image, remaining in plan]

    def target_path(self, image: Image, tags: Iterable) -> Path:
        """Path the image would have if it carried exactly tags."""
        directory = self._tree.directory_of(image)
        return directory.path / encode(image.original_base_name, image.extension, tags)

    def move(self, image: Image, target: Directory) -> bool:
        """Move image into target, keeping its name and histories.

        Returns:
            False if the image is already in target, True once moved.

        Raises:
            NameCollision: If target already holds a file with the same name.
            FileMoveError: If the filesystem move fails.
        """
        if image.parent_id == target.id:
            return False
        source = image.path
        destination = target.path / image.name
        if destination.exists():
            raise NameCollision(destination)
        self._move_file(source, destination)

        self._tree.move_content(image, self._tree.directory_of(image), target)
        image.path = destination
        logger.info(f"Moved '{image.name}' from {source.parent} to {target.path}")
        return True

    def find_revision(self, image: Image, historical_name: str) -> tuple[str, ...]:
        """Earliest tag-history entry matching the tags encoded in a name.

        Entries match when they hold the same number of tags and every tag
        appears in the name, regardless of order.

        Raises:
            NoMatchingRevision: If no entry matches.
        """
        _, names = decode(historical_name)
        for entry in image.tag_history:
            if len(entry) == len(names) and all(name in names for name in entry):
                return entry
        raise NoMatchingRevision(historical_name)

    def revert_to_name(self, image: Image, historical_name: str) -> RenameEvent:
        """Re-apply the tag set an image carried under historical_name.

        Tags deleted since are registered again. History grows; nothing is
        truncated.
        """
        entry = self.find_revision(image, historical_name)
        target = self.target_path(image, entry)
        if target != image.path and target.exists():
            raise NameCollision(target)
        tags = self._registry.ensure_tags(entry)
        logger.info(f"Reverting '{image.name}' to tags {list(entry)}")
        return self.apply_tag_change(image, tags)

    def _move_file(self, source, target) -> None:
        try:
            shutil.move(str(source), str(target))
        except OSError as e:
            raise FileMoveError(f"Cannot move {source} to {target}: {e}") from e
