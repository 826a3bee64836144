"""Tagging session: the single entry point for a presentation layer.

The session owns the directory tree, the tag registry and the rename engine,
tracks the current directory and image, and emits a ChangeEvent after every
operation that changes what should be displayed.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from image_tagger.config.config import ConfigManager
from image_tagger.desktop import open_in_file_browser
from image_tagger.errors import NoMatchingRevision, NoParent, PersistenceIOFailure
from image_tagger.events import ChangeEvent, ChangeKind, EventBus, Listener
from image_tagger.export import ExportResult, export_tag_images, rename_log_lines, write_rename_log
from image_tagger.engine import RenameEngine
from image_tagger.model.entities import Directory, Image, RenameEvent, Tag
from image_tagger.registry import TagRegistry
from image_tagger.scanner import DirectoryScanner, ScanResult
from image_tagger.store import SnapshotStore
from image_tagger.tree import DirectoryTree, normalize_path

logger = logging.getLogger(__name__)


class TaggingSession:
    """Compose tree, registry, engine and store behind one API."""

    def __init__(
        self,
        root: str | Path,
        store: SnapshotStore | None = None,
        config: ConfigManager | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.root_path = normalize_path(root)
        self.config = config or ConfigManager()
        self.store = store
        self._clock = clock
        self._events = EventBus()
        self._set_state(DirectoryTree(), TagRegistry())
        self.current_directory: Directory | None = None
        self.current_image: Image | None = None
        self.show_recursive = False

    @classmethod
    def open(cls, root: str | Path, config: ConfigManager | None = None) -> "TaggingSession":
        """Create and initialize a session persisting to the configured store."""
        config = config or ConfigManager()
        store = SnapshotStore(config.resolve_path("store.path", normalize_path(root)))
        session = cls(root, store=store, config=config)
        session.initialize()
        return session

    # --- Lifecycle ---

    def initialize(self) -> ScanResult | None:
        """Restore the saved snapshot, or build the tree by scanning root.

        Returns:
            The ScanResult if the tree was scanned, None if it was loaded.
        """
        if self.store is not None and self._load_snapshot():
            self.set_current_directory(self.tree.root)
            return None
        result = self.rescan()
        self.set_current_directory(self.tree.root)
        return result

    def rescan(self) -> ScanResult:
        """Add directories and images that appeared on disk since the last scan."""
        scanner = DirectoryScanner(self.tree, self.registry, self.config)
        result = scanner.scan(self.root_path)
        if result.images or result.directories:
            self._emit(ChangeKind.TAGS)
        return result

    def save(self) -> bool:
        """Write the snapshot. Failures are logged and the session carries on."""
        if self.store is None:
            return False
        try:
            self.store.save(self.tree, self.registry)
        except PersistenceIOFailure as e:
            logger.error(f"Snapshot not saved, keeping in-memory state: {e}")
            return False
        return True

    def _load_snapshot(self) -> bool:
        try:
            if not self.store.exists():
                return False
            tree, registry = self.store.load()
        except PersistenceIOFailure as e:
            logger.error(f"Ignoring unreadable snapshot: {e}")
            return False
        if tree.is_empty or tree.root.path != self.root_path:
            logger.warning(
                f"Snapshot at {self.store.db_path} is for another root; rescanning"
            )
            return False
        self._set_state(tree, registry)
        return True

    def _set_state(self, tree: DirectoryTree, registry: TagRegistry) -> None:
        self.tree = tree
        self.registry = registry
        self.engine = RenameEngine(tree, registry, clock=self._clock)

    # --- Notifications ---

    def subscribe(self, listener: Listener) -> None:
        self._events.subscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._events.unsubscribe(listener)

    def _emit(self, kind: ChangeKind, subject=None) -> None:
        self._events.emit(ChangeEvent(kind, subject))

    # --- Navigation ---

    def set_current_directory(self, directory: Directory | str | Path) -> Directory:
        """Select a directory and register any tags its images carry."""
        if not isinstance(directory, Directory):
            directory = self.tree.find_directory_by_path(directory)
        self.current_directory = directory
        self._add_missing_tags()
        self._emit(ChangeKind.DIRECTORY, directory)
        return directory

    def go_to_parent(self) -> bool:
        """Move up one directory; False when already at the root."""
        try:
            parent = self.tree.parent_of(self.current_directory)
        except NoParent:
            logger.debug("Already at the root directory")
            return False
        self.set_current_directory(parent)
        return True

    def set_current_image(self, image: Image | None) -> None:
        self.current_image = image
        self._emit(ChangeKind.IMAGE, image)

    def toggle_show_recursive(self) -> bool:
        self.show_recursive = not self.show_recursive
        self._emit(ChangeKind.DIRECTORY, self.current_directory)
        return self.show_recursive

    def visible_images(self) -> list[Image]:
        """Images of the current directory, including sub-directories if toggled."""
        if self.current_directory is None:
            return []
        if self.show_recursive:
            return self.tree.list_images_recursive(self.current_directory)
        return self.tree.list_images(self.current_directory)

    def subdirectories(self) -> list[Directory]:
        if self.current_directory is None:
            return []
        return self.tree.list_subdirectories(self.current_directory)

    def _add_missing_tags(self) -> None:
        """Re-register tag names carried by visible images but unknown to the registry."""
        added = False
        for image in self.visible_images():
            missing = [n for n in image.current_tag_names if n not in self.registry]
            if missing:
                tags = self.registry.ensure_tags(missing)
                self.registry.add_image_to_tags(image, tags)
                added = True
        if added:
            self._emit(ChangeKind.TAGS)

    # --- Tags ---

    def all_tags(self) -> list[Tag]:
        return self.registry.tags()

    def tag_images(self, tag: Tag) -> list[Image]:
        """Images currently carrying tag."""
        return [self.tree.get_image(i) for i in sorted(self.registry.image_ids_for(tag))]

    def create_tag(self, name: str) -> Tag:
        """Register a tag; TagAlreadyExists propagates as a user-facing rejection."""
        tag = self.registry.create_tag(name)
        self._emit(ChangeKind.TAGS)
        return tag

    def delete_tags(self, tags: Iterable[Tag]) -> None:
        """Strip tags from every image carrying them, then delete them.

        Raises:
            NameCollision: If any carrier's untagged name is taken; nothing
                is renamed and the tags stay registered.
        """
        tags = list(tags)
        carriers: dict[int, Image] = {}
        for tag in tags:
            for image_id in sorted(self.registry.image_ids_for(tag)):
                carriers[image_id] = self.tree.get_image(image_id)
        self.engine.remove_tags_from_images(carriers.values(), tags)
        self.registry.delete_tags(tags)
        self._emit(ChangeKind.TAGS)
        if self.current_image is not None:
            self._emit(ChangeKind.IMAGE, self.current_image)

    def add_tags_to_image(
        self, tags: Iterable[Tag], image: Image | None = None
    ) -> RenameEvent | None:
        image = self._image(image)
        event = self.engine.add_tags(image, tags)
        if event is not None:
            self._emit(ChangeKind.IMAGE, image)
        return event

    def remove_tags_from_image(
        self, tags: Iterable[Tag], image: Image | None = None
    ) -> RenameEvent | None:
        image = self._image(image)
        event = self.engine.remove_tags(image, tags)
        if event is not None:
            self._emit(ChangeKind.IMAGE, image)
        return event

    def set_image_tags(
        self, tags: Iterable[Tag], image: Image | None = None
    ) -> RenameEvent:
        """Replace the image's tag set outright."""
        image = self._image(image)
        event = self.engine.apply_tag_change(image, tags)
        self._emit(ChangeKind.IMAGE, image)
        return event

    # --- Moving and history ---

    def move_image(
        self, target: Directory | str | Path, image: Image | None = None
    ) -> bool:
        """Move an image to another directory and follow it there."""
        image = self._image(image)
        if not isinstance(target, Directory):
            target = self.tree.find_directory_by_path(target)
        if not self.engine.move(image, target):
            return False
        self.set_current_directory(target)
        self._emit(ChangeKind.IMAGE, image)
        return True

    def revert_image_name(self, name: str, image: Image | None = None) -> bool:
        """Restore the tags an image had under a previous name.

        A name matching no recorded tag set is a no-op and returns False.
        """
        image = self._image(image)
        known = len(self.registry)
        try:
            self.engine.revert_to_name(image, name)
        except NoMatchingRevision as e:
            logger.info(str(e))
            return False
        if len(self.registry) != known:
            self._emit(ChangeKind.TAGS)
        self._emit(ChangeKind.IMAGE, image)
        return True

    def image_name_history(self, image: Image | None = None) -> list[str]:
        image = image or self.current_image
        return image.name_history() if image is not None else []

    def rename_log_lines(self) -> list[str]:
        return rename_log_lines(
            self.tree.list_images_recursive(self.tree.root),
            self.config.get("rename_log.timestamp_format"),
        )

    def write_rename_log(self, path: str | Path | None = None) -> Path:
        """Write the rename log of every image, replacing the previous log."""
        if path is None:
            path = self.config.resolve_path("rename_log.path", self.root_path)
        return write_rename_log(
            self.tree.list_images_recursive(self.tree.root),
            path,
            self.config.get("rename_log.timestamp_format"),
        )

    def export_tag(self, tag: Tag, export_root: str | Path | None = None) -> ExportResult:
        """Copy a tag's images into a folder named after the tag."""
        if export_root is None:
            export_root = Path(str(self.config.get("export.root"))).expanduser()
        result = export_tag_images(tag, self.tag_images(tag), export_root)
        if self.config.get("export.open_after_export", False):
            open_in_file_browser(result.destination)
        return result

    def open_current_directory(self) -> threading.Thread | None:
        if self.current_directory is None:
            return None
        return open_in_file_browser(self.current_directory.path)

    # --- Private helpers ---

    def _image(self, image: Image | None) -> Image:
        image = image or self.current_image
        if image is None:
            raise ValueError("No image selected")
        return image
