"""Directory tree: the hierarchy of directories and where each image lives."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from image_tagger.errors import DirectoryNotFound, NoParent
from image_tagger.model.entities import Directory, Image

logger = logging.getLogger(__name__)


def normalize_path(path: str | Path) -> Path:
    return Path(path).expanduser().resolve()


class DirectoryTree:
    """Arenas of directories and images keyed by id, plus placement queries.

    Directory and image ids come from one counter, so a directory's
    ``contents`` list can hold both kinds. This class only does bookkeeping;
    it never touches the filesystem.
    """

    def __init__(self):
        self._directories: dict[int, Directory] = {}
        self._images: dict[int, Image] = {}
        self._dir_by_path: dict[Path, int] = {}
        self._root_id: int | None = None
        self._next_id = 1

    # --- Construction ---

    def create_directory(
        self, path: str | Path, parent: Directory | None = None
    ) -> Directory:
        """Insert a directory node and register it with its parent."""
        path = normalize_path(path)
        if parent is None and self._root_id is not None:
            raise ValueError(
                f"Tree already has a root ({self.root.path}); {path} needs a parent"
            )
        directory = Directory(
            id=self._allocate_id(),
            path=path,
            parent_id=parent.id if parent else None,
        )
        self._place_directory(directory)
        if parent is not None:
            parent.contents.append(directory.id)
        return directory

    def add_image(
        self,
        path: str | Path,
        parent: Directory,
        tag_names: Iterable[str] = (),
    ) -> Image:
        """Insert an image discovered on disk, seeding its tag history."""
        image = Image(
            id=self._allocate_id(),
            path=normalize_path(path),
            parent_id=parent.id,
            tag_history=[tuple(tag_names)],
        )
        self._images[image.id] = image
        parent.contents.append(image.id)
        return image

    def restore(
        self, directories: Iterable[Directory], images: Iterable[Image]
    ) -> None:
        """Load persisted entities, keeping their ids and contents order."""
        for directory in directories:
            self._place_directory(directory)
            self._next_id = max(self._next_id, directory.id + 1)
        for image in images:
            self._images[image.id] = image
            self._next_id = max(self._next_id, image.id + 1)

    # --- Lookup ---

    @property
    def root(self) -> Directory:
        if self._root_id is None:
            raise DirectoryNotFound("<root>")
        return self._directories[self._root_id]

    @property
    def is_empty(self) -> bool:
        return self._root_id is None

    def directories(self) -> list[Directory]:
        return list(self._directories.values())

    def images(self) -> list[Image]:
        return list(self._images.values())

    def get_directory(self, directory_id: int) -> Directory:
        return self._directories[directory_id]

    def get_image(self, image_id: int) -> Image:
        return self._images[image_id]

    def find_directory_by_path(self, path: str | Path) -> Directory:
        """Return the directory at path.

        Raises:
            DirectoryNotFound: If no known directory has this path.
        """
        directory_id = self._dir_by_path.get(normalize_path(path))
        if directory_id is None:
            raise DirectoryNotFound(str(path))
        return self._directories[directory_id]

    def find_image_by_path(self, path: str | Path) -> Image | None:
        path = normalize_path(path)
        for image in self._images.values():
            if image.path == path:
                return image
        return None

    def parent_of(self, directory: Directory) -> Directory:
        """Return the parent directory.

        Raises:
            NoParent: If directory is the root.
        """
        if directory.parent_id is None:
            raise NoParent(f"{directory.path} is the root directory")
        return self._directories[directory.parent_id]

    def directory_of(self, image: Image) -> Directory:
        return self._directories[image.parent_id]

    # --- Listing ---

    def list_images(self, directory: Directory) -> list[Image]:
        """Images directly inside directory."""
        return [self._images[i] for i in directory.contents if i in self._images]

    def list_subdirectories(self, directory: Directory) -> list[Directory]:
        return [
            self._directories[i] for i in directory.contents if i in self._directories
        ]

    def list_images_recursive(self, directory: Directory) -> list[Image]:
        """All images under directory, depth first in discovery order."""
        return list(self._walk_images(directory))

    def _walk_images(self, directory: Directory) -> Iterator[Image]:
        for entity_id in directory.contents:
            if entity_id in self._images:
                yield self._images[entity_id]
            else:
                yield from self._walk_images(self._directories[entity_id])

    # --- Mutation ---

    def move_content(
        self, image: Image, from_dir: Directory, to_dir: Directory
    ) -> None:
        """Move an image's membership between directories (bookkeeping only)."""
        if image.id in from_dir.contents:
            from_dir.contents.remove(image.id)
        if image.id not in to_dir.contents:
            to_dir.contents.append(image.id)
        image.parent_id = to_dir.id

    # --- Private helpers ---

    def _allocate_id(self) -> int:
        entity_id = self._next_id
        self._next_id += 1
        return entity_id

    def _place_directory(self, directory: Directory) -> None:
        self._directories[directory.id] = directory
        self._dir_by_path[directory.path] = directory.id
        if directory.parent_id is None:
            self._root_id = directory.id
