"""Entity records for directories, images and tags.

Entities refer to each other only by integer id; the directory tree and the
tag registry own the arenas that map ids back to objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from image_tagger.model.codec import original_base_name, split_extension

TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


@dataclass
class Tag:
    """A named label. Names are unique within a registry."""

    id: int
    name: str

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(frozen=True)
class RenameEvent:
    """One rename of an image: (old name, new name, when)."""

    old_name: str
    new_name: str
    timestamp: datetime

    def formatted_timestamp(self, fmt: str = TIMESTAMP_FORMAT) -> str:
        return self.timestamp.strftime(fmt)

    def log_line(self, fmt: str = TIMESTAMP_FORMAT) -> str:
        return (
            f'Image "{self.old_name}" has been renamed to "{self.new_name}" '
            f"with timestamp {self.formatted_timestamp(fmt)}."
        )


@dataclass
class Directory:
    """A folder on disk and the ids of the directories and images inside it."""

    id: int
    path: Path
    parent_id: int | None = None
    contents: list[int] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass
class Image:
    """An image file, its tag history and its rename history.

    ``tag_history`` holds one tuple of tag names per recorded tag set, oldest
    first, starting with the tags the image carried when first seen (possibly
    none). The current tags are the last entry. Entry N is the tag set
    encoded by ``rename_history[N - 1].new_name``. Both histories only grow.
    """

    id: int
    path: Path
    parent_id: int
    tag_history: list[tuple[str, ...]] = field(default_factory=list)
    rename_history: list[RenameEvent] = field(default_factory=list)

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def extension(self) -> str:
        return split_extension(self.name)[1]

    @property
    def current_tag_names(self) -> tuple[str, ...]:
        if not self.tag_history:
            return ()
        return self.tag_history[-1]

    def has_tag(self, name: str) -> bool:
        return name in self.current_tag_names

    @property
    def original_name(self) -> str:
        """Name the image had when first seen."""
        if not self.rename_history:
            return self.name
        return self.rename_history[0].old_name

    @property
    def original_base_name(self) -> str:
        return original_base_name(self.original_name)

    def name_history(self) -> list[str]:
        """All names ever held: [original, name1, name2, ...]."""
        if not self.rename_history:
            return [self.name]
        return [self.original_name] + [e.new_name for e in self.rename_history]

    def record_tag_change(self, names: tuple[str, ...], event: RenameEvent) -> None:
        """Append one tag set and the rename that encoded it, together."""
        self.tag_history.append(tuple(names))
        self.rename_history.append(event)
        self.path = self.path.with_name(event.new_name)
