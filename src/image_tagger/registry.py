"""Tag registry: the canonical set of tags and each tag's reverse index."""

from __future__ import annotations

import logging
from typing import Iterable

from image_tagger.errors import TagAlreadyExists, UnknownTagReference
from image_tagger.model.codec import decode, validate_tag_name
from image_tagger.model.entities import Image, Tag

logger = logging.getLogger(__name__)


class TagRegistry:
    """Own every Tag and the mapping tag id -> ids of images carrying it.

    The reverse index is maintained eagerly by the rename engine; the methods
    here never touch an image's own tag history.
    """

    def __init__(self):
        self._tags: dict[int, Tag] = {}
        self._by_name: dict[str, int] = {}
        self._index: dict[int, set[int]] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, name: object) -> bool:
        if isinstance(name, Tag):
            name = name.name
        return name in self._by_name

    def __iter__(self):
        return iter(self.tags())

    # --- Tag lifecycle ---

    def create_tag(self, name: str) -> Tag:
        """Register a new tag.

        Raises:
            InvalidTagName: If the name is blank or contains a delimiter.
            TagAlreadyExists: If a tag with this name is already registered.
        """
        name = validate_tag_name(name)
        if name in self._by_name:
            raise TagAlreadyExists(name)
        tag = self._insert(self._next_id, name)
        logger.info(f"Created tag '{name}'")
        return tag

    def restore_tag(self, tag_id: int, name: str, image_ids: Iterable[int] = ()) -> Tag:
        """Re-insert a persisted tag with its id and reverse index."""
        if name in self._by_name:
            raise TagAlreadyExists(name)
        tag = self._insert(tag_id, name)
        self._index[tag_id].update(image_ids)
        return tag

    def delete_tags(self, tags: Iterable[Tag]) -> list[Tag]:
        """Remove tags from the registry and clear their reverse index.

        Images' own histories are not touched; the session strips the tags
        from carrying images before calling this.
        """
        removed = []
        for tag in list(tags):
            if tag.id not in self._tags:
                continue
            del self._tags[tag.id]
            del self._by_name[tag.name]
            self._index.pop(tag.id, None)
            removed.append(tag)
            logger.info(f"Deleted tag '{tag.name}'")
        return removed

    def ensure_tags(self, names: Iterable[str]) -> list[Tag]:
        """Return tags for names, registering any that are missing.

        All names are validated first, so an invalid name registers nothing.

        Raises:
            InvalidTagName: If any name is blank or contains a delimiter.
        """
        names = [validate_tag_name(name) for name in names]
        result = []
        for name in names:
            tag = self.get(name)
            if tag is None:
                tag = self.create_tag(name)
            result.append(tag)
        return result

    # --- Lookup ---

    def get(self, name: str) -> Tag | None:
        tag_id = self._by_name.get(name)
        return self._tags[tag_id] if tag_id is not None else None

    def get_by_id(self, tag_id: int) -> Tag | None:
        return self._tags.get(tag_id)

    def tags(self) -> list[Tag]:
        """All tags in creation order."""
        return list(self._tags.values())

    def names(self) -> list[str]:
        return [tag.name for tag in self._tags.values()]

    def image_ids_for(self, tag: Tag) -> frozenset[int]:
        return frozenset(self._index.get(tag.id, ()))

    # --- Reverse index ---

    def add_image_to_tag(self, image: Image, tag: Tag) -> None:
        self._index.setdefault(tag.id, set()).add(image.id)

    def remove_image_from_tag(self, image: Image, tag: Tag) -> None:
        self._index.get(tag.id, set()).discard(image.id)

    def add_image_to_tags(self, image: Image, tags: Iterable[Tag]) -> None:
        for tag in tags:
            self.add_image_to_tag(image, tag)

    def remove_image_from_tags(self, image: Image, tags: Iterable[Tag]) -> None:
        for tag in tags:
            self.remove_image_from_tag(image, tag)

    # --- Filename resolution ---

    def resolve_existing_tags(self, filename: str) -> list[Tag]:
        """Resolve the tags encoded in a filename against registered tags.

        Raises:
            UnknownTagReference: If any encoded name is not registered, so
                stray "@" text is never mistaken for a partial tag set.
        """
        _, names = decode(filename)
        unknown = [name for name in names if name not in self._by_name]
        if unknown:
            raise UnknownTagReference(filename, unknown)
        return [self.get(name) for name in names]

    def derive_or_create_tags(self, filename: str) -> list[Tag]:
        """Resolve encoded tag names, creating unknown ones.

        Used while building the tree from disk; rescanning the same files
        never duplicates tags.
        """
        _, names = decode(filename)
        return self.ensure_tags(names)

    # --- Private helpers ---

    def _insert(self, tag_id: int, name: str) -> Tag:
        tag = Tag(id=tag_id, name=name)
        self._tags[tag_id] = tag
        self._by_name[name] = tag_id
        self._index[tag_id] = set()
        self._next_id = max(self._next_id, tag_id + 1)
        return tag
