"""Exceptions raised by the Image Tagger core."""

from __future__ import annotations


class ImageTaggerError(Exception):
    """Base class for all Image Tagger errors."""


class TagAlreadyExists(ImageTaggerError):
    """A tag with the requested name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"Tag already exists: {name}")
        self.name = name


class InvalidTagName(ImageTaggerError, ValueError):
    """Tag name is blank or contains a filename delimiter."""


class UnknownTagReference(ImageTaggerError):
    """A filename refers to tag names the registry does not know."""

    def __init__(self, filename: str, unknown: list[str]):
        super().__init__(
            f"Unknown tag(s) {', '.join(unknown)} in filename: {filename}"
        )
        self.filename = filename
        self.unknown = unknown


class NameCollision(ImageTaggerError):
    """The target of a rename or move is already occupied."""

    def __init__(self, target):
        super().__init__(f"Target already exists: {target}")
        self.target = target


class NoParent(ImageTaggerError):
    """Navigation above the root directory was requested."""


class NoMatchingRevision(ImageTaggerError):
    """No tag-history entry matches the requested historical name."""

    def __init__(self, name: str):
        super().__init__(f"No matching historical revision for: {name}")
        self.name = name


class DirectoryNotFound(ImageTaggerError, KeyError):
    """No known directory has the requested path."""

    def __str__(self) -> str:
        return f"Directory not found: {self.args[0]}"


class FileMoveError(ImageTaggerError):
    """The filesystem refused a rename or move."""


class PersistenceIOFailure(ImageTaggerError):
    """Reading or writing the snapshot store failed."""
