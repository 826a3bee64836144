"""Encoding of tag sets into image filenames and back.

A tagged filename looks like ``"{base} @{tag1} @{tag2}{ext}"``; an untagged
one is just ``"{base}{ext}"``. The functions here are purely syntactic:
resolving decoded names to registered tags is the registry's job.
"""

from __future__ import annotations

from typing import Iterable

from image_tagger.errors import InvalidTagName

TAG_MARKER = " @"
FORBIDDEN_TAG_CHARS = ("@", ".", "/", "\\")

IMAGE_EXTENSIONS = frozenset({"gif", "png", "bmp", "jpeg", "tif", "raw", "jpg"})


def _name_of(tag) -> str:
    return tag if isinstance(tag, str) else tag.name


def encode(base_name: str, extension: str, tags: Iterable) -> str:
    """Build a filename from a base name, an extension and ordered tags.

    Args:
        base_name: Filename without tags or extension, e.g. ``"photo"``.
        extension: Extension including the dot, e.g. ``".jpg"``.
        tags: Tag names or objects with a ``name`` attribute, in the order
            they should appear.

    Returns:
        ``"photo @a @b.jpg"`` for tags ``a`` and ``b``, ``"photo.jpg"`` for none.
    """
    names = [_name_of(t) for t in tags]
    if not names:
        return f"{base_name}{extension}"
    fragment = " ".join(f"@{name}" for name in names)
    return f"{base_name} {fragment}{extension}"


def decode(filename: str) -> tuple[str, list[str]]:
    """Split a filename into its base name and the tag names it encodes.

    Only the final extension is cut off, so dots inside the base name
    survive: ``"my.photo @tag1 @tag2.png"`` splits into
    ``["my.photo ", "tag1 ", "tag2"]`` and every segment after the base is
    a tag.
    """
    stem, _ = split_extension(filename)
    segments = stem.split("@")
    return segments[0].strip(), [segment.strip() for segment in segments[1:]]


def split_extension(filename: str) -> tuple[str, str]:
    """Return (stem, extension) where extension starts at the last dot."""
    index = filename.rfind(".")
    if index == -1:
        return filename, ""
    return filename[:index], filename[index:]


def original_base_name(original_name: str) -> str:
    """Base name of an image's first known filename, without tags or extension."""
    tag_index = original_name.find(TAG_MARKER)
    if tag_index != -1:
        return original_name[:tag_index]
    return split_extension(original_name)[0]


def has_tags(filename: str) -> bool:
    return TAG_MARKER in filename


def is_image(filename: str, extensions: Iterable[str] = IMAGE_EXTENSIONS) -> bool:
    """True if the filename's suffix is a recognized image extension."""
    suffix = split_extension(filename)[1].lstrip(".").lower()
    return suffix in {ext.lower().lstrip(".") for ext in extensions}


def validate_tag_name(name: str) -> str:
    """Return the trimmed tag name, or raise InvalidTagName."""
    stripped = name.strip() if isinstance(name, str) else ""
    if not stripped:
        raise InvalidTagName("Tag name must not be blank")
    bad = [c for c in FORBIDDEN_TAG_CHARS if c in stripped]
    if bad:
        raise InvalidTagName(
            f"Tag name {stripped!r} contains reserved character(s): {''.join(bad)}"
        )
    return stripped
