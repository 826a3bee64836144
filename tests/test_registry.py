"""Tests for TagRegistry."""

from pathlib import Path

import pytest

from image_tagger.errors import InvalidTagName, TagAlreadyExists, UnknownTagReference
from image_tagger.model.entities import Image
from image_tagger.registry import TagRegistry


@pytest.fixture
def registry():
    return TagRegistry()


def make_image(image_id, name="img.jpg"):
    return Image(id=image_id, path=Path("/photos") / name, parent_id=0)


class TestCreateTag:
    def test_create(self, registry):
        tag = registry.create_tag("sunset")
        assert tag.name == "sunset"
        assert "sunset" in registry
        assert registry.get("sunset") is tag
        assert len(registry) == 1

    def test_duplicate_rejected(self, registry):
        registry.create_tag("sunset")
        with pytest.raises(TagAlreadyExists):
            registry.create_tag("sunset")
        assert len(registry) == 1

    def test_names_are_case_sensitive(self, registry):
        registry.create_tag("Sunset")
        registry.create_tag("sunset")
        assert registry.names() == ["Sunset", "sunset"]

    def test_invalid_name(self, registry):
        with pytest.raises(InvalidTagName):
            registry.create_tag("a.b")
        assert len(registry) == 0

    def test_unique_ids(self, registry):
        ids = {registry.create_tag(n).id for n in ["a", "b", "c"]}
        assert len(ids) == 3

    def test_names_unique_after_many_calls(self, registry):
        for name in ["a", "b", "a", "c", "b", "a"]:
            try:
                registry.create_tag(name)
            except TagAlreadyExists:
                pass
        assert sorted(registry.names()) == ["a", "b", "c"]


class TestDeleteTags:
    def test_delete_clears_index(self, registry):
        tag = registry.create_tag("x")
        registry.add_image_to_tag(make_image(1), tag)
        registry.delete_tags([tag])
        assert "x" not in registry
        assert registry.image_ids_for(tag) == frozenset()

    def test_delete_unknown_is_ignored(self, registry):
        tag = registry.create_tag("x")
        registry.delete_tags([tag])
        assert registry.delete_tags([tag]) == []

    def test_recreate_after_delete(self, registry):
        old = registry.create_tag("x")
        registry.delete_tags([old])
        new = registry.create_tag("x")
        assert new.id != old.id


class TestReverseIndex:
    def test_add_and_remove(self, registry):
        a, b = registry.create_tag("a"), registry.create_tag("b")
        image = make_image(7)
        registry.add_image_to_tags(image, [a, b])
        assert registry.image_ids_for(a) == {7}
        assert registry.image_ids_for(b) == {7}

        registry.remove_image_from_tags(image, [a])
        assert registry.image_ids_for(a) == frozenset()
        assert registry.image_ids_for(b) == {7}

    def test_restore_tag(self, registry):
        tag = registry.restore_tag(10, "restored", [1, 2])
        assert registry.image_ids_for(tag) == {1, 2}
        assert registry.create_tag("next").id == 11


class TestFilenameResolution:
    def test_resolve_existing(self, registry):
        a, b = registry.create_tag("A"), registry.create_tag("B")
        assert registry.resolve_existing_tags("img @B @A.jpg") == [b, a]

    def test_resolve_untagged(self, registry):
        assert registry.resolve_existing_tags("img.jpg") == []

    def test_resolve_unknown_fails(self, registry):
        registry.create_tag("A")
        with pytest.raises(UnknownTagReference) as exc_info:
            registry.resolve_existing_tags("img @A @stray.jpg")
        assert exc_info.value.unknown == ["stray"]

    def test_derive_or_create_is_idempotent(self, registry):
        first = registry.derive_or_create_tags("img @A @B.jpg")
        second = registry.derive_or_create_tags("other @B @A.png")
        assert [t.name for t in first] == ["A", "B"]
        assert set(second) == set(first)
        assert len(registry) == 2

    def test_ensure_tags(self, registry):
        a = registry.create_tag("a")
        tags = registry.ensure_tags(["a", "b"])
        assert tags[0] is a
        assert tags[1].name == "b"
        assert len(registry) == 2

    def test_ensure_tags_invalid_registers_nothing(self, registry):
        with pytest.raises(InvalidTagName):
            registry.ensure_tags(["x", ""])
        assert len(registry) == 0

    def test_derive_with_blank_tag_registers_nothing(self, registry):
        with pytest.raises(InvalidTagName):
            registry.derive_or_create_tags("a @x @ .jpg")
        assert "x" not in registry
