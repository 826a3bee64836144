"""Tests for DirectoryTree and DirectoryScanner."""

import pytest

from image_tagger.config.config import ConfigManager
from image_tagger.errors import DirectoryNotFound, NoParent
from image_tagger.registry import TagRegistry
from image_tagger.scanner import DirectoryScanner
from image_tagger.tree import DirectoryTree


def touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\xff\xd8\xff")
    return path


@pytest.fixture
def photo_dir(tmp_path):
    """root/{a.jpg, b @x.png, notes.txt, .hidden.jpg, sub/{c @x @y.JPG, deeper/d.gif}, empty/}"""
    root = tmp_path / "photos"
    touch(root / "a.jpg")
    touch(root / "b @x.png")
    touch(root / "notes.txt")
    touch(root / ".hidden.jpg")
    touch(root / "sub" / "c @x @y.JPG")
    touch(root / "sub" / "deeper" / "d.gif")
    (root / "empty").mkdir()
    return root


@pytest.fixture
def scanned(photo_dir):
    tree, registry = DirectoryTree(), TagRegistry()
    result = DirectoryScanner(tree, registry).scan(photo_dir)
    return tree, registry, result


class TestDirectoryTree:
    def test_create_root_and_child(self, tmp_path):
        tree = DirectoryTree()
        root = tree.create_directory(tmp_path)
        child = tree.create_directory(tmp_path / "child", root)
        assert tree.root is root
        assert child.parent_id == root.id
        assert child.id in root.contents
        assert tree.parent_of(child) is root

    def test_second_root_rejected(self, tmp_path):
        tree = DirectoryTree()
        tree.create_directory(tmp_path)
        with pytest.raises(ValueError):
            tree.create_directory(tmp_path / "other")

    def test_parent_of_root(self, tmp_path):
        tree = DirectoryTree()
        root = tree.create_directory(tmp_path)
        with pytest.raises(NoParent):
            tree.parent_of(root)

    def test_find_directory_by_path(self, tmp_path):
        tree = DirectoryTree()
        root = tree.create_directory(tmp_path)
        assert tree.find_directory_by_path(str(tmp_path)) is root
        with pytest.raises(DirectoryNotFound):
            tree.find_directory_by_path(tmp_path / "missing")

    def test_add_image_seeds_history(self, tmp_path):
        tree = DirectoryTree()
        root = tree.create_directory(tmp_path)
        plain = tree.add_image(tmp_path / "a.jpg", root)
        tagged = tree.add_image(tmp_path / "b @x.jpg", root, ["x"])
        assert plain.tag_history == [()]
        assert tagged.tag_history == [("x",)]
        assert tree.list_images(root) == [plain, tagged]

    def test_move_content(self, tmp_path):
        tree = DirectoryTree()
        root = tree.create_directory(tmp_path)
        sub = tree.create_directory(tmp_path / "sub", root)
        image = tree.add_image(tmp_path / "a.jpg", root)
        tree.move_content(image, root, sub)
        assert tree.list_images(root) == []
        assert tree.list_images(sub) == [image]
        assert image.parent_id == sub.id


class TestScanner:
    def test_counts(self, scanned):
        _, _, result = scanned
        assert result.directories == 4
        assert result.images == 4
        assert result.tagged == 2

    def test_structure(self, scanned, photo_dir):
        tree, _, _ = scanned
        root = tree.root
        assert root.path == photo_dir.resolve()
        assert [i.name for i in tree.list_images(root)] == ["a.jpg", "b @x.png"]
        assert [d.name for d in tree.list_subdirectories(root)] == ["empty", "sub"]

    def test_recursive_listing(self, scanned):
        tree, _, _ = scanned
        names = [i.name for i in tree.list_images_recursive(tree.root)]
        assert sorted(names) == sorted(["a.jpg", "b @x.png", "c @x @y.JPG", "d.gif"])

    def test_tags_derived_from_names(self, scanned):
        tree, registry, _ = scanned
        assert registry.names() == ["x", "y"]
        c = next(i for i in tree.images() if i.name.startswith("c"))
        assert c.current_tag_names == ("x", "y")
        assert c.id in registry.image_ids_for(registry.get("y"))
        assert len(registry.image_ids_for(registry.get("x"))) == 2

    def test_rescan_is_idempotent(self, scanned, photo_dir):
        tree, registry, _ = scanned
        result = DirectoryScanner(tree, registry).scan(photo_dir)
        assert result.images == 0
        assert result.directories == 0
        assert result.skipped == 4
        assert len(tree.images()) == 4
        assert len(registry) == 2

    def test_rescan_picks_up_new_files(self, scanned, photo_dir):
        tree, registry, _ = scanned
        touch(photo_dir / "sub" / "new @z.jpg")
        result = DirectoryScanner(tree, registry).scan(photo_dir)
        assert result.images == 1
        assert "z" in registry

    def test_blank_tag_leaves_no_stray_tags(self, photo_dir):
        touch(photo_dir / "e @z @ .jpg")
        tree, registry = DirectoryTree(), TagRegistry()
        result = DirectoryScanner(tree, registry).scan(photo_dir)
        image = next(i for i in tree.images() if i.name == "e @z @ .jpg")
        assert image.current_tag_names == ()
        assert "z" not in registry
        assert result.errors == 1

    def test_configured_extensions(self, photo_dir):
        config = ConfigManager()
        config.set("scanning.image_extensions", ["gif"])
        tree, registry = DirectoryTree(), TagRegistry()
        result = DirectoryScanner(tree, registry, config).scan(photo_dir)
        assert result.images == 1

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            DirectoryScanner(DirectoryTree(), TagRegistry()).scan(tmp_path / "nope")
