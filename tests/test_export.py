"""Tests for the rename log and tag export."""

from datetime import datetime
from pathlib import Path

import pytest

from image_tagger.export import export_tag_images, rename_log_lines, write_rename_log
from image_tagger.model.entities import Image, RenameEvent, Tag


def make_image(path, *renames):
    image = Image(id=1, path=Path(path), parent_id=0, tag_history=[()])
    for old, new, ts in renames:
        image.record_tag_change((), RenameEvent(old, new, ts))
    return image


class TestRenameLog:
    def test_line_format(self):
        image = make_image(
            "/p/photo.jpg",
            ("photo.jpg", "photo @sunset.jpg", datetime(2019, 7, 4, 18, 5, 9)),
        )
        assert rename_log_lines([image]) == [
            'Image "photo.jpg" has been renamed to "photo @sunset.jpg" '
            "with timestamp 2019/07/04 18:05:09."
        ]

    def test_custom_timestamp_format(self):
        image = make_image("/p/a.jpg", ("a.jpg", "a @x.jpg", datetime(2020, 1, 2, 3, 4, 5)))
        assert rename_log_lines([image], "%Y-%m-%d")[0].endswith("with timestamp 2020-01-02.")

    def test_images_without_renames(self):
        assert rename_log_lines([make_image("/p/a.jpg")]) == []

    def test_write_overwrites(self, tmp_path):
        log_path = tmp_path / "logs" / "renameLogs.txt"
        first = make_image(
            "/p/a.jpg",
            ("a.jpg", "a @x.jpg", datetime(2020, 1, 1)),
            ("a @x.jpg", "a @x @y.jpg", datetime(2020, 1, 2)),
        )
        write_rename_log([first], log_path)
        assert len(log_path.read_text(encoding="utf-8").splitlines()) == 2

        second = make_image("/p/b.jpg", ("b.jpg", "b @z.jpg", datetime(2020, 2, 1)))
        write_rename_log([second], log_path)
        content = log_path.read_text(encoding="utf-8")
        assert content.count("\n") == 1
        assert '"b @z.jpg"' in content
        assert "a @x.jpg" not in content


class TestExportTagImages:
    @pytest.fixture
    def images(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        paths = [src / "one @sky.jpg", src / "two @sky.png"]
        for path in paths:
            path.write_bytes(b"pixels")
        return [Image(id=i, path=p, parent_id=0) for i, p in enumerate(paths, start=1)]

    def test_copies_into_tag_folder(self, images, tmp_path):
        result = export_tag_images(Tag(id=1, name="sky"), images, tmp_path / "out")
        assert result.destination == tmp_path / "out" / "sky"
        assert result.total == 2
        assert result.copied == 2
        assert sorted(p.name for p in result.destination.iterdir()) == [
            "one @sky.jpg",
            "two @sky.png",
        ]
        # originals stay where they are
        assert all(image.path.exists() for image in images)

    def test_skips_existing(self, images, tmp_path):
        export_tag_images(Tag(id=1, name="sky"), images[:1], tmp_path / "out")
        result = export_tag_images(Tag(id=1, name="sky"), images, tmp_path / "out")
        assert result.copied == 1
        assert result.skipped == 1

    def test_missing_source_counted_as_error(self, images, tmp_path):
        images[0].path.unlink()
        result = export_tag_images(Tag(id=1, name="sky"), images, tmp_path / "out")
        assert result.errors == 1
        assert result.error_files == [str(images[0].path)]
        assert result.copied == 1
