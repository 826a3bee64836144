"""Command line interface for Image Tagger."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from image_tagger.config.config import ConfigManager, get_root_config_path
from image_tagger.errors import ImageTaggerError
from image_tagger.model.entities import Image
from image_tagger.session import TaggingSession

logger = logging.getLogger(__name__)

MUTATING_COMMANDS = {"scan", "create-tag", "delete-tag", "tag", "untag", "move", "revert"}


def setup_logging(config: ConfigManager, verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else getattr(
        logging, str(config.get("logging.level", "INFO")).upper(), logging.INFO
    )
    logging.basicConfig(
        level=level,
        format=config.get("logging.format"),
        datefmt=config.get("logging.datefmt"),
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-tagger",
        description="Tag images by renaming them, and keep every name they had",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ~/Pictures scan
  %(prog)s ~/Pictures tag ~/Pictures/photo.jpg sunset beach
  %(prog)s ~/Pictures revert "~/Pictures/photo @sunset @beach.jpg" "photo @sunset.jpg"
        """,
    )
    parser.add_argument("root", help="Root directory of the tagged tree")
    parser.add_argument("--config", help="Config YAML file (default: <root>/.image_tagger.yaml)")
    parser.add_argument("--db", help="Snapshot database path (overrides config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("scan", help="Scan root for new directories and images")
    commands.add_parser("tags", help="List all tags and how many images carry each")

    create = commands.add_parser("create-tag", help="Register a new tag")
    create.add_argument("name")

    delete = commands.add_parser("delete-tag", help="Delete tags and strip them from images")
    delete.add_argument("names", nargs="+")

    tag = commands.add_parser("tag", help="Add tags to an image")
    tag.add_argument("image")
    tag.add_argument("names", nargs="+")

    untag = commands.add_parser("untag", help="Remove tags from an image")
    untag.add_argument("image")
    untag.add_argument("names", nargs="+")

    move = commands.add_parser("move", help="Move an image to another directory")
    move.add_argument("image")
    move.add_argument("directory")

    history = commands.add_parser("history", help="Show every name an image has had")
    history.add_argument("image")

    revert = commands.add_parser("revert", help="Restore the tags of a previous name")
    revert.add_argument("image")
    revert.add_argument("name")

    log = commands.add_parser("log", help="Write the rename log of all images")
    log.add_argument("--output", help="Log file path (default from config)")

    export = commands.add_parser("export-tag", help="Copy a tag's images into a folder")
    export.add_argument("name")
    export.add_argument("--dest", help="Export root (default from config)")
    return parser


def _load_config(args: argparse.Namespace) -> ConfigManager:
    config_path = Path(args.config) if args.config else get_root_config_path(args.root)
    config = ConfigManager(config_path if config_path.exists() else None)
    if args.db:
        config.set("store.path", str(Path(args.db).expanduser().resolve()))
    return config


def _find_image(session: TaggingSession, path: str) -> Image:
    image = session.tree.find_image_by_path(path)
    if image is None:
        raise ImageTaggerError(f"Unknown image: {path}")
    session.set_current_image(image)
    return image


def _lookup_tags(session: TaggingSession, names: list[str], create: bool = False):
    if create:
        return session.registry.ensure_tags(names)
    tags = []
    for name in names:
        tag = session.registry.get(name)
        if tag is None:
            raise ImageTaggerError(f"Unknown tag: {name}")
        tags.append(tag)
    return tags


def run_command(session: TaggingSession, args: argparse.Namespace) -> int:
    command = args.command
    if command == "scan":
        result = session.rescan()
        print(f"Added {result.directories} directories and {result.images} images "
              f"({result.tagged} tagged, {result.skipped} already known)")
    elif command == "tags":
        for tag in session.all_tags():
            print(f"{tag.name}\t{len(session.registry.image_ids_for(tag))}")
    elif command == "create-tag":
        tag = session.create_tag(args.name)
        print(f"Created tag '{tag.name}'")
    elif command == "delete-tag":
        session.delete_tags(_lookup_tags(session, args.names))
    elif command == "tag":
        image = _find_image(session, args.image)
        session.add_tags_to_image(_lookup_tags(session, args.names, create=True))
        print(image.name)
    elif command == "untag":
        image = _find_image(session, args.image)
        session.remove_tags_from_image(_lookup_tags(session, args.names))
        print(image.name)
    elif command == "move":
        image = _find_image(session, args.image)
        if not session.move_image(args.directory):
            print("Image is already in that directory")
        print(image.path)
    elif command == "history":
        image = _find_image(session, args.image)
        for name in session.image_name_history(image):
            print(name)
    elif command == "revert":
        image = _find_image(session, args.image)
        if not session.revert_image_name(args.name):
            print(f"No matching historical revision for '{args.name}'")
            return 1
        print(image.name)
    elif command == "log":
        path = session.write_rename_log(args.output)
        print(f"Rename log written to {path}")
    elif command == "export-tag":
        tag = _lookup_tags(session, [args.name])[0]
        result = session.export_tag(tag, args.dest)
        print(f"Copied {result.copied} image(s) to {result.destination}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = _load_config(args)
    setup_logging(config, args.verbose)

    root = Path(args.root).expanduser()
    if not root.is_dir():
        print(f"Error: '{root}' is not a directory.")
        return 1

    try:
        session = TaggingSession.open(root, config)
        status = run_command(session, args)
        if args.command in MUTATING_COMMANDS and config.get("store.autosave", True):
            session.save()
        return status
    except KeyboardInterrupt:
        print("\nOperation interrupted")
        return 0
    except ImageTaggerError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
