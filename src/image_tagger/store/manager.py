"""
Snapshot store for the directory tree and tag registry.
Handles the database connection and full save/load of session state.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from image_tagger.errors import PersistenceIOFailure
from image_tagger.model.entities import Directory, Image, RenameEvent
from image_tagger.registry import TagRegistry
from image_tagger.tree import DirectoryTree

from .models import (
    Base,
    DirectoryRow,
    ImageRow,
    RenameRow,
    TagHistoryRow,
    TagImageRow,
    TagRow,
)

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Persist and restore the full tagging state in a SQLite database.

    The database is created on first use. Each save replaces the previous
    snapshot in a single transaction.
    """

    def __init__(self, db_path: str | Path):
        """
        Args:
            db_path: Path of the SQLite file holding the snapshot.
        """
        self.db_path = Path(db_path)
        self._engine: Engine | None = None
        self._Session: sessionmaker | None = None

    def exists(self) -> bool:
        """True if a snapshot with a root directory has been saved."""
        if not self.db_path.exists():
            return False
        try:
            engine = self._get_engine()
            if not inspect(engine).has_table(DirectoryRow.__tablename__):
                return False
            with self._Session() as session:
                return session.query(DirectoryRow).filter(
                    DirectoryRow.parent_id.is_(None)
                ).first() is not None
        except SQLAlchemyError as e:
            raise PersistenceIOFailure(f"Cannot read snapshot {self.db_path}: {e}") from e

    def save(self, tree: DirectoryTree, registry: TagRegistry) -> None:
        """Replace the stored snapshot with the given state."""
        try:
            self._get_engine()
            with self._Session.begin() as session:
                self._clear(session)
                session.add_all(self._tag_rows(registry))
                session.add_all(self._directory_rows(tree))
                session.add_all(self._image_rows(tree))
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceIOFailure(f"Cannot save snapshot {self.db_path}: {e}") from e
        logger.info(
            f"Saved {len(tree.directories())} directories, {len(tree.images())} images "
            f"and {len(registry)} tags to {self.db_path}"
        )

    def load(self) -> tuple[DirectoryTree, TagRegistry]:
        """Rebuild a tree and registry from the stored snapshot.

        Raises:
            PersistenceIOFailure: If the database cannot be read.
        """
        if not self.db_path.exists():
            raise PersistenceIOFailure(f"No snapshot found at {self.db_path}")
        try:
            self._get_engine()
            with self._Session() as session:
                tree = self._load_tree(session)
                registry = self._load_registry(session)
        except SQLAlchemyError as e:
            raise PersistenceIOFailure(f"Cannot load snapshot {self.db_path}: {e}") from e
        logger.info(f"Loaded snapshot from {self.db_path}")
        return tree, registry

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._Session = None

    # --- Private helpers ---

    def _get_engine(self) -> Engine:
        """Create the engine and tables on first use."""
        if self._engine is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(f"sqlite:///{self.db_path}", echo=False)
            Base.metadata.create_all(engine)
            self._engine = engine
            self._Session = sessionmaker(bind=engine)
        return self._engine

    def _clear(self, session: Session) -> None:
        for row_type in (TagImageRow, TagHistoryRow, RenameRow, ImageRow, DirectoryRow, TagRow):
            session.query(row_type).delete()

    def _tag_rows(self, registry: TagRegistry) -> list[TagRow]:
        rows = []
        for tag in registry.tags():
            row = TagRow(id=tag.id, name=tag.name)
            row.images = [
                TagImageRow(image_id=image_id)
                for image_id in sorted(registry.image_ids_for(tag))
            ]
            rows.append(row)
        return rows

    def _positions(self, tree: DirectoryTree) -> dict[int, int]:
        positions = {}
        for directory in tree.directories():
            for index, entity_id in enumerate(directory.contents):
                positions[entity_id] = index
        return positions

    def _directory_rows(self, tree: DirectoryTree) -> list[DirectoryRow]:
        positions = self._positions(tree)
        return [
            DirectoryRow(
                id=d.id,
                path=str(d.path),
                parent_id=d.parent_id,
                position=positions.get(d.id, 0),
            )
            for d in tree.directories()
        ]

    def _image_rows(self, tree: DirectoryTree) -> list[ImageRow]:
        positions = self._positions(tree)
        rows = []
        for image in tree.images():
            row = ImageRow(
                id=image.id,
                path=str(image.path),
                parent_id=image.parent_id,
                position=positions.get(image.id, 0),
            )
            row.tag_history = [
                TagHistoryRow(sequence=i, tag_names=list(entry))
                for i, entry in enumerate(image.tag_history)
            ]
            row.renames = [
                RenameRow(
                    sequence=i,
                    old_name=event.old_name,
                    new_name=event.new_name,
                    timestamp=event.timestamp,
                )
                for i, event in enumerate(image.rename_history)
            ]
            rows.append(row)
        return rows

    def _load_tree(self, session: Session) -> DirectoryTree:
        directories = {
            row.id: Directory(id=row.id, path=Path(row.path), parent_id=row.parent_id)
            for row in session.query(DirectoryRow).order_by(DirectoryRow.id)
        }
        images = {}
        placement: dict[int, list[tuple[int, int]]] = {}
        for row in session.query(DirectoryRow).filter(DirectoryRow.parent_id.isnot(None)):
            placement.setdefault(row.parent_id, []).append((row.position, row.id))
        for row in session.query(ImageRow).order_by(ImageRow.id):
            images[row.id] = Image(
                id=row.id,
                path=Path(row.path),
                parent_id=row.parent_id,
                tag_history=[tuple(h.tag_names) for h in row.tag_history],
                rename_history=[
                    RenameEvent(r.old_name, r.new_name, r.timestamp) for r in row.renames
                ],
            )
            placement.setdefault(row.parent_id, []).append((row.position, row.id))

        for parent_id, children in placement.items():
            directories[parent_id].contents = [entity_id for _, entity_id in sorted(children)]

        tree = DirectoryTree()
        tree.restore(directories.values(), images.values())
        return tree

    def _load_registry(self, session: Session) -> TagRegistry:
        registry = TagRegistry()
        for row in session.query(TagRow).order_by(TagRow.id):
            registry.restore_tag(row.id, row.name, (link.image_id for link in row.images))
        return registry
