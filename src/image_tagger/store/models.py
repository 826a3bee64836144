"""
Database models for the snapshot store.
Three snapshot tables (tags, directories, images) plus the child rows that
carry each image's histories and each tag's reverse index. Primary keys are
the in-memory entity ids, so cross references survive a save/load cycle.
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class TagRow(Base):
    """Registered tags."""
    __tablename__ = 'tags'

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False, unique=True, index=True)

    # Reverse index: images currently carrying this tag
    images = relationship("TagImageRow", back_populates="tag", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<TagRow(id={self.id}, name='{self.name}')>"


class DirectoryRow(Base):
    """Directories of the tree; the root has no parent."""
    __tablename__ = 'directories'

    id = Column(Integer, primary_key=True, autoincrement=False)
    path = Column(String(4096), nullable=False, unique=True)
    parent_id = Column(Integer, ForeignKey('directories.id'), nullable=True, index=True)
    # Index within the parent's contents
    position = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<DirectoryRow(id={self.id}, path='{self.path}')>"


class ImageRow(Base):
    """Images and their current location."""
    __tablename__ = 'images'

    id = Column(Integer, primary_key=True, autoincrement=False)
    path = Column(String(4096), nullable=False)
    parent_id = Column(Integer, ForeignKey('directories.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    tag_history = relationship(
        "TagHistoryRow", back_populates="image",
        cascade="all, delete-orphan", order_by="TagHistoryRow.sequence",
    )
    renames = relationship(
        "RenameRow", back_populates="image",
        cascade="all, delete-orphan", order_by="RenameRow.sequence",
    )

    def __repr__(self):
        return f"<ImageRow(id={self.id}, path='{self.path}')>"


class TagHistoryRow(Base):
    """One recorded tag set of an image."""
    __tablename__ = 'tag_history'

    id = Column(Integer, primary_key=True)
    image_id = Column(Integer, ForeignKey('images.id'), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    tag_names = Column(JSON, nullable=False)  # ordered list of names

    image = relationship("ImageRow", back_populates="tag_history")


class RenameRow(Base):
    """One rename of an image."""
    __tablename__ = 'rename_events'

    id = Column(Integer, primary_key=True)
    image_id = Column(Integer, ForeignKey('images.id'), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    old_name = Column(String(1024), nullable=False)
    new_name = Column(String(1024), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    image = relationship("ImageRow", back_populates="renames")


class TagImageRow(Base):
    """Reverse index entry: tag carried by image."""
    __tablename__ = 'tag_images'

    id = Column(Integer, primary_key=True)
    tag_id = Column(Integer, ForeignKey('tags.id'), nullable=False, index=True)
    image_id = Column(Integer, ForeignKey('images.id'), nullable=False, index=True)

    tag = relationship("TagRow", back_populates="images")

    def __repr__(self):
        return f"<TagImageRow(tag_id={self.tag_id}, image_id={self.image_id})>"
