from image_tagger.store.manager import SnapshotStore

__all__ = ["SnapshotStore"]
