from image_tagger.model.entities import Directory, Image, RenameEvent, Tag

__all__ = ["Directory", "Image", "RenameEvent", "Tag"]
