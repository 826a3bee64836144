"""Image Tagger - tag images by renaming them, and remember every name they had."""

__version__ = "0.1.0"
