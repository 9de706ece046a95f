"""Media extraction and floating image binding."""

from .floating_images import FloatingImageManager
from .image_extractor import ImageExtractor, mime_type_from_path

__all__ = ["FloatingImageManager", "ImageExtractor", "mime_type_from_path"]
