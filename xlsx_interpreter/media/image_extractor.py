"""
Image binary extractor for XLSX packages.

Pulls media parts out of the package and turns them into self-describing
``data:`` URIs. The MIME type comes from the file extension only; the bytes
are never sniffed.
"""

import base64
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, Optional

from ..exceptions import MediaError
from ..models.image import ImageExtractionResult, ImagePosition, ResolvedImage
from ..parser.package_reader import XL_ROOT, PackageReader

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
}


def mime_type_from_path(path: str) -> str:
    """Infer the MIME type of a media part from its extension."""
    extension = path.lower().rsplit(".", 1)[-1] if "." in path else ""
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def build_data_uri(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class ImageExtractor:
    """
    Extracts image binaries referenced by relationship targets.

    Media paths are relative to ``xl/`` (``media/image1.png``).
    """

    def __init__(self, package_reader: PackageReader, max_workers: int = 4):
        """
        Initialize image extractor.

        Args:
            package_reader: Open package of the current parse call
            max_workers: Thread count used by ``extract_multiple_images``
        """
        self.package_reader = package_reader
        self.max_workers = max(1, int(max_workers))

    @staticmethod
    def part_name(media_path: str) -> str:
        return f"{XL_ROOT}{media_path.lstrip('/')}"

    def extract_image_data(self, media_path: str) -> Optional[ImageExtractionResult]:
        """
        Extract image data for a media path.

        Args:
            media_path: Path relative to ``xl/``

        Returns:
            Extraction result, or None when the part is missing or unreadable
        """
        if not media_path:
            return None

        try:
            data = self.package_reader.get_binary_content(self.part_name(media_path))
        except MediaError as e:
            logger.error(f"Failed to read image {media_path}: {e}")
            return None

        if data is None:
            logger.debug(f"Image part not found: {media_path}")
            return None

        mime_type = mime_type_from_path(media_path)
        return ImageExtractionResult(
            base64=build_data_uri(data, mime_type),
            mime_type=mime_type,
            raw_data=data,
        )

    def extract_multiple_images(self, media_paths: Iterable[str]) -> Dict[str, ImageExtractionResult]:
        """
        Extract several media parts concurrently.

        Missing parts are left out of the returned mapping. The mapping is
        keyed by media path; no ordering is implied.
        """
        unique_paths = list(dict.fromkeys(path for path in media_paths if path))
        if not unique_paths:
            return {}

        results: Dict[str, ImageExtractionResult] = {}
        if len(unique_paths) == 1 or self.max_workers == 1:
            for path in unique_paths:
                extracted = self.extract_image_data(path)
                if extracted is not None:
                    results[path] = extracted
            return results

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(unique_paths))) as executor:
            for path, extracted in zip(unique_paths, executor.map(self.extract_image_data, unique_paths)):
                if extracted is not None:
                    results[path] = extracted

        logger.debug(f"Extracted {len(results)}/{len(unique_paths)} media parts")
        return results

    def check_image_exists(self, media_path: str) -> bool:
        return self.package_reader.has_part(self.part_name(media_path))

    def get_image_size(self, media_path: str) -> Optional[int]:
        """Return the uncompressed byte size of a media part, or None."""
        return self.package_reader.get_part_size(self.part_name(media_path))

    @staticmethod
    def create_resolved_image(
        image_id: str,
        description: str,
        relationship_id: str,
        position: ImagePosition,
        extraction: ImageExtractionResult,
        media_path: Optional[str] = None,
    ) -> ResolvedImage:
        return ResolvedImage(
            id=image_id,
            description=description,
            base64=extraction.base64,
            mime_type=extraction.mime_type,
            position=position,
            relationship_id=relationship_id,
            media_path=media_path,
        )
