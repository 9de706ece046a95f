"""
JSON exporter for parse results.

Handles JSON export of worksheets and images, either with the images inlined
as data URIs or written next to the JSON file.
"""

import io
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from ..models.image import ResolvedImage
from ..models.worksheet import ParseResult
from ..version import __version__

logger = logging.getLogger(__name__)

IMAGES_DIR = "images"


def read_pixel_size(data: bytes) -> Optional[Tuple[int, int]]:
    """Return ``(width, height)`` when Pillow can identify *data*, else None."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug(f"Could not read pixel size: {e}")
        return None


class JSONExporter:
    """
    Exports a ``ParseResult`` as JSON.

    In compact mode (``inline_images=False``) image entries carry a ``file``
    path relative to the JSON document instead of the data URI.
    """

    def __init__(self, result: ParseResult, indent: int = 2, ensure_ascii: bool = False,
                 inline_images: bool = True):
        """
        Initialize JSON exporter.

        Args:
            result: Parse result to export
            indent: JSON indentation level
            ensure_ascii: Whether to ensure ASCII encoding
            inline_images: Embed images as data URIs
        """
        self.result = result
        self.indent = indent
        self.ensure_ascii = ensure_ascii
        self.inline_images = inline_images
        self._file_names: Optional[Dict[str, str]] = None

    def export(self, output_path: Union[str, Path]) -> bool:
        """
        Export result to a JSON file.

        Args:
            output_path: Output file path; in compact mode images go to an
                ``images/`` directory beside it

        Returns:
            True if export successful, False otherwise
        """
        try:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)

            if not self.inline_images:
                self.write_images(output_path.parent)

            output_path.write_text(self.export_to_string(), encoding="utf-8")
            logger.info(f"Result exported to JSON: {output_path}")
            return True
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to export result to JSON: {e}")
            return False

    def export_result_model(self) -> Dict[str, Any]:
        data = self.result.to_dict(inline_images=self.inline_images)
        data["images"] = {
            image_id: self.export_image(image) for image_id, image in self.result.images.items()
        }
        return {
            "metadata": {
                "export_timestamp": datetime.now().isoformat(),
                "exporter_version": __version__,
                "document_type": "XLSX",
            },
            "summary": self.build_summary(),
            **data,
        }

    def export_image(self, image: ResolvedImage) -> Dict[str, Any]:
        entry = image.to_dict(inline=self.inline_images)
        raw = image.decode_bytes()
        entry["byte_size"] = len(raw)
        pixel_size = read_pixel_size(raw)
        entry["pixel_size"] = list(pixel_size) if pixel_size else None
        if not self.inline_images:
            entry["file"] = self.image_file_name(image)
        return entry

    def build_summary(self) -> Dict[str, Any]:
        worksheets = self.result.worksheets
        return {
            "total_worksheets": len(worksheets),
            "total_images": len(self.result.images),
            "total_rows": sum(len(ws.rows) for ws in worksheets),
            "total_cells": sum(len(row.cells) for ws in worksheets for row in ws.rows),
            "errors": len(self.result.errors),
        }

    def image_file_names(self) -> Dict[str, str]:
        """
        Map image ids to relative file names, unique per result.

        Ids that sanitise to the same name (``Picture 1``, ``Picture_1``)
        get a numeric suffix in registration order. Names are compared
        case-insensitively.
        """
        if self._file_names is None:
            names: Dict[str, str] = {}
            taken = set()
            for image_id, image in self.result.images.items():
                stem = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in image_id)
                file_name = f"{stem}.{image.extension}"
                counter = 1
                while file_name.lower() in taken:
                    counter += 1
                    file_name = f"{stem}_{counter}.{image.extension}"
                taken.add(file_name.lower())
                names[image_id] = f"{IMAGES_DIR}/{file_name}"
            self._file_names = names
        return self._file_names

    def image_file_name(self, image: ResolvedImage) -> str:
        return self.image_file_names()[image.id]

    def write_images(self, output_dir: Union[str, Path]) -> List[Path]:
        """
        Write every image of the result under ``<output_dir>/images``.

        Returns:
            Paths of the written files
        """
        output_dir = Path(output_dir)
        written: List[Path] = []
        for image in self.result.images.values():
            target = output_dir / self.image_file_name(image)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image.decode_bytes())
            written.append(target)
        logger.debug(f"Wrote {len(written)} images to {output_dir / IMAGES_DIR}")
        return written

    def format_json_output(self, data: Dict[str, Any]) -> str:
        return json.dumps(data, indent=self.indent, ensure_ascii=self.ensure_ascii, default=str)

    def export_to_string(self) -> str:
        return self.format_json_output(self.export_result_model())
