"""
Floating image manager for XLSX packages.

Follows workbook -> sheet -> drawing -> media relationships for every sheet,
resolves the anchored pictures into the parse result and keeps a
``sheet -> cell -> [image ids]`` binding table for the sheet walker.
"""

import logging
import posixpath
from typing import Dict, List, Optional

from ..models.image import FloatingImageDescriptor
from ..models.relationship import RelationshipRecord
from ..models.worksheet import ParseResult
from ..parser.drawing_parser import parse_drawing_xml
from ..parser.package_reader import WORKBOOK_PART, WORKBOOK_RELS_PART, XL_ROOT, PackageReader
from ..parser.relationships import (
    find_drawing_relationship,
    map_sheet_names_to_paths,
    normalize_target_path,
    parse_relationships,
    rels_path_for,
)
from .image_extractor import ImageExtractor

logger = logging.getLogger(__name__)

SKIP_MISSING_RELATIONSHIP = "missing_relationship"
SKIP_EXTERNAL = "external"
SKIP_MISSING_MEDIA_PATH = "missing_media_path"
SKIP_EXTRACT_FAILED = "extract_failed"


class FloatingImageManager:
    """
    Resolves floating images and binds them to anchor cells.

    The binding table is scoped to one parse call: ``clear()`` must run at
    the start of every call that reuses the manager.
    """

    def __init__(self, package_reader: Optional[PackageReader] = None,
                 image_extractor: Optional[ImageExtractor] = None):
        self.package_reader = package_reader
        self.image_extractor = image_extractor
        self._floating_images_by_sheet: Dict[str, Dict[str, List[str]]] = {}

    def attach(self, package_reader: Optional[PackageReader], image_extractor: Optional[ImageExtractor]) -> None:
        """Point the manager at the package of the current parse call."""
        self.package_reader = package_reader
        self.image_extractor = image_extractor

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------
    def parse_floating_images(self, result: ParseResult) -> None:
        """
        Resolve floating images of every sheet into *result*.

        Sheet level failures are reported in ``result.errors`` and do not stop
        the remaining sheets.
        """
        if self.package_reader is None or self.image_extractor is None:
            return

        sheets_map = self.get_sheets_map()
        logger.debug(f"Scanning {len(sheets_map)} sheets for drawings")

        for sheet_name, sheet_path in sheets_map.items():
            try:
                self._parse_sheet_floating_images(sheet_name, sheet_path, result)
            except Exception as e:
                logger.error(f"Failed to parse floating images for sheet {sheet_name!r}: {e}")
                result.errors.append(f"Failed to parse floating images for sheet '{sheet_name}': {e}")

    def get_sheets_map(self) -> Dict[str, str]:
        workbook_xml = self.package_reader.get_xml_if_exists(WORKBOOK_PART)
        workbook_rels_xml = self.package_reader.get_xml_if_exists(WORKBOOK_RELS_PART)
        if not workbook_xml or not workbook_rels_xml:
            return {}
        return map_sheet_names_to_paths(workbook_xml, workbook_rels_xml)

    def get_sheet_relationships(self, sheet_path: str) -> Optional[Dict[str, RelationshipRecord]]:
        base_name = posixpath.basename(sheet_path)
        sheet_rels_xml = self.package_reader.get_xml_if_exists(f"{XL_ROOT}worksheets/_rels/{base_name}.rels")
        if not sheet_rels_xml:
            return None
        return parse_relationships(sheet_rels_xml)

    def parse_drawing_file(self, drawing_rel: RelationshipRecord) -> List[FloatingImageDescriptor]:
        """
        Parse the drawing part behind *drawing_rel* and resolve media paths.

        Descriptors that cannot be resolved carry a ``skip_reason``.
        """
        drawing_target = normalize_target_path("worksheets", drawing_rel.target)
        drawing_xml = self.package_reader.get_xml_if_exists(f"{XL_ROOT}{drawing_target}")
        if not drawing_xml:
            logger.debug(f"Drawing part not found: {drawing_target}")
            return []

        drawing_rels_xml = self.package_reader.get_xml_if_exists(rels_path_for(f"{XL_ROOT}{drawing_target}"))
        drawing_rels = parse_relationships(drawing_rels_xml) if drawing_rels_xml else {}

        floating_images = parse_drawing_xml(drawing_xml)
        for image_info in floating_images:
            rel = drawing_rels.get(image_info.relationship_id)
            if rel is None:
                image_info.skip_reason = SKIP_MISSING_RELATIONSHIP
                continue
            if rel.is_external:
                image_info.skip_reason = SKIP_EXTERNAL
                continue
            image_info.media_path = normalize_target_path("drawings", rel.target)

        return floating_images

    def _parse_sheet_floating_images(self, sheet_name: str, sheet_path: str, result: ParseResult) -> None:
        sheet_rels = self.get_sheet_relationships(sheet_path)
        if not sheet_rels:
            return

        drawing_rel = find_drawing_relationship(sheet_rels)
        if drawing_rel is None:
            return
        if drawing_rel.is_external:
            logger.debug(f"External drawing for sheet {sheet_name!r} ignored")
            return

        floating_images = self.parse_drawing_file(drawing_rel)
        if not floating_images:
            return

        # Fan out extraction; registration below stays on this thread in drawing order
        extracted = self.image_extractor.extract_multiple_images(
            image.media_path for image in floating_images if not image.skip_reason and image.media_path
        )

        for image_info in floating_images:
            self._process_floating_image(image_info, sheet_name, result, extracted)

    def _process_floating_image(self, image_info: FloatingImageDescriptor, sheet_name: str,
                                result: ParseResult, extracted: Dict) -> None:
        skip_reason = image_info.skip_reason
        if not skip_reason and not image_info.media_path:
            skip_reason = SKIP_MISSING_MEDIA_PATH
        extraction = None
        if not skip_reason:
            extraction = extracted.get(image_info.media_path)
            if extraction is None:
                skip_reason = SKIP_EXTRACT_FAILED

        if skip_reason:
            message = (
                f"[skip] reason={skip_reason} id={image_info.id} "
                f"sheet={sheet_name} cell={image_info.cell_ref}"
            )
            logger.info(message)
            result.errors.append(message)
            return

        cell_image = self.image_extractor.create_resolved_image(
            image_info.id,
            image_info.description,
            image_info.relationship_id,
            image_info.position,
            extraction,
            media_path=image_info.media_path,
        )
        if not result.register_image(cell_image):
            logger.debug(f"Image id {image_info.id!r} already registered, keeping first")

        self.bind_image_to_cell(image_info, sheet_name)

    def bind_image_to_cell(self, image_info: FloatingImageDescriptor, sheet_name: str) -> None:
        by_cell = self._floating_images_by_sheet.setdefault(sheet_name, {})
        by_cell.setdefault(image_info.cell_ref, []).append(image_info.id)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    def get_floating_image_ids(self, sheet_name: str, cell_ref: str) -> List[str]:
        return list(self._floating_images_by_sheet.get(sheet_name, {}).get(cell_ref, []))

    def get_sheet_floating_images(self, sheet_name: str) -> Dict[str, List[str]]:
        """Return the ``cell ref -> [image ids]`` table of one sheet (empty if none)."""
        return self._floating_images_by_sheet.get(sheet_name, {})

    def get_all_floating_images(self) -> Dict[str, Dict[str, List[str]]]:
        return self._floating_images_by_sheet

    def clear(self) -> None:
        """Reset the binding table."""
        self._floating_images_by_sheet.clear()
