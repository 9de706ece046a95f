"""
Named cell image parser.

WPS and recent Excel builds store pictures placed *in* cells in a
package-level ``xl/cellimages.xml`` part; cells point at them through a
``=_xlfn.DISPIMG("<name>", 1)`` formula. This module parses that part and
resolves its pictures into the parse result.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Dict, List, Optional

from ..models.image import NamedCellImageDescriptor
from ..models.relationship import RelationshipRecord
from .package_reader import CELL_IMAGES_PART, CELL_IMAGES_RELS_PART
from .relationships import normalize_target_path, parse_relationships
from .xml_helpers import find_child, get_attribute, local_name, read_picture_identity, read_transform

if TYPE_CHECKING:
    from ..media.image_extractor import ImageExtractor
    from ..models.worksheet import ParseResult
    from .package_reader import PackageReader

logger = logging.getLogger(__name__)


def parse_cell_images_xml(cell_images_xml: Optional[str]) -> List[NamedCellImageDescriptor]:
    """
    Parse ``cellimages.xml`` into named image descriptors.

    Declarations without a name, an embed id or a numeric transform are
    skipped.
    """
    if not cell_images_xml:
        return []

    try:
        root = ET.fromstring(cell_images_xml)
    except ET.ParseError as e:
        logger.warning(f"Failed to parse cell images XML: {e}")
        return []

    descriptors: List[NamedCellImageDescriptor] = []
    for item in root.iter():
        if local_name(item.tag) != "cellImage":
            continue
        picture = find_child(item, "pic")
        if picture is None:
            continue

        c_nv_pr, relationship_id = read_picture_identity(picture)
        name = get_attribute(c_nv_pr, "name")
        if not name or not relationship_id:
            continue

        position = read_transform(picture)
        if position is None:
            continue

        descriptors.append(
            NamedCellImageDescriptor(
                id=name,
                description=get_attribute(c_nv_pr, "descr") or "",
                relationship_id=relationship_id,
                position=position,
            )
        )

    return descriptors


class CellImageRegistry:
    """
    Resolves named cell images of one package into a parse result.

    Both ``cellimages.xml`` and its relationships part are optional; when
    either is missing the package simply has no named cell images.
    """

    def __init__(self, package_reader: "PackageReader", image_extractor: "ImageExtractor"):
        self.package_reader = package_reader
        self.image_extractor = image_extractor
        self.descriptors: List[NamedCellImageDescriptor] = []
        self.relationships: Dict[str, RelationshipRecord] = {}

    def load(self) -> List[NamedCellImageDescriptor]:
        cell_images_xml = self.package_reader.get_xml_if_exists(CELL_IMAGES_PART)
        rels_xml = self.package_reader.get_xml_if_exists(CELL_IMAGES_RELS_PART)
        if not cell_images_xml or not rels_xml:
            self.descriptors = []
            self.relationships = {}
            return self.descriptors

        self.relationships = parse_relationships(rels_xml)
        self.descriptors = parse_cell_images_xml(cell_images_xml)
        logger.debug(f"Found {len(self.descriptors)} named cell images")
        return self.descriptors

    def resolve_media_path(self, descriptor: NamedCellImageDescriptor) -> tuple[Optional[str], Optional[str]]:
        """Return ``(media_path, skip_reason)`` for a descriptor."""
        rel = self.relationships.get(descriptor.relationship_id)
        if rel is None:
            return None, "missing_relationship"
        if rel.is_external:
            return None, "external"
        return normalize_target_path("", rel.target), None

    def register_images(self, result: "ParseResult") -> int:
        """
        Resolve every named cell image and add it to ``result.images``.

        Returns:
            Number of images newly registered
        """
        self.load()
        if not self.descriptors:
            return 0

        resolved = []
        for descriptor in self.descriptors:
            media_path, skip_reason = self.resolve_media_path(descriptor)
            if skip_reason == "external":
                result.errors.append(f"[skip] reason=external id={descriptor.id} source=cellimages")
                continue
            if skip_reason:
                logger.debug(f"Named cell image {descriptor.id!r} skipped: {skip_reason}")
                continue
            resolved.append((descriptor, media_path))

        extracted = self.image_extractor.extract_multiple_images(path for _, path in resolved)

        registered = 0
        for descriptor, media_path in resolved:
            extraction = extracted.get(media_path)
            if extraction is None:
                logger.debug(f"Named cell image {descriptor.id!r} has no media part at {media_path}")
                continue
            image = self.image_extractor.create_resolved_image(
                descriptor.id,
                descriptor.description,
                descriptor.relationship_id,
                descriptor.position,
                extraction,
                media_path=media_path,
            )
            if result.register_image(image):
                registered += 1
            else:
                logger.debug(f"Duplicate named cell image id {descriptor.id!r} ignored")

        logger.info(f"Registered {registered} named cell images")
        return registered
