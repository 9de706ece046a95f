"""
Drawing parser for XLSX worksheets.

Extracts floating (anchored) pictures from ``xl/drawings/drawingN.xml``
parts. Positions are reported in EMU as found in the part; converting to
pixels is left to presentation code.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Iterator, List, Optional

from openpyxl.utils.cell import get_column_letter

from ..models.image import FloatingImageDescriptor, ImagePosition
from .xml_helpers import (
    find_child,
    get_attribute,
    iter_children,
    local_name,
    parse_int,
    read_picture_identity,
    read_transform,
)

logger = logging.getLogger(__name__)

ANCHOR_TAGS = ("twoCellAnchor", "oneCellAnchor")


def _encode_cell(row_index: int, col_index: int) -> str:
    return f"{get_column_letter(col_index + 1)}{row_index + 1}"


def _unwrap_alternate_content(anchor: ET.Element) -> Optional[ET.Element]:
    """Pick the picture from an ``mc:AlternateContent`` block, Choice first."""
    alternate = find_child(anchor, "AlternateContent")
    if alternate is None:
        return None
    picture = find_child(find_child(alternate, "Choice"), "pic")
    if picture is None:
        picture = find_child(find_child(alternate, "Fallback"), "pic")
    return picture


def _find_picture(anchor: ET.Element) -> Optional[ET.Element]:
    picture = find_child(anchor, "pic")
    if picture is not None:
        return picture
    return _unwrap_alternate_content(anchor)


def _anchor_cell(anchor: ET.Element) -> Optional[tuple]:
    from_elem = find_child(anchor, "from")
    if from_elem is None:
        return None
    col_elem = find_child(from_elem, "col")
    row_elem = find_child(from_elem, "row")
    if col_elem is None or row_elem is None:
        return None
    col_index = parse_int(col_elem.text, default=None)
    row_index = parse_int(row_elem.text, default=None)
    if col_index is None or row_index is None or col_index < 0 or row_index < 0:
        return None
    return row_index, col_index


def _pick_image_id(c_nv_pr: Optional[ET.Element], relationship_id: str, cell_ref: str) -> str:
    name = (get_attribute(c_nv_pr, "name") or "").strip()
    if name:
        return name
    shape_id = (get_attribute(c_nv_pr, "id") or "").strip()
    if shape_id:
        return shape_id
    if relationship_id.strip():
        return relationship_id.strip()
    return f"floating_{cell_ref}"


def extract_image_from_anchor(anchor: ET.Element) -> Optional[FloatingImageDescriptor]:
    """
    Build a floating image descriptor from one anchor element.

    Returns None for anchors that do not carry an embedded picture (shapes,
    charts, linked-only pictures) or whose start cell is not usable.
    """
    picture = _find_picture(anchor)
    if picture is None:
        return None

    c_nv_pr, relationship_id = read_picture_identity(picture)
    if not relationship_id:
        return None

    cell = _anchor_cell(anchor)
    if cell is None:
        return None
    row_index, col_index = cell
    cell_ref = _encode_cell(row_index, col_index)

    position = read_transform(picture) or ImagePosition()

    return FloatingImageDescriptor(
        id=_pick_image_id(c_nv_pr, relationship_id, cell_ref),
        description=get_attribute(c_nv_pr, "descr") or "",
        relationship_id=relationship_id,
        position=position,
        cell_ref=cell_ref,
        row_index=row_index,
        col_index=col_index,
    )


def _iter_anchors(root: ET.Element, anchor_tag: str) -> Iterator[ET.Element]:
    """Yield anchors of one kind, including those wrapped in AlternateContent."""
    for child in root:
        name = local_name(child.tag)
        if name == anchor_tag:
            yield child
        elif name == "AlternateContent":
            branch = find_child(child, "Choice")
            wrapped = list(iter_children(branch, anchor_tag)) if branch is not None else []
            if not wrapped:
                branch = find_child(child, "Fallback")
                wrapped = list(iter_children(branch, anchor_tag)) if branch is not None else []
            yield from wrapped


def parse_drawing_xml(drawing_xml: Optional[str]) -> List[FloatingImageDescriptor]:
    """
    Parse a drawing part into floating image descriptors.

    Args:
        drawing_xml: Content of a ``drawingN.xml`` part

    Returns:
        Descriptors for every ``twoCellAnchor`` followed by every
        ``oneCellAnchor`` that holds a picture
    """
    if not drawing_xml:
        return []

    try:
        root = ET.fromstring(drawing_xml)
    except ET.ParseError as e:
        logger.warning(f"Failed to parse drawing XML: {e}")
        return []

    images: List[FloatingImageDescriptor] = []
    for anchor_tag in ANCHOR_TAGS:
        for anchor in _iter_anchors(root, anchor_tag):
            image = extract_image_from_anchor(anchor)
            if image is not None:
                images.append(image)
            else:
                logger.debug(f"Skipping {local_name(anchor.tag)} without embedded picture")

    return images
