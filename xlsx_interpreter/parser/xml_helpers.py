"""
Shared XML helpers for SpreadsheetML / DrawingML parts.

Producers disagree on namespace prefixes (Excel, WPS, LibreOffice), so
lookups here match on local names and only fall back to fully qualified
attribute names where the attribute lives in a foreign namespace.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterator, Optional

from ..models.image import ImagePosition

NS_RELATIONSHIPS = "http://schemas.openxmlformats.org/package/2006/relationships"
NS_OFFICE_RELATIONSHIPS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
NS_SPREADSHEET_DRAWING = "http://schemas.openxmlformats.org/drawingml/2006/spreadsheetDrawing"
NS_DRAWING_MAIN = "http://schemas.openxmlformats.org/drawingml/2006/main"
NS_MARKUP_COMPATIBILITY = "http://schemas.openxmlformats.org/markup-compatibility/2006"

R_EMBED = f"{{{NS_OFFICE_RELATIONSHIPS}}}embed"
R_ID = f"{{{NS_OFFICE_RELATIONSHIPS}}}id"


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part of an element tag."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def iter_children(element: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in element:
        if local_name(child.tag) == name:
            yield child


def find_child(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    return next(iter_children(element, name), None)


def find_descendant(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    for node in element.iter():
        if node is not element and local_name(node.tag) == name:
            return node
    return None


def get_attribute(element: Optional[ET.Element], name: str) -> Optional[str]:
    """Return attribute *name* regardless of its namespace."""
    if element is None:
        return None
    if name in element.attrib:
        return element.attrib[name]
    for key, value in element.attrib.items():
        if local_name(key) == name:
            return value
    return None


def get_embed_id(blip: Optional[ET.Element]) -> Optional[str]:
    if blip is None:
        return None
    value = blip.get(R_EMBED) or get_attribute(blip, "embed")
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_int(value: Optional[str], default: Optional[int] = 0) -> Optional[int]:
    """Parse an integer attribute; ``default`` when absent, ``None`` when malformed."""
    if value is None:
        return default
    text = value.strip()
    if not text:
        return default
    try:
        return int(text)
    except ValueError:
        try:
            number = float(text)
        except ValueError:
            return None
        if number != number or number in (float("inf"), float("-inf")):
            return None
        return int(number)


def read_transform(picture: ET.Element) -> Optional[ImagePosition]:
    """
    Read ``spPr/a:xfrm`` offset and extent of a picture element.

    Missing values default to zero. Returns None when a value is present but
    not numeric.
    """
    sp_pr = find_child(picture, "spPr")
    xfrm = find_child(sp_pr, "xfrm")
    off = find_child(xfrm, "off")
    ext = find_child(xfrm, "ext")

    values = (
        parse_int(get_attribute(off, "x")),
        parse_int(get_attribute(off, "y")),
        parse_int(get_attribute(ext, "cx")),
        parse_int(get_attribute(ext, "cy")),
    )
    if any(value is None for value in values):
        return None
    x, y, width, height = values
    return ImagePosition(x=x, y=y, width=width, height=height)


def read_picture_identity(picture: ET.Element) -> tuple[Optional[ET.Element], Optional[str]]:
    """Return ``(cNvPr, embed id)`` of a ``pic`` element."""
    nv_pic_pr = find_child(picture, "nvPicPr")
    c_nv_pr = find_child(nv_pic_pr, "cNvPr")
    blip_fill = find_child(picture, "blipFill")
    blip = find_child(blip_fill, "blip")
    return c_nv_pr, get_embed_id(blip)
