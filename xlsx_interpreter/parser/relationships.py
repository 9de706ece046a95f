"""
Relationship resolver for XLSX packages.

Handles ``.rels`` parsing, sheet name to worksheet part mapping and the
folder-relative target normalization used by the image pipelines.
"""

import logging
import posixpath
import xml.etree.ElementTree as ET
from typing import Dict, Optional

from ..models.relationship import RelationshipRecord
from .xml_helpers import R_ID, get_attribute, iter_children, local_name

logger = logging.getLogger(__name__)

DRAWING_RELATIONSHIP_MARKER = "/relationships/drawing"
KNOWN_FOLDERS = ("worksheets/", "drawings/", "media/")


def parse_relationships(rels_xml: Optional[str]) -> Dict[str, RelationshipRecord]:
    """
    Parse a ``.rels`` document into an id -> relationship mapping.

    Malformed input yields an empty mapping; the error is logged, not raised.
    Duplicate ids keep the last declaration.
    """
    relationships: Dict[str, RelationshipRecord] = {}
    if not rels_xml:
        return relationships

    try:
        root = ET.fromstring(rels_xml)
    except ET.ParseError as e:
        logger.warning(f"Failed to parse relationship XML: {e}")
        return relationships

    for rel in root.iter():
        if local_name(rel.tag) != "Relationship":
            continue
        rel_id = rel.get("Id")
        rel_type = rel.get("Type")
        target = rel.get("Target")
        if not (rel_id and rel_type and target):
            continue
        relationships[rel_id] = RelationshipRecord(
            id=rel_id,
            type=rel_type,
            target=target,
            target_mode=rel.get("TargetMode") or "Internal",
        )

    return relationships


def _strip_xl_root(target: str) -> str:
    target = target.lstrip("/")
    if target.startswith("xl/"):
        target = target[len("xl/"):]
    return target


def map_sheet_names_to_paths(workbook_xml: Optional[str], workbook_rels_xml: Optional[str]) -> Dict[str, str]:
    """
    Map sheet names to worksheet part paths relative to ``xl/``.

    Args:
        workbook_xml: Content of ``xl/workbook.xml``
        workbook_rels_xml: Content of ``xl/_rels/workbook.xml.rels``

    Returns:
        Ordered mapping such as ``{"Sheet1": "worksheets/sheet1.xml"}``; sheets
        whose relationship cannot be resolved are left out.
    """
    sheet_map: Dict[str, str] = {}
    if not workbook_xml or not workbook_rels_xml:
        return sheet_map

    try:
        root = ET.fromstring(workbook_xml)
    except ET.ParseError as e:
        logger.warning(f"Failed to parse workbook XML: {e}")
        return sheet_map

    relationships = parse_relationships(workbook_rels_xml)

    sheets = next((node for node in root.iter() if local_name(node.tag) == "sheets"), None)
    if sheets is None:
        return sheet_map

    for sheet in iter_children(sheets, "sheet"):
        name = sheet.get("name")
        rel_id = sheet.get(R_ID) or get_attribute(sheet, "id")
        if not name or not rel_id:
            continue

        rel = relationships.get(rel_id)
        if rel is None:
            logger.debug(f"No workbook relationship for sheet {name!r} ({rel_id})")
            continue

        target = rel.target
        if target.startswith("./"):
            target = "worksheets/" + target[2:]
        elif target.startswith("/"):
            target = _strip_xl_root(target)
        sheet_map[name] = target

    return sheet_map


def normalize_target_path(from_folder: str, target: str) -> str:
    """
    Normalize a relationship target to a path relative to ``xl/``.

    ``../media/image1.png`` seen from ``drawings`` becomes ``media/image1.png``;
    ``drawing1.xml`` seen from ``drawings`` becomes ``drawings/drawing1.xml``.
    Only the shallow folder layout of spreadsheet packages is supported.
    """
    if target.startswith("../"):
        return target[len("../"):]
    if target.startswith("/"):
        return _strip_xl_root(target)
    if from_folder and not target.startswith(KNOWN_FOLDERS):
        return f"{from_folder.rstrip('/')}/{target}"
    return target


def find_drawing_relationship(relationships: Dict[str, RelationshipRecord]) -> Optional[RelationshipRecord]:
    """Return the first drawing relationship of a sheet, or None."""
    for rel in relationships.values():
        if DRAWING_RELATIONSHIP_MARKER in rel.type:
            return rel
    return None


def rels_path_for(part_path: str) -> str:
    """
    Build the relationships part path of *part_path*.

    ``xl/drawings/drawing1.xml`` -> ``xl/drawings/_rels/drawing1.xml.rels``
    """
    folder, filename = posixpath.split(part_path)
    if folder:
        return f"{folder}/_rels/{filename}.rels"
    return f"_rels/{filename}.rels"


def remove_relationships_of_type(rels_xml: bytes, type_marker: str) -> bytes:
    """
    Drop every relationship whose type contains *type_marker*.

    Returns *rels_xml* unchanged when it cannot be parsed or holds no such
    relationship.
    """
    try:
        root = ET.fromstring(rels_xml)
    except ET.ParseError:
        return rels_xml

    doomed = [
        child for child in root
        if local_name(child.tag) == "Relationship" and type_marker in (child.get("Type") or "")
    ]
    if not doomed:
        return rels_xml
    for child in doomed:
        root.remove(child)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)
