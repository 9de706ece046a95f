"""
Declared worksheet dimensions.

openpyxl drops the ``<dimension ref>`` element of a worksheet part, so it is
read here straight from the package. Only the head of each part is parsed:
the element precedes ``sheetData``.
"""

import logging
import xml.etree.ElementTree as ET
from typing import BinaryIO, Dict, Optional

from .package_reader import WORKBOOK_PART, WORKBOOK_RELS_PART, XL_ROOT, PackageReader
from .relationships import map_sheet_names_to_paths
from .xml_helpers import local_name

logger = logging.getLogger(__name__)


def read_dimension_ref(stream: BinaryIO) -> Optional[str]:
    """
    Return the ``ref`` of the first ``<dimension>`` element of a worksheet.

    Args:
        stream: Worksheet part opened for reading

    Returns:
        The declared range (``A1:C10``), or None when the sheet declares none
    """
    try:
        for _event, element in ET.iterparse(stream, events=("start",)):
            name = local_name(element.tag)
            if name == "dimension":
                return (element.get("ref") or "").strip() or None
            if name == "sheetData":
                return None
    except ET.ParseError as e:
        logger.debug(f"Cannot read worksheet dimension: {e}")
    return None


def read_declared_dimensions(package_reader: PackageReader) -> Dict[str, str]:
    """
    Map sheet names to their declared dimension.

    Sheets without a ``<dimension>`` element are left out.
    """
    sheets_map = map_sheet_names_to_paths(
        package_reader.get_xml_if_exists(WORKBOOK_PART),
        package_reader.get_xml_if_exists(WORKBOOK_RELS_PART),
    )

    dimensions: Dict[str, str] = {}
    for sheet_name, sheet_path in sheets_map.items():
        part_name = f"{XL_ROOT}{sheet_path}"
        if not package_reader.has_part(part_name):
            continue
        with package_reader.open_part(part_name) as stream:
            ref = read_dimension_ref(stream)
        if ref:
            dimensions[sheet_name] = ref
    return dimensions
