"""Package, relationship and drawing parsers."""

from .cell_images_parser import CellImageRegistry, parse_cell_images_xml
from .drawing_parser import parse_drawing_xml
from .package_reader import PackageReader
from .relationships import (
    find_drawing_relationship,
    map_sheet_names_to_paths,
    normalize_target_path,
    parse_relationships,
)
from .worksheet_dimensions import read_declared_dimensions, read_dimension_ref

__all__ = [
    "PackageReader",
    "parse_relationships",
    "map_sheet_names_to_paths",
    "normalize_target_path",
    "find_drawing_relationship",
    "parse_drawing_xml",
    "parse_cell_images_xml",
    "CellImageRegistry",
    "read_dimension_ref",
    "read_declared_dimensions",
]
