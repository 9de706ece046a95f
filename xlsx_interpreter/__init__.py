"""
XLSX Interpreter - cell data and image extraction for XLSX packages.

Reads worksheets through openpyxl and resolves both WPS-style named cell
images (``=DISPIMG("id", 1)``) and floating pictures anchored in drawing
parts into one per-row image index.
"""

from .api import ExcelImageReader, parse_buffer, parse_file
from .exceptions import ConfigurationError, MediaError, PackageError, ParsingError, XlsxInterpreterError
from .export.json_exporter import JSONExporter
from .models import (
    CellRecord,
    ColumnMeta,
    ImagePosition,
    ParseResult,
    ResolvedImage,
    RowRecord,
    WorksheetRecord,
)
from .options import ParseOptions
from .version import __version__

__all__ = [
    "ExcelImageReader",
    "parse_file",
    "parse_buffer",
    "ParseOptions",
    "ParseResult",
    "WorksheetRecord",
    "RowRecord",
    "CellRecord",
    "ColumnMeta",
    "ResolvedImage",
    "ImagePosition",
    "JSONExporter",
    "XlsxInterpreterError",
    "PackageError",
    "ParsingError",
    "MediaError",
    "ConfigurationError",
    "__version__",
]
