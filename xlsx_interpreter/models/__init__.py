"""Data models for parsed spreadsheet packages."""

from .relationship import RelationshipRecord
from .image import (
    ImagePosition,
    NamedCellImageDescriptor,
    FloatingImageDescriptor,
    ImageExtractionResult,
    ResolvedImage,
)
from .worksheet import (
    CELL_TYPES,
    CellRecord,
    RowRecord,
    ColumnMeta,
    WorksheetRecord,
    ParseResult,
)

__all__ = [
    "RelationshipRecord",
    "ImagePosition",
    "NamedCellImageDescriptor",
    "FloatingImageDescriptor",
    "ImageExtractionResult",
    "ResolvedImage",
    "CELL_TYPES",
    "CellRecord",
    "RowRecord",
    "ColumnMeta",
    "WorksheetRecord",
    "ParseResult",
]
