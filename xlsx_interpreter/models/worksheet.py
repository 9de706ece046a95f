"""
Worksheet models produced by the sheet walker.

These are plain containers; all counting and reconciliation logic lives in
``engine.sheet_walker``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .image import ResolvedImage

CELL_TYPES = ("string", "number", "boolean", "date", "formula", "image")


@dataclass
class CellRecord:
    ref: str
    value: Any = ""
    type: str = "string"
    style_id: Optional[int] = None
    formula: Optional[str] = None
    image: Optional[ResolvedImage] = None

    def is_empty(self) -> bool:
        return self.value == "" or self.value is None

    def to_dict(self, inline_images: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {"ref": self.ref, "value": self.value, "type": self.type}
        if self.style_id is not None:
            data["styleId"] = self.style_id
        if self.formula is not None:
            data["formula"] = self.formula
        if self.image is not None:
            if inline_images:
                data["image"] = self.image.to_dict(inline=True)
            else:
                data["image"] = {"id": self.image.id}
        return data


@dataclass
class RowRecord:
    row_number: int
    cells: List[CellRecord] = field(default_factory=list)
    image_count: int = 0
    image_cells: List[str] = field(default_factory=list)
    height: Optional[float] = None
    custom_height: bool = False

    def has_data(self) -> bool:
        return any(not cell.is_empty() for cell in self.cells)

    def to_dict(self, inline_images: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "rowNumber": self.row_number,
            "cells": [cell.to_dict(inline_images) for cell in self.cells],
            "imageCount": self.image_count,
            "imageCells": list(self.image_cells),
        }
        if self.height is not None:
            data["height"] = self.height
            data["customHeight"] = self.custom_height
        return data


@dataclass
class ColumnMeta:
    min: int
    max: int
    width: float
    custom_width: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            "width": self.width,
            "customWidth": self.custom_width,
        }


@dataclass
class WorksheetRecord:
    name: str
    dimension_start: str
    dimension_end: str
    rows: List[RowRecord] = field(default_factory=list)
    columns: List[ColumnMeta] = field(default_factory=list)
    total_images: int = 0
    rows_with_images: int = 0

    def to_dict(self, inline_images: bool = True) -> Dict[str, Any]:
        return {
            "name": self.name,
            "dimension": {"start": self.dimension_start, "end": self.dimension_end},
            "rows": [row.to_dict(inline_images) for row in self.rows],
            "columns": [col.to_dict() for col in self.columns],
            "totalImages": self.total_images,
            "rowsWithImages": self.rows_with_images,
        }


@dataclass
class ParseResult:
    """
    Result of one ``parse_file`` / ``parse_buffer`` call.

    Attributes
    ----------
    worksheets
        Worksheet records in workbook order.
    images
        Image id to resolved image; insertion order is discovery order
        (named cell images first, then floating images).
    errors
        Human readable diagnostics collected while parsing.
    """

    worksheets: List[WorksheetRecord] = field(default_factory=list)
    images: Dict[str, ResolvedImage] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def register_image(self, image: ResolvedImage) -> bool:
        """Add *image* unless its id is already taken; return True if added."""
        if image.id in self.images:
            return False
        self.images[image.id] = image
        return True

    def get_worksheet(self, name: str) -> Optional[WorksheetRecord]:
        for worksheet in self.worksheets:
            if worksheet.name == name:
                return worksheet
        return None

    def to_dict(self, inline_images: bool = True) -> Dict[str, Any]:
        return {
            "worksheets": [ws.to_dict(inline_images) for ws in self.worksheets],
            "images": {
                image_id: image.to_dict(inline=inline_images)
                for image_id, image in self.images.items()
            },
            "errors": list(self.errors),
        }
