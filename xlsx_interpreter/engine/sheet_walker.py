"""
Sheet walker: merges cell data and image bindings into worksheet records.

Cell values come from openpyxl. Two workbook views are used: the formula view
(``data_only=False``) tells whether a cell holds a formula and gives its text,
the value view (``data_only=True``) gives the value cached by the producer.
"""

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

from openpyxl.utils.cell import coordinate_to_tuple, column_index_from_string, get_column_letter, range_boundaries

from ..media.floating_images import FloatingImageManager
from ..models.image import ResolvedImage
from ..models.worksheet import CellRecord, ColumnMeta, ParseResult, RowRecord, WorksheetRecord
from ..options import ParseOptions

logger = logging.getLogger(__name__)

DISPIMG_MARKER = "DISPIMG"
DISPIMG_PATTERN = re.compile(r'DISPIMG\(\s*"([^"]+)"')
DEFAULT_COLUMN_WIDTH = 9

# (min_row, min_col, max_row, max_col), 1-based
Bounds = Tuple[int, int, int, int]


def extract_image_id(text: Any) -> Optional[str]:
    """Return the image name of a ``DISPIMG("<name>", ...)`` call, if any."""
    if not isinstance(text, str) or DISPIMG_MARKER not in text:
        return None
    match = DISPIMG_PATTERN.search(text)
    return match.group(1) if match else None


def _bounds_from_ref(ref: str) -> Optional[Bounds]:
    try:
        min_col, min_row, max_col, max_row = range_boundaries(ref)
    except (ValueError, TypeError):
        return None
    if min_col is None or min_row is None:
        # whole-row or whole-column ranges carry no usable box
        return None
    return min_row, min_col, max_row if max_row is not None else min_row, max_col if max_col is not None else min_col


def declared_bounds(worksheet, dimension_ref: Optional[str] = None) -> Bounds:
    """
    Return the declared range of a worksheet.

    Args:
        worksheet: openpyxl worksheet
        dimension_ref: ``<dimension ref>`` of the worksheet part, if it has one

    Returns:
        ``(min_row, min_col, max_row, max_col)``; without a usable declared
        ref, the bounding box of the stored cells
    """
    if dimension_ref:
        bounds = _bounds_from_ref(dimension_ref)
        if bounds is not None:
            return bounds
        logger.debug(f"Ignoring unusable dimension {dimension_ref!r} of {worksheet.title!r}")
    return _bounds_from_ref(worksheet.calculate_dimension() or "A1:A1") or (1, 1, 1, 1)


def effective_bounds(declared: Bounds, anchor_refs) -> Bounds:
    """Grow *declared* so that every anchor cell ref falls inside it."""
    min_row, min_col, max_row, max_col = declared
    for cell_ref in anchor_refs:
        try:
            row, col = coordinate_to_tuple(cell_ref)
        except (ValueError, TypeError):
            logger.debug(f"Ignoring malformed anchor ref {cell_ref!r}")
            continue
        min_row, max_row = min(min_row, row), max(max_row, row)
        min_col, max_col = min(min_col, col), max(max_col, col)
    return min_row, min_col, max_row, max_col


def _normalize_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def _value_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (datetime, date, time)):
        return "date"
    return "string"


def _formula_text(raw: Any) -> Optional[str]:
    # ArrayFormula keeps its text on .text
    text = getattr(raw, "text", raw)
    if isinstance(text, str) and text.startswith("="):
        return text[1:]
    return None


class SheetWalker:
    """Builds ``WorksheetRecord`` objects for every worksheet of a workbook."""

    def __init__(self, options: ParseOptions, floating_manager: Optional[FloatingImageManager] = None,
                 declared_dimensions: Optional[Dict[str, str]] = None):
        self.options = options
        self.floating_manager = floating_manager
        self.declared_dimensions = declared_dimensions or {}

    def walk_workbook(self, formula_workbook, values_workbook, result: ParseResult) -> None:
        """
        Append a worksheet record per worksheet to *result*.

        A failing worksheet is reported in ``result.errors`` and skipped.
        """
        for worksheet in formula_workbook.worksheets:
            try:
                values_sheet = None
                if values_workbook is not None and worksheet.title in values_workbook.sheetnames:
                    values_sheet = values_workbook[worksheet.title]
                record = self.walk_worksheet(worksheet, values_sheet, result.images)
                result.worksheets.append(record)
            except Exception as e:
                logger.error(f"Failed to parse worksheet {worksheet.title!r}: {e}")
                result.errors.append(f"Failed to parse worksheet '{worksheet.title}': {e}")

    def floating_bindings(self, sheet_name: str) -> Dict[str, List[str]]:
        if self.floating_manager is None:
            return {}
        return self.floating_manager.get_sheet_floating_images(sheet_name)

    def walk_worksheet(self, worksheet, values_sheet, images: Dict[str, ResolvedImage]) -> WorksheetRecord:
        sheet_name = worksheet.title
        floating_for_sheet = self.floating_bindings(sheet_name)

        declared = declared_bounds(worksheet, self.declared_dimensions.get(sheet_name))
        start_row, start_col, end_row, end_col = effective_bounds(declared, floating_for_sheet.keys())

        # ws.cell() and iter_rows() insert blank cells into the worksheet;
        # the private map holds only the cells the part declared
        cells = dict(worksheet._cells)
        value_cells = dict(values_sheet._cells) if values_sheet is not None else {}

        record = WorksheetRecord(
            name=sheet_name,
            dimension_start=f"{get_column_letter(declared[1])}{declared[0]}",
            dimension_end=f"{get_column_letter(declared[3])}{declared[2]}",
            columns=self.parse_columns(worksheet),
        )

        for row_number in range(start_row, end_row + 1):
            row = RowRecord(row_number=row_number)
            self._apply_row_height(worksheet, row)
            row_seen = set()

            for col_number in range(start_col, end_col + 1):
                cell_ref = f"{get_column_letter(col_number)}{row_number}"

                floating_ids = floating_for_sheet.get(cell_ref) or []
                for image_id in floating_ids:
                    if image_id not in row_seen:
                        row_seen.add(image_id)
                        row.image_count += 1
                        record.total_images += 1
                        row.image_cells.append(cell_ref)

                cell = cells.get((row_number, col_number))
                if cell is None and not self.options.include_empty_columns:
                    continue

                cell_record = self.parse_cell(cell, value_cells.get((row_number, col_number)), cell_ref, images)
                if cell_record.type == "image":
                    image_id = cell_record.image.id
                    if image_id not in row_seen:
                        row_seen.add(image_id)
                        row.image_count += 1
                        record.total_images += 1
                        row.image_cells.append(cell_ref)
                elif floating_ids:
                    representative = images.get(floating_ids[0])
                    if representative is not None:
                        cell_record.image = representative

                row.cells.append(cell_record)

            if row.image_count > 0:
                record.rows_with_images += 1

            if self.options.include_empty_rows or row.has_data():
                record.rows.append(row)

        logger.debug(
            f"Worksheet {sheet_name!r}: {len(record.rows)} rows, {record.total_images} images "
            f"in range {get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
        )
        return record

    def parse_cell(self, cell, value_cell, cell_ref: str, images: Dict[str, ResolvedImage]) -> CellRecord:
        """
        Build a cell record.

        A cell whose formula or cached value calls ``DISPIMG`` with a known
        image name becomes an ``image`` cell, whatever its value type.
        """
        cell_record = CellRecord(ref=cell_ref)
        if cell is None:
            return cell_record

        raw = cell.value
        formula = _formula_text(raw)
        if formula is not None:
            cached = value_cell.value if value_cell is not None else None
            cell_record.formula = formula
            cell_record.type = "formula"
        else:
            cached = raw
            cell_record.type = _value_type(raw)

        cell_record.value = _normalize_value(cached)
        cell_record.style_id = getattr(cell, "style_id", None)

        image_id = extract_image_id(formula) or extract_image_id(cached)
        if image_id is not None:
            image = images.get(image_id)
            if image is not None:
                cell_record.type = "image"
                cell_record.image = image
            else:
                logger.debug(f"Cell {cell_ref} references unknown image {image_id!r}")

        return cell_record

    @staticmethod
    def _apply_row_height(worksheet, row: RowRecord) -> None:
        dimension = worksheet.row_dimensions.get(row.row_number)
        if dimension is None or dimension.ht is None:
            return
        row.height = dimension.ht
        row.custom_height = bool(dimension.customHeight)

    @staticmethod
    def parse_columns(worksheet) -> List[ColumnMeta]:
        columns: List[ColumnMeta] = []
        for key, dimension in worksheet.column_dimensions.items():
            try:
                index = column_index_from_string(key)
            except ValueError:
                continue
            min_col = dimension.min or index
            max_col = dimension.max or min_col
            columns.append(
                ColumnMeta(
                    min=min_col,
                    max=max_col,
                    width=dimension.width or DEFAULT_COLUMN_WIDTH,
                    custom_width=bool(dimension.customWidth),
                )
            )
        columns.sort(key=lambda column: column.min)
        return columns
