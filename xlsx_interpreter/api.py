"""
Top-level reader for XLSX packages.

``ExcelImageReader`` wires the package reader, the named cell image registry,
the floating image manager and the sheet walker together. Every call builds a
fresh package handle and a fresh ``ParseResult``.
"""

import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Union

from openpyxl import load_workbook

from .engine.sheet_walker import SheetWalker
from .exceptions import ParsingError
from .media.floating_images import FloatingImageManager
from .media.image_extractor import ImageExtractor
from .models.worksheet import ParseResult
from .options import ParseOptions
from .parser.cell_images_parser import CellImageRegistry
from .parser.package_reader import PackageReader
from .parser.worksheet_dimensions import read_declared_dimensions

logger = logging.getLogger(__name__)

OptionsLike = Union[ParseOptions, Mapping[str, Any], None]


class ExcelImageReader:
    """
    Extracts cell data and images from XLSX packages.

    Examples:
        >>> reader = ExcelImageReader()
        >>> result = reader.parse_file("report.xlsx")
        >>> result.worksheets[0].total_images
    """

    def __init__(self):
        self.floating_image_manager = FloatingImageManager()

    def parse_file(self, file_path: Union[str, Path], options: OptionsLike = None) -> ParseResult:
        """
        Parse an XLSX file from disk.

        Args:
            file_path: Path to the package
            options: ``ParseOptions`` or a mapping accepted by ``ParseOptions.from_dict``

        Returns:
            Parse result; a package that cannot be read yields an empty
            result with a single ``Failed to parse file`` error

        Raises:
            ConfigurationError: If *options* are invalid
        """
        parse_options = ParseOptions.coerce(options)
        try:
            data = Path(file_path).read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {file_path}: {e}")
            return ParseResult(errors=[f"Failed to parse file: {e}"])

        logger.info(f"Parsing {file_path}")
        return self._parse(data, parse_options, "file")

    def parse_buffer(self, buffer: Union[bytes, bytearray, BinaryIO], options: OptionsLike = None) -> ParseResult:
        """
        Parse an XLSX package held in memory.

        Args:
            buffer: Raw package bytes or a binary file object
            options: ``ParseOptions`` or a mapping accepted by ``ParseOptions.from_dict``

        Raises:
            ConfigurationError: If *options* are invalid
        """
        parse_options = ParseOptions.coerce(options)
        if hasattr(buffer, "read"):
            data = buffer.read()
        else:
            data = bytes(buffer)
        return self._parse(data, parse_options, "buffer")

    def _parse(self, data: bytes, options: ParseOptions, source_kind: str) -> ParseResult:
        result = ParseResult()
        self.floating_image_manager.clear()

        try:
            with PackageReader(data) as package_reader:
                formula_workbook, values_workbook = self._load_workbooks(package_reader)
                declared_dimensions = read_declared_dimensions(package_reader)

                if options.include_images:
                    try:
                        self._resolve_images(package_reader, options, result)
                    except Exception as e:
                        # worksheets are walked even when image resolution fails
                        logger.error(f"Failed to extract images: {e}")
                        result.errors.append(f"Failed to extract images: {e}")

                walker = SheetWalker(options, self.floating_image_manager, declared_dimensions)
                walker.walk_workbook(formula_workbook, values_workbook, result)
        except Exception as e:
            logger.error(f"Failed to parse {source_kind}: {e}")
            return ParseResult(errors=[f"Failed to parse {source_kind}: {e}"])
        finally:
            self.floating_image_manager.attach(None, None)

        logger.info(
            f"Parsed {len(result.worksheets)} worksheets, {len(result.images)} images, "
            f"{len(result.errors)} diagnostics"
        )
        return result

    @staticmethod
    def _load_workbooks(package_reader: PackageReader):
        """
        Load the formula and cached-value views of the workbook.

        Raises:
            ParsingError: If openpyxl cannot load the package
        """
        cell_model = package_reader.copy_without_drawings()
        try:
            formula_workbook = load_workbook(io.BytesIO(cell_model), data_only=False)
            values_workbook = load_workbook(io.BytesIO(cell_model), data_only=True)
        except Exception as e:
            raise ParsingError("Failed to load workbook", str(e)) from e
        return formula_workbook, values_workbook

    def _resolve_images(self, package_reader: PackageReader, options: ParseOptions, result: ParseResult) -> None:
        image_extractor = ImageExtractor(package_reader, max_workers=options.max_workers)

        # Named cell images first so that they win id collisions
        CellImageRegistry(package_reader, image_extractor).register_images(result)

        self.floating_image_manager.attach(package_reader, image_extractor)
        self.floating_image_manager.parse_floating_images(result)


def parse_file(file_path: Union[str, Path], options: OptionsLike = None) -> ParseResult:
    """Parse an XLSX file with a throwaway reader."""
    return ExcelImageReader().parse_file(file_path, options)


def parse_buffer(buffer: Union[bytes, bytearray, BinaryIO], options: OptionsLike = None) -> ParseResult:
    """Parse XLSX bytes with a throwaway reader."""
    return ExcelImageReader().parse_buffer(buffer, options)
