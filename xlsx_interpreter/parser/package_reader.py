"""
Package reader for XLSX files.

Handles opening the ZIP container and access to its XML and binary parts.
"""

import codecs
import io
import logging
import re
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Union

from ..exceptions import MediaError, PackageError, ParsingError
from .relationships import DRAWING_RELATIONSHIP_MARKER, remove_relationships_of_type

logger = logging.getLogger(__name__)

WORKBOOK_PART = "xl/workbook.xml"
WORKBOOK_RELS_PART = "xl/_rels/workbook.xml.rels"
CELL_IMAGES_PART = "xl/cellimages.xml"
CELL_IMAGES_RELS_PART = "xl/_rels/cellimages.xml.rels"
XL_ROOT = "xl/"
MEDIA_PREFIX = "xl/media/"
WORKSHEET_RELS_PREFIX = "xl/worksheets/_rels/"

PackageSource = Union[str, Path, bytes, bytearray, BinaryIO]

XML_ENCODING_PATTERN = re.compile(rb"""^<\?xml[^>]*?encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")


def decode_xml(data: bytes) -> str:
    """
    Decode an XML part, honouring its byte order mark or declared encoding.

    Raises:
        ParsingError: If the bytes do not decode with the detected encoding
    """
    if data.startswith(codecs.BOM_UTF8):
        encoding = "utf-8-sig"
    elif data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        encoding = "utf-16"
    else:
        match = XML_ENCODING_PATTERN.match(data)
        encoding = match.group(1).decode("ascii") if match else "utf-8"
        # a declaration readable as ASCII cannot be UTF-16
        if encoding.lower().replace("_", "-").startswith("utf-16"):
            encoding = "utf-8"

    try:
        return data.decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise ParsingError(f"Cannot decode XML part as {encoding}", str(e)) from e


class PackageReader:
    """
    Reads and manages XLSX package contents.

    One reader is owned by exactly one parse call; its caches die with it.
    """

    def __init__(self, source: PackageSource):
        """
        Initialize package reader.

        Args:
            source: Path to an XLSX file, the raw bytes of one, or a binary
                file object positioned at its start
        """
        self.source_path: Optional[Path] = None
        self._zip_file: Optional[zipfile.ZipFile] = None
        self._names: Dict[str, zipfile.ZipInfo] = {}
        self._closed: bool = False

        # Cache for performance
        self._xml_cache: Dict[str, str] = {}
        self._media_cache: Dict[str, bytes] = {}

        self._open_package(source)

    @property
    def zip_file(self) -> Optional[zipfile.ZipFile]:
        """Get ZIP file object."""
        return None if self._closed else self._zip_file

    @property
    def closed(self) -> bool:
        return self._closed

    def _open_package(self, source: PackageSource) -> None:
        """Open XLSX package as ZIP file."""
        if isinstance(source, (str, Path)):
            self.source_path = Path(source)
            if not self.source_path.exists():
                raise FileNotFoundError(f"XLSX file not found: {self.source_path}")
            handle: Union[Path, BinaryIO] = self.source_path
        elif isinstance(source, (bytes, bytearray)):
            handle = io.BytesIO(bytes(source))
        elif hasattr(source, "read"):
            handle = source
        else:
            raise PackageError("Unsupported package source", type(source).__name__)

        try:
            self._zip_file = zipfile.ZipFile(handle, "r")
        except zipfile.BadZipFile as e:
            raise PackageError("Not a valid spreadsheet package", str(e)) from e

        self._names = {info.filename: info for info in self._zip_file.infolist() if not info.is_dir()}
        logger.info(
            "Opened XLSX package: %s (%d parts)",
            self.source_path or "<buffer>",
            len(self._names),
        )

    def _require_open(self) -> zipfile.ZipFile:
        if self._closed or self._zip_file is None:
            raise ValueError("Package not opened")
        return self._zip_file

    def has_part(self, part_name: str) -> bool:
        return part_name in self._names

    def list_parts(self) -> List[str]:
        return list(self._names)

    def get_xml_content(self, part_name: str) -> str:
        """
        Get XML content for a given part name.

        Args:
            part_name: Name of the part to retrieve

        Returns:
            XML content as string

        Raises:
            KeyError: If the part does not exist
            ParsingError: If the part cannot be decoded
        """
        if part_name in self._xml_cache:
            logger.debug("XML cache hit for: %s", part_name)
            return self._xml_cache[part_name]

        zip_file = self._require_open()
        if part_name not in self._names:
            raise KeyError(f"Part not found: {part_name}")

        content = decode_xml(zip_file.read(part_name))
        self._xml_cache[part_name] = content
        return content

    def get_xml_if_exists(self, part_name: str) -> Optional[str]:
        """
        Get XML content if it exists and decodes.

        Args:
            part_name: Name of the part to retrieve

        Returns:
            XML content as string, or None if missing or undecodable
        """
        try:
            return self.get_xml_content(part_name)
        except KeyError:
            return None
        except ParsingError as e:
            logger.warning("Ignoring unreadable part %s: %s", part_name, e)
            return None

    def get_binary_content(self, part_name: str) -> Optional[bytes]:
        """
        Get binary content for a given part name.

        Args:
            part_name: Name of the part to retrieve

        Returns:
            Binary content as bytes, or None if not found

        Raises:
            MediaError: If the part exists but its compressed data is damaged
        """
        if part_name in self._media_cache:
            logger.debug("Media cache hit for: %s", part_name)
            return self._media_cache[part_name]

        zip_file = self._require_open()
        if part_name not in self._names:
            logger.debug("Binary part not found: %s", part_name)
            return None

        try:
            content = zip_file.read(part_name)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise MediaError(f"Damaged part {part_name}", str(e)) from e
        self._media_cache[part_name] = content
        return content

    def open_part(self, part_name: str) -> BinaryIO:
        """
        Open a part for streaming reads.

        Raises:
            KeyError: If the part does not exist
        """
        zip_file = self._require_open()
        if part_name not in self._names:
            raise KeyError(f"Part not found: {part_name}")
        return zip_file.open(part_name)

    def get_part_size(self, part_name: str) -> Optional[int]:
        info = self._names.get(part_name)
        return info.file_size if info is not None else None

    def get_media_files(self) -> List[str]:
        """Get list of all media parts under ``xl/media/``."""
        return [name for name in self._names if name.startswith(MEDIA_PREFIX)]

    def copy_without_drawings(self) -> bytes:
        """
        Return a copy of the package with worksheet drawing relationships removed.

        The copy is what the cell model library loads: drawings are resolved
        by this package, and a broken drawing part must not make the whole
        workbook unreadable.
        """
        zip_file = self._require_open()
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as target:
            for info in zip_file.infolist():
                content = zip_file.read(info.filename)
                if info.filename.startswith(WORKSHEET_RELS_PREFIX) and info.filename.endswith(".rels"):
                    content = remove_relationships_of_type(content, DRAWING_RELATIONSHIP_MARKER)
                # writestr rewrites offsets and sizes on the ZipInfo it gets;
                # the source archive's entries must stay untouched
                entry = zipfile.ZipInfo(info.filename, info.date_time)
                entry.compress_type = zipfile.ZIP_DEFLATED
                entry.external_attr = info.external_attr
                target.writestr(entry, content)
        return buffer.getvalue()

    def clear_cache(self) -> None:
        self._xml_cache.clear()
        self._media_cache.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        """Close the package reader and drop its caches."""
        if self._zip_file is not None and not self._closed:
            self._zip_file.close()
        self.clear_cache()
        self._closed = True
        logger.debug("Package reader closed")
