"""
Image models for spreadsheet packages.

Both image-embedding mechanisms (named cell images referenced by ``DISPIMG``
formulas and floating images anchored in drawing parts) produce descriptors
that share the same core fields, and both end up as a ``ResolvedImage`` in the
parse result.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(slots=True)
class ImagePosition:
    """Offset and extent of a picture in EMU, as declared by ``a:xfrm``."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(slots=True)
class NamedCellImageDescriptor:
    """Image declared in the package-level ``cellimages.xml`` part."""

    id: str
    description: str
    relationship_id: str
    position: ImagePosition = field(default_factory=ImagePosition)


@dataclass(slots=True)
class FloatingImageDescriptor:
    """Image anchored to a worksheet cell through a drawing part."""

    id: str
    description: str
    relationship_id: str
    position: ImagePosition
    cell_ref: str
    row_index: int
    col_index: int
    # Filled in by the floating image manager once the drawing rels are known
    media_path: Optional[str] = None
    skip_reason: Optional[str] = None


@dataclass(slots=True)
class ImageExtractionResult:
    """Raw bytes of a media part together with its data URI."""

    base64: str
    mime_type: str
    raw_data: bytes


@dataclass(slots=True)
class ResolvedImage:
    """
    Final image entry of a parse result.

    ``base64`` holds the complete ``data:<mime>;base64,<payload>`` URI so the
    value can be dropped straight into an ``<img src>``.
    """

    id: str
    description: str
    base64: str
    mime_type: str
    position: ImagePosition
    relationship_id: str
    media_path: Optional[str] = None

    @property
    def data_segment(self) -> str:
        """Return the base64 payload without the ``data:`` prefix."""
        _, _, payload = self.base64.partition(",")
        return payload

    def decode_bytes(self) -> bytes:
        return base64.b64decode(self.data_segment)

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/")[-1].lower()
        return "jpg" if subtype == "jpeg" else subtype

    def to_dict(self, inline: bool = True) -> Dict[str, Any]:
        """
        Serialize image to a plain dictionary.

        Args:
            inline: Embed the data URI; when False only metadata is emitted and
                the caller is expected to reference a sibling file instead.

        Returns:
            JSON-ready dictionary
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "mimeType": self.mime_type,
            "position": self.position.to_dict(),
            "relationshipId": self.relationship_id,
        }
        if inline:
            data["base64"] = self.base64
        return data
