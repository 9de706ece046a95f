"""Parse options for the XLSX image reader."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .exceptions import ConfigurationError

_ALIASES = {
    "includeImages": "include_images",
    "includeEmptyRows": "include_empty_rows",
    "includeEmptyColumns": "include_empty_columns",
    "imageQuality": "image_quality",
    "maxWorkers": "max_workers",
}


@dataclass
class ParseOptions:
    """
    Options recognised by ``ExcelImageReader``.

    Attributes
    ----------
    include_images
        Resolve named cell images and floating images.
    include_empty_rows
        Keep rows whose cells are all empty.
    include_empty_columns
        Emit a record for every column of the scanned range, not only for
        cells present in the workbook.
    image_quality
        Accepted for compatibility (0..1); images are never re-encoded.
    max_workers
        Threads used to extract media parts.
    """

    include_images: bool = True
    include_empty_rows: bool = False
    include_empty_columns: bool = False
    image_quality: float = 0.8
    max_workers: int = 4

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        try:
            quality = float(self.image_quality)
        except (TypeError, ValueError):
            raise ConfigurationError("image_quality must be a number", repr(self.image_quality))
        if not 0.0 <= quality <= 1.0:
            raise ConfigurationError("image_quality must be between 0 and 1", str(quality))
        self.image_quality = quality

        if not isinstance(self.max_workers, int) or isinstance(self.max_workers, bool) or self.max_workers < 1:
            raise ConfigurationError("max_workers must be a positive integer", repr(self.max_workers))

        for name in ("include_images", "include_empty_rows", "include_empty_columns"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ConfigurationError(f"{name} must be a boolean", repr(value))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ParseOptions":
        """
        Build options from a mapping.

        Both ``include_images`` and ``includeImages`` spellings are accepted.

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        if data is None:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError("Unknown parse option", key)
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def coerce(cls, options: "ParseOptions | Mapping[str, Any] | None") -> "ParseOptions":
        if isinstance(options, cls):
            return options
        return cls.from_dict(options)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
