"""Relationship model for spreadsheet packages."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class RelationshipRecord:
    """One ``Relationship`` element of a ``.rels`` part."""

    id: str
    type: str
    target: str
    target_mode: str = "Internal"

    @property
    def is_external(self) -> bool:
        return (self.target_mode or "").lower() == "external"
