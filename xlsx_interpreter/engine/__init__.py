"""Reconciliation of cell data and image bindings."""

from .sheet_walker import SheetWalker, extract_image_id

__all__ = ["SheetWalker", "extract_image_id"]
