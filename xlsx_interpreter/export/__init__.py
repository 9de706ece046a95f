"""Exporters for parse results."""

from .json_exporter import JSONExporter

__all__ = ["JSONExporter"]
