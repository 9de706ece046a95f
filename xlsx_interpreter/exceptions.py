"""Custom exceptions for XLSX Interpreter."""

from typing import Optional


class XlsxInterpreterError(Exception):
    """Base exception for XLSX Interpreter errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class PackageError(XlsxInterpreterError):
    """Exception raised when the spreadsheet package cannot be opened."""

    pass


class ParsingError(XlsxInterpreterError):
    """Exception raised during workbook or part parsing."""

    pass


class MediaError(XlsxInterpreterError):
    """Exception raised during image extraction."""

    pass


class ConfigurationError(XlsxInterpreterError):
    """Exception raised for invalid parse options."""

    pass
