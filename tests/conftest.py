"""
Pytest configuration for XLSX Interpreter
"""

import io
import logging
import sys
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from tests.xlsx_factory import PNG_BYTES, XlsxBuilder


@pytest.fixture(autouse=True)
def configure_logging():
    """Configure logging for tests to avoid file handler issues."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter('%(name)s - %(levelname)s - %(message)s'))

    root_logger.addHandler(console_handler)
    root_logger.setLevel(logging.WARNING)

    yield

    root_logger.handlers.clear()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def xlsx_builder():
    """Fresh in-memory package builder."""
    return XlsxBuilder()


@pytest.fixture
def png_bytes():
    """Real 3x2 PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (3, 2), color=(255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_png_bytes():
    """Bytes with a PNG extension but no decodable image."""
    return PNG_BYTES


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    logging.raiseExceptions = False
