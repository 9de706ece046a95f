"""
Tests for FloatingImageManager.
"""

import pytest

from xlsx_interpreter.media.floating_images import FloatingImageManager
from xlsx_interpreter.media.image_extractor import ImageExtractor
from xlsx_interpreter.models.worksheet import ParseResult
from xlsx_interpreter.parser.package_reader import PackageReader
from tests.xlsx_factory import (
    JPEG_BYTES,
    PNG_BYTES,
    REL_IMAGE,
    drawing,
    one_cell_anchor,
    picture,
    relationships,
    two_cell_anchor,
)


def build_package(builder):
    builder.add_sheet(
        "Sheet1",
        drawing_xml=drawing(
            two_cell_anchor(1, 1, picture("rId1", name="Pic A", descr="first")),
            two_cell_anchor(2, 1, picture("rId2", name="Pic B")),
            two_cell_anchor(3, 1, picture("rId3", name="Pic C")),
            two_cell_anchor(4, 1, picture("rId4", name="Pic D")),
            two_cell_anchor(1, 4, picture("rId5", name="Pic A")),
            one_cell_anchor(0, 9, picture("rId5", name="Pic E")),
        ),
        drawing_rels=relationships(
            ("rId1", "../media/image1.png"),
            ("rId3", "https://example.com/remote.png", REL_IMAGE, "External"),
            ("rId4", "../media/missing.png"),
            ("rId5", "../media/image2.jpeg"),
        ),
    )
    builder.add_sheet("Sheet2")
    builder.add_media("image1.png", PNG_BYTES)
    builder.add_media("image2.jpeg", JPEG_BYTES)
    return builder.build()


@pytest.fixture
def manager(xlsx_builder):
    with PackageReader(build_package(xlsx_builder)) as reader:
        yield FloatingImageManager(reader, ImageExtractor(reader))


class TestFloatingImageManager:
    """Test cases for FloatingImageManager."""

    def test_sheets_map(self, manager):
        assert manager.get_sheets_map() == {
            "Sheet1": "worksheets/sheet1.xml",
            "Sheet2": "worksheets/sheet2.xml",
        }

    def test_resolves_and_binds(self, manager):
        result = ParseResult()
        manager.parse_floating_images(result)

        assert list(result.images) == ["Pic A", "Pic E"]
        first = result.images["Pic A"]
        assert first.description == "first"
        assert first.mime_type == "image/png"
        assert first.media_path == "media/image1.png"
        assert first.decode_bytes() == PNG_BYTES
        assert result.images["Pic E"].mime_type == "image/jpeg"

        assert manager.get_sheet_floating_images("Sheet1") == {
            "B2": ["Pic A"],
            "B5": ["Pic A"],
            "A10": ["Pic E"],
        }
        assert manager.get_floating_image_ids("Sheet1", "B5") == ["Pic A"]
        assert manager.get_floating_image_ids("Sheet1", "Z99") == []

    def test_duplicate_id_keeps_first_binary(self, manager):
        result = ParseResult()
        manager.parse_floating_images(result)
        # second "Pic A" anchor points at the JPEG; the PNG registered first stays
        assert result.images["Pic A"].decode_bytes() == PNG_BYTES

    def test_skip_diagnostics(self, manager):
        result = ParseResult()
        manager.parse_floating_images(result)

        assert result.errors == [
            "[skip] reason=missing_relationship id=Pic B sheet=Sheet1 cell=C2",
            "[skip] reason=external id=Pic C sheet=Sheet1 cell=D2",
            "[skip] reason=extract_failed id=Pic D sheet=Sheet1 cell=E2",
        ]

    def test_sheet_without_drawing(self, manager):
        manager.parse_floating_images(ParseResult())
        assert manager.get_sheet_floating_images("Sheet2") == {}
        assert set(manager.get_all_floating_images()) == {"Sheet1"}

    def test_sheet_level_failure_is_reported(self, manager, monkeypatch):
        def explode(drawing_rel):
            raise RuntimeError("boom")

        monkeypatch.setattr(manager, "parse_drawing_file", explode)
        result = ParseResult()
        manager.parse_floating_images(result)

        assert result.errors == ["Failed to parse floating images for sheet 'Sheet1': boom"]
        assert result.images == {}

    def test_clear(self, manager):
        manager.parse_floating_images(ParseResult())
        manager.clear()
        assert manager.get_all_floating_images() == {}

    def test_detached_manager_does_nothing(self):
        result = ParseResult()
        FloatingImageManager().parse_floating_images(result)
        assert result.images == {}
        assert result.errors == []
