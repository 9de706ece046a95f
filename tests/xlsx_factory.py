"""
Builders for minimal XLSX packages used by the tests.

Only the parts openpyxl needs to load a workbook are written, plus whatever
drawing, cell image and media parts a test asks for.
"""

import io
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
from xml.sax.saxutils import escape

NS_MAIN = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
NS_R = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
NS_PKG_RELS = "http://schemas.openxmlformats.org/package/2006/relationships"
NS_XDR = "http://schemas.openxmlformats.org/drawingml/2006/spreadsheetDrawing"
NS_A = "http://schemas.openxmlformats.org/drawingml/2006/main"
NS_MC = "http://schemas.openxmlformats.org/markup-compatibility/2006"
NS_ETC = "http://www.wps.cn/officeDocument/2017/etCustomData"

REL_WORKSHEET = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet"
REL_DRAWING = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/drawing"
REL_IMAGE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"
REL_OFFICE_DOCUMENT = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument"

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-payload"
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-payload"

RelSpec = Union[Tuple[str, str], Tuple[str, str, str], Tuple[str, str, str, str]]


# ----------------------------------------------------------------------
# Cell and row snippets
# ----------------------------------------------------------------------
def text_cell(ref: str, text: str) -> str:
    return f'<c r="{ref}" t="inlineStr"><is><t>{escape(text)}</t></is></c>'


def number_cell(ref: str, number) -> str:
    return f'<c r="{ref}"><v>{number}</v></c>'


def bool_cell(ref: str, value: bool) -> str:
    return f'<c r="{ref}" t="b"><v>{1 if value else 0}</v></c>'


def formula_cell(ref: str, formula: str, cached=None) -> str:
    cached_xml = f"<v>{cached}</v>" if cached is not None else ""
    return f'<c r="{ref}"><f>{escape(formula)}</f>{cached_xml}</c>'


def dispimg_cell(ref: str, image_id: str, cached: bool = True) -> str:
    """WPS style in-cell picture reference."""
    formula = escape(f'_xlfn.DISPIMG("{image_id}",1)')
    cached_value = escape(f'=DISPIMG("{image_id}",1)')
    cached_xml = f"<v>{cached_value}</v>" if cached else ""
    return f'<c r="{ref}" t="str"><f>{formula}</f>{cached_xml}</c>'


def row(number: int, *cells: str, height: Optional[float] = None) -> str:
    height_xml = f' ht="{height}" customHeight="1"' if height is not None else ""
    return f'<row r="{number}"{height_xml}>{"".join(cells)}</row>'


def relationships(*rels: RelSpec) -> str:
    """Build a ``.rels`` part from ``(id, target[, type[, mode]])`` tuples."""
    items = []
    for rel in rels:
        rel_id, target = rel[0], rel[1]
        rel_type = rel[2] if len(rel) > 2 else REL_IMAGE
        mode = f' TargetMode="{rel[3]}"' if len(rel) > 3 else ""
        items.append(f'<Relationship Id="{rel_id}" Type="{rel_type}" Target="{escape(target)}"{mode}/>')
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<Relationships xmlns="{NS_PKG_RELS}">{"".join(items)}</Relationships>'
    )


# ----------------------------------------------------------------------
# DrawingML snippets
# ----------------------------------------------------------------------
def picture(embed: Optional[str], name: Optional[str] = None, shape_id: Optional[str] = "2",
            descr: str = "", x=0, y=0, cx=952500, cy=952500, prefix: str = "xdr") -> str:
    attrs = []
    if shape_id is not None:
        attrs.append(f'id="{shape_id}"')
    if name is not None:
        attrs.append(f'name="{escape(name)}"')
    if descr:
        attrs.append(f'descr="{escape(descr)}"')
    blip = f'<a:blip r:embed="{embed}"/>' if embed is not None else "<a:blip/>"
    return (
        f"<{prefix}:pic>"
        f"<{prefix}:nvPicPr><{prefix}:cNvPr {' '.join(attrs)}/><{prefix}:cNvPicPr/></{prefix}:nvPicPr>"
        f"<{prefix}:blipFill>{blip}<a:stretch><a:fillRect/></a:stretch></{prefix}:blipFill>"
        f'<{prefix}:spPr><a:xfrm><a:off x="{x}" y="{y}"/><a:ext cx="{cx}" cy="{cy}"/></a:xfrm>'
        f'<a:prstGeom prst="rect"><a:avLst/></a:prstGeom></{prefix}:spPr>'
        f"</{prefix}:pic>"
    )


def two_cell_anchor(col: int, row_index: int, body: str) -> str:
    return (
        '<xdr:twoCellAnchor editAs="oneCell">'
        f"<xdr:from><xdr:col>{col}</xdr:col><xdr:colOff>0</xdr:colOff>"
        f"<xdr:row>{row_index}</xdr:row><xdr:rowOff>0</xdr:rowOff></xdr:from>"
        f"<xdr:to><xdr:col>{col + 1}</xdr:col><xdr:colOff>0</xdr:colOff>"
        f"<xdr:row>{row_index + 1}</xdr:row><xdr:rowOff>0</xdr:rowOff></xdr:to>"
        f"{body}<xdr:clientData/></xdr:twoCellAnchor>"
    )


def one_cell_anchor(col: int, row_index: int, body: str) -> str:
    return (
        "<xdr:oneCellAnchor>"
        f"<xdr:from><xdr:col>{col}</xdr:col><xdr:colOff>0</xdr:colOff>"
        f"<xdr:row>{row_index}</xdr:row><xdr:rowOff>0</xdr:rowOff></xdr:from>"
        '<xdr:ext cx="952500" cy="952500"/>'
        f"{body}<xdr:clientData/></xdr:oneCellAnchor>"
    )


def alternate_content(choice: str = "", fallback: str = "") -> str:
    choice_xml = f'<mc:Choice Requires="a14">{choice}</mc:Choice>'
    fallback_xml = f"<mc:Fallback>{fallback}</mc:Fallback>" if fallback else ""
    return f"<mc:AlternateContent>{choice_xml}{fallback_xml}</mc:AlternateContent>"


def drawing(*anchors: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<xdr:wsDr xmlns:xdr="{NS_XDR}" xmlns:a="{NS_A}" xmlns:r="{NS_R}" xmlns:mc="{NS_MC}">'
        f'{"".join(anchors)}</xdr:wsDr>'
    )


def cell_image(name: Optional[str], embed: Optional[str], descr: str = "", x="0", y="0",
               cx="952500", cy="952500") -> str:
    name_attr = f' name="{escape(name)}"' if name is not None else ""
    descr_attr = f' descr="{escape(descr)}"' if descr else ""
    blip = f'<a:blip r:embed="{embed}"/>' if embed is not None else "<a:blip/>"
    return (
        "<etc:cellImage><xdr:pic>"
        f'<xdr:nvPicPr><xdr:cNvPr id="2"{name_attr}{descr_attr}/><xdr:cNvPicPr/></xdr:nvPicPr>'
        f"<xdr:blipFill>{blip}</xdr:blipFill>"
        f'<xdr:spPr><a:xfrm><a:off x="{x}" y="{y}"/><a:ext cx="{cx}" cy="{cy}"/></a:xfrm></xdr:spPr>'
        "</xdr:pic></etc:cellImage>"
    )


def cell_images(*images: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<etc:cellImages xmlns:xdr="{NS_XDR}" xmlns:a="{NS_A}" xmlns:r="{NS_R}" xmlns:etc="{NS_ETC}">'
        f'{"".join(images)}</etc:cellImages>'
    )


# ----------------------------------------------------------------------
# Package builder
# ----------------------------------------------------------------------
class XlsxBuilder:
    """
    Assembles an XLSX package in memory.

    Examples:
        >>> builder = XlsxBuilder()
        >>> builder.add_sheet("Sheet1", [row(1, text_cell("A1", "x"))])
        >>> data = builder.build()
    """

    def __init__(self):
        self.sheets: List[Dict] = []
        self.parts: Dict[str, Union[str, bytes]] = {}

    def add_sheet(self, name: str, rows: Sequence[str] = (), dimension: Optional[str] = None,
                  cols: Sequence[Tuple[int, int, float]] = (), drawing_xml: Optional[str] = None,
                  drawing_rels: Optional[str] = None, sheet_rels: Optional[str] = None) -> "XlsxBuilder":
        """
        Add a worksheet.

        Args:
            name: Sheet name
            rows: ``<row>`` snippets
            dimension: Declared ``<dimension ref>``
            cols: ``(min, max, width)`` column definitions
            drawing_xml: Drawing part linked through ``rId1`` of the sheet rels
            drawing_rels: Relationships part of the drawing
            sheet_rels: Explicit sheet relationships part, replacing the default
        """
        self.sheets.append({
            "name": name,
            "rows": list(rows),
            "dimension": dimension,
            "cols": list(cols),
            "drawing_xml": drawing_xml,
            "drawing_rels": drawing_rels,
            "sheet_rels": sheet_rels,
        })
        return self

    def add_media(self, file_name: str, data: bytes = PNG_BYTES) -> "XlsxBuilder":
        self.parts[f"xl/media/{file_name}"] = data
        return self

    def set_cell_images(self, cell_images_xml: str, rels_xml: Optional[str]) -> "XlsxBuilder":
        self.parts["xl/cellimages.xml"] = cell_images_xml
        if rels_xml is not None:
            self.parts["xl/_rels/cellimages.xml.rels"] = rels_xml
        return self

    def add_part(self, part_name: str, content: Union[str, bytes]) -> "XlsxBuilder":
        self.parts[part_name] = content
        return self

    def _sheet_xml(self, sheet: Dict) -> str:
        dimension = f'<dimension ref="{sheet["dimension"]}"/>' if sheet["dimension"] else ""
        cols = ""
        if sheet["cols"]:
            cols = "<cols>" + "".join(
                f'<col min="{lo}" max="{hi}" width="{width}" customWidth="1"/>' for lo, hi, width in sheet["cols"]
            ) + "</cols>"
        drawing_ref = '<drawing r:id="rId1"/>' if sheet["drawing_xml"] is not None or sheet["sheet_rels"] else ""
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<worksheet xmlns="{NS_MAIN}" xmlns:r="{NS_R}">'
            f'{dimension}{cols}<sheetData>{"".join(sheet["rows"])}</sheetData>{drawing_ref}'
            "</worksheet>"
        )

    def build_parts(self) -> Dict[str, Union[str, bytes]]:
        parts: Dict[str, Union[str, bytes]] = {}
        overrides = [
            '<Override PartName="/xl/workbook.xml" '
            'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/>'
        ]
        sheet_entries = []
        workbook_rels = []

        for index, sheet in enumerate(self.sheets, start=1):
            sheet_part = f"xl/worksheets/sheet{index}.xml"
            parts[sheet_part] = self._sheet_xml(sheet)
            overrides.append(
                f'<Override PartName="/{sheet_part}" '
                'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/>'
            )
            sheet_entries.append(f'<sheet name="{escape(sheet["name"])}" sheetId="{index}" r:id="rId{index}"/>')
            workbook_rels.append((f"rId{index}", f"worksheets/sheet{index}.xml", REL_WORKSHEET))

            if sheet["sheet_rels"] is not None:
                parts[f"xl/worksheets/_rels/sheet{index}.xml.rels"] = sheet["sheet_rels"]
            elif sheet["drawing_xml"] is not None:
                parts[f"xl/worksheets/_rels/sheet{index}.xml.rels"] = relationships(
                    ("rId1", f"../drawings/drawing{index}.xml", REL_DRAWING)
                )
            if sheet["drawing_xml"] is not None:
                parts[f"xl/drawings/drawing{index}.xml"] = sheet["drawing_xml"]
                if sheet["drawing_rels"] is not None:
                    parts[f"xl/drawings/_rels/drawing{index}.xml.rels"] = sheet["drawing_rels"]

        parts["[Content_Types].xml"] = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
            '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
            '<Default Extension="xml" ContentType="application/xml"/>'
            '<Default Extension="png" ContentType="image/png"/>'
            '<Default Extension="jpeg" ContentType="image/jpeg"/>'
            f'{"".join(overrides)}</Types>'
        )
        parts["_rels/.rels"] = relationships(("rId1", "xl/workbook.xml", REL_OFFICE_DOCUMENT))
        parts["xl/workbook.xml"] = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<workbook xmlns="{NS_MAIN}" xmlns:r="{NS_R}">'
            f'<sheets>{"".join(sheet_entries)}</sheets></workbook>'
        )
        parts["xl/_rels/workbook.xml.rels"] = relationships(*workbook_rels)
        parts.update(self.parts)
        return parts

    def build(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for part_name, content in self.build_parts().items():
                zf.writestr(part_name, content)
        return buffer.getvalue()

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.write_bytes(self.build())
        return path
