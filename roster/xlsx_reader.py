"""Minimal xlsx reader producing dense cell grids per sheet."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from io import BytesIO
import re
from typing import Dict, List, Optional, Sequence, Tuple
import zipfile
import xml.etree.ElementTree as ET

from .errors import WorkbookFormatError

BASE_DATE = datetime(1899, 12, 30)
MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
NS_MAIN = {"m": MAIN_NS}

_SERIAL_RE = re.compile(r"^\d{5}(\.\d+)?$")

Grid = List[List[str]]


@dataclass
class SheetGrid:
    name: str
    rows: Grid


def load_shared_strings(zf: zipfile.ZipFile) -> List[str]:
    if "xl/sharedStrings.xml" not in zf.namelist():
        return []
    root = ET.fromstring(zf.read("xl/sharedStrings.xml"))
    strings: List[str] = []
    for si in root.findall("m:si", NS_MAIN):
        text = "".join(t.text or "" for t in si.iter(f"{{{MAIN_NS}}}t"))
        strings.append(text)
    return strings


def workbook_sheets(zf: zipfile.ZipFile) -> List[Tuple[str, str]]:
    workbook_xml = ET.fromstring(zf.read("xl/workbook.xml"))
    rels_xml = ET.fromstring(zf.read("xl/_rels/workbook.xml.rels"))

    rel_map = {rel.attrib["Id"]: rel.attrib["Target"] for rel in rels_xml}

    sheets: List[Tuple[str, str]] = []
    for sheet in workbook_xml.findall("m:sheets/m:sheet", NS_MAIN):
        rel_id = sheet.attrib.get(f"{{{REL_NS}}}id")
        target = rel_map.get(rel_id)
        if not target:
            continue
        target = target.lstrip("/")
        path = target if target.startswith("xl/") else f"xl/{target}"
        sheets.append((sheet.attrib.get("name", f"sheet-{len(sheets)+1}"), path))
    return sheets


def excel_cell_to_indices(ref: str) -> Tuple[int, int]:
    col = 0
    row_chars: List[str] = []
    for ch in ref:
        if ch.isdigit():
            row_chars.append(ch)
        else:
            col = col * 26 + (ord(ch) - ord("A") + 1)
    row = int("".join(row_chars))
    return row, col


def _cell_text(cell: ET.Element, shared_strings: Sequence[str]) -> Optional[str]:
    cell_type = cell.attrib.get("t")
    if cell_type == "inlineStr":
        inline = cell.find("m:is", NS_MAIN)
        if inline is None:
            return None
        return "".join(t.text or "" for t in inline.iter(f"{{{MAIN_NS}}}t"))
    value_el = cell.find("m:v", NS_MAIN)
    if value_el is None or value_el.text is None:
        return None
    value = value_el.text
    if cell_type == "s":
        index = int(value)
        if 0 <= index < len(shared_strings):
            return shared_strings[index]
        return None
    if cell_type == "b":
        return "TRUE" if value == "1" else "FALSE"
    if cell_type is None or cell_type == "n":
        # integral floats come back as "5.0" from some writers
        if value.endswith(".0"):
            return value[:-2]
    return value


def parse_sheet(zf: zipfile.ZipFile, sheet_path: str, shared_strings: Sequence[str]) -> Grid:
    """Return the sheet as a dense zero-based grid of stripped strings."""
    sheet_root = ET.fromstring(zf.read(sheet_path))

    data: Dict[Tuple[int, int], str] = {}
    for cell in sheet_root.iter(f"{{{MAIN_NS}}}c"):
        ref = cell.attrib.get("r")
        if not ref:
            continue
        row, col = excel_cell_to_indices(ref)
        value = _cell_text(cell, shared_strings)
        if value is None:
            continue
        data[(row, col)] = value.strip()

    if not data:
        return []

    max_row = max(row for row, _ in data.keys())
    max_col = max(col for _, col in data.keys())
    grid: Grid = []
    for row in range(1, max_row + 1):
        grid.append([data.get((row, col), "") for col in range(1, max_col + 1)])
    return grid


def load_workbook_from_bytes(data: bytes) -> List[SheetGrid]:
    try:
        zf = zipfile.ZipFile(BytesIO(data))
    except zipfile.BadZipFile as exc:
        raise WorkbookFormatError("file is not an xlsx workbook") from exc

    with zf:
        try:
            shared_strings = load_shared_strings(zf)
            sheets = workbook_sheets(zf)
        except (KeyError, ET.ParseError) as exc:
            raise WorkbookFormatError(f"workbook structure is unreadable: {exc}") from exc

        grids: List[SheetGrid] = []
        for sheet_name, sheet_path in sheets:
            if sheet_path not in zf.namelist():
                continue
            try:
                rows = parse_sheet(zf, sheet_path, shared_strings)
            except ET.ParseError as exc:
                raise WorkbookFormatError(f"sheet {sheet_name!r} is unreadable: {exc}") from exc
            grids.append(SheetGrid(name=sheet_name, rows=rows))
    return grids


def serial_to_date(value: str) -> Optional[date]:
    """Convert an Excel serial day number to a date, or None if it is not one."""
    if not value or not _SERIAL_RE.match(value):
        return None
    return (BASE_DATE + timedelta(days=float(value))).date()
