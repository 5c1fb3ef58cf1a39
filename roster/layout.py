"""Decode duty-roster sheets into per-employee schedules.

A roster sheet has a header row (row 0) with a fixed lead-in of four columns
(sequence number, unused, name, position) followed by one column per date and
a ``ВСЬОГО ЛК`` column after which everything is ignored.  Every employee takes
up a block of one to three physical rows:

* supervisors (position cell ``керівник``) use the primary row for actions and
  the next row for duty markers;
* regular employees use the primary row for actions, the next row for their
  position and per-day department, and the row after that for duty markers.

The layouts are described declaratively by :class:`BlockLayout` and consumed
by a single block extractor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .errors import SheetStructureError, WorkbookFormatError
from .normalize import month_name_for, parse_roster_date
from .records import (
    DecodedSheet,
    DecodedWorkbook,
    EmployeeRecord,
    SheetFailure,
    ShiftRecord,
    SkipRecord,
)
from .xlsx_reader import Grid, load_workbook_from_bytes, serial_to_date

log = logging.getLogger(__name__)

SENTINEL_HEADER = "ВСЬОГО ЛК"
SUMMARY_MARKER = "Всього працює"
SUPERVISOR_MARKER = "керівник"
DEFAULT_ACTION = "Рв"
DUTY_MARKERS = frozenset({"ч", "Ч"})


class RowRole(Enum):
    PRIMARY = "primary"
    CONTINUATION_DEPARTMENT = "continuation-department"
    CONTINUATION_DUTY = "continuation-duty"


@dataclass(frozen=True)
class BlockLayout:
    """Row offsets (relative to the name row) for each role of a block."""

    name: str
    position_offset: int
    roles: Tuple[Tuple[RowRole, int], ...]

    def offset(self, role: RowRole) -> Optional[int]:
        for candidate, offset in self.roles:
            if candidate is role:
                return offset
        return None


SUPERVISOR_LAYOUT = BlockLayout(
    name="supervisor",
    position_offset=0,
    roles=((RowRole.PRIMARY, 0), (RowRole.CONTINUATION_DUTY, 1)),
)

REGULAR_LAYOUT = BlockLayout(
    name="regular",
    position_offset=1,
    roles=(
        (RowRole.PRIMARY, 0),
        (RowRole.CONTINUATION_DEPARTMENT, 1),
        (RowRole.CONTINUATION_DUTY, 2),
    ),
)


@dataclass(frozen=True)
class SheetSchema:
    name_col: int = 2
    position_col: int = 3
    first_date_col: int = 4
    sentinel: str = SENTINEL_HEADER
    summary_marker: str = SUMMARY_MARKER
    supervisor_marker: str = SUPERVISOR_MARKER
    default_action: str = DEFAULT_ACTION
    duty_markers: frozenset = DUTY_MARKERS
    supervisor_layout: BlockLayout = SUPERVISOR_LAYOUT
    regular_layout: BlockLayout = REGULAR_LAYOUT


DEFAULT_SCHEMA = SheetSchema()

DateBand = List[Tuple[int, str]]


def _cell(rows: Grid, row_idx: int, col: int) -> str:
    if row_idx < 0 or row_idx >= len(rows):
        return ""
    row = rows[row_idx]
    if col >= len(row):
        return ""
    value = row[col]
    return value.strip() if isinstance(value, str) else str(value or "").strip()


def header_date_token(value: str) -> str:
    """Return the date part of a header cell (``"20.01.2025 Пн"`` -> ``"20.01.2025"``)."""
    cleaned = (value or "").strip()
    serial_date = serial_to_date(cleaned)
    if serial_date is not None:
        return serial_date.strftime("%d.%m.%Y")
    parsed = parse_roster_date(cleaned)
    if parsed is not None:
        return parsed.strftime("%d.%m.%Y")
    parts = cleaned.split()
    return parts[0] if parts else ""


def find_date_band(header: Sequence[str], schema: SheetSchema = DEFAULT_SCHEMA) -> DateBand:
    """Return (column, date token) pairs between the lead-in and the sentinel column."""
    header = [(value or "").strip() for value in header]
    try:
        limit = header.index(schema.sentinel)
    except ValueError:
        limit = len(header)

    band: DateBand = []
    for col in range(schema.first_date_col, limit):
        token = header_date_token(header[col])
        if token:
            band.append((col, token))
    return band


def resolve_layout(
    rows: Grid,
    index: int,
    schema: SheetSchema = DEFAULT_SCHEMA,
) -> Tuple[Optional[BlockLayout], str]:
    """Pick the block layout for the block starting at ``index`` and read its position."""
    if _cell(rows, index, schema.position_col) == schema.supervisor_marker:
        layout = schema.supervisor_layout
    else:
        layout = schema.regular_layout
    position = _cell(rows, index + layout.position_offset, schema.position_col)
    if not position:
        return None, ""
    return layout, position


def extract_block(
    rows: Grid,
    index: int,
    layout: BlockLayout,
    position: str,
    band: DateBand,
    schema: SheetSchema = DEFAULT_SCHEMA,
) -> EmployeeRecord:
    primary = index + (layout.offset(RowRole.PRIMARY) or 0)
    department_offset = layout.offset(RowRole.CONTINUATION_DEPARTMENT)
    duty_offset = layout.offset(RowRole.CONTINUATION_DUTY)

    schedule: List[ShiftRecord] = []
    for col, token in band:
        action = _cell(rows, primary, col) or schema.default_action
        department = ""
        if department_offset is not None:
            department = _cell(rows, index + department_offset, col)
        duty = False
        if duty_offset is not None:
            duty = _cell(rows, index + duty_offset, col) in schema.duty_markers
        schedule.append(ShiftRecord(date=token, action=action, department=department, duty=duty))

    return EmployeeRecord(
        name=_cell(rows, index, schema.name_col),
        position=position,
        schedule=schedule,
    )


def decode_sheet(rows: Grid, sheet_name: str = "", schema: SheetSchema = DEFAULT_SCHEMA) -> DecodedSheet:
    """Decode one sheet grid; raises SheetStructureError when no date header is present."""
    if not rows:
        raise SheetStructureError(f"sheet {sheet_name!r} is empty")

    band = find_date_band(rows[0], schema)
    if not any(parse_roster_date(token) for _, token in band):
        raise SheetStructureError(f"sheet {sheet_name!r} has no date columns in its header")

    employees: List[EmployeeRecord] = []
    skipped: List[SkipRecord] = []
    for index in range(1, len(rows)):
        name = _cell(rows, index, schema.name_col)
        if not name or name == schema.summary_marker:
            continue

        layout, position = resolve_layout(rows, index, schema)
        if layout is None:
            log.warning("Sheet %r row %s: no position for %r, block skipped", sheet_name, index + 1, name)
            skipped.append(
                SkipRecord(sheet=sheet_name, row=index + 1, name=name, reason="position not found")
            )
            continue

        employees.append(extract_block(rows, index, layout, position, band, schema))

    return DecodedSheet(name=sheet_name, employees=employees, skipped=skipped)


def decode_workbook(data: bytes, source: str = "", schema: SheetSchema = DEFAULT_SCHEMA) -> DecodedWorkbook:
    """Decode every sheet of a workbook; a broken sheet never aborts its siblings."""
    try:
        grids = load_workbook_from_bytes(data)
    except WorkbookFormatError:
        log.warning("%s: not a readable xlsx workbook", source or "<bytes>")
        raise

    decoded = DecodedWorkbook(source=source)
    for grid in grids:
        try:
            sheet = decode_sheet(grid.rows, grid.name, schema)
        except SheetStructureError as exc:
            log.warning("%s: %s", source or "<bytes>", exc)
            decoded.failures.append(SheetFailure(sheet=grid.name, error=str(exc)))
            continue
        decoded.sheets.append(sheet)
        if decoded.month_name is None:
            band = find_date_band(grid.rows[0], schema)
            for _, token in band:
                decoded.month_name = month_name_for(token)
                if decoded.month_name:
                    break

    log.info(
        "%s: decoded %s employees from %s sheets (%s sheets failed, %s blocks skipped)",
        source or "<bytes>",
        len(decoded.employees),
        len(decoded.sheets),
        len(decoded.failures),
        len(decoded.skipped),
    )
    return decoded
