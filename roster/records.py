"""Record types shared by the decoder, the intermediate format and the importer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ShiftRecord:
    date: str
    action: str
    department: str = ""
    duty: bool = False


@dataclass
class EmployeeRecord:
    name: str
    position: str
    schedule: List[ShiftRecord] = field(default_factory=list)


@dataclass
class SkipRecord:
    """A block that was dropped during decoding, kept for import reports."""

    sheet: str
    row: int
    name: str
    reason: str


@dataclass
class SheetFailure:
    sheet: str
    error: str


@dataclass
class DecodedSheet:
    name: str
    employees: List[EmployeeRecord]
    skipped: List[SkipRecord] = field(default_factory=list)


@dataclass
class DecodedWorkbook:
    source: str
    sheets: List[DecodedSheet] = field(default_factory=list)
    failures: List[SheetFailure] = field(default_factory=list)
    month_name: Optional[str] = None

    @property
    def employees(self) -> List[EmployeeRecord]:
        result: List[EmployeeRecord] = []
        for sheet in self.sheets:
            result.extend(sheet.employees)
        return result

    @property
    def skipped(self) -> List[SkipRecord]:
        result: List[SkipRecord] = []
        for sheet in self.sheets:
            result.extend(sheet.skipped)
        return result
