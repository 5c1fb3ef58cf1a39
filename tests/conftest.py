"""Shared fixtures: in-memory xlsx builder and an in-memory roster store."""
from __future__ import annotations

import zipfile
from datetime import date
from io import BytesIO
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

import pytest

from repositories import employee_repository, schedule_repository
from roster.errors import StorageTransientError
from roster.normalize import normalize_departments

MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"


def _column_letters(index: int) -> str:
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def _sheet_xml(rows: Sequence[Sequence[object]]) -> str:
    row_parts: List[str] = []
    for row_idx, row in enumerate(rows, start=1):
        cells: List[str] = []
        for col_idx, value in enumerate(row):
            if value is None or value == "":
                continue
            ref = f"{_column_letters(col_idx)}{row_idx}"
            if isinstance(value, (int, float)):
                cells.append(f'<c r="{ref}"><v>{value}</v></c>')
            else:
                cells.append(f'<c r="{ref}" t="inlineStr"><is><t>{escape(str(value))}</t></is></c>')
        row_parts.append(f'<row r="{row_idx}">{"".join(cells)}</row>')
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>'
        f'<worksheet xmlns="{MAIN_NS}"><sheetData>{"".join(row_parts)}</sheetData></worksheet>'
    )


def build_workbook(sheets: Sequence[Tuple[str, Sequence[Sequence[object]]]]) -> bytes:
    """Build a minimal xlsx workbook from (sheet name, rows) pairs."""
    sheet_entries = []
    rel_entries = []
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for idx, (name, rows) in enumerate(sheets, start=1):
            sheet_entries.append(f'<sheet name="{escape(name)}" sheetId="{idx}" r:id="rId{idx}"/>')
            rel_entries.append(
                f'<Relationship Id="rId{idx}" '
                f'Type="{REL_NS}/worksheet" Target="worksheets/sheet{idx}.xml"/>'
            )
            zf.writestr(f"xl/worksheets/sheet{idx}.xml", _sheet_xml(rows))
        zf.writestr(
            "xl/workbook.xml",
            f'<?xml version="1.0" encoding="UTF-8"?>'
            f'<workbook xmlns="{MAIN_NS}" xmlns:r="{REL_NS}"><sheets>{"".join(sheet_entries)}</sheets></workbook>',
        )
        zf.writestr(
            "xl/_rels/workbook.xml.rels",
            f'<?xml version="1.0" encoding="UTF-8"?>'
            f'<Relationships xmlns="{PKG_REL_NS}">{"".join(rel_entries)}</Relationships>',
        )
    return buffer.getvalue()


HEADER_LEAD = ["№", "", "ПІБ", "Посада"]


def roster_header(*dates: str, sentinel: bool = True) -> List[str]:
    header = HEADER_LEAD + list(dates)
    if sentinel:
        header += ["ВСЬОГО ЛК", "Примітка"]
    return header


class FakeRosterStore:
    """In-memory stand-in for the roster tables with the repository call signatures."""

    def __init__(self) -> None:
        self.employees: Dict[str, Dict] = {}
        self.entries: Dict[Tuple[int, date], Dict] = {}
        self.deleted_dates: List[date] = []
        self.broken_names: set = set()
        self.broken_dates: set = set()
        self.folds_cyrillic = True
        self._next_id = 1

    # employees -----------------------------------------------------------
    def add_employee(self, name: str, position: str = "") -> Dict:
        return self.get_or_create_employee(name, position)

    def get_or_create_employee(self, name: str, position: str) -> Dict:
        if name in self.broken_names:
            raise StorageTransientError("connection reset")
        record = self.employees.get(name)
        if record is None:
            record = {"id": self._next_id, "name": name, "position": position or "", "department": None}
            self._next_id += 1
            self.employees[name] = record
        elif position:
            record["position"] = position
        return dict(record)

    def search_employees(self, term: str, limit: int = 20) -> List[Dict]:
        needle = term.lower()
        rows = [
            {"id": rec["id"], "name": rec["name"], "position": rec["position"]}
            for rec in sorted(self.employees.values(), key=lambda r: r["name"])
            if needle in rec["name"].lower()
        ]
        return rows[:limit]

    # schedule ------------------------------------------------------------
    def ensure_schedule_tables(self) -> None:
        return None

    def delete_entries_for_dates(self, dates: Iterable[date]) -> int:
        wanted = set(dates)
        self.deleted_dates.extend(sorted(wanted))
        doomed = [key for key in self.entries if key[1] in wanted]
        for key in doomed:
            del self.entries[key]
        return len(doomed)

    def upsert_employee_schedule(self, employee_id, entries, *, source=None):
        written = 0
        failures = []
        for schedule_date, action, department, duty in entries:
            if schedule_date in self.broken_dates:
                failures.append((schedule_date, "check constraint violated"))
                continue
            self.entries[(employee_id, schedule_date)] = {
                "action": action,
                "department": department or "",
                "duty": bool(duty),
                "source": source,
            }
            written += 1
        return written, failures

    def add_entry(self, name: str, schedule_date: date, action: str = "Рв", department: str = "", duty: bool = False) -> None:
        employee = self.employees.get(name) or self.add_employee(name)
        self.upsert_employee_schedule(employee["id"], [(schedule_date, action, department, duty)])

    def _rows(self, predicate) -> List[Dict]:
        by_id = {rec["id"]: rec for rec in self.employees.values()}
        rows = []
        for (employee_id, schedule_date), entry in self.entries.items():
            employee = by_id[employee_id]
            row = {
                "employee_id": employee_id,
                "name": employee["name"],
                "position": employee["position"],
                "schedule_date": schedule_date,
                "action": entry["action"],
                "department": entry["department"],
                "duty": entry["duty"],
            }
            if predicate(row):
                rows.append(row)
        rows.sort(key=lambda r: (r["name"], r["schedule_date"]))
        return rows

    def list_schedule_for_employee(self, name: str) -> List[Dict]:
        return self._rows(lambda row: row["name"] == name)

    def list_employees_in_departments(self, departments: Iterable[str]) -> List[Dict]:
        wanted = normalize_departments(departments)
        names = {
            row["name"]
            for row in self._rows(lambda row: row["department"].lower() in wanted)
            if row["name"] != schedule_repository.UNDEFINED_EMPLOYEE_NAME
        }
        return [
            {"id": rec["id"], "name": rec["name"], "position": rec["position"]}
            for rec in sorted(self.employees.values(), key=lambda r: r["name"])
            if rec["name"] in names
        ]

    def list_schedule_for_employee_ids(self, employee_ids: Iterable[int]) -> List[Dict]:
        ids = set(employee_ids)
        return self._rows(lambda row: row["employee_id"] in ids)

    def list_entries_between(
        self,
        start: date,
        end: date,
        *,
        names: Optional[Iterable[str]] = None,
        departments: Optional[Iterable[str]] = None,
        match: str = "any",
    ) -> List[Dict]:
        name_list = [name for name in names or [] if name]
        department_list = normalize_departments(departments or [])

        def predicate(row: Dict) -> bool:
            if not start <= row["schedule_date"] <= end:
                return False
            if row["name"] == schedule_repository.UNDEFINED_EMPLOYEE_NAME:
                return False
            checks = []
            if name_list:
                checks.append(row["name"] in name_list)
            if department_list:
                checks.append(row["department"].lower() in department_list)
            if not checks:
                return True
            return all(checks) if match == "all" else any(checks)

        return self._rows(predicate)

    def search_departments(self, term: str, limit: int = 20) -> List[str]:
        needle = term.lower()
        found = sorted(
            {
                entry["department"]
                for entry in self.entries.values()
                if entry["department"] and needle in entry["department"].lower()
            }
        )
        return found[:limit]

    def lower_folds_cyrillic(self) -> bool:
        return self.folds_cyrillic

    def actions_for(self, name: str) -> Dict[date, str]:
        return {row["schedule_date"]: row["action"] for row in self.list_schedule_for_employee(name)}


@pytest.fixture
def fake_store(monkeypatch) -> FakeRosterStore:
    store = FakeRosterStore()
    for attr in ("get_or_create_employee", "search_employees"):
        monkeypatch.setattr(employee_repository, attr, getattr(store, attr))
    monkeypatch.setattr(employee_repository, "employees_count", lambda: len(store.employees))
    for attr in (
        "ensure_schedule_tables",
        "delete_entries_for_dates",
        "upsert_employee_schedule",
        "list_schedule_for_employee",
        "list_employees_in_departments",
        "list_schedule_for_employee_ids",
        "list_entries_between",
        "search_departments",
        "lower_folds_cyrillic",
    ):
        monkeypatch.setattr(schedule_repository, attr, getattr(store, attr))
    return store
