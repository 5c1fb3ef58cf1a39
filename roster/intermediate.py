"""Line-oriented intermediate form of decoded rosters, plus its JSON rendition.

The text form is meant for humans inspecting or replaying an import::

    Ім'я працівника: Іваненко Іван
    Посада: оператор
    20.01.2025: Рв
    Departament: каса
    Duty: false

Employees are separated by a blank line.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .records import DecodedWorkbook, EmployeeRecord, ShiftRecord

log = logging.getLogger(__name__)

NAME_LABEL = "Ім'я працівника:"
POSITION_LABEL = "Посада:"
DEPARTMENT_LABEL = "Departament:"
DUTY_LABEL = "Duty:"

_DATE_LINE_RE = re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}")


def render_text(employees: Iterable[EmployeeRecord]) -> str:
    lines: List[str] = []
    for employee in employees:
        lines.append(f"{NAME_LABEL} {employee.name}")
        lines.append(f"{POSITION_LABEL} {employee.position}")
        for shift in employee.schedule:
            lines.append(f"{shift.date}: {shift.action}".strip())
            lines.append(f"{DEPARTMENT_LABEL} {shift.department or ''}".rstrip())
            lines.append(f"{DUTY_LABEL} {'true' if shift.duty else 'false'}")
        lines.append("")
    return "\n".join(lines)


def _parse_duty(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _label_value(line: str, label: str) -> Optional[str]:
    if not line.startswith(label):
        return None
    return line[len(label):].strip()


def parse_text(text: str) -> List[EmployeeRecord]:
    """Rebuild employee records; missing department/duty lines default to ""/False."""
    lines = [line.strip() for line in text.splitlines()]
    employees: List[EmployeeRecord] = []
    current: Optional[EmployeeRecord] = None

    for idx, line in enumerate(lines):
        name = _label_value(line, NAME_LABEL)
        if name is not None:
            current = EmployeeRecord(name=name, position="")
            employees.append(current)
            continue

        position = _label_value(line, POSITION_LABEL)
        if position is not None:
            if current is not None:
                current.position = position
            continue

        if not _DATE_LINE_RE.match(line):
            continue
        if current is None:
            log.warning("Line %s: shift line before any employee, ignored", idx + 1)
            continue

        date_part, _, action = line.partition(":")
        next_line = lines[idx + 1] if idx + 1 < len(lines) else ""
        after_next = lines[idx + 2] if idx + 2 < len(lines) else ""

        department = _label_value(next_line, DEPARTMENT_LABEL)
        if department is None:
            department = ""
            after_next = next_line
        duty_value = _label_value(after_next, DUTY_LABEL)
        duty = _parse_duty(duty_value or "")

        current.schedule.append(
            ShiftRecord(
                date=date_part.strip(),
                action=action.strip(),
                department=department,
                duty=duty,
            )
        )

    return employees


def employees_to_document(employees: Iterable[EmployeeRecord]) -> Dict[str, Any]:
    return {"employees": [asdict(employee) for employee in employees]}


def employees_from_document(document: Dict[str, Any]) -> List[EmployeeRecord]:
    employees: List[EmployeeRecord] = []
    for item in document.get("employees") or []:
        schedule = [
            ShiftRecord(
                date=str(shift.get("date") or "").strip(),
                action=str(shift.get("action") or "").strip(),
                department=str(shift.get("department") or "").strip(),
                duty=_parse_duty(shift.get("duty")),
            )
            for shift in item.get("schedule") or []
        ]
        employees.append(
            EmployeeRecord(
                name=str(item.get("name") or "").strip(),
                position=str(item.get("position") or "").strip(),
                schedule=schedule,
            )
        )
    return employees


def render_json(employees: Iterable[EmployeeRecord]) -> str:
    return json.dumps(employees_to_document(employees), ensure_ascii=False, indent=2)


def parse_json(text: str) -> List[EmployeeRecord]:
    return employees_from_document(json.loads(text))


def write_artifacts(decoded: DecodedWorkbook, directory: Path) -> List[Path]:
    """Dump the text and JSON forms of a decoded workbook for debugging."""
    directory.mkdir(parents=True, exist_ok=True)
    stem = decoded.month_name or Path(decoded.source or "roster").stem
    txt_path = directory / f"{stem}.txt"
    json_path = directory / f"{stem}.json"
    employees = decoded.employees
    txt_path.write_text(render_text(employees), encoding="utf-8")
    json_path.write_text(render_json(employees), encoding="utf-8")
    log.info("Intermediate roster saved: %s, %s", txt_path, json_path)
    return [txt_path, json_path]
