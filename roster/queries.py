"""Read-only roster lookups in the shapes the calendar client consumes."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from repositories import employee_repository, schedule_repository
from repositories.schedule_repository import UNDEFINED_EMPLOYEE_NAME

from .config import FILTER_MODES
from .normalize import month_bounds

SUGGESTION_LIMIT = 20


def serialize_entry(row: Dict[str, Any]) -> Dict[str, Any]:
    schedule_date = row.get("schedule_date")
    if isinstance(schedule_date, date):
        schedule_date = schedule_date.isoformat()
    return {
        "date": schedule_date,
        "action": row.get("action") or "",
        "department": row.get("department") or "",
        "duty": bool(row.get("duty")),
    }


def group_by_employee(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Group entry rows into ``[{name, position, schedules}]`` preserving row order."""
    grouped: Dict[Any, Dict[str, Any]] = {}
    for row in rows:
        name = row.get("name")
        if name == UNDEFINED_EMPLOYEE_NAME:
            continue
        key = row.get("employee_id", name)
        item = grouped.get(key)
        if item is None:
            item = {"name": name, "position": row.get("position") or "", "schedules": []}
            grouped[key] = item
        item["schedules"].append(serialize_entry(row))
    return list(grouped.values())


def schedule_for_employee(name: str) -> Optional[Dict[str, Any]]:
    """Full schedule of the employee with this exact name, or None when unknown."""
    cleaned = (name or "").strip()
    if not cleaned:
        return None
    rows = schedule_repository.list_schedule_for_employee(cleaned)
    if not rows:
        return None
    return {"employee": cleaned, "schedules": [serialize_entry(row) for row in rows]}


def schedules_for_departments(departments: Iterable[str]) -> List[Dict[str, Any]]:
    """Employees with any entry in the listed departments, each with the whole schedule."""
    employees = schedule_repository.list_employees_in_departments(departments)
    if not employees:
        return []
    rows = schedule_repository.list_schedule_for_employee_ids(row["id"] for row in employees)
    return group_by_employee(rows)


def schedules_for_month(
    month: int,
    year: int,
    *,
    names: Optional[Iterable[str]] = None,
    departments: Optional[Iterable[str]] = None,
    match: str = "any",
) -> List[Dict[str, Any]]:
    """Entries of one calendar month grouped by employee.

    Names and departments are independent filters; when both are given
    ``match="any"`` returns entries matching either and ``match="all"`` only
    entries matching both.
    """
    if match not in FILTER_MODES:
        raise ValueError(f"match must be one of {', '.join(FILTER_MODES)}")
    start, end = month_bounds(month, year)
    rows = schedule_repository.list_entries_between(
        start,
        end,
        names=names,
        departments=departments,
        match=match,
    )
    return group_by_employee(rows)


def suggest(info: str, *, limit: int = SUGGESTION_LIMIT) -> Dict[str, List]:
    term = (info or "").strip()
    if not term:
        return {"employees": [], "departments": []}
    employees = [
        {"name": row["name"], "position": row.get("position") or ""}
        for row in employee_repository.search_employees(term, limit=limit)
        if row.get("name") != UNDEFINED_EMPLOYEE_NAME
    ]
    departments = schedule_repository.search_departments(term, limit=limit)
    return {"employees": employees, "departments": departments}
