"""Helpers for storing and querying per-day roster schedule entries."""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import psycopg2

from roster.normalize import normalize_departments
from .db_utils import db_connection, dict_cursor
from . import employee_repository

LOGGER = logging.getLogger(__name__)

UNDEFINED_EMPLOYEE_NAME = "undefined"

# (schedule_date, action, department, duty)
EntryRow = Tuple[date, str, str, bool]

_ENTRY_COLUMNS = """
    e.id AS employee_id,
    e.name,
    e.position,
    s.schedule_date,
    s.action,
    s.department,
    s.duty
"""


def ensure_schedule_tables() -> None:
    """Create the schedule table and its indexes when missing."""

    employee_repository.ensure_employees_table()

    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS roster_schedule (
                id SERIAL PRIMARY KEY,
                employee_id INTEGER NOT NULL REFERENCES roster_employees (id) ON DELETE CASCADE,
                schedule_date DATE NOT NULL,
                action TEXT NOT NULL,
                department TEXT NOT NULL DEFAULT '',
                duty BOOLEAN NOT NULL DEFAULT FALSE,
                source TEXT,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )
        cur.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS roster_schedule_employee_date_idx
                ON roster_schedule (employee_id, schedule_date)
            """
        )
        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS roster_schedule_date_idx
                ON roster_schedule (schedule_date)
            """
        )
        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS roster_schedule_department_idx
                ON roster_schedule (LOWER(department))
            """
        )
        conn.commit()


def delete_entries_for_dates(dates: Iterable[date]) -> int:
    """Remove every entry, for every employee, dated on one of ``dates``."""

    day_list = sorted(set(dates))
    if not day_list:
        return 0
    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            "DELETE FROM roster_schedule WHERE schedule_date = ANY(%s)",
            (day_list,),
        )
        deleted = cur.rowcount
        conn.commit()
    return deleted


def upsert_employee_schedule(
    employee_id: int,
    entries: Sequence[EntryRow],
    *,
    source: Optional[str] = None,
) -> Tuple[int, List[Tuple[date, str]]]:
    """Upsert one employee's entries keyed by (employee, date).

    Each entry runs inside its own savepoint so a failing row is rolled back
    and reported without discarding the others. Returns (written, failures).
    """

    written = 0
    failures: List[Tuple[date, str]] = []

    with db_connection() as conn, dict_cursor(conn) as cur:
        for schedule_date, action, department, duty in entries:
            cur.execute("SAVEPOINT roster_entry")
            try:
                cur.execute(
                    """
                    INSERT INTO roster_schedule (
                        employee_id,
                        schedule_date,
                        action,
                        department,
                        duty,
                        source
                    )
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (employee_id, schedule_date) DO UPDATE
                    SET
                        action = EXCLUDED.action,
                        department = EXCLUDED.department,
                        duty = EXCLUDED.duty,
                        source = EXCLUDED.source,
                        updated_at = NOW()
                    """,
                    (employee_id, schedule_date, action, department or "", bool(duty), source),
                )
            except psycopg2.OperationalError:
                raise
            except psycopg2.Error as exc:
                cur.execute("ROLLBACK TO SAVEPOINT roster_entry")
                LOGGER.warning(
                    "Failed to upsert schedule entry employee=%s date=%s: %s",
                    employee_id,
                    schedule_date,
                    exc,
                )
                failures.append((schedule_date, str(exc).strip()))
                continue
            cur.execute("RELEASE SAVEPOINT roster_entry")
            written += 1
        conn.commit()

    return written, failures


def list_schedule_for_employee(name: str) -> List[Dict]:
    """Return every entry of the employee with this exact name, ordered by date."""

    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            f"""
            SELECT {_ENTRY_COLUMNS}
            FROM roster_schedule AS s
            JOIN roster_employees AS e ON e.id = s.employee_id
            WHERE e.name = %s
            ORDER BY s.schedule_date
            """,
            (name,),
        )
        rows = cur.fetchall()
    return rows


def list_employees_in_departments(departments: Iterable[str]) -> List[Dict]:
    """Employees with at least one entry in any of ``departments`` (case-insensitive, exact)."""

    wanted = normalize_departments(departments)
    if not wanted:
        return []
    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            """
            SELECT e.id, e.name, e.position
            FROM roster_employees AS e
            WHERE e.name <> %s
              AND EXISTS (
                SELECT 1 FROM roster_schedule AS s
                WHERE s.employee_id = e.id
                  AND LOWER(s.department) = ANY(%s)
              )
            ORDER BY e.name
            """,
            (UNDEFINED_EMPLOYEE_NAME, wanted),
        )
        rows = cur.fetchall()
    return rows


def list_schedule_for_employee_ids(employee_ids: Iterable[int]) -> List[Dict]:
    ids = sorted(set(employee_ids))
    if not ids:
        return []
    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            f"""
            SELECT {_ENTRY_COLUMNS}
            FROM roster_schedule AS s
            JOIN roster_employees AS e ON e.id = s.employee_id
            WHERE e.id = ANY(%s)
            ORDER BY e.name, s.schedule_date
            """,
            (ids,),
        )
        rows = cur.fetchall()
    return rows


def list_entries_between(
    start: date,
    end: date,
    *,
    names: Optional[Iterable[str]] = None,
    departments: Optional[Iterable[str]] = None,
    match: str = "any",
) -> List[Dict]:
    """Entries dated within [start, end], optionally filtered by names and/or departments.

    With both filters present ``match="any"`` unions them and ``match="all"``
    intersects them.
    """

    name_list = [name.strip() for name in names or [] if name and name.strip()]
    department_list = normalize_departments(departments or [])

    filters: List[str] = []
    params: List[object] = [start, end, UNDEFINED_EMPLOYEE_NAME]
    if name_list:
        filters.append("e.name = ANY(%s)")
        params.append(name_list)
    if department_list:
        filters.append("LOWER(s.department) = ANY(%s)")
        params.append(department_list)

    where = "s.schedule_date BETWEEN %s AND %s AND e.name <> %s"
    if filters:
        joiner = " AND " if match == "all" else " OR "
        where += f" AND ({joiner.join(filters)})"

    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            f"""
            SELECT {_ENTRY_COLUMNS}
            FROM roster_schedule AS s
            JOIN roster_employees AS e ON e.id = s.employee_id
            WHERE {where}
            ORDER BY e.name, s.schedule_date
            """,
            tuple(params),
        )
        rows = cur.fetchall()
    return rows


def search_departments(term: str, limit: int = 20) -> List[str]:
    """Distinct non-empty departments containing ``term`` (case-insensitive)."""

    pattern = f"%{term}%"
    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            """
            SELECT DISTINCT department
            FROM roster_schedule
            WHERE department <> '' AND department ILIKE %s
            ORDER BY department
            LIMIT %s
            """,
            (pattern, limit),
        )
        rows = cur.fetchall()
    return [row["department"] for row in rows]


def lower_folds_cyrillic() -> bool:
    """Whether the database ``LOWER()`` folds Cyrillic like Python's ``str.lower``.

    Department filters compare ``LOWER(department)`` with Python-lowercased
    values; under a C/POSIX ctype Postgres leaves Cyrillic untouched.
    """

    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute("SELECT LOWER(%s) = %s AS folds", ("КАСА", "каса"))
        row = cur.fetchone()
    return bool(row and row.get("folds"))
