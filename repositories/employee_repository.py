"""Database helpers for roster employees (identity records keyed by name)."""
from __future__ import annotations

from datetime import date
from typing import Dict, List

from .db_utils import db_connection, dict_cursor

# Source rosters carry neither birth nor hire dates.
UNKNOWN_DATE = date(1900, 1, 1)


def ensure_employees_table() -> None:
    """Create the employees table if missing."""

    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS roster_employees (
                id SERIAL PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                position TEXT NOT NULL DEFAULT '',
                department TEXT,
                date_of_birth DATE NOT NULL,
                hire_date DATE NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )
        conn.commit()


def get_or_create_employee(name: str, position: str) -> Dict:
    """Return the employee with this exact name, creating it when absent.

    An existing employee gets its position refreshed unless the new one is blank.
    """

    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            """
            INSERT INTO roster_employees (name, position, date_of_birth, hire_date)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (name) DO UPDATE
            SET
                position = COALESCE(NULLIF(EXCLUDED.position, ''), roster_employees.position),
                updated_at = NOW()
            RETURNING id, name, position, department
            """,
            (name, position or "", UNKNOWN_DATE, UNKNOWN_DATE),
        )
        row = cur.fetchone()
        conn.commit()
    return row


def search_employees(term: str, limit: int = 20) -> List[Dict]:
    """Search employees by partial, case-insensitive name."""

    pattern = f"%{term}%"
    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute(
            """
            SELECT id, name, position
            FROM roster_employees
            WHERE name ILIKE %s
            ORDER BY name
            LIMIT %s
            """,
            (pattern, limit),
        )
        rows = cur.fetchall()
    return rows


def employees_count() -> int:
    with db_connection() as conn, dict_cursor(conn) as cur:
        cur.execute("SELECT COUNT(*) AS cnt FROM roster_employees")
        row = cur.fetchone()
    return int(row.get("cnt", 0)) if row else 0
