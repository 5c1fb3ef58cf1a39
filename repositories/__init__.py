"""Database access helpers for the roster services."""

__all__ = [
    "db_utils",
    "employee_repository",
    "schedule_repository",
]
