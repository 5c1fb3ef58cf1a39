"""Database helper utilities for the roster services."""
from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2.extras import RealDictCursor

from roster.errors import StorageTransientError

DEFAULT_TIMEOUT_SECONDS = 10


def _timeout_seconds() -> int:
    raw = os.environ.get("ROSTER_DB_TIMEOUT", "")
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else DEFAULT_TIMEOUT_SECONDS


def _db_params() -> dict[str, str | int]:
    timeout = _timeout_seconds()
    return {
        "host": os.environ.get("DB_HOST", "localhost"),
        "port": int(os.environ.get("DB_PORT", "5432")),
        "dbname": os.environ.get("DB_NAME", "roster"),
        "user": os.environ.get("DB_USER", "roster"),
        "password": os.environ.get("DB_PASSWORD", "roster"),
        "connect_timeout": timeout,
        "options": f"-c statement_timeout={timeout * 1000}",
    }


@contextmanager
def db_connection() -> Iterator[psycopg2.extensions.connection]:
    """Open a connection; connection failures and timeouts become transient errors."""
    try:
        conn = psycopg2.connect(**_db_params())
    except psycopg2.OperationalError as exc:
        raise StorageTransientError(f"database connection failed: {exc}") from exc
    try:
        yield conn
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
        # statement_timeout surfaces as QueryCanceled, an OperationalError subclass
        raise StorageTransientError(str(exc)) from exc
    finally:
        conn.close()


@contextmanager
def dict_cursor(conn: psycopg2.extensions.connection) -> Iterator[RealDictCursor]:
    cursor = conn.cursor(cursor_factory=RealDictCursor)
    try:
        yield cursor
    finally:
        cursor.close()
