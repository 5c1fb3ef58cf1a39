"""Date token parsing and month helpers for roster spreadsheets."""
from __future__ import annotations

import calendar
import re
from datetime import date
from typing import Iterable, List, Optional, Tuple

MONTH_NAMES = (
    "Січень",
    "Лютий",
    "Березень",
    "Квітень",
    "Травень",
    "Червень",
    "Липень",
    "Серпень",
    "Вересень",
    "Жовтень",
    "Листопад",
    "Грудень",
)

_DATE_TOKEN_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
_MONTH_TOKEN_RE = re.compile(r"^(\d{1,2})\.(\d{4})$")


def strip_weekday_suffix(token: str) -> str:
    """Drop a trailing weekday abbreviation such as ``Пн`` from a date token."""
    cleaned = (token or "").strip()
    end = len(cleaned)
    while end > 0 and not cleaned[end - 1].isdigit():
        end -= 1
    return cleaned[:end].strip()


def parse_roster_date(token: object) -> Optional[date]:
    """Parse ``DD.MM.YYYY`` (optionally followed by a weekday); None when invalid."""
    if not isinstance(token, str):
        return None
    match = _DATE_TOKEN_RE.match(strip_weekday_suffix(token))
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """Return the first and last day of a calendar month, both inclusive."""
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def parse_month_token(token: str) -> Tuple[int, int]:
    """Parse the client's ``MM.YYYY`` month parameter into (month, year)."""
    match = _MONTH_TOKEN_RE.match((token or "").strip())
    if not match:
        raise ValueError(f"invalid month token: {token!r}")
    month, year = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"invalid month token: {token!r}")
    return month, year


def month_name_for(token: str) -> Optional[str]:
    parsed = parse_roster_date(token)
    if parsed is None:
        return None
    return MONTH_NAMES[parsed.month - 1]


def normalize_departments(departments: Iterable[str]) -> List[str]:
    """Lower-case, trim and de-duplicate department names for exact matching."""
    seen: List[str] = []
    for value in departments:
        cleaned = (value or "").strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


def split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
