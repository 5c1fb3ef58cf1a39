"""Parsing helpers shared across routes."""
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from fastapi import HTTPException, status

from roster.config import FILTER_MODES
from roster.normalize import parse_month_token, split_csv


def parse_month_param(field: str, value: object) -> Tuple[int, int]:
    if not value or not isinstance(value, str):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Invalid {field}")
    try:
        return parse_month_token(value)
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Invalid {field}, expected MM.YYYY") from exc


def parse_match_mode(value: Optional[str], default: str) -> str:
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized not in FILTER_MODES:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid match, expected one of {', '.join(FILTER_MODES)}",
        )
    return normalized


def flatten_list_param(values: Optional[Iterable[str]]) -> List[str]:
    """Accept both repeated query params and comma-separated values."""
    result: List[str] = []
    for value in values or []:
        for part in split_csv(value):
            if part not in result:
                result.append(part)
    return result
