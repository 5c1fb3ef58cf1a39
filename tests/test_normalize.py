"""Tests for date tokens and month helpers."""

from datetime import date

import pytest

from roster.normalize import (
    month_bounds,
    month_name_for,
    normalize_departments,
    parse_month_token,
    parse_roster_date,
    split_csv,
    strip_weekday_suffix,
)


def test_parse_roster_date_with_weekday_suffix():
    assert parse_roster_date("20.01.2025 Пн") == date(2025, 1, 20)
    assert parse_roster_date("20.01.2025Пн") == date(2025, 1, 20)
    assert parse_roster_date(" 01.12.2024 ") == date(2024, 12, 1)


@pytest.mark.parametrize("token", ["31.02.2025", "00.01.2025", "20.13.2025", "2025-01-20", "Рв", "", None])
def test_parse_roster_date_rejects_invalid(token):
    assert parse_roster_date(token) is None


def test_strip_weekday_suffix():
    assert strip_weekday_suffix("20.01.2025 Пн") == "20.01.2025"
    assert strip_weekday_suffix("Пн") == ""


def test_month_bounds():
    assert month_bounds(2, 2025) == (date(2025, 2, 1), date(2025, 2, 28))
    assert month_bounds(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(12, 2025) == (date(2025, 12, 1), date(2025, 12, 31))
    with pytest.raises(ValueError):
        month_bounds(13, 2025)


def test_parse_month_token():
    assert parse_month_token("02.2025") == (2, 2025)
    assert parse_month_token("2.2025") == (2, 2025)
    for bad in ("13.2025", "2025-02", ""):
        with pytest.raises(ValueError):
            parse_month_token(bad)


def test_month_name_for():
    assert month_name_for("20.01.2025 Пн") == "Січень"
    assert month_name_for("31.12.2025") == "Грудень"
    assert month_name_for("ВСЬОГО") is None


def test_normalize_departments():
    assert normalize_departments([" Finance", "finance", "", "Каса"]) == ["finance", "каса"]


def test_split_csv():
    assert split_csv("a, b,,c ") == ["a", "b", "c"]
    assert split_csv(None) == []
