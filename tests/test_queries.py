"""Tests for the read-side roster lookups."""

from datetime import date

import pytest

from roster import queries


@pytest.fixture
def populated(fake_store):
    fake_store.add_employee("Іваненко Іван", "оператор")
    fake_store.add_employee("Петренко Ольга", "керівник")
    fake_store.add_employee("Коваль Петро", "касир")
    fake_store.add_employee("undefined", "")

    fake_store.add_entry("Іваненко Іван", date(2025, 1, 31), "Рв", "finance")
    fake_store.add_entry("Іваненко Іван", date(2025, 2, 1), "Рв", "каса", duty=True)
    fake_store.add_entry("Іваненко Іван", date(2025, 2, 28), "Вх", "")
    fake_store.add_entry("Іваненко Іван", date(2025, 3, 1), "Рв", "каса")
    fake_store.add_entry("Петренко Ольга", date(2025, 2, 10), "Рв", "")
    fake_store.add_entry("Коваль Петро", date(2025, 2, 11), "Рв", "Finance")
    fake_store.add_entry("undefined", date(2025, 2, 12), "Рв", "finance")
    return fake_store


def test_schedule_for_employee(populated):
    result = queries.schedule_for_employee("Іваненко Іван")

    assert result["employee"] == "Іваненко Іван"
    assert [item["date"] for item in result["schedules"]] == [
        "2025-01-31",
        "2025-02-01",
        "2025-02-28",
        "2025-03-01",
    ]
    assert result["schedules"][1] == {"date": "2025-02-01", "action": "Рв", "department": "каса", "duty": True}


def test_schedule_for_unknown_employee_is_none(populated):
    assert queries.schedule_for_employee("Невідомий") is None
    assert queries.schedule_for_employee("  ") is None


def test_departments_match_case_insensitively_but_exactly(populated):
    result = queries.schedules_for_departments(["FINANCE"])

    assert [item["name"] for item in result] == ["Іваненко Іван", "Коваль Петро"]
    ivan = result[0]
    assert ivan["position"] == "оператор"
    assert len(ivan["schedules"]) == 4

    assert queries.schedules_for_departments(["fin"]) == []
    assert queries.schedules_for_departments([]) == []


def test_month_range_is_inclusive_on_both_ends(populated):
    result = queries.schedules_for_month(2, 2025)

    by_name = {item["name"]: [s["date"] for s in item["schedules"]] for item in result}
    assert by_name == {
        "Іваненко Іван": ["2025-02-01", "2025-02-28"],
        "Коваль Петро": ["2025-02-11"],
        "Петренко Ольга": ["2025-02-10"],
    }


def test_month_with_name_and_department_any_vs_all(populated):
    union = queries.schedules_for_month(2, 2025, names=["Петренко Ольга"], departments=["каса"])
    assert {item["name"]: len(item["schedules"]) for item in union} == {
        "Іваненко Іван": 1,
        "Петренко Ольга": 1,
    }

    both = queries.schedules_for_month(
        2,
        2025,
        names=["Іваненко Іван"],
        departments=["каса"],
        match="all",
    )
    assert [(item["name"], [s["date"] for s in item["schedules"]]) for item in both] == [
        ("Іваненко Іван", ["2025-02-01"]),
    ]

    assert queries.schedules_for_month(2, 2025, names=["Петренко Ольга"], departments=["каса"], match="all") == []


def test_month_rejects_unknown_match_mode(populated):
    with pytest.raises(ValueError):
        queries.schedules_for_month(2, 2025, match="xor")


def test_suggest(populated):
    result = queries.suggest("Ков")

    assert result["employees"] == [{"name": "Коваль Петро", "position": "касир"}]
    assert queries.suggest("fin")["departments"] == ["Finance", "finance"]
    assert queries.suggest("undef")["employees"] == []
    assert queries.suggest("") == {"employees": [], "departments": []}
