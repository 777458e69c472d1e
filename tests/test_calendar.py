"""
Tests for calendar grids, hijri conversion and view navigation.
"""

from __future__ import annotations

from datetime import date

from minbar.domains.schedule.calendar import (
    CalendarView,
    build_month_matrix,
    from_iso,
    generate_daily,
    generate_weekly,
    gregorian_to_hijri,
    to_iso,
)

TODAY = date(2024, 3, 13)


def test_month_matrix_is_6x7_starting_on_sunday() -> None:
    """March 2024 starts on a Friday, so the grid opens on Sunday 25 Feb and ends 6 April."""
    m = build_month_matrix(2024, 3, today=TODAY)
    assert len(m) == 6 and all(len(row) == 7 for row in m)
    assert m[0][0].date == date(2024, 2, 25)
    assert m[-1][-1].date == date(2024, 4, 6)
    assert [d.in_current_month for d in m[0]] == [False] * 5 + [True] * 2
    assert all(d.date.isoweekday() == 7 for d in (row[0] for row in m))


def test_month_matrix_marks_today() -> None:
    m = build_month_matrix(2024, 3, today=TODAY)
    todays = [d for row in m for d in row if d.is_today]
    assert len(todays) == 1 and todays[0].iso == "2024-03-13"


def test_month_starting_on_sunday_has_no_leading_days() -> None:
    m = build_month_matrix(2024, 9, today=TODAY)
    assert m[0][0].date == date(2024, 9, 1)


def test_weekly_strip() -> None:
    week = generate_weekly("2024-03-13", 3, today=TODAY)
    assert [d.iso for d in week] == [f"2024-03-{n}" for n in range(10, 17)]
    assert week[3].is_today


def test_weekly_strip_from_sunday_and_across_months() -> None:
    assert generate_weekly("2024-03-10", 3, today=TODAY)[0].iso == "2024-03-10"
    week = generate_weekly("2024-03-01", 3, today=TODAY)
    assert week[0].iso == "2024-02-25"
    assert not week[0].in_current_month


def test_daily() -> None:
    (day,) = generate_daily("2024-03-13", 3, today=TODAY)
    assert day.is_today and day.in_current_month


def test_iso_helpers() -> None:
    assert to_iso(date(2024, 1, 5)) == "2024-01-05"
    assert from_iso("2024-01-05T10:00:00") == date(2024, 1, 5)


def test_hijri_first_of_ramadan_1445() -> None:
    h = gregorian_to_hijri(date(2024, 3, 11))
    assert (h.year, h.month, h.day) == (1445, 9, 1)
    assert h.month_name == "رمضان"


def test_view_monthly_navigation_wraps_years() -> None:
    v = CalendarView(view_year=2024, view_month=1, selected_iso="2024-01-10", today_fn=lambda: TODAY)
    v.select_prev()
    assert (v.view_year, v.view_month) == (2023, 12)
    v.select_next()
    v.select_next()
    assert (v.view_year, v.view_month) == (2024, 2)
    assert v.selected_iso == "2024-01-10"


def test_view_weekly_and_daily_move_selection() -> None:
    v = CalendarView(view_year=2024, view_month=2, selected_iso="2024-02-27", view_type="weekly", today_fn=lambda: TODAY)
    v.select_next()
    assert v.selected_iso == "2024-03-05"
    assert v.view_month == 3

    v.view_type = "daily"
    v.select("2024-03-01")
    v.select_prev()
    assert v.selected_iso == "2024-02-29"
    assert (v.view_year, v.view_month) == (2024, 2)


def test_view_go_to_today_and_grid_shapes() -> None:
    v = CalendarView(view_year=2020, view_month=6, selected_iso="2020-06-01", today_fn=lambda: TODAY)
    v.go_to_today()
    assert (v.view_year, v.view_month, v.selected_iso) == (2024, 3, "2024-03-13")
    assert v.month_name == "March 2024"
    assert len(v.grid()) == 6
    v.view_type = "weekly"
    assert [len(r) for r in v.grid()] == [7]
    v.view_type = "daily"
    assert [len(r) for r in v.grid()] == [1]


def test_starting_today() -> None:
    v = CalendarView.starting_today(lambda: TODAY)
    assert v.selected_iso == "2024-03-13"
    assert v.view_type == "monthly"


def test_select_moves_view_month() -> None:
    """Picking a day in another month makes that month current for week and day grids."""
    v = CalendarView(view_year=2024, view_month=3, selected_iso="2024-03-01", view_type="weekly", today_fn=lambda: TODAY)
    v.select("2024-02-27")
    assert (v.view_year, v.view_month) == (2024, 2)
    week = v.grid()[0]
    assert [d.in_current_month for d in week] == [True] * 5 + [False] * 2
