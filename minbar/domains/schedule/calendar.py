"""
Calendar date arithmetic for the schedule page: month grids, week strips,
single days, Hijri dates and view navigation. No time zones, no recurrence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Literal

ViewType = Literal["monthly", "weekly", "daily"]

HIJRI_MONTHS_AR = [
    "محرم", "صفر", "ربيع الأول", "ربيع الثاني",
    "جمادى الأولى", "جمادى الآخرة", "رجب", "شعبان",
    "رمضان", "شوال", "ذو القعدة", "ذو الحجة",
]

# Julian day number of 0001-01-01 minus one, so jdn = toordinal() + offset.
_JDN_OFFSET = 1721425


@dataclass(frozen=True)
class HijriDate:
    year: int
    month: int
    day: int

    @property
    def month_name(self) -> str:
        return HIJRI_MONTHS_AR[self.month - 1]


@dataclass(frozen=True)
class CalendarDay:
    date: date
    iso: str
    in_current_month: bool
    is_today: bool
    hijri: HijriDate | None = None


def to_iso(d: date) -> str:
    """yyyy-mm-dd key used for events."""
    return d.isoformat()


def from_iso(iso: str) -> date:
    return date.fromisoformat(iso[:10])


def gregorian_to_hijri(d: date) -> HijriDate:
    """Arithmetical (Kuwaiti) conversion. Can differ by a day from sighting-based calendars."""
    jd = d.toordinal() + _JDN_OFFSET
    l = jd - 1948440 + 10632
    n = (l - 1) // 10631
    l = l - 10631 * n + 354
    j = ((10985 - l) // 5316) * ((50 * l) // 17719) + (l // 5670) * ((43 * l) // 15238)
    l = l - ((30 - j) // 15) * ((17719 * j) // 50) - (j // 16) * ((15238 * j) // 43) + 29
    month = (24 * l) // 709
    day = l - (709 * month) // 24
    year = 30 * n + j - 30
    return HijriDate(year, month, day)


def _sunday_on_or_before(d: date) -> date:
    return d - timedelta(days=d.isoweekday() % 7)


def _day(d: date, view_month: int, today: date) -> CalendarDay:
    return CalendarDay(
        date=d,
        iso=to_iso(d),
        in_current_month=d.month == view_month,
        is_today=d == today,
        hijri=gregorian_to_hijri(d),
    )


def build_month_matrix(year: int, month: int, today: date | None = None) -> list[list[CalendarDay]]:
    """
    6x7 grid for a month (1-12), rows starting on Sunday.

    The first row begins on the Sunday on or before the 1st, so leading and
    trailing days of neighbouring months fill the grid.
    """
    today = today or date.today()
    cur = _sunday_on_or_before(date(year, month, 1))
    matrix: list[list[CalendarDay]] = []
    for _ in range(6):
        row = []
        for _ in range(7):
            row.append(_day(cur, month, today))
            cur += timedelta(days=1)
        matrix.append(row)
    return matrix


def generate_weekly(iso_center: str, view_month: int, today: date | None = None) -> list[CalendarDay]:
    """Sunday..Saturday strip containing iso_center."""
    today = today or date.today()
    sunday = _sunday_on_or_before(from_iso(iso_center))
    return [_day(sunday + timedelta(days=i), view_month, today) for i in range(7)]


def generate_daily(iso: str, view_month: int, today: date | None = None) -> list[CalendarDay]:
    today = today or date.today()
    return [_day(from_iso(iso), view_month, today)]


@dataclass
class CalendarView:
    """Navigation state of the schedule page."""

    view_year: int
    view_month: int
    selected_iso: str
    view_type: ViewType = "monthly"
    today_fn: Callable[[], date] = field(default=date.today, repr=False)

    @classmethod
    def starting_today(cls, today_fn: Callable[[], date] = date.today) -> "CalendarView":
        t = today_fn()
        return cls(view_year=t.year, view_month=t.month, selected_iso=to_iso(t), today_fn=today_fn)

    @property
    def month_name(self) -> str:
        return date(self.view_year, self.view_month, 1).strftime("%B %Y")

    def _select(self, d: date) -> None:
        self.selected_iso = to_iso(d)
        self.view_year = d.year
        self.view_month = d.month

    def _shift(self, step: int) -> None:
        if self.view_type == "monthly":
            index = self.view_year * 12 + (self.view_month - 1) + step
            self.view_year, month0 = divmod(index, 12)
            self.view_month = month0 + 1
            return
        days = 7 if self.view_type == "weekly" else 1
        self._select(from_iso(self.selected_iso) + timedelta(days=days * step))

    def select_prev(self) -> None:
        self._shift(-1)

    def select_next(self) -> None:
        self._shift(1)

    def go_to_today(self) -> None:
        self._select(self.today_fn())

    def select(self, iso: str) -> None:
        self._select(from_iso(iso))

    def grid(self) -> list[list[CalendarDay]]:
        """Rows to render for the current view type."""
        today = self.today_fn()
        if self.view_type == "weekly":
            return [generate_weekly(self.selected_iso, self.view_month, today)]
        if self.view_type == "daily":
            return [generate_daily(self.selected_iso, self.view_month, today)]
        return build_month_matrix(self.view_year, self.view_month, today)
