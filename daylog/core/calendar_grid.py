from __future__ import annotations

import calendar as _calendar
from dataclasses import dataclass, asdict
from datetime import date
from typing import Container, List

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


@dataclass(frozen=True)
class CalendarDay:
    key: str
    label: str
    date_key: str | None
    is_current_month: bool
    has_entry: bool
    is_today: bool

    def as_dict(self) -> dict:
        return asdict(self)


def format_date_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def format_month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def parse_date_key(date_key: str) -> date:
    parsed = date.fromisoformat(date_key)
    if format_date_key(parsed) != date_key:
        raise ValueError(f"Invalid date key: {date_key!r}")
    return parsed


def parse_month_key(month_key: str) -> date:
    """Return the first day of a ``YYYY-MM`` month key."""
    return parse_date_key(f"{month_key}-01")


def month_label(anchor: date) -> str:
    return anchor.strftime("%B %Y")


def shift_month(anchor: date, delta: int) -> date:
    index = anchor.year * 12 + (anchor.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def _blank(key: str) -> CalendarDay:
    return CalendarDay(
        key=key,
        label="",
        date_key=None,
        is_current_month=False,
        has_entry=False,
        is_today=False,
    )


def build_calendar_days(anchor: date, entries: Container[str], today: date) -> List[CalendarDay]:
    """Lay out a Sunday-first month grid padded to whole weeks.

    ``entries`` is anything supporting ``in`` on date keys, normally an
    EntryIndex. ``today`` is the caller's local current date.
    """
    year, month = anchor.year, anchor.month
    # calendar.weekday is Monday=0; shift so Sunday=0.
    leading = (_calendar.weekday(year, month, 1) + 1) % 7
    days_in_month = _calendar.monthrange(year, month)[1]
    today_key = format_date_key(today)

    cells = [_blank(f"leading-{idx}") for idx in range(leading)]
    for day in range(1, days_in_month + 1):
        date_key = format_date_key(date(year, month, day))
        cells.append(
            CalendarDay(
                key=f"day-{date_key}",
                label=str(day),
                date_key=date_key,
                is_current_month=True,
                has_entry=date_key in entries,
                is_today=date_key == today_key,
            )
        )
    while len(cells) % 7 != 0:
        cells.append(_blank(f"trailing-{len(cells)}"))
    return cells
