from __future__ import annotations

import calendar
import enum
from datetime import date
from typing import Iterable, Protocol, TypeVar

WEEKDAY_LABELS: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
GRID_CELLS = 42

PAST_DATES_MESSAGE = "Past dates are view-only."


class _Dated(Protocol):
    date: str
    time: str | None


E = TypeVar("E", bound=_Dated)


class DayAction(enum.Enum):
    VIEW_ONLY = "view_only"   # past day with events: read-only popover
    NOOP = "noop"             # past day, nothing to show
    OPEN_FORM = "open_form"   # today or future: create/edit form


def to_iso_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def today_iso(today: date | None = None) -> str:
    return to_iso_date(today or date.today())


def month_grid(year: int, month: int) -> list[date | None]:
    """
    6 weeks x 7 days, Sunday first.
    Cells before the 1st and after the last day of the month are None.
    """
    first_weekday = (date(year, month, 1).weekday() + 1) % 7  # Mon=0 -> Sun=0
    days_in_month = calendar.monthrange(year, month)[1]

    cells: list[date | None] = []
    for index in range(GRID_CELLS):
        day_number = index - first_weekday + 1
        if day_number < 1 or day_number > days_in_month:
            cells.append(None)
        else:
            cells.append(date(year, month, day_number))
    return cells


def grid_weeks(cells: list[date | None], trim: bool = True) -> list[list[date | None]]:
    weeks = [cells[i:i + 7] for i in range(0, len(cells), 7)]
    if trim:
        weeks = [w for w in weeks if any(w)]
    return weeks


def is_past(iso_day: str, today: str) -> bool:
    # zero-padded YYYY-MM-DD: string order == chronological order
    return iso_day < today


def events_by_date(events: Iterable[E]) -> dict[str, list[E]]:
    grouped: dict[str, list[E]] = {}
    for event in events:
        grouped.setdefault(event.date, []).append(event)
    return grouped


def day_click_action(iso_day: str, day_events: list, today: str) -> DayAction:
    if is_past(iso_day, today):
        return DayAction.VIEW_ONLY if day_events else DayAction.NOOP
    return DayAction.OPEN_FORM


def sort_by_time(events: Iterable[E]) -> list[E]:
    return sorted(events, key=lambda e: e.time or "99:99")


def shift_month(first_of_month: date, delta: int) -> date:
    index = first_of_month.year * 12 + (first_of_month.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def month_label(value: date) -> str:
    return f"{calendar.month_name[value.month]} {value.year}"
