from __future__ import annotations

from datetime import date, time

EMPTY = "—"


def format_full_name(first: str | None, middle: str | None, last: str | None) -> str:
    return " ".join(part for part in (first, middle, last) if part)


def format_readable_date(value: str) -> str:
    """'2024-01-05' -> 'Fri, Jan 5'"""
    d = date.fromisoformat(value)
    return f"{d.strftime('%a')}, {d.strftime('%b')} {d.day}"


def format_time(value: str | None) -> str:
    """'14:30' -> '2:30 PM'; blank -> dash; anything unparsable is shown as-is."""
    if not value:
        return EMPTY
    parts = value.split(":")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return value
    try:
        t = time(int(parts[0]), int(parts[1]))
    except ValueError:
        return value
    hour = t.hour % 12 or 12
    suffix = "AM" if t.hour < 12 else "PM"
    return f"{hour}:{t.minute:02d} {suffix}"


def format_when(day: str, value: str | None) -> str:
    """'2024-01-05', '14:30' -> 'Fri, Jan 5 · 2:30 PM'; the time part is left out when blank."""
    when = format_readable_date(day)
    return f"{when} · {format_time(value)}" if value else when
