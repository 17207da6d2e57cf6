"""
Dashboard aggregates.

Pure functions over the in-memory collections: the UI recomputes them on
every rerun, so nothing here caches or mutates its inputs.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from .calendar_utils import month_label, to_iso_date
from .records import CalendarEvent, CommunicationEntry
from .statuses import REFERRAL_OPTIONS, StatusScheme

ALL = "all"


@dataclass(frozen=True)
class DashboardFilters:
    month: str = ALL          # "YYYY-MM"
    dentist: str = ALL
    school_year: str = ALL
    status: str = ALL

    @property
    def needs_linked_activity(self) -> bool:
        return self.dentist != ALL or self.school_year != ALL


@dataclass(frozen=True)
class StatusCount:
    status: str
    label: str
    color: str
    count: int


@dataclass(frozen=True)
class ReferralCount:
    referral_type: str
    count: int


# =========================
# Filter options
# =========================
def month_options(events: Iterable[CalendarEvent]) -> list[tuple[str, str]]:
    keys = sorted({e.date[:7] for e in events})
    return [(key, month_label(date(int(key[:4]), int(key[5:7]), 1))) for key in keys]


def dentist_options(communications: Iterable[CommunicationEntry]) -> list[str]:
    return sorted({c.current_dentist for c in communications if c.current_dentist}, key=str.casefold)


def school_year_options(communications: Iterable[CommunicationEntry]) -> list[str]:
    return sorted({c.school_year for c in communications if c.school_year}, reverse=True)


# =========================
# Aggregates
# =========================
def linked_communication_by_appointment(
    communications: Iterable[CommunicationEntry],
) -> dict[str, CommunicationEntry]:
    # last entry wins when several activities point to the same event
    return {c.appointment_id: c for c in communications if c.appointment_id}


def filter_events(
    events: Iterable[CalendarEvent],
    communications: Iterable[CommunicationEntry],
    filters: DashboardFilters,
) -> list[CalendarEvent]:
    linked = linked_communication_by_appointment(communications)

    out: list[CalendarEvent] = []
    for event in events:
        if filters.month != ALL and event.date[:7] != filters.month:
            continue
        if filters.status != ALL and event.status != filters.status:
            continue
        if filters.needs_linked_activity:
            entry = linked.get(event.id)
            if entry is None:
                continue
            if filters.dentist != ALL and entry.current_dentist != filters.dentist:
                continue
            if filters.school_year != ALL and entry.school_year != filters.school_year:
                continue
        out.append(event)
    return out


def status_counts(events: Iterable[CalendarEvent], scheme: StatusScheme) -> list[StatusCount]:
    counts: dict[str, int] = {}
    for event in events:
        counts[event.status] = counts.get(event.status, 0) + 1
    return [StatusCount(o.value, o.label, o.color, counts.get(o.value, 0)) for o in scheme.options]


def max_count(counts: Iterable[StatusCount | ReferralCount]) -> int:
    return max([1, *(c.count for c in counts)])


def referral_counts(
    communications: Iterable[CommunicationEntry],
    options: Iterable[str] = REFERRAL_OPTIONS,
) -> list[ReferralCount]:
    entries = list(communications)
    return [ReferralCount(o, sum(1 for c in entries if c.referral_type == o)) for o in options]


def upcoming_events(
    events: Iterable[CalendarEvent],
    today: date | None = None,
    days: int = 7,
    limit: int = 5,
) -> list[CalendarEvent]:
    """Events dated within [today, today + days], earliest first."""
    start = today or date.today()
    lo, hi = to_iso_date(start), to_iso_date(start + timedelta(days=days))
    window = [e for e in events if lo <= e.date <= hi]
    return sorted(window, key=lambda e: (e.date, e.time or "99:99"))[:limit]
