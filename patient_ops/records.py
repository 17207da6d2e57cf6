from __future__ import annotations

from datetime import date
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import DecodeError
from .formatters import format_full_name, format_readable_date
from .statuses import EVENT_TYPE_APPOINTMENT, StatusScheme


def _check_iso_day(value: str) -> str:
    date.fromisoformat(value)
    if len(value) != 10:
        raise ValueError("expected YYYY-MM-DD")
    return value


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CalendarEvent(Record):
    id: str
    title: str
    date: str
    time: str | None = None
    status: str
    color: str
    notes: str | None = None
    event_type: str = EVENT_TYPE_APPOINTMENT
    patient_first_name: str = ""
    patient_middle_name: str | None = None
    patient_last_name: str = ""
    created_at: str | None = None

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return _check_iso_day(value)

    @property
    def patient_name(self) -> str:
        return format_full_name(self.patient_first_name, self.patient_middle_name, self.patient_last_name)


class CommunicationEntry(Record):
    id: str
    date: str
    patient_first_name: str
    patient_middle_name: str | None = None
    patient_last_name: str
    school_year: str = ""
    current_dentist: str = ""
    language: str = ""
    date_called: str | None = None
    date_emailed: str | None = None
    referral_type: str
    notes: str | None = None
    created_by: str
    appointment_id: str | None = None
    created_at: str | None = None

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return _check_iso_day(value)

    @property
    def patient_name(self) -> str:
        return format_full_name(self.patient_first_name, self.patient_middle_name, self.patient_last_name)


class Dentist(Record):
    id: str
    name: str
    created_at: str | None = None


class StaffMember(Record):
    id: str
    name: str
    created_at: str | None = None


class PreviousPatient(BaseModel):
    first: str
    middle: str = ""
    last: str

    @property
    def full_name(self) -> str:
        return format_full_name(self.first, self.middle, self.last)


class AppointmentOption(BaseModel):
    id: str
    label: str
    event: CalendarEvent = Field(repr=False)

    @classmethod
    def for_event(cls, event: CalendarEvent) -> "AppointmentOption":
        label = f"{format_readable_date(event.date)} • {event.title} • {event.patient_name}"
        return cls(id=event.id, label=label, event=event)


R = TypeVar("R", bound=BaseModel)


# =========================
# Decode (backend rows -> typed records)
# =========================
def decode_rows(model: type[R], rows: Iterable[Any]) -> list[R]:
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as e:
        raise DecodeError(f"Unexpected {model.__name__} row from backend: {e.errors()[0]['msg']}") from e


def decode_row(model: type[R], row: Any) -> R:
    return decode_rows(model, [row])[0]


def normalize_event_row(row: dict, scheme: StatusScheme) -> dict:
    """Fill status/color/type for rows written before those columns were set."""
    if not isinstance(row, dict):
        return row
    status = row.get("status") or scheme.default
    return {
        **row,
        "status": status,
        "color": row.get("color") or scheme.color_for(status),
        "event_type": row.get("event_type") or EVENT_TYPE_APPOINTMENT,
        "patient_first_name": row.get("patient_first_name") or "",
        "patient_last_name": row.get("patient_last_name") or "",
    }


def decode_events(rows: Iterable[Any], scheme: StatusScheme) -> list[CalendarEvent]:
    return decode_rows(CalendarEvent, [normalize_event_row(r, scheme) for r in rows])


def decode_event(row: Any, scheme: StatusScheme) -> CalendarEvent:
    return decode_events([row], scheme)[0]
