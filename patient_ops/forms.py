from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date

from .calendar_utils import to_iso_date
from .errors import FormValidationError
from .formatters import format_full_name
from .records import CalendarEvent, CommunicationEntry, PreviousPatient
from .statuses import DEFAULT_REFERRAL, EVENT_TYPE_APPOINTMENT, EVENT_TYPES, StatusScheme


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _optional(value: str | None) -> str | None:
    return _clean(value) or None


def _is_iso_day(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return len(value) == 10


class _Draft:
    """Field-level updates on a mutable draft; unknown fields are a programming error."""

    def update(self, **changes: str) -> "_Draft":
        known = {f.name for f in fields(self)}
        for name, value in changes.items():
            if name not in known:
                raise AttributeError(f"{type(self).__name__} has no field '{name}'")
            setattr(self, name, value)
        return self

    def apply_previous_patient(self, patient: PreviousPatient) -> "_Draft":
        return self.update(
            patient_first_name=patient.first,
            patient_middle_name=patient.middle,
            patient_last_name=patient.last,
        )

    @property
    def patient_name(self) -> str:
        return format_full_name(
            _clean(self.patient_first_name),
            _clean(self.patient_middle_name),
            _clean(self.patient_last_name),
        )


# =========================
# Appointment
# =========================
@dataclass
class AppointmentForm(_Draft):
    event_type: str = EVENT_TYPE_APPOINTMENT
    title: str = ""
    date: str = ""
    time: str = ""
    status: str = ""
    notes: str = ""
    patient_first_name: str = ""
    patient_middle_name: str = ""
    patient_last_name: str = ""

    @classmethod
    def blank(cls, day: str, scheme: StatusScheme) -> "AppointmentForm":
        return cls(date=day, status=scheme.default)

    @classmethod
    def from_event(cls, event: CalendarEvent) -> "AppointmentForm":
        return cls(
            event_type=event.event_type,
            title=event.title,
            date=event.date,
            time=event.time or "",
            status=event.status,
            notes=event.notes or "",
            patient_first_name=event.patient_first_name,
            patient_middle_name=event.patient_middle_name or "",
            patient_last_name=event.patient_last_name,
        )

    def validate(self, scheme: StatusScheme) -> None:
        needs_patient = self.event_type == EVENT_TYPE_APPOINTMENT
        if not _clean(self.title) or (
            needs_patient and (not _clean(self.patient_first_name) or not _clean(self.patient_last_name))
        ):
            raise FormValidationError("Add a title and patient first/last name.")
        if self.event_type not in EVENT_TYPES:
            raise FormValidationError(f"Unknown event type: {self.event_type}")
        if not _is_iso_day(self.date):
            raise FormValidationError("Pick a valid date.")
        if not scheme.has(self.status):
            raise FormValidationError(f"Unknown status: {self.status}")

    def to_payload(self, scheme: StatusScheme) -> dict:
        return {
            "event_type": self.event_type,
            "title": _clean(self.title),
            "date": self.date,
            "time": _optional(self.time),
            "status": self.status,
            "color": scheme.color_for(self.status),
            "notes": _optional(self.notes),
            "patient_first_name": _clean(self.patient_first_name),
            "patient_middle_name": _optional(self.patient_middle_name),
            "patient_last_name": _clean(self.patient_last_name),
        }


# =========================
# Activity (communication entry)
# =========================
@dataclass
class ActivityForm(_Draft):
    date: str = ""
    patient_first_name: str = ""
    patient_middle_name: str = ""
    patient_last_name: str = ""
    school_year: str = ""
    current_dentist: str = ""
    language: str = ""
    date_called: str = ""
    date_emailed: str = ""
    referral_type: str = DEFAULT_REFERRAL
    notes: str = ""
    created_by: str = ""
    appointment_id: str = ""

    @classmethod
    def blank(cls, today: date | None = None) -> "ActivityForm":
        return cls(date=to_iso_date(today or date.today()))

    @classmethod
    def from_event(cls, event: CalendarEvent) -> "ActivityForm":
        """Pre-filled entry for an encounter that just reached the terminal status."""
        return cls(
            date=event.date,
            patient_first_name=event.patient_first_name,
            patient_middle_name=event.patient_middle_name or "",
            patient_last_name=event.patient_last_name,
            notes=_clean(event.notes) or f"Completed appointment: {event.title}",
            appointment_id=event.id,
        )

    @classmethod
    def from_entry(cls, entry: CommunicationEntry) -> "ActivityForm":
        return cls(
            date=entry.date,
            patient_first_name=entry.patient_first_name,
            patient_middle_name=entry.patient_middle_name or "",
            patient_last_name=entry.patient_last_name,
            school_year=entry.school_year,
            current_dentist=entry.current_dentist,
            language=entry.language,
            date_called=entry.date_called or "",
            date_emailed=entry.date_emailed or "",
            referral_type=entry.referral_type,
            notes=entry.notes or "",
            created_by=entry.created_by,
            appointment_id=entry.appointment_id or "",
        )

    @property
    def linked_appointment_id(self) -> str | None:
        return _optional(self.appointment_id)

    def validate(self) -> None:
        if not _clean(self.patient_first_name) or not _clean(self.patient_last_name):
            raise FormValidationError("Add patient first and last name.")
        if not _clean(self.created_by):
            raise FormValidationError("Add who created the activity.")
        if not _is_iso_day(self.date):
            raise FormValidationError("Pick a valid activity date.")
        for label, value in (("Date called", self.date_called), ("Date emailed", self.date_emailed)):
            if value and not _is_iso_day(value):
                raise FormValidationError(f"{label} is not a valid date.")

    def to_payload(self, appointment_id: str | None) -> dict:
        return {
            "date": self.date,
            "patient_name": self.patient_name,
            "patient_first_name": _clean(self.patient_first_name),
            "patient_middle_name": _optional(self.patient_middle_name),
            "patient_last_name": _clean(self.patient_last_name),
            "school_year": _clean(self.school_year),
            "current_dentist": _clean(self.current_dentist),
            "language": _clean(self.language),
            "date_called": self.date_called or None,
            "date_emailed": self.date_emailed or None,
            "referral_type": self.referral_type,
            "notes": _optional(self.notes),
            "created_by": _clean(self.created_by),
            "appointment_id": appointment_id,
        }

    def linked_event_payload(self, scheme: StatusScheme) -> dict:
        """Stand-in event for an activity logged without an appointment."""
        return {
            "event_type": EVENT_TYPE_APPOINTMENT,
            "title": f"Activity: {self.patient_name}",
            "date": self.date,
            "time": None,
            "status": scheme.terminal,
            "color": scheme.color_for(scheme.terminal),
            "notes": _optional(self.notes),
            "patient_first_name": _clean(self.patient_first_name),
            "patient_middle_name": _optional(self.patient_middle_name),
            "patient_last_name": _clean(self.patient_last_name),
        }
