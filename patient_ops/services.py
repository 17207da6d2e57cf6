from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from .calendar_utils import PAST_DATES_MESSAGE, events_by_date, is_past, to_iso_date
from .client import TABLE_COMMUNICATIONS, TABLE_DENTISTS, TABLE_EVENTS, TABLE_STAFF, TableClient, build_client
from .errors import NOT_CONFIGURED_MESSAGE, FormValidationError, NotConfiguredError, PatientOpsError, RowCountError
from .forms import ActivityForm, AppointmentForm
from .records import (
    AppointmentOption,
    CalendarEvent,
    CommunicationEntry,
    Dentist,
    PreviousPatient,
    StaffMember,
    decode_event,
    decode_events,
    decode_row,
    decode_rows,
)
from .settings import Settings
from .statuses import StatusScheme, get_scheme

logger = logging.getLogger(__name__)

NOT_CONFIGURED_BANNER = f"{NOT_CONFIGURED_MESSAGE} Add DATA_API_URL and DATA_API_KEY to connect."


# =========================
# State
# =========================
@dataclass
class ClinicState:
    """Collections owned by the coordinator; views only read them."""
    events: list[CalendarEvent] = field(default_factory=list)
    communications: list[CommunicationEntry] = field(default_factory=list)
    dentists: list[Dentist] = field(default_factory=list)
    staff: list[StaffMember] = field(default_factory=list)
    load_error: str | None = None

    def events_by_date(self) -> dict[str, list[CalendarEvent]]:
        return events_by_date(self.events)

    def get_event(self, event_id: str | None) -> CalendarEvent | None:
        return next((e for e in self.events if e.id == event_id), None)

    def get_entry(self, entry_id: str | None) -> CommunicationEntry | None:
        return next((c for c in self.communications if c.id == entry_id), None)

    def has_linked_activity(self, event_id: str) -> bool:
        return any(c.appointment_id == event_id for c in self.communications)

    def linked_event(self, entry: CommunicationEntry) -> CalendarEvent | None:
        return self.get_event(entry.appointment_id) if entry.appointment_id else None

    def recent_activities(self, limit: int = 6) -> list[CommunicationEntry]:
        return self.communications[:limit]

    def previous_patients(self) -> list[PreviousPatient]:
        """Distinct patients from the activity log, matched on full name (case-insensitive)."""
        seen: set[str] = set()
        out: list[PreviousPatient] = []
        for c in self.communications:
            patient = PreviousPatient(
                first=c.patient_first_name,
                middle=c.patient_middle_name or "",
                last=c.patient_last_name,
            )
            key = patient.full_name.lower()
            if not key or key in seen:
                continue
            seen.add(key)
            out.append(patient)
        return out

    def appointment_options(self) -> list[AppointmentOption]:
        return [AppointmentOption.for_event(e) for e in sorted(self.events, key=lambda e: e.date)]

    def creator_names(self) -> list[str]:
        return [m.name for m in self.staff] + [d.name for d in self.dentists]

    # mutations: only ClinicService calls these
    def _put_event(self, event: CalendarEvent) -> None:
        for i, e in enumerate(self.events):
            if e.id == event.id:
                self.events[i] = event
                return
        self.events.append(event)

    def _put_entry(self, entry: CommunicationEntry) -> None:
        for i, c in enumerate(self.communications):
            if c.id == entry.id:
                self.communications[i] = entry
                return
        self.communications.insert(0, entry)


@dataclass(frozen=True)
class Outcome:
    """
    Result of a UI-triggered operation.
    - ok/message : rendered as a success or error toast
    - record     : the saved record, when there is one
    - follow_up  : activity form to open next (terminal appointment without a logged activity)
    """
    ok: bool
    message: str
    record: object | None = None
    follow_up: ActivityForm | None = None


def _failed(e: PatientOpsError) -> Outcome:
    return Outcome(False, e.message)


# =========================
# Coordinator
# =========================
class ClinicService:
    def __init__(self, client: TableClient | None, scheme: StatusScheme, state: ClinicState | None = None) -> None:
        self.client = client
        self.scheme = scheme
        self.state = state or ClinicState()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClinicService":
        """New client and HTTP session per caller: sessions are not shared across browser sessions."""
        return cls(build_client(settings), get_scheme(settings.status_scheme))

    @property
    def configured(self) -> bool:
        return self.client is not None

    def _require_client(self) -> TableClient:
        if self.client is None:
            raise NotConfiguredError()
        return self.client

    # -------------------------
    # Load
    # -------------------------
    def load(self) -> ClinicState:
        """
        Fetch the four tables.
        A failing table sets the banner message; the others still load.
        """
        if self.client is None:
            self.state = ClinicState(load_error=NOT_CONFIGURED_BANNER)
            return self.state

        client = self.client
        state = ClinicState()
        tables: list[tuple[str, str, str, bool, Callable[[list], list]]] = [
            ("events", TABLE_EVENTS, "date", True, lambda rows: decode_events(rows, self.scheme)),
            ("communications", TABLE_COMMUNICATIONS, "date", False, lambda rows: decode_rows(CommunicationEntry, rows)),
            ("dentists", TABLE_DENTISTS, "name", True, lambda rows: decode_rows(Dentist, rows)),
            ("staff", TABLE_STAFF, "name", True, lambda rows: decode_rows(StaffMember, rows)),
        ]
        for attr, table, order, ascending, decode in tables:
            try:
                setattr(state, attr, decode(client.select(table, order=order, ascending=ascending)))
            except PatientOpsError as e:
                logger.warning("loading %s failed: %s", table, e.message)
                state.load_error = e.message

        logger.info(
            "loaded %d events, %d activities, %d dentists, %d staff",
            len(state.events), len(state.communications), len(state.dentists), len(state.staff),
        )
        self.state = state
        return state

    # -------------------------
    # Appointment save
    # -------------------------
    def event_for_edit(self, event_id: str, today: date | None = None) -> AppointmentForm:
        event = self.state.get_event(event_id)
        if event is None:
            raise FormValidationError("Appointment not found.")
        if is_past(event.date, to_iso_date(today or date.today())):
            raise FormValidationError(PAST_DATES_MESSAGE)
        return AppointmentForm.from_event(event)

    def save_event(self, form: AppointmentForm, event_id: str | None = None) -> Outcome:
        """
        Create or edit an appointment.
        - validate before any network call
        - color always follows the status
        - terminal status with no logged activity -> follow_up form to log it
        """
        try:
            form.validate(self.scheme)
            client = self._require_client()
            payload = form.to_payload(self.scheme)
            if event_id:
                row = client.update_by_id(TABLE_EVENTS, event_id, payload)
            else:
                row = client.insert(TABLE_EVENTS, payload)
            event = decode_event(row, self.scheme)
        except PatientOpsError as e:
            return _failed(e)

        self.state._put_event(event)
        logger.info("event %s %s (status=%s)", event.id, "updated" if event_id else "created", event.status)

        follow_up = None
        if self.scheme.is_terminal(event.status) and not self.state.has_linked_activity(event.id):
            follow_up = ActivityForm.from_event(event)

        return Outcome(True, "Appointment updated." if event_id else "Appointment saved.", event, follow_up)

    # -------------------------
    # Activity save / record linking
    # -------------------------
    def _link_event(self, client: TableClient, form: ActivityForm) -> CalendarEvent:
        """Stand-in event when nothing is linked, otherwise flip the linked event to terminal."""
        appointment_id = form.linked_appointment_id
        if appointment_id is None:
            row = client.insert(TABLE_EVENTS, form.linked_event_payload(self.scheme))
        else:
            row = client.update_by_id(
                TABLE_EVENTS,
                appointment_id,
                {"status": self.scheme.terminal, "color": self.scheme.color_for(self.scheme.terminal)},
            )
        event = decode_event(row, self.scheme)
        self.state._put_event(event)
        return event

    def save_activity(self, form: ActivityForm, entry_id: str | None = None) -> Outcome:
        """
        Log (or edit) an outreach activity.
        1. validate before any network call
        2. create the stand-in event, or mark the linked one as terminal
        3. insert the entry (update by id when editing) with the resolved link

        The writes are independent calls: if step 3 fails, step 2 stays applied.
        """
        try:
            form.validate()
            client = self._require_client()
        except PatientOpsError as e:
            return _failed(e)

        try:
            event = self._link_event(client, form)
        except PatientOpsError as e:
            return _failed(e)

        payload = form.to_payload(event.id)
        try:
            if entry_id:
                row = client.update_by_id(TABLE_COMMUNICATIONS, entry_id, payload)
            else:
                row = client.insert(TABLE_COMMUNICATIONS, payload)
            entry = decode_row(CommunicationEntry, row)
        except RowCountError as e:
            logger.error("activity %s not replaced locally: %s", entry_id, e.message)
            return _failed(e)
        except PatientOpsError as e:
            logger.warning("event %s is %s but the activity was not saved: %s", event.id, event.status, e.message)
            return _failed(e)

        self.state._put_entry(entry)
        logger.info("activity %s %s, linked to event %s", entry.id, "updated" if entry_id else "created", event.id)
        return Outcome(True, "Activity updated." if entry_id else "Activity saved.", entry)

    # -------------------------
    # Roster
    # -------------------------
    def _add_roster_member(self, table: str, name: str, label: str) -> Outcome:
        value = (name or "").strip()
        if not value:
            return Outcome(False, f"Enter a {label.lower()} name.")
        roster = self.state.dentists if table == TABLE_DENTISTS else self.state.staff
        if any(m.name.casefold() == value.casefold() for m in roster):
            return Outcome(False, f"{value} is already on the list.")
        try:
            client = self._require_client()
            row = client.insert(table, {"name": value})
            model = Dentist if table == TABLE_DENTISTS else StaffMember
            member = decode_row(model, row)
        except PatientOpsError as e:
            return _failed(e)

        roster.append(member)
        roster.sort(key=lambda m: m.name.casefold())
        logger.info("%s added: %s", label.lower(), member.name)
        return Outcome(True, f"{label} added.", member)

    def add_dentist(self, name: str) -> Outcome:
        return self._add_roster_member(TABLE_DENTISTS, name, "Dentist")

    def add_staff(self, name: str) -> Outcome:
        return self._add_roster_member(TABLE_STAFF, name, "Staff")
