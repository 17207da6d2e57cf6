from __future__ import annotations

from datetime import date, time

import streamlit as st

from patient_ops.calendar_utils import (
    WEEKDAY_LABELS,
    DayAction,
    day_click_action,
    grid_weeks,
    month_grid,
    month_label,
    shift_month,
    sort_by_time,
    to_iso_date,
    today_iso,
)
from patient_ops.dashboard import (
    ALL,
    DashboardFilters,
    dentist_options,
    filter_events,
    max_count,
    month_options,
    referral_counts,
    school_year_options,
    status_counts,
    upcoming_events,
)
from patient_ops.errors import FormValidationError
from patient_ops.forms import ActivityForm, AppointmentForm
from patient_ops.formatters import EMPTY, format_readable_date, format_time, format_when
from patient_ops.logging_setup import setup_logging
from patient_ops.services import ClinicService, Outcome
from patient_ops.settings import get_settings
from patient_ops.statuses import EVENT_TYPES, REFERRAL_OPTIONS

st.set_page_config(page_title="Patient Operations", layout="wide")

SETTINGS = get_settings()
setup_logging(SETTINGS.log_level)

TABS = ["Dashboard", "Calendar", "Activities", "Admin"]

APPOINTMENT_FIELDS = (
    "event_type", "title", "date", "time", "status", "notes",
    "patient_first_name", "patient_middle_name", "patient_last_name",
)
ACTIVITY_FIELDS = (
    "date", "patient_first_name", "patient_middle_name", "patient_last_name",
    "school_year", "current_dentist", "language", "date_called", "date_emailed",
    "referral_type", "notes", "created_by", "appointment_id",
)
DATE_FIELDS = {"date", "date_called", "date_emailed"}



# Service (one per browser session)

def get_service() -> ClinicService:
    if "service" not in st.session_state:
        service = ClinicService.from_settings(SETTINGS)
        service.load()
        st.session_state["service"] = service
    return st.session_state["service"]


def notify(outcome: Outcome) -> None:
    # shown on the next run: st.rerun() would swallow it
    st.session_state["toast"] = (outcome.ok, outcome.message)


def show_pending_toast() -> None:
    pending = st.session_state.pop("toast", None)
    if pending:
        ok, message = pending
        st.toast(message, icon="✅" if ok else "⚠️")



# Widget <-> form helpers

def _to_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _to_time(value: str | None) -> time | None:
    if not value:
        return None
    try:
        return time.fromisoformat(value)
    except ValueError:
        return None


def _iso(value: date | None) -> str:
    return to_iso_date(value) if value else ""


def seed_widgets(prefix: str, form: AppointmentForm | ActivityForm, names: tuple[str, ...]) -> None:
    for name in names:
        value = getattr(form, name)
        if name in DATE_FIELDS:
            value = _to_date(value)
        elif name == "time":
            value = _to_time(value)
        st.session_state[f"{prefix}_{name}"] = value
    st.session_state.pop(f"{prefix}_prev", None)


def _widget(prefix: str, name: str):
    return st.session_state.get(f"{prefix}_{name}")


def appointment_form_from_widgets(prefix: str) -> AppointmentForm:
    t = _widget(prefix, "time")
    return AppointmentForm(
        event_type=_widget(prefix, "event_type") or EVENT_TYPES[0],
        title=_widget(prefix, "title") or "",
        date=_iso(_widget(prefix, "date")),
        time=t.strftime("%H:%M") if t else "",
        status=_widget(prefix, "status") or "",
        notes=_widget(prefix, "notes") or "",
        patient_first_name=_widget(prefix, "patient_first_name") or "",
        patient_middle_name=_widget(prefix, "patient_middle_name") or "",
        patient_last_name=_widget(prefix, "patient_last_name") or "",
    )


def activity_form_from_widgets(prefix: str) -> ActivityForm:
    values = {}
    for name in ACTIVITY_FIELDS:
        value = _widget(prefix, name)
        values[name] = _iso(value) if name in DATE_FIELDS else (value or "")
    return ActivityForm(**values)


def _fill_previous_patient(prefix: str) -> None:
    patient = st.session_state.get(f"{prefix}_prev")
    if patient is None:
        return
    st.session_state[f"{prefix}_patient_first_name"] = patient.first
    st.session_state[f"{prefix}_patient_middle_name"] = patient.middle
    st.session_state[f"{prefix}_patient_last_name"] = patient.last


def previous_patient_picker(prefix: str, service: ClinicService) -> None:
    st.selectbox(
        "Previous Patient",
        options=[None, *service.state.previous_patients()],
        format_func=lambda p: "Select a previous patient" if p is None else p.full_name,
        key=f"{prefix}_prev",
        on_change=_fill_previous_patient,
        args=(prefix,),
    )


def _with_current(options: list[str], current: str | None) -> list[str]:
    # keep a stored value selectable even if it left the roster
    if current and current not in options:
        return [*options, current]
    return options



# Activity fields (tab form + modal)

def activity_fields(prefix: str, service: ClinicService) -> None:
    state = service.state
    today = date.today()

    c1, c2 = st.columns(2)
    with c1:
        st.date_input("Date *", key=f"{prefix}_date")
        n1, n2, n3 = st.columns(3)
        n1.text_input("First Name *", key=f"{prefix}_patient_first_name")
        n2.text_input("Middle Name", key=f"{prefix}_patient_middle_name")
        n3.text_input("Last Name *", key=f"{prefix}_patient_last_name")

        years = [str(y) for y in range(today.year, 1999, -1)]
        st.selectbox(
            "School Year",
            options=_with_current(["", *years], _widget(prefix, "school_year")),
            format_func=lambda y: y or "Select year",
            key=f"{prefix}_school_year",
        )
        st.text_input("Language", key=f"{prefix}_language")
        st.selectbox("Referral Type", options=list(REFERRAL_OPTIONS), key=f"{prefix}_referral_type")

    with c2:
        st.selectbox(
            "Current Dentist",
            options=_with_current(["", *(d.name for d in state.dentists)], _widget(prefix, "current_dentist")),
            format_func=lambda n: n or "Select dentist",
            key=f"{prefix}_current_dentist",
        )
        st.selectbox(
            "Created By *",
            options=_with_current(["", *state.creator_names()], _widget(prefix, "created_by")),
            format_func=lambda n: n or "Select staff or dentist",
            key=f"{prefix}_created_by",
        )
        st.date_input("Date Called", max_value=today, key=f"{prefix}_date_called")
        st.date_input("Date Emailed", max_value=today, key=f"{prefix}_date_emailed")

        options = {o.id: o.label for o in state.appointment_options()}
        st.selectbox(
            "Linked Appointment",
            options=_with_current(["", *options], _widget(prefix, "appointment_id")),
            format_func=lambda i: options.get(i, i) if i else "None (log as a new encounter)",
            key=f"{prefix}_appointment_id",
        )
        st.text_area("Notes", height=140, key=f"{prefix}_notes")



# Dialogs

@st.dialog("Appointment")
def appointment_dialog(event_id: str | None) -> None:
    service = get_service()
    scheme = service.scheme
    prefix = "appt"

    st.subheader("Edit Appointment" if event_id else "New Appointment")
    previous_patient_picker(prefix, service)

    with st.form("appointment_form"):
        st.selectbox("Type", options=list(EVENT_TYPES), format_func=str.title, key=f"{prefix}_event_type")
        st.text_input("Title *", placeholder="Appointment name", key=f"{prefix}_title")
        c1, c2 = st.columns(2)
        c1.date_input("Date", key=f"{prefix}_date")
        c2.time_input("Time", key=f"{prefix}_time")
        st.selectbox(
            "Status",
            options=scheme.values,
            format_func=scheme.label_for,
            key=f"{prefix}_status",
        )
        n1, n2, n3 = st.columns(3)
        n1.text_input("Patient First Name *", key=f"{prefix}_patient_first_name")
        n2.text_input("Middle Name", key=f"{prefix}_patient_middle_name")
        n3.text_input("Patient Last Name *", key=f"{prefix}_patient_last_name")
        st.text_area("Notes", height=90, key=f"{prefix}_notes")
        submitted = st.form_submit_button("Save", type="primary")

    if submitted:
        outcome = service.save_event(appointment_form_from_widgets(prefix), event_id=event_id)
        if not outcome.ok:
            st.error(outcome.message)
            return
        notify(outcome)
        if outcome.follow_up is not None:
            open_activity_modal(outcome.follow_up)
        st.rerun()


@st.dialog("Log Activity", width="large")
def activity_dialog() -> None:
    service = get_service()
    prefix = "modal"

    st.caption("Confirm and edit the activity details before saving.")
    previous_patient_picker(prefix, service)
    with st.form("activity_modal_form"):
        activity_fields(prefix, service)
        submitted = st.form_submit_button("Save Activity", type="primary")

    if submitted:
        outcome = service.save_activity(activity_form_from_widgets(prefix))
        if not outcome.ok:
            st.error(outcome.message)
            return
        notify(outcome)
        st.session_state["next_tab"] = "Activities"
        st.rerun()


@st.dialog("Activity Details")
def activity_details_dialog(entry_id: str) -> None:
    state = get_service().state
    entry = state.get_entry(entry_id)
    if entry is None:
        st.info("This activity is no longer loaded.")
        return

    st.caption(format_readable_date(entry.date))
    st.markdown(f"**{entry.patient_name}**")
    c1, c2 = st.columns(2)
    c1.write(f"Current Dentist: {entry.current_dentist or EMPTY}")
    c2.write(f"Created By: {entry.created_by}")
    c1.write(f"Date Called: {entry.date_called or EMPTY}")
    c2.write(f"Date Emailed: {entry.date_emailed or EMPTY}")
    c1.write(f"Referral Type: {entry.referral_type}")
    c2.write(f"School Year: {entry.school_year or EMPTY}")
    st.write(f"Notes: {entry.notes or EMPTY}")

    if st.button("Edit Activity", type="primary"):
        st.session_state["act_seed"] = ActivityForm.from_entry(entry)
        st.session_state["editing_entry_id"] = entry.id
        st.session_state["next_tab"] = "Activities"
        st.rerun()


def open_appointment_modal(form: AppointmentForm, event_id: str | None) -> None:
    seed_widgets("appt", form, APPOINTMENT_FIELDS)
    st.session_state["dialog"] = ("appointment", event_id)


def open_activity_modal(form: ActivityForm) -> None:
    seed_widgets("modal", form, ACTIVITY_FIELDS)
    st.session_state["dialog"] = ("activity", None)


def run_pending_dialog() -> None:
    # popped before opening: a dismissed dialog must not come back on the next run
    pending = st.session_state.pop("dialog", None)
    if not pending:
        return
    kind, ref = pending
    if kind == "appointment":
        appointment_dialog(ref)
    elif kind == "activity":
        activity_dialog()
    elif kind == "details":
        activity_details_dialog(ref)



# Sections

def render_calendar(service: ClinicService) -> None:
    state = service.state
    scheme = service.scheme
    current = st.session_state.setdefault("current_month", date.today().replace(day=1))

    c1, c2, c3 = st.columns([1, 3, 1])
    if c1.button("Previous", use_container_width=True):
        st.session_state["current_month"] = shift_month(current, -1)
        st.rerun()
    c2.markdown(f"### {month_label(current)}")
    c2.caption("Click a date to add an appointment and set its status.")
    if c3.button("Following", use_container_width=True):
        st.session_state["current_month"] = shift_month(current, 1)
        st.rerun()

    for col, label in zip(st.columns(7), WEEKDAY_LABELS):
        col.markdown(f"**{label}**")

    today = today_iso()
    by_date = state.events_by_date()

    for week in grid_weeks(month_grid(current.year, current.month)):
        for col, day in zip(st.columns(7), week):
            if day is None:
                continue
            iso = to_iso_date(day)
            day_events = by_date.get(iso, [])
            action = day_click_action(iso, day_events, today)

            with col.container(border=True):
                if action is DayAction.VIEW_ONLY:
                    with st.popover(str(day.day), use_container_width=True):
                        st.markdown(f"**{format_readable_date(iso)}** · {len(day_events)} total")
                        for ev in sort_by_time(day_events):
                            st.markdown(
                                f"{ev.title} · {ev.patient_name or EMPTY}  \n"
                                f"{format_time(ev.time)} · :gray[{scheme.label_for(ev.status)}]"
                            )
                elif action is DayAction.NOOP:
                    st.button(str(day.day), key=f"day_{iso}", disabled=True, use_container_width=True)
                elif st.button(str(day.day), key=f"day_{iso}", use_container_width=True):
                    open_appointment_modal(AppointmentForm.blank(iso, scheme), None)
                    st.rerun()

                for ev in day_events[:2]:
                    if action is not DayAction.OPEN_FORM:
                        st.caption(ev.title)
                    elif st.button(ev.title, key=f"ev_{ev.id}", help=scheme.label_for(ev.status)):
                        try:
                            form = service.event_for_edit(ev.id)
                        except FormValidationError as e:
                            notify(Outcome(False, e.message))
                        else:
                            open_appointment_modal(form, ev.id)
                        st.rerun()
                if len(day_events) > 2:
                    st.caption(f"+{len(day_events) - 2} more")


def render_activities(service: ClinicService) -> None:
    state = service.state
    prefix = "act"

    seed = st.session_state.pop("act_seed", None)
    if seed is not None:
        seed_widgets(prefix, seed, ACTIVITY_FIELDS)
    elif f"{prefix}_date" not in st.session_state:
        seed_widgets(prefix, ActivityForm.blank(), ACTIVITY_FIELDS)
        st.session_state.pop("editing_entry_id", None)

    editing_id = st.session_state.get("editing_entry_id")

    left, right = st.columns([3, 1])
    with left:
        st.subheader("Activities")
        st.caption("Capture patient outreach details for every interaction.")
        previous_patient_picker(prefix, service)
        with st.form("activity_tab_form"):
            activity_fields(prefix, service)
            submitted = st.form_submit_button("Update Activity" if editing_id else "Save Activity", type="primary")
        if editing_id and st.button("Cancel edit"):
            st.session_state["act_seed"] = ActivityForm.blank()
            st.session_state.pop("editing_entry_id", None)
            st.rerun()

        if submitted:
            outcome = service.save_activity(activity_form_from_widgets(prefix), entry_id=editing_id)
            notify(outcome)
            if outcome.ok:
                st.session_state["act_seed"] = ActivityForm.blank()
                st.session_state.pop("editing_entry_id", None)
            st.rerun()

    with right:
        st.subheader("Recent Activities")
        recent = state.recent_activities()
        if not recent:
            st.caption("No activity entries yet.")
        for entry in recent:
            linked = state.linked_event(entry)
            with st.container(border=True):
                status = f" · {service.scheme.label_for(linked.status)}" if linked else ""
                st.caption(f"{format_readable_date(entry.date)}{status}")
                st.markdown(f"**{entry.patient_name}**")
                st.caption(f"{entry.current_dentist or 'No dentist'} · {entry.referral_type}")
                st.caption(f"Called: {entry.date_called or EMPTY} · Emailed: {entry.date_emailed or EMPTY}")
                if st.button("Details", key=f"details_{entry.id}"):
                    st.session_state["dialog"] = ("details", entry.id)
                    st.rerun()


def render_dashboard(service: ClinicService) -> None:
    state = service.state
    scheme = service.scheme

    months = dict(month_options(state.events))
    c1, c2, c3, c4 = st.columns(4)
    filters = DashboardFilters(
        month=c1.selectbox("Month", [ALL, *months], format_func=lambda m: "All months" if m == ALL else months[m]),
        dentist=c2.selectbox("Dentist", [ALL, *dentist_options(state.communications)],
                             format_func=lambda d: "All dentists" if d == ALL else d),
        school_year=c3.selectbox("School Year", [ALL, *school_year_options(state.communications)],
                                 format_func=lambda y: "All years" if y == ALL else y),
        status=c4.selectbox("Status", [ALL, *scheme.values],
                            format_func=lambda s: "All statuses" if s == ALL else scheme.label_for(s)),
    )

    left, right = st.columns([3, 1])
    with left:
        st.subheader("Appointments")
        st.caption("Visual breakdown of scheduled events by status.")
        counts = status_counts(filter_events(state.events, state.communications, filters), scheme)
        top = max_count(counts)
        for item in counts:
            st.markdown(f"{item.label} · **{item.count}**")
            st.progress(item.count / top)

    with right:
        st.subheader("Referral Distribution")
        st.caption("Referral mix based on activity entries.")
        referrals = referral_counts(state.communications)
        if sum(r.count for r in referrals) == 0:
            st.caption("No referral data yet.")
        else:
            st.bar_chart(
                [{"referral": r.referral_type, "count": r.count} for r in referrals],
                x="referral",
                y="count",
            )

    st.subheader("Upcoming Appointments")
    st.caption("Upcoming 7 days")
    upcoming = upcoming_events(state.events)
    if not upcoming:
        st.caption("No upcoming appointments scheduled.")
    for col, ev in zip(st.columns(3) * 2, upcoming):
        with col.container(border=True):
            st.markdown(f"**{ev.title}** · {scheme.label_for(ev.status)}")
            when = format_when(ev.date, ev.time)
            st.caption(when)
            if ev.notes:
                st.caption(ev.notes)


def render_admin(service: ClinicService) -> None:
    state = service.state
    left, right = st.columns(2)

    for col, label, roster, add in (
        (left, "Dentist", state.dentists, service.add_dentist),
        (right, "Staff", state.staff, service.add_staff),
    ):
        with col:
            st.subheader("Dentists" if label == "Dentist" else "Staff")
            with st.form(f"add_{label.lower()}", clear_on_submit=True):
                name = st.text_input(f"{label} name")
                if st.form_submit_button("Add"):
                    notify(add(name))
                    st.rerun()
            if not roster:
                st.caption(f"No {'dentists' if label == 'Dentist' else 'staff'} added yet.")
            for member in roster:
                st.write(member.name)



# UI

service = get_service()

with st.sidebar:
    st.header("Data")
    if st.button("Reload data"):
        service.load()
        st.rerun()
    st.divider()
    st.caption(f"API: {SETTINGS.api_url or 'not configured'}")
    st.caption(f"Status set: {service.scheme.name}")

st.caption("CSDP PATIENT OPERATIONS")
st.title("Calendar, Activities, and Insights")
st.write("Track appointments, log patient activities, and review trends in one place.")

st.session_state.setdefault("active_tab", "Calendar")
if "next_tab" in st.session_state:
    st.session_state["active_tab"] = st.session_state.pop("next_tab")
active_tab = st.radio("Section", TABS, horizontal=True, key="active_tab", label_visibility="collapsed")

if service.state.load_error:
    st.warning(service.state.load_error)

show_pending_toast()

if active_tab == "Dashboard":
    render_dashboard(service)
elif active_tab == "Calendar":
    render_calendar(service)
elif active_tab == "Activities":
    render_activities(service)
else:
    render_admin(service)

run_pending_dialog()
