from __future__ import annotations

from datetime import date
from unittest import TestCase

from patient_ops.errors import FormValidationError
from patient_ops.forms import ActivityForm, AppointmentForm
from patient_ops.records import CalendarEvent, PreviousPatient
from patient_ops.statuses import EVENT_TYPE_REMINDER, LEGACY, REVISED


def make_event(**overrides) -> CalendarEvent:
    data = dict(
        id="ev-1",
        title="Cleaning",
        date="2024-01-05",
        time="09:00",
        status="done",
        color="#3b82f6",
        patient_first_name="Ana",
        patient_last_name="Ruiz",
    )
    data.update(overrides)
    return CalendarEvent(**data)


class AppointmentFormTest(TestCase):
    def test_blank_uses_scheme_default(self):
        self.assertEqual(AppointmentForm.blank("2024-01-05", LEGACY).status, "pending")
        self.assertEqual(AppointmentForm.blank("2024-01-05", REVISED).status, "confirmed")

    def test_missing_patient_is_rejected(self):
        form = AppointmentForm.blank("2024-01-05", LEGACY).update(title="Checkup", patient_first_name="Ana")
        with self.assertRaises(FormValidationError) as ctx:
            form.validate(LEGACY)
        self.assertEqual(ctx.exception.message, "Add a title and patient first/last name.")

    def test_reminder_needs_only_a_title(self):
        form = AppointmentForm.blank("2024-01-05", LEGACY).update(event_type=EVENT_TYPE_REMINDER, title="Order supplies")
        form.validate(LEGACY)

    def test_status_must_belong_to_scheme(self):
        form = AppointmentForm(title="X", date="2024-01-05", status="done",
                               patient_first_name="A", patient_last_name="B")
        form.validate(LEGACY)
        with self.assertRaises(FormValidationError):
            form.validate(REVISED)

    def test_invalid_date(self):
        form = AppointmentForm(title="X", date="2024-13-01", status="pending",
                               patient_first_name="A", patient_last_name="B")
        with self.assertRaises(FormValidationError) as ctx:
            form.validate(LEGACY)
        self.assertEqual(ctx.exception.message, "Pick a valid date.")

    def test_payload_trims_and_colors(self):
        form = AppointmentForm(title="  Checkup ", date="2024-01-05", status="cancelled",
                               patient_first_name=" Ana ", patient_last_name="Ruiz", notes="  ")
        payload = form.to_payload(LEGACY)
        self.assertEqual(payload["title"], "Checkup")
        self.assertEqual(payload["patient_first_name"], "Ana")
        self.assertEqual(payload["color"], "#ef4444")
        self.assertIsNone(payload["notes"])
        self.assertIsNone(payload["time"])
        self.assertIsNone(payload["patient_middle_name"])

    def test_unknown_field_update(self):
        with self.assertRaises(AttributeError):
            AppointmentForm().update(nickname="x")


class ActivityFormTest(TestCase):
    def test_blank_defaults(self):
        form = ActivityForm.blank(date(2024, 1, 5))
        self.assertEqual(form.date, "2024-01-05")
        self.assertEqual(form.referral_type, "TU0")
        self.assertIsNone(form.linked_appointment_id)

    def test_from_event_prefills_note_and_link(self):
        form = ActivityForm.from_event(make_event())
        self.assertEqual(form.notes, "Completed appointment: Cleaning")
        self.assertEqual(form.linked_appointment_id, "ev-1")
        self.assertEqual(form.patient_name, "Ana Ruiz")

    def test_from_event_keeps_existing_notes(self):
        form = ActivityForm.from_event(make_event(notes="Needs x-ray"))
        self.assertEqual(form.notes, "Needs x-ray")

    def test_validation_order(self):
        form = ActivityForm.blank(date(2024, 1, 5)).update(patient_first_name="Ana")
        with self.assertRaises(FormValidationError) as ctx:
            form.validate()
        self.assertEqual(ctx.exception.message, "Add patient first and last name.")

        form.update(patient_last_name="Ruiz")
        with self.assertRaises(FormValidationError) as ctx:
            form.validate()
        self.assertEqual(ctx.exception.message, "Add who created the activity.")

        form.update(created_by="Front Desk", date_called="yesterday")
        with self.assertRaises(FormValidationError) as ctx:
            form.validate()
        self.assertEqual(ctx.exception.message, "Date called is not a valid date.")

        form.update(date_called="2024-01-04")
        form.validate()

    def test_previous_patient_fills_names(self):
        form = ActivityForm().apply_previous_patient(PreviousPatient(first="Li", middle="K", last="Wong"))
        self.assertEqual(form.patient_name, "Li K Wong")

    def test_linked_event_payload_is_terminal(self):
        form = ActivityForm(date="2024-01-05", patient_first_name="Ana", patient_last_name="Ruiz")
        payload = form.linked_event_payload(REVISED)
        self.assertEqual(payload["title"], "Activity: Ana Ruiz")
        self.assertEqual(payload["status"], "completed")
        self.assertEqual(payload["color"], "#3b82f6")

    def test_payload_carries_resolved_link(self):
        form = ActivityForm(date="2024-01-05", patient_first_name="Ana", patient_last_name="Ruiz",
                            created_by="Front Desk")
        payload = form.to_payload("ev-9")
        self.assertEqual(payload["appointment_id"], "ev-9")
        self.assertEqual(payload["patient_name"], "Ana Ruiz")
        self.assertIsNone(payload["date_called"])
