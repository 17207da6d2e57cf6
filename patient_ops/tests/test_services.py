from __future__ import annotations

from datetime import date
from typing import Any
from unittest import TestCase

from patient_ops.client import TABLE_COMMUNICATIONS, TABLE_DENTISTS, TABLE_EVENTS, TABLE_STAFF, TableClient
from patient_ops.errors import BackendError, FormValidationError
from patient_ops.forms import ActivityForm, AppointmentForm
from patient_ops.services import NOT_CONFIGURED_BANNER, ClinicService
from patient_ops.settings import Settings
from patient_ops.statuses import LEGACY, REVISED


class FakeTableClient(TableClient):
    """In-memory tables behind the real client logic; records every call."""

    def __init__(self, tables: dict[str, list[dict]] | None = None, fail_tables: set[str] | None = None) -> None:
        super().__init__("http://fake", "key")
        self.tables: dict[str, list[dict]] = {t: [] for t in (TABLE_EVENTS, TABLE_COMMUNICATIONS, TABLE_DENTISTS, TABLE_STAFF)}
        self.tables.update(tables or {})
        self.fail_tables = fail_tables or set()
        self.calls: list[tuple[str, str]] = []
        self._next_id = 0

    def _request(self, method: str, table: str, params: dict | None = None, payload: dict | None = None) -> Any:
        self.calls.append((method, table))
        if table in self.fail_tables:
            raise BackendError(f"{table} is unavailable", status_code=503)
        params = dict(params or {})
        rows = self.tables[table]
        if method == "GET":
            order = params.pop("order", None)
            descending = params.pop("ascending", "true") == "false"
            out = [dict(r) for r in rows if all(r.get(k) == v for k, v in params.items())]
            if order:
                out.sort(key=lambda r: r.get(order) or "", reverse=descending)
            return out
        if method == "POST":
            self._next_id += 1
            row = {**payload, "id": f"{table}-{self._next_id}"}
            rows.append(row)
            return dict(row)
        if method == "PATCH":
            matched = [r for r in rows if all(r.get(k) == v for k, v in params.items())]
            for r in matched:
                r.update(payload)
            return [dict(r) for r in matched]
        raise AssertionError(method)

    def writes(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] != "GET"]


def event_row(id: str, day: str = "2024-01-05", status: str = "pending") -> dict:
    return {
        "id": id, "title": "Cleaning", "date": day, "time": "09:00", "status": status,
        "color": LEGACY.color_for(status), "event_type": "appointment",
        "patient_first_name": "Ana", "patient_last_name": "Ruiz",
    }


def entry_row(id: str, appointment_id: str | None = None, first: str = "Ana", last: str = "Ruiz") -> dict:
    return {
        "id": id, "date": "2024-01-05", "patient_first_name": first, "patient_last_name": last,
        "referral_type": "TU0", "created_by": "Front Desk", "appointment_id": appointment_id,
    }


def activity_form(**overrides) -> ActivityForm:
    form = ActivityForm(date="2024-01-05", patient_first_name="Ana", patient_last_name="Ruiz",
                        created_by="Front Desk")
    return form.update(**overrides)


class LoadTest(TestCase):
    def test_not_configured(self):
        service = ClinicService(None, LEGACY)
        state = service.load()
        self.assertEqual(state.load_error, NOT_CONFIGURED_BANNER)
        self.assertFalse(service.configured)

    def test_failing_table_does_not_block_the_others(self):
        client = FakeTableClient(
            tables={TABLE_EVENTS: [event_row("e1")], TABLE_DENTISTS: [{"id": "d1", "name": "Dr. Maria Lopez"}]},
            fail_tables={TABLE_COMMUNICATIONS},
        )
        state = ClinicService(client, LEGACY).load()
        self.assertEqual(state.load_error, "communications is unavailable")
        self.assertEqual([e.id for e in state.events], ["e1"])
        self.assertEqual([d.name for d in state.dentists], ["Dr. Maria Lopez"])

    def test_previous_patients_are_distinct(self):
        client = FakeTableClient(tables={TABLE_COMMUNICATIONS: [
            entry_row("c1"), entry_row("c2", first="ana", last="RUIZ"), entry_row("c3", first="Li", last="Wong"),
        ]})
        service = ClinicService(client, LEGACY)
        service.load()
        self.assertEqual([p.full_name for p in service.state.previous_patients()], ["Ana Ruiz", "Li Wong"])


class FromSettingsTest(TestCase):
    def test_each_service_gets_its_own_http_session(self):
        settings = Settings(api_url="http://data.local", api_key="secret", status_scheme="revised")
        first = ClinicService.from_settings(settings)
        second = ClinicService.from_settings(settings)
        self.assertIsNot(first.client, second.client)
        self.assertIsNot(first.client.session, second.client.session)
        self.assertIs(first.scheme, REVISED)

    def test_not_configured(self):
        service = ClinicService.from_settings(Settings(api_url="", api_key=""))
        self.assertFalse(service.configured)
        self.assertIs(service.scheme, LEGACY)


class SaveEventTest(TestCase):
    def setUp(self):
        self.client = FakeTableClient(tables={TABLE_EVENTS: [event_row("e1")]})
        self.service = ClinicService(self.client, LEGACY)
        self.service.load()

    def test_create(self):
        form = AppointmentForm.blank("2024-01-08", LEGACY).update(
            title="Checkup", patient_first_name="Li", patient_last_name="Wong")
        outcome = self.service.save_event(form)
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.message, "Appointment saved.")
        self.assertIsNone(outcome.follow_up)
        self.assertEqual(len(self.service.state.events), 2)
        self.assertEqual(outcome.record.color, "#f97316")

    def test_terminal_status_prompts_activity(self):
        form = AppointmentForm.from_event(self.service.state.get_event("e1")).update(status="done")
        outcome = self.service.save_event(form, event_id="e1")
        self.assertEqual(outcome.message, "Appointment updated.")
        self.assertIsNotNone(outcome.follow_up)
        self.assertEqual(outcome.follow_up.linked_appointment_id, "e1")
        self.assertEqual(self.service.state.get_event("e1").color, "#3b82f6")

    def test_invalid_form_makes_no_call(self):
        outcome = self.service.save_event(AppointmentForm.blank("2024-01-08", LEGACY))
        self.assertFalse(outcome.ok)
        self.assertEqual(self.client.writes(), [])

    def test_past_event_is_not_editable(self):
        with self.assertRaises(FormValidationError):
            self.service.event_for_edit("e1", today=date(2024, 2, 1))
        self.assertEqual(self.service.event_for_edit("e1", today=date(2024, 1, 5)).title, "Cleaning")


class SaveActivityTest(TestCase):
    def setUp(self):
        self.client = FakeTableClient(tables={TABLE_EVENTS: [event_row("e1")]})
        self.service = ClinicService(self.client, LEGACY)
        self.service.load()

    def test_unlinked_activity_creates_terminal_event(self):
        outcome = self.service.save_activity(activity_form())
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.message, "Activity saved.")
        self.assertEqual(self.client.writes(), [("POST", TABLE_EVENTS), ("POST", TABLE_COMMUNICATIONS)])

        stand_in = self.client.tables[TABLE_EVENTS][-1]
        self.assertEqual(stand_in["status"], "done")
        self.assertEqual(stand_in["title"], "Activity: Ana Ruiz")
        self.assertEqual(outcome.record.appointment_id, stand_in["id"])
        self.assertEqual(self.service.state.communications[0].id, outcome.record.id)

    def test_linked_activity_marks_event_terminal(self):
        outcome = self.service.save_activity(activity_form(appointment_id="e1"))
        self.assertTrue(outcome.ok)
        self.assertEqual(self.client.writes(), [("PATCH", TABLE_EVENTS), ("POST", TABLE_COMMUNICATIONS)])
        self.assertEqual(len(self.client.tables[TABLE_EVENTS]), 1)
        self.assertEqual(self.service.state.get_event("e1").status, "done")
        self.assertEqual(outcome.record.appointment_id, "e1")
        self.assertTrue(self.service.state.has_linked_activity("e1"))

    def test_blank_last_name_makes_no_call(self):
        outcome = self.service.save_activity(activity_form(patient_last_name="  "))
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.message, "Add patient first and last name.")
        self.assertEqual(self.client.writes(), [])

    def test_duplicate_rows_on_edit_are_reported(self):
        self.client.tables[TABLE_COMMUNICATIONS] = [entry_row("c1", "e1"), entry_row("c1", "e1")]
        self.service.load()
        before = list(self.service.state.communications)

        outcome = self.service.save_activity(activity_form(appointment_id="e1", notes="edited"), entry_id="c1")
        self.assertFalse(outcome.ok)
        self.assertIn("Multiple records updated", outcome.message)
        self.assertEqual(self.service.state.communications, before)

    def test_missing_linked_event(self):
        outcome = self.service.save_activity(activity_form(appointment_id="gone"))
        self.assertFalse(outcome.ok)
        self.assertIn("No record was updated", outcome.message)
        self.assertEqual(self.client.writes(), [("PATCH", TABLE_EVENTS)])

    def test_edit_replaces_in_place(self):
        self.client.tables[TABLE_COMMUNICATIONS] = [entry_row("c1", "e1")]
        self.service.load()
        outcome = self.service.save_activity(activity_form(appointment_id="e1", notes="edited"), entry_id="c1")
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.message, "Activity updated.")
        self.assertEqual(len(self.service.state.communications), 1)
        self.assertEqual(self.service.state.communications[0].notes, "edited")

    def test_not_configured(self):
        service = ClinicService(None, LEGACY)
        outcome = service.save_activity(activity_form())
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.message, "Data backend is not configured yet.")


class PartialFailureTest(TestCase):
    """The event write stays applied when the activity write fails after it."""

    def setUp(self):
        self.client = FakeTableClient(tables={TABLE_EVENTS: [event_row("e1")]})
        self.service = ClinicService(self.client, LEGACY)
        self.service.load()
        self.client.fail_tables = {TABLE_COMMUNICATIONS}

    def test_stand_in_event_is_kept(self):
        outcome = self.service.save_activity(activity_form())
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.message, "communications is unavailable")

        stand_in = self.client.tables[TABLE_EVENTS][-1]
        self.assertEqual(len(self.client.tables[TABLE_EVENTS]), 2)
        self.assertEqual(stand_in["status"], "done")
        self.assertEqual(self.service.state.get_event(stand_in["id"]).status, "done")
        self.assertEqual(self.service.state.communications, [])

    def test_linked_event_stays_terminal(self):
        outcome = self.service.save_activity(activity_form(appointment_id="e1"))
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.message, "communications is unavailable")

        self.assertEqual(self.client.tables[TABLE_EVENTS][0]["status"], "done")
        self.assertEqual(self.service.state.get_event("e1").status, "done")
        self.assertEqual(self.service.state.communications, [])


class RevisedSchemeTest(TestCase):
    def setUp(self):
        self.client = FakeTableClient(tables={TABLE_EVENTS: [event_row("e1", status="confirmed")]})
        self.service = ClinicService(self.client, REVISED)
        self.service.load()

    def test_completed_prompts_activity(self):
        form = AppointmentForm.from_event(self.service.state.get_event("e1")).update(status="completed")
        outcome = self.service.save_event(form, event_id="e1")
        self.assertTrue(outcome.ok)
        self.assertIsNotNone(outcome.follow_up)
        self.assertEqual(outcome.follow_up.linked_appointment_id, "e1")

    def test_old_terminal_status_is_rejected(self):
        form = AppointmentForm.from_event(self.service.state.get_event("e1")).update(status="done")
        outcome = self.service.save_event(form, event_id="e1")
        self.assertFalse(outcome.ok)
        self.assertEqual(self.client.writes(), [])

    def test_stand_in_event_uses_completed(self):
        outcome = self.service.save_activity(activity_form())
        self.assertTrue(outcome.ok)
        stand_in = self.client.tables[TABLE_EVENTS][-1]
        self.assertEqual(stand_in["status"], "completed")
        self.assertEqual(stand_in["color"], "#3b82f6")


class RosterTest(TestCase):
    def setUp(self):
        self.client = FakeTableClient(tables={TABLE_DENTISTS: [{"id": "d1", "name": "Dr. Maria Lopez"}]})
        self.service = ClinicService(self.client, LEGACY)
        self.service.load()

    def test_roster_stays_sorted(self):
        self.assertTrue(self.service.add_dentist("  dr. Amy Fox ").ok)
        self.assertTrue(self.service.add_dentist("Dr. Zoe Park").ok)
        self.assertEqual([d.name for d in self.service.state.dentists],
                         ["dr. Amy Fox", "Dr. Maria Lopez", "Dr. Zoe Park"])

    def test_empty_name_is_rejected(self):
        outcome = self.service.add_staff("   ")
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.message, "Enter a staff name.")
        self.assertEqual(self.client.writes(), [])

    def test_creator_names_list_staff_first(self):
        self.service.add_staff("Front Desk")
        self.assertEqual(self.service.state.creator_names(), ["Front Desk", "Dr. Maria Lopez"])

    def test_duplicate_name_is_rejected(self):
        outcome = self.service.add_dentist(" dr. maria lopez ")
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.message, "dr. maria lopez is already on the list.")
        self.assertEqual(self.client.writes(), [])
        self.assertEqual(len(self.service.state.dentists), 1)
