"""Tests for the step wizard engine and the portal's flow definitions."""
from __future__ import annotations

from datetime import date
import unittest

from careflow.models.flows import APPOINTMENT_FLOW, DIET_FLOW, LAB_TEST_FLOW, get_flow, new_wizard
from careflow.models.wizard import (
    CONFIRMED,
    IN_PROGRESS,
    BookingOutcome,
    UnknownFieldError,
    Wizard,
    WizardClosedError,
)

PERSONAL_DETAILS = {
    "name": "Asha Rao",
    "age": "34",
    "blood_group": "O+",
    "sex": "female",
    "mobile": "5550100",
    "address": "12 Elm Street",
}


class RecordingConfirmer:
    """Booking collaborator that records the form it was handed."""

    def __init__(self, outcome: BookingOutcome) -> None:
        self.outcome = outcome
        self.calls: list[dict] = []

    def __call__(self, form_data: dict) -> BookingOutcome:
        self.calls.append(form_data)
        return self.outcome


class LabTestWizardTests(unittest.TestCase):
    """Walk the four-step lab test booking."""

    def setUp(self) -> None:
        self.wizard = Wizard(LAB_TEST_FLOW)

    def _complete_steps_one_and_two(self) -> None:
        self.wizard.update_fields(PERSONAL_DETAILS)
        self.assertTrue(self.wizard.next())
        self.wizard.toggle("selected_tests", "Lipid Profile")
        self.wizard.update_fields(
            {"date": "2026-11-02", "preferred_time": "09:00 AM", "alternative_time": "02:00 PM"}
        )
        self.assertTrue(self.wizard.next())

    def test_missing_required_field_blocks_next(self) -> None:
        details = dict(PERSONAL_DETAILS, mobile="")
        self.wizard.update_fields(details)

        self.assertFalse(self.wizard.next())
        self.assertEqual(self.wizard.step, 1)
        self.assertEqual(self.wizard.missing_fields(), ["mobile"])

        self.wizard.set_field("mobile", "5550100")
        self.assertTrue(self.wizard.next())
        self.assertEqual(self.wizard.step, 2)

    def test_whitespace_only_text_is_not_enough(self) -> None:
        self.wizard.update_fields(dict(PERSONAL_DETAILS, address="   "))

        self.assertFalse(self.wizard.is_step_valid(1))

    def test_full_booking_reaches_the_collaborator(self) -> None:
        self.wizard.update_fields(PERSONAL_DETAILS)
        self.assertTrue(self.wizard.next())

        self.assertFalse(self.wizard.next())
        self.assertEqual(self.wizard.step, 2)

        self.wizard.toggle("selected_tests", "Complete Blood Count (CBC)")
        self.wizard.set_field("date", date(2026, 11, 2))
        self.wizard.set_field("preferred_time", "09:00 AM")
        self.wizard.set_field("alternative_time", "11:00 AM")
        self.assertTrue(self.wizard.next())
        self.assertTrue(self.wizard.next())
        self.assertEqual(self.wizard.step, 4)
        self.assertFalse(self.wizard.next())

        confirmer = RecordingConfirmer(BookingOutcome(accepted=True, reference=41))
        result = self.wizard.submit(confirmer)

        self.assertTrue(result.accepted)
        self.assertEqual(result.reference, 41)
        self.assertEqual(len(confirmer.calls), 1)
        self.assertEqual(confirmer.calls[0]["selected_tests"], ["Complete Blood Count (CBC)"])
        self.assertEqual(confirmer.calls[0]["date"], "2026-11-02")
        self.assertEqual(self.wizard.status, CONFIRMED)

    def test_back_is_never_gated(self) -> None:
        self._complete_steps_one_and_two()
        self.wizard.update_fields({"mobile": "", "selected_tests": []})

        self.assertEqual(self.wizard.step, 3)
        self.assertTrue(self.wizard.back())
        self.assertEqual(self.wizard.step, 2)
        self.assertTrue(self.wizard.back())
        self.assertEqual(self.wizard.step, 1)
        self.assertFalse(self.wizard.back())
        self.assertEqual(self.wizard.step, 1)

    def test_toggle_twice_restores_selection(self) -> None:
        self.wizard.toggle("selected_tests", "X-Ray")
        before = list(self.wizard.form_data["selected_tests"])

        self.assertTrue(self.wizard.toggle("selected_tests", "MRI Scan"))
        self.assertFalse(self.wizard.toggle("selected_tests", "MRI Scan"))

        self.assertEqual(self.wizard.form_data["selected_tests"], before)

    def test_toggle_rejects_unknown_option_and_single_fields(self) -> None:
        with self.assertRaises(ValueError):
            self.wizard.toggle("selected_tests", "Not a test")
        with self.assertRaises(ValueError):
            self.wizard.toggle("name", "Asha")

    def test_patched_selection_must_use_known_tests(self) -> None:
        with self.assertRaises(ValueError):
            self.wizard.update_fields({"selected_tests": ["Bogus"], "date": "2026-11-02"})
        self.assertEqual(self.wizard.form_data["selected_tests"], [])
        self.assertIsNone(self.wizard.form_data["date"])

        with self.assertRaises(ValueError):
            self.wizard.set_field("selected_tests", ["Lipid Profile", "Bogus"])

        self.wizard.set_field("selected_tests", ["Lipid Profile", "Lipid Profile"])
        self.assertEqual(self.wizard.form_data["selected_tests"], ["Lipid Profile"])

    def test_stored_unknown_selection_is_dropped_on_restore(self) -> None:
        restored = Wizard.from_snapshot(
            LAB_TEST_FLOW,
            {"step": 2, "form_data": {"selected_tests": ["Bogus", "X-Ray"]}},
        )

        self.assertEqual(restored.form_data["selected_tests"], ["X-Ray"])

    def test_unknown_field_raises(self) -> None:
        with self.assertRaises(UnknownFieldError):
            self.wizard.set_field("favourite_colour", "blue")

        with self.assertRaises(UnknownFieldError):
            self.wizard.update_fields({"name": "Asha", "bogus": 1})
        self.assertEqual(self.wizard.form_data["name"], "")

    def test_submit_before_final_step_is_not_attempted(self) -> None:
        confirmer = RecordingConfirmer(BookingOutcome(accepted=True, reference=1))

        result = self.wizard.submit(confirmer)

        self.assertFalse(result.accepted)
        self.assertFalse(result.attempted)
        self.assertEqual(confirmer.calls, [])

    def test_rejection_leaves_state_untouched(self) -> None:
        self._complete_steps_one_and_two()
        self.assertTrue(self.wizard.next())
        snapshot = self.wizard.to_snapshot()

        result = self.wizard.submit(
            RecordingConfirmer(BookingOutcome(accepted=False, reason="Lab is closed."))
        )

        self.assertFalse(result.accepted)
        self.assertTrue(result.attempted)
        self.assertEqual(result.reason, "Lab is closed.")
        self.assertEqual(self.wizard.to_snapshot(), snapshot)
        self.assertEqual(self.wizard.status, IN_PROGRESS)

    def test_confirmed_wizard_is_closed_until_reset(self) -> None:
        self._complete_steps_one_and_two()
        self.assertTrue(self.wizard.next())
        self.wizard.submit(RecordingConfirmer(BookingOutcome(accepted=True, reference=7)))

        with self.assertRaises(WizardClosedError):
            self.wizard.set_field("allergies", "Penicillin")
        self.assertFalse(self.wizard.back())
        self.assertFalse(self.wizard.can_submit())

        self.wizard.reset()
        self.assertEqual(self.wizard.step, 1)
        self.assertEqual(self.wizard.status, IN_PROGRESS)
        self.assertIsNone(self.wizard.reference)
        self.assertEqual(self.wizard.form_data["selected_tests"], [])

    def test_snapshot_round_trip_preserves_progress(self) -> None:
        self._complete_steps_one_and_two()

        restored = Wizard.from_snapshot(LAB_TEST_FLOW, self.wizard.to_snapshot())

        self.assertEqual(restored.step, 3)
        self.assertEqual(restored.form_data, self.wizard.form_data)


class FlowDefinitionTests(unittest.TestCase):
    """Flow lookup and the shorter appointment and diet wizards."""

    def test_flow_lookup_accepts_dashed_names(self) -> None:
        self.assertIs(get_flow("lab-test"), LAB_TEST_FLOW)
        self.assertIs(get_flow("Appointment"), APPOINTMENT_FLOW)
        with self.assertRaises(KeyError):
            get_flow("surgery")

    def test_step_is_clamped_to_flow_bounds(self) -> None:
        self.assertEqual(Wizard(DIET_FLOW, step=9).step, 3)
        self.assertEqual(Wizard(DIET_FLOW, step=-2).step, 1)

    def test_non_finite_numbers_do_not_satisfy_a_step(self) -> None:
        wizard = new_wizard("diet")
        wizard.update_fields({"height": 175, "weight": 70, "age": 30, "gender": "male"})

        for value in ("inf", "1e400", "nan", float("inf")):
            with self.subTest(value=value):
                wizard.set_field("height", value)
                self.assertFalse(wizard.next())
                self.assertEqual(wizard.missing_fields(), ["height"])

        wizard.set_field("height", "175")
        self.assertTrue(wizard.next())

    def test_appointment_flow_requires_doctor_then_slot(self) -> None:
        wizard = new_wizard("appointment")

        self.assertFalse(wizard.next())
        wizard.set_field("doctor_id", 3)
        self.assertEqual(wizard.form_data["doctor_id"], "3")
        self.assertTrue(wizard.next())

        wizard.set_field("time", "13:00")
        wizard.set_field("date", "2026-11-03")
        self.assertFalse(wizard.next())
        wizard.set_field("time", "14:00")
        self.assertTrue(wizard.next())
        self.assertTrue(wizard.can_submit())

    def test_diet_flow_uses_defaults_and_positive_numbers(self) -> None:
        wizard = new_wizard("diet")

        self.assertEqual(wizard.form_data["activity_level"], "moderate")
        self.assertEqual(wizard.form_data["goal"], "lose")

        wizard.update_fields({"height": 175, "weight": 70, "age": 0, "gender": "male"})
        self.assertFalse(wizard.next())
        self.assertEqual(wizard.missing_fields(), ["age"])

        wizard.set_field("age", "30")
        self.assertTrue(wizard.next())


if __name__ == "__main__":  # pragma: no cover - manual execution path
    unittest.main()
