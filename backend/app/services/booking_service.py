"""Booking-confirmation collaborators for the portal's wizards."""
from __future__ import annotations

import logging
from datetime import date, time
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from careflow.models.catalog import get_doctor
from careflow.models.nutrition import DietProfile, calculate_nutrition
from careflow.models.wizard import BookingOutcome
from backend.app.models import Appointment, LabTestBooking, NutritionPlanRecord
from backend.extensions import db

LOGGER = logging.getLogger(__name__)


def confirm_lab_test_booking(user_id: int, form_data: dict[str, Any]) -> BookingOutcome:
    """Persist a lab test booking from a completed wizard."""

    try:
        test_date = _parse_date(form_data.get("date"))
    except ValueError as exc:
        return BookingOutcome(accepted=False, reason=str(exc))

    booking = LabTestBooking(
        user_id=user_id,
        patient_name=_text(form_data.get("name")),
        age=_text(form_data.get("age")),
        blood_group=_text(form_data.get("blood_group")),
        sex=_text(form_data.get("sex")),
        mobile=_text(form_data.get("mobile")),
        address=_text(form_data.get("address")),
        landmark=_text(form_data.get("landmark")) or None,
        selected_tests=list(form_data.get("selected_tests") or []),
        test_date=test_date,
        preferred_time=_text(form_data.get("preferred_time")),
        alternative_time=_text(form_data.get("alternative_time")),
        existing_health=list(form_data.get("existing_health") or []),
        current_medications=_text(form_data.get("current_medications")) or None,
        allergies=_text(form_data.get("allergies")) or None,
        other_health_issue=_text(form_data.get("other_health_issue")) or None,
        status="confirmed",
    )
    return _persist(booking, "lab test booking")


def confirm_appointment(user_id: int, form_data: dict[str, Any]) -> BookingOutcome:
    """Persist a doctor appointment unless the slot is already taken."""

    doctor = get_doctor(form_data.get("doctor_id"))
    if doctor is None:
        return BookingOutcome(accepted=False, reason="Selected doctor does not exist.")

    try:
        appointment_date = _parse_date(form_data.get("date"))
        appointment_time = time.fromisoformat(_text(form_data.get("time")))
    except ValueError as exc:
        return BookingOutcome(accepted=False, reason=str(exc))

    clash = Appointment.query.filter_by(
        doctor_id=doctor.id,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        status="scheduled",
    ).first()
    if clash is not None:
        return BookingOutcome(
            accepted=False,
            reason=f"{doctor.name} is already booked at that time.",
        )

    appointment = Appointment(
        user_id=user_id,
        doctor_id=doctor.id,
        doctor_name=doctor.name,
        speciality=doctor.speciality,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        status="scheduled",
        reason=_text(form_data.get("reason")) or None,
    )
    return _persist(appointment, "appointment")


def confirm_diet_plan(user_id: int, form_data: dict[str, Any]) -> BookingOutcome:
    """Compute and store a nutrition plan from the diet planner answers."""

    try:
        profile = DietProfile.from_form(form_data)
    except ValueError as exc:
        return BookingOutcome(accepted=False, reason=str(exc))

    plan = calculate_nutrition(profile)
    record = NutritionPlanRecord(
        user_id=user_id,
        profile={key: form_data.get(key) for key in sorted(form_data)},
        plan=plan.as_dict(),
    )
    return _persist(record, "nutrition plan")


CONFIRMERS: dict[str, Callable[[int, dict[str, Any]], BookingOutcome]] = {
    "lab_test": confirm_lab_test_booking,
    "appointment": confirm_appointment,
    "diet": confirm_diet_plan,
}


def confirmer_for(flow_name: str, user_id: int) -> Callable[[dict[str, Any]], BookingOutcome]:
    """Bind the collaborator for ``flow_name`` to the submitting user."""

    confirm = CONFIRMERS[flow_name]

    def _confirm(form_data: dict[str, Any]) -> BookingOutcome:
        return confirm(user_id, form_data)

    return _confirm


def serialize_confirmation(flow_name: str, reference: Any) -> dict[str, Any] | None:
    """Return the stored record behind a confirmed wizard."""

    try:
        record_id = int(reference)
    except (TypeError, ValueError):
        return None

    if flow_name == "lab_test":
        booking = LabTestBooking.query.get(record_id)
        return serialize_lab_test_booking(booking) if booking else None
    if flow_name == "appointment":
        appointment = Appointment.query.get(record_id)
        return serialize_appointment(appointment) if appointment else None
    if flow_name == "diet":
        record = NutritionPlanRecord.query.get(record_id)
        if record is None:
            return None
        return {"id": record.id, "plan": record.plan}
    return None


def serialize_lab_test_booking(booking: LabTestBooking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "patient_name": booking.patient_name,
        "selected_tests": booking.selected_tests,
        "date": booking.test_date.isoformat(),
        "preferred_time": booking.preferred_time,
        "alternative_time": booking.alternative_time,
        "status": booking.status,
    }


def serialize_appointment(appointment: Appointment) -> dict[str, Any]:
    return {
        "id": appointment.id,
        "doctor_id": appointment.doctor_id,
        "doctor_name": appointment.doctor_name,
        "speciality": appointment.speciality,
        "date": appointment.appointment_date.isoformat(),
        "time": appointment.appointment_time.isoformat(timespec="minutes"),
        "status": appointment.status,
        "reason": appointment.reason,
    }


def _persist(record: db.Model, label: str) -> BookingOutcome:
    db.session.add(record)
    try:
        db.session.flush()
    except SQLAlchemyError:
        db.session.rollback()
        LOGGER.exception("Failed to store %s", label)
        return BookingOutcome(accepted=False, reason=f"Unable to store {label}.")

    LOGGER.info("Stored %s %s", label, record.id)
    return BookingOutcome(accepted=True, reference=record.id)


def _parse_date(value: Any) -> date:
    """Accept ``YYYY-MM-DD`` or a full ISO timestamp and return the date part."""

    if isinstance(value, date):
        return value
    text = _text(value)
    if not text:
        raise ValueError("A date is required.")
    if "T" in text:
        text = text.split("T", 1)[0]
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError("Dates must use the YYYY-MM-DD format.") from exc


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
