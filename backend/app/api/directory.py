"""Doctor directory, lab-test catalog and booking history endpoints."""
from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask.typing import ResponseReturnValue
from flask_jwt_extended import jwt_required

from careflow.models.cart import format_money
from careflow.models.catalog import DOCTORS, LAB_TESTS, Doctor, is_not_found, search_doctors
from careflow.models.flows import APPOINTMENT_TIMES, LAB_TIME_SLOTS
from backend.app.models import Appointment, LabTestBooking
from backend.app.services.booking_service import (
    serialize_appointment,
    serialize_lab_test_booking,
)

from .auth import resolve_current_user

directory_bp = Blueprint("directory", __name__)


def _serialize_doctor(doctor: Doctor) -> dict[str, object]:
    return {
        "id": doctor.id,
        "name": doctor.name,
        "speciality": doctor.speciality,
        "fee": format_money(doctor.fee),
        "availability": list(doctor.availability),
        "rating": doctor.rating,
    }


@directory_bp.get("/doctors")
def list_doctors() -> ResponseReturnValue:
    """Search the doctor directory by name or speciality."""

    query = request.args.get("q", "")
    results = search_doctors(DOCTORS, query)
    return (
        jsonify(
            query=query,
            doctors=[_serialize_doctor(doctor) for doctor in results],
            not_found=is_not_found(query, results),
            times=list(APPOINTMENT_TIMES),
        ),
        HTTPStatus.OK,
    )


@directory_bp.get("/lab-tests/catalog")
def lab_test_catalog() -> ResponseReturnValue:
    categories = [
        {"category": category, "tests": list(tests)} for category, tests in LAB_TESTS.items()
    ]
    return jsonify(categories=categories, time_slots=list(LAB_TIME_SLOTS)), HTTPStatus.OK


@directory_bp.get("/appointments")
@jwt_required()
def my_appointments() -> ResponseReturnValue:
    """Return appointments booked by the authenticated patient."""

    user = resolve_current_user()
    if user is None:
        return jsonify(message="Invalid token."), HTTPStatus.UNAUTHORIZED

    appointments = (
        Appointment.query.filter_by(user_id=user.id)
        .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
        .all()
    )
    return (
        jsonify(appointments=[serialize_appointment(item) for item in appointments]),
        HTTPStatus.OK,
    )


@directory_bp.get("/doctor/appointments")
@jwt_required()
def doctor_appointments() -> ResponseReturnValue:
    """Return the schedule of the doctor linked to the authenticated account."""

    user = resolve_current_user()
    if user is None:
        return jsonify(message="Invalid token."), HTTPStatus.UNAUTHORIZED
    if user.role != "doctor":
        return jsonify(message="Doctor access required."), HTTPStatus.FORBIDDEN
    if user.doctor_id is None:
        return (
            jsonify(message="This account is not linked to a directory entry."),
            HTTPStatus.NOT_FOUND,
        )

    appointments = (
        Appointment.query.filter_by(doctor_id=user.doctor_id)
        .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
        .all()
    )
    payload = []
    for appointment in appointments:
        entry = serialize_appointment(appointment)
        entry["patient_name"] = appointment.user.full_name or appointment.user.username
        payload.append(entry)
    return jsonify(appointments=payload), HTTPStatus.OK


@directory_bp.get("/bookings/lab-tests")
@jwt_required()
def my_lab_test_bookings() -> ResponseReturnValue:
    user = resolve_current_user()
    if user is None:
        return jsonify(message="Invalid token."), HTTPStatus.UNAUTHORIZED

    bookings = (
        LabTestBooking.query.filter_by(user_id=user.id)
        .order_by(LabTestBooking.test_date.desc(), LabTestBooking.id.desc())
        .all()
    )
    return (
        jsonify(bookings=[serialize_lab_test_booking(item) for item in bookings]),
        HTTPStatus.OK,
    )
