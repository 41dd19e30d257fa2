"""Summarise recent pharmacy orders and bookings into a small insight report."""
from __future__ import annotations

import json
from collections import Counter
from datetime import datetime, time
from pathlib import Path
from typing import Iterable

from flask import Flask

from backend.app import create_app
from backend.app.models import Appointment, LabTestBooking, Order

INSIGHTS_PATH = Path(__file__).resolve().parent / "insights.json"

PAID_STATUSES = ("requires_payment", "succeeded")


def _time_bucket(value: time | None) -> str | None:
    if value is None:
        return None
    if value.hour < 12:
        return "morning"
    if value.hour < 17:
        return "afternoon"
    return "evening"


def _format_insights(
    orders: Iterable[Order],
    bookings: Iterable[LabTestBooking],
    appointments: Iterable[Appointment],
) -> list[str]:
    medicines: Counter[str] = Counter()
    lab_tests: Counter[str] = Counter()
    time_preferences: Counter[str] = Counter()

    for order in orders:
        for line in order.items or []:
            name = line.get("name")
            if name:
                medicines[name] += int(line.get("quantity") or 0)

    for booking in bookings:
        for test in booking.selected_tests or []:
            lab_tests[test] += 1

    for appointment in appointments:
        bucket = _time_bucket(appointment.appointment_time)
        if bucket:
            time_preferences[bucket] += 1

    insights: list[str] = []

    if medicines:
        medicine, count = medicines.most_common(1)[0]
        insights.append(f"{medicine} is the most purchased medicine ({count} units).")

    if lab_tests:
        test, count = lab_tests.most_common(1)[0]
        insights.append(f"{test} is the most requested lab test ({count} bookings).")

    if time_preferences:
        bucket, count = time_preferences.most_common(1)[0]
        insights.append(
            f"Patients prefer {bucket} appointments based on {count} bookings."
        )

    if not insights:
        insights.append("Not enough orders or bookings to derive insights yet.")

    return insights


def generate_insights(app: Flask | None = None, output_path: Path | None = None) -> dict[str, object]:
    app = app or create_app()
    target = output_path or INSIGHTS_PATH
    with app.app_context():
        orders = (
            Order.query.filter(Order.status.in_(PAID_STATUSES))
            .order_by(Order.id.asc())
            .all()
        )
        bookings = LabTestBooking.query.order_by(LabTestBooking.id.asc()).all()
        appointments = Appointment.query.order_by(Appointment.id.asc()).all()
        payload = {
            "generated_at": datetime.utcnow().isoformat() + "Z",
            "total_orders": len(orders),
            "total_lab_bookings": len(bookings),
            "total_appointments": len(appointments),
            "insights": _format_insights(orders, bookings, appointments),
        }

    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return payload


def main() -> None:
    result = generate_insights()
    print(json.dumps(result, indent=2))


if __name__ == "__main__":  # pragma: no cover - manual execution path
    main()
