"""Database models for the health portal."""
from __future__ import annotations

from datetime import date, datetime, time

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.extensions import db


class TimestampMixin:
    """Mixin providing timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(db.Model, TimestampMixin):
    """Portal account for patients and doctors."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(50), default="user", nullable=False)
    doctor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    cart: Mapped["CartRecord | None"] = relationship(
        "CartRecord", back_populates="user", uselist=False
    )
    wizard_sessions: Mapped[list["WizardSession"]] = relationship(
        "WizardSession", back_populates="user"
    )
    orders: Mapped[list["Order"]] = relationship("Order", back_populates="user")
    lab_test_bookings: Mapped[list["LabTestBooking"]] = relationship(
        "LabTestBooking", back_populates="user"
    )
    appointments: Mapped[list["Appointment"]] = relationship(
        "Appointment", back_populates="user"
    )
    audit_logs: Mapped[list["AuditLog"]] = relationship("AuditLog", back_populates="user")

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


class RevokedToken(db.Model):
    """Access tokens invalidated by logout."""

    __tablename__ = "revoked_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    jti: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )


class CartRecord(db.Model, TimestampMixin):
    """Stored snapshot of a user's pharmacy cart."""

    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    lines: Mapped[list | None] = mapped_column(db.JSON)

    user: Mapped[User] = relationship("User", back_populates="cart")

    def __repr__(self) -> str:
        return f"<CartRecord id={self.id} user_id={self.user_id}>"


class WizardSession(db.Model, TimestampMixin):
    """Stored snapshot of an in-progress or confirmed booking wizard."""

    __tablename__ = "wizard_sessions"
    __table_args__ = (UniqueConstraint("user_id", "flow", name="uq_wizard_user_flow"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    flow: Mapped[str] = mapped_column(String(50), nullable=False)
    step: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="in_progress", nullable=False)
    form_data: Mapped[dict | None] = mapped_column(db.JSON)
    reference: Mapped[str | None] = mapped_column(String(100))

    user: Mapped[User] = relationship("User", back_populates="wizard_sessions")

    def __repr__(self) -> str:
        return f"<WizardSession id={self.id} flow={self.flow!r} step={self.step}>"


class Order(db.Model, TimestampMixin):
    """A pharmacy checkout attempt and its payment handle."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="usd", nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="pending", nullable=False)
    items: Mapped[list | None] = mapped_column(db.JSON)
    payment_intent_id: Mapped[str | None] = mapped_column(String(255))
    client_secret: Mapped[str | None] = mapped_column(String(255))
    failure_reason: Mapped[str | None] = mapped_column(Text)

    user: Mapped[User] = relationship("User", back_populates="orders")

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status!r}>"


class LabTestBooking(db.Model, TimestampMixin):
    """A confirmed at-home lab test visit."""

    __tablename__ = "lab_test_bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    patient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[str] = mapped_column(String(20), nullable=False)
    blood_group: Mapped[str] = mapped_column(String(5), nullable=False)
    sex: Mapped[str] = mapped_column(String(20), nullable=False)
    mobile: Mapped[str] = mapped_column(String(50), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    landmark: Mapped[str | None] = mapped_column(String(255))
    selected_tests: Mapped[list] = mapped_column(db.JSON, nullable=False)
    test_date: Mapped[date] = mapped_column(Date, nullable=False)
    preferred_time: Mapped[str] = mapped_column(String(20), nullable=False)
    alternative_time: Mapped[str] = mapped_column(String(20), nullable=False)
    existing_health: Mapped[list | None] = mapped_column(db.JSON)
    current_medications: Mapped[str | None] = mapped_column(Text)
    allergies: Mapped[str | None] = mapped_column(Text)
    other_health_issue: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(30), default="confirmed", nullable=False)

    user: Mapped[User] = relationship("User", back_populates="lab_test_bookings")

    def __repr__(self) -> str:
        return f"<LabTestBooking id={self.id} date={self.test_date}>"


class Appointment(db.Model, TimestampMixin):
    """A consultation booked with a doctor from the directory."""

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    doctor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    doctor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    speciality: Mapped[str | None] = mapped_column(String(255))
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="scheduled", nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)

    user: Mapped[User] = relationship("User", back_populates="appointments")

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} status={self.status!r}>"


class NutritionPlanRecord(db.Model, TimestampMixin):
    """Diet planner answers and the plan computed from them."""

    __tablename__ = "nutrition_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    profile: Mapped[dict] = mapped_column(db.JSON, nullable=False)
    plan: Mapped[dict] = mapped_column(db.JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<NutritionPlanRecord id={self.id} user_id={self.user_id}>"


class AuditLog(db.Model):
    """Immutable log of significant user actions."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    changes: Mapped[dict | None] = mapped_column(db.JSON)
    method: Mapped[str] = mapped_column(String(10), nullable=False)
    path: Mapped[str] = mapped_column(String(255), nullable=False)
    request_hash: Mapped[str | None] = mapped_column(String(128))
    response_hash: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    user: Mapped[User | None] = relationship("User", back_populates="audit_logs")

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} action={self.action!r}>"
