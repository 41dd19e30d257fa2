"""Authentication endpoints."""
from __future__ import annotations

from datetime import datetime
from http import HTTPStatus

from flask import jsonify, request
from flask.typing import ResponseReturnValue
from flask_jwt_extended import create_access_token, get_jwt, get_jwt_identity, jwt_required

from careflow.models.catalog import get_doctor
from backend.app.models import RevokedToken, User
from backend.extensions import bcrypt, db, jwt

from . import api_bp

ROLES = {"user", "doctor"}


@jwt.token_in_blocklist_loader
def _token_revoked(jwt_header: dict, jwt_payload: dict) -> bool:
    jti = jwt_payload.get("jti")
    if not jti:
        return False
    return RevokedToken.query.filter_by(jti=jti).first() is not None


def resolve_current_user() -> User | None:
    """Return the user behind the request's access token, if any."""

    identity = get_jwt_identity()
    try:
        user_id = int(identity) if identity is not None else None
    except (TypeError, ValueError):
        return None
    if user_id is None:
        return None
    user = User.query.get(user_id)
    if user is None or not user.is_active:
        return None
    return user


def serialize_user(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "role": user.role,
        "doctor_id": user.doctor_id,
    }


@api_bp.post("/auth/register")
def register() -> ResponseReturnValue:
    """Register a new patient or doctor account."""

    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or "").strip().lower()
    password = payload.get("password")
    name = (payload.get("name") or "").strip() or None
    role = (payload.get("role") or "user").strip().lower() or "user"

    if not username or not password:
        return (
            jsonify(message="Username and password are required."),
            HTTPStatus.BAD_REQUEST,
        )

    if role not in ROLES:
        return jsonify(message="role must be 'user' or 'doctor'."), HTTPStatus.BAD_REQUEST

    doctor_id = None
    if role == "doctor" and payload.get("doctor_id") is not None:
        doctor = get_doctor(payload.get("doctor_id"))
        if doctor is None:
            return (
                jsonify(message="doctor_id must reference a doctor in the directory."),
                HTTPStatus.BAD_REQUEST,
            )
        doctor_id = doctor.id
        name = name or doctor.name

    if User.query.filter_by(username=username).first():
        return (
            jsonify(message="An account with this username already exists."),
            HTTPStatus.CONFLICT,
        )

    password_hash = bcrypt.generate_password_hash(password).decode("utf-8")
    user = User(
        username=username,
        password_hash=password_hash,
        full_name=name,
        role=role,
        doctor_id=doctor_id,
    )

    db.session.add(user)
    db.session.commit()

    return jsonify(message="Registration successful.", id=user.id), HTTPStatus.CREATED


@api_bp.post("/auth/login")
def login() -> ResponseReturnValue:
    """Authenticate a user and return an access token."""

    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or "").strip().lower()
    password = payload.get("password") or ""

    if not username or not password:
        return (
            jsonify(message="Username and password are required."),
            HTTPStatus.BAD_REQUEST,
        )

    user = User.query.filter_by(username=username).first()
    if not user or not bcrypt.check_password_hash(user.password_hash, password):
        return (
            jsonify(message="Invalid username or password."),
            HTTPStatus.UNAUTHORIZED,
        )

    user.last_login_at = datetime.utcnow()
    db.session.add(user)
    db.session.commit()

    access_token = create_access_token(
        identity=str(user.id), additional_claims={"role": user.role}
    )
    return jsonify(access_token=access_token, user=serialize_user(user)), HTTPStatus.OK


@api_bp.post("/auth/logout")
@jwt_required()
def logout() -> ResponseReturnValue:
    """Revoke the access token used for this request."""

    jti = get_jwt().get("jti")
    if jti and not RevokedToken.query.filter_by(jti=jti).first():
        db.session.add(RevokedToken(jti=jti))
        db.session.commit()
    return jsonify(message="Logged out."), HTTPStatus.OK


@api_bp.get("/auth/me")
@jwt_required()
def current_user() -> ResponseReturnValue:
    """Return the authenticated user's profile."""

    user = resolve_current_user()
    if user is None:
        return jsonify(message="User not found."), HTTPStatus.NOT_FOUND

    return jsonify(serialize_user(user)), HTTPStatus.OK
