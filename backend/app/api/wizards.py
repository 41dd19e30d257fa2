"""Endpoints that drive the lab-test, appointment and diet wizards."""
from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify, request
from flask.typing import ResponseReturnValue
from flask_jwt_extended import jwt_required

from careflow.models.wizard import UnknownFieldError, Wizard, WizardClosedError
from backend.app.models import User, WizardSession
from backend.app.services.booking_service import confirmer_for, serialize_confirmation
from backend.app.services.state_store import load_wizard, save_wizard
from backend.extensions import db

from .auth import resolve_current_user

LOGGER = logging.getLogger(__name__)

wizards_bp = Blueprint("wizards", __name__)


def _serialize_wizard(wizard: Wizard) -> dict[str, Any]:
    validity = wizard.step_validity()
    payload: dict[str, Any] = {
        "flow": wizard.flow.name,
        "step": wizard.step,
        "step_count": wizard.step_count,
        "steps": [
            {"number": number, "title": definition.title, "valid": validity[number]}
            for number, definition in enumerate(wizard.flow.steps, start=1)
        ],
        "status": wizard.status,
        "form_data": wizard.form_data,
        "missing_fields": wizard.missing_fields(),
        "can_submit": wizard.can_submit(),
    }
    if wizard.is_confirmed:
        payload["confirmation"] = serialize_confirmation(wizard.flow.name, wizard.reference)
    return payload


def _error_message(exc: Exception) -> str:
    return str(exc.args[0]) if exc.args else str(exc)


def _load(flow: str) -> tuple[User | None, tuple[WizardSession, Wizard] | None, ResponseReturnValue | None]:
    user = resolve_current_user()
    if user is None:
        return None, None, (jsonify(message="Invalid token."), HTTPStatus.UNAUTHORIZED)
    try:
        state = load_wizard(user.id, flow)
    except KeyError as exc:
        return user, None, (jsonify(message=_error_message(exc)), HTTPStatus.NOT_FOUND)
    return user, state, None


@wizards_bp.get("/<string:flow>")
@jwt_required()
def get_wizard(flow: str) -> ResponseReturnValue:
    """Return the caller's wizard state, starting a fresh one on first visit."""

    _, state, error = _load(flow)
    if error is not None:
        return error

    record, wizard = state
    save_wizard(record, wizard)
    db.session.commit()
    return jsonify(wizard=_serialize_wizard(wizard)), HTTPStatus.OK


@wizards_bp.patch("/<string:flow>/fields")
@jwt_required()
def update_fields(flow: str) -> ResponseReturnValue:
    """Merge ``{"fields": {...}}`` into the form data."""

    _, state, error = _load(flow)
    if error is not None:
        return error

    payload = request.get_json(silent=True) or {}
    fields = payload.get("fields")
    if not isinstance(fields, dict):
        return jsonify(message="fields must be an object."), HTTPStatus.BAD_REQUEST

    record, wizard = state
    try:
        wizard.update_fields(fields)
    except UnknownFieldError as exc:
        return jsonify(message=_error_message(exc)), HTTPStatus.BAD_REQUEST
    except WizardClosedError as exc:
        return jsonify(message=str(exc)), HTTPStatus.CONFLICT
    except ValueError as exc:
        return jsonify(message=str(exc)), HTTPStatus.BAD_REQUEST

    save_wizard(record, wizard)
    db.session.commit()
    return jsonify(wizard=_serialize_wizard(wizard)), HTTPStatus.OK


@wizards_bp.post("/<string:flow>/toggle")
@jwt_required()
def toggle_option(flow: str) -> ResponseReturnValue:
    """Flip one option of a multi-select field."""

    _, state, error = _load(flow)
    if error is not None:
        return error

    payload = request.get_json(silent=True) or {}
    name = payload.get("field")
    if not name or "value" not in payload:
        return jsonify(message="field and value are required."), HTTPStatus.BAD_REQUEST

    record, wizard = state
    try:
        selected = wizard.toggle(name, payload["value"])
    except UnknownFieldError as exc:
        return jsonify(message=_error_message(exc)), HTTPStatus.BAD_REQUEST
    except WizardClosedError as exc:
        return jsonify(message=str(exc)), HTTPStatus.CONFLICT
    except ValueError as exc:
        return jsonify(message=str(exc)), HTTPStatus.BAD_REQUEST

    save_wizard(record, wizard)
    db.session.commit()
    return jsonify(selected=selected, wizard=_serialize_wizard(wizard)), HTTPStatus.OK


@wizards_bp.post("/<string:flow>/next")
@jwt_required()
def next_step(flow: str) -> ResponseReturnValue:
    """Advance one step when the current step is complete."""

    _, state, error = _load(flow)
    if error is not None:
        return error

    record, wizard = state
    advanced = wizard.next()
    save_wizard(record, wizard)
    db.session.commit()
    return jsonify(advanced=advanced, wizard=_serialize_wizard(wizard)), HTTPStatus.OK


@wizards_bp.post("/<string:flow>/back")
@jwt_required()
def previous_step(flow: str) -> ResponseReturnValue:
    _, state, error = _load(flow)
    if error is not None:
        return error

    record, wizard = state
    moved = wizard.back()
    save_wizard(record, wizard)
    db.session.commit()
    return jsonify(moved=moved, wizard=_serialize_wizard(wizard)), HTTPStatus.OK


@wizards_bp.post("/<string:flow>/submit")
@jwt_required()
def submit(flow: str) -> ResponseReturnValue:
    """Send the completed form to the booking collaborator."""

    user, state, error = _load(flow)
    if error is not None:
        return error

    record, wizard = state
    if wizard.is_confirmed:
        return (
            jsonify(message="This wizard has already been submitted.", wizard=_serialize_wizard(wizard)),
            HTTPStatus.CONFLICT,
        )

    result = wizard.submit(confirmer_for(wizard.flow.name, user.id))
    if not result.attempted:
        return (
            jsonify(
                message="Please complete all required fields before submitting.",
                wizard=_serialize_wizard(wizard),
            ),
            HTTPStatus.UNPROCESSABLE_ENTITY,
        )

    save_wizard(record, wizard)
    db.session.commit()

    if not result.accepted:
        LOGGER.info("Booking for flow %s rejected: %s", wizard.flow.name, result.reason)
        return (
            jsonify(message=result.reason, wizard=_serialize_wizard(wizard)),
            HTTPStatus.CONFLICT,
        )

    return (
        jsonify(
            message="Booking confirmed.",
            confirmation=serialize_confirmation(wizard.flow.name, result.reference),
            wizard=_serialize_wizard(wizard),
        ),
        HTTPStatus.CREATED,
    )


@wizards_bp.delete("/<string:flow>")
@jwt_required()
def reset_wizard(flow: str) -> ResponseReturnValue:
    """Discard progress and start the flow again."""

    _, state, error = _load(flow)
    if error is not None:
        return error

    record, wizard = state
    wizard.reset()
    save_wizard(record, wizard)
    db.session.commit()
    return jsonify(wizard=_serialize_wizard(wizard)), HTTPStatus.OK
