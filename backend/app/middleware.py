"""Application middleware utilities such as audit logging."""
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any

from flask import Flask, current_app, g, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import SQLAlchemyError

from careflow.models.flows import FLOWS
from backend.app.models import AuditLog, User
from backend.extensions import db


@dataclass(slots=True)
class _AuditConfig:
    action: str
    entity_type: str


_BOOKING_ENTITIES = {
    "lab_test": "lab_test_booking",
    "appointment": "appointment",
    "diet": "nutrition_plan",
}


def _build_significant_actions() -> dict[tuple[str, str], _AuditConfig]:
    actions: dict[tuple[str, str], _AuditConfig] = {
        ("POST", "/api/auth/login"): _AuditConfig(
            action="auth.login",
            entity_type="user",
        ),
        ("POST", "/api/pharmacy/checkout"): _AuditConfig(
            action="order.checkout",
            entity_type="order",
        ),
    }
    for name in FLOWS:
        config = _AuditConfig(
            action=f"{name}.submitted",
            entity_type=_BOOKING_ENTITIES.get(name, name),
        )
        for spelling in {name, name.replace("_", "-")}:
            actions[("POST", f"/api/wizards/{spelling}/submit")] = config
    return actions


SIGNIFICANT_ACTIONS = _build_significant_actions()


def register_audit_middleware(app: Flask) -> None:
    """Attach middleware that records audit logs for significant actions."""

    @app.before_request
    def _capture_audit_context() -> None:
        method = request.method.upper()
        normalized_path = _normalize_path(request.path)
        config = SIGNIFICANT_ACTIONS.get((method, normalized_path))
        if not config:
            g.audit_context = None
            return

        g.audit_context = {
            "config": config,
            "method": method,
            "path": normalized_path,
            "request_bytes": request.get_data(cache=True) or b"",
        }

    @app.after_request
    def _persist_audit_log(response):
        context: dict[str, Any] | None = getattr(g, "audit_context", None)
        if not context:
            return response

        if response.status_code >= 400:
            return response

        config: _AuditConfig = context["config"]
        user = _resolve_user(config.action, context["request_bytes"])
        entity_id = _determine_entity_id(config.action, response, user)

        audit_log = AuditLog(
            user_id=user.id if user else None,
            entity_type=config.entity_type,
            entity_id=entity_id,
            action=config.action,
            description=_default_description(config, user, entity_id),
            changes=None,
            method=context["method"],
            path=context["path"],
            request_hash=_hash_request(
                context["method"], context["path"], context["request_bytes"]
            ),
            response_hash=_hash_response(response),
        )

        db.session.add(audit_log)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Failed to persist audit log entry")

        return response


def _normalize_path(path: str) -> str:
    if path != "/" and path.endswith("/"):
        return path[:-1]
    return path


def _resolve_user(action: str, request_bytes: bytes) -> User | None:
    user = _current_user()
    if user:
        return user

    if action == "auth.login":
        try:
            payload = json.loads(request_bytes.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
        username = (payload.get("username") or "").strip().lower()
        if not username:
            return None
        return User.query.filter_by(username=username).first()

    return None


def _current_user() -> User | None:
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError):
        return None

    identity = get_jwt_identity()
    if identity is None:
        return None

    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None

    return User.query.get(user_id)


def _determine_entity_id(action: str, response, user: User | None) -> int | None:
    if action == "auth.login":
        return user.id if user else None

    if not getattr(response, "is_json", False):
        return None

    data = response.get_json(silent=True) or {}

    if action == "order.checkout":
        return data.get("order_id")

    confirmation = data.get("confirmation") or {}
    return confirmation.get("id")


def _default_description(config: _AuditConfig, user: User | None, entity_id: int | None) -> str | None:
    if config.action == "auth.login" and user:
        return f"User {user.username} authenticated successfully."
    if config.action == "order.checkout" and entity_id:
        return f"Order {entity_id} awaiting payment."
    if entity_id:
        return f"{config.entity_type.replace('_', ' ').capitalize()} {entity_id} confirmed."
    return None


def _hash_request(method: str, path: str, body: bytes) -> str:
    payload = f"{method}\n{path}\n".encode("utf-8") + body
    return hashlib.sha256(payload).hexdigest()


def _hash_response(response) -> str:
    body = response.get_data() or b""
    payload = f"{response.status_code}\n".encode("utf-8") + body
    return hashlib.sha256(payload).hexdigest()
