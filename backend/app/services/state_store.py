"""Load and store engine snapshots for the authenticated user."""
from __future__ import annotations

from careflow.models.cart import Cart
from careflow.models.catalog import PHARMACY_CATALOG, Catalog
from careflow.models.flows import get_flow
from careflow.models.wizard import Wizard
from backend.app.models import CartRecord, WizardSession
from backend.extensions import db


def load_cart(user_id: int, catalog: Catalog = PHARMACY_CATALOG) -> tuple[CartRecord, Cart]:
    """Return the stored cart record (created on demand) and its engine."""

    record = CartRecord.query.filter_by(user_id=user_id).first()
    if record is None:
        record = CartRecord(user_id=user_id, lines=[])
        db.session.add(record)
    return record, Cart.from_snapshot(catalog, record.lines)


def save_cart(record: CartRecord, cart: Cart) -> None:
    record.lines = cart.to_snapshot()
    db.session.add(record)


def load_wizard(user_id: int, flow_name: str) -> tuple[WizardSession, Wizard]:
    """Return the stored wizard session for ``flow_name`` and its engine.

    Raises ``KeyError`` for unknown flows.
    """

    flow = get_flow(flow_name)
    record = WizardSession.query.filter_by(user_id=user_id, flow=flow.name).first()
    if record is None:
        record = WizardSession(user_id=user_id, flow=flow.name, step=1, form_data=None)
        db.session.add(record)
        return record, Wizard(flow)

    wizard = Wizard.from_snapshot(
        flow,
        {
            "step": record.step,
            "status": record.status,
            "form_data": record.form_data,
            "reference": record.reference,
        },
    )
    return record, wizard


def save_wizard(record: WizardSession, wizard: Wizard) -> None:
    snapshot = wizard.to_snapshot()
    record.step = snapshot["step"]
    record.status = snapshot["status"]
    record.form_data = snapshot["form_data"]
    record.reference = None if snapshot["reference"] is None else str(snapshot["reference"])
    db.session.add(record)
