"""Turn a pharmacy cart into an order with a payment handle."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from flask import current_app

from careflow.models.cart import Cart, format_money, to_minor_units
from backend.app.models import Order
from backend.app.services import payment_client
from backend.app.services.payment_client import (
    PaymentCommunicationError,
    PaymentDeclinedError,
)
from backend.extensions import db

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckoutResult:
    """Outcome of a checkout attempt as reported to the client."""

    succeeded: bool
    order_id: int | None = None
    client_secret: str | None = None
    amount: str | None = None
    reason: str | None = None


def serialize_line_items(cart: Cart) -> list[dict[str, Any]]:
    return [
        {
            "id": line.item_id,
            "name": line.item.name,
            "quantity": line.quantity,
            "unit_price": format_money(line.item.unit_price),
        }
        for line in cart.lines()
    ]


def checkout_cart(user_id: int, cart: Cart) -> CheckoutResult:
    """Request a payment intent for ``cart`` and record the order.

    The cart is cleared only when the provider hands back a payment token;
    on failure it is left exactly as it was so the user can retry.
    """

    if cart.is_empty():
        return CheckoutResult(succeeded=False, reason="Your cart is empty.")

    total = cart.total()
    amount_cents = to_minor_units(total)
    items = serialize_line_items(cart)
    currency = current_app.config.get("PAYMENT_CURRENCY", "usd")

    order = Order(
        user_id=user_id,
        amount_cents=amount_cents,
        currency=currency,
        status="pending",
        items=items,
    )

    try:
        intent = payment_client.create_payment_intent(
            amount_cents=amount_cents, items=items, currency=currency
        )
    except (PaymentDeclinedError, PaymentCommunicationError) as exc:
        LOGGER.warning("Checkout for user %s failed: %s", user_id, exc)
        order.status = "failed"
        order.failure_reason = str(exc)
        db.session.add(order)
        db.session.flush()
        return CheckoutResult(
            succeeded=False,
            order_id=order.id,
            amount=format_money(total),
            reason=str(exc),
        )

    order.status = "requires_payment"
    order.payment_intent_id = intent.intent_id
    order.client_secret = intent.client_secret
    db.session.add(order)
    db.session.flush()

    cart.clear()
    LOGGER.info("Created order %s for user %s (%s cents)", order.id, user_id, amount_cents)
    return CheckoutResult(
        succeeded=True,
        order_id=order.id,
        client_secret=intent.client_secret,
        amount=format_money(total),
    )
