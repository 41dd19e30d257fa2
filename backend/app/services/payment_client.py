"""Client helpers for creating payment intents with the payment provider."""
from __future__ import annotations

import http.client
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable
import urllib.error
import urllib.parse
import urllib.request

from flask import current_app

LOGGER = logging.getLogger(__name__)

# Largest charge the provider accepts in one intent.
MAX_AMOUNT_CENTS = 99_999_999


@dataclass(slots=True)
class PaymentIntent:
    """Opaque handle the browser uses to confirm a payment."""

    intent_id: str
    client_secret: str
    amount_cents: int
    currency: str


class PaymentDeclinedError(RuntimeError):
    """Raised when the provider refuses to create a payment intent."""


class PaymentCommunicationError(RuntimeError):
    """Raised when the provider cannot be reached or answers garbage."""


def _payment_endpoint() -> str:
    base_url: str = current_app.config.get("STRIPE_API_BASE", "https://api.stripe.com")
    return base_url.rstrip("/") + "/v1/payment_intents"


def _secret_key() -> str:
    key = current_app.config.get("STRIPE_SECRET_KEY") or ""
    if not key:
        raise PaymentCommunicationError("Payment provider is not configured.")
    return key


def _timeout() -> int:
    return int(current_app.config.get("PAYMENT_TIMEOUT_SECONDS", 30))


def build_intent_form(
    *, amount_cents: int, currency: str, items: Iterable[dict[str, Any]]
) -> dict[str, str]:
    """Return the form fields sent when creating a payment intent."""

    metadata_items = [
        {"id": item["id"], "name": item["name"], "quantity": item["quantity"]}
        for item in items
    ]
    return {
        "amount": str(amount_cents),
        "currency": currency,
        "automatic_payment_methods[enabled]": "true",
        "metadata[items]": json.dumps(metadata_items),
    }


def parse_intent_response(body: bytes, *, amount_cents: int, currency: str) -> PaymentIntent:
    """Decode the provider's JSON answer into a ``PaymentIntent``."""

    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise PaymentCommunicationError("Payment provider response was not valid JSON.") from exc

    if not isinstance(data, dict):
        raise PaymentCommunicationError("Payment provider response must be an object.")

    error = data.get("error")
    if isinstance(error, dict):
        raise PaymentDeclinedError(error.get("message") or "Payment was declined.")

    client_secret = data.get("client_secret")
    intent_id = data.get("id")
    if not isinstance(client_secret, str) or not isinstance(intent_id, str):
        raise PaymentCommunicationError("Payment provider did not return a client secret.")

    return PaymentIntent(
        intent_id=intent_id,
        client_secret=client_secret,
        amount_cents=amount_cents,
        currency=currency,
    )


def _error_message(body: bytes) -> str | None:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("error"), dict):
        return None
    message = data["error"].get("message")
    return message if isinstance(message, str) else None


def create_payment_intent(
    *, amount_cents: int, items: Iterable[dict[str, Any]], currency: str | None = None
) -> PaymentIntent:
    """Ask the provider for a payment intent covering ``amount_cents``."""

    if amount_cents <= 0:
        raise PaymentDeclinedError("Amount must be greater than zero.")
    if amount_cents > MAX_AMOUNT_CENTS:
        raise PaymentDeclinedError("Amount exceeds the maximum allowed for a single payment.")

    currency = currency or current_app.config.get("PAYMENT_CURRENCY", "usd")
    form = build_intent_form(amount_cents=amount_cents, currency=currency, items=items)
    LOGGER.debug("Creating payment intent: %s", form)

    request = urllib.request.Request(
        _payment_endpoint(),
        data=urllib.parse.urlencode(form).encode("utf-8"),
        headers={
            "Authorization": f"Bearer {_secret_key()}",
            "Content-Type": "application/x-www-form-urlencoded",
        },
        method="POST",
    )

    try:
        with urllib.request.urlopen(request, timeout=_timeout()) as response:
            body = response.read()
    except urllib.error.HTTPError as exc:
        LOGGER.warning("Payment provider returned HTTP %s", exc.code)
        if exc.code >= 500:
            raise PaymentCommunicationError("Payment provider is unavailable.") from exc
        message = _error_message(exc.read() or b"")
        raise PaymentDeclinedError(
            message or f"Payment provider returned HTTP {exc.code}."
        ) from exc
    except urllib.error.URLError as exc:
        raise PaymentCommunicationError("Unable to contact payment provider.") from exc
    except (OSError, http.client.HTTPException) as exc:
        LOGGER.warning("Payment provider connection failed: %s", exc)
        raise PaymentCommunicationError("Payment provider connection was interrupted.") from exc

    intent = parse_intent_response(body, amount_cents=amount_cents, currency=currency)
    LOGGER.debug("Created payment intent %s", intent.intent_id)
    return intent
