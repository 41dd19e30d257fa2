"""HTTP tests for the pharmacy catalog, cart and checkout."""
from __future__ import annotations

import http.client
from http import HTTPStatus
import unittest
from unittest.mock import MagicMock, patch

from backend.app import create_app
from backend.app.models import AuditLog, CartRecord, Order, User
from backend.app.services import payment_client
from backend.app.services.payment_client import PaymentDeclinedError, PaymentIntent
from backend.extensions import bcrypt, db


class PharmacyApiTestCase(unittest.TestCase):
    """Cart persistence and the payment hand-off."""

    def setUp(self) -> None:
        self.app = create_app("testing")
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        password = bcrypt.generate_password_hash("patient-pass").decode("utf-8")
        self.user = User(username="patient", password_hash=password, full_name="Pat Patient")
        db.session.add(self.user)
        db.session.commit()

        self.client = self.app.test_client()
        self.headers = {"Authorization": f"Bearer {self._login()}"}

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def _login(self) -> str:
        response = self.client.post(
            "/api/auth/login",
            json={"username": "patient", "password": "patient-pass"},
        )
        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        payload = response.get_json()
        assert payload is not None
        return payload["access_token"]

    def _fill_cart(self) -> dict:
        for item_id in ("1", "2"):
            response = self.client.post(
                "/api/pharmacy/cart/items", json={"item_id": item_id}, headers=self.headers
            )
            self.assertEqual(response.status_code, HTTPStatus.OK)
        response = self.client.put(
            "/api/pharmacy/cart/items/1", json={"quantity": 3}, headers=self.headers
        )
        self.assertEqual(response.status_code, HTTPStatus.OK)
        return response.get_json()["cart"]

    def test_medicine_search_reports_not_found(self) -> None:
        response = self.client.get("/api/pharmacy/medicines", query_string={"q": "amox"})
        data = response.get_json()
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertEqual([item["name"] for item in data["items"]], ["Amoxicillin"])
        self.assertFalse(data["not_found"])

        response = self.client.get("/api/pharmacy/medicines", query_string={"q": "zzzz"})
        data = response.get_json()
        self.assertEqual(data["items"], [])
        self.assertTrue(data["not_found"])

        everything = self.client.get("/api/pharmacy/medicines").get_json()
        self.assertEqual(len(everything["items"]), 8)
        self.assertFalse(everything["not_found"])

    def test_cart_requires_authentication(self) -> None:
        response = self.client.get("/api/pharmacy/cart")
        self.assertEqual(response.status_code, HTTPStatus.UNAUTHORIZED)

    def test_cart_totals_are_persisted(self) -> None:
        cart = self._fill_cart()

        self.assertEqual(cart["line_count"], 2)
        self.assertEqual(cart["quantity_count"], 4)
        self.assertEqual(cart["total"], "30.96")
        self.assertEqual(cart["lines"][0]["subtotal"], "17.97")

        stored = CartRecord.query.filter_by(user_id=self.user.id).one()
        self.assertEqual(
            stored.lines,
            [{"item_id": "1", "quantity": 3}, {"item_id": "2", "quantity": 1}],
        )

        fetched = self.client.get("/api/pharmacy/cart", headers=self.headers).get_json()
        self.assertEqual(fetched["cart"], cart)

    def test_unknown_item_is_not_found(self) -> None:
        response = self.client.post(
            "/api/pharmacy/cart/items", json={"item_id": "404"}, headers=self.headers
        )
        self.assertEqual(response.status_code, HTTPStatus.NOT_FOUND)

    def test_zero_quantity_and_delete_remove_lines(self) -> None:
        self._fill_cart()

        response = self.client.put(
            "/api/pharmacy/cart/items/2", json={"quantity": 0}, headers=self.headers
        )
        self.assertEqual(response.get_json()["cart"]["line_count"], 1)

        for _ in range(2):
            response = self.client.delete("/api/pharmacy/cart/items/1", headers=self.headers)
            self.assertEqual(response.status_code, HTTPStatus.OK)
            self.assertEqual(response.get_json()["cart"]["line_count"], 0)

    def test_checkout_of_empty_cart_is_rejected(self) -> None:
        with patch.object(payment_client, "create_payment_intent") as create_intent:
            response = self.client.post("/api/pharmacy/checkout", headers=self.headers)

        self.assertEqual(response.status_code, HTTPStatus.BAD_REQUEST)
        create_intent.assert_not_called()

    def test_successful_checkout_clears_cart(self) -> None:
        self._fill_cart()
        intent = PaymentIntent(
            intent_id="pi_123", client_secret="pi_123_secret_abc", amount_cents=3096, currency="usd"
        )

        with patch.object(payment_client, "create_payment_intent", return_value=intent) as create_intent:
            response = self.client.post("/api/pharmacy/checkout", headers=self.headers)

        self.assertEqual(response.status_code, HTTPStatus.CREATED, response.get_data(as_text=True))
        data = response.get_json()
        self.assertEqual(data["client_secret"], "pi_123_secret_abc")
        self.assertEqual(data["amount"], "30.96")
        self.assertEqual(data["cart"]["line_count"], 0)
        self.assertEqual(create_intent.call_args.kwargs["amount_cents"], 3096)

        order = Order.query.get(data["order_id"])
        assert order is not None
        self.assertEqual(order.status, "requires_payment")
        self.assertEqual(order.payment_intent_id, "pi_123")
        self.assertEqual([line["quantity"] for line in order.items], [3, 1])

        cart = self.client.get("/api/pharmacy/cart", headers=self.headers).get_json()["cart"]
        self.assertEqual(cart["lines"], [])

        log = AuditLog.query.filter_by(action="order.checkout").one()
        self.assertEqual(log.entity_id, order.id)
        self.assertEqual(log.user_id, self.user.id)
        self.assertEqual(len(log.request_hash), 64)

        orders = self.client.get("/api/pharmacy/orders", headers=self.headers).get_json()
        self.assertEqual([entry["id"] for entry in orders["orders"]], [order.id])

    def test_oversized_quantity_is_clamped_before_checkout(self) -> None:
        self.client.post("/api/pharmacy/cart/items", json={"item_id": "1"}, headers=self.headers)
        response = self.client.put(
            "/api/pharmacy/cart/items/1", json={"quantity": 10**20}, headers=self.headers
        )
        cart = response.get_json()["cart"]
        self.assertEqual(cart["lines"][0]["quantity"], 99)
        self.assertEqual(cart["total"], "593.01")

        intent = PaymentIntent(
            intent_id="pi_9", client_secret="pi_9_secret", amount_cents=59301, currency="usd"
        )
        with patch.object(payment_client, "create_payment_intent", return_value=intent) as create_intent:
            response = self.client.post("/api/pharmacy/checkout", headers=self.headers)

        self.assertEqual(response.status_code, HTTPStatus.CREATED, response.get_data(as_text=True))
        self.assertEqual(create_intent.call_args.kwargs["amount_cents"], 59301)

    def test_provider_dropping_the_connection_keeps_cart(self) -> None:
        cart_before = self._fill_cart()
        failure = http.client.RemoteDisconnected("Remote end closed connection without response")

        with patch.object(payment_client.urllib.request, "urlopen", MagicMock(side_effect=failure)):
            response = self.client.post("/api/pharmacy/checkout", headers=self.headers)

        self.assertEqual(response.status_code, HTTPStatus.PAYMENT_REQUIRED)
        data = response.get_json()
        self.assertEqual(data["cart"], cart_before)
        order = Order.query.get(data["order_id"])
        assert order is not None
        self.assertEqual(order.status, "failed")

    def test_declined_checkout_keeps_cart(self) -> None:
        cart_before = self._fill_cart()

        with patch.object(
            payment_client,
            "create_payment_intent",
            side_effect=PaymentDeclinedError("Your card was declined."),
        ):
            response = self.client.post("/api/pharmacy/checkout", headers=self.headers)

        self.assertEqual(response.status_code, HTTPStatus.PAYMENT_REQUIRED)
        data = response.get_json()
        self.assertEqual(data["message"], "Your card was declined.")
        self.assertEqual(data["cart"], cart_before)

        order = Order.query.get(data["order_id"])
        assert order is not None
        self.assertEqual(order.status, "failed")
        self.assertEqual(order.failure_reason, "Your card was declined.")
        self.assertEqual(AuditLog.query.filter_by(action="order.checkout").count(), 0)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    unittest.main()
