"""Online pharmacy catalog, cart and checkout endpoints."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify, request
from flask.typing import ResponseReturnValue
from flask_jwt_extended import jwt_required

from careflow.models.cart import Cart, format_money
from careflow.models.catalog import PHARMACY_CATALOG, CatalogItem, is_not_found
from backend.app.models import Order
from backend.app.services.checkout_service import checkout_cart
from backend.app.services.state_store import load_cart, save_cart
from backend.extensions import db

from .auth import resolve_current_user

pharmacy_bp = Blueprint("pharmacy", __name__)


def _serialize_item(item: CatalogItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": format_money(item.unit_price),
        "category": item.category,
        "image": item.image,
    }


def _serialize_cart(cart: Cart) -> dict[str, Any]:
    return {
        "lines": [
            {
                "item_id": line.item_id,
                "name": line.item.name,
                "unit_price": format_money(line.item.unit_price),
                "quantity": line.quantity,
                "subtotal": format_money(line.subtotal),
            }
            for line in cart.lines()
        ],
        "line_count": cart.line_count(),
        "quantity_count": cart.quantity_count(),
        "total": format_money(cart.total()),
    }


def _unauthorized() -> ResponseReturnValue:
    return jsonify(message="Invalid token."), HTTPStatus.UNAUTHORIZED


@pharmacy_bp.get("/medicines")
def list_medicines() -> ResponseReturnValue:
    """Return catalog items matching the optional ``q`` search term."""

    query = request.args.get("q", "")
    results = PHARMACY_CATALOG.search(query)
    return (
        jsonify(
            query=query,
            items=[_serialize_item(item) for item in results],
            not_found=is_not_found(query, results),
        ),
        HTTPStatus.OK,
    )


@pharmacy_bp.get("/cart")
@jwt_required()
def get_cart() -> ResponseReturnValue:
    """Return the authenticated user's cart."""

    user = resolve_current_user()
    if user is None:
        return _unauthorized()

    _, cart = load_cart(user.id)
    return jsonify(cart=_serialize_cart(cart)), HTTPStatus.OK


@pharmacy_bp.post("/cart/items")
@jwt_required()
def add_cart_item() -> ResponseReturnValue:
    """Add one unit of a catalog item to the cart."""

    user = resolve_current_user()
    if user is None:
        return _unauthorized()

    payload = request.get_json(silent=True) or {}
    item_id = payload.get("item_id")
    if item_id in (None, ""):
        return jsonify(message="item_id is required."), HTTPStatus.BAD_REQUEST

    item = PHARMACY_CATALOG.get(str(item_id))
    if item is None:
        return jsonify(message="Item not found."), HTTPStatus.NOT_FOUND

    record, cart = load_cart(user.id)
    cart.add_item(item)
    save_cart(record, cart)
    db.session.commit()

    return (
        jsonify(message=f"{item.name} added to cart", cart=_serialize_cart(cart)),
        HTTPStatus.OK,
    )


@pharmacy_bp.put("/cart/items/<string:item_id>")
@jwt_required()
def update_cart_item(item_id: str) -> ResponseReturnValue:
    """Set the quantity of a cart line; values below one remove it."""

    user = resolve_current_user()
    if user is None:
        return _unauthorized()

    payload = request.get_json(silent=True) or {}
    if "quantity" not in payload:
        return jsonify(message="quantity is required."), HTTPStatus.BAD_REQUEST

    record, cart = load_cart(user.id)
    cart.update_quantity(item_id, payload.get("quantity"))
    save_cart(record, cart)
    db.session.commit()

    return jsonify(cart=_serialize_cart(cart)), HTTPStatus.OK


@pharmacy_bp.delete("/cart/items/<string:item_id>")
@jwt_required()
def remove_cart_item(item_id: str) -> ResponseReturnValue:
    """Remove a line from the cart if present."""

    user = resolve_current_user()
    if user is None:
        return _unauthorized()

    record, cart = load_cart(user.id)
    cart.remove_item(item_id)
    save_cart(record, cart)
    db.session.commit()

    return jsonify(cart=_serialize_cart(cart)), HTTPStatus.OK


@pharmacy_bp.delete("/cart")
@jwt_required()
def clear_cart() -> ResponseReturnValue:
    """Empty the cart."""

    user = resolve_current_user()
    if user is None:
        return _unauthorized()

    record, cart = load_cart(user.id)
    cart.clear()
    save_cart(record, cart)
    db.session.commit()

    return jsonify(cart=_serialize_cart(cart)), HTTPStatus.OK


@pharmacy_bp.post("/checkout")
@jwt_required()
def checkout() -> ResponseReturnValue:
    """Create a payment intent for the cart total."""

    user = resolve_current_user()
    if user is None:
        return _unauthorized()

    record, cart = load_cart(user.id)
    if cart.is_empty():
        return jsonify(message="Your cart is empty."), HTTPStatus.BAD_REQUEST

    result = checkout_cart(user.id, cart)
    save_cart(record, cart)
    db.session.commit()

    if not result.succeeded:
        return (
            jsonify(
                message=result.reason or "Unable to process checkout. Please try again.",
                order_id=result.order_id,
                cart=_serialize_cart(cart),
            ),
            HTTPStatus.PAYMENT_REQUIRED,
        )

    return (
        jsonify(
            client_secret=result.client_secret,
            order_id=result.order_id,
            amount=result.amount,
            cart=_serialize_cart(cart),
        ),
        HTTPStatus.CREATED,
    )


@pharmacy_bp.get("/orders")
@jwt_required()
def list_orders() -> ResponseReturnValue:
    """Return the authenticated user's recent orders."""

    user = resolve_current_user()
    if user is None:
        return _unauthorized()

    orders = (
        Order.query.filter_by(user_id=user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(100)
        .all()
    )
    payload = [
        {
            "id": order.id,
            "amount_cents": order.amount_cents,
            "currency": order.currency,
            "status": order.status,
            "items": order.items or [],
            "created_at": order.created_at.isoformat(),
        }
        for order in orders
    ]
    return jsonify(orders=payload), HTTPStatus.OK
