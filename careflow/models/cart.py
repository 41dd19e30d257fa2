"""Shopping cart state for the online pharmacy checkout."""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from careflow.models.catalog import Catalog, CatalogItem

CENT = Decimal("0.01")
MAX_QUANTITY = 99


@dataclass
class CartLine:
    """A catalog item together with the chosen quantity."""

    item: CatalogItem
    quantity: int = 1

    @property
    def item_id(self) -> str:
        return self.item.id

    @property
    def subtotal(self) -> Decimal:
        return self.item.unit_price * self.quantity


def coerce_quantity(value: Any) -> int:
    """Read a raw quantity from user input.

    Non-integers are floored, values above ``MAX_QUANTITY`` are clamped to it
    and anything unreadable becomes ``0``, which callers treat as a removal
    request.
    """

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return min(value, MAX_QUANTITY)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return 0
    if not number.is_finite() or number < 1:
        return 0
    if number >= MAX_QUANTITY:
        return MAX_QUANTITY
    return math.floor(number)


def format_money(amount: Decimal) -> str:
    """Render an amount with two decimal places."""

    return str(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def to_minor_units(amount: Decimal) -> int:
    """Convert an amount to cents for the payment provider."""

    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class Cart:
    """Ordered basket of catalog items keyed by item identifier.

    Lines keep the position of their first insertion; quantity updates mutate
    the existing line in place. The total is derived on every read.
    """

    def __init__(self, lines: Iterable[CartLine] = ()) -> None:
        self._lines: dict[str, CartLine] = {}
        for line in lines:
            if line.quantity >= 1:
                self._lines[line.item_id] = CartLine(item=line.item, quantity=line.quantity)

    def __len__(self) -> int:
        return self.line_count()

    def __iter__(self):
        return iter(self.lines())

    def __repr__(self) -> str:
        return f"<Cart lines={self.line_count()} total={format_money(self.total())}>"

    def add_item(self, item: CatalogItem) -> CartLine:
        line = self._lines.get(item.id)
        if line is None:
            line = CartLine(item=item, quantity=1)
            self._lines[item.id] = line
        else:
            line.quantity = min(line.quantity + 1, MAX_QUANTITY)
        return line

    def remove_item(self, item_id: str) -> None:
        self._lines.pop(str(item_id), None)

    def update_quantity(self, item_id: str, quantity: Any) -> None:
        key = str(item_id)
        line = self._lines.get(key)
        if line is None:
            return
        new_quantity = coerce_quantity(quantity)
        if new_quantity < 1:
            self.remove_item(key)
            return
        line.quantity = new_quantity

    def clear(self) -> None:
        self._lines.clear()

    def total(self) -> Decimal:
        """Return the exact sum of all line subtotals."""

        return sum((line.subtotal for line in self._lines.values()), Decimal("0"))

    def line_count(self) -> int:
        """Number of distinct lines, as shown on the cart badge."""

        return len(self._lines)

    def quantity_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def get_line(self, item_id: str) -> CartLine | None:
        return self._lines.get(str(item_id))

    def is_empty(self) -> bool:
        return not self._lines

    def to_snapshot(self) -> list[dict[str, Any]]:
        return [
            {"item_id": line.item_id, "quantity": line.quantity}
            for line in self._lines.values()
        ]

    @classmethod
    def from_snapshot(cls, catalog: Catalog, snapshot: Iterable[dict[str, Any]] | None) -> "Cart":
        """Rebuild a cart, skipping entries that no longer resolve."""

        lines: list[CartLine] = []
        for entry in snapshot or []:
            if not isinstance(entry, dict):
                continue
            item = catalog.get(str(entry.get("item_id")))
            if item is None:
                continue
            quantity = coerce_quantity(entry.get("quantity"))
            if quantity < 1:
                continue
            lines.append(CartLine(item=item, quantity=quantity))
        return cls(lines)
