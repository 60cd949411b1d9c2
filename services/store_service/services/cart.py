"""Client-held shopping cart.

The cart is a plain value owned by the caller (browser session, API client).
Its embedded unit prices are a display snapshot only: checkout submits
``Cart.requests()`` and the server re-prices every line.
"""

import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterator, Optional

from libs.common.currency import ZERO
from services.store_service.services.errors import InvalidQuantity

LineKey = tuple[uuid.UUID, Optional[uuid.UUID]]


@dataclass(frozen=True)
class CartLine:
    product_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    variant_id: Optional[uuid.UUID] = None
    display_name: str = ""
    image: Optional[str] = None

    @property
    def key(self) -> LineKey:
        return (self.product_id, self.variant_id)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class LineRequest:
    """What checkout actually sends: no price."""

    product_id: uuid.UUID
    quantity: int
    variant_id: Optional[uuid.UUID] = None


def _check_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity(quantity)


class Cart:
    """Ordered line items, unique by (product_id, variant_id)."""

    def __init__(self, lines: Optional[list[CartLine]] = None):
        self._lines: list[CartLine] = []
        for line in lines or []:
            self.add_item(line)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(list(self._lines))

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def _index(self, key: LineKey) -> Optional[int]:
        for i, line in enumerate(self._lines):
            if line.key == key:
                return i
        return None

    def get(
        self, product_id: uuid.UUID, variant_id: Optional[uuid.UUID] = None
    ) -> Optional[CartLine]:
        i = self._index((product_id, variant_id))
        return None if i is None else self._lines[i]

    def add_item(self, line: CartLine) -> None:
        """Append ``line`` or, if its key is present, add to that line's quantity."""
        _check_quantity(line.quantity)
        i = self._index(line.key)
        if i is None:
            self._lines.append(line)
            return
        existing = self._lines[i]
        self._lines[i] = replace(existing, quantity=existing.quantity + line.quantity)

    def update_quantity(
        self,
        product_id: uuid.UUID,
        quantity: int,
        variant_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Set a line's quantity. Use remove_item to delete a line."""
        _check_quantity(quantity)
        i = self._index((product_id, variant_id))
        if i is not None:
            self._lines[i] = replace(self._lines[i], quantity=quantity)

    def remove_item(
        self, product_id: uuid.UUID, variant_id: Optional[uuid.UUID] = None
    ) -> None:
        i = self._index((product_id, variant_id))
        if i is not None:
            del self._lines[i]

    def clear(self) -> None:
        self._lines = []

    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), ZERO)

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def requests(self) -> list[LineRequest]:
        return [
            LineRequest(
                product_id=line.product_id,
                variant_id=line.variant_id,
                quantity=line.quantity,
            )
            for line in self._lines
        ]
