"""
In-memory shopping cart.

A Cart belongs to one shopping session (one request, one client state) and
is never persisted. Lines keep the product as it was when it was selected;
the stock check at checkout happens again against the database.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from uuid import UUID
from typing import Callable, Dict, List, Tuple

from .exceptions import (
    InsufficientInventoryError,
    InvalidQuantityError,
    CartLineNotFoundError,
)

CENT = Decimal('0.01')


@dataclass(frozen=True)
class ProductSnapshot:
    """Product fields the cart and order builder rely on."""

    id: UUID
    band_id: UUID
    title: str
    price: Decimal
    sizes: Tuple[str, ...]
    inventory: Dict[str, int] = field(compare=False)
    active: bool = True

    @classmethod
    def from_product(cls, product):
        return cls(
            id=product.id,
            band_id=product.band_id,
            title=product.title,
            price=Decimal(product.price),
            sizes=tuple(product.sizes),
            inventory=dict(product.inventory),
            active=product.active,
        )

    def inventory_for(self, size):
        return self.inventory.get(size, 0)


@dataclass(frozen=True)
class CartLine:
    product: ProductSnapshot
    size: str
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


class Cart:
    """
    Ordered list of (product, size, quantity) lines with a running total.

    Every mutation either succeeds completely or raises a CartError and
    leaves the cart as it was. Subscribers are called with the cart after
    each successful mutation.
    """

    def __init__(self):
        self._lines: List[CartLine] = []
        self._total = Decimal('0.00')
        self._subscribers: List[Callable[['Cart'], None]] = []

    def __len__(self):
        return len(self._lines)

    def __iter__(self):
        return iter(tuple(self._lines))

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def total(self) -> Decimal:
        return self._total

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def subscribe(self, callback: Callable[['Cart'], None]) -> Callable[[], None]:
        """Register a change observer; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _changed(self):
        self._total = sum(
            (line.line_total for line in self._lines),
            Decimal('0.00')
        ).quantize(CENT)
        for callback in list(self._subscribers):
            callback(self)

    def _line_at(self, index: int) -> CartLine:
        if not 0 <= index < len(self._lines):
            raise CartLineNotFoundError(f"No cart line at position {index}")
        return self._lines[index]

    def add_item(self, product, size: str, quantity: int = 1) -> CartLine:
        """
        Add units of one product size, merging with an existing line.

        Args:
            product: Product instance or ProductSnapshot
            size: Size label
            quantity: Units to add

        Returns:
            The resulting cart line

        Raises:
            InvalidQuantityError: If quantity is not positive
            InsufficientInventoryError: If the line would exceed the stock
                known for that size
        """
        if quantity <= 0:
            raise InvalidQuantityError("Quantity must be at least 1")

        snapshot = product if isinstance(product, ProductSnapshot) else ProductSnapshot.from_product(product)

        for index, line in enumerate(self._lines):
            if line.product.id == snapshot.id and line.size == size:
                # The line keeps the snapshot taken when it was first selected
                available = line.product.inventory_for(size)
                new_quantity = line.quantity + quantity
                if new_quantity > available:
                    raise InsufficientInventoryError(
                        f"Only {available} of '{line.product.title}' in size {size} available"
                    )
                merged = replace(line, quantity=new_quantity)
                self._lines[index] = merged
                self._changed()
                return merged

        available = snapshot.inventory_for(size)
        if quantity > available:
            raise InsufficientInventoryError(
                f"Only {available} of '{snapshot.title}' in size {size} available"
            )

        line = CartLine(product=snapshot, size=size, quantity=quantity)
        self._lines.append(line)
        self._changed()
        return line

    def update_quantity(self, index: int, quantity: int) -> CartLine:
        """
        Set the quantity of one line.

        Raises:
            CartLineNotFoundError: If index is out of range
            InvalidQuantityError: If quantity is not positive
            InsufficientInventoryError: If quantity exceeds the known stock
        """
        line = self._line_at(index)
        if quantity <= 0:
            raise InvalidQuantityError("Quantity must be at least 1; remove the line instead")

        available = line.product.inventory_for(line.size)
        if quantity > available:
            raise InsufficientInventoryError(
                f"Only {available} of '{line.product.title}' in size {line.size} available"
            )

        updated = replace(line, quantity=quantity)
        self._lines[index] = updated
        self._changed()
        return updated

    def remove_item(self, index: int) -> CartLine:
        """
        Raises:
            CartLineNotFoundError: If index is out of range
        """
        line = self._line_at(index)
        del self._lines[index]
        self._changed()
        return line

    def clear(self) -> None:
        self._lines = []
        self._changed()
