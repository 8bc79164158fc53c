"""Client-side state container over a user's or a band's orders."""

from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from apps.orders.models import Order, OrderStatus
from . import order_lifecycle
from .exceptions import OrderNotFoundError


class OrderBook:
    """
    Holds a newest-first list of orders and keeps it in step with the
    lifecycle manager.

    Status changes go through order_lifecycle.update_status first; the
    cached copy is replaced only when that call succeeds. Subscribers are
    called with the book after every load and every successful change.
    """

    def __init__(self, orders=()):
        self._orders: List[Order] = sorted(orders, key=lambda o: o.created_at, reverse=True)
        self._subscribers: List[Callable[['OrderBook'], None]] = []

    @classmethod
    def for_user(cls, user) -> 'OrderBook':
        book = cls()
        book.load_for_user(user)
        return book

    @classmethod
    def for_merchant(cls, band) -> 'OrderBook':
        book = cls()
        book.load_for_merchant(band)
        return book

    def load_for_user(self, user) -> None:
        self._orders = list(order_lifecycle.fetch_orders_for_user(user))
        self._notify()

    def load_for_merchant(self, band) -> None:
        self._orders = list(order_lifecycle.fetch_orders_for_merchant(band))
        self._notify()

    def subscribe(self, callback: Callable[['OrderBook'], None]) -> Callable[[], None]:
        """Register a change observer; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self):
        for callback in list(self._subscribers):
            callback(self)

    def update_status(self, order_id, new_status: str, actor=None) -> Order:
        """
        Change an order's status and refresh the cached copy.

        Only orders held by the book can be changed; any other id raises
        OrderNotFoundError before the database is touched. Raises whatever
        order_lifecycle.update_status raises; the cache is untouched in
        that case.
        """
        cached = self.get(order_id)
        if cached is None:
            raise OrderNotFoundError(f"Order {order_id} not found")

        updated = order_lifecycle.update_status(cached.id, new_status, actor=actor)
        self._orders[self._orders.index(cached)] = updated

        self._notify()
        return updated

    def get(self, order_id) -> Optional[Order]:
        return next((o for o in self._orders if str(o.id) == str(order_id)), None)

    @property
    def orders(self) -> Tuple[Order, ...]:
        return tuple(self._orders)

    def _with_status(self, status):
        return [order for order in self._orders if order.status == status]

    @property
    def pending(self) -> List[Order]:
        return self._with_status(OrderStatus.PENDING_PICKUP)

    @property
    def completed(self) -> List[Order]:
        return self._with_status(OrderStatus.PICKED_UP)

    @property
    def cancelled(self) -> List[Order]:
        return self._with_status(OrderStatus.CANCELLED)

    @property
    def total_revenue(self) -> Decimal:
        """Revenue of picked-up orders."""
        return sum((order.amount for order in self.completed), Decimal('0.00'))

    @property
    def pending_revenue(self) -> Decimal:
        """Value of orders still waiting for pickup."""
        return sum((order.amount for order in self.pending), Decimal('0.00'))

    def summary(self) -> dict:
        return {
            'total_orders': len(self._orders),
            'pending_count': len(self.pending),
            'completed_count': len(self.completed),
            'cancelled_count': len(self.cancelled),
            'total_revenue': self.total_revenue,
            'pending_revenue': self.pending_revenue,
        }
