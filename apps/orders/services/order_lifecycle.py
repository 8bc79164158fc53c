"""Order persistence, queries and status transitions."""

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from uuid import UUID
from typing import Optional

from apps.catalog.services import release_stock
from apps.orders.models import Order, OrderItem, OrderStatus, PaymentStatus
from apps.orders.signals import order_created, order_status_changed
from .order_builder import OrderDraft
from .exceptions import (
    OrderNotFoundError,
    InvalidStatusTransitionError,
    InsufficientPermissionsError,
)

logger = logging.getLogger(__name__)


def _order_queryset():
    return (
        Order.objects
        .select_related('user', 'band', 'event', 'picked_up_by')
        .prefetch_related('items')
    )


@transaction.atomic
def create_order(
    draft: OrderDraft,
    *,
    transaction_id: Optional[str] = None,
    payment_status: Optional[str] = None,
    stock_reserved: bool = False
) -> Order:
    """
    Persist an order draft with its items.

    Args:
        draft: Draft from build_order
        transaction_id: Confirmed payment transaction, if any
        payment_status: Defaults to succeeded when a transaction id is
            given, pending otherwise
        stock_reserved: True when the caller already reserved the items'
            stock; only then does cancelling return it

    Returns:
        Created Order with a durable id
    """
    if payment_status is None:
        payment_status = PaymentStatus.SUCCEEDED if transaction_id else PaymentStatus.PENDING

    order = Order.objects.create(
        user_id=draft.user_id,
        band_id=draft.band_id,
        event_id=draft.event_id,
        amount=draft.amount,
        currency=draft.currency,
        status=draft.status,
        qr_code=draft.qr_code,
        payment_status=payment_status,
        transaction_id=transaction_id or '',
        stock_reserved=stock_reserved,
        created_at=draft.created_at,
    )
    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            product_id=line.product_id,
            product_title=line.product_title,
            product_price=line.product_price,
            size=line.size,
            quantity=line.quantity,
        )
        for line in draft.lines
    ])

    logger.info(
        "Order %s created for user %s, band %s, amount %s",
        order.id, draft.user_id, draft.band_id, draft.amount
    )
    transaction.on_commit(lambda: order_created.send(sender=Order, order=order))
    return order


def get_order(*, order_id: UUID) -> Order:
    """
    Raises:
        OrderNotFoundError: If order doesn't exist
    """
    try:
        return _order_queryset().get(id=order_id)
    except (Order.DoesNotExist, ValidationError, ValueError):
        raise OrderNotFoundError(f"Order {order_id} not found")


def fetch_orders_for_user(user, status: Optional[str] = None):
    """The user's orders, newest first."""
    queryset = _order_queryset().filter(user=user)
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at')


def fetch_orders_for_merchant(band, status: Optional[str] = None):
    """Orders placed with the band, newest first."""
    queryset = _order_queryset().filter(band=band)
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at')


@transaction.atomic
def update_status(order_id: UUID, new_status: str, actor=None) -> Order:
    """
    Move an order to a new status.

    Allowed: pending_pickup -> picked_up, pending_pickup -> cancelled.
    Cancelling returns reserved items to stock in the same transaction.

    Args:
        order_id: Order UUID
        new_status: Target OrderStatus value
        actor: User performing the change (recorded as picked_up_by)

    Returns:
        Updated Order

    Raises:
        OrderNotFoundError: If order doesn't exist
        InvalidStatusTransitionError: If the transition is not allowed
    """
    if new_status not in OrderStatus.values:
        raise InvalidStatusTransitionError(f"Unknown order status: {new_status}")

    try:
        order = Order.objects.select_for_update().get(id=order_id)
    except (Order.DoesNotExist, ValidationError, ValueError):
        raise OrderNotFoundError(f"Order {order_id} not found")

    previous_status = order.status
    if not order.can_transition_to(new_status):
        raise InvalidStatusTransitionError(
            f"Cannot change order from {previous_status} to {new_status}"
        )

    now = timezone.now()
    order.status = new_status
    update_fields = ['status', 'updated_at']

    if new_status == OrderStatus.PICKED_UP:
        order.picked_up_at = now
        order.picked_up_by = actor
        update_fields += ['picked_up_at', 'picked_up_by']
    elif new_status == OrderStatus.CANCELLED:
        order.cancelled_at = now
        update_fields.append('cancelled_at')
        if order.stock_reserved:
            release_stock([item for item in order.items.all() if item.product_id is not None])
            order.stock_reserved = False
            update_fields.append('stock_reserved')

    order.save(update_fields=update_fields)

    logger.info(
        "Order %s: %s -> %s by %s",
        order.id, previous_status, new_status, getattr(actor, 'pk', None)
    )
    transaction.on_commit(lambda: order_status_changed.send(
        sender=Order,
        order=order,
        previous_status=previous_status,
        new_status=new_status,
        actor=actor,
    ))
    return get_order(order_id=order.id)


def can_cancel(order: Order, user) -> bool:
    """The purchasing fan, band members and admins may cancel."""
    if user is None or not user.is_authenticated:
        return False
    return (
        order.user_id == user.pk
        or user.is_platform_admin
        or order.band.has_member(user)
    )


def cancel_order(order_id: UUID, actor) -> Order:
    """
    Cancel a pending order on behalf of `actor`.

    Raises:
        OrderNotFoundError: If order doesn't exist
        InsufficientPermissionsError: If actor may not cancel this order
        InvalidStatusTransitionError: If the order is no longer pending
    """
    order = get_order(order_id=order_id)
    if not can_cancel(order, actor):
        raise InsufficientPermissionsError("You cannot cancel this order")

    return update_status(order.id, OrderStatus.CANCELLED, actor=actor)
