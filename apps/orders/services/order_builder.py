"""Turns a cart into an immutable order draft. Nothing is persisted here."""

import secrets

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from django.conf import settings
from django.utils import timezone
from uuid import UUID
from typing import Optional, Tuple

from apps.orders.models import OrderStatus
from .cart import Cart
from .exceptions import EmptyCartError, MixedMerchantCartError

PICKUP_CODE_PREFIX = 'QR_'


def generate_pickup_code() -> str:
    """Random pickup token: 'QR_' followed by 32 hex characters."""
    return f"{PICKUP_CODE_PREFIX}{secrets.token_hex(16)}"


@dataclass(frozen=True)
class OrderLineDraft:
    product_id: UUID
    size: str
    quantity: int
    product_title: str
    product_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.product_price * self.quantity


@dataclass(frozen=True)
class OrderDraft:
    user_id: UUID
    band_id: UUID
    event_id: Optional[UUID]
    lines: Tuple[OrderLineDraft, ...]
    amount: Decimal
    currency: str
    qr_code: str
    status: str
    created_at: datetime


def build_order(cart: Cart, user, band, event=None) -> OrderDraft:
    """
    Build an order draft from the cart contents.

    Args:
        cart: Cart with at least one line
        user: Purchasing fan
        band: Band all cart lines belong to
        event: Optional event the order is placed at

    Returns:
        OrderDraft with amount equal to cart.total and a fresh pickup code

    Raises:
        EmptyCartError: If the cart has no lines
        MixedMerchantCartError: If a line belongs to another band
    """
    if cart.is_empty:
        raise EmptyCartError("Cannot place an order with an empty cart")

    foreign = [line.product.title for line in cart.lines if line.product.band_id != band.id]
    if foreign:
        raise MixedMerchantCartError(
            f"Products from another band in the cart: {', '.join(foreign)}"
        )

    lines = tuple(
        OrderLineDraft(
            product_id=line.product.id,
            size=line.size,
            quantity=line.quantity,
            product_title=line.product.title,
            product_price=line.product.price,
        )
        for line in cart.lines
    )

    return OrderDraft(
        user_id=user.pk,
        band_id=band.pk,
        event_id=event.pk if event is not None else None,
        lines=lines,
        amount=cart.total,
        currency=settings.PAYMENT_CURRENCY,
        qr_code=generate_pickup_code(),
        status=OrderStatus.PENDING_PICKUP,
        created_at=timezone.now(),
    )
