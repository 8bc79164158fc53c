"""
Checkout: cart validation, payment, stock reservation and order creation.

Payment happens before anything is written. Stock reservation and the order
row commit together afterwards. If that step fails for any reason, sold out
in between or otherwise, the payment is refunded and the error propagates.
"""

import logging

from django.db import transaction
from typing import Iterable, Mapping, Optional

from apps.catalog.models import Product
from apps.catalog.services import reserve_stock, SoldOutError
from apps.orders.models import Order
from .cart import Cart
from .order_builder import build_order
from .order_lifecycle import create_order
from .payment import PaymentGateway, charge, refund
from .exceptions import (
    EmptyCartError,
    MixedMerchantCartError,
    PaymentError,
    ProductUnavailableError,
)

logger = logging.getLogger(__name__)


def _rebuild_cart(band, lines, event=None) -> Cart:
    """Replay submitted lines into a cart against current product data."""
    product_ids = {str(line['product_id']) for line in lines}
    products = {
        str(product.id): product
        for product in (
            Product.objects
            .filter(id__in=product_ids)
            .prefetch_related('size_inventory', 'events')
        )
    }

    if event is not None and (not event.active or event.archived):
        raise ProductUnavailableError(f"Event '{event.name}' is not taking orders")

    cart = Cart()
    for line in lines:
        product = products.get(str(line['product_id']))
        if product is None or not product.active:
            raise ProductUnavailableError(f"Product {line['product_id']} is not available")
        if product.band_id != band.id:
            raise MixedMerchantCartError(
                f"'{product.title}' is sold by another band"
            )
        if event is not None and event.id not in {e.id for e in product.events.all()}:
            raise ProductUnavailableError(f"'{product.title}' is not sold at {event.name}")

        cart.add_item(product, line['size'], line['quantity'])

    return cart


def _compensate(transaction_id, gateway) -> bool:
    """Refund a charge whose order could not be recorded; True on success."""
    try:
        refund(transaction_id, gateway=gateway)
    except PaymentError:
        logger.exception("Refund of %s failed", transaction_id)
        return False
    return True


def checkout(
    *,
    user,
    band,
    lines: Iterable[Mapping],
    event=None,
    gateway: Optional[PaymentGateway] = None
) -> Order:
    """
    Place a paid order.

    Args:
        user: Purchasing fan
        band: Band selling every line
        lines: Mappings with product_id, size and quantity
        event: Optional event the order is placed at
        gateway: Payment gateway, defaults to the configured one

    Returns:
        Created Order in pending_pickup with payment_status succeeded

    Raises:
        EmptyCartError: If no lines were submitted
        ProductUnavailableError: If a product is missing, inactive or not at the event
        MixedMerchantCartError: If a product belongs to another band
        InsufficientInventoryError: If a line exceeds current stock
        InvalidQuantityError: If a quantity is not positive
        PaymentError: If the payment fails; nothing is recorded
        SoldOutError: If stock ran out after payment; the payment is refunded
        Any error raised while recording the order is re-raised after the
        payment is refunded, with `refunded` set on it
    """
    lines = list(lines)
    if not lines:
        raise EmptyCartError("Cannot place an order with an empty cart")

    cart = _rebuild_cart(band, lines, event=event)
    draft = build_order(cart, user, band, event=event)

    payment = charge(
        draft.amount,
        reference=draft.qr_code,
        currency=draft.currency,
        gateway=gateway,
    )

    try:
        with transaction.atomic():
            reserve_stock(draft.lines)
            order = create_order(
                draft,
                transaction_id=payment.transaction_id,
                stock_reserved=True,
            )
    except Exception as error:
        # The atomic block rolled back, so nothing was recorded
        if isinstance(error, SoldOutError):
            logger.warning(
                "Stock ran out after payment %s, refunding: %s",
                payment.transaction_id, error
            )
        else:
            logger.exception(
                "Recording order failed after payment %s, refunding",
                payment.transaction_id
            )
        error.refunded = _compensate(payment.transaction_id, gateway)
        raise

    logger.info("Checkout complete: order %s, payment %s", order.id, payment.transaction_id)
    return order
