"""
Stock reservation service.

Stock is reserved with a conditional UPDATE per (product, size) row, so two
concurrent checkouts can never both take the last unit: the second UPDATE
matches no row and the reservation fails.

Lines are any objects exposing `product_id`, `size` and `quantity`
(order line drafts, persisted order items).
"""

import logging

from collections import OrderedDict
from django.db import transaction
from django.db.models import F

from ..models import Product, ProductSize
from .exceptions import SoldOutError, InvalidInventoryError

logger = logging.getLogger(__name__)


def _aggregate(lines):
    """Sum quantities per (product, size), in a stable order."""
    totals = OrderedDict()
    for line in lines:
        if line.quantity <= 0:
            raise InvalidInventoryError(
                f"Quantity for size {line.size} must be positive"
            )
        key = (str(line.product_id), line.size)
        totals[key] = totals.get(key, 0) + line.quantity

    # Fixed lock order across concurrent reservations
    return sorted(totals.items())


@transaction.atomic
def reserve_stock(lines) -> None:
    """
    Take the requested units out of stock, all or nothing.

    Raises:
        SoldOutError: If any size has fewer units than requested. Nothing is
            reserved in that case.
        InvalidInventoryError: If a line has a non-positive quantity
    """
    for (product_id, size), quantity in _aggregate(lines):
        updated = (
            ProductSize.objects
            .filter(product_id=product_id, label=size, quantity__gte=quantity)
            .update(quantity=F('quantity') - quantity)
        )
        if not updated:
            title = (
                Product.objects
                .filter(id=product_id)
                .values_list('title', flat=True)
                .first()
            )
            logger.info(
                "Reservation failed: product %s size %s, %s requested",
                product_id, size, quantity
            )
            raise SoldOutError(
                product_id=product_id,
                size=size,
                title=title,
                requested=quantity,
            )


@transaction.atomic
def release_stock(lines) -> None:
    """
    Put previously reserved units back into stock.

    Sizes removed from a product since the reservation are skipped.
    """
    for (product_id, size), quantity in _aggregate(lines):
        updated = (
            ProductSize.objects
            .filter(product_id=product_id, label=size)
            .update(quantity=F('quantity') + quantity)
        )
        if not updated:
            logger.warning(
                "Could not return %s units of product %s size %s to stock",
                quantity, product_id, size
            )
