"""Pickup verification: a merchant scans a fan's QR code at the booth."""

import logging

from dataclasses import dataclass
from django.db import transaction
from typing import Tuple

from apps.orders.models import Order, OrderItem, OrderStatus
from .order_lifecycle import update_status
from .exceptions import (
    InvalidPickupCodeError,
    PickupCodeAlreadyUsedError,
    InsufficientPermissionsError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickupResult:
    order: Order
    items: Tuple[OrderItem, ...]


def _may_hand_out(order: Order, user) -> bool:
    return user.is_platform_admin or order.band.has_member(user)


@transaction.atomic
def verify_pickup(code: str, merchant_user) -> PickupResult:
    """
    Redeem a scanned pickup code.

    The order row is locked for the duration, so two scans of the same
    code cannot both succeed.

    Args:
        code: Decoded QR payload
        merchant_user: Staff member scanning the code

    Returns:
        PickupResult with the picked-up order and its items

    Raises:
        InvalidPickupCodeError: If no order has this code
        PickupCodeAlreadyUsedError: If the order is picked up or cancelled
        InsufficientPermissionsError: If the scanner is not staff of the
            order's band
    """
    code = (code or '').strip()
    try:
        order = (
            Order.objects
            .select_for_update()
            .select_related('band')
            .get(qr_code=code)
        )
    except Order.DoesNotExist:
        logger.info("Pickup scan with unknown code by %s", merchant_user.pk)
        raise InvalidPickupCodeError("Invalid pickup code")

    if order.status != OrderStatus.PENDING_PICKUP:
        logger.info("Pickup scan of %s order %s", order.status, order.id)
        raise PickupCodeAlreadyUsedError(order)

    if not _may_hand_out(order, merchant_user):
        logger.warning(
            "User %s scanned order %s of another band", merchant_user.pk, order.id
        )
        raise InsufficientPermissionsError("You are not staff of this order's band")

    order = update_status(order.id, OrderStatus.PICKED_UP, actor=merchant_user)

    logger.info("Order %s picked up, scanned by %s", order.id, merchant_user.pk)
    return PickupResult(order=order, items=tuple(order.items.all()))
