"""
Order notifications.

Push delivery is not wired up; messages are written to the log so that a
delivery backend can be attached to these receivers later.
"""

import logging

from django.dispatch import receiver

from .models import OrderStatus
from .signals import order_created, order_status_changed

logger = logging.getLogger(__name__)

FAN_MESSAGES = {
    OrderStatus.PENDING_PICKUP: "Your order #{code} is ready for pickup at the merch booth.",
    OrderStatus.PICKED_UP: "Order #{code} has been picked up. Enjoy your merch!",
    OrderStatus.CANCELLED: "Order #{code} was cancelled.",
}


def fan_message(order, status=None) -> str:
    template = FAN_MESSAGES[status or order.status]
    return template.format(code=order.short_code)


def merchant_message(order) -> str:
    return f"New order #{order.short_code} - {order.amount} {order.currency}"


@receiver(order_created)
def notify_order_created(sender, order, **kwargs):
    logger.info("[merchant %s] %s", order.band_id, merchant_message(order))
    logger.info("[fan %s] %s", order.user_id, fan_message(order))


@receiver(order_status_changed)
def notify_status_changed(sender, order, previous_status, new_status, **kwargs):
    logger.info("[fan %s] %s", order.user_id, fan_message(order, new_status))
