"""
Payment gateway abstraction and the simulated gateway used until a real
processor is connected.

Gateways are asynchronous; request handlers call the synchronous `charge`
and `refund` wrappers, which bound every gateway call with
PAYMENT_TIMEOUT_SECONDS.
"""

import abc
import asyncio
import logging
import random
import uuid

from asgiref.sync import async_to_sync
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string
from typing import Optional

from .exceptions import PaymentError, PaymentFailureReason

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    transaction_id: str
    amount: Decimal
    currency: str
    timestamp: datetime


class PaymentGateway(abc.ABC):
    """Interface every payment processor integration implements."""

    @abc.abstractmethod
    async def process_payment(self, amount: Decimal, currency: str, reference: str) -> PaymentResult:
        """
        Charge `amount` and return the processor's confirmation.

        Raises:
            PaymentError: If the charge is declined, cancelled or invalid
        """

    @abc.abstractmethod
    async def refund(self, transaction_id: str) -> None:
        """
        Return a previously confirmed charge.

        Raises:
            PaymentError: If the refund is not accepted
        """


class SimulatedPaymentGateway(PaymentGateway):
    """Approves every positive amount after a short random delay."""

    def __init__(self, min_delay: Optional[float] = None, max_delay: Optional[float] = None):
        self.min_delay = settings.PAYMENT_STUB_MIN_DELAY if min_delay is None else min_delay
        self.max_delay = settings.PAYMENT_STUB_MAX_DELAY if max_delay is None else max_delay

    async def _delay(self):
        delay = random.uniform(self.min_delay, max(self.min_delay, self.max_delay))
        if delay > 0:
            await asyncio.sleep(delay)

    async def process_payment(self, amount, currency, reference):
        if amount is None or Decimal(amount) <= 0:
            raise PaymentError(PaymentFailureReason.INVALID_AMOUNT)

        await self._delay()

        return PaymentResult(
            transaction_id=f"pi_sim_{uuid.uuid4().hex[:20]}",
            amount=Decimal(amount),
            currency=currency.upper(),
            timestamp=timezone.now(),
        )

    async def refund(self, transaction_id):
        await self._delay()
        logger.info("Simulated refund of %s", transaction_id)


def get_gateway() -> PaymentGateway:
    """Instantiate the gateway configured in PAYMENT_GATEWAY."""
    return import_string(settings.PAYMENT_GATEWAY)()


def _run_with_timeout(coroutine_factory):
    async def runner():
        return await asyncio.wait_for(
            coroutine_factory(),
            timeout=settings.PAYMENT_TIMEOUT_SECONDS
        )

    try:
        return async_to_sync(runner)()
    except asyncio.TimeoutError:
        raise PaymentError(PaymentFailureReason.TIMEOUT)


def charge(
    amount: Decimal,
    *,
    reference: str,
    currency: Optional[str] = None,
    gateway: Optional[PaymentGateway] = None
) -> PaymentResult:
    """
    Charge the fan through the configured gateway.

    Args:
        amount: Amount to charge, must be positive
        reference: Merchant-side reference shown on the processor dashboard
        currency: ISO currency code, defaults to PAYMENT_CURRENCY
        gateway: Gateway instance, defaults to get_gateway()

    Returns:
        PaymentResult of the confirmed charge

    Raises:
        PaymentError: If the charge fails or the gateway exceeds
            PAYMENT_TIMEOUT_SECONDS
    """
    gateway = gateway or get_gateway()
    currency = currency or settings.PAYMENT_CURRENCY

    logger.info("Charging %s %s for %s", amount, currency, reference)
    try:
        result = _run_with_timeout(
            lambda: gateway.process_payment(amount, currency, reference)
        )
    except PaymentError as e:
        logger.warning("Payment for %s failed: %s", reference, e.reason)
        raise

    logger.info("Payment for %s confirmed: %s", reference, result.transaction_id)
    return result


def refund(transaction_id: str, *, gateway: Optional[PaymentGateway] = None) -> None:
    """
    Refund a confirmed charge.

    Raises:
        PaymentError: If the refund fails or times out
    """
    gateway = gateway or get_gateway()
    _run_with_timeout(lambda: gateway.refund(transaction_id))
    logger.info("Refunded %s", transaction_id)
