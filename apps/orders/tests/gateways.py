"""Payment gateways for tests."""

import asyncio

from apps.orders.services import (
    PaymentError,
    PaymentFailureReason,
    SimulatedPaymentGateway,
)


class DecliningGateway(SimulatedPaymentGateway):
    """Declines every charge."""

    async def process_payment(self, amount, currency, reference):
        raise PaymentError(PaymentFailureReason.DECLINED)


class HangingGateway(SimulatedPaymentGateway):
    """Never answers within the payment timeout."""

    async def process_payment(self, amount, currency, reference):
        await asyncio.sleep(5)


class RecordingGateway(SimulatedPaymentGateway):
    """Approves instantly and remembers charges and refunds."""

    def __init__(self):
        super().__init__(min_delay=0, max_delay=0)
        self.charges = []
        self.refunds = []

    async def process_payment(self, amount, currency, reference):
        result = await super().process_payment(amount, currency, reference)
        self.charges.append(result)
        return result

    async def refund(self, transaction_id):
        self.refunds.append(transaction_id)
