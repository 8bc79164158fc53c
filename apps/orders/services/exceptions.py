"""Domain-specific exceptions for order services."""

from django.db import models


class OrdersServiceError(Exception):
    """Base exception for order services."""
    code = 'orders_error'


# Cart

class CartError(OrdersServiceError):
    """Base exception for rejected cart mutations. The cart is left unchanged."""
    code = 'cart_error'


class InsufficientInventoryError(CartError):
    """Raised when a cart line would exceed the units in stock."""
    code = 'insufficient_inventory'


class InvalidQuantityError(CartError):
    """Raised when a quantity is zero or negative."""
    code = 'invalid_quantity'


class CartLineNotFoundError(CartError):
    """Raised when a cart line index is out of range."""
    code = 'cart_line_not_found'


# Order building and checkout

class EmptyCartError(OrdersServiceError):
    """Raised when an order is built from an empty cart."""
    code = 'empty_cart'


class MixedMerchantCartError(OrdersServiceError):
    """Raised when cart lines belong to more than one band."""
    code = 'mixed_merchant_cart'


class ProductUnavailableError(OrdersServiceError):
    """Raised when a product is missing, inactive or not sold at the event."""
    code = 'product_unavailable'


# Payment

class PaymentFailureReason(models.TextChoices):
    DECLINED = 'declined', 'Payment failed. Please try again.'
    CANCELLED = 'cancelled', 'Payment was cancelled.'
    TIMEOUT = 'timeout', 'The payment service did not respond in time. You have not been charged.'
    INVALID_AMOUNT = 'invalid_amount', 'Invalid payment amount.'


class PaymentError(OrdersServiceError):
    """Raised when the payment gateway does not confirm a charge or refund."""
    code = 'payment_failed'

    def __init__(self, reason, message=None):
        self.reason = PaymentFailureReason(reason)
        super().__init__(message or self.reason.label)


# Lifecycle

class OrderNotFoundError(OrdersServiceError):
    """Raised when order does not exist."""
    code = 'order_not_found'


class InvalidStatusTransitionError(OrdersServiceError):
    """Raised when a status change is not allowed from the current status."""
    code = 'invalid_status_transition'


class InsufficientPermissionsError(OrdersServiceError):
    """Raised when the acting user may not change the order."""
    code = 'insufficient_permissions'


# Pickup

class InvalidPickupCodeError(OrdersServiceError):
    """Raised when no order matches a scanned code."""
    code = 'invalid_pickup_code'


class PickupCodeAlreadyUsedError(OrdersServiceError):
    """Raised when the order of a scanned code was already picked up or cancelled."""
    code = 'pickup_code_already_used'

    def __init__(self, order):
        self.order = order
        super().__init__(
            f"Order #{order.short_code} was already {order.get_status_display().lower()}"
        )
