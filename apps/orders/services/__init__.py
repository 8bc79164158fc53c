"""Services for order business logic."""

from .exceptions import (
    OrdersServiceError,
    CartError,
    InsufficientInventoryError,
    InvalidQuantityError,
    CartLineNotFoundError,
    EmptyCartError,
    MixedMerchantCartError,
    ProductUnavailableError,
    PaymentFailureReason,
    PaymentError,
    OrderNotFoundError,
    InvalidStatusTransitionError,
    InsufficientPermissionsError,
    InvalidPickupCodeError,
    PickupCodeAlreadyUsedError,
)
from .cart import Cart, CartLine, ProductSnapshot
from .order_builder import OrderDraft, OrderLineDraft, build_order, generate_pickup_code
from .payment import (
    PaymentResult,
    PaymentGateway,
    SimulatedPaymentGateway,
    get_gateway,
    charge,
    refund,
)
from .order_lifecycle import (
    create_order,
    get_order,
    fetch_orders_for_user,
    fetch_orders_for_merchant,
    update_status,
    can_cancel,
    cancel_order,
)
from .order_book import OrderBook
from .checkout import checkout
from .pickup import PickupResult, verify_pickup
from .qr import render_pickup_qr

__all__ = [
    # Exceptions
    'OrdersServiceError',
    'CartError',
    'InsufficientInventoryError',
    'InvalidQuantityError',
    'CartLineNotFoundError',
    'EmptyCartError',
    'MixedMerchantCartError',
    'ProductUnavailableError',
    'PaymentFailureReason',
    'PaymentError',
    'OrderNotFoundError',
    'InvalidStatusTransitionError',
    'InsufficientPermissionsError',
    'InvalidPickupCodeError',
    'PickupCodeAlreadyUsedError',
    # Cart
    'Cart',
    'CartLine',
    'ProductSnapshot',
    # Order builder
    'OrderDraft',
    'OrderLineDraft',
    'build_order',
    'generate_pickup_code',
    # Payment
    'PaymentResult',
    'PaymentGateway',
    'SimulatedPaymentGateway',
    'get_gateway',
    'charge',
    'refund',
    # Lifecycle
    'create_order',
    'get_order',
    'fetch_orders_for_user',
    'fetch_orders_for_merchant',
    'update_status',
    'can_cancel',
    'cancel_order',
    'OrderBook',
    # Checkout and pickup
    'checkout',
    'PickupResult',
    'verify_pickup',
    'render_pickup_qr',
]
