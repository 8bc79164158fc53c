from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone
from decimal import Decimal
import uuid


class OrderStatus(models.TextChoices):
    PENDING_PICKUP = 'pending_pickup', 'Pending Pickup'
    PICKED_UP = 'picked_up', 'Picked Up'
    CANCELLED = 'cancelled', 'Cancelled'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PROCESSING = 'processing', 'Processing'
    SUCCEEDED = 'succeeded', 'Succeeded'
    FAILED = 'failed', 'Failed'
    CANCELLED = 'cancelled', 'Cancelled'


# picked_up and cancelled are terminal
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING_PICKUP: {OrderStatus.PICKED_UP, OrderStatus.CANCELLED},
    OrderStatus.PICKED_UP: set(),
    OrderStatus.CANCELLED: set(),
}


class Order(models.Model):
    """A fan's paid purchase from one band, collected at the booth with a QR code."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.PROTECT,
        related_name='orders'
    )
    band = models.ForeignKey(
        'catalog.Band',
        on_delete=models.PROTECT,
        related_name='orders'
    )
    event = models.ForeignKey(
        'catalog.Event',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders'
    )

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    currency = models.CharField(max_length=3, default='USD')

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING_PICKUP
    )

    # Pickup token encoded into the QR code; random, never derived from the order
    qr_code = models.CharField(max_length=64, unique=True, editable=False)

    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )
    transaction_id = models.CharField(max_length=100, blank=True)

    # Set when checkout took the items out of stock; cancelling puts them back
    stock_reserved = models.BooleanField(default=False)

    picked_up_at = models.DateTimeField(null=True, blank=True)
    picked_up_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='scanned_orders'
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        indexes = [
            models.Index(fields=['user', '-created_at'], name='orders_user_created_idx'),
            models.Index(fields=['band', '-created_at'], name='orders_band_created_idx'),
            models.Index(fields=['status'], name='orders_status_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Order #{self.short_code} - {self.amount} {self.currency} ({self.status})"

    @property
    def short_code(self):
        """Last six characters of the id, as shown to fans and staff."""
        return str(self.id)[-6:].upper()

    @property
    def is_terminal(self):
        return not ALLOWED_TRANSITIONS.get(self.status)

    def can_transition_to(self, new_status):
        return new_status in ALLOWED_TRANSITIONS.get(self.status, set())

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items.all())


class OrderItem(models.Model):
    """One product/size line of an order, with title and price as sold."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items'
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items'
    )

    product_title = models.CharField(max_length=200)
    product_price = models.DecimalField(max_digits=10, decimal_places=2)
    size = models.CharField(max_length=20)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    class Meta:
        db_table = 'order_items'
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity} x {self.product_title} [{self.size}]"

    @property
    def line_total(self):
        return self.product_price * self.quantity
