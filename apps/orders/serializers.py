from rest_framework import serializers
from apps.accounts.serializers import UserPublicSerializer
from apps.catalog.models import Band, Event
from .models import Order, OrderItem, OrderStatus


# =============================================================================
# Input Serializers
# =============================================================================

class OrderFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for order listings.

    Query Parameters:
        status (str): Filter by order status
    """

    status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)


class CheckoutLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    size = serializers.CharField(max_length=20)
    quantity = serializers.IntegerField(min_value=1)


class CheckoutInputSerializer(serializers.Serializer):
    """
    Validate checkout input.

    Fields:
        band (UUID): Band selling every line
        event (UUID): Optional event the order is placed at
        lines (list): product_id, size and quantity per line
    """

    band = serializers.PrimaryKeyRelatedField(queryset=Band.objects.all())
    event = serializers.PrimaryKeyRelatedField(
        queryset=Event.objects.all(),
        required=False,
        allow_null=True
    )
    lines = CheckoutLineSerializer(many=True, allow_empty=False)


class StatusUpdateInputSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class PickupInputSerializer(serializers.Serializer):
    """Decoded QR payload submitted by the scanner."""

    code = serializers.CharField(max_length=64, trim_whitespace=True)


# =============================================================================
# Output Serializers
# =============================================================================

class OrderItemSerializer(serializers.ModelSerializer):
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id',
            'product',
            'product_title',
            'product_price',
            'size',
            'quantity',
            'line_total',
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Full order with items."""

    user = UserPublicSerializer(read_only=True)
    band_name = serializers.CharField(source='band.name', read_only=True)
    event_name = serializers.CharField(source='event.name', read_only=True, default=None)
    items = OrderItemSerializer(many=True, read_only=True)
    item_count = serializers.IntegerField(read_only=True)
    short_code = serializers.CharField(read_only=True)
    picked_up_by = UserPublicSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'short_code',
            'user',
            'band',
            'band_name',
            'event',
            'event_name',
            'amount',
            'currency',
            'status',
            'payment_status',
            'transaction_id',
            'qr_code',
            'items',
            'item_count',
            'picked_up_at',
            'picked_up_by',
            'cancelled_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    band_name = serializers.CharField(source='band.name', read_only=True)
    item_count = serializers.IntegerField(read_only=True)
    short_code = serializers.CharField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'short_code',
            'band',
            'band_name',
            'event',
            'amount',
            'currency',
            'status',
            'payment_status',
            'item_count',
            'created_at',
        ]
        read_only_fields = fields


class MerchantSummarySerializer(serializers.Serializer):
    total_orders = serializers.IntegerField()
    pending_count = serializers.IntegerField()
    completed_count = serializers.IntegerField()
    cancelled_count = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=12, decimal_places=2)
    pending_revenue = serializers.DecimalField(max_digits=12, decimal_places=2)


class PickupResultSerializer(serializers.Serializer):
    message = serializers.CharField()
    order = OrderSerializer()
    items = OrderItemSerializer(many=True)
