# ==========================================
# apps/orders/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import Order, OrderItem, OrderStatus, PaymentStatus


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product_title', 'size', 'quantity', 'product_price', 'product']
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin interface for orders.

    Orders are created by checkout only; status changes should go through
    the merchant endpoints so stock is released on cancellation.
    """

    list_display = [
        'short_code',
        'user',
        'band',
        'event',
        'amount',
        'status_badge',
        'payment_badge',
        'created_at',
    ]

    list_filter = ['status', 'payment_status', 'band', 'created_at']
    search_fields = ['id', 'qr_code', 'transaction_id', 'user__email', 'band__name']
    readonly_fields = [
        'id',
        'qr_code',
        'transaction_id',
        'stock_reserved',
        'amount',
        'currency',
        'picked_up_at',
        'picked_up_by',
        'cancelled_at',
        'created_at',
        'updated_at',
    ]
    date_hierarchy = 'created_at'
    inlines = [OrderItemInline]

    fieldsets = (
        ('Order', {
            'fields': ('id', 'user', 'band', 'event', 'amount', 'currency')
        }),
        ('Status', {
            'fields': ('status', 'payment_status', 'transaction_id', 'qr_code', 'stock_reserved')
        }),
        ('Timestamps', {
            'fields': ('picked_up_at', 'picked_up_by', 'cancelled_at', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def status_badge(self, obj):
        colors = {
            OrderStatus.PENDING_PICKUP: '#D4A574',
            OrderStatus.PICKED_UP: '#6B8E5F',
            OrderStatus.CANCELLED: '#B85C5C',
        }
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-weight: bold;">{}</span>',
            colors.get(obj.status, '#999'),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def payment_badge(self, obj):
        colors = {
            PaymentStatus.SUCCEEDED: '#6B8E5F',
            PaymentStatus.FAILED: '#B85C5C',
            PaymentStatus.CANCELLED: '#B85C5C',
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.payment_status, '#8B6F47'),
            obj.get_payment_status_display()
        )
    payment_badge.short_description = 'Payment'
