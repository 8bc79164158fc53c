# ==========================================
# apps/catalog/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import Band, Product, ProductSize, Event


class ProductSizeInline(admin.TabularInline):
    """Per-size stock within a product."""
    model = ProductSize
    extra = 0
    fields = ['position', 'label', 'quantity']
    ordering = ['position']


@admin.register(Band)
class BandAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'member_count', 'is_verified', 'created_at']
    list_filter = ['is_verified', 'created_at']
    search_fields = ['name', 'owner__email']
    filter_horizontal = ['members']
    readonly_fields = ['created_at']

    def member_count(self, obj):
        return obj.members.count()
    member_count.short_description = 'Members'


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Admin interface for products.

    Stock is edited per size through the inline; a sold-out product is
    flagged in the list.
    """

    list_display = [
        'title',
        'band',
        'price',
        'stock_badge',
        'active',
        'created_at',
    ]

    list_filter = ['active', 'band', 'created_at']
    search_fields = ['title', 'band__name']
    filter_horizontal = ['events']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ProductSizeInline]

    def stock_badge(self, obj):
        """Display total stock as colored badge."""
        total = obj.total_inventory
        if total == 0:
            bg, label = '#B85C5C', 'Sold out'
        elif total < 10:
            bg, label = '#E5A84B', f'{total} left'
        else:
            bg, label = '#6B8E5E', f'{total} in stock'
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, label
        )
    stock_badge.short_description = 'Stock'


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = [
        'name',
        'venue_name',
        'start_date',
        'end_date',
        'status_badge',
        'active',
        'archived',
    ]

    list_filter = ['active', 'archived', 'event_type', 'start_date']
    search_fields = ['name', 'venue_name', 'address']
    filter_horizontal = ['merchants']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'start_date'

    fieldsets = (
        ('Event', {
            'fields': ('name', 'event_type', 'description', 'image_url', 'merchants')
        }),
        ('Venue', {
            'fields': ('venue_name', 'address', 'latitude', 'longitude', 'geofence_radius'),
        }),
        ('Schedule', {
            'fields': ('start_date', 'end_date', 'active', 'archived'),
        }),
        ('Tickets', {
            'fields': ('max_capacity', 'ticket_price'),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def status_badge(self, obj):
        """Display live/upcoming/ended as colored badge."""
        colors = {
            'Live Now': '#6B8E5E',
            'Upcoming': '#5B8DEF',
            'Ended': '#999',
        }
        label = obj.status_label
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            colors.get(label, '#999'), label
        )
    status_badge.short_description = 'Status'
