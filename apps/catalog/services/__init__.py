"""Services for catalog business logic."""

from .exceptions import (
    CatalogServiceError,
    BandNotFoundError,
    BandMembershipError,
    ProductNotFoundError,
    InvalidProductError,
    InvalidInventoryError,
    EventNotFoundError,
    InvalidEventError,
    SoldOutError,
)
from .band_management import (
    get_band,
    create_band,
    add_band_member,
    remove_band_member,
)
from .product_management import (
    get_product,
    create_product,
    update_product,
    set_inventory,
    delete_product,
)
from .inventory import reserve_stock, release_stock
from .event_management import (
    get_event,
    create_event,
    update_event,
    delete_event,
    link_product_to_event,
    unlink_product_from_event,
    get_products_for_event,
    get_events_for_band,
    get_nearby_events,
    haversine_km,
    archive_expired_events,
)

__all__ = [
    # Exceptions
    'CatalogServiceError',
    'BandNotFoundError',
    'BandMembershipError',
    'ProductNotFoundError',
    'InvalidProductError',
    'InvalidInventoryError',
    'EventNotFoundError',
    'InvalidEventError',
    'SoldOutError',
    # Bands
    'get_band',
    'create_band',
    'add_band_member',
    'remove_band_member',
    # Products
    'get_product',
    'create_product',
    'update_product',
    'set_inventory',
    'delete_product',
    # Inventory
    'reserve_stock',
    'release_stock',
    # Events
    'get_event',
    'create_event',
    'update_event',
    'delete_event',
    'link_product_to_event',
    'unlink_product_from_event',
    'get_products_for_event',
    'get_events_for_band',
    'get_nearby_events',
    'haversine_km',
    'archive_expired_events',
]
