"""Domain-specific exceptions for catalog services."""


class CatalogServiceError(Exception):
    """Base exception for catalog services."""
    code = 'catalog_error'


class BandNotFoundError(CatalogServiceError):
    """Raised when band does not exist."""
    code = 'band_not_found'


class BandMembershipError(CatalogServiceError):
    """Raised when a band membership change is not allowed."""
    code = 'band_membership'


class ProductNotFoundError(CatalogServiceError):
    """Raised when product does not exist."""
    code = 'product_not_found'


class InvalidProductError(CatalogServiceError):
    """Raised when product fields fail validation."""
    code = 'invalid_product'


class InvalidInventoryError(CatalogServiceError):
    """Raised when sizes or inventory counts are inconsistent."""
    code = 'invalid_inventory'


class EventNotFoundError(CatalogServiceError):
    """Raised when event does not exist."""
    code = 'event_not_found'


class InvalidEventError(CatalogServiceError):
    """Raised when event fields fail validation."""
    code = 'invalid_event'


class SoldOutError(CatalogServiceError):
    """Raised when a size has fewer units in stock than requested."""
    code = 'sold_out'

    def __init__(self, *, product_id, size, title=None, requested=None):
        self.product_id = product_id
        self.size = size
        self.title = title
        self.requested = requested
        name = title or str(product_id)
        super().__init__(f"'{name}' is sold out in size {size}")
