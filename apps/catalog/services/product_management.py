"""Product CRUD and inventory management service."""

import logging

from decimal import Decimal, InvalidOperation
from django.db import transaction
from uuid import UUID
from typing import Optional, Dict, List, Any

from ..models import Band, Product, ProductSize
from .exceptions import (
    ProductNotFoundError,
    InvalidProductError,
    InvalidInventoryError,
)

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def _clean_price(price) -> Decimal:
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidProductError(f"Invalid price: {price!r}")

    if not value.is_finite() or value < 0:
        raise InvalidProductError("Price must be zero or greater")
    return value.quantize(CENT)


def _clean_sizes(sizes) -> List[str]:
    labels = [str(size).strip() for size in (sizes or [])]
    if not labels or any(not label for label in labels):
        raise InvalidInventoryError("At least one non-empty size label is required")
    if len(set(labels)) != len(labels):
        raise InvalidInventoryError("Size labels must be unique")
    return labels


def _clean_inventory(sizes: List[str], inventory: Optional[Dict[str, int]]) -> Dict[str, int]:
    """Validate counts against the size labels; sizes without an entry get 0."""
    inventory = inventory or {}

    unknown = [label for label in inventory if label not in sizes]
    if unknown:
        raise InvalidInventoryError(
            f"Inventory has sizes not offered by the product: {', '.join(unknown)}"
        )

    counts = {}
    for label in sizes:
        quantity = inventory.get(label, 0)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise InvalidInventoryError(
                f"Inventory for size {label} must be a non-negative integer"
            )
        counts[label] = quantity
    return counts


def get_product(*, product_id: UUID) -> Product:
    """
    Raises:
        ProductNotFoundError: If product doesn't exist
    """
    try:
        return (
            Product.objects
            .select_related('band')
            .prefetch_related('size_inventory')
            .get(id=product_id)
        )
    except Product.DoesNotExist:
        raise ProductNotFoundError(f"Product {product_id} not found")


@transaction.atomic
def create_product(
    *,
    band: Band,
    title: str,
    price,
    sizes: List[str],
    inventory: Optional[Dict[str, int]] = None,
    image_url: str = '',
    active: bool = True
) -> Product:
    """
    Create a product with its per-size stock rows.

    Args:
        band: Owning band
        title: Display title
        price: Unit price, zero or greater
        sizes: Ordered size labels, e.g. ['S', 'M', 'L']
        inventory: Units in stock per size label; missing sizes start at 0
        image_url: Optional image location
        active: Whether fans can buy the product

    Returns:
        Created Product instance

    Raises:
        InvalidProductError: If title or price is invalid
        InvalidInventoryError: If sizes or inventory are inconsistent
    """
    title = (title or '').strip()
    if not title:
        raise InvalidProductError("Title is required")

    clean_price = _clean_price(price)
    labels = _clean_sizes(sizes)
    counts = _clean_inventory(labels, inventory)

    product = Product.objects.create(
        band=band,
        title=title,
        price=clean_price,
        image_url=image_url,
        active=active,
    )
    ProductSize.objects.bulk_create([
        ProductSize(product=product, label=label, position=position, quantity=counts[label])
        for position, label in enumerate(labels)
    ])

    logger.info("Product %s created for band %s", product.id, band.id)
    return product


def _sync_sizes(product: Product, labels: List[str]) -> None:
    """Reorder, add and drop size rows; retained labels keep their stock."""
    existing = {row.label: row for row in product.size_inventory.select_for_update()}

    for position, label in enumerate(labels):
        row = existing.pop(label, None)
        if row is None:
            ProductSize.objects.create(product=product, label=label, position=position, quantity=0)
        elif row.position != position:
            row.position = position
            row.save(update_fields=['position'])

    if existing:
        ProductSize.objects.filter(id__in=[row.id for row in existing.values()]).delete()


@transaction.atomic
def update_product(*, product_id: UUID, data: Dict[str, Any]) -> Product:
    """
    Update an existing product.

    Args:
        product_id: Product UUID
        data: Fields to update (title, price, image_url, active, sizes)

    Returns:
        Updated Product instance

    Raises:
        ProductNotFoundError: If product doesn't exist
        InvalidProductError: If title or price is invalid
        InvalidInventoryError: If the new size list is invalid
    """
    try:
        product = Product.objects.select_for_update().get(id=product_id)
    except Product.DoesNotExist:
        raise ProductNotFoundError(f"Product {product_id} not found")

    if 'title' in data:
        title = (data['title'] or '').strip()
        if not title:
            raise InvalidProductError("Title is required")
        product.title = title
    if 'price' in data:
        product.price = _clean_price(data['price'])
    if 'image_url' in data:
        product.image_url = data['image_url'] or ''
    if 'active' in data:
        product.active = bool(data['active'])

    product.save()

    if 'sizes' in data:
        _sync_sizes(product, _clean_sizes(data['sizes']))

    return get_product(product_id=product.id)


@transaction.atomic
def set_inventory(*, product_id: UUID, inventory: Dict[str, int]) -> Product:
    """
    Replace the stock counts of a product.

    Sizes without an entry in `inventory` are set to 0.

    Raises:
        ProductNotFoundError: If product doesn't exist
        InvalidInventoryError: If inventory names unknown sizes or negative counts
    """
    try:
        product = Product.objects.select_for_update().get(id=product_id)
    except Product.DoesNotExist:
        raise ProductNotFoundError(f"Product {product_id} not found")

    rows = list(product.size_inventory.select_for_update())
    counts = _clean_inventory([row.label for row in rows], inventory)

    for row in rows:
        if row.quantity != counts[row.label]:
            row.quantity = counts[row.label]
            row.save(update_fields=['quantity'])

    logger.info("Inventory of product %s set to %s", product.id, counts)
    return get_product(product_id=product.id)


@transaction.atomic
def delete_product(*, product_id: UUID) -> None:
    """
    Delete a product together with its stock rows and event links.

    Raises:
        ProductNotFoundError: If product doesn't exist
    """
    deleted, _ = Product.objects.filter(id=product_id).delete()
    if not deleted:
        raise ProductNotFoundError(f"Product {product_id} not found")

    logger.info("Product %s deleted", product_id)
