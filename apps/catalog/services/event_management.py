"""Event management, product linking and discovery service."""

import logging
import math

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from uuid import UUID
from typing import Optional, Dict, List, Any, Iterable

from ..models import Band, Event, Product
from .exceptions import EventNotFoundError, InvalidEventError, ProductNotFoundError

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0088

EVENT_UPDATE_FIELDS = [
    'name', 'venue_name', 'address', 'start_date', 'end_date',
    'latitude', 'longitude', 'geofence_radius', 'active', 'archived',
    'image_url', 'description', 'event_type', 'max_capacity', 'ticket_price',
]


def _validate_event(event: Event) -> None:
    for field in ('name', 'venue_name', 'address'):
        if not (getattr(event, field) or '').strip():
            raise InvalidEventError(f"{field} is required")

    if event.start_date is None or event.end_date is None:
        raise InvalidEventError("start_date and end_date are required")
    if event.end_date <= event.start_date:
        raise InvalidEventError("Event must end after it starts")

    if not -90.0 <= event.latitude <= 90.0:
        raise InvalidEventError("Latitude must be between -90 and 90")
    if not -180.0 <= event.longitude <= 180.0:
        raise InvalidEventError("Longitude must be between -180 and 180")
    if event.geofence_radius < 0:
        raise InvalidEventError("Geofence radius must be zero or greater")


def get_event(*, event_id: UUID) -> Event:
    """
    Raises:
        EventNotFoundError: If event doesn't exist
    """
    try:
        return Event.objects.prefetch_related('merchants').get(id=event_id)
    except Event.DoesNotExist:
        raise EventNotFoundError(f"Event {event_id} not found")


@transaction.atomic
def create_event(
    *,
    name: str,
    venue_name: str,
    address: str,
    start_date,
    end_date,
    latitude: float,
    longitude: float,
    merchants: Iterable[Band] = (),
    geofence_radius: float = 500.0,
    **optional: Any
) -> Event:
    """
    Create an event and attach the participating bands.

    Args:
        name: Event name
        venue_name: Venue display name
        address: Street address
        start_date: Start timestamp
        end_date: End timestamp, strictly after start_date
        latitude: Venue latitude in degrees
        longitude: Venue longitude in degrees
        merchants: Bands selling at the event
        geofence_radius: Discoverability radius in meters
        **optional: image_url, description, event_type, max_capacity,
            ticket_price, active, archived

    Returns:
        Created Event instance

    Raises:
        InvalidEventError: If required fields are missing or dates are out of order
    """
    unknown = set(optional) - set(EVENT_UPDATE_FIELDS)
    if unknown:
        raise InvalidEventError(f"Unknown event fields: {', '.join(sorted(unknown))}")

    event = Event(
        name=name,
        venue_name=venue_name,
        address=address,
        start_date=start_date,
        end_date=end_date,
        latitude=latitude,
        longitude=longitude,
        geofence_radius=geofence_radius,
        **optional
    )
    _validate_event(event)
    event.save()
    event.merchants.set(list(merchants))

    logger.info("Event %s created", event.id)
    return event


@transaction.atomic
def update_event(*, event_id: UUID, data: Dict[str, Any]) -> Event:
    """
    Update an existing event.

    `merchants` replaces the participating band list when present.

    Raises:
        EventNotFoundError: If event doesn't exist
        InvalidEventError: If the result fails validation
    """
    try:
        event = Event.objects.select_for_update().get(id=event_id)
    except Event.DoesNotExist:
        raise EventNotFoundError(f"Event {event_id} not found")

    for field, value in data.items():
        if field in EVENT_UPDATE_FIELDS:
            setattr(event, field, value)

    _validate_event(event)
    event.save()

    if 'merchants' in data:
        event.merchants.set(list(data['merchants']))

    return event


@transaction.atomic
def delete_event(*, event_id: UUID) -> None:
    """
    Detach the event from every product, then delete it.

    Both steps commit together or not at all.

    Raises:
        EventNotFoundError: If event doesn't exist
    """
    try:
        event = Event.objects.select_for_update().get(id=event_id)
    except Event.DoesNotExist:
        raise EventNotFoundError(f"Event {event_id} not found")

    detached = event.products.count()
    event.products.clear()
    event.delete()

    logger.info("Event %s deleted, detached from %d products", event_id, detached)


def _get_link_pair(product_id: UUID, event_id: UUID):
    try:
        product = Product.objects.select_for_update().get(id=product_id)
    except Product.DoesNotExist:
        raise ProductNotFoundError(f"Product {product_id} not found")
    try:
        event = Event.objects.get(id=event_id)
    except Event.DoesNotExist:
        raise EventNotFoundError(f"Event {event_id} not found")
    return product, event


@transaction.atomic
def link_product_to_event(*, product_id: UUID, event_id: UUID) -> Product:
    """Make a product available at an event. Linking twice is a no-op."""
    product, event = _get_link_pair(product_id, event_id)
    product.events.add(event)
    return product


@transaction.atomic
def unlink_product_from_event(*, product_id: UUID, event_id: UUID) -> Product:
    """Withdraw a product from an event. Unlinking twice is a no-op."""
    product, event = _get_link_pair(product_id, event_id)
    product.events.remove(event)
    return product


def get_products_for_event(*, event_id: UUID):
    """Active products linked to the event."""
    return (
        Product.objects
        .filter(events__id=event_id, active=True)
        .select_related('band')
        .prefetch_related('size_inventory', 'events')
    )


def get_events_for_band(*, band_id: UUID):
    """Events the band takes part in, newest start date first."""
    return (
        Event.objects
        .filter(merchants__id=band_id)
        .prefetch_related('merchants')
        .order_by('-start_date')
    )


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in kilometers."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def get_nearby_events(
    *,
    latitude: float,
    longitude: float,
    radius_km: Optional[float] = None
) -> List[Event]:
    """
    Active, non-archived events within `radius_km` of a point.

    Each returned event carries a `distance_km` attribute; nearest first.

    Raises:
        InvalidEventError: If coordinates or radius are out of range
    """
    if radius_km is None:
        radius_km = settings.NEARBY_EVENTS_DEFAULT_RADIUS_KM
    if radius_km < 0:
        raise InvalidEventError("Radius must be zero or greater")
    if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
        raise InvalidEventError("Coordinates out of range")

    # Latitude band prefilter; longitude is checked exactly below
    lat_delta = math.degrees(radius_km / EARTH_RADIUS_KM)
    candidates = (
        Event.objects
        .filter(
            active=True,
            archived=False,
            latitude__gte=latitude - lat_delta,
            latitude__lte=latitude + lat_delta,
        )
        .prefetch_related('merchants')
    )

    nearby = []
    for event in candidates:
        distance = haversine_km(latitude, longitude, event.latitude, event.longitude)
        if distance <= radius_km:
            event.distance_km = round(distance, 3)
            nearby.append(event)

    nearby.sort(key=lambda e: e.distance_km)
    return nearby


@transaction.atomic
def archive_expired_events(*, band: Band) -> int:
    """
    Archive and deactivate the band's events that have already ended.

    Returns:
        Number of events archived
    """
    expired_ids = list(
        Event.objects
        .filter(merchants=band, archived=False, end_date__lt=timezone.now())
        .values_list('id', flat=True)
    )
    count = Event.objects.filter(id__in=expired_ids).update(archived=True, active=False)

    if count:
        logger.info("Archived %d expired events for band %s", count, band.id)
    return count
