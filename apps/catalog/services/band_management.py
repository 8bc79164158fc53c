"""Band (merchant) management service."""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from uuid import UUID

from ..models import Band
from .exceptions import BandNotFoundError, BandMembershipError

logger = logging.getLogger(__name__)

User = get_user_model()


def get_band(*, band_id: UUID) -> Band:
    """
    Raises:
        BandNotFoundError: If band doesn't exist
    """
    try:
        return Band.objects.select_related('owner').get(id=band_id)
    except Band.DoesNotExist:
        raise BandNotFoundError(f"Band {band_id} not found")


@transaction.atomic
def create_band(
    *,
    owner: User,
    name: str,
    description: str = '',
    logo_url: str = ''
) -> Band:
    """
    Create a band owned by a merchant.

    The owner is also added to the member list so that membership queries
    need a single relation.
    """
    band = Band.objects.create(
        owner=owner,
        name=name,
        description=description,
        logo_url=logo_url,
    )
    band.members.add(owner)

    logger.info("Band %s created by %s", band.id, owner.id)
    return band


@transaction.atomic
def add_band_member(*, band_id: UUID, user: User) -> Band:
    """Add a user to the band staff. Adding an existing member is a no-op."""
    band = get_band(band_id=band_id)
    band.members.add(user)
    return band


@transaction.atomic
def remove_band_member(*, band_id: UUID, user: User) -> Band:
    """
    Remove a user from the band staff.

    Raises:
        BandNotFoundError: If band doesn't exist
        BandMembershipError: If the user is the band owner
    """
    band = get_band(band_id=band_id)
    if band.owner_id == user.pk:
        raise BandMembershipError("The band owner cannot be removed")

    band.members.remove(user)
    return band
