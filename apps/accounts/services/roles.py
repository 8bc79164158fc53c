"""
What each account role may do.

Fans browse and buy; merchants run a band's catalog, scan pickup codes
and read their sales; admins manage events and every band. Merchant
capabilities apply to the bands a merchant owns or belongs to, the
band-level check lives in apps.catalog.permissions.
"""

from typing import FrozenSet, List

from django.db import models

from apps.accounts.models import UserRole


class Capability(models.TextChoices):
    VIEW_EVENTS = 'view_events', 'View events'
    PURCHASE = 'purchase', 'Purchase products'
    VIEW_OWN_ORDERS = 'view_own_orders', 'View own orders'
    CREATE_BANDS = 'create_bands', 'Create bands'
    MANAGE_CATALOG = 'manage_catalog', 'Manage products and inventory'
    SCAN_ORDERS = 'scan_orders', 'Scan pickup codes'
    VIEW_SALES = 'view_sales', 'View sales reports'
    MANAGE_EVENTS = 'manage_events', 'Create and archive events'
    MANAGE_ALL_BANDS = 'manage_all_bands', 'Manage every band'


ROLE_CAPABILITIES = {
    UserRole.FAN.value: frozenset({
        Capability.VIEW_EVENTS.value,
        Capability.PURCHASE.value,
        Capability.VIEW_OWN_ORDERS.value,
    }),
    UserRole.MERCHANT.value: frozenset({
        Capability.VIEW_EVENTS.value,
        Capability.VIEW_OWN_ORDERS.value,
        Capability.CREATE_BANDS.value,
        Capability.MANAGE_CATALOG.value,
        Capability.SCAN_ORDERS.value,
        Capability.VIEW_SALES.value,
    }),
    UserRole.ADMIN.value: frozenset(Capability.values),
}

# Roles a person may pick when signing up
SELF_REGISTRATION_ROLES = (UserRole.FAN, UserRole.MERCHANT)


def capabilities_for(user) -> FrozenSet[str]:
    if user is None or not user.is_authenticated:
        return frozenset({Capability.VIEW_EVENTS.value})
    if user.is_platform_admin:
        return ROLE_CAPABILITIES[UserRole.ADMIN.value]
    return ROLE_CAPABILITIES.get(user.role, frozenset())


def has_capability(user, capability) -> bool:
    return str(capability) in capabilities_for(user)


def can_sign_in_as(user, role) -> bool:
    """Admins may use every surface; everyone else only their own role's."""
    return user.is_platform_admin or user.role == role


def staffed_band_ids(user) -> List[str]:
    """Ids of the bands a user owns or belongs to, owned bands first."""
    owned = [str(pk) for pk in user.owned_bands.values_list('id', flat=True)]
    joined = [
        str(pk) for pk in user.bands.values_list('id', flat=True)
        if str(pk) not in owned
    ]
    return owned + joined
