from rest_framework import permissions

from .models import Band, Event, Product


def is_band_staff(user, band):
    """Band members and platform admins may manage a band's catalog."""
    if user is None or not user.is_authenticated:
        return False
    return user.is_platform_admin or band.has_member(user)


class IsBandMember(permissions.BasePermission):
    """
    Permission: safe methods for everyone, writes for band staff.

    Works for Band, Product (via its band) and Event (via any participating
    band) instances.
    """

    message = 'You must be a member of this band.'

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True

        user = request.user
        if isinstance(obj, Band):
            return is_band_staff(user, obj)
        if isinstance(obj, Product):
            return is_band_staff(user, obj.band)
        if isinstance(obj, Event):
            if user.is_authenticated and user.is_platform_admin:
                return True
            return any(is_band_staff(user, band) for band in obj.merchants.all())
        return False


class IsBandOwner(permissions.BasePermission):
    """
    Permission: User must be the band owner.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a Band instance
        return obj.owner_id == request.user.pk or request.user.is_platform_admin
