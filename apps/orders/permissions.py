from rest_framework import permissions

from apps.catalog.permissions import is_band_staff


class IsOrderOwner(permissions.BasePermission):
    """
    Permission: User must be the fan who placed the order.
    """

    message = 'Only the purchaser can view this pickup code.'

    def has_object_permission(self, request, view, obj):
        # obj is an Order instance
        return obj.user_id == request.user.pk


class IsOrderOwnerOrBandStaff(permissions.BasePermission):
    """
    Permission: Purchaser, staff of the selling band, or a platform admin.
    """

    def has_object_permission(self, request, view, obj):
        if obj.user_id == request.user.pk:
            return True
        return is_band_staff(request.user, obj.band)
