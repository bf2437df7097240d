"""
Access gates for the marketplace API.

IsMarketplaceAdmin admits superusers and users whose role is ``admin``.
is_listing_owner is the object-level check the views apply after loading a
listing.
"""
from rest_framework.permissions import BasePermission


class IsMarketplaceAdmin(BasePermission):
    message = "Marketplace admin access required"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_marketplace_admin", False))


def is_listing_owner(user, listing) -> bool:
    return bool(user and user.is_authenticated and listing is not None and listing.owner_id == user.pk)
