"""
Admin moderation: block/unblock users, remove listings with a stated reason,
and the counts shown on the admin dashboard.
"""
import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from accounts.models import UserStatus

from .exceptions import NotFoundError
from .models import Bid, Listing, ListingStatus
from .utils import sanitize_text

logger = logging.getLogger(__name__)


class AdminModeration:

    def __init__(self, listings=None):
        if listings is None:
            from .listings import ListingRepository

            listings = ListingRepository()
        self.listings = listings

    def _set_status(self, user_id, status):
        User = get_user_model()
        if not User.objects.filter(pk=user_id).update(status=status):
            raise NotFoundError("User not found")
        logger.info("User %s is now %s", user_id, status)

    def block_user(self, user_id) -> None:
        self._set_status(user_id, UserStatus.BLOCKED)

    def unblock_user(self, user_id) -> None:
        self._set_status(user_id, UserStatus.ACTIVE)

    def delete_listing_with_reason(self, listing_id, reason, admin_id) -> None:
        reason = sanitize_text(reason, max_len=500)
        if not reason:
            raise ValidationError({"reason": ["A reason is required to remove a listing."]})
        self.listings.delete(listing_id, reason=reason, admin_id=admin_id)

    def list_users(self) -> list:
        User = get_user_model()
        return list(User.objects.order_by("-date_joined"))

    def stats(self) -> dict:
        User = get_user_model()
        return {
            "users": User.objects.count(),
            "blocked_users": User.objects.filter(status=UserStatus.BLOCKED).count(),
            "active_listings": Listing.objects.filter(status=ListingStatus.ACTIVE).count(),
            "listings": Listing.objects.count(),
            "bids": Bid.objects.count(),
        }
