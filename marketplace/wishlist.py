"""
Wishlist Manager: a per-user set of saved listing ids.

The caller passes the set it currently holds and gets back the set to show,
together with whether the change was persisted. Persistence replaces the
whole stored set, so two concurrent toggles by the same user race and the
last write wins.
"""
import enum
import logging
from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.db import DatabaseError

from .models import Listing

logger = logging.getLogger(__name__)


class WishlistOutcome(enum.Enum):
    APPLIED = "applied"
    REVERTED = "reverted"


@dataclass(frozen=True)
class WishlistResult:
    outcome: WishlistOutcome
    wishlist: frozenset
    reason: str = ""
    added: bool = False

    @property
    def applied(self) -> bool:
        return self.outcome is WishlistOutcome.APPLIED


def _as_id(value) -> int:
    if isinstance(value, bool):
        raise TypeError(f"Not a listing id: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise ValueError(f"Not a listing id: {value!r}")


def _as_ids(values) -> set:
    """Listing ids from ints or digit strings; anything else is rejected."""
    if values is None:
        return set()
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise TypeError("Wishlist ids must be a list")
    return {_as_id(v) for v in values}


class WishlistManager:

    def get(self, user_id) -> set:
        User = get_user_model()
        stored = User.objects.filter(pk=user_id).values_list("wishlist", flat=True).first()
        return _as_ids(stored)

    def toggle(self, user_id, listing_id, current_set) -> WishlistResult:
        """Add ``listing_id`` if absent from ``current_set``, otherwise remove it."""
        current = frozenset(_as_ids(current_set))
        listing_id = _as_id(listing_id)
        adding = listing_id not in current

        if adding and not Listing.objects.filter(pk=listing_id).exists():
            return WishlistResult(WishlistOutcome.REVERTED, current, reason="Listing not found")

        new = current | {listing_id} if adding else current - {listing_id}
        User = get_user_model()
        try:
            updated = User.objects.filter(pk=user_id).update(wishlist=sorted(new))
        except DatabaseError as exc:
            logger.warning("Wishlist write for user %s failed", user_id, exc_info=True)
            return WishlistResult(WishlistOutcome.REVERTED, current, reason=str(exc) or "Could not save wishlist")
        if not updated:
            return WishlistResult(WishlistOutcome.REVERTED, current, reason="User not found")
        return WishlistResult(WishlistOutcome.APPLIED, frozenset(new), added=adding)

    def resolve(self, ids) -> list:
        """Listings for ``ids``; ids whose listing no longer exists are skipped."""
        listings = []
        for listing_id in ids or []:
            listing = Listing.objects.select_related("owner").filter(pk=listing_id).first()
            if listing is not None:
                listings.append(listing)
        return listings
