"""
Bid Repository: offers made against listings.

Status changes are not guarded: any status in BidStatus may follow any other.
"""
import logging

from django.core.exceptions import ValidationError

from .exceptions import BusinessRuleError, NotFoundError
from .forms import BidForm, form_validation_error
from .models import Bid, BidStatus, Listing, ListingStatus

logger = logging.getLogger(__name__)


class BidRepository:

    def _enriched(self):
        return Bid.objects.select_related("bidder", "listing").order_by("-created_at", "-id")

    def create(self, listing_id, bidder_id, offer_fields: dict) -> int:
        listing = Listing.objects.filter(pk=listing_id).first()
        if listing is None:
            raise NotFoundError("Listing not found")
        if listing.status != ListingStatus.ACTIVE:
            raise BusinessRuleError("This listing is no longer accepting offers")
        if str(listing.owner_id) == str(bidder_id):
            raise BusinessRuleError("You cannot bid on your own listing")

        form = BidForm(data=offer_fields)
        if not form.is_valid():
            raise form_validation_error(form)
        bid = form.save(commit=False)
        bid.listing = listing
        bid.bidder_id = bidder_id
        bid.status = BidStatus.PENDING
        bid.save()
        logger.info("Bid %s placed on listing %s by user %s", bid.pk, listing.pk, bidder_id)
        return bid.pk

    def get_one(self, bid_id):
        return self._enriched().filter(pk=bid_id).first()

    def get_for_listing(self, listing_id) -> list:
        return list(self._enriched().filter(listing_id=listing_id))

    def get_my_bids(self, bidder_id) -> list:
        return list(self._enriched().filter(bidder_id=bidder_id))

    def get_all(self) -> list:
        return list(self._enriched())

    def update_status(self, bid_id, new_status) -> None:
        if new_status not in BidStatus.values:
            raise ValidationError({"status": [f"Unknown bid status: {new_status}"]})
        updated = Bid.objects.filter(pk=bid_id).update(status=new_status)
        if not updated:
            raise NotFoundError("Bid not found")
        logger.info("Bid %s moved to %s", bid_id, new_status)
