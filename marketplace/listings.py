"""
Listing Repository: create, read, update and archive-then-delete listings.

Category filtering runs in the database; free-text search is applied to the
retrieved rows as a case-insensitive substring match over title, description
and category.
"""
import logging

from django.core.exceptions import ValidationError
from django.db.models import Case, IntegerField, Value, When
from django.utils import timezone

from .exceptions import NotFoundError
from .forms import ListingForm, form_validation_error
from .models import DEFAULT_DELETION_REASON, ArchivedListing, Listing, ListingStatus

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"
IMMUTABLE_FIELDS = ("owner", "owner_id")

DELETION_NOTICE = 'Your listing "{title}" was removed by an administrator. Reason: {reason}'


def _matches(listing: Listing, needle: str) -> bool:
    haystack = " ".join([listing.title or "", listing.description or "", listing.category or ""])
    return needle in haystack.lower()


class ListingRepository:
    """Persistence operations over Listing records."""

    def __init__(self, messaging=None):
        if messaging is None:
            from .messaging import MessagingChannel

            messaging = MessagingChannel()
        self.messaging = messaging

    def create(self, fields: dict, owner_id) -> int:
        form = ListingForm(data=fields)
        if not form.is_valid():
            raise form_validation_error(form)
        listing = form.save(commit=False)
        listing.owner_id = owner_id
        listing.status = ListingStatus.ACTIVE
        listing.save()
        logger.info("Listing %s created by user %s", listing.pk, owner_id)
        return listing.pk

    def get_all(self, category=None, search=None) -> list:
        qs = Listing.objects.select_related("owner").annotate(
            inactive_rank=Case(
                When(status=ListingStatus.ACTIVE, then=Value(0)),
                default=Value(1),
                output_field=IntegerField(),
            )
        ).order_by("inactive_rank", "-created_at")
        if category and category != ALL_CATEGORIES:
            qs = qs.filter(category=category)
        listings = list(qs)
        needle = (search or "").strip().lower()
        if needle:
            listings = [listing for listing in listings if _matches(listing, needle)]
        return listings

    def get_one(self, listing_id):
        return Listing.objects.select_related("owner").filter(pk=listing_id).first()

    def get_my_listings(self, owner_id) -> list:
        return list(Listing.objects.filter(owner_id=owner_id).order_by("-created_at"))

    def update(self, listing_id, fields: dict) -> None:
        """Apply a partial update; the owner can never be changed."""
        changed_owner = [name for name in IMMUTABLE_FIELDS if name in fields]
        if changed_owner:
            raise ValidationError({changed_owner[0]: ["The owner of a listing cannot be changed."]})
        listing = Listing.objects.filter(pk=listing_id).first()
        if listing is None:
            raise NotFoundError("Listing not found")

        data = {
            "title": listing.title,
            "description": listing.description,
            "category": listing.category,
            "price": listing.price,
            "images": list(listing.images or []),
            "location": listing.location,
        }
        data.update({k: v for k, v in fields.items() if k in data})
        form = ListingForm(data=data, instance=listing)
        if not form.is_valid():
            raise form_validation_error(form)
        listing = form.save(commit=False)
        if "status" in fields:
            if fields["status"] not in ListingStatus.values:
                raise ValidationError({"status": ["Unknown listing status."]})
            listing.status = fields["status"]
        listing.updated_at = timezone.now()
        listing.save()
        logger.info("Listing %s updated", listing.pk)

    def delete(self, listing_id, reason=None, admin_id=None) -> None:
        """Archive the listing, then remove it.

        When an administrator supplies a reason the owner is told through a
        system message first. The three steps are not atomic.
        """
        listing = Listing.objects.filter(pk=listing_id).first()
        if listing is None:
            raise NotFoundError("Listing not found")

        if reason and admin_id and listing.owner_id:
            self._notify_owner(listing, reason, admin_id)

        ArchivedListing.objects.create(
            original_id=listing.pk,
            owner_id=listing.owner_id,
            title=listing.title,
            category=listing.category,
            snapshot=listing.to_snapshot(),
            deleted_at=timezone.now(),
            deletion_reason=reason or DEFAULT_DELETION_REASON,
            deleted_by_id=admin_id,
        )
        listing.delete()
        logger.info("Listing %s deleted (by=%s, reason=%s)", listing_id, admin_id or "owner", reason or "-")

    def _notify_owner(self, listing, reason, admin_id):
        try:
            conversation_id = self.messaging.create_conversation([admin_id, listing.owner_id])
            self.messaging.send_message(
                conversation_id,
                admin_id,
                DELETION_NOTICE.format(title=listing.title, reason=reason),
                is_system=True,
            )
        except Exception:
            logger.warning("Could not notify owner of removed listing %s", listing.pk, exc_info=True)
