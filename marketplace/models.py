"""
Marketplace domain models: Listing, ArchivedListing, Bid, Conversation, Message.

Listings carry their images inline as data URLs. Deleted listings are copied to
ArchivedListing before removal. Conversations are keyed by the sorted pair of
participant ids so that opening a conversation twice yields the same row.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

MIN_PRICE = Decimal("1")
MAX_PRICE = Decimal("100000000")


class TimeStampedModel(models.Model):
    """Abstract base model that adds created_at and updated_at timestamps."""
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ListingCategory(models.TextChoices):
    ELECTRONICS = "Electronics", "Electronics"
    FURNITURE = "Furniture", "Furniture"
    BOOKS = "Books", "Books"
    CLOTHING = "Clothing", "Clothing"
    VEHICLES = "Vehicles", "Vehicles"
    SERVICES = "Services", "Services"
    OTHER = "Other", "Other"


class ListingStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    RESERVED = "reserved", "Reserved"
    TRADED = "traded", "Traded"
    INACTIVE = "inactive", "Inactive"


class Listing(TimeStampedModel):
    """A good, service or skill offered for barter by its owner."""
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="listings")
    title = models.CharField(max_length=100, db_index=True)
    description = models.TextField(max_length=150)
    category = models.CharField(max_length=20, choices=ListingCategory.choices, db_index=True)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(MIN_PRICE), MaxValueValidator(MAX_PRICE)],
    )
    images = models.JSONField(default=list, blank=True)
    location = models.CharField(max_length=120, blank=True)
    status = models.CharField(
        max_length=16, choices=ListingStatus.choices, default=ListingStatus.ACTIVE, db_index=True
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["category", "status"], name="idx_listing_cat_status"),
            models.Index(fields=["owner", "status"], name="idx_listing_owner_status"),
            models.Index(fields=["-created_at"], name="idx_listing_created_desc"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.title} ({self.get_status_display()})"

    def to_snapshot(self) -> dict:
        """Full JSON-safe copy of the record, used for archival."""
        return {
            "id": self.pk,
            "owner": self.owner_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "price": str(self.price),
            "images": list(self.images or []),
            "location": self.location,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


DEFAULT_DELETION_REASON = "No reason provided"


class ArchivedListing(models.Model):
    """Retained copy of a deleted listing with deletion metadata."""
    original_id = models.BigIntegerField(db_index=True)
    owner_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    title = models.CharField(max_length=100)
    category = models.CharField(max_length=20, blank=True)
    snapshot = models.JSONField(default=dict)
    deleted_at = models.DateTimeField(default=timezone.now, db_index=True)
    deletion_reason = models.TextField(default=DEFAULT_DELETION_REASON)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="archived_listings",
    )

    class Meta:
        ordering = ["-deleted_at"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Archived #{self.original_id} {self.title}"


class BidStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    COMPLETED = "completed", "Completed"


class Bid(models.Model):
    """An offer made by one user against another user's listing."""
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="bids")
    bidder = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="bids")
    offered_items = models.TextField(max_length=500, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    message = models.TextField(max_length=500, blank=True)
    status = models.CharField(max_length=12, choices=BidStatus.choices, default=BidStatus.PENDING, db_index=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["listing", "-created_at"], name="idx_bid_listing_created"),
            models.Index(fields=["bidder", "-created_at"], name="idx_bid_bidder_created"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Bid #{self.pk} on {self.listing_id} ({self.get_status_display()})"


def conversation_id_for(first, second) -> str:
    """Deterministic conversation id: participant ids sorted and joined."""
    return "_".join(sorted([str(first), str(second)]))


class Conversation(models.Model):
    """Pairwise messaging thread between two users."""
    id = models.CharField(primary_key=True, max_length=64, editable=False)
    participant_a = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="conversations_as_a"
    )
    participant_b = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="conversations_as_b"
    )
    last_message = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["participant_a", "-updated_at"], name="idx_conv_a_updated"),
            models.Index(fields=["participant_b", "-updated_at"], name="idx_conv_b_updated"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Conversation {self.pk}"

    @property
    def participant_ids(self):
        return (self.participant_a_id, self.participant_b_id)

    def has_participant(self, user_id) -> bool:
        return str(user_id) in {str(self.participant_a_id), str(self.participant_b_id)}

    def other_participant_id(self, user_id):
        return self.participant_b_id if str(user_id) == str(self.participant_a_id) else self.participant_a_id


class Message(models.Model):
    """An individual, append-only message within a conversation."""
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="sent_messages")
    text = models.TextField()
    is_system = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["conversation", "created_at"], name="idx_msg_conv_created"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Msg #{self.pk} in {self.conversation_id}"
