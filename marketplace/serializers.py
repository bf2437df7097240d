"""
DRF serializers for marketplace responses: Listing, Bid and
Conversation. Listings and bids are returned enriched with the related user
and listing summary so clients never need a second round trip.
"""
from rest_framework import serializers

from .models import Bid, Conversation, Listing

UNKNOWN_USER = "Unknown User"


def user_summary(user, include_email=False):
    if user is None:
        return {"id": None, "username": UNKNOWN_USER}
    data = {"id": user.pk, "username": user.username}
    if include_email:
        data["email"] = user.email
    return data


class ListingSerializer(serializers.ModelSerializer):
    """Listing with its owner resolved to id, username and email."""

    owner = serializers.SerializerMethodField()

    class Meta:
        model = Listing
        fields = [
            "id",
            "owner",
            "title",
            "description",
            "category",
            "price",
            "images",
            "location",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_owner(self, obj):
        return user_summary(getattr(obj, "owner", None), include_email=True)


class BidSerializer(serializers.ModelSerializer):
    bidder = serializers.SerializerMethodField()
    listing = serializers.SerializerMethodField()

    class Meta:
        model = Bid
        fields = ["id", "listing", "bidder", "offered_items", "amount", "message", "status", "created_at"]
        read_only_fields = fields

    def get_bidder(self, obj):
        return user_summary(getattr(obj, "bidder", None))

    def get_listing(self, obj):
        listing = getattr(obj, "listing", None)
        if listing is None:
            return {"id": obj.listing_id, "title": "Unknown Listing"}
        return {"id": listing.pk, "title": listing.title, "owner_id": listing.owner_id}


class ConversationSerializer(serializers.ModelSerializer):
    participants = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = ["id", "participants", "last_message", "created_at", "updated_at"]
        read_only_fields = fields

    def get_participants(self, obj):
        return list(obj.participant_ids)
