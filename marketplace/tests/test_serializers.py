"""
Unit tests for marketplace serializers.

Focus: listings and bids come back enriched with the related user and listing
summary so the client can render cards without extra requests.
"""
from decimal import Decimal

from django.test import TestCase

from marketplace.models import Listing
from marketplace.serializers import BidSerializer, ConversationSerializer, ListingSerializer
from marketplace.messaging import MessagingChannel
from marketplace.test_factories import make_bid, make_listing, make_user


class ListingSerializerTests(TestCase):

    def setUp(self):
        self.owner = make_user("seller")
        self.listing = make_listing(
            owner=self.owner,
            title="Cat Collar",
            description="Adjustable collar for cats, barely used.",
            category="Other",
            price=Decimal("10.50"),
        )

    def test_owner_summary(self):
        data = ListingSerializer(self.listing).data
        self.assertEqual(data["owner"], {"id": self.owner.pk, "username": "seller", "email": "seller@example.com"})

    def test_missing_owner_renders_unknown_user(self):
        orphan = Listing(title="Ghost", description="x" * 20, category="Other", price=Decimal("5"))
        data = ListingSerializer(orphan).data
        self.assertEqual(data["owner"]["username"], "Unknown User")

    def test_basic_fields_present(self):
        data = ListingSerializer(self.listing).data
        for key in ("id", "title", "description", "category", "price", "images", "location", "status", "created_at"):
            self.assertIn(key, data)
        self.assertEqual(data["status"], "active")


class BidSerializerTests(TestCase):

    def test_bid_enriched_with_bidder_and_listing(self):
        owner = make_user("owner")
        bidder = make_user("bidder")
        listing = make_listing(owner=owner, title="Desk lamp")
        bid = make_bid(listing=listing, bidder=bidder, amount=Decimal("15.00"))
        data = BidSerializer(bid).data
        self.assertEqual(data["bidder"], {"id": bidder.pk, "username": "bidder"})
        self.assertEqual(data["listing"], {"id": listing.pk, "title": "Desk lamp", "owner_id": owner.pk})
        self.assertEqual(data["status"], "pending")


class ConversationSerializerTests(TestCase):

    def test_participants_listed(self):
        a = make_user("alpha")
        b = make_user("bravo")
        conversation_id = MessagingChannel().create_conversation([a.pk, b.pk])
        conversation = MessagingChannel().get_conversation(conversation_id)
        data = ConversationSerializer(conversation).data
        self.assertEqual(sorted(data["participants"]), sorted([a.pk, b.pk]))
        self.assertEqual(data["last_message"], "")
