from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from marketplace.bids import BidRepository
from marketplace.exceptions import BusinessRuleError, NotFoundError
from marketplace.models import Bid, BidStatus, ListingStatus
from marketplace.test_factories import make_bid, make_listing, make_user


class BidCreateTests(TestCase):

    def setUp(self):
        self.repo = BidRepository()
        self.owner = make_user("owner")
        self.bidder = make_user("bidder")
        self.listing = make_listing(owner=self.owner, title="Camera")

    def test_create_pending_bid(self):
        bid_id = self.repo.create(self.listing.pk, self.bidder.pk, {"offered_items": "Tripod and lens", "message": "Interested!"})
        bid = Bid.objects.get(pk=bid_id)
        self.assertEqual(bid.status, BidStatus.PENDING)
        self.assertEqual(bid.bidder, self.bidder)
        self.assertEqual(bid.listing, self.listing)
        self.assertIsNone(bid.amount)

    def test_amount_only_offer(self):
        bid_id = self.repo.create(self.listing.pk, self.bidder.pk, {"amount": "150.00"})
        self.assertEqual(Bid.objects.get(pk=bid_id).amount, Decimal("150.00"))

    def test_owner_cannot_bid_on_own_listing(self):
        with self.assertRaises(BusinessRuleError):
            self.repo.create(self.listing.pk, self.owner.pk, {"offered_items": "Anything"})
        self.assertFalse(Bid.objects.exists())

    def test_inactive_listing_rejects_bids(self):
        for status in (ListingStatus.RESERVED, ListingStatus.TRADED, ListingStatus.INACTIVE):
            self.listing.status = status
            self.listing.save()
            with self.assertRaises(BusinessRuleError):
                self.repo.create(self.listing.pk, self.bidder.pk, {"offered_items": "Books"})

    def test_missing_listing(self):
        with self.assertRaises(NotFoundError):
            self.repo.create(99999, self.bidder.pk, {"offered_items": "Books"})

    def test_offer_needs_items_or_amount(self):
        with self.assertRaises(ValidationError):
            self.repo.create(self.listing.pk, self.bidder.pk, {"offered_items": "   ", "message": "hi"})
        with self.assertRaises(ValidationError) as ctx:
            self.repo.create(self.listing.pk, self.bidder.pk, {"amount": "-5"})
        self.assertIn("amount", ctx.exception.message_dict)


class BidQueryTests(TestCase):

    def setUp(self):
        self.repo = BidRepository()
        self.owner = make_user("owner")
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.listing = make_listing(owner=self.owner, title="Bike")
        self.other_listing = make_listing(owner=self.owner, title="Helmet")
        now = timezone.now()
        self.first = make_bid(listing=self.listing, bidder=self.alice)
        self.second = make_bid(listing=self.listing, bidder=self.bob)
        self.third = make_bid(listing=self.other_listing, bidder=self.alice)
        for offset, bid in enumerate([self.third, self.second, self.first]):
            Bid.objects.filter(pk=bid.pk).update(created_at=now - timedelta(minutes=offset))

    def test_get_for_listing_newest_first(self):
        bids = self.repo.get_for_listing(self.listing.pk)
        self.assertEqual([b.pk for b in bids], [self.second.pk, self.first.pk])
        self.assertEqual(bids[0].bidder.username, "bob")
        self.assertEqual(bids[0].listing.title, "Bike")

    def test_get_my_bids(self):
        self.assertEqual([b.pk for b in self.repo.get_my_bids(self.alice.pk)], [self.third.pk, self.first.pk])

    def test_get_all(self):
        self.assertEqual([b.pk for b in self.repo.get_all()], [self.third.pk, self.second.pk, self.first.pk])

    def test_unknown_references_read_as_empty(self):
        self.assertEqual(self.repo.get_for_listing(123456), [])
        self.assertIsNone(self.repo.get_one(123456))


class BidStatusTests(TestCase):

    def setUp(self):
        self.repo = BidRepository()
        owner = make_user("owner")
        self.bid = make_bid(listing=make_listing(owner=owner), bidder=make_user("bidder"))

    def test_update_status(self):
        self.repo.update_status(self.bid.pk, BidStatus.ACCEPTED)
        self.bid.refresh_from_db()
        self.assertEqual(self.bid.status, BidStatus.ACCEPTED)

    def test_transitions_are_not_guarded(self):
        self.repo.update_status(self.bid.pk, BidStatus.COMPLETED)
        self.repo.update_status(self.bid.pk, BidStatus.PENDING)
        self.bid.refresh_from_db()
        self.assertEqual(self.bid.status, BidStatus.PENDING)

    def test_status_outside_enum(self):
        with self.assertRaises(ValidationError):
            self.repo.update_status(self.bid.pk, "cancelled")
        self.bid.refresh_from_db()
        self.assertEqual(self.bid.status, BidStatus.PENDING)

    def test_missing_bid(self):
        with self.assertRaises(NotFoundError):
            self.repo.update_status(55555, BidStatus.REJECTED)
