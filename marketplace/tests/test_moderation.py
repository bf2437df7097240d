from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase

from marketplace.exceptions import NotFoundError
from marketplace.listings import ListingRepository
from marketplace.messaging import MessagingChannel, ProfileCache
from marketplace.models import ArchivedListing, Listing, ListingStatus, Message
from marketplace.moderation import AdminModeration
from marketplace.test_factories import make_admin, make_bid, make_listing, make_user

User = get_user_model()


class AdminModerationTests(TestCase):

    def setUp(self):
        self.moderation = AdminModeration(
            listings=ListingRepository(messaging=MessagingChannel(profiles=ProfileCache()))
        )
        self.admin = make_admin()
        self.owner = make_user("owner")
        self.listing = make_listing(owner=self.owner, title="Counterfeit watch")

    def test_block_and_unblock(self):
        self.moderation.block_user(self.owner.pk)
        self.assertTrue(User.objects.get(pk=self.owner.pk).is_blocked)
        self.moderation.unblock_user(self.owner.pk)
        self.assertFalse(User.objects.get(pk=self.owner.pk).is_blocked)

    def test_block_unknown_user(self):
        with self.assertRaises(NotFoundError):
            self.moderation.block_user(404404)

    def test_delete_with_reason_archives_and_notifies(self):
        self.moderation.delete_listing_with_reason(self.listing.pk, "Counterfeit goods", self.admin.pk)
        self.assertFalse(Listing.objects.filter(pk=self.listing.pk).exists())
        archived = ArchivedListing.objects.get(original_id=self.listing.pk)
        self.assertEqual(archived.deletion_reason, "Counterfeit goods")
        self.assertEqual(archived.deleted_by_id, self.admin.pk)
        self.assertTrue(Message.objects.filter(is_system=True, sender=self.admin, text__contains="Counterfeit goods").exists())

    def test_reason_is_mandatory(self):
        for reason in ("", "   ", None):
            with self.assertRaises(ValidationError):
                self.moderation.delete_listing_with_reason(self.listing.pk, reason, self.admin.pk)
        self.assertTrue(Listing.objects.filter(pk=self.listing.pk).exists())

    def test_every_archived_listing_has_a_reason(self):
        other = make_listing(owner=self.owner, title="Plain item")
        ListingRepository(messaging=MessagingChannel(profiles=ProfileCache())).delete(other.pk)
        self.moderation.delete_listing_with_reason(self.listing.pk, "Spam", self.admin.pk)
        self.assertFalse(ArchivedListing.objects.filter(deletion_reason="").exists())
        self.assertEqual(ArchivedListing.objects.count(), 2)

    def test_list_users_and_stats(self):
        make_listing(owner=self.owner, status=ListingStatus.TRADED)
        make_bid(listing=self.listing, bidder=self.admin)
        self.moderation.block_user(self.owner.pk)
        self.assertEqual({u.pk for u in self.moderation.list_users()}, {self.admin.pk, self.owner.pk})
        self.assertEqual(
            self.moderation.stats(),
            {"users": 2, "blocked_users": 1, "active_listings": 1, "listings": 2, "bids": 1},
        )
