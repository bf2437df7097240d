from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from marketplace.models import Listing
from marketplace.test_factories import make_listing, make_user
from marketplace.wishlist import WishlistManager, WishlistOutcome


class WishlistToggleTests(TestCase):

    def setUp(self):
        self.manager = WishlistManager()
        self.owner = make_user("owner")
        self.user = make_user("saver")
        self.lamp = make_listing(owner=self.owner, title="Lamp")
        self.chair = make_listing(owner=self.owner, title="Chair")

    def test_add_then_remove(self):
        added = self.manager.toggle(self.user.pk, self.lamp.pk, set())
        self.assertEqual(added.outcome, WishlistOutcome.APPLIED)
        self.assertTrue(added.added)
        self.assertEqual(added.wishlist, {self.lamp.pk})
        self.assertEqual(self.manager.get(self.user.pk), {self.lamp.pk})

        removed = self.manager.toggle(self.user.pk, self.lamp.pk, added.wishlist)
        self.assertTrue(removed.applied)
        self.assertFalse(removed.added)
        self.assertEqual(removed.wishlist, set())

    def test_double_toggle_restores_original_set(self):
        original = {self.chair.pk}
        self.manager.toggle(self.user.pk, self.chair.pk, set())
        first = self.manager.toggle(self.user.pk, self.lamp.pk, original)
        second = self.manager.toggle(self.user.pk, self.lamp.pk, first.wishlist)
        self.assertEqual(second.wishlist, original)
        self.assertEqual(self.manager.get(self.user.pk), original)

    def test_adding_unknown_listing_is_reverted(self):
        result = self.manager.toggle(self.user.pk, 987654, {self.lamp.pk})
        self.assertEqual(result.outcome, WishlistOutcome.REVERTED)
        self.assertEqual(result.wishlist, {self.lamp.pk})
        self.assertTrue(result.reason)
        self.assertEqual(self.manager.get(self.user.pk), set())

    def test_removing_dangling_id_is_allowed(self):
        self.manager.toggle(self.user.pk, self.lamp.pk, set())
        lamp_id = self.lamp.pk
        self.lamp.delete()
        result = self.manager.toggle(self.user.pk, lamp_id, {lamp_id})
        self.assertTrue(result.applied)
        self.assertEqual(self.manager.get(self.user.pk), set())

    def test_write_failure_reverts_to_current_set(self):
        with mock.patch("django.db.models.query.QuerySet.update", side_effect=DatabaseError("disk full")):
            result = self.manager.toggle(self.user.pk, self.lamp.pk, {self.chair.pk})
        self.assertEqual(result.outcome, WishlistOutcome.REVERTED)
        self.assertEqual(result.wishlist, {self.chair.pk})
        self.assertEqual(result.reason, "disk full")
        self.assertEqual(self.manager.get(self.user.pk), set())

    def test_last_write_wins(self):
        # Two clients holding the same stale set: the second write replaces the first
        self.manager.toggle(self.user.pk, self.lamp.pk, set())
        self.manager.toggle(self.user.pk, self.chair.pk, set())
        self.assertEqual(self.manager.get(self.user.pk), {self.chair.pk})

    def test_digit_strings_are_accepted(self):
        result = self.manager.toggle(self.user.pk, self.lamp.pk, [str(self.chair.pk)])
        self.assertEqual(result.wishlist, {self.chair.pk, self.lamp.pk})

    def test_non_integer_ids_are_rejected(self):
        for current in ([1.5], [True], ["1.5"], ["abc"], [None], "12", {"id": 1}):
            with self.assertRaises((TypeError, ValueError)):
                self.manager.toggle(self.user.pk, self.lamp.pk, current)
        self.assertEqual(self.manager.get(self.user.pk), set())


class WishlistResolveTests(TestCase):

    def test_resolve_skips_deleted_listings(self):
        owner = make_user("owner")
        kept = make_listing(owner=owner, title="Kept")
        gone = make_listing(owner=owner, title="Gone")
        gone_id = gone.pk
        Listing.objects.filter(pk=gone_id).delete()
        resolved = WishlistManager().resolve([kept.pk, gone_id])
        self.assertEqual([l.pk for l in resolved], [kept.pk])

    def test_resolve_empty(self):
        self.assertEqual(WishlistManager().resolve([]), [])
