import base64
import io
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from PIL import Image

from accounts.models import UserRole
from marketplace.images import decode_data_url, normalize_data_url
from marketplace.listings import ListingRepository
from marketplace.messaging import MessagingChannel, ProfileCache
from marketplace.models import Listing
from marketplace.test_factories import listing_fields, make_image_data_url, make_user


def _size(data_url):
    return Image.open(io.BytesIO(decode_data_url(data_url))).size


class NormalizeDataUrlTests(SimpleTestCase):

    def test_long_edge_is_capped_and_aspect_kept(self):
        out = normalize_data_url(make_image_data_url(1600, 800), max_dimension=800)
        self.assertTrue(out.startswith("data:image/jpeg;base64,"))
        self.assertEqual(_size(out), (800, 400))

    def test_small_images_are_not_upscaled(self):
        self.assertEqual(_size(normalize_data_url(make_image_data_url(40, 30))), (40, 30))

    def test_transparent_png_is_flattened(self):
        buf = io.BytesIO()
        Image.new("RGBA", (10, 10), (0, 0, 0, 0)).save(buf, format="PNG")
        url = "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
        self.assertEqual(_size(normalize_data_url(url)), (10, 10))

    def test_rejects_non_data_urls(self):
        for value in ("https://example.com/cat.jpg", "", "data:text/plain;base64,aGVsbG8="):
            with self.assertRaises(ValidationError):
                normalize_data_url(value)

    def test_decompression_bomb_is_a_validation_error(self):
        with mock.patch.object(Image, "MAX_IMAGE_PIXELS", 100):
            with self.assertRaises(ValidationError):
                normalize_data_url(make_image_data_url(40, 40))


class ListingImageLimitTests(TestCase):

    def setUp(self):
        self.owner = make_user("owner")
        self.repository = ListingRepository(messaging=MessagingChannel(profiles=ProfileCache()))

    def test_oversized_pixel_count_is_rejected_on_create(self):
        with mock.patch.object(Image, "MAX_IMAGE_PIXELS", 100):
            with self.assertRaises(ValidationError) as ctx:
                self.repository.create(listing_fields(images=[make_image_data_url(40, 40)]), owner_id=self.owner.pk)
        self.assertIn("images", ctx.exception.message_dict)
        self.assertFalse(Listing.objects.exists())

    @override_settings(MARKETPLACE_IMAGE_MAX_DATA_URL_CHARS=64)
    def test_oversized_data_url_is_rejected_before_decoding(self):
        with mock.patch("marketplace.forms.normalize_data_url") as normalize:
            with self.assertRaises(ValidationError) as ctx:
                self.repository.create(listing_fields(), owner_id=self.owner.pk)
        normalize.assert_not_called()
        self.assertIn("images", ctx.exception.message_dict)


class SeedMarketplaceAdminCommandTests(TestCase):

    def test_creates_admin(self):
        call_command("seed_marketplace_admin", "--username", "boss", "--email", "boss@example.com", "--password", "secret123")
        from django.contrib.auth import get_user_model
        user = get_user_model().objects.get(email="boss@example.com")
        self.assertEqual(user.role, UserRole.ADMIN)
        self.assertTrue(user.check_password("secret123"))
        self.assertFalse(user.is_staff)

    def test_promotes_existing_user(self):
        user = make_user("regular")
        call_command("seed_marketplace_admin", "--email", user.email)
        user.refresh_from_db()
        self.assertTrue(user.is_marketplace_admin)
