"""Tests for the accounts API: registration, sign-in, profile, blocking and password reset."""
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from rest_framework.test import APIClient

from accounts.models import UserStatus
from accounts.signals import username_from_email
from accounts.tasks import send_password_reset_email
from marketplace.test_factories import make_listing

User = get_user_model()


class UserModelTests(TestCase):

    def test_defaults(self):
        user = User.objects.create_user(username="alice", email="alice@example.com", password="secret123")
        self.assertEqual(user.role, "user")
        self.assertEqual(user.status, "active")
        self.assertEqual(user.wishlist, [])
        self.assertFalse(user.is_blocked)
        self.assertFalse(user.is_marketplace_admin)

    def test_admin_role_and_superuser_are_marketplace_admins(self):
        admin = User.objects.create_user(username="mod", email="mod@example.com", password="secret123", role="admin")
        root = User.objects.create_superuser(username="root", email="root@example.com", password="secret123")
        self.assertTrue(admin.is_marketplace_admin)
        self.assertTrue(root.is_marketplace_admin)

    def test_blank_username_is_backfilled_from_email(self):
        user = User(email="jane.doe@example.com")
        user.save()
        self.assertEqual(user.username, username_from_email("jane.doe@example.com"))
        self.assertEqual(user.username, "jane_doe")
        other = User(email="jane.doe@example.org")
        other.save()
        self.assertEqual(other.username, "jane_doe1")


class RegistrationAndLoginTests(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_register_creates_and_signs_in(self):
        resp = self.client.post(
            reverse("accounts:register"),
            {"username": "new_user", "email": "New@Example.com", "password1": "strongpass99", "password2": "strongpass99"},
            format="json",
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["email"], "new@example.com")
        self.assertEqual(self.client.get(reverse("accounts:me")).status_code, 200)

    def test_register_rejects_bad_username_and_duplicate_email(self):
        User.objects.create_user(username="taken", email="dup@example.com", password="secret123")
        resp = self.client.post(
            reverse("accounts:register"),
            {"username": "no spaces!", "email": "dup@example.com", "password1": "strongpass99", "password2": "strongpass99"},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("username", resp.data["field_errors"])
        self.assertIn("Email already registered", resp.data["field_errors"]["email"])

    def test_login_with_email(self):
        User.objects.create_user(username="loginuser", email="login@example.com", password="pass1234")
        resp = self.client.post(reverse("accounts:login"), {"email": "login@example.com", "password": "pass1234"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["username"], "loginuser")

    def test_login_wrong_password(self):
        User.objects.create_user(username="loginuser", email="login@example.com", password="pass1234")
        resp = self.client.post(reverse("accounts:login"), {"email": "login@example.com", "password": "nope"}, format="json")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.data["message"], "Invalid email or password")

    def test_blocked_user_cannot_log_in(self):
        User.objects.create_user(username="blocked", email="blocked@example.com", password="pass1234", status=UserStatus.BLOCKED)
        resp = self.client.post(reverse("accounts:login"), {"email": "blocked@example.com", "password": "pass1234"}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "blocked")
        self.assertEqual(self.client.get(reverse("accounts:me")).status_code, 403)

    def test_logout(self):
        user = User.objects.create_user(username="someone", email="someone@example.com", password="pass1234")
        self.client.force_login(user)
        self.assertEqual(self.client.post(reverse("accounts:logout")).status_code, 200)
        self.assertEqual(self.client.get(reverse("accounts:me")).status_code, 403)


class BlockedUserMiddlewareTests(TestCase):

    def test_session_ends_once_user_is_blocked(self):
        client = APIClient()
        user = User.objects.create_user(username="victim", email="victim@example.com", password="pass1234")
        client.force_login(user)
        self.assertEqual(client.get(reverse("accounts:me")).status_code, 200)

        User.objects.filter(pk=user.pk).update(status=UserStatus.BLOCKED)
        self.assertEqual(client.get(reverse("accounts:me")).status_code, 403)
        # The session is gone, not just rejected once
        User.objects.filter(pk=user.pk).update(status=UserStatus.ACTIVE)
        self.assertEqual(client.get(reverse("accounts:me")).status_code, 403)


class ProfileTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="profiled", email="profiled@example.com", password="pass1234")
        self.client.force_login(self.user)

    def test_patch_updates_editable_fields_only(self):
        resp = self.client.patch(
            reverse("accounts:me"),
            {"username": "renamed", "location": "Davao", "email": "other@example.com", "role": "admin"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.username, "renamed")
        self.assertEqual(self.user.location, "Davao")
        self.assertEqual(self.user.email, "profiled@example.com")
        self.assertEqual(self.user.role, "user")

    def test_username_rules(self):
        resp = self.client.patch(reverse("accounts:me"), {"username": "ab"}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("username", resp.data["field_errors"])


class PublicProfileTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.seller = User.objects.create_user(username="seller", email="seller@example.com", password="pass1234", location="Iloilo")

    def test_profile_shows_listings_without_email(self):
        make_listing(owner=self.seller, title="Old radio")
        make_listing(owner=self.seller, title="Fan")
        resp = self.client.get(reverse("accounts:public_profile", args=[self.seller.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["user"]["username"], "seller")
        self.assertEqual(resp.data["user"]["location"], "Iloilo")
        self.assertIn("date_joined", resp.data["user"])
        self.assertNotIn("email", resp.data["user"])
        self.assertEqual(resp.data["listings_count"], 2)
        self.assertEqual(sorted(l["title"] for l in resp.data["listings"]), ["Fan", "Old radio"])

    def test_unknown_user_is_404(self):
        resp = self.client.get(reverse("accounts:public_profile", args=[424242]))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], "not_found")


@override_settings(PASSWORD_RESET_FRONTEND_URL="http://localhost:5173/reset-password")
class PasswordResetTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="forgetful", email="forgetful@example.com", password="oldpass1")

    def test_request_sends_email_with_frontend_link(self):
        resp = self.client.post(reverse("accounts:password_reset"), {"email": "forgetful@example.com"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("http://localhost:5173/reset-password/", mail.outbox[0].body)

    def test_unknown_email_still_answers_ok(self):
        resp = self.client.post(reverse("accounts:password_reset"), {"email": "nobody@example.com"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(mail.outbox), 0)

    def test_delivery_failure_does_not_fail_the_request(self):
        with mock.patch("accounts.tasks.deliver_email", side_effect=OSError("smtp down")):
            resp = self.client.post(reverse("accounts:password_reset"), {"email": "forgetful@example.com"}, format="json")
        self.assertEqual(resp.status_code, 200)

    def test_task_reports_failure(self):
        with mock.patch("accounts.tasks.deliver_email", side_effect=OSError("smtp down")):
            self.assertFalse(send_password_reset_email(user_id=self.user.pk))
        self.assertFalse(send_password_reset_email(user_id=self.user.pk + 1000))

    @override_settings(BREVO_API_KEY="test-key")
    def test_brevo_used_when_configured(self):
        with mock.patch("accounts.utils.email.requests.post") as post:
            post.return_value.raise_for_status.return_value = None
            self.assertTrue(send_password_reset_email(user_id=self.user.pk))
        self.assertEqual(post.call_args.kwargs["headers"]["api-key"], "test-key")
        self.assertEqual(post.call_args.kwargs["json"]["to"], [{"email": "forgetful@example.com"}])
        self.assertEqual(len(mail.outbox), 0)

    def test_confirm_sets_new_password(self):
        uid = urlsafe_base64_encode(force_bytes(self.user.pk))
        token = default_token_generator.make_token(self.user)
        resp = self.client.post(
            reverse("accounts:password_reset_confirm"),
            {"uid": uid, "token": token, "new_password": "newpass99"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("newpass99"))

    def test_confirm_rejects_bad_token(self):
        uid = urlsafe_base64_encode(force_bytes(self.user.pk))
        resp = self.client.post(
            reverse("accounts:password_reset_confirm"),
            {"uid": uid, "token": "bad-token", "new_password": "newpass99"},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["message"], "Invalid or expired token")
