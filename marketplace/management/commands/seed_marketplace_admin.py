from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
import os

from accounts.models import UserRole, UserStatus


class Command(BaseCommand):
    help = "Create a marketplace admin account, or promote an existing user to admin"

    def add_arguments(self, parser):
        parser.add_argument("--username", default=os.getenv("MARKETPLACE_ADMIN_USERNAME", "mpadmin"))
        parser.add_argument("--email", default=os.getenv("MARKETPLACE_ADMIN_EMAIL", "mpadmin@example.com"))
        parser.add_argument("--password", default=os.getenv("MARKETPLACE_ADMIN_PASSWORD", "admin123"))

    def handle(self, *args, **options):
        User = get_user_model()
        username = options["username"]
        email = options["email"]

        user, created = User.objects.get_or_create(email=email, defaults={"username": username})
        if created:
            user.set_password(options["password"])
            self.stdout.write(self.style.SUCCESS(f"Created user '{user.username}'"))
        else:
            self.stdout.write(self.style.WARNING(f"User '{user.username}' already exists"))

        if user.role == UserRole.ADMIN and user.status == UserStatus.ACTIVE and not created:
            self.stdout.write(self.style.WARNING(f"'{user.username}' is already a marketplace admin"))
            return

        # Moderation rights come from the role, not from staff/superuser flags
        user.role = UserRole.ADMIN
        user.status = UserStatus.ACTIVE
        user.save()
        self.stdout.write(self.style.SUCCESS(f"'{user.username}' is now a marketplace admin"))
