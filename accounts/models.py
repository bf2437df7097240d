"""
Accounts models: custom User carrying the marketplace profile.
- User extends AbstractUser; username, location, avatar and wishlist are user-editable.
- role/status are managed by marketplace admins.
"""
from django.core.validators import MaxLengthValidator, MinLengthValidator, RegexValidator
from django.db import models
from django.contrib.auth.models import AbstractUser, UserManager


username_validators = [
    MinLengthValidator(3, "Username must be at least 3 characters long."),
    MaxLengthValidator(20, "Username cannot exceed 20 characters."),
    RegexValidator(r"^[A-Za-z0-9_]+$", "Username may only contain letters, digits and underscores."),
]


class UserRole(models.TextChoices):
    USER = "user", "User"
    ADMIN = "admin", "Admin"


class UserStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    BLOCKED = "blocked", "Blocked"


class User(AbstractUser):
    """Marketplace account.

    The profile lives on the user row itself: username and location are
    edited by the owner, role and status by admins. ``wishlist`` holds
    listing ids and may contain ids whose listing has since been deleted.
    """
    username = models.CharField(
        "username",
        max_length=20,
        unique=True,
        validators=username_validators,
        error_messages={"unique": "Username already taken"},
    )
    email = models.EmailField("email address", unique=True, error_messages={"unique": "Email already registered"})
    avatar = models.TextField(blank=True, help_text="Avatar URL or data URL")
    location = models.CharField(max_length=120, blank=True)
    wishlist = models.JSONField(default=list, blank=True)
    role = models.CharField(max_length=8, choices=UserRole.choices, default=UserRole.USER, db_index=True)
    status = models.CharField(max_length=8, choices=UserStatus.choices, default=UserStatus.ACTIVE, db_index=True)

    objects = UserManager()

    class Meta:
        ordering = ["-date_joined"]
        indexes = [
            models.Index(fields=["status"], name="idx_user_status"),
        ]

    def __str__(self) -> str:
        """Return a human-readable representation of the user."""
        return f"User({self.username})"

    @property
    def is_blocked(self) -> bool:
        return self.status == UserStatus.BLOCKED

    @property
    def is_marketplace_admin(self) -> bool:
        return self.is_superuser or self.role == UserRole.ADMIN
