"""
Django signals that complete a user's profile lazily on save.
"""
import re

from django.db.models.signals import pre_save
from django.dispatch import receiver
from django.contrib.auth import get_user_model

User = get_user_model()

_INVALID_USERNAME_CHARS = re.compile(r"[^A-Za-z0-9_]")


def username_from_email(email):
    """Derive a valid username from the local part of an email address."""
    local = (email or "").split("@")[0]
    candidate = _INVALID_USERNAME_CHARS.sub("_", local)[:20]
    if len(candidate) < 3:
        candidate = (candidate + "_user")[:20]
    return candidate


@receiver(pre_save, sender=User)
def backfill_username(sender, instance, **kwargs):
    """Fill a missing username from the email, avoiding collisions.

    Accounts created through the identity layer without a chosen username
    (e.g. by an admin in the Django admin) still get a usable public name.
    """
    if instance.username or not instance.email:
        return
    base = username_from_email(instance.email)
    candidate = base
    suffix = 1
    while User.objects.filter(username=candidate).exclude(pk=instance.pk).exists():
        tail = str(suffix)
        candidate = f"{base[:20 - len(tail)]}{tail}"
        suffix += 1
    instance.username = candidate
