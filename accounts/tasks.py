import logging

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

from .utils.email import deliver_email

logger = logging.getLogger(__name__)


def build_reset_url(user):
    uidb64 = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    base = getattr(settings, "PASSWORD_RESET_FRONTEND_URL", "").rstrip("/")
    return f"{base}/{uidb64}/{token}"


@shared_task
def send_password_reset_email(*, user_id: int):
    """
    Fire-and-forget password reset mail.

    Delivery failures are logged and swallowed so the request that queued the
    mail never fails because of it.
    """
    User = get_user_model()
    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        return False

    reset_url = build_reset_url(user)
    body = (
        "Hi,\n\n"
        "You are receiving this email because you (or someone else) have requested "
        "the reset of a password.\n\n"
        "Please click on the following link, or paste this into your browser to "
        f"complete the process:\n\n{reset_url}\n"
    )
    try:
        deliver_email(user.email, "Password Reset Request", body)
    except Exception:
        logger.warning("Password reset email to user id=%s failed", user_id, exc_info=True)
        return False
    logger.info("Password reset email sent to user id=%s", user_id)
    return True
