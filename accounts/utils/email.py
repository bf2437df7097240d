import requests
from django.conf import settings
from django.core.mail import send_mail


def send_brevo_email(to_email, subject, text_content):
    api_key = getattr(settings, "BREVO_API_KEY", None)
    if not api_key:
        raise RuntimeError("BREVO_API_KEY is not configured")
    url = "https://api.brevo.com/v3/smtp/email"
    payload = {
        "sender": {
            "name": "ValueXchange",
            "email": "no-reply@valuexchange.app",
        },
        "to": [{"email": to_email}],
        "subject": subject,
        "textContent": text_content,
    }
    headers = {
        "accept": "application/json",
        "api-key": api_key,
        "content-type": "application/json",
    }
    response = requests.post(url, json=payload, headers=headers, timeout=10)
    response.raise_for_status()


def deliver_email(to_email, subject, text_content):
    """Send through Brevo when configured, otherwise through EMAIL_BACKEND."""
    if getattr(settings, "BREVO_API_KEY", ""):
        send_brevo_email(to_email, subject, text_content)
        return
    send_mail(
        subject=subject,
        message=text_content,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
        recipient_list=[to_email],
        fail_silently=False,
    )
