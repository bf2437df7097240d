"""
Accounts API views: registration, sign-in/out, profile and password reset.
Identity (password hashing, sessions, reset tokens) is delegated to django.contrib.auth.
"""
import logging

from django.contrib.auth import authenticate, get_user_model, login, logout
from django.contrib.auth.tokens import default_token_generator
from django.utils.encoding import force_str
from django.utils.http import urlsafe_base64_decode
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from marketplace.exceptions import NotFoundError, error_payload
from marketplace.listings import ListingRepository
from marketplace.serializers import ListingSerializer
from .forms import (
    LoginForm,
    PasswordResetConfirmForm,
    PasswordResetRequestForm,
    ProfileForm,
    RegistrationForm,
)
from .serializers import MeSerializer, PublicUserSerializer
from .tasks import send_password_reset_email

logger = logging.getLogger(__name__)

User = get_user_model()

listing_repository = ListingRepository()


def _form_error(form, status_code=status.HTTP_400_BAD_REQUEST):
    field_errors = {field: [str(e) for e in errors] for field, errors in form.errors.items()}
    first = next(iter(field_errors.values()), ["Invalid input"])[0]
    return Response(error_payload(first, code="invalid", field_errors=field_errors), status=status_code)


@api_view(["POST"])
@permission_classes([AllowAny])
def register(request):
    """Create an account and sign it in."""
    form = RegistrationForm(data=request.data)
    if not form.is_valid():
        return _form_error(form)
    user = form.save()
    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    logger.info("Registered user id=%s", user.pk)
    return Response(MeSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([AllowAny])
def login_view(request):
    """Email/password sign-in.

    Blocked accounts are rejected after the credentials check, so a blocked
    user learns why instead of seeing a generic failure.
    """
    form = LoginForm(data=request.data)
    if not form.is_valid():
        return _form_error(form)
    email = form.cleaned_data["email"].strip().lower()
    account = User.objects.filter(email__iexact=email).first()
    user = None
    if account is not None:
        user = authenticate(request, username=account.username, password=form.cleaned_data["password"])
    if user is None:
        return Response(error_payload("Invalid email or password", code="invalid_credentials"), status=status.HTTP_401_UNAUTHORIZED)
    if user.is_blocked:
        logger.info("Rejected sign-in for blocked user id=%s", user.pk)
        return Response(error_payload("This account has been blocked", code="blocked"), status=status.HTTP_403_FORBIDDEN)
    login(request, user)
    return Response(MeSerializer(user).data)


@api_view(["POST"])
@permission_classes([AllowAny])
def logout_view(request):
    logout(request)
    return Response({"status": "ok", "message": "Signed out"})


@api_view(["GET", "PATCH"])
@permission_classes([IsAuthenticated])
def me(request):
    """Read or update the signed-in user's profile (username, location, avatar)."""
    user = request.user
    if request.method == "GET":
        return Response(MeSerializer(user).data)
    data = {
        "username": request.data.get("username", user.username),
        "location": request.data.get("location", user.location),
        "avatar": request.data.get("avatar", user.avatar),
    }
    form = ProfileForm(data=data, instance=user)
    if not form.is_valid():
        return _form_error(form)
    form.save()
    return Response(MeSerializer(user).data)


@api_view(["POST"])
@permission_classes([AllowAny])
def password_reset(request):
    """Queue a reset email. Always answers 200 so addresses cannot be probed."""
    form = PasswordResetRequestForm(data=request.data)
    if not form.is_valid():
        return _form_error(form)
    account = User.objects.filter(email__iexact=form.cleaned_data["email"]).first()
    if account is not None:
        try:
            send_password_reset_email.delay(user_id=account.pk)
        except Exception:
            logger.warning("Could not queue password reset email for user id=%s", account.pk, exc_info=True)
    return Response({"status": "ok", "message": "If an account exists for this email, a reset link has been sent"})


@api_view(["POST"])
@permission_classes([AllowAny])
def password_reset_confirm(request):
    form = PasswordResetConfirmForm(data=request.data)
    if not form.is_valid():
        return _form_error(form)
    try:
        uid = force_str(urlsafe_base64_decode(form.cleaned_data["uid"]))
        user = User.objects.get(pk=uid)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None
    if user is None or not default_token_generator.check_token(user, form.cleaned_data["token"]):
        return Response(error_payload("Invalid or expired token", code="invalid_token"), status=status.HTTP_400_BAD_REQUEST)
    user.set_password(form.cleaned_data["new_password"])
    user.save(update_fields=["password"])
    logger.info("Password reset for user id=%s", user.pk)
    return Response({"status": "ok", "message": "Password reset successful"})


@api_view(["GET"])
@permission_classes([AllowAny])
def public_profile(request, user_id):
    """Another user's public profile with their listings, newest first."""
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    listings = listing_repository.get_my_listings(user.pk)
    return Response({
        "user": PublicUserSerializer(user).data,
        "listings_count": len(listings),
        "listings": ListingSerializer(listings, many=True).data,
    })
