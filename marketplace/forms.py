"""
Forms for marketplace app: server-side validation for listings and bids.
- Listing title 3-100 chars, description 20-150 chars
- Price between 1 and 100,000,000
- Category from the fixed set
- 1 to MARKETPLACE_MAX_IMAGES data-URL images, normalized on the way in
- Bid must offer items and/or a positive amount
"""
from decimal import Decimal

from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError

from .images import normalize_data_url
from .models import Bid, Listing, MAX_PRICE, MIN_PRICE

MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 100
MIN_DESC_LENGTH = 20
MAX_DESC_LENGTH = 150


class ListingForm(forms.ModelForm):
    """ModelForm for creating/editing a Listing.

    The owner is set by the repository; it is never a form field.
    """

    images = forms.JSONField(required=False)

    class Meta:
        model = Listing
        fields = [
            "title",
            "description",
            "category",
            "price",
            "images",
            "location",
        ]

    def clean_title(self):
        title = (self.cleaned_data.get("title") or "").strip()
        if len(title) < MIN_TITLE_LENGTH:
            raise ValidationError(f"Title must be at least {MIN_TITLE_LENGTH} characters.")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"Title cannot exceed {MAX_TITLE_LENGTH} characters.")
        return title

    def clean_description(self):
        description = (self.cleaned_data.get("description") or "").strip()
        if len(description) < MIN_DESC_LENGTH:
            raise ValidationError(f"Description must be at least {MIN_DESC_LENGTH} characters.")
        if len(description) > MAX_DESC_LENGTH:
            raise ValidationError(f"Description cannot exceed {MAX_DESC_LENGTH} characters.")
        return description

    def clean_price(self):
        """Ensure price is within the accepted range."""
        price = self.cleaned_data.get("price")
        if price is None or price < MIN_PRICE:
            raise ValidationError("Price must be at least 1.")
        if price > MAX_PRICE:
            raise ValidationError("Price cannot exceed 100,000,000.")
        return price

    def clean_images(self):
        """Require 1..N data-URL images and re-encode each one."""
        images = self.cleaned_data.get("images")
        max_images = getattr(settings, "MARKETPLACE_MAX_IMAGES", 3)
        if not images:
            raise ValidationError("At least one image is required.")
        if not isinstance(images, list) or not all(isinstance(i, str) for i in images):
            raise ValidationError("Images must be a list of data URLs.")
        if len(images) > max_images:
            raise ValidationError(f"A listing can have at most {max_images} images.")
        max_chars = getattr(settings, "MARKETPLACE_IMAGE_MAX_DATA_URL_CHARS", 4 * 1024 * 1024)
        if any(len(image) > max_chars for image in images):
            raise ValidationError(f"Image too large. Max size is {max_chars // 1024}KB per image.")
        if self.instance.pk and images == list(self.instance.images or []):
            return images
        return [normalize_data_url(image) for image in images]


class BidForm(forms.ModelForm):
    """ModelForm for an offer on a listing."""

    class Meta:
        model = Bid
        fields = ["offered_items", "amount", "message"]

    def clean_offered_items(self):
        return (self.cleaned_data.get("offered_items") or "").strip()

    def clean_message(self):
        return (self.cleaned_data.get("message") or "").strip()

    def clean_amount(self):
        amount = self.cleaned_data.get("amount")
        if amount is not None and amount <= Decimal("0"):
            raise ValidationError("Amount must be greater than 0.")
        return amount

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get("offered_items") and cleaned.get("amount") is None:
            raise ValidationError("Describe what you are offering or enter an amount.")
        return cleaned


def form_validation_error(form) -> ValidationError:
    """ValidationError carrying the form's per-field messages."""
    return ValidationError(form.errors.as_data())
