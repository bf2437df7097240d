"""Forms for the accounts app.

Provides:
- RegistrationForm to create accounts using the custom User model
- LoginForm for email/password sign-in
- ProfileForm to let users edit username, location and avatar
"""
from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.forms import UserCreationForm

MAX_AVATAR_SIZE_KB = 512
MAX_AVATAR_SIZE_CHARS = MAX_AVATAR_SIZE_KB * 1024

User = get_user_model()


class RegistrationForm(UserCreationForm):
    """User creation form for the custom User model.

    Email is required and unique; it is the sign-in identifier and cannot be
    changed afterwards.
    """
    email = forms.EmailField(required=True)

    class Meta(UserCreationForm.Meta):
        model = User
        fields = ("username", "email")

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("Email already registered")
        return email


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(strip=False)


class ProfileForm(forms.ModelForm):
    """ModelForm for editing the owner-editable profile fields.

    Email is deliberately absent: it is immutable after registration.
    """

    class Meta:
        model = User
        fields = ["username", "location", "avatar"]

    def clean_username(self):
        return (self.cleaned_data.get("username") or "").strip()

    def clean_avatar(self):
        """Reject oversized inline avatars."""
        avatar = self.cleaned_data.get("avatar") or ""
        if len(avatar) > MAX_AVATAR_SIZE_CHARS:
            raise forms.ValidationError(f"Avatar too large. Max size is {MAX_AVATAR_SIZE_KB}KB.")
        return avatar


class PasswordResetRequestForm(forms.Form):
    email = forms.EmailField()


class PasswordResetConfirmForm(forms.Form):
    uid = forms.CharField()
    token = forms.CharField()
    new_password = forms.CharField(strip=False, min_length=6)
