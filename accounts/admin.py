"""
Admin registrations for accounts app models.
"""
from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import UserStatus

User = get_user_model()


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    """Admin configuration for the custom User model.

    Reuses Django's built-in UserAdmin for consistency, adding marketplace fields.
    """
    fieldsets = DjangoUserAdmin.fieldsets + (
        (
            "Marketplace",
            {"fields": ("role", "status", "location", "avatar", "wishlist")},
        ),
    )
    add_fieldsets = DjangoUserAdmin.add_fieldsets + (
        (
            "Marketplace",
            {"fields": ("email", "role")},
        ),
    )
    list_display = ("username", "email", "role", "status", "is_staff", "date_joined")
    list_filter = DjangoUserAdmin.list_filter + ("role", "status")
    search_fields = ("username", "email", "location")

    def block_users(self, request, queryset):
        """Admin action: block selected users."""
        updated = queryset.update(status=UserStatus.BLOCKED)
        self.message_user(request, f"Blocked {updated} user(s).")

    def unblock_users(self, request, queryset):
        """Admin action: unblock selected users."""
        updated = queryset.update(status=UserStatus.ACTIVE)
        self.message_user(request, f"Unblocked {updated} user(s).")

    block_users.short_description = "Block selected users"
    unblock_users.short_description = "Unblock selected users"
    actions = ["block_users", "unblock_users"]
