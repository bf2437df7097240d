from django.contrib import admin

from .models import ArchivedListing, Bid, BidStatus, Conversation, Listing, ListingStatus, Message


# Listing admin: quick inspection of key fields
class ListingAdmin(admin.ModelAdmin):
    list_display = ("title", "category", "price", "status", "owner", "created_at")
    list_filter = ("status", "category")
    search_fields = ("title", "description", "owner__username")
    raw_id_fields = ("owner",)
    ordering = ("-created_at",)

    @admin.action(description="Mark selected listings inactive")
    def mark_inactive(self, request, queryset):
        updated = queryset.update(status=ListingStatus.INACTIVE)
        self.message_user(request, f"{updated} listing(s) marked inactive.")

    actions = ["mark_inactive"]


class ArchivedListingAdmin(admin.ModelAdmin):
    list_display = ("original_id", "title", "category", "deleted_by", "deleted_at")
    search_fields = ("title", "deletion_reason")
    readonly_fields = ("original_id", "owner_id", "title", "category", "snapshot", "deleted_at", "deletion_reason", "deleted_by")
    ordering = ("-deleted_at",)

    def has_add_permission(self, request):
        return False


class BidAdmin(admin.ModelAdmin):
    list_display = ("id", "listing", "bidder", "amount", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("listing__title", "bidder__username", "offered_items")
    raw_id_fields = ("listing", "bidder")

    @admin.action(description="Reject selected offers")
    def reject_bids(self, request, queryset):
        updated = queryset.update(status=BidStatus.REJECTED)
        self.message_user(request, f"{updated} offer(s) rejected.")

    actions = ["reject_bids"]


class ConversationAdmin(admin.ModelAdmin):
    list_display = ("id", "participant_a", "participant_b", "last_message", "updated_at")
    search_fields = ("id", "participant_a__username", "participant_b__username")
    raw_id_fields = ("participant_a", "participant_b")


class MessageAdmin(admin.ModelAdmin):
    list_display = ("conversation", "sender", "short_text", "is_system", "created_at")
    list_filter = ("is_system",)
    search_fields = ("text", "sender__username")
    raw_id_fields = ("conversation", "sender")

    def short_text(self, obj):
        text = obj.text or ""
        return (text[:50] + "...") if len(text) > 50 else text

    short_text.short_description = "Text"


admin.site.register(Listing, ListingAdmin)
admin.site.register(ArchivedListing, ArchivedListingAdmin)
admin.site.register(Bid, BidAdmin)
admin.site.register(Conversation, ConversationAdmin)
admin.site.register(Message, MessageAdmin)
