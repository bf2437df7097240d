from django.urls import path

from . import views

app_name = "marketplace_admin"

urlpatterns = [
    # Moderation API, mounted under /api/admin/
    path("users/", views.admin_users, name="users"),
    path("users/<int:user_id>/block/", views.admin_block_user, name="block_user"),
    path("users/<int:user_id>/unblock/", views.admin_unblock_user, name="unblock_user"),
    path("bids/", views.admin_bids, name="bids"),
    path("stats/", views.admin_stats, name="stats"),
    path("listings/<int:listing_id>/remove/", views.admin_remove_listing, name="remove_listing"),
]
