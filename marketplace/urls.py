from django.urls import path

from . import views

app_name = "marketplace"

urlpatterns = [
    path("listings/", views.listing_collection, name="listings"),
    path("listings/mine/", views.my_listings, name="my_listings"),
    path("listings/<int:listing_id>/", views.listing_detail, name="listing_detail"),
    path("listings/<int:listing_id>/bids/", views.listing_bids, name="listing_bids"),
    path("bids/mine/", views.my_bids, name="my_bids"),
    path("bids/<int:bid_id>/status/", views.bid_status, name="bid_status"),
    path("wishlist/", views.wishlist, name="wishlist"),
    path("wishlist/<int:listing_id>/toggle/", views.wishlist_toggle, name="wishlist_toggle"),
    path("conversations/", views.conversations, name="conversations"),
    path("conversations/<str:conversation_id>/messages/", views.conversation_messages, name="conversation_messages"),
]
