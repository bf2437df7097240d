"""
Marketplace API views.

Each view is a thin adapter over the marketplace components: it resolves the
signed-in user, checks ownership where the operation needs it, and renders
the result. Domain errors raised by the components are translated to HTTP
responses by marketplace.exceptions.api_exception_handler.
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.serializers import AdminUserSerializer
from .bids import BidRepository
from .exceptions import AuthorizationError, BusinessRuleError, NotFoundError, error_payload
from .listings import ListingRepository
from .messaging import MessagingChannel, serialize_message
from .models import Message
from .moderation import AdminModeration
from .permissions import IsMarketplaceAdmin, is_listing_owner
from .serializers import BidSerializer, ConversationSerializer, ListingSerializer
from .wishlist import WishlistManager

logger = logging.getLogger(__name__)

messaging = MessagingChannel()
listing_repository = ListingRepository(messaging=messaging)
bid_repository = BidRepository()
wishlist_manager = WishlistManager()
moderation = AdminModeration(listings=listing_repository)


def _owned_listing(request, listing_id, action="modify"):
    listing = listing_repository.get_one(listing_id)
    if listing is None:
        raise NotFoundError("Listing not found")
    if not is_listing_owner(request.user, listing):
        raise AuthorizationError(f"Only the owner can {action} this listing")
    return listing


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
def listing_collection(request):
    """Browse listings (``?category=`` and ``?search=``) or create one."""
    if request.method == "GET":
        listings = listing_repository.get_all(
            category=request.query_params.get("category"),
            search=request.query_params.get("search"),
        )
        return Response(ListingSerializer(listings, many=True).data)

    listing_id = listing_repository.create(request.data, owner_id=request.user.pk)
    return Response(
        ListingSerializer(listing_repository.get_one(listing_id)).data,
        status=status.HTTP_201_CREATED,
    )


@api_view(["GET", "PATCH", "DELETE"])
def listing_detail(request, listing_id):
    if request.method == "GET":
        listing = listing_repository.get_one(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found")
        return Response(ListingSerializer(listing).data)

    if request.method == "PATCH":
        _owned_listing(request, listing_id, "edit")
        listing_repository.update(listing_id, request.data)
        return Response(ListingSerializer(listing_repository.get_one(listing_id)).data)

    _owned_listing(request, listing_id, "delete")
    listing_repository.delete(listing_id)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def my_listings(request):
    listings = listing_repository.get_my_listings(request.user.pk)
    return Response(ListingSerializer(listings, many=True).data)


# ---------------------------------------------------------------------------
# Bids
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def listing_bids(request, listing_id):
    """Offers on a listing: the owner reads them, anyone else may make one."""
    if request.method == "GET":
        _owned_listing(request, listing_id, "view offers on")
        return Response(BidSerializer(bid_repository.get_for_listing(listing_id), many=True).data)

    bid_id = bid_repository.create(listing_id, request.user.pk, request.data)
    return Response(BidSerializer(bid_repository.get_one(bid_id)).data, status=status.HTTP_201_CREATED)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def my_bids(request):
    return Response(BidSerializer(bid_repository.get_my_bids(request.user.pk), many=True).data)


@api_view(["POST", "PATCH"])
@permission_classes([IsAuthenticated])
def bid_status(request, bid_id):
    """Accept, reject or complete an offer. Listing owner or admin only."""
    bid = bid_repository.get_one(bid_id)
    if bid is None:
        raise NotFoundError("Bid not found")
    user = request.user
    if bid.listing.owner_id != user.pk and not user.is_marketplace_admin:
        raise AuthorizationError("Only the listing owner can change this offer")
    bid_repository.update_status(bid_id, request.data.get("status"))
    return Response(BidSerializer(bid_repository.get_one(bid_id)).data)


# ---------------------------------------------------------------------------
# Wishlist
# ---------------------------------------------------------------------------

@api_view(["GET"])
@permission_classes([IsAuthenticated])
def wishlist(request):
    ids = wishlist_manager.get(request.user.pk)
    listings = wishlist_manager.resolve(sorted(ids))
    return Response({"ids": sorted(ids), "listings": ListingSerializer(listings, many=True).data})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def wishlist_toggle(request, listing_id):
    """Toggle one listing in the wishlist.

    Clients may send the set they currently hold as ``current``; otherwise
    the stored set is used.
    """
    current = request.data.get("current") if hasattr(request.data, "get") else None
    if current is None:
        current = wishlist_manager.get(request.user.pk)
    try:
        result = wishlist_manager.toggle(request.user.pk, listing_id, current)
    except (TypeError, ValueError):
        return Response(error_payload("Wishlist ids must be integers", code="invalid"), status=status.HTTP_400_BAD_REQUEST)
    body = {"outcome": result.outcome.value, "wishlist": sorted(result.wishlist), "added": result.added}
    if not result.applied:
        body.update(error_payload(result.reason, code="reverted"))
        return Response(body, status=status.HTTP_409_CONFLICT)
    return Response(body)


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def conversations(request):
    if request.method == "GET":
        return Response(messaging.get_conversations(request.user.pk))

    try:
        participant_id = int(request.data.get("participant_id"))
    except (TypeError, ValueError):
        return Response(error_payload("participant_id is required", code="invalid"), status=status.HTTP_400_BAD_REQUEST)
    conversation_id = messaging.create_conversation([request.user.pk, participant_id])
    conversation = messaging.get_conversation(conversation_id)
    return Response(ConversationSerializer(conversation).data, status=status.HTTP_201_CREATED)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def conversation_messages(request, conversation_id):
    conversation = messaging.get_conversation(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found")
    if not conversation.has_participant(request.user.pk):
        raise AuthorizationError("Not a participant in this conversation")

    if request.method == "GET":
        return Response(messaging.get_messages(conversation_id))

    message_id = messaging.send_message(conversation_id, request.user.pk, request.data.get("text"))
    return Response(serialize_message(Message.objects.get(pk=message_id)), status=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@api_view(["GET"])
@permission_classes([IsMarketplaceAdmin])
def admin_users(request):
    return Response(AdminUserSerializer(moderation.list_users(), many=True).data)


@api_view(["POST"])
@permission_classes([IsMarketplaceAdmin])
def admin_block_user(request, user_id):
    if user_id == request.user.pk:
        raise BusinessRuleError("You cannot block your own account")
    moderation.block_user(user_id)
    return Response({"status": "ok", "message": "User blocked"})


@api_view(["POST"])
@permission_classes([IsMarketplaceAdmin])
def admin_unblock_user(request, user_id):
    moderation.unblock_user(user_id)
    return Response({"status": "ok", "message": "User unblocked"})


@api_view(["GET"])
@permission_classes([IsMarketplaceAdmin])
def admin_bids(request):
    return Response(BidSerializer(bid_repository.get_all(), many=True).data)


@api_view(["GET"])
@permission_classes([IsMarketplaceAdmin])
def admin_stats(request):
    return Response(moderation.stats())


@api_view(["POST"])
@permission_classes([IsMarketplaceAdmin])
def admin_remove_listing(request, listing_id):
    moderation.delete_listing_with_reason(listing_id, request.data.get("reason"), admin_id=request.user.pk)
    return Response({"status": "ok", "message": "Listing removed"})
