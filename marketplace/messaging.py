"""
Pairwise conversations, append-only messages and live snapshot subscriptions.

Writes go through MessagingChannel. After each write the post_save receivers
in marketplace.signals send a change notice to the Channels groups watching
the conversation and its participants' conversation lists; subscribers
respond by re-reading the full snapshot, so every delivery is the complete
current list rather than a delta.
"""
import asyncio
import logging

from asgiref.sync import async_to_sync, sync_to_async
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db.models import Q

from .exceptions import AuthorizationError, NotFoundError
from .models import Conversation, Message, conversation_id_for
from .utils import preview, sanitize_text

logger = logging.getLogger(__name__)

CHANGE_EVENT = "snapshot.changed"


def conversation_group(conversation_id) -> str:
    return f"conversation_{conversation_id}"


def user_conversations_group(user_id) -> str:
    return f"user_{user_id}_conversations"


class ProfileCache:
    """Public profile lookups keyed by user id.

    Entries are never invalidated or evicted: a username changed mid-session
    shows up in conversation lists only after the process restarts.
    """

    def __init__(self):
        self._entries = {}

    def get(self, user_id) -> dict:
        key = str(user_id)
        entry = self._entries.get(key)
        if entry is None:
            User = get_user_model()
            user = User.objects.filter(pk=user_id).only("id", "username", "avatar").first()
            if user is None:
                entry = {"id": user_id, "username": "Unknown User", "avatar": ""}
            else:
                entry = {"id": user.pk, "username": user.username, "avatar": user.avatar}
            self._entries[key] = entry
        return entry

    def __contains__(self, user_id) -> bool:
        return str(user_id) in self._entries

    def clear(self):
        self._entries.clear()


profile_cache = ProfileCache()


class Subscription:
    """Async iterator of full snapshots for one live query.

    The first item is the current snapshot; each later item is a fresh
    snapshot read after a change notice arrives on ``group``. Iteration ends
    once ``cancel()`` is called (or the ``async with`` block exits).
    """

    def __init__(self, channel_layer, group, fetch_snapshot):
        self.group = group
        self._layer = channel_layer
        self._fetch_snapshot = fetch_snapshot
        self._channel_name = None
        self._delivered_initial = False
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def _join(self):
        if self._channel_name is None:
            self._channel_name = await self._layer.new_channel()
            await self._layer.group_add(self.group, self._channel_name)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.cancelled:
            raise StopAsyncIteration
        # Join before the first read so no change between read and join is lost
        await self._join()
        if self._delivered_initial:
            receive = asyncio.ensure_future(self._layer.receive(self._channel_name))
            cancelled = asyncio.ensure_future(self._cancelled.wait())
            done, pending = await asyncio.wait({receive, cancelled}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            if receive not in done:
                raise StopAsyncIteration
            receive.result()
        self._delivered_initial = True
        return await sync_to_async(self._fetch_snapshot)()

    async def cancel(self):
        """Stop iteration and release the group membership."""
        self._cancelled.set()
        if self._channel_name is not None:
            channel_name, self._channel_name = self._channel_name, None
            await self._layer.group_discard(self.group, channel_name)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.cancel()


def serialize_message(message) -> dict:
    return {
        "id": message.pk,
        "conversation": message.conversation_id,
        "sender_id": message.sender_id,
        "text": message.text,
        "is_system": message.is_system,
        "created_at": message.created_at.isoformat(),
    }


class MessagingChannel:
    """Conversation creation, message append and live subscriptions."""

    def __init__(self, channel_layer=None, profiles=None):
        self._channel_layer = channel_layer
        self.profiles = profiles if profiles is not None else profile_cache

    @property
    def channel_layer(self):
        return self._channel_layer if self._channel_layer is not None else get_channel_layer()

    def create_conversation(self, participant_ids) -> str:
        """Open the conversation for a pair of users, reusing it if it exists."""
        ids = list(participant_ids)
        if len(ids) != 2 or str(ids[0]) == str(ids[1]):
            raise ValidationError({"participants": ["A conversation needs exactly two different participants."]})
        User = get_user_model()
        if User.objects.filter(pk__in=ids).count() != 2:
            raise ValidationError({"participants": ["Both participants must be existing users."]})

        first, second = sorted(ids, key=str)
        conversation, created = Conversation.objects.get_or_create(
            id=conversation_id_for(first, second),
            defaults={"participant_a_id": first, "participant_b_id": second},
        )
        if created:
            logger.info("Opened conversation %s", conversation.pk)
        return conversation.pk

    def send_message(self, conversation_id, sender_id, text, is_system=False) -> int:
        """Append a message, then refresh the conversation preview.

        The preview update is a second write; a failure between the two
        leaves a stale preview but never loses the message.
        """
        conversation = Conversation.objects.filter(pk=conversation_id).first()
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if not conversation.has_participant(sender_id):
            raise AuthorizationError("Not a participant in this conversation")
        text = sanitize_text(text, max_len=getattr(settings, "MARKETPLACE_MESSAGE_MAX_LENGTH", 1000))
        if not text:
            raise ValidationError({"text": ["Message text is required."]})

        message = Message.objects.create(
            conversation=conversation, sender_id=sender_id, text=text, is_system=is_system
        )
        conversation.last_message = preview(text)
        conversation.updated_at = message.created_at
        conversation.save(update_fields=["last_message", "updated_at"])
        return message.pk

    def get_conversation(self, conversation_id):
        return Conversation.objects.filter(pk=conversation_id).first()

    def get_messages(self, conversation_id) -> list:
        """Current messages of a conversation, oldest first."""
        qs = Message.objects.filter(conversation_id=conversation_id).order_by("created_at", "id")
        return [serialize_message(m) for m in qs]

    def get_conversations(self, user_id) -> list:
        """Conversations the user takes part in, most recently active first."""
        qs = Conversation.objects.filter(
            Q(participant_a_id=user_id) | Q(participant_b_id=user_id)
        ).order_by("-updated_at")
        return [
            {
                "id": c.pk,
                "participants": list(c.participant_ids),
                "last_message": c.last_message,
                "updated_at": c.updated_at.isoformat(),
                "other_user": self.profiles.get(c.other_participant_id(user_id)),
            }
            for c in qs
        ]

    def subscribe_to_messages(self, conversation_id) -> Subscription:
        return Subscription(
            self.channel_layer,
            conversation_group(conversation_id),
            lambda: self.get_messages(conversation_id),
        )

    def subscribe_to_conversations(self, user_id) -> Subscription:
        return Subscription(
            self.channel_layer,
            user_conversations_group(user_id),
            lambda: self.get_conversations(user_id),
        )


def notify_groups(*groups, channel_layer=None):
    """Send a change notice to each group; delivery failures are only logged."""
    layer = channel_layer if channel_layer is not None else get_channel_layer()
    if layer is None:
        return
    for group in groups:
        try:
            async_to_sync(layer.group_send)(group, {"type": CHANGE_EVENT})
        except Exception:
            logger.warning("Live update to %s failed", group, exc_info=True)
