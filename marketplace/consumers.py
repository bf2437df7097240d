from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from .exceptions import MarketplaceError, validation_field_errors
from .messaging import MessagingChannel, conversation_group, user_conversations_group

messaging = MessagingChannel()


def _active(user) -> bool:
    """Signed in and not blocked."""
    return bool(user and getattr(user, "is_authenticated", False) and not user.is_blocked)


def _is_blocked(user_id) -> bool:
    user = get_user_model().objects.filter(pk=user_id).first()
    return user is None or user.is_blocked


class ConversationConsumer(AsyncJsonWebsocketConsumer):
    """Live message list of one conversation; participants only.

    Every change is pushed as the full message list. Clients may also send
    ``{"text": "..."}`` to post a message.
    """

    async def connect(self):
        user = self.scope.get("user")
        self.conversation_id = self.scope.get("url_route", {}).get("kwargs", {}).get("conversation_id", "")
        if not _active(user) or not self.conversation_id:
            await self.close()
            return
        conversation = await sync_to_async(messaging.get_conversation)(self.conversation_id)
        if conversation is None or not conversation.has_participant(user.id):
            await self.close()
            return
        self.group = conversation_group(self.conversation_id)
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send_snapshot()

    async def disconnect(self, close_code):
        if hasattr(self, "group"):
            await self.channel_layer.group_discard(self.group, self.channel_name)

    async def receive_json(self, content, **kwargs):
        text = content.get("text") if isinstance(content, dict) else None
        # status can change while the socket is open
        if await sync_to_async(_is_blocked)(self.scope["user"].id):
            await self.send_json({"type": "error", "message": "This account has been blocked", "code": "blocked"})
            await self.close()
            return
        try:
            await sync_to_async(messaging.send_message)(self.conversation_id, self.scope["user"].id, text)
        except ValidationError as exc:
            errors = validation_field_errors(exc)
            await self.send_json({"type": "error", "message": next(iter(errors.values()))[0]})
        except MarketplaceError as exc:
            await self.send_json({"type": "error", "message": str(exc), "code": exc.code})

    async def send_snapshot(self):
        messages = await sync_to_async(messaging.get_messages)(self.conversation_id)
        await self.send_json({"type": "messages", "conversation": self.conversation_id, "messages": messages})

    async def snapshot_changed(self, event):
        await self.send_snapshot()


class ConversationListConsumer(AsyncJsonWebsocketConsumer):
    """Live list of the signed-in user's conversations, newest activity first."""

    async def connect(self):
        user = self.scope.get("user")
        if not _active(user):
            await self.close()
            return
        self.user_id = user.id
        self.group = user_conversations_group(user.id)
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send_snapshot()

    async def disconnect(self, close_code):
        if hasattr(self, "group"):
            await self.channel_layer.group_discard(self.group, self.channel_name)

    async def send_snapshot(self):
        conversations = await sync_to_async(messaging.get_conversations)(self.user_id)
        await self.send_json({"type": "conversations", "conversations": conversations})

    async def snapshot_changed(self, event):
        await self.send_snapshot()
