import asyncio

from asgiref.sync import sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from accounts.models import UserStatus
from marketplace.exceptions import AuthorizationError, NotFoundError
from marketplace.messaging import MessagingChannel, ProfileCache
from marketplace.models import Conversation, Message, conversation_id_for
from marketplace.routing import websocket_urlpatterns
from marketplace.test_factories import make_user
from marketplace.utils import PREVIEW_LENGTH

TIMEOUT = 3

User = get_user_model()


class ConversationTests(TestCase):

    def setUp(self):
        self.channel = MessagingChannel(profiles=ProfileCache())
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.carol = make_user("carol")

    def test_conversation_id_is_deterministic(self):
        first = self.channel.create_conversation([self.alice.pk, self.bob.pk])
        second = self.channel.create_conversation([self.bob.pk, self.alice.pk])
        self.assertEqual(first, second)
        self.assertEqual(first, conversation_id_for(self.alice.pk, self.bob.pk))
        self.assertEqual(Conversation.objects.count(), 1)

    def test_needs_two_distinct_existing_users(self):
        with self.assertRaises(ValidationError):
            self.channel.create_conversation([self.alice.pk, self.alice.pk])
        with self.assertRaises(ValidationError):
            self.channel.create_conversation([self.alice.pk])
        with self.assertRaises(ValidationError):
            self.channel.create_conversation([self.alice.pk, self.bob.pk, self.carol.pk])
        with self.assertRaises(ValidationError):
            self.channel.create_conversation([self.alice.pk, 777777])
        self.assertFalse(Conversation.objects.exists())


class SendMessageTests(TestCase):

    def setUp(self):
        self.channel = MessagingChannel(profiles=ProfileCache())
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.carol = make_user("carol")
        self.conversation_id = self.channel.create_conversation([self.alice.pk, self.bob.pk])

    def test_send_appends_and_updates_preview(self):
        message_id = self.channel.send_message(self.conversation_id, self.alice.pk, "  Is this still available?  ")
        message = Message.objects.get(pk=message_id)
        self.assertEqual(message.text, "Is this still available?")
        self.assertFalse(message.is_system)
        conversation = Conversation.objects.get(pk=self.conversation_id)
        self.assertEqual(conversation.last_message, "Is this still available?")
        self.assertEqual(conversation.updated_at, message.created_at)

    def test_preview_is_truncated(self):
        self.channel.send_message(self.conversation_id, self.bob.pk, "word " * 100)
        preview = Conversation.objects.get(pk=self.conversation_id).last_message
        self.assertLessEqual(len(preview), PREVIEW_LENGTH)
        self.assertTrue(preview.endswith("..."))

    def test_non_participant_cannot_send(self):
        with self.assertRaises(AuthorizationError):
            self.channel.send_message(self.conversation_id, self.carol.pk, "hello")
        self.assertFalse(Message.objects.exists())

    def test_empty_text_rejected(self):
        for text in ("", "   ", None, "\x00\x01"):
            with self.assertRaises(ValidationError):
                self.channel.send_message(self.conversation_id, self.alice.pk, text)

    def test_long_text_is_capped(self):
        with override_settings(MARKETPLACE_MESSAGE_MAX_LENGTH=10):
            message_id = self.channel.send_message(self.conversation_id, self.alice.pk, "x" * 50)
        self.assertEqual(len(Message.objects.get(pk=message_id).text), 10)

    def test_unknown_conversation(self):
        with self.assertRaises(NotFoundError):
            self.channel.send_message("1_2_3", self.alice.pk, "hello")

    def test_messages_snapshot_is_ascending(self):
        for text in ("one", "two", "three"):
            self.channel.send_message(self.conversation_id, self.alice.pk, text)
        self.assertEqual([m["text"] for m in self.channel.get_messages(self.conversation_id)], ["one", "two", "three"])
        self.assertEqual(self.channel.get_messages("no_such"), [])

    def test_conversations_snapshot_newest_activity_first(self):
        other_id = self.channel.create_conversation([self.alice.pk, self.carol.pk])
        self.channel.send_message(self.conversation_id, self.bob.pk, "older")
        self.channel.send_message(other_id, self.carol.pk, "newer")
        snapshot = self.channel.get_conversations(self.alice.pk)
        self.assertEqual([c["id"] for c in snapshot], [other_id, self.conversation_id])
        self.assertEqual(snapshot[0]["other_user"]["username"], "carol")
        self.assertEqual(snapshot[0]["last_message"], "newer")
        self.assertEqual(self.channel.get_conversations(self.carol.pk)[0]["other_user"]["username"], "alice")

    def test_profile_cache_is_never_invalidated(self):
        self.assertEqual(self.channel.get_conversations(self.alice.pk)[0]["other_user"]["username"], "bob")
        self.bob.username = "robert"
        self.bob.save()
        self.assertEqual(self.channel.get_conversations(self.alice.pk)[0]["other_user"]["username"], "bob")
        self.assertIn(self.bob.pk, self.channel.profiles)


class SubscriptionTests(TestCase):

    def setUp(self):
        self.channel = MessagingChannel(profiles=ProfileCache())
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.conversation_id = self.channel.create_conversation([self.alice.pk, self.bob.pk])

    async def test_message_subscription_delivers_full_snapshots(self):
        async with self.channel.subscribe_to_messages(self.conversation_id) as subscription:
            first = await asyncio.wait_for(subscription.__anext__(), TIMEOUT)
            self.assertEqual(first, [])

            await sync_to_async(self.channel.send_message)(self.conversation_id, self.alice.pk, "hi")
            second = await asyncio.wait_for(subscription.__anext__(), TIMEOUT)
            self.assertEqual([m["text"] for m in second], ["hi"])

            await sync_to_async(self.channel.send_message)(self.conversation_id, self.bob.pk, "hello")
            third = await asyncio.wait_for(subscription.__anext__(), TIMEOUT)
            self.assertEqual([m["text"] for m in third], ["hi", "hello"])
        self.assertTrue(subscription.cancelled)
        with self.assertRaises(StopAsyncIteration):
            await subscription.__anext__()

    async def test_conversation_subscription_follows_activity(self):
        subscription = self.channel.subscribe_to_conversations(self.bob.pk)
        first = await asyncio.wait_for(subscription.__anext__(), TIMEOUT)
        self.assertEqual(first[0]["last_message"], "")

        await sync_to_async(self.channel.send_message)(self.conversation_id, self.alice.pk, "Trade for my bike?")
        second = await asyncio.wait_for(subscription.__anext__(), TIMEOUT)
        self.assertEqual(second[0]["last_message"], "Trade for my bike?")
        self.assertEqual(second[0]["other_user"]["username"], "alice")
        await subscription.cancel()

    async def test_cancel_ends_a_pending_wait(self):
        subscription = self.channel.subscribe_to_messages(self.conversation_id)
        await asyncio.wait_for(subscription.__anext__(), TIMEOUT)
        pending = asyncio.ensure_future(subscription.__anext__())
        await asyncio.sleep(0.05)
        self.assertFalse(pending.done())
        await subscription.cancel()
        with self.assertRaises(StopAsyncIteration):
            await asyncio.wait_for(pending, TIMEOUT)


class ConsumerTests(TestCase):

    def setUp(self):
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.carol = make_user("carol")
        self.conversation_id = MessagingChannel().create_conversation([self.alice.pk, self.bob.pk])
        self.application = URLRouter(websocket_urlpatterns)

    def _communicator(self, path, user):
        communicator = WebsocketCommunicator(self.application, path)
        communicator.scope["user"] = user
        return communicator

    async def test_participant_receives_snapshot_and_updates(self):
        communicator = self._communicator(f"/ws/conversations/{self.conversation_id}/", self.alice)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        initial = await communicator.receive_json_from(timeout=TIMEOUT)
        self.assertEqual(initial["type"], "messages")
        self.assertEqual(initial["messages"], [])

        await communicator.send_json_to({"text": "Deal?"})
        update = await communicator.receive_json_from(timeout=TIMEOUT)
        self.assertEqual([m["text"] for m in update["messages"]], ["Deal?"])
        self.assertEqual(update["messages"][0]["sender_id"], self.alice.pk)
        await communicator.disconnect()

    async def test_empty_message_reports_error(self):
        communicator = self._communicator(f"/ws/conversations/{self.conversation_id}/", self.bob)
        await communicator.connect()
        await communicator.receive_json_from(timeout=TIMEOUT)
        await communicator.send_json_to({"text": "   "})
        reply = await communicator.receive_json_from(timeout=TIMEOUT)
        self.assertEqual(reply["type"], "error")
        await communicator.disconnect()

    async def test_non_participant_is_refused(self):
        communicator = self._communicator(f"/ws/conversations/{self.conversation_id}/", self.carol)
        connected, _ = await communicator.connect()
        self.assertFalse(connected)

    async def test_blocked_participant_is_refused(self):
        self.alice.status = UserStatus.BLOCKED
        await sync_to_async(self.alice.save)()
        for path in (f"/ws/conversations/{self.conversation_id}/", "/ws/conversations/"):
            communicator = self._communicator(path, self.alice)
            connected, _ = await communicator.connect()
            self.assertFalse(connected)

    async def test_user_blocked_mid_session_cannot_send(self):
        communicator = self._communicator(f"/ws/conversations/{self.conversation_id}/", self.alice)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        await communicator.receive_json_from(timeout=TIMEOUT)

        await sync_to_async(User.objects.filter(pk=self.alice.pk).update)(status=UserStatus.BLOCKED)
        await communicator.send_json_to({"text": "still here"})
        reply = await communicator.receive_json_from(timeout=TIMEOUT)
        self.assertEqual(reply["code"], "blocked")
        output = await communicator.receive_output(timeout=TIMEOUT)
        self.assertEqual(output["type"], "websocket.close")
        exists = await sync_to_async(Message.objects.filter(text="still here").exists)()
        self.assertFalse(exists)
        await communicator.disconnect()

    async def test_conversation_list_pushes_new_activity(self):
        communicator = self._communicator("/ws/conversations/", self.bob)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        initial = await communicator.receive_json_from(timeout=TIMEOUT)
        self.assertEqual([c["id"] for c in initial["conversations"]], [self.conversation_id])

        await sync_to_async(MessagingChannel().send_message)(self.conversation_id, self.alice.pk, "ping")
        update = await communicator.receive_json_from(timeout=TIMEOUT)
        self.assertEqual(update["conversations"][0]["last_message"], "ping")
        await communicator.disconnect()
