from django.db.models.signals import post_save
from django.dispatch import receiver

from .messaging import conversation_group, notify_groups, user_conversations_group
from .models import Conversation, Message


@receiver(post_save, sender=Message)
def broadcast_message(sender, instance: Message, **kwargs):
    notify_groups(conversation_group(instance.conversation_id))


@receiver(post_save, sender=Conversation)
def broadcast_conversation(sender, instance: Conversation, **kwargs):
    notify_groups(*[user_conversations_group(uid) for uid in instance.participant_ids])
