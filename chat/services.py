# chat/services.py
"""
Chat operations shared by the REST views and both WebSocket consumers.

``post_message`` is the single write path for messages: it stores the
message, bumps the chat's ``last_message_at``, broadcasts ``new-message``
to the chat room (and the tribe room for tribe chats) and notifies the
other participants.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from events.models import Event, EventAttendance
from notifications.services import notify_many
from realtime.broadcast import broadcast, chat_group, tribe_group
from tribes.permissions import is_member
from .models import Chat, ChatParticipant, Message

logger = logging.getLogger(__name__)


class ChatAccessError(Exception):
    """Raised when a user may not read or write a chat."""


def is_participant(user, chat) -> bool:
    return ChatParticipant.objects.filter(chat=chat, user=user).exists()


def _add_participant(chat, user, role=ChatParticipant.ROLE_MEMBER) -> ChatParticipant:
    participant, _ = ChatParticipant.objects.get_or_create(chat=chat, user=user, defaults={"role": role})
    return participant


def get_or_create_private(user, other) -> tuple[Chat, bool]:
    if user.pk == other.pk:
        raise ChatAccessError("You cannot start a chat with yourself.")
    key = Chat.make_pair_key(user.pk, other.pk)
    with transaction.atomic():
        chat, created = Chat.objects.get_or_create(
            pair_key=key,
            defaults={"type": Chat.TYPE_PRIVATE, "creator": user},
        )
        # either side may have left; reopening restores both
        _add_participant(chat, user)
        _add_participant(chat, other)
    return chat, created


def create_group(creator, name: str, participants, description: str = "") -> Chat:
    with transaction.atomic():
        chat = Chat.objects.create(
            type=Chat.TYPE_GROUP, name=name, description=description, creator=creator
        )
        _add_participant(chat, creator, ChatParticipant.ROLE_ADMIN)
        for user in participants:
            if user.pk != creator.pk:
                _add_participant(chat, user)
    return chat


def can_join_event_chat(user, event) -> bool:
    if event.host_id == user.pk:
        return True
    return EventAttendance.objects.filter(
        event=event, user=user, status=EventAttendance.STATUS_CONFIRMED
    ).exists()


def event_chat_for(user, event: Event) -> tuple[Chat, bool]:
    """Get or create the chat of ``event`` and make ``user`` a participant."""
    if not can_join_event_chat(user, event):
        raise ChatAccessError("Only the host and confirmed attendees can join this chat.")
    with transaction.atomic():
        chat, created = Chat.objects.get_or_create(
            type=Chat.TYPE_EVENT,
            related_event=event,
            defaults={"name": event.title[:100], "creator": event.host},
        )
        if created:
            _add_participant(chat, event.host, ChatParticipant.ROLE_ADMIN)
        _add_participant(chat, user)
    return chat, created


def tribe_chat_for(user, tribe) -> tuple[Chat, bool]:
    """Get or create the chat of ``tribe`` and make ``user`` a participant."""
    if not is_member(user, tribe):
        raise ChatAccessError("Only active tribe members can join this chat.")
    with transaction.atomic():
        chat, created = Chat.objects.get_or_create(
            type=Chat.TYPE_TRIBE,
            related_tribe=tribe,
            defaults={"name": tribe.name[:100], "creator": tribe.creator},
        )
        _add_participant(chat, user)
    return chat, created


def post_message(
    chat: Chat,
    sender,
    content: str,
    type: str = "text",
    reply_to: Optional[Message] = None,
) -> Message:
    from .serializers import MessageSerializer

    content = (content or "").strip()
    if not content:
        raise ValueError("Message content cannot be empty.")
    if len(content) > 5000:
        raise ValueError("Message content is limited to 5000 characters.")
    if not is_participant(sender, chat):
        raise ChatAccessError("You are not a participant of this chat.")
    if reply_to is not None and reply_to.chat_id != chat.pk:
        raise ValueError("Replies must point at a message in the same chat.")

    message = Message.objects.create(
        chat=chat, sender=sender, content=content, type=type, reply_to=reply_to
    )
    Chat.objects.filter(pk=chat.pk).update(last_message_at=message.created_at)

    payload = MessageSerializer(message).data
    broadcast(chat_group(chat.pk), "new-message", payload)
    if chat.type == Chat.TYPE_TRIBE and chat.related_tribe_id:
        broadcast(tribe_group(chat.related_tribe_id), "new-message", payload)

    recipients = chat.participants.filter(is_muted=False).exclude(user=sender).values_list("user_id", flat=True)
    notify_many(
        list(recipients),
        "new_message",
        title=f"New message from {sender.username}",
        body=content[:200],
        actor=sender,
        data={"chat_id": chat.pk, "message_id": message.pk},
    )
    logger.debug("Message %s posted to chat %s by %s", message.pk, chat.pk, sender.pk)
    return message


def mark_read(chat, user) -> None:
    ChatParticipant.objects.filter(chat=chat, user=user).update(last_read_at=timezone.now())


def unread_count(chat, user) -> int:
    participant = ChatParticipant.objects.filter(chat=chat, user=user).first()
    if participant is None:
        return 0
    qs = chat.messages.filter(is_deleted=False).exclude(sender=user)
    if participant.last_read_at is not None:
        qs = qs.filter(created_at__gt=participant.last_read_at)
    return qs.count()
