"""
Views for the chat app.

All endpoints are scoped to chats the requester participates in; a chat
that exists but excludes the requester is reported as not found.  Entity
chats (events and tribes) are created lazily on first access.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F
from django.shortcuts import get_object_or_404
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from common.pagination import MessagePagination
from events.models import Event
from realtime.broadcast import broadcast, chat_group
from tribes.models import Tribe
from . import services
from .models import Chat, ChatParticipant, Message
from .serializers import (
    ChatSerializer,
    GroupChatCreateSerializer,
    MessageSerializer,
    MessageWriteSerializer,
    PrivateChatCreateSerializer,
)

logger = logging.getLogger(__name__)
User = get_user_model()


class ChatViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = ChatSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return (
            Chat.objects.filter(participants__user=self.request.user)
            .prefetch_related("participants__user__profile")
            .order_by(F("last_message_at").desc(nulls_last=True), "-created_at")
            .distinct()
        )

    def _respond(self, chat, created):
        return Response(
            ChatSerializer(chat, context={"request": self.request}).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    # ---- creation ----

    @action(detail=False, methods=["post"])
    def private(self, request):
        serializer = PrivateChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        other = get_object_or_404(User, pk=serializer.validated_data["user_id"], is_active=True)
        try:
            chat, created = services.get_or_create_private(request.user, other)
        except services.ChatAccessError as e:
            raise ValidationError({"user_id": str(e)})
        return self._respond(chat, created)

    @action(detail=False, methods=["post"])
    def group(self, request):
        serializer = GroupChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ids = set(serializer.validated_data["participant_ids"])
        users = list(User.objects.filter(pk__in=ids, is_active=True))
        if len(users) != len(ids):
            raise ValidationError({"participant_ids": "Some users do not exist."})
        chat = services.create_group(
            request.user,
            serializer.validated_data["name"],
            users,
            serializer.validated_data.get("description", ""),
        )
        logger.info("Group chat %s created by %s", chat.pk, request.user.pk)
        return self._respond(chat, True)

    @action(detail=False, methods=["post"], url_path=r"event/(?P<event_id>\d+)")
    def event(self, request, event_id=None):
        event = get_object_or_404(Event.objects.visible_to(request.user), pk=event_id)
        try:
            chat, created = services.event_chat_for(request.user, event)
        except services.ChatAccessError as e:
            raise PermissionDenied(str(e))
        return self._respond(chat, created)

    @action(detail=False, methods=["post"], url_path=r"tribe/(?P<tribe_id>\d+)")
    def tribe(self, request, tribe_id=None):
        tribe = get_object_or_404(Tribe.objects.visible_to(request.user), pk=tribe_id)
        try:
            chat, created = services.tribe_chat_for(request.user, tribe)
        except services.ChatAccessError as e:
            raise PermissionDenied(str(e))
        return self._respond(chat, created)

    # ---- messages ----

    @action(detail=True, methods=["get", "post"], pagination_class=MessagePagination)
    def messages(self, request, pk=None):
        chat = self.get_object()
        if request.method == "GET":
            qs = chat.messages.select_related("sender__profile")
            before = request.query_params.get("before")
            if before:
                if not before.isdigit():
                    raise ValidationError({"before": "Must be a message id."})
                qs = qs.filter(pk__lt=int(before))
            page = self.paginate_queryset(qs)
            return self.get_paginated_response(MessageSerializer(page, many=True).data)

        serializer = MessageWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reply_to = None
        reply_id = serializer.validated_data.get("reply_to")
        if reply_id:
            reply_to = get_object_or_404(Message, pk=reply_id, chat=chat)
        message = services.post_message(
            chat,
            request.user,
            serializer.validated_data["content"],
            type=serializer.validated_data["type"],
            reply_to=reply_to,
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch", "delete"], url_path=r"messages/(?P<message_id>\d+)")
    def message(self, request, pk=None, message_id=None):
        chat = self.get_object()
        message = get_object_or_404(Message, pk=message_id, chat=chat, is_deleted=False)
        if message.sender_id != request.user.id:
            raise PermissionDenied("Only the sender can change this message.")

        if request.method == "DELETE":
            message.is_deleted = True
            message.save(update_fields=["is_deleted", "updated_at"])
            broadcast(chat_group(chat.pk), "message-deleted", {"chat_id": chat.pk, "message_id": message.pk})
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = MessageWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        if "content" not in serializer.validated_data:
            raise ValidationError({"content": "This field is required."})
        message.content = serializer.validated_data["content"]
        message.is_edited = True
        message.save(update_fields=["content", "is_edited", "updated_at"])
        data = MessageSerializer(message).data
        broadcast(chat_group(chat.pk), "message-edited", data)
        return Response(data)

    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        chat = self.get_object()
        services.mark_read(chat, request.user)
        return Response({"unread_count": 0})

    # ---- participants ----

    def _require_group_admin(self, chat):
        if chat.type != Chat.TYPE_GROUP:
            raise ValidationError({"detail": "Participants can only be managed in group chats."})
        is_admin = chat.participants.filter(user=self.request.user, role=ChatParticipant.ROLE_ADMIN).exists()
        if not is_admin:
            raise PermissionDenied("Only chat admins can manage participants.")

    @action(detail=True, methods=["post"])
    def participants(self, request, pk=None):
        chat = self.get_object()
        self._require_group_admin(chat)
        ids = request.data.get("user_ids") or []
        if not isinstance(ids, list) or not ids:
            raise ValidationError({"user_ids": "Provide a non-empty list of user ids."})
        added = []
        for user in User.objects.filter(pk__in=ids, is_active=True):
            _, created = ChatParticipant.objects.get_or_create(chat=chat, user=user)
            if created:
                added.append(user.pk)
        return Response({"added": added}, status=status.HTTP_201_CREATED if added else status.HTTP_200_OK)

    @action(detail=True, methods=["delete"], url_path=r"participants/(?P<user_id>\d+)")
    def remove_participant(self, request, pk=None, user_id=None):
        chat = self.get_object()
        self._require_group_admin(chat)
        if int(user_id) == request.user.id:
            raise ValidationError({"detail": "Use leave to remove yourself."})
        participant = get_object_or_404(ChatParticipant, chat=chat, user_id=user_id)
        participant.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        chat = self.get_object()
        with transaction.atomic():
            participant = get_object_or_404(ChatParticipant, chat=chat, user=request.user)
            was_admin = participant.role == ChatParticipant.ROLE_ADMIN
            participant.delete()
            remaining = chat.participants.all()
            if was_admin and not remaining.filter(role=ChatParticipant.ROLE_ADMIN).exists():
                successor = remaining.first()
                if successor is not None:
                    successor.role = ChatParticipant.ROLE_ADMIN
                    successor.save(update_fields=["role"])
        return Response({"detail": "You left the chat."})
