"""
The application-wide realtime socket.

Every signed-in client keeps one connection to ``ws/realtime/``.  The
socket joins the user's personal ``user_<id>`` group (notifications,
nearby pings) and, on request, the ``tribe_<id>`` rooms of the user's
active tribes.  Clients send ``{"event": <name>, "data": {...}}`` frames;
everything the server pushes arrives as ``{"type": <name>, "data": ...}``.
"""
from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import Any

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings
from rest_framework.exceptions import ValidationError

from chat import services as chat_services
from chat.models import Chat
from chat.serializers import MessageSerializer
from common.geo import nearest
from events.serializers import EventSerializer
from tribes.models import Tribe, TribeMembership
from users.models import UserProfile
from users.serializers import LocationUpdateSerializer
from .broadcast import realtime_message, tribe_group, user_group

logger = logging.getLogger(__name__)

CLOSE_UNAUTHENTICATED = 4401


class ClientError(Exception):
    """A frame the server refuses; reported back as an ``error`` frame."""


class RealtimeConsumer(AsyncJsonWebsocketConsumer):

    async def connect(self) -> None:
        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return
        self.user = user
        self.groups_joined = {user_group(user.id)}
        self.tribe_ids = await self._active_tribe_ids()

        await self.channel_layer.group_add(user_group(user.id), self.channel_name)
        await self.accept()
        await self.send_json({"type": "welcome", "user_id": user.id})
        await self._announce_presence("user_online")
        logger.info("Realtime socket opened for user %s", user.id)

    async def disconnect(self, code: int) -> None:
        if not hasattr(self, "user"):
            return
        await self._announce_presence("user_offline")
        for group in self.groups_joined:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def _announce_presence(self, event: str) -> None:
        payload = realtime_message(event, {"user_id": self.user.id, "username": self.user.username})
        for tribe_id in self.tribe_ids:
            await self.channel_layer.group_send(tribe_group(tribe_id), payload)

    # ---- inbound frames ----

    async def receive_json(self, content: Any, **kwargs: Any) -> None:
        if not isinstance(content, dict):
            await self._error("Frames must be JSON objects.")
            return
        name = content.get("event")
        data = content.get("data") or {}
        handler = {
            "join-tribes": self._join_tribes,
            "create-event": self._create_event,
            "send-message": self._send_message,
            "update-location": self._update_location,
        }.get(name)
        if handler is None:
            await self._error(f"Unknown event: {name!r}")
            return
        if not isinstance(data, dict):
            await self._error("data must be an object.")
            return
        try:
            await handler(data)
        except ValidationError as e:
            await self._error(e.detail)
        except (ClientError, ValueError, chat_services.ChatAccessError) as e:
            await self._error(str(e))

    async def _error(self, detail) -> None:
        await self.send_json({"type": "error", "detail": detail})

    async def _join_tribes(self, data: dict) -> None:
        self.tribe_ids = await self._active_tribe_ids()
        for tribe_id in self.tribe_ids:
            group = tribe_group(tribe_id)
            await self.channel_layer.group_add(group, self.channel_name)
            self.groups_joined.add(group)
        await self.send_json({"type": "tribes-joined", "tribes": self.tribe_ids})

    async def _create_event(self, data: dict) -> None:
        event_data = await database_sync_to_async(self._persist_event)(data)
        # tribe rooms hear about it from the post_save signal
        if not event_data.get("tribe"):
            await self.send_json({"type": "event-created", "data": event_data})

    async def _send_message(self, data: dict) -> None:
        message = await database_sync_to_async(self._persist_message)(data)
        await self.send_json({"type": "message-sent", "data": message})

    async def _update_location(self, data: dict) -> None:
        result = await database_sync_to_async(self._persist_location)(data)
        ping = {"user_id": self.user.id, "username": self.user.username, **result["location"]}
        for user_id, distance in result["nearby"]:
            await self.channel_layer.group_send(
                user_group(user_id), realtime_message("user-nearby", {**ping, "distance": distance})
            )
        await self.send_json({"type": "location-updated", "nearby": len(result["nearby"])})

    # ---- server pushes ----

    async def realtime_event(self, event: dict[str, Any]) -> None:
        await self.send_json({"type": event["event"], "data": event["data"]})

    # ---------- sync helper methods ----------
    @database_sync_to_async
    def _active_tribe_ids(self) -> list:
        return list(
            TribeMembership.objects.filter(user=self.user, status=TribeMembership.STATUS_ACTIVE)
            .order_by("tribe_id")
            .values_list("tribe_id", flat=True)
        )

    def _persist_event(self, data: dict) -> dict:
        serializer = EventSerializer(data=data, context={"request": SimpleNamespace(user=self.user)})
        serializer.is_valid(raise_exception=True)
        event = serializer.save()
        logger.info("Event %s created over websocket by %s", event.pk, self.user.id)
        return serializer.data

    def _persist_message(self, data: dict) -> dict:
        content = data.get("content")
        if data.get("chat_id"):
            chat = Chat.objects.filter(pk=data["chat_id"], participants__user=self.user).first()
            if chat is None:
                raise ClientError("Chat not found.")
        elif data.get("tribe_id"):
            tribe = Tribe.objects.filter(pk=data["tribe_id"]).first()
            if tribe is None:
                raise ClientError("Tribe not found.")
            chat, _ = chat_services.tribe_chat_for(self.user, tribe)
        else:
            raise ClientError("Provide chat_id or tribe_id.")
        message = chat_services.post_message(chat, self.user, content)
        return MessageSerializer(message).data

    def _persist_location(self, data: dict) -> dict:
        serializer = LocationUpdateSerializer(data=data)
        serializer.is_valid(raise_exception=True)
        profile = serializer.save_to(self.user.profile)
        location = {"lat": profile.latitude, "lng": profile.longitude}
        if not profile.location_sharing:
            return {"location": location, "nearby": []}

        candidates = UserProfile.objects.filter(
            location_sharing=True, user__is_active=True
        ).exclude(user=self.user)
        found = nearest(
            candidates,
            profile.latitude,
            profile.longitude,
            settings.NEARBY_DEFAULT_RADIUS_KM,
            settings.NEARBY_DEFAULT_LIMIT,
        )
        return {"location": location, "nearby": [(p.user_id, d) for p, d in found]}
