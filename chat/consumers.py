"""
Channels consumer for a single chat room.

Clients connect to ``ws/chat/<chat_id>/`` with a JWT; only participants
of the chat are accepted.  Incoming frames:

* ``{"type": "message", "content": ..., "reply_to": <id>?}`` stores the
  message and broadcasts ``new-message`` to the room.
* ``{"type": "typing"}`` broadcasts a ``typing`` indicator.

Everything pushed to the ``chat_<id>`` group arrives as a
``realtime.event`` and is forwarded as ``{"type": <event>, "data": ...}``.
"""
from __future__ import annotations

import logging
from typing import Any

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from realtime.broadcast import chat_group, realtime_message
from . import services
from .models import Chat, Message

logger = logging.getLogger(__name__)

CLOSE_UNAUTHENTICATED = 4401
CLOSE_FORBIDDEN = 4403


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """Realtime WebSocket consumer for one chat."""

    async def connect(self) -> None:
        self.chat_id = int(self.scope["url_route"]["kwargs"]["chat_id"])
        self.group_name = chat_group(self.chat_id)
        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return
        if not await self._is_participant(user, self.chat_id):
            await self.close(code=CLOSE_FORBIDDEN)
            return
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, code: int) -> None:
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content: Any, **kwargs: Any) -> None:
        if not isinstance(content, dict):
            await self.send_json({"type": "error", "detail": "Frames must be JSON objects."})
            return
        frame_type = content.get("type")
        if frame_type == "message":
            await self._handle_message(content)
        elif frame_type == "typing":
            user = self.scope["user"]
            await self.channel_layer.group_send(
                self.group_name,
                realtime_message("typing", {"chat_id": self.chat_id, "user_id": user.id, "username": user.username}),
            )
        else:
            await self.send_json({"type": "error", "detail": f"Unknown frame type: {frame_type!r}"})

    async def _handle_message(self, content: dict[str, Any]) -> None:
        try:
            await database_sync_to_async(self._post)(content.get("content"), content.get("reply_to"))
        except (ValueError, services.ChatAccessError, Message.DoesNotExist) as e:
            await self.send_json({"type": "error", "detail": str(e)})

    async def realtime_event(self, event: dict[str, Any]) -> None:
        await self.send_json({"type": event["event"], "data": event["data"]})

    # ---------- sync helper methods ----------
    def _post(self, text, reply_to_id):
        chat = Chat.objects.get(pk=self.chat_id)
        reply_to = Message.objects.get(pk=reply_to_id, chat=chat) if reply_to_id else None
        return services.post_message(chat, self.scope["user"], text, reply_to=reply_to)

    @database_sync_to_async
    def _is_participant(self, user, chat_id: int) -> bool:
        return Chat.objects.filter(pk=chat_id, participants__user=user).exists()
