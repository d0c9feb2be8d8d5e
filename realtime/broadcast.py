"""
Helpers for pushing server-side events to channel-layer groups.

Group names follow one scheme across the project: ``user_<id>`` for a
person's sockets, ``tribe_<id>`` for tribe rooms and ``chat_<id>`` for a
conversation.  Every broadcast is delivered to consumers as a
``realtime.event`` message carrying the client-facing event name.
"""
import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)


def user_group(user_id) -> str:
    return f"user_{user_id}"


def tribe_group(tribe_id) -> str:
    return f"tribe_{tribe_id}"


def chat_group(chat_id) -> str:
    return f"chat_{chat_id}"


def _jsonable(data):
    # channel layers msgpack their payloads; datetimes and decimals are flattened first
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def realtime_message(event: str, data) -> dict:
    return {"type": "realtime.event", "event": event, "data": _jsonable(data)}


def broadcast(group: str, event: str, data) -> None:
    """Send ``event`` with ``data`` to every socket in ``group`` (sync callers)."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.debug("No channel layer configured; dropping %s for %s", event, group)
        return
    async_to_sync(channel_layer.group_send)(group, realtime_message(event, data))
