from datetime import timedelta

import pytest
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.utils import timezone

from chat.models import Message
from events.models import Event
from realtime.broadcast import realtime_message, tribe_group, user_group
from realtime.routing import websocket_urlpatterns

app = URLRouter(websocket_urlpatterns)


async def _connect(user):
    communicator = WebsocketCommunicator(app, "/ws/realtime/")
    communicator.scope["user"] = user
    connected, _ = await communicator.connect()
    assert connected
    welcome = await communicator.receive_json_from(timeout=2)
    assert welcome == {"type": "welcome", "user_id": user.id}
    return communicator


@pytest.mark.django_db(transaction=True)
async def test_anonymous_is_refused():
    communicator = WebsocketCommunicator(app, "/ws/realtime/")
    communicator.scope["user"] = AnonymousUser()
    connected, code = await communicator.connect()
    assert not connected
    assert code == 4401


@pytest.mark.django_db(transaction=True)
async def test_personal_group_receives_pushes(user):
    communicator = await _connect(user)
    await get_channel_layer().group_send(user_group(user.id), realtime_message("notification", {"id": 1}))
    assert await communicator.receive_json_from(timeout=2) == {"type": "notification", "data": {"id": 1}}
    await communicator.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_join_tribes_and_presence(tribe, user, other_user, join):
    await database_sync_to_async(join)(tribe, other_user)
    alice = await _connect(user)
    await alice.send_json_to({"event": "join-tribes"})
    assert await alice.receive_json_from(timeout=2) == {"type": "tribes-joined", "tribes": [tribe.id]}

    bob = await _connect(other_user)
    frame = await alice.receive_json_from(timeout=2)
    assert frame["type"] == "user_online"
    assert frame["data"]["user_id"] == other_user.id

    await bob.disconnect()
    frame = await alice.receive_json_from(timeout=2)
    assert frame["type"] == "user_offline"
    await alice.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_unknown_and_malformed_frames(user):
    communicator = await _connect(user)
    await communicator.send_json_to({"event": "teleport"})
    assert (await communicator.receive_json_from(timeout=2))["type"] == "error"
    await communicator.send_json_to({"event": "join-tribes", "data": ["nope"]})
    assert (await communicator.receive_json_from(timeout=2))["type"] == "error"
    await communicator.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_create_event_over_socket(user):
    communicator = await _connect(user)
    start = timezone.now() + timedelta(days=1)
    await communicator.send_json_to({
        "event": "create-event",
        "data": {
            "title": "Picnic in Retiro",
            "description": "Bring snacks.",
            "category": "food",
            "latitude": 40.415,
            "longitude": -3.684,
            "start_at": start.isoformat(),
            "end_at": (start + timedelta(hours=3)).isoformat(),
            "capacity": 20,
        },
    })
    frame = await communicator.receive_json_from(timeout=2)
    assert frame["type"] == "event-created"
    assert frame["data"]["title"] == "Picnic in Retiro"
    assert await database_sync_to_async(Event.objects.filter(host=user).count)() == 1

    await communicator.send_json_to({"event": "create-event", "data": {"title": "x"}})
    frame = await communicator.receive_json_from(timeout=2)
    assert frame["type"] == "error"
    assert "title" in frame["detail"]
    await communicator.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_send_message_to_tribe_chat(tribe, user):
    communicator = await _connect(user)
    await communicator.send_json_to({"event": "send-message", "data": {"tribe_id": tribe.id, "content": "Run at 7?"}})
    frame = await communicator.receive_json_from(timeout=2)
    assert frame["type"] == "message-sent"
    assert frame["data"]["content"] == "Run at 7?"
    assert await database_sync_to_async(Message.objects.count)() == 1

    await communicator.send_json_to({"event": "send-message", "data": {"content": "Where to?"}})
    assert (await communicator.receive_json_from(timeout=2))["type"] == "error"
    await communicator.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_update_location_pings_nearby_users(make_user, user):
    carol = await database_sync_to_async(make_user)("carol", latitude=40.417, longitude=-3.704)
    await database_sync_to_async(make_user)("dave", latitude=48.85, longitude=2.35)
    alice = await _connect(user)
    watcher = await _connect(carol)

    await alice.send_json_to({"event": "update-location", "data": {"lat": 40.4168, "lng": -3.7038}})
    assert await alice.receive_json_from(timeout=2) == {"type": "location-updated", "nearby": 1}
    ping = await watcher.receive_json_from(timeout=2)
    assert ping["type"] == "user-nearby"
    assert ping["data"]["user_id"] == user.id
    assert ping["data"]["distance"] < 1

    await alice.send_json_to({"event": "update-location", "data": {"lat": 123, "lng": 0}})
    assert (await alice.receive_json_from(timeout=2))["type"] == "error"
    await alice.disconnect()
    await watcher.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_tribe_room_hears_broadcasts(tribe, user):
    communicator = await _connect(user)
    await communicator.send_json_to({"event": "join-tribes"})
    await communicator.receive_json_from(timeout=2)
    await get_channel_layer().group_send(tribe_group(tribe.id), realtime_message("event-created", {"id": 9}))
    assert await communicator.receive_json_from(timeout=2) == {"type": "event-created", "data": {"id": 9}}
    await communicator.disconnect()
