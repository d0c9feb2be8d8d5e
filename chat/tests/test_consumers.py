import pytest
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser

from chat import services
from chat.models import Message
from chat.routing import websocket_urlpatterns

app = URLRouter(websocket_urlpatterns)


def _communicator(chat, user):
    communicator = WebsocketCommunicator(app, f"/ws/chat/{chat.id}/")
    communicator.scope["user"] = user
    return communicator


@pytest.fixture
def private_chat(user, other_user):
    chat, _ = services.get_or_create_private(user, other_user)
    return chat


@pytest.mark.django_db(transaction=True)
async def test_outsider_is_refused(private_chat, make_user):
    mallory = await database_sync_to_async(make_user)("mallory")
    connected, code = await _communicator(private_chat, mallory).connect()
    assert not connected
    assert code == 4403


@pytest.mark.django_db(transaction=True)
async def test_anonymous_is_refused(private_chat):
    connected, code = await _communicator(private_chat, AnonymousUser()).connect()
    assert not connected
    assert code == 4401


@pytest.mark.django_db(transaction=True)
async def test_message_reaches_both_sides(private_chat, user, other_user):
    alice = _communicator(private_chat, user)
    bob = _communicator(private_chat, other_user)
    assert (await alice.connect())[0]
    assert (await bob.connect())[0]

    await alice.send_json_to({"type": "message", "content": "On my way"})
    for side in (alice, bob):
        frame = await side.receive_json_from(timeout=2)
        assert frame["type"] == "new-message"
        assert frame["data"]["content"] == "On my way"
        assert frame["data"]["sender"]["id"] == user.id

    assert await database_sync_to_async(Message.objects.filter(chat=private_chat).count)() == 1
    await alice.disconnect()
    await bob.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_typing_and_bad_frames(private_chat, user, other_user):
    alice = _communicator(private_chat, user)
    bob = _communicator(private_chat, other_user)
    await alice.connect()
    await bob.connect()

    await alice.send_json_to({"type": "typing"})
    frame = await bob.receive_json_from(timeout=2)
    assert frame == {"type": "typing", "data": {"chat_id": private_chat.id, "user_id": user.id, "username": "alice"}}
    await alice.receive_json_from(timeout=2)

    await alice.send_json_to({"type": "message", "content": "   "})
    assert (await alice.receive_json_from(timeout=2))["type"] == "error"
    await alice.send_json_to({"type": "shout"})
    assert (await alice.receive_json_from(timeout=2))["type"] == "error"
    await alice.send_json_to(["not", "an", "object"])
    frame = await alice.receive_json_from(timeout=2)
    assert frame == {"type": "error", "detail": "Frames must be JSON objects."}

    await alice.disconnect()
    await bob.disconnect()
