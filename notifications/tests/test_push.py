from types import SimpleNamespace

import pytest
from firebase_admin import messaging

from notifications import push
from notifications.models import Notification, PushToken
from notifications.tasks import deliver_notification


@pytest.fixture
def firebase(settings, monkeypatch):
    """Configure Firebase and record multicast sends instead of calling FCM."""
    settings.FIREBASE_PROJECT_ID = "eventconnect-test"
    settings.FIREBASE_PRIVATE_KEY = "key"
    settings.FIREBASE_CLIENT_EMAIL = "push@eventconnect-test.iam.gserviceaccount.com"
    monkeypatch.setattr(push, "_app", lambda: "app")
    sent = []
    failing = set()

    def fake_send(message, app=None):
        sent.append(message)
        responses = [
            SimpleNamespace(success=False, exception=messaging.UnregisteredError("gone"))
            if token in failing
            else SimpleNamespace(success=True, exception=None)
            for token in message.tokens
        ]
        return SimpleNamespace(
            responses=responses, success_count=sum(1 for r in responses if r.success)
        )

    monkeypatch.setattr(push.messaging, "send_each_for_multicast", fake_send)
    return SimpleNamespace(sent=sent, failing=failing)


@pytest.mark.django_db
def test_deliver_pushes_to_registered_devices(firebase, user, other_user):
    PushToken.objects.create(user=user, token="phone", platform="ios")
    PushToken.objects.create(user=other_user, token="someone-else")
    n = Notification.objects.create(
        recipient=user, kind="event_cancelled", title="Cancelled", data={"event_id": 7}, priority="high"
    )

    deliver_notification(n.pk)

    assert len(firebase.sent) == 1
    message = firebase.sent[0]
    assert message.tokens == ["phone"]
    assert message.notification.title == "Cancelled"
    assert message.data == {"event_id": "7", "notification_id": str(n.pk), "kind": "event_cancelled"}
    assert message.android.priority == "high"


@pytest.mark.django_db
def test_push_respects_preference(firebase, user):
    user.profile.notify_push = False
    user.profile.save()
    PushToken.objects.create(user=user, token="phone")
    n = Notification.objects.create(recipient=user, kind="like", title="Liked")

    deliver_notification(n.pk)
    assert firebase.sent == []


@pytest.mark.django_db
def test_unregistered_tokens_are_dropped(firebase, user):
    PushToken.objects.create(user=user, token="phone")
    PushToken.objects.create(user=user, token="old-tablet")
    firebase.failing.add("old-tablet")
    n = Notification.objects.create(recipient=user, kind="follow", title="New follower")

    assert push.send_push(n) == 1
    assert list(PushToken.objects.values_list("token", flat=True)) == ["phone"]


@pytest.mark.django_db
def test_push_is_skipped_without_credentials(settings, user, monkeypatch):
    settings.FIREBASE_PROJECT_ID = ""
    PushToken.objects.create(user=user, token="phone")
    monkeypatch.setattr(
        push.messaging, "send_each_for_multicast", lambda *a, **k: pytest.fail("push sent")
    )
    n = Notification.objects.create(recipient=user, kind="follow", title="New follower")
    assert push.send_push(n) == 0
