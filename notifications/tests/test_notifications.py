import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core import mail

from notifications.models import Notification, PushToken
from notifications.services import notify, notify_many
from notifications.tasks import deliver_notification


@pytest.mark.django_db
def test_notify_skips_self_and_muted_kinds(user, other_user):
    assert notify(user, "like", "Liked", actor=user) is None

    user.profile.muted_notification_kinds = ["like"]
    user.profile.save()
    assert notify(user, "like", "Liked", actor=other_user) is None
    assert notify(user, "comment", "Commented", actor=other_user) is not None
    assert list(Notification.objects.values_list("kind", flat=True)) == ["comment"]


@pytest.mark.django_db
def test_notify_delivers_on_commit(user, other_user, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        notify(user, "follow", "New follower", actor=other_user)
    assert len(callbacks) == 1


@pytest.mark.django_db
def test_notify_many_fans_out(user, other_user, make_user):
    carol = make_user("carol")
    notify_many([user, other_user, carol.pk], "system", "Maintenance tonight", actor=carol)
    recipients = set(Notification.objects.values_list("recipient__username", flat=True))
    assert recipients == {"alice", "bob"}


@pytest.mark.django_db
def test_deliver_pushes_to_user_group_and_emails(user, other_user):
    channel_layer = get_channel_layer()
    channel = async_to_sync(channel_layer.new_channel)()
    async_to_sync(channel_layer.group_add)(f"user_{user.id}", channel)

    n = Notification.objects.create(recipient=user, actor=other_user, kind="event_update", title="Time changed")
    assert deliver_notification(n.pk) is True

    message = async_to_sync(channel_layer.receive)(channel)
    assert message["type"] == "realtime.event"
    assert message["event"] == "notification"
    assert message["data"]["id"] == n.pk
    assert mail.outbox[0].subject == "Time changed"


@pytest.mark.django_db
def test_deliver_respects_email_preference(user):
    user.profile.notify_email = False
    user.profile.save()
    n = Notification.objects.create(recipient=user, kind="event_update", title="Time changed")
    deliver_notification(n.pk)
    assert mail.outbox == []


@pytest.mark.django_db
def test_list_filters_and_stats(auth_client, user):
    Notification.objects.create(recipient=user, kind="like", title="a")
    Notification.objects.create(recipient=user, kind="like", title="b", is_read=True)
    Notification.objects.create(recipient=user, kind="follow", title="c")

    resp = auth_client.get("/api/notifications/?unread=true")
    assert resp.json()["count"] == 2
    resp = auth_client.get("/api/notifications/?kind=follow")
    assert [n["title"] for n in resp.json()["results"]] == ["c"]

    stats = auth_client.get("/api/notifications/stats/").json()
    assert stats["total"] == 3
    assert stats["unread"] == 2
    assert stats["by_kind"] == {"like": 2, "follow": 1}


@pytest.mark.django_db
def test_read_read_all_and_clear(auth_client, user, other_user):
    first = Notification.objects.create(recipient=user, kind="like", title="a")
    Notification.objects.create(recipient=user, kind="like", title="b")
    foreign = Notification.objects.create(recipient=other_user, kind="like", title="c")

    resp = auth_client.post(f"/api/notifications/{first.id}/read/")
    assert resp.status_code == 200
    assert resp.json()["is_read"] is True
    assert auth_client.post(f"/api/notifications/{foreign.id}/read/").status_code == 404

    assert auth_client.post("/api/notifications/read-all/").json() == {"updated": 1}
    assert auth_client.delete("/api/notifications/clear/").json() == {"deleted": 2}
    assert Notification.objects.filter(pk=foreign.pk).exists()


@pytest.mark.django_db
def test_push_token_registration_is_idempotent(auth_client, user):
    resp = auth_client.post("/api/notifications/push-tokens/", {"token": "dev-1", "platform": "ios"}, format="json")
    assert resp.status_code == 201
    resp = auth_client.post("/api/notifications/push-tokens/", {"token": "dev-1", "platform": "ios"}, format="json")
    assert resp.status_code == 200
    assert PushToken.objects.filter(user=user).count() == 1

    resp = auth_client.delete("/api/notifications/push-tokens/", {"token": "dev-1"}, format="json")
    assert resp.json() == {"deleted": True}
