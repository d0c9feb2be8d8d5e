import pytest

from events.models import EventAttendance
from notifications.models import Notification
from posts.models import Post
from users.models import Follow, UserProfile


@pytest.mark.django_db
def test_follow_and_unfollow(auth_client, user, other_user):
    resp = auth_client.post(f"/api/users/{other_user.id}/follow/")
    assert resp.status_code == 201
    assert Follow.is_following(user, other_user)
    assert Notification.objects.filter(recipient=other_user, kind="follow", actor=user).exists()

    assert auth_client.post(f"/api/users/{other_user.id}/follow/").status_code == 400

    resp = auth_client.get(f"/api/users/{other_user.id}/followers/")
    assert [u["username"] for u in resp.json()["results"]] == ["alice"]

    resp = auth_client.delete(f"/api/users/{other_user.id}/follow/")
    assert resp.status_code == 200
    assert not Follow.is_following(user, other_user)


@pytest.mark.django_db
def test_cannot_follow_self(auth_client, user):
    assert auth_client.post(f"/api/users/{user.id}/follow/").status_code == 400


@pytest.mark.django_db
def test_private_profile_hidden_from_others(auth_client, other_user, other_client, user):
    other_user.profile.profile_visibility = UserProfile.VISIBILITY_PRIVATE
    other_user.profile.save()

    assert auth_client.get(f"/api/users/{other_user.id}/").status_code == 403
    assert other_client.get(f"/api/users/{other_user.id}/").status_code == 200


@pytest.mark.django_db
def test_followers_only_profile(auth_client, user, other_user):
    other_user.profile.profile_visibility = UserProfile.VISIBILITY_FRIENDS
    other_user.profile.save()

    assert auth_client.get(f"/api/users/{other_user.id}/").status_code == 403
    Follow.objects.create(follower=user, following=other_user)
    resp = auth_client.get(f"/api/users/{other_user.id}/")
    assert resp.status_code == 200
    assert resp.json()["is_following"] is True


@pytest.mark.django_db
def test_update_location(auth_client, user):
    resp = auth_client.put(
        "/api/users/me/location/", {"lat": 40.4, "lng": -3.7, "city": "Madrid"}, format="json"
    )
    assert resp.status_code == 200
    user.profile.refresh_from_db()
    assert (user.profile.latitude, user.profile.longitude) == (40.4, -3.7)
    assert user.profile.location_updated_at is not None


@pytest.mark.django_db
def test_update_location_rejects_out_of_range(auth_client):
    resp = auth_client.put("/api/users/me/location/", {"lat": 123, "lng": 0}, format="json")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_preferences(auth_client, user):
    resp = auth_client.patch(
        "/api/users/me/preferences/",
        {"muted_notification_kinds": ["like"], "timezone": "Europe/Madrid"},
        format="json",
    )
    assert resp.status_code == 200, resp.content
    user.profile.refresh_from_db()
    assert user.profile.muted_notification_kinds == ["like"]
    assert not user.profile.wants("like")

    resp = auth_client.patch("/api/users/me/preferences/", {"muted_notification_kinds": ["bogus"]}, format="json")
    assert resp.status_code == 400
    resp = auth_client.patch("/api/users/me/preferences/", {"timezone": "Mars/Olympus"}, format="json")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_suggested_users_share_city(auth_client, user, make_user):
    user.profile.city = "Madrid"
    user.profile.save()
    dora = make_user("dora", city="Madrid")
    make_user("eve", city="Lisbon")

    resp = auth_client.get("/api/users/suggested/")
    assert resp.status_code == 200
    assert [u["username"] for u in resp.json()] == ["dora"]

    # private profiles are never suggested
    dora.profile.profile_visibility = UserProfile.VISIBILITY_PRIVATE
    dora.profile.save()
    assert auth_client.get("/api/users/suggested/").json() == []


@pytest.mark.django_db
def test_user_directory_search(auth_client, make_user):
    make_user("frank", city="Madrid")
    resp = auth_client.get("/api/users/?city=madrid")
    assert [u["username"] for u in resp.json()["results"]] == ["frank"]


@pytest.mark.django_db
def test_user_events_tribes_and_posts(auth_client, user, other_user, make_event, tribe, join):
    hosted = make_event(other_user, title="Bike ride")
    attending = make_event(user, title="Sunset run")
    EventAttendance.objects.create(event=attending, user=other_user)
    join(tribe, other_user)
    post = Post.objects.create(author=other_user, content="Who is up for a ride?")
    base = f"/api/users/{other_user.id}"

    assert [e["id"] for e in auth_client.get(f"{base}/events/").json()["results"]] == [hosted.id]
    resp = auth_client.get(f"{base}/events/?role=attending")
    assert [e["id"] for e in resp.json()["results"]] == [attending.id]
    assert auth_client.get(f"{base}/events/?role=sleeping").status_code == 400

    assert [t["id"] for t in auth_client.get(f"{base}/tribes/").json()["results"]] == [tribe.id]
    assert [p["id"] for p in auth_client.get(f"{base}/posts/").json()["results"]] == [post.id]


@pytest.mark.django_db
def test_private_profile_hides_listings(auth_client, other_client, other_user, make_event):
    make_event(other_user)
    other_user.profile.profile_visibility = UserProfile.VISIBILITY_PRIVATE
    other_user.profile.save()
    base = f"/api/users/{other_user.id}"

    for listing in ("events", "tribes", "posts"):
        assert auth_client.get(f"{base}/{listing}/").status_code == 403
    # owners always see their own
    assert other_client.get(f"{base}/events/").json()["count"] == 1
