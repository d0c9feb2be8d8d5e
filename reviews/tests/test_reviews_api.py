from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from events.models import EventAttendance
from notifications.models import Notification
from reviews.models import Review


@pytest.fixture
def past_event(make_event, user):
    start = timezone.now() - timedelta(days=1)
    return make_event(user, start_at=start, end_at=start + timedelta(hours=2))


@pytest.fixture
def attendee(make_user, past_event):
    def _attendee(username):
        u = make_user(username)
        EventAttendance.objects.create(event=past_event, user=u)
        return u
    return _attendee


def _review(client, event, rating=5, **extra):
    return client.post("/api/reviews/", {"event": event.id, "rating": rating, **extra}, format="json")


@pytest.mark.django_db
def test_attendee_reviews_event(past_event, other_user, other_client, user):
    EventAttendance.objects.create(event=past_event, user=other_user)
    resp = _review(other_client, past_event, rating=4, title="Well organised", comment="Good route.")
    assert resp.status_code == 201, resp.content
    body = resp.json()
    assert body["host"] == user.id
    assert body["reviewer"]["id"] == other_user.id
    assert Notification.objects.filter(recipient=user, kind="review").exists()

    assert _review(other_client, past_event).status_code == 400


@pytest.mark.django_db
def test_review_eligibility(event, past_event, auth_client, other_client):
    # not an attendee
    assert _review(other_client, past_event).status_code == 400
    # own event
    assert _review(auth_client, past_event).status_code == 400
    # not started yet
    assert _review(other_client, event).status_code == 400


@pytest.mark.django_db
def test_rating_bounds(past_event, other_user, other_client):
    EventAttendance.objects.create(event=past_event, user=other_user)
    assert _review(other_client, past_event, rating=6).status_code == 400
    assert _review(other_client, past_event, rating=0).status_code == 400


@pytest.mark.django_db
def test_host_rating_recomputed(past_event, attendee, user, client_for):
    for name, rating in (("carol", 5), ("dave", 4), ("erin", 4)):
        assert _review(client_for(attendee(name)), past_event, rating=rating).status_code == 201

    user.profile.refresh_from_db()
    assert user.profile.rating_count == 3
    assert user.profile.rating_average == Decimal("4.3")

    Review.objects.filter(rating=5).delete()
    user.profile.refresh_from_db()
    assert user.profile.rating_count == 2
    assert user.profile.rating_average == Decimal("4.0")


@pytest.mark.django_db
def test_only_reviewer_edits(past_event, attendee, client_for, auth_client):
    carol = attendee("carol")
    review_id = _review(client_for(carol), past_event, rating=3).json()["id"]
    assert auth_client.patch(f"/api/reviews/{review_id}/", {"rating": 1}, format="json").status_code == 403
    resp = client_for(carol).patch(f"/api/reviews/{review_id}/", {"rating": 4}, format="json")
    assert resp.status_code == 200
    assert resp.json()["rating"] == 4


@pytest.mark.django_db
def test_hidden_reviews_are_listed_for_nobody(past_event, attendee, client_for, auth_client):
    carol = attendee("carol")
    review_id = _review(client_for(carol), past_event, is_public=False).json()["id"]
    assert auth_client.get("/api/reviews/").json()["count"] == 0
    assert auth_client.get(f"/api/reviews/{review_id}/").status_code == 404
    assert client_for(carol).get(f"/api/reviews/{review_id}/").status_code == 200


@pytest.mark.django_db
def test_helpful_toggle(past_event, attendee, client_for, auth_client):
    carol = attendee("carol")
    review_id = _review(client_for(carol), past_event).json()["id"]
    assert client_for(carol).post(f"/api/reviews/{review_id}/helpful/").status_code == 400
    assert auth_client.post(f"/api/reviews/{review_id}/helpful/").json() == {"helpful": True, "helpful_count": 1}
    assert auth_client.post(f"/api/reviews/{review_id}/helpful/").json() == {"helpful": False, "helpful_count": 0}


@pytest.mark.django_db
def test_report_once(past_event, attendee, client_for, auth_client):
    review_id = _review(client_for(attendee("carol")), past_event).json()["id"]
    url = f"/api/reviews/{review_id}/report/"
    assert auth_client.post(url, {"reason": "nonsense"}, format="json").status_code == 400
    resp = auth_client.post(url, {"reason": "spam", "details": "Looks copied."}, format="json")
    assert resp.status_code == 201
    assert resp.json()["reason"] == "spam"
    assert auth_client.post(url, {"reason": "spam"}, format="json").status_code == 400


@pytest.mark.django_db
def test_stats(past_event, attendee, client_for, auth_client, user):
    for name, rating in (("carol", 5), ("dave", 5), ("erin", 2)):
        _review(client_for(attendee(name)), past_event, rating=rating)

    body = auth_client.get(f"/api/reviews/stats/?event={past_event.id}").json()
    assert body["count"] == 3
    assert body["average"] == 4.0
    assert body["distribution"] == {"1": 0, "2": 1, "3": 0, "4": 0, "5": 2}

    assert auth_client.get(f"/api/reviews/stats/?host={user.id}").json()["count"] == 3
    assert auth_client.get("/api/reviews/stats/").status_code == 400
