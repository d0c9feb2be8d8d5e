import pytest

from events.models import Event
from posts.models import Post
from tribes.models import Tribe
from users.models import UserProfile


@pytest.mark.django_db
def test_query_too_short(auth_client):
    resp = auth_client.get("/api/search/?q=a")
    assert resp.status_code == 400
    assert "q" in resp.json()
    assert auth_client.get("/api/search/suggestions/?q=").status_code == 400


@pytest.mark.django_db
def test_search_all_types(event, tribe, user, auth_client):
    Post.objects.create(author=user, content="Who is up for a run tomorrow?")
    body = auth_client.get("/api/search/?q=run").json()
    assert body["query"] == "run"
    assert body["type"] == "all"
    assert [e["id"] for e in body["results"]["events"]] == [event.id]
    assert [t["id"] for t in body["results"]["tribes"]] == [tribe.id]
    assert len(body["results"]["posts"]) == 1
    assert body["results"]["users"] == []
    assert body["total"] == 3


@pytest.mark.django_db
def test_search_single_type_and_limit(make_event, user, auth_client):
    for i in range(4):
        make_event(user, title=f"Yoga class {i}")
    body = auth_client.get("/api/search/?q=yoga&type=events&limit=2").json()
    assert list(body["results"]) == ["events"]
    assert len(body["results"]["events"]) == 2
    assert auth_client.get("/api/search/?q=yoga&type=planets").status_code == 400


@pytest.mark.django_db
def test_search_respects_visibility(make_event, make_tribe, make_user, user, other_client):
    make_event(user, title="Secret dinner", visibility=Event.VISIBILITY_PRIVATE)
    make_tribe(user, name="Secret society", privacy=Tribe.PRIVACY_SECRET)
    make_user("secretive", profile_visibility=UserProfile.VISIBILITY_PRIVATE)
    body = other_client.get("/api/search/?q=secret").json()
    assert body["total"] == 0


@pytest.mark.django_db
def test_user_search(make_user, other_client):
    make_user("carolina", bio="Trail runner and climber")
    body = other_client.get("/api/search/?q=climber&type=users").json()
    assert [u["username"] for u in body["results"]["users"]] == ["carolina"]


@pytest.mark.django_db
def test_suggestions(make_event, make_tribe, make_user, user, auth_client):
    make_event(user, title="Madrid marathon")
    make_tribe(user, name="Madrid Cyclists")
    make_user("madridista")
    body = auth_client.get("/api/search/suggestions/?q=mad").json()
    assert body == {
        "events": ["Madrid marathon"],
        "tribes": ["Madrid Cyclists"],
        "users": ["madridista"],
    }


@pytest.mark.django_db
def test_trending_tags_and_categories(make_event, user, auth_client):
    make_event(user, category="music", tags=["jazz", "live"])
    make_event(user, category="music", tags=["jazz"])
    make_event(user, category="food", tags=["tapas"])
    body = auth_client.get("/api/search/trending/").json()
    assert body["tags"][0] == {"tag": "jazz", "count": 2}
    assert body["categories"][0] == {"category": "music", "count": 2}
