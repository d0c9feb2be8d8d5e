import pytest

from notifications.models import Notification
from tribes.models import Tribe, TribeMembership


@pytest.mark.django_db
def test_create_tribe_makes_creator_admin(auth_client, user):
    resp = auth_client.post(
        "/api/tribes/",
        {
            "name": "Sunday Cyclists",
            "description": "Long rides out of town.",
            "category": "sports",
            "latitude": 40.4,
            "longitude": -3.7,
            "tags": ["Bikes"],
        },
        format="json",
    )
    assert resp.status_code == 201, resp.content
    body = resp.json()
    assert body["slug"] == "sunday-cyclists"
    assert body["tags"] == ["bikes"]
    assert body["my_membership"] == {"role": "admin", "status": "active"}
    assert TribeMembership.objects.get(tribe_id=body["id"], user=user).role == TribeMembership.ROLE_ADMIN


@pytest.mark.django_db
def test_join_open_tribe(tribe, other_client, user):
    resp = other_client.post(f"/api/tribes/{tribe.id}/join/")
    assert resp.status_code == 201
    assert resp.json() == {"status": "active"}
    assert Notification.objects.filter(recipient=user, kind="tribe_update").exists()
    assert other_client.post(f"/api/tribes/{tribe.id}/join/").status_code == 400


@pytest.mark.django_db
def test_join_approval_tribe_and_approve(make_tribe, user, other_user, auth_client, other_client):
    tribe = make_tribe(user, name="Book Club", membership=Tribe.JOIN_APPROVAL)
    resp = other_client.post(f"/api/tribes/{tribe.id}/join/")
    assert resp.status_code == 202
    assert resp.json() == {"status": "pending"}

    pending = auth_client.get(f"/api/tribes/{tribe.id}/requests/").json()["results"]
    assert [r["user"]["id"] for r in pending] == [other_user.id]
    assert other_client.get(f"/api/tribes/{tribe.id}/requests/").status_code == 403

    resp = auth_client.post(f"/api/tribes/{tribe.id}/requests/{other_user.id}/approve/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "active"
    assert Notification.objects.filter(recipient=other_user, kind="tribe_update").exists()


@pytest.mark.django_db
def test_reject_request(make_tribe, user, other_user, auth_client, other_client):
    tribe = make_tribe(user, name="Chess", membership=Tribe.JOIN_APPROVAL)
    other_client.post(f"/api/tribes/{tribe.id}/join/")
    assert auth_client.post(f"/api/tribes/{tribe.id}/requests/{other_user.id}/reject/").status_code == 204
    assert not TribeMembership.objects.filter(tribe=tribe, user=other_user).exists()


@pytest.mark.django_db
def test_invite_only_refuses_join(make_tribe, user, other_client):
    tribe = make_tribe(user, name="Inner Circle", membership=Tribe.JOIN_INVITE)
    assert other_client.post(f"/api/tribes/{tribe.id}/join/").status_code == 403


@pytest.mark.django_db
def test_creator_cannot_leave(tribe, auth_client, other_client, join, other_user):
    assert auth_client.post(f"/api/tribes/{tribe.id}/leave/").status_code == 400
    join(tribe, other_user)
    assert other_client.post(f"/api/tribes/{tribe.id}/leave/").status_code == 200
    assert other_client.post(f"/api/tribes/{tribe.id}/leave/").status_code == 400


@pytest.mark.django_db
def test_ban_blocks_rejoin(tribe, auth_client, other_client, other_user, join):
    join(tribe, other_user)
    resp = auth_client.post(f"/api/tribes/{tribe.id}/ban/", {"user_id": other_user.id}, format="json")
    assert resp.status_code == 200
    assert resp.json()["status"] == "banned"
    assert other_client.post(f"/api/tribes/{tribe.id}/join/").status_code == 403
    assert auth_client.post(f"/api/tribes/{tribe.id}/ban/", {"user_id": tribe.creator_id}, format="json").status_code == 400


@pytest.mark.django_db
def test_moderator_promotion(tribe, auth_client, other_client, other_user, make_user, join):
    join(tribe, other_user)
    resp = auth_client.post(f"/api/tribes/{tribe.id}/moderators/", {"user_id": other_user.id}, format="json")
    assert resp.json()["role"] == "moderator"

    # moderators review requests but cannot appoint others
    carol = make_user("carol")
    join(tribe, carol)
    assert other_client.post(f"/api/tribes/{tribe.id}/moderators/", {"user_id": carol.id}, format="json").status_code == 403
    assert other_client.get(f"/api/tribes/{tribe.id}/requests/").status_code == 200

    resp = auth_client.delete(f"/api/tribes/{tribe.id}/moderators/{other_user.id}/")
    assert resp.json()["role"] == "member"


@pytest.mark.django_db
def test_update_and_delete_permissions(tribe, other_user, other_client, join, client_for):
    assert other_client.patch(f"/api/tribes/{tribe.id}/", {"description": "Mine now"}, format="json").status_code == 403

    join(tribe, other_user, role=TribeMembership.ROLE_ADMIN)
    resp = other_client.patch(f"/api/tribes/{tribe.id}/", {"description": "Runs on Sundays."}, format="json")
    assert resp.status_code == 200
    # only the creator may delete
    assert other_client.delete(f"/api/tribes/{tribe.id}/").status_code == 403
    assert client_for(tribe.creator).delete(f"/api/tribes/{tribe.id}/").status_code == 204


@pytest.mark.django_db
def test_secret_tribes_hidden_from_non_members(make_tribe, user, other_client, other_user, join):
    secret = make_tribe(user, name="Hidden", privacy=Tribe.PRIVACY_SECRET)
    assert other_client.get(f"/api/tribes/{secret.id}/").status_code == 404
    names = [t["name"] for t in other_client.get("/api/tribes/").json()["results"]]
    assert "Hidden" not in names

    join(secret, other_user)
    assert other_client.get(f"/api/tribes/{secret.id}/").status_code == 200


@pytest.mark.django_db
def test_private_tribe_members_list(make_tribe, user, other_client, other_user, join):
    private = make_tribe(user, name="Quiet Readers", privacy=Tribe.PRIVACY_PRIVATE)
    assert other_client.get(f"/api/tribes/{private.id}/members/").status_code == 403
    join(private, other_user)
    assert other_client.get(f"/api/tribes/{private.id}/members/").json()["count"] == 2


@pytest.mark.django_db
def test_list_filters(make_tribe, user, other_user, other_client, join):
    make_tribe(user, name="Jazz Lovers", category="music", city="Barcelona")
    runners = make_tribe(user, name="Runners", category="sports")
    join(runners, other_user)

    assert [t["name"] for t in other_client.get("/api/tribes/?category=music").json()["results"]] == ["Jazz Lovers"]
    assert [t["name"] for t in other_client.get("/api/tribes/?city=barcelona").json()["results"]] == ["Jazz Lovers"]
    assert [t["name"] for t in other_client.get("/api/tribes/?mine=true").json()["results"]] == ["Runners"]


@pytest.mark.django_db
def test_nearby(make_tribe, user, auth_client):
    make_tribe(user, name="Local", latitude=40.417, longitude=-3.704)
    make_tribe(user, name="Lisbon", latitude=38.72, longitude=-9.14)
    body = auth_client.get("/api/tribes/nearby/?lat=40.4168&lng=-3.7038&radius=5").json()
    assert [t["name"] for t in body["results"]] == ["Local"]
    assert body["results"][0]["distance"] < 1


@pytest.mark.django_db
def test_tribe_events_listing(tribe, make_event, user, auth_client):
    make_event(user, tribe=tribe, title="Tribe run")
    make_event(user, title="Solo run")
    titles = [e["title"] for e in auth_client.get(f"/api/tribes/{tribe.id}/events/").json()["results"]]
    assert titles == ["Tribe run"]


@pytest.mark.django_db
def test_leave_when_not_a_member(tribe, other_client):
    resp = other_client.post(f"/api/tribes/{tribe.id}/leave/")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You are not a member of this tribe."


@pytest.mark.django_db
def test_remove_moderator_rules(tribe, auth_client, other_client, other_user, make_user, join):
    join(tribe, other_user, role=TribeMembership.ROLE_MODERATOR)
    carol = make_user("carol")
    join(tribe, carol)

    # moderators cannot demote each other, and plain members are not moderators
    assert other_client.delete(f"/api/tribes/{tribe.id}/moderators/{other_user.id}/").status_code == 403
    assert auth_client.delete(f"/api/tribes/{tribe.id}/moderators/{carol.id}/").status_code == 404

    resp = auth_client.delete(f"/api/tribes/{tribe.id}/moderators/{other_user.id}/")
    assert resp.status_code == 200
    assert TribeMembership.objects.get(tribe=tribe, user=other_user).role == TribeMembership.ROLE_MEMBER


@pytest.mark.django_db
@pytest.mark.parametrize("action", ["ban", "moderators"])
@pytest.mark.parametrize("user_id", ["abc", None, 0])
def test_user_id_is_validated(tribe, auth_client, action, user_id):
    resp = auth_client.post(f"/api/tribes/{tribe.id}/{action}/", {"user_id": user_id}, format="json")
    assert resp.status_code == 400
    assert "user_id" in resp.json()
