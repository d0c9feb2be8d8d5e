import re

import pytest
from django.contrib.auth.models import User
from django.core import mail
from rest_framework.test import APIClient

from users.models import UserProfile


def _register(client, **overrides):
    payload = {
        "username": "carol",
        "email": "Carol@EventConnect.io",
        "first_name": "Carol",
        "last_name": "Diaz",
        "password": "a-Strong-pass-91",
        "password2": "a-Strong-pass-91",
    }
    payload.update(overrides)
    return client.post("/api/auth/register/", payload, format="json")


@pytest.mark.django_db
def test_register_returns_tokens_and_creates_profile():
    resp = _register(APIClient())
    assert resp.status_code == 201, resp.content
    body = resp.json()
    assert body["access"] and body["refresh"]

    user = User.objects.get(username="carol")
    assert user.email == "carol@eventconnect.io"
    assert user.profile.rating_count == 0
    assert mail.outbox and mail.outbox[0].to == ["carol@eventconnect.io"]


@pytest.mark.django_db
def test_register_rejects_duplicate_email_and_mismatched_passwords(user):
    client = APIClient()
    resp = _register(client, email=user.email.upper())
    assert resp.status_code == 400
    assert "email" in resp.json()

    resp = _register(client, password2="something-else-1")
    assert resp.status_code == 400
    assert "password2" in resp.json()


@pytest.mark.django_db
def test_register_rejects_numeric_username():
    resp = _register(APIClient(), username="12345")
    assert resp.status_code == 400
    assert "username" in resp.json()


@pytest.mark.django_db
def test_login_with_email(user, password):
    resp = APIClient().post("/api/auth/login/", {"email": user.email, "password": password}, format="json")
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "alice"


@pytest.mark.django_db
def test_login_with_wrong_password(user):
    resp = APIClient().post("/api/auth/login/", {"email": user.email, "password": "nope"}, format="json")
    assert resp.status_code == 401


@pytest.mark.django_db
def test_logout_blacklists_refresh_token(user, password):
    client = APIClient()
    tokens = client.post("/api/auth/login/", {"email": user.email, "password": password}, format="json").json()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

    resp = client.post("/api/auth/logout/", {"refresh": tokens["refresh"]}, format="json")
    assert resp.status_code == 205

    resp = APIClient().post("/api/auth/token/refresh/", {"refresh": tokens["refresh"]}, format="json")
    assert resp.status_code == 401


@pytest.mark.django_db
def test_logout_requires_refresh_token(auth_client):
    resp = auth_client.post("/api/auth/logout/", {}, format="json")
    assert resp.status_code == 400
    assert resp.json()["status_code"] == 400


@pytest.mark.django_db
def test_me_requires_authentication():
    assert APIClient().get("/api/auth/me/").status_code == 401


@pytest.mark.django_db
def test_me_patch_updates_profile(auth_client, user):
    resp = auth_client.patch(
        "/api/auth/me/",
        {"first_name": "Alicia", "profile": {"bio": "Runner", "interests": ["sports"]}},
        format="json",
    )
    assert resp.status_code == 200, resp.content
    user.refresh_from_db()
    user.profile.refresh_from_db()
    assert user.first_name == "Alicia"
    assert user.profile.bio == "Runner"
    assert user.profile.interests == ["sports"]


@pytest.mark.django_db
def test_change_password(auth_client, user, password):
    resp = auth_client.post(
        "/api/auth/password/change/",
        {"old_password": password, "new_password": "brand-New-pass-77", "confirm_new_password": "brand-New-pass-77"},
        format="json",
    )
    assert resp.status_code == 200
    user.refresh_from_db()
    assert user.check_password("brand-New-pass-77")


@pytest.mark.django_db
def test_forgot_password_does_not_leak_unknown_emails():
    resp = APIClient().post("/api/auth/password/forgot/", {"email": "ghost@eventconnect.io"}, format="json")
    assert resp.status_code == 200
    assert mail.outbox == []


def _reset_link_params():
    match = re.search(r"uid=([^&\s]+)&token=(\S+)", mail.outbox[-1].body)
    return {"uid": match.group(1), "token": match.group(2)}


@pytest.mark.django_db
def test_reset_password_with_emailed_token(user):
    client = APIClient()
    assert client.post("/api/auth/password/forgot/", {"email": user.email}, format="json").status_code == 200
    payload = {
        **_reset_link_params(),
        "new_password": "fresh-Pass-2024",
        "confirm_new_password": "fresh-Pass-2024",
    }

    resp = client.post("/api/auth/password/reset/", payload, format="json")
    assert resp.status_code == 200
    user.refresh_from_db()
    assert user.check_password("fresh-Pass-2024")

    # the token is tied to the old password hash
    assert client.post("/api/auth/password/reset/", payload, format="json").status_code == 400


@pytest.mark.django_db
def test_reset_password_rejects_bad_token_and_uid(user, password):
    client = APIClient()
    client.post("/api/auth/password/forgot/", {"email": user.email}, format="json")
    params = _reset_link_params()
    base = {"new_password": "fresh-Pass-2024", "confirm_new_password": "fresh-Pass-2024"}

    resp = client.post("/api/auth/password/reset/", {**base, **params, "token": "not-a-token"}, format="json")
    assert resp.status_code == 400
    assert "token" in resp.json()

    resp = client.post("/api/auth/password/reset/", {**base, **params, "uid": "garbage"}, format="json")
    assert resp.status_code == 400
    assert "uid" in resp.json()

    mismatched = {**base, **params, "confirm_new_password": "other-Pass-2024"}
    assert client.post("/api/auth/password/reset/", mismatched, format="json").status_code == 400

    user.refresh_from_db()
    assert user.check_password(password)


@pytest.mark.django_db
def test_profile_exists_as_soon_as_user_is_created():
    zed = User.objects.create_user("zed", "zed@eventconnect.io", "zed-Pass-4321")
    assert UserProfile.objects.filter(user=zed).exists()
