"""
Common test fixtures for the API tests.

Provides users, JWT-authenticated API clients and a ready-made tribe and
event.  ``auth_client`` logs in through the real login endpoint; clients
for other users carry a token minted with SimpleJWT directly.
"""
from datetime import timedelta

import pytest
from django.contrib.auth.models import User
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from events.models import Event
from tribes.models import Tribe, TribeMembership

PASSWORD = "pass-12345-word"


@pytest.fixture
def make_user(db):
    def _make(username, **profile):
        user = User.objects.create_user(
            username=username,
            email=f"{username}@eventconnect.io",
            password=PASSWORD,
            first_name=username.title(),
        )
        if profile:
            for k, v in profile.items():
                setattr(user.profile, k, v)
            user.profile.save()
        return user
    return _make


@pytest.fixture
def user(make_user):
    """Create a test user."""
    return make_user("alice")


@pytest.fixture
def other_user(make_user):
    return make_user("bob")


@pytest.fixture
def client_for():
    """Build an API client that sends a bearer token for ``user``."""
    def _client(user):
        client = APIClient()
        token = RefreshToken.for_user(user).access_token
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return client
    return _client


@pytest.fixture
def auth_client(db, user):
    """Authenticate an API client for ``user`` through the login endpoint."""
    client = APIClient()
    resp = client.post(
        "/api/auth/login/",
        {"email": user.email, "password": PASSWORD},
        format="json",
    )
    assert resp.status_code == 200
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.json()['access']}")
    return client


@pytest.fixture
def other_client(client_for, other_user):
    return client_for(other_user)


@pytest.fixture
def make_event(db):
    def _make(host, **fields):
        start = timezone.now() + timedelta(days=3)
        defaults = {
            "title": "Sunset run",
            "description": "5k along the river.",
            "category": "sports",
            "latitude": 40.4168,
            "longitude": -3.7038,
            "city": "Madrid",
            "start_at": start,
            "end_at": start + timedelta(hours=2),
            "capacity": 10,
        }
        defaults.update(fields)
        return Event.objects.create(host=host, **defaults)
    return _make


@pytest.fixture
def event(make_event, user):
    """A published public event hosted by ``user``."""
    return make_event(user)


@pytest.fixture
def make_tribe(db):
    def _make(creator, **fields):
        defaults = {
            "name": "Madrid Runners",
            "description": "We run every weekend.",
            "category": "sports",
            "latitude": 40.42,
            "longitude": -3.70,
            "city": "Madrid",
        }
        defaults.update(fields)
        tribe = Tribe.objects.create(creator=creator, **defaults)
        TribeMembership.objects.create(
            tribe=tribe, user=creator, role=TribeMembership.ROLE_ADMIN, status=TribeMembership.STATUS_ACTIVE
        )
        return tribe
    return _make


@pytest.fixture
def tribe(make_tribe, user):
    """An open public tribe created (and administered) by ``user``."""
    return make_tribe(user)


@pytest.fixture
def join(db):
    def _join(tribe, user, role=TribeMembership.ROLE_MEMBER):
        return TribeMembership.objects.create(
            tribe=tribe, user=user, role=role, status=TribeMembership.STATUS_ACTIVE
        )
    return _join


@pytest.fixture
def password():
    return PASSWORD
