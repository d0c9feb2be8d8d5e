import pytest
from django.db import IntegrityError
from rest_framework.exceptions import NotFound, ValidationError

from common.exceptions import api_exception_handler


def test_drf_errors_gain_status_code():
    response = api_exception_handler(NotFound("Nope."), {"view": None})
    assert response.status_code == 404
    assert response.data == {"detail": "Nope.", "status_code": 404}


def test_list_errors_are_wrapped():
    response = api_exception_handler(ValidationError(["Bad input."]), {"view": None})
    assert response.status_code == 400
    assert response.data["status_code"] == 400
    assert response.data["detail"] == ["Bad input."]


def test_integrity_error_is_a_bad_request():
    response = api_exception_handler(IntegrityError("UNIQUE constraint failed"), {})
    assert response.status_code == 400
    assert response.data["status_code"] == 400


def test_unexpected_errors_become_500(caplog):
    response = api_exception_handler(RuntimeError("boom"), {})
    assert response.status_code == 500
    assert response.data == {"detail": "Internal server error.", "status_code": 500}
    assert "Unhandled error" in caplog.text


@pytest.mark.django_db
def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["database"] == "ok"
    assert body["cache"] == "ok"
    assert body["environment"] == "test"
