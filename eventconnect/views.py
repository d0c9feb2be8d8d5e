"""Project-level views that do not belong to an app."""
import logging
import time

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


def _database_ok() -> bool:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        return True
    except DatabaseError as e:
        logger.error("Health check: database unavailable: %s", e)
        return False


def _cache_ok() -> bool:
    try:
        cache.set("health:ping", "pong", 5)
        return cache.get("health:ping") == "pong"
    except Exception as e:
        logger.warning("Health check: cache unavailable: %s", e)
        return False


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([])
def health(request):
    database = _database_ok()
    body = {
        "status": "ok" if database else "degraded",
        "timestamp": timezone.now(),
        "uptime": round(time.monotonic() - STARTED_AT, 1),
        "environment": settings.ENVIRONMENT,
        "database": "ok" if database else "unavailable",
        "cache": "ok" if _cache_ok() else "unavailable",
    }
    return Response(body, status=200 if database else 503)
