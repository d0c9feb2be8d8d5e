"""
Project-wide DRF exception handler.

Every error body carries a ``status_code`` key next to DRF's usual
payload.  Database integrity errors surface as 400s, anything else that
escapes a view is logged and returned as a generic 500.
"""
import logging

from django.db import IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        view_name = view.__class__.__name__ if view else "unknown"
        if isinstance(exc, IntegrityError):
            logger.warning("Integrity error in %s: %s", view_name, exc)
            return Response(
                {"detail": "Duplicate or conflicting record.", "status_code": status.HTTP_400_BAD_REQUEST},
                status=status.HTTP_400_BAD_REQUEST,
            )
        logger.exception("Unhandled error in %s", view_name, exc_info=exc)
        return Response(
            {"detail": "Internal server error.", "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(response.data, dict):
        response.data["status_code"] = response.status_code
    else:
        response.data = {"detail": response.data, "status_code": response.status_code}
    return response
