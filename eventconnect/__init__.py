"""
Package initializer for the EventConnect backend.

The Celery application is imported here so that shared tasks use
`eventconnect.celery_app` by default.
"""
from .celery import celery_app  # noqa: F401

__all__ = ["celery_app"]
