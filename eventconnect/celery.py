"""
The EventConnect Celery app.

Workers run notification delivery and fan-out; beat runs the reminder
and event-completion jobs listed in ``CELERY_BEAT_SCHEDULE``.  Every
``CELERY_*`` Django setting configures this app.
"""
import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "eventconnect.settings.dev")

celery_app = Celery("eventconnect")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
# picks up notifications.tasks and events.tasks
celery_app.autodiscover_tasks()
