"""
Periodic event tasks.

``send_event_reminders`` runs from Celery beat and notifies confirmed
attendees of events starting within ``EVENT_REMINDER_HOURS``.  Each event
is reminded once.
"""
import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from notifications.services import notify_many
from .models import Event, EventAttendance

logger = logging.getLogger(__name__)


@shared_task
def send_event_reminders() -> int:
    now = timezone.now()
    horizon = now + timedelta(hours=settings.EVENT_REMINDER_HOURS)
    due = Event.objects.filter(
        status=Event.STATUS_PUBLISHED,
        reminder_sent=False,
        start_at__gt=now,
        start_at__lte=horizon,
    )

    reminded = 0
    for event_id in due.values_list("id", flat=True):
        with transaction.atomic():
            event = Event.objects.select_for_update().get(pk=event_id)
            if event.reminder_sent:
                continue
            attendee_ids = list(
                event.attendances.filter(status=EventAttendance.STATUS_CONFIRMED).values_list("user_id", flat=True)
            )
            event.reminder_sent = True
            event.save(update_fields=["reminder_sent"])

        notify_many(
            attendee_ids,
            "event_reminder",
            title=f"Reminder: {event.title}",
            body=f"{event.title} starts at {event.start_at:%Y-%m-%d %H:%M} UTC.",
            data={"event_id": event.id},
            priority="high",
        )
        reminded += 1

    logger.info("Sent reminders for %s events", reminded)
    return reminded


@shared_task
def complete_finished_events() -> int:
    """Mark published events whose end time has passed as completed."""
    updated = Event.objects.filter(
        status=Event.STATUS_PUBLISHED, end_at__lte=timezone.now()
    ).update(status=Event.STATUS_COMPLETED)
    if updated:
        logger.info("Marked %s events completed", updated)
    return updated
