"""
Notification entry points used by the other apps.

``notify`` stores a single notification and schedules its delivery once
the surrounding transaction commits.  ``notify_many`` hands a recipient
list to Celery so request handlers do not loop over large audiences.
"""
import logging
from typing import Iterable, Optional

from django.db import transaction

from .models import Notification

logger = logging.getLogger(__name__)


def notify(
    recipient,
    kind: str,
    title: str,
    body: str = "",
    actor=None,
    data: Optional[dict] = None,
    priority: str = "normal",
) -> Optional[Notification]:
    """Create a notification unless it targets the actor or a muted kind."""
    if recipient is None or (actor is not None and recipient.pk == actor.pk):
        return None

    profile = getattr(recipient, "profile", None)
    if profile is not None and not profile.wants(kind):
        logger.debug("User %s muted %s notifications", recipient.pk, kind)
        return None

    notification = Notification.objects.create(
        recipient=recipient,
        actor=actor,
        kind=kind,
        title=title[:200],
        body=body[:500],
        data=data or {},
        priority=priority,
    )

    from .tasks import deliver_notification

    transaction.on_commit(lambda: deliver_notification.delay(notification.pk))
    return notification


def notify_many(
    recipients: Iterable,
    kind: str,
    title: str,
    body: str = "",
    actor=None,
    data: Optional[dict] = None,
    priority: str = "normal",
) -> None:
    """Fan a notification out to many users through a Celery task."""
    recipient_ids = sorted({getattr(r, "pk", r) for r in recipients})
    if actor is not None:
        recipient_ids = [rid for rid in recipient_ids if rid != actor.pk]
    if not recipient_ids:
        return

    from .tasks import fan_out_notification

    fan_out_notification.delay(
        recipient_ids,
        kind,
        title,
        body,
        actor.pk if actor is not None else None,
        data or {},
        priority,
    )
