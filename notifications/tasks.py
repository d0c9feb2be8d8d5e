"""
Celery tasks for notification delivery.

``deliver_notification`` pushes a stored notification to the recipient's
real-time channel group and, when the recipient allows it, emails it
and pushes it to their registered devices.
``fan_out_notification`` creates one notification per recipient.
"""
import logging

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

from realtime.broadcast import broadcast, user_group
from . import push
from .models import Notification

logger = logging.getLogger(__name__)
User = get_user_model()

EMAIL_KINDS = {"event_invite", "event_reminder", "event_update", "event_cancelled", "tribe_invite"}


@shared_task
def deliver_notification(notification_id: int) -> bool:
    from .serializers import NotificationSerializer

    try:
        notification = Notification.objects.select_related("recipient__profile", "actor").get(pk=notification_id)
    except Notification.DoesNotExist:
        logger.warning("Notification %s vanished before delivery", notification_id)
        return False

    broadcast(
        user_group(notification.recipient_id),
        "notification",
        NotificationSerializer(notification).data,
    )

    recipient = notification.recipient
    profile = getattr(recipient, "profile", None)
    wants_email = profile is None or profile.notify_email
    if notification.kind in EMAIL_KINDS and wants_email and recipient.email:
        try:
            send_mail(
                subject=notification.title,
                message=notification.body or notification.title,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[recipient.email],
                fail_silently=False,
            )
        except Exception as e:
            logger.warning("Notification email failed for %s: %s", recipient.email, e)

    if profile is None or profile.notify_push:
        push.send_push(notification)
    return True


@shared_task
def fan_out_notification(recipient_ids, kind, title, body="", actor_id=None, data=None, priority="normal") -> int:
    from .services import notify

    actor = User.objects.filter(pk=actor_id).first() if actor_id else None
    created = 0
    for recipient in User.objects.filter(pk__in=recipient_ids, is_active=True).select_related("profile"):
        if notify(recipient, kind, title, body, actor=actor, data=data, priority=priority):
            created += 1
    logger.info("Fanned out %s notification to %s/%s users", kind, created, len(recipient_ids))
    return created
