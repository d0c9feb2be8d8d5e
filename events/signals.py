# events/signals.py
import logging

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from notifications.services import notify_many
from realtime.broadcast import broadcast, tribe_group
from .models import Event

logger = logging.getLogger(__name__)


def _shape_event(e: Event) -> dict:
    """Payload of the ``event-created`` broadcast (no DB writes)."""
    return {
        "id": e.id,
        "title": e.title,
        "category": e.category,
        "start_at": e.start_at,
        "end_at": e.end_at,
        "latitude": e.latitude,
        "longitude": e.longitude,
        "city": e.city,
        "tribe_id": e.tribe_id,
        "host": {"id": e.host_id, "username": e.host.username},
    }


@receiver(post_save, sender=Event)
def announce_new_event(sender, instance: Event, created, **kwargs):
    """Tell the tribe room and tribe members about a newly published tribe event."""
    if not created or not instance.tribe_id or instance.status == Event.STATUS_DRAFT:
        return

    from tribes.models import TribeMembership

    member_ids = list(
        TribeMembership.objects.filter(
            tribe_id=instance.tribe_id, status=TribeMembership.STATUS_ACTIVE
        ).values_list("user_id", flat=True)
    )
    notify_many(
        member_ids,
        "event_invite",
        title=f"New event in {instance.tribe.name}",
        body=f"{instance.host.username} created {instance.title}.",
        actor=instance.host,
        data={"event_id": instance.id, "tribe_id": instance.tribe_id},
    )

    payload = _shape_event(instance)
    transaction.on_commit(lambda: broadcast(tribe_group(instance.tribe_id), "event-created", payload))
