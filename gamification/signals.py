"""
Points for activity elsewhere in the app.

Each handler names the object the points are for, so repeated saves of
the same object never pay out twice.
"""
from django.db.models.signals import post_save
from django.dispatch import receiver

from events.models import Event, EventAttendance
from posts.models import Post, PostComment, PostLike
from reviews.models import Review
from tribes.models import Tribe, TribeMembership
from .services import award


@receiver(post_save, sender=Event)
def event_published(sender, instance: Event, **kwargs):
    if instance.status == Event.STATUS_PUBLISHED:
        award(instance.host, "event_created", f"event:{instance.pk}")


@receiver(post_save, sender=EventAttendance)
def attendance_confirmed(sender, instance: EventAttendance, **kwargs):
    if instance.status == EventAttendance.STATUS_CONFIRMED:
        award(instance.user, "event_attended", f"event:{instance.event_id}")


@receiver(post_save, sender=Tribe)
def tribe_created(sender, instance: Tribe, created, **kwargs):
    if created:
        award(instance.creator, "tribe_created", f"tribe:{instance.pk}")


@receiver(post_save, sender=TribeMembership)
def membership_activated(sender, instance: TribeMembership, **kwargs):
    if instance.status == TribeMembership.STATUS_ACTIVE and instance.user_id != instance.tribe.creator_id:
        award(instance.user, "tribe_joined", f"tribe:{instance.tribe_id}")


@receiver(post_save, sender=Post)
def post_published(sender, instance: Post, **kwargs):
    if instance.status == Post.STATUS_PUBLISHED:
        award(instance.author, "post_created", f"post:{instance.pk}")


@receiver(post_save, sender=PostComment)
def comment_posted(sender, instance: PostComment, created, **kwargs):
    if created:
        award(instance.author, "comment_posted", f"comment:{instance.pk}")


@receiver(post_save, sender=PostLike)
def like_given(sender, instance: PostLike, created, **kwargs):
    if created and instance.post.author_id != instance.user_id:
        award(instance.user, "like_given", f"post:{instance.post_id}")


@receiver(post_save, sender=Review)
def review_written(sender, instance: Review, created, **kwargs):
    if created:
        award(instance.reviewer, "review_written", f"event:{instance.event_id}")
