# reviews/signals.py
import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Avg, Count
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from users.models import UserProfile
from .models import Review

logger = logging.getLogger(__name__)


def recompute_host_rating(host_id) -> None:
    """Store the average and count of all reviews a host has received."""
    agg = Review.objects.filter(host_id=host_id).aggregate(avg=Avg("rating"), n=Count("id"))
    average = Decimal(str(agg["avg"] or 0)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    UserProfile.objects.filter(user_id=host_id).update(rating_average=average, rating_count=agg["n"])
    logger.debug("Host %s rating is now %s over %s reviews", host_id, average, agg["n"])


@receiver(post_save, sender=Review)
def review_saved(sender, instance: Review, **kwargs):
    recompute_host_rating(instance.host_id)


@receiver(post_delete, sender=Review)
def review_deleted(sender, instance: Review, **kwargs):
    recompute_host_rating(instance.host_id)
