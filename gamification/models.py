"""
Points, achievements and badges.

Every award is recorded as a `PointsEntry` keyed by the action and the
object it concerns, so undoing and redoing an action (leaving and
rejoining a tribe, unliking and liking a post) earns points only once.
"""
from django.conf import settings
from django.db import models


class Score(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="score")
    points = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=["-points"])]

    def __str__(self):
        return f"Score(user={self.user_id}, points={self.points})"


class PointsEntry(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="points_entries")
    action = models.CharField(max_length=32)
    ref = models.CharField(max_length=64)
    points = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "action", "ref"], name="uniq_points_entry"),
        ]
        ordering = ["-created_at", "-id"]


class Achievement(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="achievements")
    code = models.CharField(max_length=40)
    title = models.CharField(max_length=100)
    description = models.CharField(max_length=300, blank=True, default="")
    # bonus credited when the user claims the achievement
    points = models.PositiveIntegerField(default=0)
    earned_at = models.DateTimeField(auto_now_add=True)
    claimed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [models.UniqueConstraint(fields=["user", "code"], name="uniq_user_achievement")]
        ordering = ["-earned_at", "-id"]

    def __str__(self):
        return f"Achievement({self.code}, user={self.user_id})"

    @property
    def is_claimed(self) -> bool:
        return self.claimed_at is not None


class Badge(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="badges")
    code = models.CharField(max_length=40)
    title = models.CharField(max_length=100)
    description = models.CharField(max_length=300, blank=True, default="")
    icon = models.CharField(max_length=40, blank=True, default="")
    is_showcased = models.BooleanField(default=False)
    earned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [models.UniqueConstraint(fields=["user", "code"], name="uniq_user_badge")]
        ordering = ["-earned_at", "-id"]

    def __str__(self):
        return f"Badge({self.code}, user={self.user_id})"
