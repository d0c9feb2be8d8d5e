"""
Models for the users app.

A `UserProfile` model extends the built-in `auth.User` with profile,
location, rating and preference fields.  A `OneToOneField` links each
profile to its user and the profile is created automatically via signals
when a new user instance is saved.  `Follow` records the directed
follower graph.
"""
from django.conf import settings
from django.contrib.auth.models import User
from django.db import models
from django.db.models import F, Q


class UserProfile(models.Model):
    """Extension of Django's built-in User model."""

    GENDER_CHOICES = [
        ("male", "Male"),
        ("female", "Female"),
        ("other", "Other"),
        ("prefer_not_to_say", "Prefer not to say"),
    ]

    VISIBILITY_PUBLIC = "public"
    VISIBILITY_FRIENDS = "friends"
    VISIBILITY_PRIVATE = "private"
    VISIBILITY_CHOICES = [
        (VISIBILITY_PUBLIC, "Public"),
        (VISIBILITY_FRIENDS, "Followers only"),
        (VISIBILITY_PRIVATE, "Private"),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")
    bio = models.TextField(max_length=500, blank=True, default="")
    avatar = models.URLField(blank=True, default="")
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=20, choices=GENDER_CHOICES, blank=True, default="")
    interests = models.JSONField(default=list, blank=True)

    # last known position
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    city = models.CharField(max_length=120, blank=True, default="")
    country = models.CharField(max_length=120, blank=True, default="")
    location_updated_at = models.DateTimeField(null=True, blank=True)

    # host rating, recomputed from reviews
    rating_average = models.DecimalField(max_digits=2, decimal_places=1, default=0)
    rating_count = models.PositiveIntegerField(default=0)

    # notification channels and muted kinds
    notify_email = models.BooleanField(default=True)
    notify_push = models.BooleanField(default=True)
    notify_sms = models.BooleanField(default=False)
    muted_notification_kinds = models.JSONField(default=list, blank=True)

    profile_visibility = models.CharField(
        max_length=10, choices=VISIBILITY_CHOICES, default=VISIBILITY_PUBLIC
    )
    location_sharing = models.BooleanField(default=True)

    language = models.CharField(max_length=10, default="en")
    timezone = models.CharField(max_length=64, default="UTC")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["latitude", "longitude"]),
            models.Index(fields=["city"]),
        ]

    def __str__(self) -> str:
        return f"Profile<{self.user.username}>"

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def wants(self, kind: str) -> bool:
        """True unless the user muted notifications of this kind."""
        return kind not in (self.muted_notification_kinds or [])


class Follow(models.Model):
    follower = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="following_set"
    )
    following = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="follower_set"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["follower", "following"], name="uniq_follow"),
            models.CheckConstraint(condition=~Q(follower=F("following")), name="follow_not_self"),
        ]

    def __str__(self):
        return f"{self.follower_id} -> {self.following_id}"

    @classmethod
    def is_following(cls, follower, following) -> bool:
        if not follower or not follower.is_authenticated:
            return False
        return cls.objects.filter(follower=follower, following=following).exists()
