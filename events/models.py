"""
Models for the events app.

An `Event` is hosted by a user and optionally belongs to a tribe.  It
carries its own coordinates for proximity search, a capacity enforced on
join, and a status.  Attendance is tracked through `EventAttendance`
rows, with a waitlist once the event is full.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

EVENT_CATEGORIES = [
    "music", "sports", "technology", "art", "food", "travel", "education",
    "business", "health", "fitness", "gaming", "reading", "photography",
    "cooking", "dancing", "writing", "volunteering", "outdoors", "fashion",
    "networking", "workshop", "conference", "party", "meetup", "concert",
    "festival", "exhibition", "seminar", "webinar", "competition", "charity",
]


class EventQuerySet(models.QuerySet):
    def visible_to(self, user):
        """
        Drafts are visible to their host only.  Tribe events need an active
        membership in the tribe, private events an attendance row.
        """
        from tribes.models import TribeMembership

        if user is not None and user.is_authenticated and user.is_staff:
            return self
        published = ~Q(status=Event.STATUS_DRAFT)
        public = published & Q(visibility=Event.VISIBILITY_PUBLIC)
        if user is None or not user.is_authenticated:
            return self.filter(public)

        member_tribes = TribeMembership.objects.filter(
            user=user, status=TribeMembership.STATUS_ACTIVE
        ).values("tribe_id")
        attending = EventAttendance.objects.filter(user=user).values("event_id")
        return self.filter(
            Q(host=user)
            | public
            | (published & Q(visibility=Event.VISIBILITY_TRIBE, tribe_id__in=member_tribes))
            | (published & Q(visibility=Event.VISIBILITY_PRIVATE, pk__in=attending))
        )

    def upcoming(self):
        return self.filter(start_at__gte=timezone.now())


class Event(models.Model):
    """An event hosted by a user, optionally inside a tribe."""
    STATUS_DRAFT = "draft"
    STATUS_PUBLISHED = "published"
    STATUS_CANCELLED = "cancelled"
    STATUS_COMPLETED = "completed"
    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PUBLISHED, "Published"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_COMPLETED, "Completed"),
    ]

    VISIBILITY_PUBLIC = "public"
    VISIBILITY_TRIBE = "tribe"
    VISIBILITY_PRIVATE = "private"
    VISIBILITY_CHOICES = [
        (VISIBILITY_PUBLIC, "Public"),
        (VISIBILITY_TRIBE, "Tribe members"),
        (VISIBILITY_PRIVATE, "Private"),
    ]

    PRICE_TYPE_CHOICES = [
        ("free", "Free"),
        ("paid", "Paid"),
        ("donation", "Donation"),
        ("membership", "Membership"),
    ]
    CURRENCY_CHOICES = [(c, c) for c in ("USD", "EUR", "GBP", "MXN", "ARS", "CLP", "COP", "PEN")]
    CATEGORY_CHOICES = [(c, c.title()) for c in EVENT_CATEGORIES]

    title = models.CharField(max_length=100)
    description = models.TextField(max_length=2000)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, db_index=True)
    subcategory = models.CharField(max_length=50, blank=True, default="")
    tags = models.JSONField(default=list, blank=True)

    host = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="hosted_events")
    tribe = models.ForeignKey(
        "tribes.Tribe", on_delete=models.SET_NULL, null=True, blank=True, related_name="events_hosted"
    )

    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    address = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=120, blank=True, default="")
    country = models.CharField(max_length=120, blank=True, default="")
    venue_name = models.CharField(max_length=150, blank=True, default="")
    is_virtual = models.BooleanField(default=False)
    virtual_url = models.URLField(blank=True, default="")

    start_at = models.DateTimeField(db_index=True)
    end_at = models.DateTimeField()
    timezone = models.CharField(max_length=64, default="UTC")

    capacity = models.PositiveIntegerField()
    price_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="USD")
    price_type = models.CharField(max_length=12, choices=PRICE_TYPE_CHOICES, default="free")

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PUBLISHED, db_index=True)
    visibility = models.CharField(max_length=10, choices=VISIBILITY_CHOICES, default=VISIBILITY_PUBLIC)
    image_url = models.URLField(blank=True, default="")

    reminder_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["start_at"]
        indexes = [
            models.Index(fields=["latitude", "longitude"]),
            models.Index(fields=["status", "start_at"]),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(end_at__gt=models.F("start_at")), name="event_end_after_start"),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def confirmed_count(self) -> int:
        return self.attendances.filter(status=EventAttendance.STATUS_CONFIRMED).count()

    @property
    def is_full(self) -> bool:
        return self.confirmed_count >= self.capacity

    @property
    def has_started(self) -> bool:
        return self.start_at <= timezone.now()

    @property
    def has_ended(self) -> bool:
        return self.end_at <= timezone.now()


class EventAttendance(models.Model):
    STATUS_CONFIRMED = "confirmed"
    STATUS_WAITLISTED = "waitlisted"
    STATUS_CHOICES = [
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_WAITLISTED, "Waitlisted"),
    ]

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="attendances")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="event_attendances")
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_CONFIRMED)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("event", "user")
        ordering = ["joined_at", "id"]
        indexes = [
            models.Index(fields=["event", "status"]),
            models.Index(fields=["user"]),
        ]

    def __str__(self):
        return f"{self.user_id} -> {self.event_id} ({self.status})"


class EventInterest(models.Model):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="interests")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="event_interests")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("event", "user")


class EventComment(models.Model):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="comments")
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="event_comments")
    content = models.TextField(max_length=1000)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Comment<{self.author_id} on {self.event_id}>"
