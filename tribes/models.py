# tribes/models.py
from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.text import slugify

TRIBE_CATEGORIES = [
    "music", "sports", "technology", "art", "food", "travel", "education",
    "business", "health", "fitness", "gaming", "reading", "photography",
    "cooking", "dancing", "writing", "volunteering", "outdoors", "fashion",
    "networking", "professional", "hobby", "cultural", "spiritual", "political",
    "environmental", "social", "creative", "academic", "entrepreneurial",
]


class TribeQuerySet(models.QuerySet):
    def visible_to(self, user):
        """Secret tribes are only listed for their active members."""
        if user is not None and user.is_authenticated and user.is_staff:
            return self
        qs = self.exclude(privacy=Tribe.PRIVACY_SECRET)
        if user is None or not user.is_authenticated:
            return qs
        member_of = TribeMembership.objects.filter(
            user=user, status=TribeMembership.STATUS_ACTIVE
        ).values("tribe_id")
        return self.filter(Q(pk__in=qs.values("pk")) | Q(pk__in=member_of))


class Tribe(models.Model):
    PRIVACY_PUBLIC = "public"
    PRIVACY_PRIVATE = "private"
    PRIVACY_SECRET = "secret"
    PRIVACY_CHOICES = [
        (PRIVACY_PUBLIC, "Public"),
        (PRIVACY_PRIVATE, "Private"),
        (PRIVACY_SECRET, "Secret"),
    ]

    JOIN_OPEN = "open"
    JOIN_APPROVAL = "approval_required"
    JOIN_INVITE = "invite_only"
    JOIN_POLICY_CHOICES = [
        (JOIN_OPEN, "Open"),
        (JOIN_APPROVAL, "Request approval"),
        (JOIN_INVITE, "Invite-only"),
    ]

    ALLOW_ALL = "all_members"
    ALLOW_MODERATORS = "moderators_only"
    ALLOW_ADMINS = "admins_only"
    ALLOW_CHOICES = [
        (ALLOW_ALL, "All members"),
        (ALLOW_MODERATORS, "Moderators and admins"),
        (ALLOW_ADMINS, "Admins only"),
    ]

    CATEGORY_CHOICES = [(c, c.title()) for c in TRIBE_CATEGORIES]

    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True, db_index=True)
    description = models.TextField(max_length=2000)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, db_index=True)
    subcategory = models.CharField(max_length=50, blank=True, default="")
    tags = models.JSONField(default=list, blank=True)
    rules = models.JSONField(default=list, blank=True)

    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="tribes_created"
    )

    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    city = models.CharField(max_length=120, blank=True, default="")
    country = models.CharField(max_length=120, blank=True, default="")
    is_virtual = models.BooleanField(default=False)

    avatar = models.URLField(blank=True, default="")
    banner = models.URLField(blank=True, default="")

    privacy = models.CharField(max_length=10, choices=PRIVACY_CHOICES, default=PRIVACY_PUBLIC)
    membership = models.CharField(max_length=20, choices=JOIN_POLICY_CHOICES, default=JOIN_OPEN)
    posting = models.CharField(max_length=20, choices=ALLOW_CHOICES, default=ALLOW_ALL)
    events = models.CharField(max_length=20, choices=ALLOW_CHOICES, default=ALLOW_ALL)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TribeQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["latitude", "longitude"]),
            models.Index(fields=["privacy"]),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug and self.name:
            base = slugify(self.name) or "tribe"
            slug = base
            i = 2
            while Tribe.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base}-{i}"
                i += 1
            self.slug = slug
        super().save(*args, **kwargs)


class TribeMembership(models.Model):
    ROLE_ADMIN = "admin"
    ROLE_MODERATOR = "moderator"
    ROLE_MEMBER = "member"
    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_MODERATOR, "Moderator"),
        (ROLE_MEMBER, "Member"),
    ]

    STATUS_ACTIVE = "active"
    STATUS_PENDING = "pending"
    STATUS_BANNED = "banned"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_PENDING, "Pending"),
        (STATUS_BANNED, "Banned"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="tribe_memberships"
    )
    tribe = models.ForeignKey(Tribe, on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("user", "tribe")
        ordering = ["joined_at"]
        indexes = [
            models.Index(fields=["tribe", "status"]),
            models.Index(fields=["tribe", "role"]),
        ]

    def __str__(self):
        return f"{self.user} -> {self.tribe} ({self.role}, {self.status})"
