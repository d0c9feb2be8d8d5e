"""
In-app notifications and registered push tokens.

A `Notification` row is the source of truth for everything shown in the
notification centre.  Real-time and email delivery are side channels
driven by `notifications.tasks`.
"""
from django.conf import settings
from django.db import models
from django.utils import timezone


class Notification(models.Model):
    KIND_CHOICES = [
        ("event_invite", "Event Invite"),
        ("event_reminder", "Event Reminder"),
        ("event_update", "Event Update"),
        ("event_cancelled", "Event Cancelled"),
        ("tribe_invite", "Tribe Invite"),
        ("tribe_update", "Tribe Update"),
        ("new_message", "New Message"),
        ("mention", "Mention"),
        ("like", "Like"),
        ("comment", "Comment"),
        ("follow", "Follow"),
        ("review", "Review"),
        ("system", "System"),
    ]

    PRIORITY_CHOICES = [
        ("low", "Low"),
        ("normal", "Normal"),
        ("high", "High"),
        ("urgent", "Urgent"),
    ]

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="notifications", on_delete=models.CASCADE
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="notifications_as_actor",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    kind = models.CharField(max_length=32, choices=KIND_CHOICES)
    title = models.CharField(max_length=200)
    body = models.CharField(max_length=500, blank=True, default="")
    data = models.JSONField(default=dict, blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="normal")
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "is_read", "created_at"]),
            models.Index(fields=["recipient", "kind"]),
        ]

    def __str__(self):
        return f"Notification(to={self.recipient_id}, kind={self.kind})"

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=["is_read", "read_at"])


class PushToken(models.Model):
    PLATFORM_CHOICES = [("ios", "iOS"), ("android", "Android"), ("web", "Web")]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="push_tokens", on_delete=models.CASCADE)
    token = models.CharField(max_length=255, unique=True)
    platform = models.CharField(max_length=10, choices=PLATFORM_CHOICES, default="web")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"PushToken(user={self.user_id}, {self.platform})"
