# chat/models.py
from django.conf import settings
from django.db import models
from django.db.models import Q


class Chat(models.Model):
    TYPE_PRIVATE = "private"
    TYPE_GROUP = "group"
    TYPE_EVENT = "event"
    TYPE_TRIBE = "tribe"
    TYPE_CHOICES = [
        (TYPE_PRIVATE, "Private"),
        (TYPE_GROUP, "Group"),
        (TYPE_EVENT, "Event"),
        (TYPE_TRIBE, "Tribe"),
    ]

    type = models.CharField(max_length=10, choices=TYPE_CHOICES, db_index=True)
    name = models.CharField(max_length=100, blank=True, default="")
    description = models.CharField(max_length=500, blank=True, default="")
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="chats_created"
    )
    related_event = models.ForeignKey(
        "events.Event", on_delete=models.CASCADE, null=True, blank=True, related_name="chats"
    )
    related_tribe = models.ForeignKey(
        "tribes.Tribe", on_delete=models.CASCADE, null=True, blank=True, related_name="chats"
    )
    # "<low id>:<high id>" for private chats, so each pair has one chat
    pair_key = models.CharField(max_length=64, unique=True, null=True, blank=True)

    last_message_at = models.DateTimeField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["related_event"], name="uniq_chat_per_event",
                condition=Q(type="event"),
            ),
            models.UniqueConstraint(
                fields=["related_tribe"], name="uniq_chat_per_tribe",
                condition=Q(type="tribe"),
            ),
        ]

    @staticmethod
    def make_pair_key(user_a_id: int, user_b_id: int) -> str:
        low, high = sorted((int(user_a_id), int(user_b_id)))
        return f"{low}:{high}"

    def __str__(self):
        return f"[{self.type}] {self.name or self.pk}"


class ChatParticipant(models.Model):
    ROLE_MEMBER = "member"
    ROLE_ADMIN = "admin"
    ROLE_CHOICES = [(ROLE_MEMBER, "Member"), (ROLE_ADMIN, "Admin")]

    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name="participants")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="chat_participations")
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)
    last_read_at = models.DateTimeField(null=True, blank=True)
    is_muted = models.BooleanField(default=False)

    class Meta:
        constraints = [models.UniqueConstraint(fields=["chat", "user"], name="uniq_chat_participant")]
        ordering = ["joined_at", "id"]

    def __str__(self):
        return f"{self.user_id} in chat {self.chat_id}"


class Message(models.Model):
    TYPE_CHOICES = [
        ("text", "Text"),
        ("image", "Image"),
        ("location", "Location"),
        ("event", "Event"),
    ]

    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="chat_messages")
    content = models.TextField(max_length=5000)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default="text")
    reply_to = models.ForeignKey(
        "self", on_delete=models.SET_NULL, null=True, blank=True, related_name="replies"
    )
    is_edited = models.BooleanField(default=False)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["chat", "created_at"])]

    def __str__(self):
        return f"Message[{self.pk}] in chat {self.chat_id}"
