from rest_framework import serializers

from users.serializers import UserMiniSerializer
from .models import Notification, PushToken


class NotificationSerializer(serializers.ModelSerializer):
    actor = UserMiniSerializer(read_only=True)

    class Meta:
        model = Notification
        fields = ["id", "kind", "title", "body", "data", "priority", "actor", "is_read", "read_at", "created_at"]
        read_only_fields = fields


class PushTokenSerializer(serializers.ModelSerializer):
    class Meta:
        model = PushToken
        fields = ["token", "platform", "created_at"]
        read_only_fields = ["created_at"]
        extra_kwargs = {"token": {"validators": []}}
