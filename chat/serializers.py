from rest_framework import serializers

from users.serializers import UserMiniSerializer
from .models import Chat, ChatParticipant, Message
from .services import unread_count


class MessageSerializer(serializers.ModelSerializer):
    sender = UserMiniSerializer(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id", "chat", "sender", "content", "type", "reply_to",
            "is_edited", "is_deleted", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if instance.is_deleted:
            data["content"] = ""
        return data


class MessageWriteSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=5000)
    type = serializers.ChoiceField(choices=Message.TYPE_CHOICES, default="text")
    reply_to = serializers.IntegerField(required=False, allow_null=True)

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Message cannot be empty.")
        return value.strip()


class ChatParticipantSerializer(serializers.ModelSerializer):
    user = UserMiniSerializer(read_only=True)

    class Meta:
        model = ChatParticipant
        fields = ["user", "role", "joined_at", "last_read_at", "is_muted"]


class ChatSerializer(serializers.ModelSerializer):
    participants = ChatParticipantSerializer(many=True, read_only=True)
    last_message = serializers.SerializerMethodField()
    unread_count = serializers.SerializerMethodField()

    class Meta:
        model = Chat
        fields = [
            "id", "type", "name", "description", "creator",
            "related_event", "related_tribe", "participants",
            "last_message", "unread_count", "last_message_at", "created_at",
        ]
        read_only_fields = fields

    def get_last_message(self, obj):
        message = obj.messages.filter(is_deleted=False).select_related("sender__profile").first()
        return MessageSerializer(message).data if message else None

    def get_unread_count(self, obj):
        request = self.context.get("request")
        if request is None:
            return 0
        return unread_count(obj, request.user)


class GroupChatCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    participant_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class PrivateChatCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)
