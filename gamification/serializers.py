from rest_framework import serializers

from users.serializers import UserMiniSerializer
from .models import Achievement, Badge


class AchievementSerializer(serializers.ModelSerializer):
    is_claimed = serializers.BooleanField(read_only=True)

    class Meta:
        model = Achievement
        fields = ["id", "code", "title", "description", "points", "earned_at", "claimed_at", "is_claimed"]
        read_only_fields = fields


class BadgeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Badge
        fields = ["id", "code", "title", "description", "icon", "is_showcased", "earned_at"]
        read_only_fields = ["id", "code", "title", "description", "icon", "earned_at"]


class ShowcaseSerializer(serializers.Serializer):
    is_showcased = serializers.BooleanField()


class LeaderboardEntrySerializer(serializers.Serializer):
    rank = serializers.IntegerField()
    user = UserMiniSerializer()
    points = serializers.IntegerField(required=False)
    events_hosted = serializers.IntegerField(required=False)
