from rest_framework import serializers

from events.models import Event, EventAttendance
from users.serializers import UserMiniSerializer
from .models import Review, ReviewReport


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = UserMiniSerializer(read_only=True)
    event = serializers.PrimaryKeyRelatedField(queryset=Event.objects.all())
    helpful_count = serializers.SerializerMethodField()

    class Meta:
        model = Review
        fields = [
            "id", "reviewer", "event", "host", "rating", "title", "comment",
            "is_public", "helpful_count", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "reviewer", "host", "created_at", "updated_at"]

    def get_helpful_count(self, obj):
        return obj.helpful_marks.count()

    def validate_rating(self, value):
        if not 1 <= value <= 5:
            raise serializers.ValidationError("Rating must be between 1 and 5.")
        return value

    def validate_event(self, event):
        if self.instance is not None and event.pk != self.instance.event_id:
            raise serializers.ValidationError("A review cannot be moved to another event.")
        return event

    def validate(self, attrs):
        if self.instance is not None:
            return attrs

        user = self.context["request"].user
        event = attrs["event"]
        if event.host_id == user.id:
            raise serializers.ValidationError({"event": "You cannot review your own event."})
        if not event.has_started:
            raise serializers.ValidationError({"event": "You can review an event once it has started."})
        attended = EventAttendance.objects.filter(
            event=event, user=user, status=EventAttendance.STATUS_CONFIRMED
        ).exists()
        if not attended:
            raise serializers.ValidationError({"event": "Only confirmed attendees can review this event."})
        if Review.objects.filter(event=event, reviewer=user).exists():
            raise serializers.ValidationError({"event": "You already reviewed this event."})
        return attrs

    def create(self, validated_data):
        validated_data["reviewer"] = self.context["request"].user
        validated_data["host"] = validated_data["event"].host
        return super().create(validated_data)


class ReviewReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReviewReport
        fields = ["id", "reason", "details", "created_at"]
        read_only_fields = ["id", "created_at"]
