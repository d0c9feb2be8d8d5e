"""
Serializers for the events app.

`EventSerializer` handles create/update/detail; the host is taken from
the request.  `EventListSerializer` is the lighter shape used in lists,
proximity results and other apps' listings.
"""
from django.utils import timezone
from rest_framework import serializers

from common.geo import validate_point
from tribes.models import Tribe
from tribes.permissions import can_create_event
from users.serializers import UserMiniSerializer, run_django_validator
from users.validators import validate_timezone_name
from .models import Event, EventAttendance, EventComment


class EventListSerializer(serializers.ModelSerializer):
    host = UserMiniSerializer(read_only=True)
    attendee_count = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = [
            "id", "title", "category", "tags", "host", "tribe",
            "latitude", "longitude", "city", "venue_name", "is_virtual",
            "start_at", "end_at", "capacity", "attendee_count",
            "price_amount", "currency", "price_type", "status", "visibility", "image_url",
        ]
        read_only_fields = fields

    def get_attendee_count(self, obj):
        annotated = getattr(obj, "attendee_count", None)
        if annotated is not None:
            return annotated
        return obj.confirmed_count


class EventSerializer(EventListSerializer):
    """Serializer for Event objects."""
    tribe = serializers.PrimaryKeyRelatedField(
        queryset=Tribe.objects.all(), required=False, allow_null=True
    )
    interested_count = serializers.SerializerMethodField()
    my_status = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = EventListSerializer.Meta.fields + [
            "description", "subcategory", "address", "country", "virtual_url", "timezone",
            "interested_count", "my_status", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "host", "created_at", "updated_at"]

    def get_interested_count(self, obj):
        return obj.interests.count()

    def get_my_status(self, obj):
        request = self.context.get("request")
        if not request or not request.user.is_authenticated:
            return None
        attendance = obj.attendances.filter(user=request.user).first()
        return attendance.status if attendance else None

    # ---------- Field-level validations ----------

    def validate_title(self, value: str) -> str:
        if value.isdigit():
            raise serializers.ValidationError("Title cannot be only numbers.")
        if len(value.strip()) < 3:
            raise serializers.ValidationError("Title must be at least 3 characters long.")
        return value.strip()

    def validate_capacity(self, value: int) -> int:
        if not 1 <= value <= 10000:
            raise serializers.ValidationError("Capacity must be between 1 and 10000.")
        if self.instance is not None and value < self.instance.confirmed_count:
            raise serializers.ValidationError("Capacity cannot drop below the confirmed attendee count.")
        return value

    def validate_price_amount(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative.")
        return value

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
            raise serializers.ValidationError("Tags must be a list of strings.")
        if any(len(t) > 30 for t in value):
            raise serializers.ValidationError("Each tag must be at most 30 characters.")
        return [t.strip().lower() for t in value if t.strip()]

    def validate_timezone(self, value):
        return run_django_validator(validate_timezone_name, value)

    def validate_tribe(self, tribe):
        request = self.context.get("request")
        if tribe is not None and request is not None and not can_create_event(request.user, tribe):
            raise serializers.ValidationError("You are not allowed to create events in this tribe.")
        return tribe

    # ---------- Object-level validation ----------

    def _current(self, attrs, name, default=None):
        if name in attrs:
            return attrs[name]
        return getattr(self.instance, name, default)

    def validate(self, attrs):
        start_at = self._current(attrs, "start_at")
        end_at = self._current(attrs, "end_at")
        if start_at and end_at and end_at <= start_at:
            raise serializers.ValidationError({"end_at": "End time must be after start time."})
        if self.instance is None and start_at and start_at < timezone.now():
            raise serializers.ValidationError({"start_at": "Start time cannot be in the past."})

        is_virtual = self._current(attrs, "is_virtual", False)
        lat = self._current(attrs, "latitude")
        lng = self._current(attrs, "longitude")
        if (lat is None) != (lng is None):
            raise serializers.ValidationError({"latitude": "Latitude and longitude go together."})
        if lat is not None:
            validate_point(lat, lng)
        elif not is_virtual:
            raise serializers.ValidationError({"latitude": "In-person events need coordinates."})
        if is_virtual and not self._current(attrs, "virtual_url"):
            raise serializers.ValidationError({"virtual_url": "Virtual events need a link."})

        visibility = self._current(attrs, "visibility", Event.VISIBILITY_PUBLIC)
        if visibility == Event.VISIBILITY_TRIBE and not self._current(attrs, "tribe"):
            raise serializers.ValidationError({"visibility": "Tribe visibility requires a tribe."})

        price_type = self._current(attrs, "price_type", "free")
        price = self._current(attrs, "price_amount", 0) or 0
        if price_type == "free" and price > 0:
            raise serializers.ValidationError({"price_amount": "Free events cannot have a price."})
        return attrs

    def create(self, validated_data):
        validated_data["host"] = self.context["request"].user
        return super().create(validated_data)


class AttendeeSerializer(serializers.ModelSerializer):
    user = UserMiniSerializer(read_only=True)

    class Meta:
        model = EventAttendance
        fields = ["user", "status", "joined_at"]


class EventCommentSerializer(serializers.ModelSerializer):
    author = UserMiniSerializer(read_only=True)

    class Meta:
        model = EventComment
        fields = ["id", "author", "content", "created_at"]
        read_only_fields = ["id", "author", "created_at"]

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Comment cannot be empty.")
        return value.strip()
