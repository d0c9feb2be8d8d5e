# tribes/serializers.py
from rest_framework import serializers

from common.geo import validate_point
from users.serializers import UserMiniSerializer
from .models import Tribe, TribeMembership


class TribeSerializer(serializers.ModelSerializer):
    creator = UserMiniSerializer(read_only=True)
    member_count = serializers.SerializerMethodField()
    my_membership = serializers.SerializerMethodField()

    class Meta:
        model = Tribe
        fields = [
            "id", "name", "slug", "description", "category", "subcategory", "tags", "rules",
            "creator", "latitude", "longitude", "city", "country", "is_virtual",
            "avatar", "banner", "privacy", "membership", "posting", "events",
            "member_count", "my_membership", "created_at", "updated_at",
        ]
        read_only_fields = ["slug", "creator", "created_at", "updated_at"]

    def get_member_count(self, obj):
        annotated = getattr(obj, "member_count", None)
        if annotated is not None:
            return annotated
        return obj.memberships.filter(status=TribeMembership.STATUS_ACTIVE).count()

    def get_my_membership(self, obj):
        request = self.context.get("request")
        if not request or not request.user.is_authenticated:
            return None
        mem = obj.memberships.filter(user=request.user).first()
        if mem is None:
            return None
        return {"role": mem.role, "status": mem.status}

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
            raise serializers.ValidationError("Tags must be a list of strings.")
        if any(len(t) > 30 for t in value):
            raise serializers.ValidationError("Each tag must be at most 30 characters.")
        return [t.strip().lower() for t in value if t.strip()]

    def validate_rules(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Rules must be a list.")
        for rule in value:
            if not isinstance(rule, dict) or not rule.get("title"):
                raise serializers.ValidationError("Each rule needs a title.")
            if len(rule["title"]) > 100 or len(rule.get("description", "")) > 500:
                raise serializers.ValidationError("Rule title or description is too long.")
        return value

    def validate(self, attrs):
        lat = attrs.get("latitude", getattr(self.instance, "latitude", None))
        lng = attrs.get("longitude", getattr(self.instance, "longitude", None))
        if (lat is None) != (lng is None):
            raise serializers.ValidationError({"latitude": "Latitude and longitude go together."})
        if lat is not None:
            validate_point(lat, lng)
        return attrs


class TribeMemberSerializer(serializers.ModelSerializer):
    user = UserMiniSerializer(read_only=True)

    class Meta:
        model = TribeMembership
        fields = ["user", "role", "status", "joined_at"]


class TribeUserActionSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)
