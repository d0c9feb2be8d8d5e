from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator
from rest_framework import serializers

from events.models import Event
from tribes.models import Tribe
from tribes.permissions import can_post
from users.serializers import UserMiniSerializer
from .models import Post, PostComment


class PostSerializer(serializers.ModelSerializer):
    author = UserMiniSerializer(read_only=True)
    related_event = serializers.PrimaryKeyRelatedField(
        queryset=Event.objects.all(), required=False, allow_null=True
    )
    related_tribe = serializers.PrimaryKeyRelatedField(
        queryset=Tribe.objects.all(), required=False, allow_null=True
    )
    like_count = serializers.SerializerMethodField()
    comment_count = serializers.SerializerMethodField()
    is_liked = serializers.SerializerMethodField()
    is_saved = serializers.SerializerMethodField()

    class Meta:
        model = Post
        fields = [
            "id", "author", "type", "title", "content", "media",
            "related_event", "related_tribe", "visibility", "status", "tags",
            "view_count", "like_count", "comment_count", "is_liked", "is_saved",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "author", "view_count", "created_at", "updated_at"]

    def _count(self, obj, name):
        annotated = getattr(obj, name, None)
        if annotated is not None:
            return annotated
        return getattr(obj, name.replace("_count", "s")).count()

    def get_like_count(self, obj):
        return self._count(obj, "like_count")

    def get_comment_count(self, obj):
        return self._count(obj, "comment_count")

    def _user(self):
        request = self.context.get("request")
        if request is None or not request.user.is_authenticated:
            return None
        return request.user

    def get_is_liked(self, obj):
        user = self._user()
        return bool(user) and obj.likes.filter(user=user).exists()

    def get_is_saved(self, obj):
        user = self._user()
        return bool(user) and obj.saves.filter(user=user).exists()

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Content cannot be empty.")
        return value.strip()

    def validate_media(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Media must be a list of URLs.")
        check = URLValidator()
        for url in value:
            try:
                check(url)
            except (DjangoValidationError, TypeError):
                raise serializers.ValidationError(f"Invalid media URL: {url!r}")
        return value

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
            raise serializers.ValidationError("Tags must be a list of strings.")
        return [t.strip().lower() for t in value if t.strip()]

    def validate_related_tribe(self, tribe):
        user = self._user()
        if tribe is not None and user is not None and not can_post(user, tribe):
            raise serializers.ValidationError("You are not allowed to post in this tribe.")
        return tribe

    def validate(self, attrs):
        visibility = attrs.get("visibility", getattr(self.instance, "visibility", Post.VISIBILITY_PUBLIC))
        tribe = attrs.get("related_tribe", getattr(self.instance, "related_tribe", None))
        if visibility == Post.VISIBILITY_TRIBE and tribe is None:
            raise serializers.ValidationError({"visibility": "Tribe-only posts need a related tribe."})
        post_type = attrs.get("type", getattr(self.instance, "type", "text"))
        event = attrs.get("related_event", getattr(self.instance, "related_event", None))
        if post_type == "event" and event is None:
            raise serializers.ValidationError({"related_event": "Event posts need a related event."})
        return attrs


class PostCommentSerializer(serializers.ModelSerializer):
    author = UserMiniSerializer(read_only=True)
    parent = serializers.PrimaryKeyRelatedField(
        queryset=PostComment.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = PostComment
        fields = ["id", "author", "parent", "content", "created_at"]
        read_only_fields = ["id", "author", "created_at"]

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Comment cannot be empty.")
        return value.strip()

    def validate_parent(self, parent):
        post = self.context.get("post")
        if parent is None:
            return parent
        if post is not None and parent.post_id != post.id:
            raise serializers.ValidationError("Reply must belong to the same post.")
        if parent.parent_id is not None:
            raise serializers.ValidationError("Replies cannot be nested further.")
        return parent
