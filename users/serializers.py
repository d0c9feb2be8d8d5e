from django.contrib.auth.models import User
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.tokens import PasswordResetTokenGenerator
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from django.utils.encoding import force_str
from django.utils.http import urlsafe_base64_decode
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from common.geo import validate_point
from .models import Follow, UserProfile
from .validators import validate_email_unique, validate_timezone_name, validate_username_rules


def run_django_validator(func, *args, **kwargs):
    """Run a Django validator and re-raise its errors the DRF way."""
    try:
        return func(*args, **kwargs)
    except DjangoValidationError as exc:
        raise serializers.ValidationError(list(exc.messages))


class UserProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserProfile
        fields = [
            "bio", "avatar", "date_of_birth", "gender", "interests",
            "city", "country", "latitude", "longitude", "location_updated_at",
            "rating_average", "rating_count", "language", "timezone",
        ]
        read_only_fields = [
            "latitude", "longitude", "location_updated_at", "rating_average", "rating_count",
        ]

    def validate_interests(self, value):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise serializers.ValidationError("Interests must be a list of strings.")
        return [v.strip().lower() for v in value if v.strip()][:20]


class UserMiniSerializer(serializers.ModelSerializer):
    avatar = serializers.CharField(source="profile.avatar", read_only=True, default="")

    class Meta:
        model = User
        fields = ["id", "username", "first_name", "last_name", "avatar"]


class UserSerializer(serializers.ModelSerializer):
    """Own account representation used by ``/api/auth/me/``."""
    profile = UserProfileSerializer(required=False)

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "date_joined", "profile"]
        read_only_fields = ["id", "username", "date_joined"]

    def validate_email(self, value):
        return run_django_validator(validate_email_unique, value, instance=self.instance)

    def update(self, instance, validated_data):
        profile_data = validated_data.pop("profile", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if profile_data:
            profile = instance.profile
            for attr, value in profile_data.items():
                setattr(profile, attr, value)
            profile.save()
        return instance


class PublicProfileSerializer(serializers.ModelSerializer):
    profile = UserProfileSerializer(read_only=True)
    stats = serializers.SerializerMethodField()
    is_following = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "first_name", "last_name", "date_joined", "profile", "stats", "is_following"]

    def get_stats(self, obj):
        return {
            "events_hosted": obj.hosted_events.count(),
            "events_attended": obj.event_attendances.filter(status="confirmed").count(),
            "tribes_joined": obj.tribe_memberships.filter(status="active").count(),
            "posts": obj.posts.count(),
            "followers": obj.follower_set.count(),
            "following": obj.following_set.count(),
        }

    def get_is_following(self, obj):
        request = self.context.get("request")
        return Follow.is_following(getattr(request, "user", None), obj)


class RegisterSerializer(serializers.ModelSerializer):
    username = serializers.CharField(min_length=3, max_length=30)
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=50)
    last_name = serializers.CharField(max_length=50)
    password = serializers.CharField(write_only=True, trim_whitespace=False, style={"input_type": "password"})
    password2 = serializers.CharField(write_only=True, trim_whitespace=False, style={"input_type": "password"})
    profile = UserProfileSerializer(required=False)

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "password", "password2", "profile"]
        read_only_fields = ["id"]

    def validate_username(self, value: str) -> str:
        run_django_validator(validate_username_rules, value)
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("A user with that username already exists.")
        return value

    def validate_email(self, value: str) -> str:
        return run_django_validator(validate_email_unique, value)

    def validate(self, attrs):
        if attrs["password"] != attrs["password2"]:
            raise serializers.ValidationError({"password2": "Passwords do not match."})

        # similarity checks need a user-shaped object
        pseudo_user = User(username=attrs.get("username"), email=attrs.get("email"))
        try:
            validate_password(attrs["password"], user=pseudo_user)
        except DjangoValidationError as exc:
            raise serializers.ValidationError({"password": list(exc.messages)})
        return attrs

    def create(self, validated_data):
        profile_data = validated_data.pop("profile", {})
        validated_data.pop("password2")
        password = validated_data.pop("password")

        user = User(**validated_data)
        user.set_password(password)
        user.save()

        if profile_data:
            for k, v in profile_data.items():
                setattr(user.profile, k, v)
            user.profile.save()
        return user


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Login using email + password and return SimpleJWT refresh/access tokens.
    POST body: {"email": "...", "password": "..."}
    """
    email = serializers.EmailField(write_only=True)
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)

    def validate(self, attrs):
        try:
            user = User.objects.get(email__iexact=attrs.get("email"))
        except User.DoesNotExist:
            raise AuthenticationFailed("No active account found with the given credentials")

        if not user.is_active or not user.check_password(attrs.get("password")):
            raise AuthenticationFailed("No active account found with the given credentials")

        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])

        refresh = self.get_token(user)
        return {
            "refresh": str(refresh),
            "access": str(refresh.access_token),
            "user": UserMiniSerializer(user).data,
        }


class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField(write_only=True, trim_whitespace=False)
    new_password = serializers.CharField(write_only=True, trim_whitespace=False)
    confirm_new_password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate_old_password(self, value):
        if not self.context["request"].user.check_password(value):
            raise serializers.ValidationError("Old password is incorrect.")
        return value

    def validate(self, attrs):
        if attrs["new_password"] != attrs["confirm_new_password"]:
            raise serializers.ValidationError({"confirm_new_password": "Passwords do not match."})
        try:
            validate_password(attrs["new_password"], self.context["request"].user)
        except DjangoValidationError as exc:
            raise serializers.ValidationError({"new_password": list(exc.messages)})
        return attrs


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate(self, attrs):
        email = (attrs["email"] or "").strip().lower()
        # unknown addresses behave like known ones
        attrs["user"] = User.objects.filter(email__iexact=email, is_active=True).first()
        return attrs


class ResetPasswordSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField(write_only=True, trim_whitespace=False)
    confirm_new_password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate(self, attrs):
        if attrs["new_password"] != attrs["confirm_new_password"]:
            raise serializers.ValidationError({"confirm_new_password": "Passwords do not match."})

        try:
            uid_int = int(force_str(urlsafe_base64_decode(attrs["uid"])))
            user = User.objects.get(pk=uid_int)
        except (TypeError, ValueError, OverflowError, User.DoesNotExist):
            raise serializers.ValidationError({"uid": "Invalid user id."})

        if not PasswordResetTokenGenerator().check_token(user, attrs["token"]):
            raise serializers.ValidationError({"token": "Invalid or expired token."})

        try:
            validate_password(attrs["new_password"], user)
        except DjangoValidationError as exc:
            raise serializers.ValidationError({"new_password": list(exc.messages)})
        attrs["user"] = user
        return attrs


class LocationUpdateSerializer(serializers.Serializer):
    lat = serializers.FloatField()
    lng = serializers.FloatField()
    city = serializers.CharField(max_length=120, required=False, allow_blank=True)
    country = serializers.CharField(max_length=120, required=False, allow_blank=True)

    def validate(self, attrs):
        validate_point(attrs["lat"], attrs["lng"])
        return attrs

    def save_to(self, profile: UserProfile) -> UserProfile:
        data = self.validated_data
        profile.latitude = data["lat"]
        profile.longitude = data["lng"]
        if "city" in data:
            profile.city = data["city"]
        if "country" in data:
            profile.country = data["country"]
        profile.location_updated_at = timezone.now()
        profile.save(update_fields=["latitude", "longitude", "city", "country", "location_updated_at", "updated_at"])
        return profile


class PreferencesSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserProfile
        fields = [
            "notify_email", "notify_push", "notify_sms", "muted_notification_kinds",
            "profile_visibility", "location_sharing", "language", "timezone",
        ]

    def validate_timezone(self, value):
        return run_django_validator(validate_timezone_name, value)

    def validate_muted_notification_kinds(self, value):
        from notifications.models import Notification

        valid = {k for k, _ in Notification.KIND_CHOICES}
        unknown = [k for k in value if k not in valid]
        if unknown:
            raise serializers.ValidationError(f"Unknown notification kinds: {', '.join(unknown)}")
        return value
