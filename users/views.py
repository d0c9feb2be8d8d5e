"""
Views for the users app.

Authentication endpoints (register, login, logout, password flows, own
account) live next to the public user directory, which exposes profiles,
the follow graph and per-user listings of events, tribes and posts.
"""
import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.contrib.auth.tokens import PasswordResetTokenGenerator
from django.core.mail import send_mail
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import generics, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from events.models import Event
from events.serializers import EventListSerializer
from notifications.services import notify
from posts.models import Post
from posts.serializers import PostSerializer
from tribes.models import Tribe
from tribes.serializers import TribeSerializer
from .filters import UserFilter
from .models import Follow, UserProfile
from .serializers import (
    ChangePasswordSerializer,
    EmailTokenObtainPairSerializer,
    ForgotPasswordSerializer,
    LocationUpdateSerializer,
    PreferencesSerializer,
    PublicProfileSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
    UserMiniSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


def _send_account_email(user, subject, body):
    """Best-effort account email; failures are logged, never raised."""
    if not user.email:
        return
    try:
        send_mail(
            subject=subject,
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
            fail_silently=False,
        )
    except Exception as e:
        logger.warning("Account email %r failed for %s: %s", subject, user.email, e)


class RegisterView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(request=RegisterSerializer, responses=UserSerializer)
    def post(self, request, *args, **kwargs):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered user %s", user.pk)

        _send_account_email(
            user,
            "Welcome to EventConnect",
            f"Hi {user.first_name or user.username}, your account is ready.\n"
            f"Sign in at {settings.FRONTEND_URL}/login",
        )

        refresh = RefreshToken.for_user(user)
        payload = UserSerializer(user).data
        payload.update({
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        })
        return Response(payload, status=status.HTTP_201_CREATED)


class EmailTokenObtainPairView(TokenObtainPairView):
    """Obtain JWT tokens using email + password."""
    permission_classes = [permissions.AllowAny]
    serializer_class = EmailTokenObtainPairSerializer


class LogoutView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        refresh_token = request.data.get("refresh")
        if not refresh_token:
            raise ValidationError({"refresh": "Refresh token is required."})
        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError:
            raise ValidationError({"refresh": "Invalid or expired token."})
        return Response({"detail": "Successfully logged out."}, status=status.HTTP_205_RESET_CONTENT)


class MeView(generics.RetrieveUpdateAPIView):
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]
    http_method_names = ["get", "patch", "put"]

    def get_object(self):
        return self.request.user

    def update(self, request, *args, **kwargs):
        # the account is always partially updated
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)


class ChangePasswordView(generics.GenericAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ChangePasswordSerializer

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = request.user
        user.set_password(serializer.validated_data["new_password"])
        user.save()
        _send_account_email(
            user,
            "Your EventConnect password was changed",
            "If you did not change your password, reset it immediately.",
        )
        return Response({"detail": "Password changed successfully."}, status=status.HTTP_200_OK)


class ForgotPasswordView(generics.GenericAPIView):
    """POST { "email": "user@example.com" }"""
    permission_classes = [permissions.AllowAny]
    serializer_class = ForgotPasswordSerializer

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data["user"]
        if user:
            uid = urlsafe_base64_encode(force_bytes(user.pk))
            token = PasswordResetTokenGenerator().make_token(user)
            reset_link = f"{settings.FRONTEND_RESET_PASSWORD_URL}?uid={uid}&token={token}"
            _send_account_email(
                user,
                "Reset your password",
                f"Open this link to set a new password:\n{reset_link}",
            )

        return Response(
            {"detail": "If that email exists, we've sent a reset link."},
            status=status.HTTP_200_OK,
        )


class ResetPasswordView(generics.GenericAPIView):
    """POST { "uid": "...", "token": "...", "new_password": "...", "confirm_new_password": "..." }"""
    permission_classes = [permissions.AllowAny]
    serializer_class = ResetPasswordSerializer

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data["user"]
        user.set_password(serializer.validated_data["new_password"])
        user.save()
        return Response({"detail": "Password has been reset successfully."}, status=status.HTTP_200_OK)


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Public user directory.

    ``retrieve`` honours the target's profile visibility: private profiles
    are only visible to their owner, follower-only profiles to followers.
    """
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = UserFilter

    def get_queryset(self):
        return (
            User.objects.filter(is_active=True)
            .select_related("profile")
            .order_by("username")
        )

    def get_serializer_class(self):
        if self.action == "list":
            return UserMiniSerializer
        return PublicProfileSerializer

    def _check_visible(self, target):
        viewer = self.request.user
        if viewer == target or viewer.is_staff:
            return
        visibility = target.profile.profile_visibility
        if visibility == UserProfile.VISIBILITY_PRIVATE:
            raise PermissionDenied("This profile is private.")
        if visibility == UserProfile.VISIBILITY_FRIENDS and not Follow.is_following(viewer, target):
            raise PermissionDenied("This profile is visible to followers only.")

    def retrieve(self, request, *args, **kwargs):
        target = self.get_object()
        self._check_visible(target)
        return Response(self.get_serializer(target).data)

    @action(detail=True, methods=["post", "delete"])
    def follow(self, request, pk=None):
        target = get_object_or_404(User, pk=pk, is_active=True)
        if target == request.user:
            raise ValidationError({"detail": "You cannot follow yourself."})

        if request.method == "DELETE":
            deleted, _ = Follow.objects.filter(follower=request.user, following=target).delete()
            if not deleted:
                raise ValidationError({"detail": "You are not following this user."})
            return Response({"following": False}, status=status.HTTP_200_OK)

        _, created = Follow.objects.get_or_create(follower=request.user, following=target)
        if not created:
            raise ValidationError({"detail": "You are already following this user."})
        notify(
            target,
            "follow",
            title="New follower",
            body=f"{request.user.username} started following you.",
            actor=request.user,
            data={"user_id": request.user.id},
        )
        return Response({"following": True}, status=status.HTTP_201_CREATED)

    def _paginated_users(self, queryset):
        page = self.paginate_queryset(queryset)
        data = UserMiniSerializer(page, many=True).data
        return self.get_paginated_response(data)

    @action(detail=True, methods=["get"])
    def followers(self, request, pk=None):
        target = get_object_or_404(User, pk=pk)
        qs = User.objects.filter(following_set__following=target).select_related("profile").order_by("username")
        return self._paginated_users(qs)

    @action(detail=True, methods=["get"])
    def following(self, request, pk=None):
        target = get_object_or_404(User, pk=pk)
        qs = User.objects.filter(follower_set__follower=target).select_related("profile").order_by("username")
        return self._paginated_users(qs)

    @action(detail=True, methods=["get"])
    def events(self, request, pk=None):
        target = get_object_or_404(User, pk=pk)
        self._check_visible(target)
        role = request.query_params.get("role", "hosting")
        qs = Event.objects.visible_to(request.user)
        if role == "attending":
            qs = qs.filter(attendances__user=target, attendances__status="confirmed")
        elif role == "hosting":
            qs = qs.filter(host=target)
        else:
            raise ValidationError({"role": "Must be 'hosting' or 'attending'."})
        page = self.paginate_queryset(qs.order_by("start_at"))
        return self.get_paginated_response(
            EventListSerializer(page, many=True, context={"request": request}).data
        )

    @action(detail=True, methods=["get"])
    def tribes(self, request, pk=None):
        target = get_object_or_404(User, pk=pk)
        self._check_visible(target)
        qs = Tribe.objects.visible_to(request.user).filter(
            memberships__user=target, memberships__status="active"
        )
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(
            TribeSerializer(page, many=True, context={"request": request}).data
        )

    @action(detail=True, methods=["get"])
    def posts(self, request, pk=None):
        target = get_object_or_404(User, pk=pk)
        self._check_visible(target)
        qs = Post.objects.visible_to(request.user).filter(author=target)
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(
            PostSerializer(page, many=True, context={"request": request}).data
        )

    @action(detail=False, methods=["put"], url_path="me/location")
    def location(self, request):
        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = serializer.save_to(request.user.profile)
        return Response({
            "latitude": profile.latitude,
            "longitude": profile.longitude,
            "city": profile.city,
            "country": profile.country,
            "location_updated_at": profile.location_updated_at,
        })

    @action(detail=False, methods=["get", "patch"], url_path="me/preferences")
    def preferences(self, request):
        profile = request.user.profile
        if request.method == "GET":
            return Response(PreferencesSerializer(profile).data)
        serializer = PreferencesSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    @action(detail=False, methods=["get"])
    def suggested(self, request):
        """Users sharing the requester's city or interests, not yet followed."""
        profile = request.user.profile
        followed = Follow.objects.filter(follower=request.user).values("following_id")
        cond = Q()
        if profile.city:
            cond |= Q(profile__city__iexact=profile.city)
        for interest in profile.interests or []:
            cond |= Q(profile__interests__icontains=f'"{interest}"')
        if not cond:
            return Response([])
        qs = (
            self.get_queryset()
            .filter(cond)
            .exclude(pk=request.user.pk)
            .exclude(pk__in=followed)
            .exclude(profile__profile_visibility=UserProfile.VISIBILITY_PRIVATE)
            .distinct()[:10]
        )
        return Response(UserMiniSerializer(qs, many=True).data)
