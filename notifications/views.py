import logging

from django.db.models import Count
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from .models import Notification, PushToken
from .serializers import NotificationSerializer, PushTokenSerializer

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "True"}


class NotificationViewSet(mixins.ListModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = NotificationSerializer

    def get_queryset(self):
        qs = Notification.objects.filter(recipient=self.request.user).select_related("actor__profile")
        if self.action == "list":
            kind = self.request.query_params.get("kind")
            if kind:
                qs = qs.filter(kind=kind)
            if self.request.query_params.get("unread") in TRUTHY:
                qs = qs.filter(is_read=False)
        return qs

    @extend_schema(
        parameters=[
            OpenApiParameter("kind", str, description="Filter by notification kind"),
            OpenApiParameter("unread", bool, description="Only unread notifications"),
        ]
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        qs = Notification.objects.filter(recipient=request.user)
        by_kind = {
            row["kind"]: row["n"]
            for row in qs.values("kind").annotate(n=Count("id")).order_by()
        }
        return Response({
            "total": qs.count(),
            "unread": qs.filter(is_read=False).count(),
            "by_kind": by_kind,
        })

    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        notification = self.get_object()
        notification.mark_read()
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request):
        updated = Notification.objects.filter(recipient=request.user, is_read=False).update(
            is_read=True, read_at=timezone.now()
        )
        return Response({"updated": updated})

    @action(detail=False, methods=["delete"])
    def clear(self, request):
        deleted, _ = Notification.objects.filter(recipient=request.user, is_read=True).delete()
        return Response({"deleted": deleted})

    @extend_schema(request=PushTokenSerializer, responses=PushTokenSerializer)
    @action(detail=False, methods=["post", "delete"], url_path="push-tokens")
    def push_tokens(self, request):
        if request.method == "DELETE":
            token = request.data.get("token")
            if not token:
                raise ValidationError({"token": "This field is required."})
            deleted, _ = PushToken.objects.filter(user=request.user, token=token).delete()
            return Response({"deleted": bool(deleted)})

        serializer = PushTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        # a device token follows whoever signed in on it last
        push_token, created = PushToken.objects.update_or_create(
            token=serializer.validated_data["token"],
            defaults={"user": request.user, "platform": serializer.validated_data.get("platform", "web")},
        )
        return Response(
            PushTokenSerializer(push_token).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )
