"""
ViewSet for tribes.

Anyone signed in can browse non-secret tribes and create new ones; the
creator becomes the first admin.  Membership follows the tribe's join
policy: open tribes admit immediately, approval tribes queue a pending
request for moderators, invite-only tribes refuse self-service joins.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from common.geo import nearest, parse_coordinates, parse_limit, parse_radius
from events.models import Event
from events.serializers import EventListSerializer
from notifications.services import notify, notify_many
from posts.models import Post
from posts.serializers import PostSerializer
from .models import Tribe, TribeMembership
from .permissions import IsTribeAdminOrReadOnly, is_admin, is_member, is_moderator
from .serializers import TribeMemberSerializer, TribeSerializer, TribeUserActionSerializer

logger = logging.getLogger(__name__)
User = get_user_model()

TRUTHY = {"1", "true", "True"}


class TribeViewSet(viewsets.ModelViewSet):
    serializer_class = TribeSerializer
    permission_classes = [permissions.IsAuthenticated, IsTribeAdminOrReadOnly]
    search_fields = ["name", "description", "category"]
    ordering_fields = ["created_at", "name", "member_count"]

    def get_queryset(self):
        qs = (
            Tribe.objects.visible_to(self.request.user)
            .select_related("creator__profile")
            .annotate(member_count=Count("memberships", filter=Q(memberships__status=TribeMembership.STATUS_ACTIVE)))
        )
        if self.action != "list":
            return qs

        params = self.request.query_params
        if params.get("category"):
            qs = qs.filter(category=params["category"])
        if params.get("city"):
            qs = qs.filter(city__icontains=params["city"])
        if params.get("mine") in TRUTHY:
            qs = qs.filter(
                memberships__user=self.request.user,
                memberships__status=TribeMembership.STATUS_ACTIVE,
            )
        return qs

    def perform_create(self, serializer):
        with transaction.atomic():
            tribe = serializer.save(creator=self.request.user)
            TribeMembership.objects.create(
                tribe=tribe,
                user=self.request.user,
                role=TribeMembership.ROLE_ADMIN,
                status=TribeMembership.STATUS_ACTIVE,
            )
        logger.info("Tribe %s created by %s", tribe.pk, self.request.user.pk)

    def _admins(self, tribe):
        admin_ids = set(
            tribe.memberships.filter(
                role=TribeMembership.ROLE_ADMIN, status=TribeMembership.STATUS_ACTIVE
            ).values_list("user_id", flat=True)
        )
        admin_ids.add(tribe.creator_id)
        return admin_ids

    def _require_moderator(self, tribe):
        if not (self.request.user.is_staff or is_moderator(self.request.user, tribe)):
            raise PermissionDenied("Only tribe moderators can do this.")

    def _require_admin(self, tribe):
        if not (self.request.user.is_staff or is_admin(self.request.user, tribe)):
            raise PermissionDenied("Only tribe admins can do this.")

    # ---- membership ----

    @action(detail=True, methods=["post"])
    def join(self, request, pk=None):
        tribe = self.get_object()
        existing = tribe.memberships.filter(user=request.user).first()
        if existing is not None:
            if existing.status == TribeMembership.STATUS_BANNED:
                raise PermissionDenied("You are banned from this tribe.")
            if existing.status == TribeMembership.STATUS_PENDING:
                raise ValidationError({"detail": "Your join request is already pending."})
            raise ValidationError({"detail": "You are already a member of this tribe."})

        if tribe.membership == Tribe.JOIN_INVITE:
            raise PermissionDenied("This tribe is invite-only.")

        pending = tribe.membership == Tribe.JOIN_APPROVAL
        TribeMembership.objects.create(
            tribe=tribe,
            user=request.user,
            role=TribeMembership.ROLE_MEMBER,
            status=TribeMembership.STATUS_PENDING if pending else TribeMembership.STATUS_ACTIVE,
        )

        verb = "requested to join" if pending else "joined"
        notify_many(
            self._admins(tribe),
            "tribe_update",
            title=f"{tribe.name}: new member" if not pending else f"{tribe.name}: join request",
            body=f"{request.user.username} {verb} {tribe.name}.",
            actor=request.user,
            data={"tribe_id": tribe.id, "user_id": request.user.id, "pending": pending},
        )

        if pending:
            return Response({"status": TribeMembership.STATUS_PENDING}, status=status.HTTP_202_ACCEPTED)
        return Response({"status": TribeMembership.STATUS_ACTIVE}, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        tribe = self.get_object()
        if tribe.creator_id == request.user.id:
            raise ValidationError({"detail": "The creator cannot leave the tribe."})
        membership = tribe.memberships.filter(
            user=request.user,
            status__in=[TribeMembership.STATUS_ACTIVE, TribeMembership.STATUS_PENDING],
        ).first()
        if membership is None:
            raise ValidationError({"detail": "You are not a member of this tribe."})
        was_active = membership.status == TribeMembership.STATUS_ACTIVE
        membership.delete()

        if was_active:
            notify_many(
                self._admins(tribe),
                "tribe_update",
                title=f"{tribe.name}: member left",
                body=f"{request.user.username} left {tribe.name}.",
                actor=request.user,
                data={"tribe_id": tribe.id, "user_id": request.user.id},
            )
        return Response({"detail": "You left the tribe."}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"])
    def members(self, request, pk=None):
        tribe = self.get_object()
        if tribe.privacy != Tribe.PRIVACY_PUBLIC and not (request.user.is_staff or is_member(request.user, tribe)):
            raise PermissionDenied("Only members can see the member list.")
        qs = tribe.memberships.filter(status=TribeMembership.STATUS_ACTIVE).select_related("user__profile")
        role = request.query_params.get("role")
        if role:
            qs = qs.filter(role=role)
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(TribeMemberSerializer(page, many=True).data)

    @action(detail=True, methods=["get"])
    def requests(self, request, pk=None):
        tribe = self.get_object()
        self._require_moderator(tribe)
        qs = tribe.memberships.filter(status=TribeMembership.STATUS_PENDING).select_related("user__profile")
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(TribeMemberSerializer(page, many=True).data)

    def _pending_request(self, tribe, user_id):
        return get_object_or_404(
            TribeMembership, tribe=tribe, user_id=user_id, status=TribeMembership.STATUS_PENDING
        )

    @action(detail=True, methods=["post"], url_path=r"requests/(?P<user_id>\d+)/approve")
    def approve_request(self, request, pk=None, user_id=None):
        tribe = self.get_object()
        self._require_moderator(tribe)
        membership = self._pending_request(tribe, user_id)
        membership.status = TribeMembership.STATUS_ACTIVE
        membership.save(update_fields=["status"])
        notify(
            membership.user,
            "tribe_update",
            title=f"Welcome to {tribe.name}",
            body=f"Your request to join {tribe.name} was approved.",
            actor=request.user,
            data={"tribe_id": tribe.id},
        )
        return Response(TribeMemberSerializer(membership).data)

    @action(detail=True, methods=["post"], url_path=r"requests/(?P<user_id>\d+)/reject")
    def reject_request(self, request, pk=None, user_id=None):
        tribe = self.get_object()
        self._require_moderator(tribe)
        self._pending_request(tribe, user_id).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="moderators")
    def add_moderator(self, request, pk=None):
        tribe = self.get_object()
        self._require_admin(tribe)
        serializer = TribeUserActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_id = serializer.validated_data["user_id"]
        membership = tribe.memberships.filter(user_id=user_id, status=TribeMembership.STATUS_ACTIVE).first()
        if membership is None:
            raise ValidationError({"user_id": "User is not an active member."})
        if membership.role == TribeMembership.ROLE_MEMBER:
            membership.role = TribeMembership.ROLE_MODERATOR
            membership.save(update_fields=["role"])
        return Response(TribeMemberSerializer(membership).data)

    @action(detail=True, methods=["delete"], url_path=r"moderators/(?P<user_id>\d+)")
    def remove_moderator(self, request, pk=None, user_id=None):
        tribe = self.get_object()
        self._require_admin(tribe)
        membership = get_object_or_404(
            TribeMembership, tribe=tribe, user_id=user_id, role=TribeMembership.ROLE_MODERATOR
        )
        membership.role = TribeMembership.ROLE_MEMBER
        membership.save(update_fields=["role"])
        return Response(TribeMemberSerializer(membership).data)

    @action(detail=True, methods=["post"])
    def ban(self, request, pk=None):
        tribe = self.get_object()
        self._require_admin(tribe)
        serializer = TribeUserActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_id = serializer.validated_data["user_id"]
        if user_id == tribe.creator_id:
            raise ValidationError({"user_id": "The creator cannot be banned."})
        target = get_object_or_404(User, pk=user_id)
        membership, _ = TribeMembership.objects.update_or_create(
            tribe=tribe,
            user=target,
            defaults={"status": TribeMembership.STATUS_BANNED, "role": TribeMembership.ROLE_MEMBER},
        )
        logger.info("User %s banned from tribe %s by %s", target.pk, tribe.pk, request.user.pk)
        return Response(TribeMemberSerializer(membership).data)

    # ---- content ----

    @action(detail=True, methods=["get"])
    def events(self, request, pk=None):
        tribe = self.get_object()
        qs = Event.objects.visible_to(request.user).filter(tribe=tribe).order_by("start_at")
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(
            EventListSerializer(page, many=True, context={"request": request}).data
        )

    @action(detail=True, methods=["get"])
    def posts(self, request, pk=None):
        tribe = self.get_object()
        qs = Post.objects.visible_to(request.user).filter(related_tribe=tribe)
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(
            PostSerializer(page, many=True, context={"request": request}).data
        )

    @action(detail=False, methods=["get"])
    def nearby(self, request):
        lat, lng = parse_coordinates(request.query_params)
        radius = parse_radius(request.query_params)
        limit = parse_limit(request.query_params)
        qs = self.get_queryset().filter(is_virtual=False)
        pairs = nearest(qs, lat, lng, radius, limit)
        results = []
        for tribe, distance in pairs:
            row = TribeSerializer(tribe, context={"request": request}).data
            row["distance"] = distance
            results.append(row)
        return Response({
            "count": len(results),
            "center": {"lat": lat, "lng": lng},
            "radius": radius,
            "results": results,
        })
