"""
ViewSets for the events app.

Users can browse the events visible to them, host their own, and join or
leave events of others.  Joining is capacity-checked under a row lock on
the event; once an event is full, new joiners go onto a waitlist and the
earliest waitlisted attendee is promoted when a seat frees up.  Proximity
endpoints (``nearby`` and ``pulse``) rank events by great-circle distance.
"""

import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from common.geo import nearest, parse_coordinates, parse_limit, parse_radius
from common.permissions import IsOwnerOrReadOnly
from notifications.services import notify, notify_many
from .filters import EventFilter
from .models import EVENT_CATEGORIES, Event, EventAttendance, EventInterest
from .serializers import (
    AttendeeSerializer,
    EventCommentSerializer,
    EventListSerializer,
    EventSerializer,
)

logger = logging.getLogger(__name__)

# changes to these fields are worth telling attendees about
NOTIFY_ON_CHANGE = ("title", "start_at", "end_at", "address", "venue_name", "latitude", "longitude", "virtual_url")


class EventViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrReadOnly]
    owner_field = "host"
    filterset_class = EventFilter
    search_fields = ["title", "description", "tags", "category", "city"]
    ordering_fields = ["start_at", "price_amount", "created_at", "attendee_count"]
    ordering = ["start_at"]

    def get_queryset(self):
        return (
            Event.objects.visible_to(self.request.user)
            .select_related("host__profile", "tribe")
            .annotate(
                attendee_count=Count(
                    "attendances", filter=Q(attendances__status=EventAttendance.STATUS_CONFIRMED)
                )
            )
        )

    def get_serializer_class(self):
        if self.action in ("list", "mine"):
            return EventListSerializer
        return EventSerializer

    def perform_create(self, serializer):
        event = serializer.save()
        logger.info("Event %s created by %s", event.pk, self.request.user.pk)

    def perform_update(self, serializer):
        before = {f: getattr(serializer.instance, f) for f in NOTIFY_ON_CHANGE}
        event = serializer.save()
        changed = [f for f in NOTIFY_ON_CHANGE if getattr(event, f) != before[f]]
        if changed:
            notify_many(
                self._confirmed_user_ids(event),
                "event_update",
                title=f"{event.title} was updated",
                body=f"Changed: {', '.join(changed)}.",
                actor=self.request.user,
                data={"event_id": event.id, "changed": changed},
            )

    def _confirmed_user_ids(self, event):
        return list(
            event.attendances.filter(status=EventAttendance.STATUS_CONFIRMED).values_list("user_id", flat=True)
        )

    # ---- attendance ----

    @action(detail=True, methods=["post"])
    def join(self, request, pk=None):
        event = self.get_object()
        if event.host_id == request.user.id:
            raise ValidationError({"detail": "You are the host of this event."})
        if event.status != Event.STATUS_PUBLISHED:
            raise ValidationError({"detail": "This event is not open for registration."})
        if event.has_ended:
            raise ValidationError({"detail": "This event has already ended."})

        with transaction.atomic():
            locked = Event.objects.select_for_update().get(pk=event.pk)
            if EventAttendance.objects.filter(event=locked, user=request.user).exists():
                raise ValidationError({"detail": "You already joined this event."})
            waitlisted = locked.is_full
            attendance = EventAttendance.objects.create(
                event=locked,
                user=request.user,
                status=EventAttendance.STATUS_WAITLISTED if waitlisted else EventAttendance.STATUS_CONFIRMED,
            )

        if not waitlisted:
            notify(
                event.host,
                "event_update",
                title=f"New attendee for {event.title}",
                body=f"{request.user.username} is attending {event.title}.",
                actor=request.user,
                data={"event_id": event.id},
            )
        return Response(
            {"status": attendance.status, "waitlisted": waitlisted},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        event = self.get_object()
        promoted = None
        with transaction.atomic():
            locked = Event.objects.select_for_update().get(pk=event.pk)
            attendance = EventAttendance.objects.filter(event=locked, user=request.user).first()
            if attendance is None:
                raise ValidationError({"detail": "You have not joined this event."})
            freed_seat = attendance.status == EventAttendance.STATUS_CONFIRMED
            attendance.delete()

            if freed_seat and not locked.is_full:
                promoted = (
                    EventAttendance.objects.filter(event=locked, status=EventAttendance.STATUS_WAITLISTED)
                    .select_related("user")
                    .order_by("joined_at", "id")
                    .first()
                )
                if promoted is not None:
                    promoted.status = EventAttendance.STATUS_CONFIRMED
                    promoted.save(update_fields=["status"])

        if promoted is not None:
            notify(
                promoted.user,
                "event_update",
                title=f"You're in: {event.title}",
                body=f"A seat opened up and you are now confirmed for {event.title}.",
                data={"event_id": event.id},
                priority="high",
            )
        return Response({"detail": "You left the event."}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def interested(self, request, pk=None):
        event = self.get_object()
        interest, created = EventInterest.objects.get_or_create(event=event, user=request.user)
        if not created:
            interest.delete()
        return Response({
            "interested": created,
            "interested_count": event.interests.count(),
        })

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        event = self.get_object()
        if event.host_id != request.user.id and not request.user.is_staff:
            self.permission_denied(request, message="Only the host can cancel this event.")
        if event.status == Event.STATUS_CANCELLED:
            raise ValidationError({"detail": "This event is already cancelled."})
        event.status = Event.STATUS_CANCELLED
        event.save(update_fields=["status", "updated_at"])

        notify_many(
            list(event.attendances.values_list("user_id", flat=True)),
            "event_cancelled",
            title=f"{event.title} was cancelled",
            body=f"The host cancelled {event.title}.",
            actor=request.user,
            data={"event_id": event.id},
            priority="high",
        )
        logger.info("Event %s cancelled by %s", event.pk, request.user.pk)
        return Response(EventSerializer(event, context={"request": request}).data)

    @action(detail=True, methods=["get"])
    def attendees(self, request, pk=None):
        event = self.get_object()
        qs = event.attendances.select_related("user__profile")
        attendee_status = request.query_params.get("status")
        if attendee_status:
            qs = qs.filter(status=attendee_status)
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(AttendeeSerializer(page, many=True).data)

    @action(detail=True, methods=["get", "post"])
    def comments(self, request, pk=None):
        event = self.get_object()
        if request.method == "GET":
            page = self.paginate_queryset(event.comments.select_related("author__profile"))
            return self.get_paginated_response(EventCommentSerializer(page, many=True).data)

        serializer = EventCommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = serializer.save(event=event, author=request.user)
        notify(
            event.host,
            "comment",
            title=f"New comment on {event.title}",
            body=comment.content[:200],
            actor=request.user,
            data={"event_id": event.id, "comment_id": comment.id},
        )
        return Response(EventCommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    # ---- discovery ----

    @action(detail=False, methods=["get"])
    def categories(self, request):
        counts = dict(
            Event.objects.visible_to(request.user)
            .filter(status=Event.STATUS_PUBLISHED, start_at__gte=timezone.now())
            .values_list("category")
            .annotate(n=Count("id"))
            .order_by()
        )
        return Response([{"category": c, "count": counts.get(c, 0)} for c in EVENT_CATEGORIES])

    def _nearby_payload(self, request, lat, lng):
        params = request.query_params
        radius = parse_radius(params)
        limit = parse_limit(params)

        qs = Event.objects.visible_to(request.user).filter(
            status=Event.STATUS_PUBLISHED,
            is_virtual=False,
            start_at__gte=timezone.now(),
        ).select_related("host__profile")
        categories = [c.strip() for c in params.get("category", "").split(",") if c.strip()]
        if categories:
            qs = qs.filter(category__in=categories)

        results = []
        for event, distance in nearest(qs, lat, lng, radius, limit):
            row = EventListSerializer(event, context={"request": request}).data
            row["distance"] = distance
            results.append(row)
        return {
            "count": len(results),
            "center": {"lat": lat, "lng": lng},
            "radius": radius,
            "results": results,
        }

    @extend_schema(
        parameters=[
            OpenApiParameter("lat", float, required=True),
            OpenApiParameter("lng", float, required=True),
            OpenApiParameter("radius", float, description="Kilometres, default 10"),
            OpenApiParameter("limit", int),
            OpenApiParameter("category", str, description="Comma-separated categories"),
        ]
    )
    @action(detail=False, methods=["get"])
    def nearby(self, request):
        lat, lng = parse_coordinates(request.query_params)
        return Response(self._nearby_payload(request, lat, lng))

    @action(detail=False, methods=["get"])
    def pulse(self, request):
        """Events around the caller: explicit coordinates win over the saved location."""
        coords = parse_coordinates(request.query_params, required=False)
        source = "query"
        if coords is None:
            profile = request.user.profile
            if not profile.has_location:
                raise ValidationError({"detail": "No location available; pass lat and lng or save your location."})
            coords = (profile.latitude, profile.longitude)
            source = "profile"
        payload = self._nearby_payload(request, *coords)
        payload["source"] = source
        return Response(payload)

    @action(detail=False, methods=["get"])
    def mine(self, request):
        role = request.query_params.get("role", "hosting")
        qs = self.get_queryset()
        if role == "hosting":
            qs = qs.filter(host=request.user)
        elif role == "attending":
            qs = qs.filter(attendances__user=request.user)
        elif role == "interested":
            qs = qs.filter(interests__user=request.user)
        else:
            raise ValidationError({"role": "Must be 'hosting', 'attending' or 'interested'."})
        page = self.paginate_queryset(qs.order_by("start_at"))
        return self.get_paginated_response(
            EventListSerializer(page, many=True, context={"request": request}).data
        )
