"""
ViewSet for event reviews.

Only confirmed attendees may review an event, once it has started; the
review also counts toward the host's rating (see ``reviews.signals``).
"""
import logging

from django.db.models import Avg, Count, Q
from django_filters import rest_framework as filters
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from common.permissions import IsOwnerOrReadOnly
from notifications.services import notify
from .models import Review, ReviewHelpful, ReviewReport
from .serializers import ReviewReportSerializer, ReviewSerializer

logger = logging.getLogger(__name__)


class ReviewFilter(filters.FilterSet):
    event = filters.NumberFilter(field_name="event_id")
    host = filters.NumberFilter(field_name="host_id")
    rating = filters.NumberFilter(field_name="rating")

    class Meta:
        model = Review
        fields = []


class ReviewViewSet(viewsets.ModelViewSet):
    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrReadOnly]
    owner_field = "reviewer"
    filterset_class = ReviewFilter
    ordering_fields = ["created_at", "rating"]

    def get_queryset(self):
        user = self.request.user
        qs = Review.objects.select_related("reviewer__profile", "event")
        if self.action == "list":
            return qs.filter(is_public=True)
        return qs.filter(Q(is_public=True) | Q(reviewer=user))

    def perform_create(self, serializer):
        review = serializer.save()
        notify(
            review.host,
            "review",
            title=f"New {review.rating}-star review for {review.event.title}",
            body=review.title or review.comment[:200],
            actor=self.request.user,
            data={"review_id": review.id, "event_id": review.event_id},
        )
        logger.info("Review %s created for event %s", review.pk, review.event_id)

    @action(detail=True, methods=["post"])
    def helpful(self, request, pk=None):
        review = self.get_object()
        if review.reviewer_id == request.user.id:
            raise ValidationError({"detail": "You cannot mark your own review as helpful."})
        mark, created = ReviewHelpful.objects.get_or_create(review=review, user=request.user)
        if not created:
            mark.delete()
        return Response({"helpful": created, "helpful_count": review.helpful_marks.count()})

    @action(detail=True, methods=["post"])
    def report(self, request, pk=None):
        review = self.get_object()
        if ReviewReport.objects.filter(review=review, user=request.user).exists():
            raise ValidationError({"detail": "You already reported this review."})
        serializer = ReviewReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save(review=review, user=request.user)
        logger.warning("Review %s reported by %s: %s", review.pk, request.user.pk, serializer.data["reason"])
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        params = request.query_params
        qs = Review.objects.filter(is_public=True)
        if params.get("event", "").isdigit():
            qs = qs.filter(event_id=params["event"])
        elif params.get("host", "").isdigit():
            qs = qs.filter(host_id=params["host"])
        else:
            raise ValidationError({"detail": "Pass an event or host id."})

        agg = qs.aggregate(count=Count("id"), average=Avg("rating"))
        by_rating = dict(qs.values_list("rating").annotate(n=Count("id")).order_by())
        return Response({
            "count": agg["count"],
            "average": round(agg["average"], 1) if agg["average"] is not None else 0,
            "distribution": {str(r): by_rating.get(r, 0) for r in range(1, 6)},
        })
