"""
Read side of the points system, plus claiming achievements and choosing
which badges to show off.  Points themselves are only ever earned through
``gamification.signals``.
"""
import logging

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from common.geo import parse_limit
from . import services
from .models import Achievement, Badge
from .serializers import (
    AchievementSerializer,
    BadgeSerializer,
    LeaderboardEntrySerializer,
    ShowcaseSerializer,
)

logger = logging.getLogger(__name__)

LEADERBOARD_CATEGORIES = ("points", "events")


class GamificationViewSet(viewsets.GenericViewSet):
    permission_classes = [permissions.IsAuthenticated]

    @action(detail=False, methods=["get"])
    def profile(self, request):
        user = request.user
        points = services.points_of(user)
        achievements = Achievement.objects.filter(user=user)
        badges = Badge.objects.filter(user=user)
        return Response({
            "points": points,
            "rank": services.rank(user),
            "achievements": achievements.count(),
            "unclaimed_achievements": achievements.filter(claimed_at__isnull=True).count(),
            "badges": badges.count(),
            "next_milestone": services.next_milestone(points),
            "recent_achievements": AchievementSerializer(achievements[:5], many=True).data,
            "showcased_badges": BadgeSerializer(badges.filter(is_showcased=True), many=True).data,
        })

    @extend_schema(parameters=[OpenApiParameter("claimed", bool, required=False)])
    @action(detail=False, methods=["get"])
    def achievements(self, request):
        qs = Achievement.objects.filter(user=request.user)
        claimed = request.query_params.get("claimed")
        if claimed in ("true", "1"):
            qs = qs.filter(claimed_at__isnull=False)
        elif claimed in ("false", "0"):
            qs = qs.filter(claimed_at__isnull=True)
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(AchievementSerializer(page, many=True).data)

    @action(detail=False, methods=["post"], url_path=r"achievements/(?P<achievement_id>\d+)/claim")
    def claim(self, request, achievement_id=None):
        achievement = get_object_or_404(
            Achievement, pk=achievement_id, user=request.user, claimed_at__isnull=True
        )
        total = services.claim(achievement)
        return Response({"achievement": AchievementSerializer(achievement).data, "points": total})

    @action(detail=False, methods=["get"])
    def badges(self, request):
        page = self.paginate_queryset(Badge.objects.filter(user=request.user))
        return self.get_paginated_response(BadgeSerializer(page, many=True).data)

    @action(detail=False, methods=["put"], url_path=r"badges/(?P<badge_id>\d+)/showcase")
    def showcase(self, request, badge_id=None):
        badge = get_object_or_404(Badge, pk=badge_id, user=request.user)
        serializer = ShowcaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        badge.is_showcased = serializer.validated_data["is_showcased"]
        badge.save(update_fields=["is_showcased"])
        return Response(BadgeSerializer(badge).data)

    @extend_schema(parameters=[
        OpenApiParameter("category", str, enum=list(LEADERBOARD_CATEGORIES), required=False),
        OpenApiParameter("limit", int, required=False),
    ])
    @action(detail=False, methods=["get"])
    def leaderboard(self, request):
        category = request.query_params.get("category", "points")
        if category not in LEADERBOARD_CATEGORIES:
            raise ValidationError({"category": f"Choose one of: {', '.join(LEADERBOARD_CATEGORIES)}."})
        rows = services.leaderboard(category, parse_limit(request.query_params, default=10))
        return Response({
            "category": category,
            "results": LeaderboardEntrySerializer(rows, many=True).data,
        })

    @action(detail=False, methods=["get"])
    def rankings(self, request):
        return Response({
            "points": services.rank(request.user),
            "events": services.events_rank(request.user),
        })
