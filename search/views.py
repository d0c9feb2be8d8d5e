"""
Cross-entity search.

Matching is a case-insensitive substring match against each entity's
text columns; every result list goes through the same visibility rules
as the owning app's endpoints.
"""
import logging
from collections import Counter

from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from common.geo import parse_limit
from events.models import Event
from events.serializers import EventListSerializer
from posts.models import Post
from posts.serializers import PostSerializer
from tribes.models import Tribe
from tribes.serializers import TribeSerializer
from users.models import UserProfile
from users.serializers import UserMiniSerializer

logger = logging.getLogger(__name__)
User = get_user_model()

SEARCH_TYPES = ("all", "events", "tribes", "users", "posts")
MIN_QUERY_LENGTH = 2


def _query(params) -> str:
    q = (params.get("q") or "").strip()
    if len(q) < MIN_QUERY_LENGTH:
        raise ValidationError({"q": f"Search query must be at least {MIN_QUERY_LENGTH} characters."})
    return q


def searchable_users(requester):
    """Active users whose profiles are not private, plus the requester."""
    return User.objects.filter(is_active=True).filter(
        ~Q(profile__profile_visibility=UserProfile.VISIBILITY_PRIVATE) | Q(pk=requester.pk)
    )


class SearchView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        parameters=[
            OpenApiParameter("q", str, required=True),
            OpenApiParameter("type", str, enum=list(SEARCH_TYPES)),
            OpenApiParameter("limit", int, description="Per type, default 10, max 50"),
        ]
    )
    def get(self, request):
        q = _query(request.query_params)
        kind = request.query_params.get("type", "all")
        if kind not in SEARCH_TYPES:
            raise ValidationError({"type": f"Must be one of: {', '.join(SEARCH_TYPES)}."})
        limit = parse_limit(request.query_params, default=10, maximum=50)
        wanted = SEARCH_TYPES[1:] if kind == "all" else (kind,)
        ctx = {"request": request}
        user = request.user

        results = {}
        if "events" in wanted:
            events = (
                Event.objects.visible_to(user)
                .filter(Q(title__icontains=q) | Q(description__icontains=q) | Q(category__icontains=q))
                .select_related("host__profile")
                .order_by("start_at")[:limit]
            )
            results["events"] = EventListSerializer(events, many=True, context=ctx).data
        if "tribes" in wanted:
            tribes = (
                Tribe.objects.visible_to(user)
                .filter(Q(name__icontains=q) | Q(description__icontains=q) | Q(category__icontains=q))
                .select_related("creator__profile")
                .order_by("name")[:limit]
            )
            results["tribes"] = TribeSerializer(tribes, many=True, context=ctx).data
        if "users" in wanted:
            users = (
                searchable_users(user)
                .filter(
                    Q(username__icontains=q)
                    | Q(first_name__icontains=q)
                    | Q(last_name__icontains=q)
                    | Q(profile__bio__icontains=q)
                )
                .select_related("profile")
                .order_by("username")[:limit]
            )
            results["users"] = UserMiniSerializer(users, many=True).data
        if "posts" in wanted:
            posts = (
                Post.objects.visible_to(user)
                .filter(status=Post.STATUS_PUBLISHED)
                .filter(Q(content__icontains=q) | Q(title__icontains=q))
                .select_related("author__profile")[:limit]
            )
            results["posts"] = PostSerializer(posts, many=True, context=ctx).data

        logger.debug("Search %r (%s) by user %s", q, kind, user.pk)
        return Response({
            "query": q,
            "type": kind,
            "total": sum(len(v) for v in results.values()),
            "results": results,
        })


class SuggestionsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        q = _query(request.query_params)
        user = request.user
        events = (
            Event.objects.visible_to(user).upcoming()
            .filter(title__istartswith=q)
            .order_by("start_at")
            .values_list("title", flat=True)[:5]
        )
        tribes = (
            Tribe.objects.visible_to(user)
            .filter(name__istartswith=q)
            .order_by("name")
            .values_list("name", flat=True)[:5]
        )
        users = (
            searchable_users(user)
            .filter(username__istartswith=q)
            .order_by("username")
            .values_list("username", flat=True)[:5]
        )
        return Response({"events": list(events), "tribes": list(tribes), "users": list(users)})


class TrendingView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        upcoming = Event.objects.visible_to(request.user).filter(
            status=Event.STATUS_PUBLISHED, start_at__gte=timezone.now()
        )
        tags = Counter()
        for event_tags in upcoming.values_list("tags", flat=True):
            tags.update(t for t in (event_tags or []) if isinstance(t, str))
        categories = (
            upcoming.values("category").annotate(count=Count("id")).order_by("-count", "category")[:10]
        )
        return Response({
            "tags": [{"tag": t, "count": n} for t, n in tags.most_common(10)],
            "categories": list(categories),
        })
