"""
ViewSet for posts.

The list endpoint is the feed: every post the requester may see under
the visibility rules of ``PostQuerySet.visible_to``, filterable by
author, tribe, event, type, tag and follow graph.  Likes and saves are
toggles; comments carry one level of replies.
"""
import logging
from datetime import timedelta

from django.db.models import Count, F
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from common.permissions import IsOwnerOrReadOnly
from notifications.services import notify
from tribes.permissions import is_moderator
from .filters import PostFilter
from .models import Post, PostComment, PostLike, PostSave
from .serializers import PostCommentSerializer, PostSerializer

logger = logging.getLogger(__name__)

TRENDING_WINDOW = timedelta(days=7)


class IsAuthorOrTribeModerator(IsOwnerOrReadOnly):
    """Authors edit and delete their posts; tribe moderators may also delete."""

    def has_object_permission(self, request, view, obj):
        if super().has_object_permission(request, view, obj):
            return True
        if view.action == "destroy" and obj.related_tribe_id:
            return is_moderator(request.user, obj.related_tribe)
        return False


class PostViewSet(viewsets.ModelViewSet):
    serializer_class = PostSerializer
    permission_classes = [permissions.IsAuthenticated, IsAuthorOrTribeModerator]
    filterset_class = PostFilter
    search_fields = ["content", "title"]
    ordering_fields = ["created_at", "like_count", "view_count"]
    ordering = ["-created_at"]

    def get_queryset(self):
        qs = (
            Post.objects.visible_to(self.request.user)
            .select_related("author__profile", "related_tribe", "related_event")
            .annotate(
                like_count=Count("likes", distinct=True),
                comment_count=Count("comments", distinct=True),
            )
        )
        if self.action in ("list", "trending", "saved"):
            qs = qs.filter(status=Post.STATUS_PUBLISHED)
        return qs

    def retrieve(self, request, *args, **kwargs):
        post = self.get_object()
        Post.objects.filter(pk=post.pk).update(view_count=F("view_count") + 1)
        post.view_count += 1
        return Response(self.get_serializer(post).data)

    def perform_create(self, serializer):
        post = serializer.save(author=self.request.user)
        logger.info("Post %s created by %s", post.pk, self.request.user.pk)

    @action(detail=True, methods=["post"])
    def like(self, request, pk=None):
        post = self.get_object()
        like, created = PostLike.objects.get_or_create(post=post, user=request.user)
        if not created:
            like.delete()
        else:
            notify(
                post.author,
                "like",
                title=f"{request.user.username} liked your post",
                actor=request.user,
                data={"post_id": post.id},
            )
        return Response({"liked": created, "like_count": post.likes.count()})

    @action(detail=True, methods=["post"])
    def save(self, request, pk=None):
        post = self.get_object()
        saved, created = PostSave.objects.get_or_create(post=post, user=request.user)
        if not created:
            saved.delete()
        return Response({"saved": created})

    @action(detail=False, methods=["get"])
    def saved(self, request):
        qs = self.get_queryset().filter(saves__user=request.user).order_by("-created_at")
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    @action(detail=True, methods=["get", "post"])
    def comments(self, request, pk=None):
        post = self.get_object()
        if request.method == "GET":
            qs = post.comments.select_related("author__profile")
            page = self.paginate_queryset(qs)
            return self.get_paginated_response(PostCommentSerializer(page, many=True).data)

        serializer = PostCommentSerializer(data=request.data, context={"post": post})
        serializer.is_valid(raise_exception=True)
        comment = serializer.save(post=post, author=request.user)

        notify(
            post.author,
            "comment",
            title=f"{request.user.username} commented on your post",
            body=comment.content[:200],
            actor=request.user,
            data={"post_id": post.id, "comment_id": comment.id},
        )
        if comment.parent_id and comment.parent.author_id != post.author_id:
            notify(
                comment.parent.author,
                "comment",
                title=f"{request.user.username} replied to your comment",
                body=comment.content[:200],
                actor=request.user,
                data={"post_id": post.id, "comment_id": comment.id},
            )
        return Response(PostCommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["delete"], url_path=r"comments/(?P<comment_id>\d+)")
    def delete_comment(self, request, pk=None, comment_id=None):
        post = self.get_object()
        comment = get_object_or_404(PostComment, pk=comment_id, post=post)
        if request.user.id not in (comment.author_id, post.author_id) and not request.user.is_staff:
            raise PermissionDenied("Only the comment author or the post author can delete this comment.")
        comment.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def trending(self, request):
        since = timezone.now() - TRENDING_WINDOW
        qs = (
            self.get_queryset()
            .filter(created_at__gte=since)
            .annotate(score=F("like_count") + F("comment_count"))
            .order_by("-score", "-created_at")
        )
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)
