"""
Models for the posts app.

A ``Post`` is a piece of user content that may be attached to an event
or published into a tribe.  Likes and saves are one row per user and
post; comments allow a single level of replies.
"""
from django.conf import settings
from django.db import models
from django.db.models import Q


class PostQuerySet(models.QuerySet):
    def visible_to(self, user):
        """
        Published public posts are visible to everyone.  Followers-only posts
        need a follow edge to the author, tribe-only posts an active
        membership in the related tribe.  Authors always see their own posts,
        drafts included.
        """
        from tribes.models import TribeMembership
        from users.models import Follow

        published = Q(status=Post.STATUS_PUBLISHED)
        public = published & Q(visibility=Post.VISIBILITY_PUBLIC)
        if user is None or not user.is_authenticated:
            return self.filter(public)
        if user.is_staff:
            return self

        followed = Follow.objects.filter(follower=user).values("following_id")
        member_tribes = TribeMembership.objects.filter(
            user=user, status=TribeMembership.STATUS_ACTIVE
        ).values("tribe_id")
        return self.filter(
            Q(author=user)
            | public
            | (published & Q(visibility=Post.VISIBILITY_FOLLOWERS, author_id__in=followed))
            | (published & Q(visibility=Post.VISIBILITY_TRIBE, related_tribe_id__in=member_tribes))
        )


class Post(models.Model):
    TYPE_CHOICES = [
        ("text", "Text"),
        ("image", "Image"),
        ("video", "Video"),
        ("link", "Link"),
        ("event", "Event"),
        ("poll", "Poll"),
    ]

    VISIBILITY_PUBLIC = "public"
    VISIBILITY_FOLLOWERS = "followers"
    VISIBILITY_TRIBE = "tribe_only"
    VISIBILITY_PRIVATE = "private"
    VISIBILITY_CHOICES = [
        (VISIBILITY_PUBLIC, "Public"),
        (VISIBILITY_FOLLOWERS, "Followers"),
        (VISIBILITY_TRIBE, "Tribe members"),
        (VISIBILITY_PRIVATE, "Only me"),
    ]

    STATUS_PUBLISHED = "published"
    STATUS_DRAFT = "draft"
    STATUS_ARCHIVED = "archived"
    STATUS_CHOICES = [
        (STATUS_PUBLISHED, "Published"),
        (STATUS_DRAFT, "Draft"),
        (STATUS_ARCHIVED, "Archived"),
    ]

    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="posts")
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default="text")
    title = models.CharField(max_length=200, blank=True, default="")
    content = models.TextField(max_length=5000)
    media = models.JSONField(default=list, blank=True)

    related_event = models.ForeignKey(
        "events.Event", on_delete=models.SET_NULL, null=True, blank=True, related_name="posts"
    )
    related_tribe = models.ForeignKey(
        "tribes.Tribe", on_delete=models.CASCADE, null=True, blank=True, related_name="posts"
    )

    visibility = models.CharField(max_length=12, choices=VISIBILITY_CHOICES, default=VISIBILITY_PUBLIC)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PUBLISHED, db_index=True)
    tags = models.JSONField(default=list, blank=True)
    view_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PostQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["author", "created_at"]),
            models.Index(fields=["related_tribe", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"Post[{self.pk}] by {self.author_id}"


class PostLike(models.Model):
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name="likes")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="post_likes")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [models.UniqueConstraint(fields=["post", "user"], name="uniq_post_like")]


class PostSave(models.Model):
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name="saves")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="saved_posts")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [models.UniqueConstraint(fields=["post", "user"], name="uniq_post_save")]
        ordering = ["-created_at"]


class PostComment(models.Model):
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name="comments")
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="post_comments")
    parent = models.ForeignKey(
        "self", on_delete=models.CASCADE, null=True, blank=True, related_name="replies"
    )
    content = models.TextField(max_length=1000)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"Comment[{self.pk}] on post {self.post_id}"
