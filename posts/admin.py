from django.contrib import admin

from .models import Post, PostComment


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ("id", "author", "type", "visibility", "status", "related_tribe", "created_at")
    list_filter = ("type", "visibility", "status")
    search_fields = ("title", "content")


@admin.register(PostComment)
class PostCommentAdmin(admin.ModelAdmin):
    list_display = ("id", "post", "author", "parent", "created_at")
