from django.contrib import admin

from .models import Achievement, Badge, Score


@admin.register(Score)
class ScoreAdmin(admin.ModelAdmin):
    list_display = ("user", "points", "updated_at")
    ordering = ("-points",)


@admin.register(Achievement)
class AchievementAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "code", "points", "earned_at", "claimed_at")
    list_filter = ("code",)


@admin.register(Badge)
class BadgeAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "code", "is_showcased", "earned_at")
    list_filter = ("code",)
