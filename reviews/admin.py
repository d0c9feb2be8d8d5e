from django.contrib import admin

from .models import Review, ReviewReport


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("id", "event", "reviewer", "host", "rating", "is_public", "created_at")
    list_filter = ("rating", "is_public")


@admin.register(ReviewReport)
class ReviewReportAdmin(admin.ModelAdmin):
    list_display = ("id", "review", "user", "reason", "created_at")
    list_filter = ("reason",)
