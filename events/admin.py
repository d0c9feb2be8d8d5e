from django.contrib import admin

from .models import Event, EventAttendance, EventComment


class EventAttendanceInline(admin.TabularInline):
    model = EventAttendance
    extra = 0


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("title", "category", "host", "tribe", "start_at", "status", "capacity")
    list_filter = ("status", "category", "visibility", "is_virtual")
    search_fields = ("title", "description", "city")
    inlines = [EventAttendanceInline]


@admin.register(EventComment)
class EventCommentAdmin(admin.ModelAdmin):
    list_display = ("event", "author", "created_at")
