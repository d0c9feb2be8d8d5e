from django.contrib import admin

from .models import Tribe, TribeMembership


class TribeMembershipInline(admin.TabularInline):
    model = TribeMembership
    extra = 0


@admin.register(Tribe)
class TribeAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "privacy", "membership", "creator", "created_at")
    list_filter = ("category", "privacy", "membership")
    search_fields = ("name", "description")
    inlines = [TribeMembershipInline]
