from django.contrib import admin

from .models import Chat, ChatParticipant, Message


class ChatParticipantInline(admin.TabularInline):
    model = ChatParticipant
    extra = 0


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ("id", "type", "name", "related_event", "related_tribe", "last_message_at")
    list_filter = ("type",)
    inlines = [ChatParticipantInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "chat", "sender", "type", "is_deleted", "created_at")
    list_filter = ("type", "is_deleted")
