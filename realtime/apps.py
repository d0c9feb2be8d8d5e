from django.apps import AppConfig


class RealtimeConfig(AppConfig):
    """The realtime app owns the shared WebSocket endpoint and broadcast helpers."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "realtime"
