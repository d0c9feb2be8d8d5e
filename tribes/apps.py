from django.apps import AppConfig


class TribesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tribes"
