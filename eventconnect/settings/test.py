"""
Test settings for EventConnect.

Runs against SQLite with in-memory cache and channel layer so the suite
needs neither PostgreSQL nor Redis.  Celery tasks execute eagerly.
"""
from .base import *  # noqa

DEBUG = False
ENVIRONMENT = "test"
ALLOWED_HOSTS = ["*"]
SECRET_KEY = "test-secret-key-with-enough-length-for-hs256-signing"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}
CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
GOOGLE_MAPS_API_KEY = "test-key"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {**REST_FRAMEWORK, "DEFAULT_THROTTLE_CLASSES": []}  # noqa: F405
