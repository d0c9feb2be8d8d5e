"""
Settings for the deployed API.

TLS ends at the reverse proxy in front of the ASGI server, which reports
the original scheme in ``X-Forwarded-Proto``; cookies, redirects and HSTS
all assume HTTPS from there on.
"""
from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa

DEBUG = False
ENVIRONMENT = "production"

if SECRET_KEY == "dev-insecure":  # noqa: F405
    raise ImproperlyConfigured("Set DJANGO_SECRET_KEY for production.")

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_SSL_REDIRECT = True

SECURE_HSTS_SECONDS = 31536000
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True
