# users/validators.py
import re

import pytz
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from email_validator import EmailNotValidError, validate_email as ev_validate_email

User = get_user_model()

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.]+$")


def validate_email_smart(value: str) -> str:
    """
    Validate & normalize an email using the 'email-validator' library.

    DNS deliverability is only checked when ``STRICT_EMAIL_DNS`` is on.
    Returns the normalized, lowercased address.
    """
    v = (value or "").strip()
    check_deliverability = bool(getattr(settings, "STRICT_EMAIL_DNS", False))
    try:
        info = ev_validate_email(v, check_deliverability=check_deliverability)
    except EmailNotValidError as e:
        raise ValidationError(str(e))
    return info.normalized.lower()


def validate_email_unique(value: str, instance=None) -> str:
    """Normalize the address and enforce case-insensitive uniqueness."""
    v = validate_email_smart(value)
    qs = User.objects.filter(email__iexact=v)
    if instance is not None:
        qs = qs.exclude(pk=instance.pk)
    if qs.exists():
        raise ValidationError("A user with this email already exists.")
    return v


def validate_username_rules(value: str) -> str:
    if value.isdigit():
        raise ValidationError("Username cannot be only numbers.")
    if "@" in value:
        raise ValidationError("Username cannot be an email address.")
    if not USERNAME_RE.match(value):
        raise ValidationError("Username may contain only letters, numbers, dots and underscores.")
    return value


def validate_timezone_name(value: str) -> str:
    if value and value not in pytz.all_timezones:
        raise ValidationError("Unknown timezone.")
    return value
