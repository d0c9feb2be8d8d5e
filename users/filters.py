"""
django-filter FilterSet definitions for the users app.

``UserFilter`` powers the user directory: ``q`` searches usernames,
names and bios, ``city`` and ``interest`` narrow by profile fields.
"""
from django.contrib.auth.models import User
from django.db.models import Q
from django_filters import rest_framework as filters


class UserFilter(filters.FilterSet):
    """Filter set for the User directory search."""

    q = filters.CharFilter(method="filter_q")
    city = filters.CharFilter(field_name="profile__city", lookup_expr="icontains")
    interest = filters.CharFilter(method="filter_interest")

    class Meta:
        model = User
        fields = []

    def filter_q(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(username__icontains=value)
            | Q(first_name__icontains=value)
            | Q(last_name__icontains=value)
            | Q(profile__bio__icontains=value)
        )

    def filter_interest(self, queryset, name, value):
        if not value:
            return queryset
        # JSON list stored as text; a quoted match avoids prefix collisions
        return queryset.filter(profile__interests__icontains=f'"{value}"')
