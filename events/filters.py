"""
django-filter FilterSet for the event list endpoint.

Date, price and category filters map directly to query parameters;
``upcoming`` and ``free`` are boolean shortcuts.
"""
from django.db.models import Q
from django.utils import timezone
from django_filters import rest_framework as filters

from .models import Event


class EventFilter(filters.FilterSet):
    category = filters.CharFilter(method="filter_category")
    city = filters.CharFilter(field_name="city", lookup_expr="icontains")
    tribe = filters.NumberFilter(field_name="tribe_id")
    host = filters.NumberFilter(field_name="host_id")
    status = filters.ChoiceFilter(choices=Event.STATUS_CHOICES)
    start_after = filters.IsoDateTimeFilter(field_name="start_at", lookup_expr="gte")
    start_before = filters.IsoDateTimeFilter(field_name="start_at", lookup_expr="lte")
    min_price = filters.NumberFilter(field_name="price_amount", lookup_expr="gte")
    max_price = filters.NumberFilter(field_name="price_amount", lookup_expr="lte")
    upcoming = filters.BooleanFilter(method="filter_upcoming")
    free = filters.BooleanFilter(method="filter_free")
    is_virtual = filters.BooleanFilter(field_name="is_virtual")

    class Meta:
        model = Event
        fields = []

    def filter_category(self, queryset, name, value):
        categories = [c.strip() for c in value.split(",") if c.strip()]
        if not categories:
            return queryset
        return queryset.filter(category__in=categories)

    def filter_upcoming(self, queryset, name, value):
        now = timezone.now()
        return queryset.filter(start_at__gte=now) if value else queryset.filter(start_at__lt=now)

    def filter_free(self, queryset, name, value):
        free = Q(price_type="free") | Q(price_amount=0)
        return queryset.filter(free) if value else queryset.exclude(free)
