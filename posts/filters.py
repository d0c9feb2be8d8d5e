from django.db.models import Q
from django_filters import rest_framework as filters

from .models import Post


class PostFilter(filters.FilterSet):
    author = filters.NumberFilter(field_name="author_id")
    tribe = filters.NumberFilter(field_name="related_tribe_id")
    event = filters.NumberFilter(field_name="related_event_id")
    type = filters.ChoiceFilter(choices=Post.TYPE_CHOICES)
    tag = filters.CharFilter(method="filter_tag")
    following = filters.BooleanFilter(method="filter_following")

    class Meta:
        model = Post
        fields = []

    def filter_tag(self, queryset, name, value):
        return queryset.filter(tags__icontains=value.strip().lower())

    def filter_following(self, queryset, name, value):
        if not value:
            return queryset
        # posts from people the requester follows, plus their own
        user = self.request.user
        followed = user.following_set.values("following_id")
        return queryset.filter(Q(author_id__in=followed) | Q(author=user))
