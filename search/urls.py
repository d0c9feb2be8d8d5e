from django.urls import path

from .views import SearchView, SuggestionsView, TrendingView

urlpatterns = [
    path("", SearchView.as_view(), name="search"),
    path("suggestions/", SuggestionsView.as_view(), name="search-suggestions"),
    path("trending/", TrendingView.as_view(), name="search-trending"),
]
