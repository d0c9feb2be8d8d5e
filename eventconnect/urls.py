"""
URL configuration for the EventConnect backend.

All API endpoints live under the `/api/` prefix; each app contributes a
DRF router.  Authentication endpoints are nested under `/api/auth/`.
"""

from django.contrib import admin
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.views import (
    SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView
)
from rest_framework.routers import DefaultRouter

from eventconnect.views import health
from users.views import UserViewSet

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="user")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health", health, name="health"),

    path("api/", RedirectView.as_view(pattern_name="swagger-ui", permanent=False)),

    #  Swagger/Redoc
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),

    # Auth endpoints
    path("api/auth/", include("users.urls")),

    path("api/", include(router.urls)),
    path("api/", include("events.urls")),
    path("api/", include("tribes.urls")),
    path("api/", include("posts.urls")),
    path("api/", include("chat.urls")),
    path("api/", include("notifications.urls")),
    path("api/", include("reviews.urls")),
    path("api/", include("gamification.urls")),
    path("api/search/", include("search.urls")),
    path("api/location/", include("location.urls")),
]
