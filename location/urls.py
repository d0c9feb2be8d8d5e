from django.urls import path

from .views import DistanceView, GeocodeView, NearbyView, ReverseGeocodeView

urlpatterns = [
    path("geocode/", GeocodeView.as_view(), name="location-geocode"),
    path("reverse/", ReverseGeocodeView.as_view(), name="location-reverse"),
    path("distance/", DistanceView.as_view(), name="location-distance"),
    path("nearby/", NearbyView.as_view(), name="location-nearby"),
]
