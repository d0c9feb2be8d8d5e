"""
Location endpoints: geocoding, distances and a combined "what's near me".
"""
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from common.geo import haversine_km, nearest, parse_coordinates, parse_limit, parse_radius
from events.models import Event
from events.serializers import EventListSerializer
from tribes.models import Tribe
from tribes.serializers import TribeSerializer
from users.models import UserProfile
from users.serializers import UserMiniSerializer
from . import geocoding


class GeocodeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(parameters=[OpenApiParameter("address", str, required=True)])
    def get(self, request):
        address = (request.query_params.get("address") or "").strip()
        if not address:
            raise ValidationError({"address": "This parameter is required."})
        return Response(geocoding.geocode(address))


class ReverseGeocodeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(parameters=[OpenApiParameter("lat", float, required=True), OpenApiParameter("lng", float, required=True)])
    def get(self, request):
        lat, lng = parse_coordinates(request.query_params)
        return Response(geocoding.reverse_geocode(lat, lng, request.user.profile.language))


class DistanceView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        params = request.query_params
        from_lat, from_lng = parse_coordinates(params, "from_lat", "from_lng")
        to_lat, to_lng = parse_coordinates(params, "to_lat", "to_lng")
        return Response({
            "from": {"lat": from_lat, "lng": from_lng},
            "to": {"lat": to_lat, "lng": to_lng},
            "distance_km": round(haversine_km(from_lat, from_lng, to_lat, to_lng), 2),
        })


class NearbyView(APIView):
    """Events, tribes and location-sharing people around a point."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        params = request.query_params
        lat, lng = parse_coordinates(params)
        radius = parse_radius(params)
        limit = parse_limit(params, default=20)
        ctx = {"request": request}
        user = request.user

        events = Event.objects.visible_to(user).filter(
            status=Event.STATUS_PUBLISHED, is_virtual=False, start_at__gte=timezone.now()
        ).select_related("host__profile")
        tribes = Tribe.objects.visible_to(user).select_related("creator__profile")
        people = UserProfile.objects.filter(
            location_sharing=True, user__is_active=True
        ).exclude(user=user).select_related("user")

        def rows(pairs, render):
            out = []
            for obj, distance in pairs:
                row = dict(render(obj))
                row["distance"] = distance
                out.append(row)
            return out

        return Response({
            "center": {"lat": lat, "lng": lng},
            "radius": radius,
            "events": rows(
                nearest(events, lat, lng, radius, limit),
                lambda e: EventListSerializer(e, context=ctx).data,
            ),
            "tribes": rows(
                nearest(tribes, lat, lng, radius, limit),
                lambda t: TribeSerializer(t, context=ctx).data,
            ),
            "users": rows(
                nearest(people, lat, lng, radius, limit),
                lambda p: UserMiniSerializer(p.user).data,
            ),
        })
