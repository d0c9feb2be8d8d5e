"""
Geographic helpers shared by the proximity endpoints.

Coordinates are stored as plain latitude/longitude floats.  Proximity
queries first narrow rows with a bounding box on indexed columns and then
compute exact great-circle distances in Python.
"""
import math
from typing import Iterable, List, Optional, Tuple

from django.conf import settings
from rest_framework.exceptions import ValidationError

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(lat: float, lng: float, radius_km: float) -> Tuple[float, float, float, float]:
    """Return (min_lat, max_lat, min_lng, max_lng) enclosing the radius."""
    d_lat = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(lat))
    # near the poles every longitude is within reach
    d_lng = 180.0 if cos_lat < 1e-6 else radius_km / (KM_PER_DEGREE * cos_lat)
    return (
        max(lat - d_lat, -90.0),
        min(lat + d_lat, 90.0),
        max(lng - d_lng, -180.0),
        min(lng + d_lng, 180.0),
    )


def _float_param(params, name: str, required: bool = True) -> Optional[float]:
    raw = params.get(name)
    if raw in (None, ""):
        if required:
            raise ValidationError({name: "This parameter is required."})
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValidationError({name: "Must be a number."})


def validate_point(lat: float, lng: float) -> Tuple[float, float]:
    if not -90 <= lat <= 90:
        raise ValidationError({"lat": "Latitude must be between -90 and 90."})
    if not -180 <= lng <= 180:
        raise ValidationError({"lng": "Longitude must be between -180 and 180."})
    return lat, lng


def parse_coordinates(params, lat_key: str = "lat", lng_key: str = "lng", required: bool = True):
    """Read and validate a coordinate pair from query params or a payload dict."""
    lat = _float_param(params, lat_key, required)
    lng = _float_param(params, lng_key, required)
    if lat is None or lng is None:
        return None
    return validate_point(lat, lng)


def parse_radius(params) -> float:
    radius = _float_param(params, "radius", required=False)
    if radius is None:
        return settings.NEARBY_DEFAULT_RADIUS_KM
    if radius <= 0:
        raise ValidationError({"radius": "Radius must be positive."})
    return min(radius, settings.NEARBY_MAX_RADIUS_KM)


def parse_limit(params, default: Optional[int] = None, maximum: int = 100) -> int:
    raw = params.get("limit")
    if raw in (None, ""):
        return default or settings.NEARBY_DEFAULT_LIMIT
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise ValidationError({"limit": "Must be an integer."})
    if limit < 1:
        raise ValidationError({"limit": "Must be at least 1."})
    return min(limit, maximum)


def nearest(
    queryset,
    lat: float,
    lng: float,
    radius_km: float,
    limit: Optional[int] = None,
    lat_field: str = "latitude",
    lng_field: str = "longitude",
) -> List[Tuple[object, float]]:
    """
    Return ``(obj, distance_km)`` pairs within ``radius_km`` sorted by distance.

    Rows without coordinates are skipped.  Distances are rounded to two
    decimals.
    """
    min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_km)
    candidates: Iterable = queryset.filter(**{
        f"{lat_field}__isnull": False,
        f"{lng_field}__isnull": False,
        f"{lat_field}__gte": min_lat,
        f"{lat_field}__lte": max_lat,
        f"{lng_field}__gte": min_lng,
        f"{lng_field}__lte": max_lng,
    })

    results = []
    for obj in candidates:
        distance = haversine_km(lat, lng, getattr(obj, lat_field), getattr(obj, lng_field))
        if distance <= radius_km:
            results.append((obj, round(distance, 2)))

    results.sort(key=lambda pair: pair[1])
    if limit is not None:
        results = results[:limit]
    return results
