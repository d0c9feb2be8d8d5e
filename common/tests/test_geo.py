import pytest
from rest_framework.exceptions import ValidationError

from common.geo import bounding_box, haversine_km, nearest, parse_coordinates, parse_limit, parse_radius
from events.models import Event


def test_haversine_known_distance():
    # Madrid to Barcelona
    assert haversine_km(40.4168, -3.7038, 41.3874, 2.1686) == pytest.approx(505, abs=5)
    assert haversine_km(10, 10, 10, 10) == 0


def test_bounding_box_clamps_at_the_pole():
    min_lat, max_lat, min_lng, max_lng = bounding_box(90, 0, 50)
    assert max_lat == 90
    assert (min_lng, max_lng) == (-180, 180)


def test_parse_coordinates():
    assert parse_coordinates({"lat": "40.5", "lng": "-3.5"}) == (40.5, -3.5)
    assert parse_coordinates({}, required=False) is None
    with pytest.raises(ValidationError):
        parse_coordinates({"lat": "north", "lng": "1"})
    with pytest.raises(ValidationError):
        parse_coordinates({"lat": "91", "lng": "0"})
    with pytest.raises(ValidationError):
        parse_coordinates({"lat": "10"})


def test_parse_radius_and_limit(settings):
    settings.NEARBY_DEFAULT_RADIUS_KM = 10
    settings.NEARBY_MAX_RADIUS_KM = 100
    assert parse_radius({}) == 10
    assert parse_radius({"radius": "500"}) == 100
    with pytest.raises(ValidationError):
        parse_radius({"radius": "-1"})

    assert parse_limit({}, default=7) == 7
    assert parse_limit({"limit": "500"}, maximum=50) == 50
    with pytest.raises(ValidationError):
        parse_limit({"limit": "0"})


@pytest.mark.django_db
def test_nearest_sorts_and_skips_unlocated(make_event, user):
    far = make_event(user, latitude=40.46, longitude=-3.70)
    near = make_event(user, latitude=40.417, longitude=-3.704)
    make_event(user, latitude=None, longitude=None, is_virtual=True)
    make_event(user, latitude=48.85, longitude=2.35)

    pairs = nearest(Event.objects.all(), 40.4168, -3.7038, 10)
    assert [obj for obj, _ in pairs] == [near, far]
    assert pairs[0][1] < pairs[1][1]
    assert len(nearest(Event.objects.all(), 40.4168, -3.7038, 10, limit=1)) == 1
