"""
Thin client for the Google Maps Geocoding API.

Errors are raised as DRF exceptions so views can let them propagate:
a missing API key is a 503, a transport or provider failure a 502 and
an empty result a 404.
"""
import logging
from typing import Optional

import requests
from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound

logger = logging.getLogger(__name__)


class GeocodingUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Geocoding is not configured."
    default_code = "geocoding_unavailable"


class GeocodingFailed(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "The geocoding provider could not be reached."
    default_code = "geocoding_failed"


def _component(result: dict, kind: str) -> str:
    for component in result.get("address_components", []):
        if kind in component.get("types", []):
            return component.get("long_name", "")
    return ""


def _shape(result: dict) -> dict:
    point = result["geometry"]["location"]
    return {
        "latitude": point["lat"],
        "longitude": point["lng"],
        "formatted_address": result.get("formatted_address", ""),
        "city": _component(result, "locality") or _component(result, "postal_town"),
        "country": _component(result, "country"),
    }


def _lookup(params: dict) -> dict:
    key = settings.GOOGLE_MAPS_API_KEY
    if not key:
        raise GeocodingUnavailable()
    try:
        resp = requests.get(
            settings.GOOGLE_MAPS_GEOCODE_URL,
            params={**params, "key": key},
            timeout=settings.GOOGLE_MAPS_TIMEOUT,
        )
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Geocoding request failed: %s", exc)
        raise GeocodingFailed()

    provider_status = payload.get("status")
    if provider_status == "ZERO_RESULTS" or (provider_status == "OK" and not payload.get("results")):
        raise NotFound("No location matched.")
    if provider_status != "OK":
        logger.warning("Geocoding provider answered %s: %s", provider_status, payload.get("error_message", ""))
        raise GeocodingFailed()
    return _shape(payload["results"][0])


def geocode(address: str) -> dict:
    return _lookup({"address": address})


def reverse_geocode(lat: float, lng: float, language: Optional[str] = None) -> dict:
    params = {"latlng": f"{lat},{lng}"}
    if language:
        params["language"] = language
    return _lookup(params)
