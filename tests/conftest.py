# tests/conftest.py
import json
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, List

import httpx
import pytest

from clickcollect.config import Settings
from clickcollect.schemas.pickup import GeoPoint
from clickcollect.services.cache_service import CacheService
from clickcollect.services.distance import EARTH_RADIUS_KM

SHOP = "example.myshopify.com"
ACCESS_TOKEN = "shpat_test_token"

GOOGLE_HOST = "maps.googleapis.com"
NOMINATIM_HOST = "nominatim.openstreetmap.org"


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []
        self.respond = handler

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.respond(request)

        super().__init__(record)

    def to_host(self, host: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


class Clock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def google_ok(lat: float, lng: float, formatted: str) -> httpx.Response:
    return httpx.Response(200, json={
        "status": "OK",
        "results": [{
            "formatted_address": formatted,
            "geometry": {"location": {"lat": lat, "lng": lng}},
        }],
    })


def google_status(status: str, error_message: str = None) -> httpx.Response:
    payload = {"status": status, "results": []}
    if error_message:
        payload["error_message"] = error_message
    return httpx.Response(200, json=payload)


def nominatim_hit(lat: float, lng: float, display_name: str) -> httpx.Response:
    return httpx.Response(200, json=[{"lat": str(lat), "lon": str(lng), "display_name": display_name}])


def nominatim_empty() -> httpx.Response:
    return httpx.Response(200, json=[])


def gql_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


def point_at_km(km: float, formatted: str = "") -> GeoPoint:
    """A point due north of (0, 0) at ``km`` great-circle kilometers."""
    return GeoPoint(lat=math.degrees(km / EARTH_RADIUS_KM), lng=0.0, formatted=formatted)


def location_node(location_id: str, name: str, is_active: bool = True, **address) -> dict:
    return {
        "id": location_id,
        "name": name,
        "isActive": is_active,
        "fulfillsOnlineOrders": True,
        "address": {
            "address1": address.get("address1"),
            "address2": address.get("address2"),
            "city": address.get("city"),
            "province": address.get("province"),
            "country": address.get("country"),
            "zip": address.get("zip"),
        },
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        GOOGLE_MAPS_API_KEY="test-key",
        GEOCODER_MODE="auto",
        SHOP_ACCESS_TOKENS={SHOP: ACCESS_TOKEN},
    )


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cache(settings, clock) -> CacheService:
    return CacheService.from_settings(settings, now=clock)
