"""
In-Process Cache Service for Geocodes and Shopify Locations.

Three independent caches, each bounded by entry count and entry age:

    geocodes             geo:{query}        1000 entries, 24 hours
    location coordinates loc:{location_id}  2000 entries, 7 days
    location lists       locations:{shop}   200 entries, 30 minutes

Least-recently-used entries are evicted once a cache is full; expired
entries read as a miss even while still resident. Nothing is persisted
beyond the process lifetime.

Usage:
    cache = CacheService.from_settings(settings)

    point = await cache.get_geocode("500001")
    if point is None:
        point = await geocoder.lookup("500001")
        await cache.set_geocode("500001", point)
"""
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Tuple
import asyncio
import logging

from clickcollect.config import Settings
from clickcollect.schemas.pickup import FulfillmentLocation, GeoPoint

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Abstract cache backend interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> bool:
        """Set value in cache."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        pass

    @abstractmethod
    async def clear(self) -> int:
        """Remove every entry."""
        pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LRUTTLCache(CacheBackend):
    """
    Size- and age-bounded in-memory cache.

    Entries share one TTL fixed at construction. Reads refresh recency;
    writes past ``max_items`` evict the least recently used entry.
    """

    def __init__(
        self,
        max_items: int,
        ttl: int,
        name: str = "cache",
        now: Callable[[], datetime] = _utcnow,
    ):
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.name = name
        self.max_items = max_items
        self.ttl = timedelta(seconds=ttl)
        self._now = now
        self._cache: "OrderedDict[str, Tuple[Any, datetime]]" = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._now():
                del self._cache[key]
                return None
            self._cache.move_to_end(key)
            return value

    async def set(self, key: str, value: Any) -> bool:
        async with self._lock:
            self._cache[key] = (value, self._now() + self.ttl)
            self._cache.move_to_end(key)
            while len(self._cache) > self.max_items:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug(f"{self.name}: evicted {evicted}")
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    async def clear(self) -> int:
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    async def cleanup_expired(self) -> int:
        """Remove expired entries. Call periodically to prevent memory bloat."""
        async with self._lock:
            now = self._now()
            expired_keys = [
                k for k, (_, expires_at) in self._cache.items()
                if expires_at <= now
            ]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)


class CacheService:
    """
    Groups the geocode, location-coordinate and location-list caches.

    Cache keys follow the format ``{prefix}:{identifier}``:

        geo:500001
        loc:gid://shopify/Location/123
        locations:example.myshopify.com

    Only successful geocodes are written through ``set_geocode``; callers
    decide what goes into the location-coordinate cache.
    """

    GEOCODE_PREFIX = "geo"
    LOCATION_GEO_PREFIX = "loc"
    LOCATIONS_PREFIX = "locations"

    def __init__(
        self,
        geocodes: CacheBackend,
        location_geocodes: CacheBackend,
        locations: CacheBackend,
    ):
        self.geocodes = geocodes
        self.location_geocodes = location_geocodes
        self.locations = locations

    @classmethod
    def from_settings(cls, settings: Settings, now: Callable[[], datetime] = _utcnow) -> "CacheService":
        service = cls(
            geocodes=LRUTTLCache(
                settings.GEOCODE_CACHE_MAX_ITEMS,
                settings.GEOCODE_CACHE_TTL,
                name="geocodes",
                now=now,
            ),
            location_geocodes=LRUTTLCache(
                settings.LOCATION_GEO_CACHE_MAX_ITEMS,
                settings.LOCATION_GEO_CACHE_TTL,
                name="location_geocodes",
                now=now,
            ),
            locations=LRUTTLCache(
                settings.LOCATIONS_CACHE_MAX_ITEMS,
                settings.LOCATIONS_CACHE_TTL,
                name="locations",
                now=now,
            ),
        )
        logger.info(
            "Cache initialized: "
            f"geocodes={settings.GEOCODE_CACHE_MAX_ITEMS}/{settings.GEOCODE_CACHE_TTL}s, "
            f"location_geocodes={settings.LOCATION_GEO_CACHE_MAX_ITEMS}/{settings.LOCATION_GEO_CACHE_TTL}s, "
            f"locations={settings.LOCATIONS_CACHE_MAX_ITEMS}/{settings.LOCATIONS_CACHE_TTL}s"
        )
        return service

    # ==================== Geocode Cache ====================

    @classmethod
    def geocode_key(cls, query: str) -> str:
        return f"{cls.GEOCODE_PREFIX}:{str(query).strip()}"

    async def get_geocode(self, query: str) -> Optional[GeoPoint]:
        return await self.geocodes.get(self.geocode_key(query))

    async def set_geocode(self, query: str, point: GeoPoint) -> bool:
        return await self.geocodes.set(self.geocode_key(query), point)

    # ==================== Location Coordinate Cache ====================

    @classmethod
    def location_geo_key(cls, location_id: str) -> str:
        return f"{cls.LOCATION_GEO_PREFIX}:{location_id}"

    async def get_location_geo(self, location_id: str) -> Optional[GeoPoint]:
        return await self.location_geocodes.get(self.location_geo_key(location_id))

    async def set_location_geo(self, location_id: str, point: GeoPoint) -> bool:
        return await self.location_geocodes.set(self.location_geo_key(location_id), point)

    # ==================== Location List Cache ====================

    @classmethod
    def locations_key(cls, shop: str) -> str:
        return f"{cls.LOCATIONS_PREFIX}:{shop}"

    async def get_locations(self, shop: str) -> Optional[List[FulfillmentLocation]]:
        return await self.locations.get(self.locations_key(shop))

    async def set_locations(self, shop: str, locations: List[FulfillmentLocation]) -> bool:
        return await self.locations.set(self.locations_key(shop), list(locations))

    # ==================== Bulk ====================

    async def clear(self) -> int:
        count = await self.geocodes.clear()
        count += await self.location_geocodes.clear()
        count += await self.locations.clear()
        return count
