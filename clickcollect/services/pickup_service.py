"""
Pickup Service.

Resolves a customer pincode into nearby click & collect locations:
1. Validate and geocode the pincode
2. Load the shop's active locations (cache-first)
3. Optionally load live stock for a variant
4. Geocode every location concurrently (cache-first, zip fallback)
5. Compute distances, join stock, split by radius, sort by distance

Locations that cannot be geocoded are left out of the response.
"""
import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from clickcollect.core.errors import AppError, InvalidPincodeError, PincodeRequiredError
from clickcollect.schemas.pickup import (
    GEOCODE_FAILED,
    Coordinates,
    FulfillmentLocation,
    GeocodedInput,
    GeoPoint,
    InventoryStatus,
    PickupAddress,
    PickupInput,
    PickupLocation,
    PickupResult,
)
from clickcollect.services.cache_service import CacheService
from clickcollect.services.distance import haversine_km, number_or
from clickcollect.services.geocoding_service import GeocodingService
from clickcollect.services.shopify_service import ShopifyLocationService

logger = logging.getLogger(__name__)

PINCODE_PATTERN = re.compile(r"[0-9]{4}|[0-9]{6}")
FALLBACK_RADIUS_KM = 100.0


def validate_pincode(pincode: Any) -> str:
    """Return the trimmed pincode, or raise if it isn't 4 or 6 digits."""
    if pincode is None or pincode == "":
        raise PincodeRequiredError()
    trimmed = str(pincode).strip()
    if not PINCODE_PATTERN.fullmatch(trimmed):
        raise InvalidPincodeError(pincode)
    return trimmed


def resolve_radius(radius_km: Any, default_radius_km: Any = None) -> float:
    """Explicit radius, else the configured default, else 100 km."""
    return number_or(radius_km, number_or(default_radius_km, FALLBACK_RADIUS_KM))


class PickupService:
    """
    Usage:
        service = PickupService(geocoder, location_service, cache, settings.DEFAULT_RADIUS_KM)
        result = await service.resolve_pickup("110001", variant_id="4242", radius_km=50)
    """

    def __init__(
        self,
        geocoder: GeocodingService,
        locations: ShopifyLocationService,
        cache: CacheService,
        default_radius_km: Any = FALLBACK_RADIUS_KM,
    ):
        self.geocoder = geocoder
        self.locations = locations
        self.cache = cache
        self.default_radius_km = default_radius_km

    async def geocode_location(self, location: FulfillmentLocation) -> GeoPoint:
        """
        Coordinates for a store location. Never raises for geocoding failures.

        Tries the full address, then the zip alone. When both fail the
        zero-coordinate GEOCODE_FAILED point is cached and returned so the
        location is skipped without re-querying on every request.
        """
        cached = await self.cache.get_location_geo(location.id)
        if cached is not None:
            return cached

        address = location.address
        point: Optional[GeoPoint] = None
        try:
            point = await self.geocoder.geocode(address.one_line())
        except AppError as e:
            logger.debug(f"Full-address geocode failed for {location.id}: {e.code}")
            if address.zip:
                try:
                    point = await self.geocoder.geocode(address.zip)
                except AppError as zip_error:
                    logger.debug(f"Zip geocode failed for {location.id}: {zip_error.code}")

        if point is None:
            logger.warning(f"Could not geocode location {location.id} ({location.name}); excluding it")
            point = GEOCODE_FAILED

        await self.cache.set_location_geo(location.id, point)
        return point

    async def _load_inventory(self, variant_id: Optional[str]) -> Tuple[Optional[str], Optional[Dict[str, Optional[int]]]]:
        if not variant_id:
            return None, None
        inventory_item_id = await self.locations.resolve_inventory_item(variant_id)
        quantities = await self.locations.quantities_by_location(inventory_item_id)
        return inventory_item_id, quantities

    async def resolve_pickup(
        self,
        pincode: Any,
        variant_id: Optional[str] = None,
        radius_km: Any = None,
        shop: Optional[str] = None,
    ) -> PickupResult:
        """
        Build the pickup response for a pincode.

        Raises:
            PincodeRequiredError / InvalidPincodeError: bad input
            GeocodeNoResultError / GeocodeProviderError: pincode could not be geocoded
            ShopifyGQLError / ShopifyAPIError / InventoryItemNotFoundError: Shopify lookups failed
        """
        pin = validate_pincode(pincode)
        radius = resolve_radius(radius_km, self.default_radius_km)

        origin = await self.geocoder.geocode(pin)
        locations = await self.locations.list_active_locations(shop)

        (inventory_item_id, quantities), points = await asyncio.gather(
            self._load_inventory(variant_id),
            asyncio.gather(*(self.geocode_location(loc) for loc in locations)),
        )

        enriched: List[PickupLocation] = []
        for location, point in zip(locations, points):
            if point.is_unresolved:
                continue
            enriched.append(self._enrich(location, point, origin, quantities))

        in_radius = sorted((e for e in enriched if e.distance_km <= radius), key=lambda e: e.distance_km)
        out_of_radius = sorted((e for e in enriched if e.distance_km > radius), key=lambda e: e.distance_km)

        logger.info(
            f"Pickup for {pin} (radius {radius}km): {len(in_radius)} in radius, "
            f"{len(out_of_radius)} outside, {len(locations) - len(enriched)} not geocoded"
        )

        return PickupResult(
            input=PickupInput(
                pincode=pin,
                geocoded=GeocodedInput(lat=origin.lat, lng=origin.lng, address=origin.formatted),
                radius_km=radius,
                variant_id=variant_id or None,
                inventory_item_id=inventory_item_id,
            ),
            in_radius=in_radius,
            out_of_radius=out_of_radius,
        )

    @staticmethod
    def _enrich(
        location: FulfillmentLocation,
        point: GeoPoint,
        origin: GeoPoint,
        quantities: Optional[Dict[str, Optional[int]]],
    ) -> PickupLocation:
        available = quantities.get(location.id) if quantities is not None else None
        return PickupLocation(
            location_id=location.id,
            name=location.name,
            address=PickupAddress(**location.address.model_dump(), formatted=point.formatted),
            coordinates=Coordinates(lat=point.lat, lng=point.lng),
            distance_km=round(haversine_km(origin, point), 2),
            available=available,
            status=InventoryStatus.from_quantity(available),
        )
