"""
Pickup API Endpoints.

Covers:
1. Pickup location search for a pincode (storefront widget)
2. Active location listing for a shop (setup/debug)
"""
from typing import Optional

from fastapi import APIRouter, Query

from clickcollect.api.deps import (
    CacheDep,
    GeocoderDep,
    SessionStoreDep,
    SettingsDep,
    ShopifyTransportDep,
    build_shop_client,
)
from clickcollect.schemas.pickup import (
    ErrorResponse,
    LocationsResponse,
    PickupRequest,
    PickupResponse,
)
from clickcollect.services.pickup_service import PickupService
from clickcollect.services.shopify_service import ShopifyLocationService

router = APIRouter(tags=["Pickup"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid pincode or shop domain"},
    403: {"model": ErrorResponse, "description": "No session for the shop"},
    404: {"model": ErrorResponse, "description": "No inventory item for the variant"},
    422: {"model": ErrorResponse, "description": "Pincode could not be geocoded"},
    502: {"model": ErrorResponse, "description": "Geocoder or Shopify failure"},
}


def _location_service(gql, cache, settings) -> ShopifyLocationService:
    return ShopifyLocationService(
        gql,
        cache,
        page_size=settings.SHOPIFY_LOCATIONS_PAGE_SIZE,
        levels_limit=settings.SHOPIFY_INVENTORY_LEVELS_LIMIT,
    )


@router.post(
    "/pickup",
    response_model=PickupResponse,
    responses=ERROR_RESPONSES,
    summary="Find pickup locations near a pincode",
)
async def find_pickup_locations(
    body: PickupRequest,
    settings: SettingsDep,
    cache: CacheDep,
    geocoder: GeocoderDep,
    store: SessionStoreDep,
    transport: ShopifyTransportDep,
):
    """
    Geocode the pincode, then rank the shop's active locations by distance.

    Locations within ``radiusKm`` are returned in ``inRadius``, the rest in
    ``outOfRadius``, both nearest first. With a ``variantId`` each location
    carries its available quantity and an instock/outofstock/unknown status.

    Example:
        POST /api/pickup
        {"myShopifyDomain": "example.myshopify.com", "pincode": "110001", "radiusKm": 50}
    """
    gql = await build_shop_client(body.my_shopify_domain, store, settings, transport)
    service = PickupService(
        geocoder,
        _location_service(gql, cache, settings),
        cache,
        default_radius_km=settings.DEFAULT_RADIUS_KM,
    )
    result = await service.resolve_pickup(
        body.pincode,
        variant_id=body.variant_id,
        radius_km=body.radius_km,
        shop=gql.shop,
    )
    return PickupResponse(**result.model_dump())


@router.get(
    "/locations",
    response_model=LocationsResponse,
    responses=ERROR_RESPONSES,
    summary="List active locations for a shop",
)
async def list_locations(
    settings: SettingsDep,
    cache: CacheDep,
    store: SessionStoreDep,
    transport: ShopifyTransportDep,
    shop_domain: Optional[str] = Query(None, alias="shopDomain", description="example.myshopify.com"),
):
    """Active Shopify locations for the shop (served from cache when warm)."""
    gql = await build_shop_client(shop_domain, store, settings, transport)
    locations = await _location_service(gql, cache, settings).list_active_locations(gql.shop)
    return LocationsResponse(shop=gql.shop, count=len(locations), locations=locations)
