# Services module
from clickcollect.services.cache_service import CacheService, LRUTTLCache
from clickcollect.services.geocoding_service import GeocodingService, GeocoderMode
from clickcollect.services.shopify_service import (
    ShopifyGraphQLClient,
    ShopifyLocationService,
    make_shopify_gql_client,
)
from clickcollect.services.session_store import SessionStore
from clickcollect.services.pickup_service import PickupService

__all__ = [
    "CacheService",
    "LRUTTLCache",
    "GeocodingService",
    "GeocoderMode",
    "ShopifyGraphQLClient",
    "ShopifyLocationService",
    "make_shopify_gql_client",
    "SessionStore",
    "PickupService",
]
