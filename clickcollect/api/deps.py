import logging
import re
from typing import Annotated, Any, Optional

import httpx
from fastapi import Depends, Request

from clickcollect.config import Settings
from clickcollect.core.errors import InvalidShopDomainError, SessionNotFoundError
from clickcollect.services.cache_service import CacheService
from clickcollect.services.geocoding_service import GeocodingService
from clickcollect.services.session_store import SessionStore
from clickcollect.services.shopify_service import ShopifyGraphQLClient, make_shopify_gql_client


logger = logging.getLogger(__name__)

SHOP_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return request.app.state.settings


def get_cache(request: Request) -> CacheService:
    """Process-wide caches built in the app lifespan."""
    return request.app.state.cache


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_geocoding_service(request: Request) -> GeocodingService:
    return request.app.state.geocoder


def get_shopify_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for Shopify calls; None means the real network."""
    return None


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
CacheDep = Annotated[CacheService, Depends(get_cache)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
GeocoderDep = Annotated[GeocodingService, Depends(get_geocoding_service)]
ShopifyTransportDep = Annotated[Optional[httpx.AsyncBaseTransport], Depends(get_shopify_transport)]


def validate_shop_domain(shop: Any) -> str:
    if not shop or not isinstance(shop, str) or not SHOP_DOMAIN_RE.match(shop):
        raise InvalidShopDomainError(shop)
    return shop


async def build_shop_client(
    shop: Any,
    store: SessionStore,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ShopifyGraphQLClient:
    """
    Validate the shop domain, load its access token and build a GraphQL client.

    Raises:
        InvalidShopDomainError: missing or malformed *.myshopify.com domain
        SessionNotFoundError: no access token stored for the shop
    """
    shop = validate_shop_domain(shop)
    access_token = await store.get_access_token(shop)
    if not access_token:
        logger.warning(f"No session found for shop {shop}")
        raise SessionNotFoundError(shop)
    return make_shopify_gql_client(shop, access_token, settings=settings, transport=transport)
