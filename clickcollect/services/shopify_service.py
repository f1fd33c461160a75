"""
Shopify Admin GraphQL Integration.

Handles:
- Authenticated GraphQL transport bound to one shop
- Paginated active-location listing (cache-first)
- Variant -> inventory item lookup
- Inventory item -> available quantity per location

API Docs: https://shopify.dev/docs/api/admin-graphql
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from clickcollect.config import settings as default_settings, Settings
from clickcollect.core.errors import (
    AuthMissingError,
    InventoryItemNotFoundError,
    ShopifyAPIError,
    ShopifyGQLError,
)
from clickcollect.schemas.pickup import FulfillmentLocation
from clickcollect.services.cache_service import CacheService

logger = logging.getLogger(__name__)

VARIANT_GID_PREFIX = "gid://shopify/ProductVariant/"


LOCATIONS_QUERY = """
query Locations($first: Int!, $after: String) {
  locations(first: $first, after: $after) {
    edges {
      cursor
      node {
        id
        name
        isActive
        fulfillsOnlineOrders
        address { address1 address2 city province country zip }
      }
    }
    pageInfo { hasNextPage }
  }
}
"""

INVENTORY_ITEM_QUERY = """
query InvItem($id: ID!) {
  productVariant(id: $id) { id inventoryItem { id } }
}
"""

INVENTORY_LEVELS_QUERY = """
query Levels($id: ID!, $first: Int!) {
  inventoryItem(id: $id) {
    id
    inventoryLevels(first: $first) {
      edges {
        node {
          quantities(names: "available") { name quantity }
          location { id name }
        }
      }
    }
  }
}
"""


class ShopifyGraphQLClient:
    """
    Admin GraphQL transport for a single shop.

    Usage:
        gql = make_shopify_gql_client(shop, access_token)
        data = await gql.execute(LOCATIONS_QUERY, {"first": 100, "after": None})
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.shop = shop
        self.endpoint = f"https://{shop}/admin/api/{api_version}/graphql.json"
        self.timeout = timeout
        self._headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }
        self._transport = transport

    async def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        POST a GraphQL document and return its ``data`` object.

        Raises:
            ShopifyAPIError: non-2xx response, timeout or unreadable body
            ShopifyGQLError: response carried a non-empty ``errors`` array
        """
        payload = {"query": query, "variables": variables or {}}
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.endpoint, json=payload, headers=self._headers)
        except httpx.TimeoutException:
            raise ShopifyAPIError("timeout", shop=self.shop)
        except httpx.HTTPError as e:
            raise ShopifyAPIError(f"{type(e).__name__}: {e}", shop=self.shop)

        if response.status_code >= 400:
            logger.error(f"Shopify API error for {self.shop}: {response.status_code} - {response.text}")
            raise ShopifyAPIError(
                f"http_status={response.status_code}",
                shop=self.shop,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            raise ShopifyAPIError("invalid JSON response", shop=self.shop)

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            if isinstance(errors, list):
                messages = [str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors]
            else:
                messages = [str(errors)]
            raise ShopifyGQLError(messages)

        return (body.get("data") if isinstance(body, dict) else None) or {}


def make_shopify_gql_client(
    shop: Optional[str],
    access_token: Optional[str],
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ShopifyGraphQLClient:
    """Build a GraphQL client for ``shop``; fails fast without credentials."""
    if not shop or not access_token:
        raise AuthMissingError()
    settings = settings or default_settings
    return ShopifyGraphQLClient(
        shop,
        access_token,
        api_version=settings.SHOPIFY_API_VERSION,
        timeout=settings.SHOPIFY_TIMEOUT,
        transport=transport,
    )


def to_variant_gid(variant_id: Any) -> str:
    """Normalize a numeric/string variant id to its global id form."""
    value = str(variant_id).strip()
    if value.startswith("gid://"):
        return value
    return f"{VARIANT_GID_PREFIX}{value}"


class ShopifyLocationService:
    """
    Fulfillment locations and per-location stock for one shop.

    Location lists are cached per shop; inventory is always fetched live.
    """

    def __init__(
        self,
        gql: ShopifyGraphQLClient,
        cache: CacheService,
        page_size: int = 100,
        levels_limit: int = 250,
    ):
        self.gql = gql
        self.cache = cache
        self.page_size = page_size
        self.levels_limit = levels_limit

    async def list_active_locations(self, shop: Optional[str] = None) -> List[FulfillmentLocation]:
        """
        All active locations for the shop, cache-first.

        Pages through ``locations`` with cursor pagination until
        ``hasNextPage`` is false. Online-order fulfillment is not used as a
        filter: every active location is returned.
        """
        shop = shop or self.gql.shop
        cached = await self.cache.get_locations(shop)
        if cached is not None:
            logger.debug(f"Locations cache HIT: {shop}")
            return cached

        locations: List[FulfillmentLocation] = []
        cursor: Optional[str] = None
        has_next = True
        pages = 0

        while has_next:
            data = await self.gql.execute(
                LOCATIONS_QUERY,
                {"first": self.page_size, "after": cursor},
            )
            connection = data.get("locations") or {}
            edges = connection.get("edges") or []
            pages += 1

            for edge in edges:
                node = edge.get("node") or {}
                # TODO: filter on fulfillsOnlineOrders once product confirms store-only locations should be hidden
                if node.get("isActive"):
                    locations.append(FulfillmentLocation.model_validate(node))

            has_next = bool((connection.get("pageInfo") or {}).get("hasNextPage"))
            if not edges:
                break
            cursor = edges[-1].get("cursor")

        logger.info(f"Fetched {len(locations)} active locations for {shop} in {pages} page(s)")
        await self.cache.set_locations(shop, locations)
        return locations

    async def resolve_inventory_item(self, variant_id: Any) -> str:
        """Inventory item gid for a variant id or variant gid."""
        gid = to_variant_gid(variant_id)
        data = await self.gql.execute(INVENTORY_ITEM_QUERY, {"id": gid})

        variant = data.get("productVariant") or {}
        inventory_item_id = (variant.get("inventoryItem") or {}).get("id")
        if not inventory_item_id:
            raise InventoryItemNotFoundError(variant_id)
        return inventory_item_id

    async def quantities_by_location(self, inventory_item_id: str) -> Dict[str, Optional[int]]:
        """
        Available quantity per location id.

        Single page of up to ``levels_limit`` levels. A level without an
        "available" entry counts as 0; an entry with a null quantity stays
        None so the location reads as unknown.
        """
        data = await self.gql.execute(
            INVENTORY_LEVELS_QUERY,
            {"id": inventory_item_id, "first": self.levels_limit},
        )
        levels = ((data.get("inventoryItem") or {}).get("inventoryLevels") or {}).get("edges") or []

        quantities: Dict[str, Optional[int]] = {}
        for edge in levels:
            node = edge.get("node") or {}
            location_id = (node.get("location") or {}).get("id")
            if not location_id:
                continue
            entry = next(
                (q for q in node.get("quantities") or [] if q.get("name") == "available"),
                None,
            )
            if entry is None:
                quantities[location_id] = 0
            else:
                quantity = entry.get("quantity")
                quantities[location_id] = int(quantity) if quantity is not None else None
        return quantities
