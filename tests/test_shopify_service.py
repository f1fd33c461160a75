import httpx
import pytest

from clickcollect.core.errors import (
    AuthMissingError,
    InventoryItemNotFoundError,
    ShopifyAPIError,
    ShopifyGQLError,
)
from clickcollect.schemas.pickup import FulfillmentLocation
from clickcollect.services.shopify_service import (
    ShopifyLocationService,
    make_shopify_gql_client,
    to_variant_gid,
)
from tests.conftest import ACCESS_TOKEN, SHOP, RecordingTransport, gql_body, location_node


def locations_page(nodes, has_next):
    return httpx.Response(200, json={"data": {"locations": {
        "edges": [{"cursor": f"cursor-{n['id'][-1]}", "node": n} for n in nodes],
        "pageInfo": {"hasNextPage": has_next},
    }}})


@pytest.fixture
def make_service(settings, cache):
    def factory(handler):
        transport = RecordingTransport(handler)
        gql = make_shopify_gql_client(SHOP, ACCESS_TOKEN, settings=settings, transport=transport)
        return ShopifyLocationService(gql, cache), transport
    return factory


class TestClientFactory:

    @pytest.mark.parametrize("shop,token", [(SHOP, None), (None, ACCESS_TOKEN), ("", "")])
    def test_missing_credentials(self, shop, token):
        with pytest.raises(AuthMissingError) as exc_info:
            make_shopify_gql_client(shop, token)
        assert exc_info.value.status == 401
        assert exc_info.value.code == "shopify_auth_missing"

    def test_endpoint_uses_api_version(self, settings):
        gql = make_shopify_gql_client(SHOP, ACCESS_TOKEN, settings=settings)
        assert gql.endpoint == "https://example.myshopify.com/admin/api/2024-07/graphql.json"
        assert gql.timeout == 20.0

    @pytest.mark.parametrize("value,expected", [
        ("4242", "gid://shopify/ProductVariant/4242"),
        (4242, "gid://shopify/ProductVariant/4242"),
        ("gid://shopify/ProductVariant/99", "gid://shopify/ProductVariant/99"),
    ])
    def test_variant_gid_normalization(self, value, expected):
        assert to_variant_gid(value) == expected


class TestListActiveLocations:

    @pytest.mark.asyncio
    async def test_pages_until_no_next_page(self, make_service):
        pages = [
            locations_page([
                location_node("gid://shopify/Location/1", "Connaught Place", city="New Delhi", zip="110001"),
                location_node("gid://shopify/Location/2", "Closed Store", is_active=False),
            ], has_next=True),
            locations_page([
                location_node("gid://shopify/Location/3", "Bandra", city="Mumbai", zip="400050"),
            ], has_next=False),
        ]
        service, transport = make_service(lambda r: pages.pop(0))

        locations = await service.list_active_locations(SHOP)

        assert [loc.id for loc in locations] == ["gid://shopify/Location/1", "gid://shopify/Location/3"]
        assert all(isinstance(loc, FulfillmentLocation) for loc in locations)
        assert locations[0].address.zip == "110001"

        first, second = (gql_body(r)["variables"] for r in transport.requests)
        assert first == {"first": 100, "after": None}
        assert second == {"first": 100, "after": "cursor-2"}
        assert transport.requests[0].headers["X-Shopify-Access-Token"] == ACCESS_TOKEN

    @pytest.mark.asyncio
    async def test_keeps_locations_that_do_not_fulfill_online_orders(self, make_service):
        node = location_node("gid://shopify/Location/7", "Warehouse")
        node["fulfillsOnlineOrders"] = False
        service, _ = make_service(lambda r: locations_page([node], has_next=False))

        locations = await service.list_active_locations(SHOP)
        assert len(locations) == 1
        assert locations[0].fulfills_online_orders is False

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, make_service):
        service, transport = make_service(
            lambda r: locations_page([location_node("gid://shopify/Location/1", "A")], has_next=False)
        )

        first = await service.list_active_locations(SHOP)
        second = await service.list_active_locations(SHOP)

        assert first == second
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_stops_when_page_has_no_edges(self, make_service):
        service, transport = make_service(lambda r: locations_page([], has_next=True))

        assert await service.list_active_locations(SHOP) == []
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_graphql_errors_fail_the_whole_call(self, make_service, cache):
        service, _ = make_service(lambda r: httpx.Response(200, json={
            "errors": [{"message": "Throttled"}, {"message": "Access denied for locations field."}],
        }))

        with pytest.raises(ShopifyGQLError) as exc_info:
            await service.list_active_locations(SHOP)

        assert exc_info.value.status == 502
        assert exc_info.value.meta["messages"] == ["Throttled", "Access denied for locations field."]
        assert await cache.get_locations(SHOP) is None

    @pytest.mark.asyncio
    async def test_non_2xx_is_an_api_error(self, make_service):
        service, _ = make_service(lambda r: httpx.Response(401, text="Invalid API key or access token"))

        with pytest.raises(ShopifyAPIError) as exc_info:
            await service.list_active_locations(SHOP)
        assert exc_info.value.meta["status_code"] == 401

    @pytest.mark.asyncio
    async def test_timeout_is_an_api_error(self, make_service):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        service, _ = make_service(handler)
        with pytest.raises(ShopifyAPIError) as exc_info:
            await service.list_active_locations(SHOP)
        assert exc_info.value.meta["reason"] == "timeout"


class TestInventory:

    @pytest.mark.asyncio
    async def test_resolve_inventory_item_normalizes_variant_id(self, make_service):
        service, transport = make_service(lambda r: httpx.Response(200, json={"data": {
            "productVariant": {
                "id": "gid://shopify/ProductVariant/4242",
                "inventoryItem": {"id": "gid://shopify/InventoryItem/77"},
            },
        }}))

        assert await service.resolve_inventory_item("4242") == "gid://shopify/InventoryItem/77"
        assert gql_body(transport.requests[0])["variables"] == {"id": "gid://shopify/ProductVariant/4242"}

    @pytest.mark.asyncio
    async def test_missing_inventory_item(self, make_service):
        service, _ = make_service(lambda r: httpx.Response(200, json={"data": {"productVariant": None}}))

        with pytest.raises(InventoryItemNotFoundError) as exc_info:
            await service.resolve_inventory_item("gid://shopify/ProductVariant/1")
        assert exc_info.value.status == 404
        assert exc_info.value.code == "inventory_item_missing"

    @pytest.mark.asyncio
    async def test_quantities_by_location(self, make_service):
        service, transport = make_service(lambda r: httpx.Response(200, json={"data": {"inventoryItem": {
            "id": "gid://shopify/InventoryItem/77",
            "inventoryLevels": {"edges": [
                {"node": {
                    "quantities": [{"name": "available", "quantity": 5}],
                    "location": {"id": "gid://shopify/Location/1", "name": "A"},
                }},
                {"node": {
                    "quantities": [],
                    "location": {"id": "gid://shopify/Location/2", "name": "B"},
                }},
                {"node": {
                    "quantities": [{"name": "available", "quantity": -2}],
                    "location": {"id": "gid://shopify/Location/3", "name": "C"},
                }},
                {"node": {
                    "quantities": [{"name": "available", "quantity": None}],
                    "location": {"id": "gid://shopify/Location/4", "name": "D"},
                }},
            ]},
        }}}))

        quantities = await service.quantities_by_location("gid://shopify/InventoryItem/77")

        assert quantities == {
            "gid://shopify/Location/1": 5,
            "gid://shopify/Location/2": 0,
            "gid://shopify/Location/3": -2,
            "gid://shopify/Location/4": None,
        }
        assert gql_body(transport.requests[0])["variables"] == {
            "id": "gid://shopify/InventoryItem/77",
            "first": 250,
        }
