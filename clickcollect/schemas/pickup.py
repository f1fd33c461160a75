"""
Pickup Schemas.

Covers:
1. GeoPoint - a geocoded coordinate with its display address
2. FulfillmentLocation - Shopify location snapshot
3. PickupLocation / PickupResult - resolver output
4. API request/response envelopes
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clickcollect.schemas.base import CamelSchema, CamelRequestSchema


# ==================== Enums ====================

class InventoryStatus(str, Enum):
    INSTOCK = "instock"
    OUTOFSTOCK = "outofstock"
    UNKNOWN = "unknown"

    @classmethod
    def from_quantity(cls, quantity: Optional[int]) -> "InventoryStatus":
        if quantity is None:
            return cls.UNKNOWN
        return cls.INSTOCK if quantity > 0 else cls.OUTOFSTOCK


# ==================== Geocoding ====================

class GeoPoint(BaseModel):
    """Geocoded coordinate. Immutable so it can be shared from the caches."""
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    formatted: str = ""

    @property
    def is_unresolved(self) -> bool:
        """True for the zero-coordinate placeholder stored when geocoding fails."""
        return self.lat == 0 and self.lng == 0


GEOCODE_FAILED = GeoPoint(lat=0, lng=0, formatted="Geocode failed")


class Coordinates(BaseModel):
    lat: float
    lng: float


class GeocodedInput(BaseModel):
    """Customer's geocoded pincode, as echoed back in the response."""
    lat: float
    lng: float
    address: str


# ==================== Shopify Locations ====================

class PostalAddress(CamelSchema):
    """Shopify location address. Every part may be missing."""
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    zip: Optional[str] = None

    def one_line(self) -> str:
        """Non-empty parts joined with commas, street first, zip last."""
        parts = [self.address1, self.address2, self.city, self.province, self.country, self.zip]
        return ", ".join(p for p in parts if p)


class FulfillmentLocation(CamelSchema):
    """Read-only snapshot of a Shopify location node."""
    id: str
    name: str
    is_active: bool = True
    fulfills_online_orders: bool = False
    address: PostalAddress = Field(default_factory=PostalAddress)

    @field_validator('address', mode='before')
    @classmethod
    def default_address(cls, v):
        return v or {}


class PickupAddress(PostalAddress):
    """Location address with the geocoder's formatted string merged in."""
    formatted: Optional[str] = None


# ==================== Resolver Output ====================

class PickupLocation(CamelSchema):
    """A pickup location enriched with distance and stock status."""
    location_id: str
    name: str
    address: PickupAddress
    coordinates: Coordinates
    distance_km: float
    available: Optional[int] = None
    status: InventoryStatus = InventoryStatus.UNKNOWN


class PickupInput(CamelSchema):
    pincode: str
    geocoded: GeocodedInput
    radius_km: float
    variant_id: Optional[str] = None
    inventory_item_id: Optional[str] = None


class PickupResult(CamelSchema):
    input: PickupInput
    in_radius: List[PickupLocation] = Field(default_factory=list)
    out_of_radius: List[PickupLocation] = Field(default_factory=list)


# ==================== API Envelopes ====================

class PickupRequest(CamelRequestSchema):
    """POST /api/pickup body sent by the storefront widget."""
    # Checked by validate_shop_domain / resolve_radius, not by the schema
    my_shopify_domain: Any = None
    pincode: Optional[str] = None
    variant_id: Optional[str] = None
    radius_km: Any = None

    @field_validator('pincode', 'variant_id', mode='before')
    @classmethod
    def stringify_ids(cls, v):
        # Widgets send numeric pincodes and variant ids unquoted
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)


class PickupResponse(PickupResult):
    success: bool = True


class LocationsResponse(CamelSchema):
    success: bool = True
    shop: str
    count: int
    locations: List[FulfillmentLocation]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
