"""
Error taxonomy for the pickup API.

Every error raised by the services is an AppError carrying a stable
``code``, an HTTP ``status`` and a ``meta`` dict. The API layer renders
them as ``{success: false, error, code, meta}``.

Categories:
    InvalidInputError   - bad or missing request fields (4xx)
    NotFoundError       - no geocode match / no inventory item (4xx)
    ProviderError       - upstream geocoder or Shopify failure (502)
    AuthMissingError    - no credential for the shop (401/403)
"""
from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        message: str,
        code: str = "app_error",
        status: int = 500,
        meta: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.meta = meta or {}


# ==================== Invalid Input ====================

class InvalidInputError(AppError):
    def __init__(self, message: str, code: str = "invalid_input", meta: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status=400, meta=meta)


class PincodeRequiredError(InvalidInputError):
    def __init__(self):
        super().__init__("pincode is required.", code="pincode_required")


class InvalidPincodeError(InvalidInputError):
    def __init__(self, pincode: Any):
        super().__init__(
            "Please enter a valid 4- or 6-digit postcode/pincode.",
            code="invalid_pincode",
            meta={"pincode": pincode},
        )


class InvalidShopDomainError(InvalidInputError):
    def __init__(self, shop: Any):
        super().__init__(
            "Invalid Shopify domain format. Expected example.myshopify.com",
            code="invalid_shop_domain",
            meta={"shop": shop},
        )


# ==================== Not Found ====================

class NotFoundError(AppError):
    def __init__(self, message: str, code: str = "not_found", status: int = 404,
                 meta: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status=status, meta=meta)


class GeocodeNoResultError(NotFoundError):
    """Every geocoding strategy was exhausted without a match."""

    def __init__(self, query: str):
        super().__init__(
            "Pickup not available for this pincode.",
            code="pin_unavailable",
            status=422,
            meta={"query": str(query)},
        )


class InventoryItemNotFoundError(NotFoundError):
    def __init__(self, variant_id: Any):
        super().__init__(
            "InventoryItem not found for this variant",
            code="inventory_item_missing",
            meta={"variantId": variant_id},
        )


# ==================== Provider ====================

class ProviderError(AppError):
    def __init__(self, message: str, code: str = "provider_error", meta: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status=502, meta=meta)


class GeocodeProviderError(ProviderError):
    def __init__(self, provider: str, reason: str, **meta: Any):
        super().__init__(
            f"Geocoding provider error: {provider}",
            code="geocode_provider_error",
            meta={"provider": provider, "reason": reason, **meta},
        )
        self.provider = provider
        self.reason = reason


class ShopifyGQLError(ProviderError):
    """GraphQL response carried an ``errors`` array."""

    def __init__(self, messages: List[str]):
        super().__init__(
            "Shopify GraphQL error.",
            code="shopify_graphql_error",
            meta={"messages": messages},
        )
        self.messages = messages


class ShopifyAPIError(ProviderError):
    """Transport-level Shopify failure (non-2xx, timeout, bad body)."""

    def __init__(self, reason: str, **meta: Any):
        super().__init__(
            "Shopify API request failed.",
            code="shopify_api_error",
            meta={"reason": reason, **meta},
        )


# ==================== Auth ====================

class AuthMissingError(AppError):
    def __init__(self, message: str = "Missing shop or access token for Shopify client."):
        super().__init__(message, code="shopify_auth_missing", status=401)


class SessionNotFoundError(AppError):
    def __init__(self, shop: str):
        super().__init__(
            "No session found. Please authenticate the shop.",
            code="session_not_found",
            status=403,
            meta={"shop": shop},
        )
