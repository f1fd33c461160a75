from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Dict
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App Settings
    APP_NAME: str = "Click & Collect Pickup API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = ["*"]

    # Primary geocoder (Google Geocoding API)
    GOOGLE_MAPS_API_KEY: str = ""
    GOOGLE_GEOCODE_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"
    GOOGLE_REGION_HINT: str = "in"  # Region bias for freeform addresses

    # Secondary geocoder (OpenStreetMap Nominatim)
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org/search"
    GEOCODER_USER_AGENT: str = "ClickAndCollect/1.0 (contact: dev@example.com)"
    GEOCODER_ACCEPT_LANGUAGE: str = "en-IN,en;q=0.9"
    GEOCODER_TIMEOUT: float = 10.0  # Seconds per geocoding request

    # "auto" | "primary-only" | "secondary-only" ("google" / "osm" also accepted)
    GEOCODER_MODE: str = "auto"

    # Shopify Admin GraphQL
    SHOPIFY_API_VERSION: str = "2024-07"
    SHOPIFY_TIMEOUT: float = 20.0
    SHOPIFY_LOCATIONS_PAGE_SIZE: int = 100
    SHOPIFY_INVENTORY_LEVELS_LIMIT: int = 250

    # Kept as a string so a malformed value degrades to the hardcoded fallback
    DEFAULT_RADIUS_KM: str = "100"

    # In-process caches (max entries / TTL seconds)
    GEOCODE_CACHE_MAX_ITEMS: int = 1000
    GEOCODE_CACHE_TTL: int = 60 * 60 * 24  # 24 hours
    LOCATION_GEO_CACHE_MAX_ITEMS: int = 2000
    LOCATION_GEO_CACHE_TTL: int = 60 * 60 * 24 * 7  # 7 days
    LOCATIONS_CACHE_MAX_ITEMS: int = 200
    LOCATIONS_CACHE_TTL: int = 60 * 30  # 30 minutes

    # Shop domain -> Admin API access token (JSON object)
    SHOP_ACCESS_TOKENS: Dict[str, str] = {}

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
