"""
Geocoding Service - Google Geocoding with OpenStreetMap Nominatim fallback.

Resolves a pincode or free-text address to a GeoPoint by walking an
ordered list of strategies and stopping at the first match:

1. Google Geocoding (postal_code + country components for numeric codes,
   freeform address with a region hint otherwise)
2. Nominatim structured postal-code search (numeric codes only)
3. Nominatim freeform search

Numeric codes pick their country from POSTCODE_COUNTRY_HINTS by digit
count. GEOCODER_MODE narrows the chain to one provider; in primary-only
mode a Google failure is raised instead of falling through.

Successful results are cached by trimmed query; failures never are.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from clickcollect.config import Settings
from clickcollect.core.errors import GeocodeNoResultError, GeocodeProviderError
from clickcollect.schemas.pickup import GeoPoint
from clickcollect.services.cache_service import CacheService

logger = logging.getLogger(__name__)


class GeocoderMode(str, Enum):
    AUTO = "auto"
    PRIMARY_ONLY = "primary-only"
    SECONDARY_ONLY = "secondary-only"

    @classmethod
    def parse(cls, value: Optional[str]) -> "GeocoderMode":
        """Parse a mode setting; ``google``/``osm`` are legacy aliases."""
        normalized = (value or "auto").strip().lower()
        aliases = {"google": cls.PRIMARY_ONLY, "osm": cls.SECONDARY_ONLY}
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            logger.warning(f"Unknown GEOCODER_MODE '{value}', using auto")
            return cls.AUTO


@dataclass(frozen=True)
class CountryHint:
    code: str
    name: str


# Digit count of a numeric postcode -> country it is assumed to belong to
POSTCODE_COUNTRY_HINTS: Dict[int, CountryHint] = {
    6: CountryHint(code="IN", name="India"),
    4: CountryHint(code="AU", name="Australia"),
}

_NUMERIC_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class QueryClassification:
    query: str
    country: Optional[CountryHint] = None

    @property
    def is_postcode(self) -> bool:
        return self.country is not None


def classify_query(query: str) -> QueryClassification:
    """Classify a trimmed query as a known-length numeric postcode or freeform text."""
    if _NUMERIC_RE.fullmatch(query):
        return QueryClassification(query=query, country=POSTCODE_COUNTRY_HINTS.get(len(query)))
    return QueryClassification(query=query)


class _HttpGeocoder:
    """Shared GET + JSON decoding for the geocoding providers."""

    name = "geocoder"

    def __init__(
        self,
        timeout: float,
        headers: Dict[str, str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.headers = headers
        self._transport = transport

    async def _get_json(self, url: str, params: Dict[str, Any], query: str) -> Any:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.get(url, params=params, headers=self.headers)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException:
            raise GeocodeProviderError(self.name, "timeout", query=query)
        except httpx.HTTPStatusError as e:
            raise GeocodeProviderError(
                self.name, f"http_status={e.response.status_code}", query=query
            )
        except httpx.HTTPError as e:
            raise GeocodeProviderError(self.name, f"{type(e).__name__}: {e}", query=query)
        except ValueError:
            raise GeocodeProviderError(self.name, "invalid JSON response", query=query)


class GoogleGeocoder(_HttpGeocoder):
    """Primary provider: Google Geocoding API."""

    name = "google"

    def __init__(
        self,
        api_key: str,
        url: str,
        region_hint: str = "in",
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout, headers or {}, transport)
        self.api_key = api_key
        self.url = url
        self.region_hint = region_hint

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_params(self, classification: QueryClassification) -> Dict[str, str]:
        if classification.is_postcode:
            return {
                "key": self.api_key,
                "components": f"postal_code:{classification.query}|country:{classification.country.code}",
            }
        return {"key": self.api_key, "address": classification.query, "region": self.region_hint}

    async def lookup(self, classification: QueryClassification) -> GeoPoint:
        """Raises GeocodeProviderError on anything other than an OK match."""
        query = classification.query
        if not self.is_configured:
            raise GeocodeProviderError(self.name, "GOOGLE_MAPS_API_KEY not configured", query=query)

        data = await self._get_json(self.url, self.build_params(classification), query)
        status = data.get("status") if isinstance(data, dict) else None
        results = data.get("results") if isinstance(data, dict) else None

        if status == "OK" and results:
            try:
                first = results[0]
                location = first["geometry"]["location"]
                return GeoPoint(
                    lat=float(location["lat"]),
                    lng=float(location["lng"]),
                    formatted=first.get("formatted_address") or "",
                )
            except (KeyError, IndexError, TypeError, ValueError):
                raise GeocodeProviderError(self.name, "malformed result", query=query)

        message = data.get("error_message") if isinstance(data, dict) else None
        reason = f"status={status}" + (f" - {message}" if message else "")
        raise GeocodeProviderError(self.name, reason, query=query)


class NominatimGeocoder(_HttpGeocoder):
    """Secondary provider: OpenStreetMap Nominatim search."""

    name = "osm"

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout, headers or {}, transport)
        self.url = url

    @staticmethod
    def _base_params() -> Dict[str, Any]:
        return {"format": "jsonv2", "addressdetails": 1, "limit": 1}

    def build_postcode_params(self, classification: QueryClassification) -> Dict[str, Any]:
        return {
            "postalcode": classification.query,
            "country": classification.country.name,
            **self._base_params(),
        }

    def build_search_params(self, classification: QueryClassification) -> Dict[str, Any]:
        if classification.is_postcode:
            country = classification.country
            return {
                "q": f"{classification.query}, {country.name}",
                "countrycodes": country.code.lower(),
                **self._base_params(),
            }
        return {"q": classification.query, **self._base_params()}

    async def lookup_postcode(self, classification: QueryClassification) -> Optional[GeoPoint]:
        """Structured postal-code search. None when nothing matches."""
        data = await self._get_json(self.url, self.build_postcode_params(classification), classification.query)
        return self._first_candidate(data, classification.query)

    async def search(self, classification: QueryClassification) -> Optional[GeoPoint]:
        """Freeform search. None when nothing matches."""
        data = await self._get_json(self.url, self.build_search_params(classification), classification.query)
        return self._first_candidate(data, classification.query)

    def _first_candidate(self, data: Any, query: str) -> Optional[GeoPoint]:
        if not isinstance(data, list) or not data:
            return None
        candidate = data[0]
        try:
            return GeoPoint(
                lat=float(candidate["lat"]),
                lng=float(candidate["lon"]),
                formatted=candidate.get("display_name") or "",
            )
        except (KeyError, TypeError, ValueError):
            raise GeocodeProviderError(self.name, "malformed result", query=query)


@dataclass
class GeocodeStrategy:
    """One step of the fallback chain.

    ``run`` returns a GeoPoint, None for "no match", or raises
    GeocodeProviderError. Errors from an ``exclusive`` step are re-raised.
    """
    name: str
    run: Callable[[], Awaitable[Optional[GeoPoint]]]
    exclusive: bool = False


class GeocodingService:
    """
    Cache-first geocoder with a provider fallback chain.

    Usage:
        service = GeocodingService.from_settings(settings, cache)
        point = await service.geocode("110001")
    """

    def __init__(
        self,
        cache: CacheService,
        primary: GoogleGeocoder,
        secondary: NominatimGeocoder,
        mode: GeocoderMode = GeocoderMode.AUTO,
    ):
        self.cache = cache
        self.primary = primary
        self.secondary = secondary
        self.mode = mode

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: CacheService,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GeocodingService":
        user_agent = {"User-Agent": settings.GEOCODER_USER_AGENT}
        primary = GoogleGeocoder(
            api_key=settings.GOOGLE_MAPS_API_KEY,
            url=settings.GOOGLE_GEOCODE_URL,
            region_hint=settings.GOOGLE_REGION_HINT,
            timeout=settings.GEOCODER_TIMEOUT,
            headers=user_agent,
            transport=transport,
        )
        secondary = NominatimGeocoder(
            url=settings.NOMINATIM_URL,
            timeout=settings.GEOCODER_TIMEOUT,
            headers={**user_agent, "Accept-Language": settings.GEOCODER_ACCEPT_LANGUAGE},
            transport=transport,
        )
        return cls(cache, primary, secondary, GeocoderMode.parse(settings.GEOCODER_MODE))

    def strategies(self, classification: QueryClassification) -> List[GeocodeStrategy]:
        """Ordered fallback chain for a classified query under the current mode."""
        chain: List[GeocodeStrategy] = []

        if self.mode == GeocoderMode.PRIMARY_ONLY:
            chain.append(GeocodeStrategy(
                "google",
                lambda: self.primary.lookup(classification),
                exclusive=True,
            ))
            return chain

        if self.mode == GeocoderMode.AUTO:
            if self.primary.is_configured:
                chain.append(GeocodeStrategy("google", lambda: self.primary.lookup(classification)))
            else:
                logger.debug("Google geocoder not configured, skipping to Nominatim")

        if classification.is_postcode:
            chain.append(GeocodeStrategy(
                "osm_postcode",
                lambda: self.secondary.lookup_postcode(classification),
            ))
        chain.append(GeocodeStrategy("osm_search", lambda: self.secondary.search(classification)))
        return chain

    async def geocode(self, query: str) -> GeoPoint:
        """
        Resolve ``query`` to a GeoPoint.

        Raises:
            GeocodeNoResultError: every strategy ran without a match
            GeocodeProviderError: the exclusively-selected provider failed
        """
        original = str(query).strip()

        cached = await self.cache.get_geocode(original)
        if cached is not None:
            logger.debug(f"Geocode cache HIT: {original!r}")
            return cached

        point = await self._run_chain(classify_query(original))
        await self.cache.set_geocode(original, point)
        return point

    async def _run_chain(self, classification: QueryClassification) -> GeoPoint:
        for strategy in self.strategies(classification):
            logger.debug(f"Geocoding {classification.query!r} via {strategy.name}")
            try:
                point = await strategy.run()
            except GeocodeProviderError as e:
                if strategy.exclusive:
                    raise
                logger.warning(
                    f"Geocoder {strategy.name} failed for {classification.query!r}: {e.reason}"
                )
                continue
            if point is not None:
                return point

        raise GeocodeNoResultError(classification.query)
