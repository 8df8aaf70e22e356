"""
Reverse geocoding (lat/lon -> place name) against Nominatim.

Lookups are bounded by a timeout, guarded by a circuit breaker and cached
in Redis by rounded coordinates. Every failure surfaces as
UpstreamDependencyError so callers can degrade to a null name.
"""

import logging
from typing import Any, Dict, Optional

import httpx
import redis.asyncio as redis

import backend.app.core.redis_client as redis_client_module
from backend.app.core.config import settings
from backend.app.core.exceptions import UpstreamDependencyError
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError, geocoder_circuit_breaker

logger = logging.getLogger("tracker.geocoder")

CACHE_PREFIX = "geocode:"
# Cached marker for "the service answered but had no name"
NO_NAME = ""

ADDRESS_KEYS = ("city", "town", "village", "state")


def coord_key(lat: float, lon: float, precision: int) -> str:
    """Stable cache key from rounded coordinates (precision 4 is ~11 m)."""
    return f"{round(lat, precision):.{precision}f},{round(lon, precision):.{precision}f}"


def extract_place_name(payload: Dict[str, Any]) -> Optional[str]:
    """Most specific settlement name, falling back to the display name."""
    address = payload.get("address") or {}
    for key in ADDRESS_KEYS:
        if isinstance(address.get(key), str) and address[key]:
            return address[key]
    display_name = payload.get("display_name")
    return display_name if isinstance(display_name, str) and display_name else None


class NominatimGeocoder:
    """Reverse geocoder backed by the Nominatim /reverse endpoint."""

    def __init__(
        self,
        cache: Optional[redis.Redis] = None,
        breaker: CircuitBreaker = geocoder_circuit_breaker,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = settings.geocoder_base_url,
        timeout: float = settings.geocoder_timeout_seconds,
    ):
        self.cache = cache
        self.breaker = breaker
        self.transport = transport
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def reverse(self, latitude: float, longitude: float) -> Optional[str]:
        """
        Look up a place name for a coordinate pair.
        
        Returns:
            Place name, or None when the service knows no name for the spot
        
        Raises:
            UpstreamDependencyError: network error, timeout, bad response or open circuit
        """
        key = CACHE_PREFIX + coord_key(latitude, longitude, settings.geocoder_cache_precision)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached or None
        
        try:
            name = await self.breaker.call(self._fetch, latitude, longitude)
        except CircuitOpenError as exc:
            raise UpstreamDependencyError("Reverse geocoder circuit is open") from exc
        except httpx.HTTPError as exc:
            raise UpstreamDependencyError(
                f"Reverse geocoding request failed: {exc}",
                details={"latitude": latitude, "longitude": longitude},
            ) from exc
        except ValueError as exc:
            raise UpstreamDependencyError("Reverse geocoder returned malformed JSON") from exc
        except (TypeError, AttributeError, KeyError) as exc:
            raise UpstreamDependencyError("Reverse geocoder returned an unexpected payload") from exc
        
        await self._cache_set(key, name if name is not None else NO_NAME)
        return name

    async def _fetch(self, latitude: float, longitude: float) -> Optional[str]:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"User-Agent": settings.geocoder_user_agent},
        ) as client:
            response = await client.get(
                "/reverse",
                params={"format": "json", "lat": latitude, "lon": longitude},
            )
            response.raise_for_status()
            payload = response.json()
        
        if not isinstance(payload, dict) or "error" in payload:
            return None
        if not isinstance(payload.get("address") or {}, dict):
            raise TypeError(f"address must be an object, got {type(payload['address']).__name__}")
        return extract_place_name(payload)

    async def _cache_get(self, key: str) -> Optional[str]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(key)
        except redis.RedisError as exc:
            logger.warning("Geocode cache read failed for %s: %s", key, exc)
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(key, value, ex=settings.geocoder_cache_ttl_seconds)
        except redis.RedisError as exc:
            logger.warning("Geocode cache write failed for %s: %s", key, exc)


async def get_geocoder() -> NominatimGeocoder:
    """FastAPI dependency returning the shared reverse geocoder."""
    return NominatimGeocoder(cache=redis_client_module.redis_client)
