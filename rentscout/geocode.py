"""Reverse geocoding against a Nominatim-compatible service.

Nominatim's usage policy allows roughly one request per second per client,
so every call in the process goes through one shared RateLimitGate.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from .config.production import GeocodingConfig
from .reliability.errors import GeocodingError

CITY_KEYS = ("city", "town", "village", "municipality", "city_district", "suburb", "neighbourhood", "county")
STATE_KEYS = ("state", "region", "state_district", "province")
REGION_KEYS = ("state", "region")


class RateLimitGate:
    """Process-wide minimum spacing between outbound geocoding calls."""

    def __init__(
        self,
        min_interval_seconds: float = 1.1,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self._lock = asyncio.Lock()

    async def wait(self) -> float:
        """Block until the interval since the previous call has passed; returns seconds waited."""
        async with self._lock:
            waited = 0.0
            if self._last_call is not None:
                remaining = self.min_interval_seconds - (self._clock() - self._last_call)
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last_call = self._clock()
            return waited


_default_gate: Optional[RateLimitGate] = None


def default_gate(min_interval_seconds: float = 1.1) -> RateLimitGate:
    global _default_gate
    if _default_gate is None:
        _default_gate = RateLimitGate(min_interval_seconds)
    return _default_gate


def _first(address: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        value = address.get(key)
        if value:
            return str(value)
    return None


def format_coordinates(lat: float, lng: float) -> str:
    return f"{lat}, {lng}"


class ReverseGeocoder:
    """Turns coordinates into ``"City, State"``.

    Callers must ``await gate.wait()`` before :meth:`resolve`; the resolver
    itself waits on the gate again only before its second, coarser call.
    """

    def __init__(
        self,
        config: Optional[GeocodingConfig] = None,
        gate: Optional[RateLimitGate] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or GeocodingConfig()
        self.gate = gate or default_gate(self.config.min_interval_seconds)
        self._client = client
        self.logger = logger or logging.getLogger("rentscout.geocode")

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": "application/json",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def _lookup(self, lat: float, lng: float, zoom: int) -> Dict[str, Any]:
        params = {
            "format": "json",
            "lat": str(lat),
            "lon": str(lng),
            "zoom": str(zoom),
            "addressdetails": "1",
        }
        try:
            if self._client is not None:
                response = await self._client.get(
                    self.config.base_url, params=params, headers=self.headers, timeout=self.config.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                    response = await client.get(self.config.base_url, params=params, headers=self.headers)
        except httpx.HTTPError as e:
            raise GeocodingError(f"Geocoder request failed: {e}", cause=e)

        if response.status_code in (403, 429):
            raise GeocodingError(f"Geocoder refused request ({response.status_code})", rate_limited=True)
        if response.status_code >= 400:
            raise GeocodingError(f"Geocoder returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise GeocodingError("Geocoder returned invalid JSON", cause=e)
        if not isinstance(payload, dict):
            return {}
        return payload.get("address") or {}

    async def resolve(self, lat: Optional[float], lng: Optional[float]) -> Optional[str]:
        if not lat or not lng:
            return None
        try:
            address = await self._lookup(lat, lng, self.config.detail_zoom)
        except GeocodingError as e:
            if e.rate_limited:
                self.logger.info("🌍 Geocoder rate limited or blocked, using coordinates instead")
            else:
                self.logger.info(f"🌍 Reverse geocoding failed for {lat}, {lng}: {e.message}")
            return None

        city = _first(address, CITY_KEYS)
        state = _first(address, STATE_KEYS)
        if city:
            city = re.sub(r'\s+County$', '', city, flags=re.IGNORECASE)

        if city and state:
            return f"{city}, {state}"
        if city:
            return await self._with_region(lat, lng, city)
        if state:
            return state
        return None

    async def _with_region(self, lat: float, lng: float, city: str) -> str:
        await self.gate.wait()
        try:
            address = await self._lookup(lat, lng, self.config.region_zoom)
        except GeocodingError as e:
            self.logger.debug(f"Second-tier geocoding failed: {e.message}")
            return city
        region = _first(address, REGION_KEYS)
        return f"{city}, {region}" if region else city
