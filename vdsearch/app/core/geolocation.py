from __future__ import annotations

import ipaddress
import logging
from typing import Any, Dict, Optional

import httpx  # type: ignore[import-not-found]
from pydantic import ValidationError

from vdsearch.app import config
from vdsearch.app.cache import BaseCacheAdapter, CacheError
from vdsearch.app.schemas.history import UserLocation
from vdsearch.app.schemas.search import Coordinates
from vdsearch.app.utils.query_utils import build_geolocation_cache_key

logger = logging.getLogger(__name__)


def _is_public_ip(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        return ipaddress.ip_address(value).is_global
    except ValueError:
        return False


def merge_location(ip_location: Optional[UserLocation], coordinates: Optional[Coordinates]) -> Optional[UserLocation]:
    """Combine the IP lookup with browser coordinates.

    Browser coordinates take precedence; every other field comes from the IP
    lookup. Returns None when neither source produced anything.
    """

    if coordinates is None:
        return ip_location
    base = ip_location or UserLocation()
    return base.model_copy(update={"latitude": coordinates.latitude, "longitude": coordinates.longitude})


class GeoLocationClient:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache: Optional[BaseCacheAdapter] = None,
        cache_ttl: Optional[int] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.base_url = (base_url or config.GEOLOCATION_API_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else config.GEOLOCATION_TIMEOUT_SECONDS
        self.cache = cache
        self.cache_ttl = cache_ttl or config.GEOLOCATION_CACHE_TTL
        self._client = client

    async def _fetch(self, ip_address: str) -> Optional[Dict[str, Any]]:
        client = self._client
        owns_client = False
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout)
            owns_client = True
        try:
            response = await client.get(f"{self.base_url}/{ip_address}/json/")
        finally:
            if owns_client:
                await client.aclose()
        if response.status_code >= 400:
            logger.warning("Geolocation lookup responded with HTTP %s", response.status_code)
            return None
        payload = response.json()
        if not isinstance(payload, dict) or payload.get("error"):
            logger.warning("Geolocation lookup returned an error payload: %s", payload)
            return None
        return payload

    async def cached_location(self, ip_address: Optional[str]) -> Optional[UserLocation]:
        """Return the cached location for ``ip_address`` without calling the API."""

        if self.cache is None or not _is_public_ip(ip_address):
            return None
        try:
            cached = await self.cache.get_json(build_geolocation_cache_key(ip_address))
        except CacheError as exc:
            logger.warning("Geolocation cache read failed: %s", exc)
            return None
        if cached is None:
            return None
        try:
            return UserLocation.model_validate(cached)
        except ValidationError as exc:
            logger.warning("Discarding malformed cached geolocation: %s", exc)
            return None

    async def lookup_ip(self, ip_address: Optional[str]) -> Optional[UserLocation]:
        """Resolve coarse location for ``ip_address``; None on any failure.

        Only public client addresses are looked up. Without one the API would
        locate this server instead of the user.
        """

        if not _is_public_ip(ip_address):
            return None

        cached = await self.cached_location(ip_address)
        if cached is not None:
            return cached

        try:
            payload = await self._fetch(ip_address)
            if payload is None:
                return None
            location = UserLocation(
                ip=payload.get("ip"),
                city=payload.get("city"),
                country=payload.get("country_name"),
                country_code=payload.get("country_code"),
                latitude=payload.get("latitude"),
                longitude=payload.get("longitude"),
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Could not fetch IP-based location: %s", exc)
            return None

        if self.cache is not None:
            try:
                await self.cache.set_json(build_geolocation_cache_key(ip_address), location.model_dump(), self.cache_ttl)
            except CacheError as exc:
                logger.warning("Geolocation cache write failed: %s", exc)
        return location

    async def resolve(self, ip_address: Optional[str], coordinates: Optional[Coordinates] = None) -> Optional[UserLocation]:
        return merge_location(await self.lookup_ip(ip_address), coordinates)

    async def resolve_cached(
        self, ip_address: Optional[str], coordinates: Optional[Coordinates] = None
    ) -> Optional[UserLocation]:
        """Like :meth:`resolve` but never waits on the geolocation API."""

        return merge_location(await self.cached_location(ip_address), coordinates)
