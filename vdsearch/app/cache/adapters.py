from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import redis.asyncio as redis  # type: ignore[import-not-found]

logger = logging.getLogger("cache.adapters")


class CacheError(RuntimeError):
    """Raised when the cache backend encounters an unrecoverable error."""


@dataclass(frozen=True)
class CacheValue:
    payload: bytes
    expires_at: float


def encode_json(value: Dict[str, Any]) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_json(blob: bytes) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


class BaseCacheAdapter:
    """Key/value cache with per-entry expiry.

    ``get_json``/``set_json`` wrap the byte-level primitives for the JSON
    documents the service caches (geolocation lookups).
    """

    namespace: Optional[str] = None

    def _qualify(self, key: str) -> str:
        if self.namespace:
            return f"{self.namespace}:{key}"
        return key

    async def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        blob = await self.get(key)
        if blob is None:
            return None
        data = decode_json(blob)
        if data is None:
            logger.warning("Discarding undecodable cache entry %s", key)
        return data

    async def set_json(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        await self.set(key, encode_json(value), ttl_seconds)


class RedisCacheAdapter(BaseCacheAdapter):
    def __init__(self, url: str, *, namespace: Optional[str] = None, client: Optional[Any] = None) -> None:
        try:
            self._client = client or redis.from_url(url, decode_responses=False)
        except ValueError as exc:
            raise CacheError(f"Invalid Redis URL: {exc}") from exc
        self.namespace = namespace.strip() if namespace else None

    async def get(self, key: str) -> Optional[bytes]:
        qualified = self._qualify(key)
        try:
            result = await self._client.get(qualified)
        except redis.RedisError as exc:
            raise CacheError(f"Redis GET failed for {qualified}: {exc}") from exc
        if result is None:
            return None
        if isinstance(result, bytes):
            return result
        if isinstance(result, str):
            return result.encode("utf-8")
        logger.warning("Unexpected Redis payload type for key %s: %s", qualified, type(result))
        return None

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        qualified = self._qualify(key)
        try:
            await self._client.set(qualified, value, ex=max(ttl_seconds, 1))
        except redis.RedisError as exc:
            raise CacheError(f"Redis SET failed for {qualified}: {exc}") from exc

    async def delete(self, key: str) -> None:
        qualified = self._qualify(key)
        try:
            await self._client.delete(qualified)
        except redis.RedisError as exc:
            raise CacheError(f"Redis DEL failed for {qualified}: {exc}") from exc


class InMemoryCacheAdapter(BaseCacheAdapter):
    def __init__(self, *, namespace: Optional[str] = None) -> None:
        self._data: dict[str, CacheValue] = {}
        self._lock = asyncio.Lock()
        self.namespace = namespace.strip() if namespace else None

    async def get(self, key: str) -> Optional[bytes]:
        qualified = self._qualify(key)
        async with self._lock:
            entry = self._data.get(qualified)
            if not entry:
                return None
            if time.time() >= entry.expires_at:
                self._data.pop(qualified, None)
                return None
            return entry.payload

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        expires_at = time.time() + max(ttl_seconds, 1)
        async with self._lock:
            self._data[self._qualify(key)] = CacheValue(payload=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(self._qualify(key), None)
