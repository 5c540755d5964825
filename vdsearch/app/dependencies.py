"""Dependency factories for FastAPI.

Clients are created lazily to avoid import-time failures when credentials
or environment variables are missing. Factories cache created instances.
"""
import logging
from typing import Optional

from vdsearch.app import config
from vdsearch.app.cache import (
    BaseCacheAdapter,
    CacheError,
    InMemoryCacheAdapter,
    RedisCacheAdapter,
)
from vdsearch.app.core.geolocation import GeoLocationClient
from vdsearch.app.core.history_service import SearchHistoryService
from vdsearch.app.core.promotion_service import PromotionService
from vdsearch.app.core.search_client import SearchApiClient
from vdsearch.app.core.search_service import SearchService
from vdsearch.app.store import (
    BaseTableStore,
    InMemoryTableStore,
    StoreError,
    SupabaseTableStore,
)


_table_store: Optional[BaseTableStore] = None
_cache: Optional[BaseCacheAdapter] = None
_search_client: Optional[SearchApiClient] = None
_geolocation_client: Optional[GeoLocationClient] = None
_promotion_service: Optional[PromotionService] = None
_history_service: Optional[SearchHistoryService] = None
_search_service: Optional[SearchService] = None

logger = logging.getLogger("dependencies")


def _build_table_store() -> BaseTableStore:
    if config.SUPABASE_URL and config.SUPABASE_KEY:
        try:
            logger.info("Initializing Supabase table store")
            return SupabaseTableStore(
                url=config.SUPABASE_URL,
                api_key=config.SUPABASE_KEY,
                timeout=config.SUPABASE_TIMEOUT_SECONDS,
            )
        except StoreError as exc:
            logger.warning("Supabase table store initialization failed: %s", exc)

    logger.warning("Falling back to in-memory table store; promotions and history will not persist")
    return InMemoryTableStore()


def get_table_store() -> BaseTableStore:
    global _table_store
    if _table_store is None:
        _table_store = _build_table_store()
    return _table_store


def _build_cache_adapter() -> BaseCacheAdapter:
    if config.CACHE_REDIS_URL:
        try:
            logger.info("Initializing Redis cache adapter")
            return RedisCacheAdapter(url=config.CACHE_REDIS_URL, namespace=config.CACHE_NAMESPACE)
        except CacheError as exc:
            logger.warning("Redis cache initialization failed: %s", exc)

    logger.info("Falling back to in-memory cache adapter")
    return InMemoryCacheAdapter(namespace=config.CACHE_NAMESPACE)


def get_cache_dep() -> BaseCacheAdapter:
    global _cache
    if _cache is None:
        _cache = _build_cache_adapter()
    return _cache


def get_search_client() -> SearchApiClient:
    global _search_client
    if _search_client is None:
        _search_client = SearchApiClient()
    return _search_client


def get_geolocation_client_dep() -> GeoLocationClient:
    global _geolocation_client
    if _geolocation_client is None:
        _geolocation_client = GeoLocationClient(cache=get_cache_dep())
    return _geolocation_client


def get_promotion_service_dep() -> PromotionService:
    global _promotion_service
    if _promotion_service is None:
        _promotion_service = PromotionService(get_table_store())
    return _promotion_service


def get_history_service_dep() -> SearchHistoryService:
    global _history_service
    if _history_service is None:
        _history_service = SearchHistoryService(get_table_store())
    return _history_service


def get_search_service_dep() -> SearchService:
    global _search_service
    if _search_service is None:
        _search_service = SearchService(
            get_search_client(),
            get_promotion_service_dep(),
            history_service=get_history_service_dep(),
            geolocation=get_geolocation_client_dep(),
        )
    return _search_service


async def initialize_on_startup() -> None:
    # Build the shared clients eagerly so configuration errors surface at boot.
    get_search_service_dep()
    get_geolocation_client_dep()
    if not config.SEARCH_API_KEY or not config.SEARCH_ENGINE_ID:
        logger.warning("SEARCH_API_KEY or SEARCH_ENGINE_ID is not set; searches will report a configuration error")


async def shutdown_dependencies() -> None:
    if _search_service is not None:
        await _search_service.drain_background_tasks()
