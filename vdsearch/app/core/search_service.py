# app/core/search_service.py
import asyncio
import logging
import math
from typing import Optional, Set, cast

from vdsearch.app import config
from vdsearch.app.core.geolocation import GeoLocationClient, merge_location
from vdsearch.app.core.history_service import SearchHistoryService
from vdsearch.app.core.promotion_service import PromotionService
from vdsearch.app.core.search_client import SearchApiClient, SearchApiResult
from vdsearch.app.schemas.history import UserLocation
from vdsearch.app.schemas.promotion import Promotion
from vdsearch.app.schemas.search import Coordinates, SearchResultEnvelope, SearchType
from vdsearch.app.utils.observability import (
    record_history_write_failure,
    record_promotion_match,
    record_search_outcome,
)
from vdsearch.app.utils.query_utils import current_page, is_blank

logger = logging.getLogger(__name__)

QUOTA_EXCEEDED_MESSAGE = "The free daily search limit has been reached. Please try again tomorrow."
INVALID_API_KEY_MESSAGE = "Error: The API Key is not valid. Please check the configuration."
GENERIC_ERROR_MESSAGE = "An error occurred while fetching results. Please try again later."


def classify_search_error(message: str) -> str:
    lowered = (message or "").lower()
    if "quota exceeded" in lowered:
        return "quota"
    if "api key not valid" in lowered:
        return "configuration"
    return "generic"


_ERROR_MESSAGES = {
    "quota": QUOTA_EXCEEDED_MESSAGE,
    "configuration": INVALID_API_KEY_MESSAGE,
    "generic": GENERIC_ERROR_MESSAGE,
}


def map_search_error(message: str) -> str:
    """Translate a raw search API error into the message shown to users."""

    return _ERROR_MESSAGES[classify_search_error(message)]


def compute_total_pages(total_results: int) -> int:
    pages = math.ceil(max(total_results, 0) / config.SEARCH_RESULTS_PER_PAGE)
    return min(config.SEARCH_MAX_PAGES, pages)


class SearchService:
    def __init__(
        self,
        search_client: SearchApiClient,
        promotion_service: PromotionService,
        *,
        history_service: Optional[SearchHistoryService] = None,
        geolocation: Optional[GeoLocationClient] = None,
    ) -> None:
        self.search_client = search_client
        self.promotion_service = promotion_service
        self.history_service = history_service
        self.geolocation = geolocation
        self._background_tasks: Set[asyncio.Task] = set()

    async def execute_search(
        self,
        query: str,
        *,
        start: int = 1,
        tab: SearchType = "all",
        location: Optional[UserLocation] = None,
        client_ip: Optional[str] = None,
        coordinates: Optional[Coordinates] = None,
    ) -> Optional[SearchResultEnvelope]:
        """Run one search submission.

        Returns None for a blank query. The promotion lookup and the API call
        run concurrently and the envelope is only built once both resolved.
        API failures never raise; they are reported through ``error``.

        When ``location`` is not given it is derived from ``client_ip`` and
        ``coordinates``. The country bias only uses a cached IP location; the
        geolocation API is called from the background history write.
        """

        if is_blank(query):
            return None

        self._record_history(query.strip(), location, client_ip, coordinates)

        if location is None:
            location = await self._cached_location(client_ip, coordinates)
        country_code = location.country_code if location else None
        promotion, outcome = await asyncio.gather(
            self._find_promotion(query),
            self.search_client.fetch_results(query, start, tab, country_code),
            return_exceptions=True,
        )
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome

        page = current_page(start, per_page=config.SEARCH_RESULTS_PER_PAGE)

        if isinstance(outcome, Exception):
            category = classify_search_error(str(outcome))
            logger.error("Search failed for query '%s' (%s): %s", query, category, outcome)
            record_search_outcome(category, tab)
            return SearchResultEnvelope(
                query=query,
                tab=tab,
                start=start,
                current_page=page,
                total_pages=0,
                items=[],
                promotion=None,
                error=_ERROR_MESSAGES[category],
            )

        result = cast(SearchApiResult, outcome)
        attached = promotion if tab == "all" and isinstance(promotion, Promotion) else None
        if attached is not None:
            record_promotion_match()
        record_search_outcome("success", tab)
        logger.info("Search for '%s' returned %d items", query, len(result.items))

        return SearchResultEnvelope(
            query=query,
            tab=tab,
            start=start,
            current_page=page,
            total_pages=compute_total_pages(result.total_results),
            items=list(result.items),
            promotion=attached,
            error=None,
        )

    async def fetch_suggestions(self, query: str) -> list[str]:
        return await self.search_client.fetch_suggestions(query)

    async def _find_promotion(self, query: str) -> Optional[Promotion]:
        try:
            return await self.promotion_service.find_promotion(query)
        except Exception as exc:
            logger.warning("Promotion lookup failed for '%s': %s", query, exc)
            return None

    async def _cached_location(
        self, client_ip: Optional[str], coordinates: Optional[Coordinates]
    ) -> Optional[UserLocation]:
        if self.geolocation is None:
            return merge_location(None, coordinates)
        try:
            return await self.geolocation.resolve_cached(client_ip, coordinates)
        except Exception as exc:
            logger.warning("Cached geolocation read failed: %s", exc)
            return merge_location(None, coordinates)

    def _record_history(
        self,
        query: str,
        location: Optional[UserLocation],
        client_ip: Optional[str],
        coordinates: Optional[Coordinates],
    ) -> None:
        if self.history_service is None:
            return
        task = asyncio.create_task(self._write_history(query, location, client_ip, coordinates))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _write_history(
        self,
        query: str,
        location: Optional[UserLocation],
        client_ip: Optional[str],
        coordinates: Optional[Coordinates],
    ) -> None:
        try:
            if location is None and self.geolocation is not None:
                location = await self.geolocation.resolve(client_ip, coordinates)
            elif location is None:
                location = merge_location(None, coordinates)
            await self.history_service.save_search_query(query, location)  # type: ignore[union-attr]
        except Exception as exc:
            record_history_write_failure()
            logger.warning("Error saving search query: %s", exc)

    @property
    def pending_background_tasks(self) -> int:
        return len(self._background_tasks)

    async def drain_background_tasks(self) -> None:
        """Wait for detached history writes; used on shutdown and in tests."""

        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
