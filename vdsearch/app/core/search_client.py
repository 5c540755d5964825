from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx  # type: ignore[import-not-found]
from pydantic import ValidationError

from vdsearch.app import config
from vdsearch.app.schemas.search import SearchResultItem, SearchType

logger = logging.getLogger(__name__)


class SearchApiError(RuntimeError):
    """Raised when the search API call fails; ``str(exc)`` is the API's message."""


@dataclass(frozen=True)
class SearchApiResult:
    items: List[SearchResultItem] = field(default_factory=list)
    total_results: int = 0


def _parse_total_results(payload: Dict[str, Any]) -> int:
    raw = (payload.get("searchInformation") or {}).get("totalResults") or "0"
    try:
        return max(int(raw), 0)
    except (TypeError, ValueError):
        logger.warning("Unexpected totalResults value from search API: %r", raw)
        return 0


def _parse_items(payload: Dict[str, Any]) -> List[SearchResultItem]:
    items: List[SearchResultItem] = []
    for raw in payload.get("items") or []:
        try:
            items.append(SearchResultItem.model_validate(raw))
        except ValidationError as exc:
            logger.debug("Dropping malformed search item: %s", exc)
    return items


def _error_message(response: Any) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    message = None
    if isinstance(body, dict):
        message = (body.get("error") or {}).get("message")
    return message or f"HTTP error! status: {response.status_code}"


class SearchApiClient:
    """Client for the Custom Search JSON API and the query suggestion endpoint."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        search_url: Optional[str] = None,
        suggest_url: Optional[str] = None,
        timeout: Optional[float] = None,
        suggest_timeout: Optional[float] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else config.SEARCH_API_KEY
        self.engine_id = engine_id if engine_id is not None else config.SEARCH_ENGINE_ID
        self.search_url = search_url or config.SEARCH_API_URL
        self.suggest_url = suggest_url or config.SUGGEST_API_URL
        self._timeout = timeout if timeout is not None else config.SEARCH_API_TIMEOUT_SECONDS
        self._suggest_timeout = suggest_timeout if suggest_timeout is not None else config.SUGGEST_API_TIMEOUT_SECONDS
        self._client = client

    async def _get(self, url: str, params: Dict[str, Any], timeout: Optional[float]) -> Any:
        client = self._client
        owns_client = False
        if client is None:
            client = httpx.AsyncClient(timeout=timeout)
            owns_client = True
        try:
            return await client.get(url, params=params)
        finally:
            if owns_client:
                await client.aclose()

    async def fetch_results(
        self,
        query: str,
        start: int = 1,
        search_type: SearchType = "all",
        country_code: Optional[str] = None,
    ) -> SearchApiResult:
        if not self.api_key or not self.engine_id:
            raise SearchApiError("Search API key not valid: SEARCH_API_KEY and SEARCH_ENGINE_ID must be configured")

        params: Dict[str, Any] = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": query,
            "start": start,
        }
        if search_type == "image":
            params["searchType"] = "image"
        if country_code and len(country_code) == 2:
            params["gl"] = country_code.lower()

        try:
            response = await self._get(self.search_url, params, self._timeout)
        except httpx.HTTPError as exc:
            raise SearchApiError(f"Search request failed: {exc}") from exc

        if response.status_code >= 400:
            raise SearchApiError(_error_message(response))

        try:
            payload = response.json()
        except ValueError as exc:
            raise SearchApiError("Failed to decode search API response") from exc

        if not isinstance(payload, dict):
            raise SearchApiError("Unexpected search API response shape")
        if payload.get("error"):
            raise SearchApiError((payload["error"] or {}).get("message") or "Unknown search API error")

        return SearchApiResult(items=_parse_items(payload), total_results=_parse_total_results(payload))

    async def fetch_suggestions(self, query: str) -> List[str]:
        """Best-effort query completions; any failure yields an empty list."""

        if not query.strip():
            return []
        try:
            response = await self._get(self.suggest_url, {"client": "firefox", "q": query}, self._suggest_timeout)
            if response.status_code >= 400:
                logger.warning("Suggestion API responded with HTTP %s", response.status_code)
                return []
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch suggestions: %s", exc)
            return []

        if isinstance(data, list) and len(data) > 1 and isinstance(data[1], list):
            return [entry for entry in data[1] if isinstance(entry, str)]
        return []
