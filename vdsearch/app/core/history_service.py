from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from vdsearch.app import config
from vdsearch.app.schemas.history import SearchHistoryRecord, UserLocation
from vdsearch.app.store import BaseTableStore
from vdsearch.app.utils.query_utils import is_blank

logger = logging.getLogger(__name__)


class SearchHistoryService:
    """Append-only log of submitted queries with coarse location."""

    def __init__(
        self,
        store: BaseTableStore,
        *,
        table: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> None:
        self.store = store
        self.table = table or config.SEARCH_HISTORY_TABLE
        self.limit = limit or config.SEARCH_HISTORY_LIMIT

    async def save_search_query(self, query: str, location: Optional[UserLocation] = None) -> None:
        if is_blank(query):
            return
        location = location or UserLocation()
        await self.store.insert(
            self.table,
            [
                {
                    "query": query,
                    "ip_address": location.ip,
                    "city": location.city,
                    "country": location.country,
                    "country_code": location.country_code,
                    "latitude": location.latitude,
                    "longitude": location.longitude,
                }
            ],
        )

    async def fetch_search_history(self) -> List[SearchHistoryRecord]:
        rows = await self.store.select_all(self.table, order_by="created_at", descending=True, limit=self.limit)
        records: List[SearchHistoryRecord] = []
        for row in rows:
            try:
                records.append(SearchHistoryRecord.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed history row %s: %s", row.get("id"), exc)
        return records
