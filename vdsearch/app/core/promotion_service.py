from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from vdsearch.app import config
from vdsearch.app.core.promotion_diff import PromotionChangeSet, compute_changes
from vdsearch.app.core.promotion_index import PromotionIndex
from vdsearch.app.schemas.promotion import Promotion, PromotionSaveFailure
from vdsearch.app.store import BaseTableStore
from vdsearch.app.utils.observability import record_promotion_save
from vdsearch.app.utils.query_utils import is_blank

logger = logging.getLogger(__name__)


class PromotionSaveError(RuntimeError):
    """Raised after a save when one or more store writes failed.

    Writes that succeeded are not rolled back.
    """

    def __init__(self, failures: Sequence[PromotionSaveFailure]) -> None:
        self.failures = list(failures)
        summary = "; ".join(f"{failure.operation}: {failure.detail}" for failure in self.failures)
        super().__init__(f"{len(self.failures)} promotion write(s) failed: {summary}")


@dataclass(frozen=True)
class PromotionCatalog:
    """Immutable snapshot of the promotions table plus its derived index."""

    promotions: Tuple[Promotion, ...]
    index: PromotionIndex

    @classmethod
    def from_promotions(cls, promotions: Sequence[Promotion]) -> "PromotionCatalog":
        """Build the catalog from promotions in store order (newest first).

        The index is rebuilt from the reversed store order, so the most
        recently created promotion owns a contested trigger query. Service
        lookups therefore intentionally differ from calling
        ``PromotionIndex.rebuild`` on the raw store order, where the last row
        (the oldest promotion) would win.
        """

        ordered = tuple(promotions)
        return cls(promotions=ordered, index=PromotionIndex.rebuild(reversed(ordered)))


class PromotionService:
    def __init__(self, store: BaseTableStore, *, table: Optional[str] = None) -> None:
        self.store = store
        self.table = table or config.PROMOTIONS_TABLE
        self._catalog: Optional[PromotionCatalog] = None
        self._generation = 0

    @property
    def catalog(self) -> Optional[PromotionCatalog]:
        return self._catalog

    def invalidate(self) -> None:
        self._catalog = None
        self._generation += 1

    def _parse_rows(self, rows: Sequence[dict]) -> List[Promotion]:
        promotions: List[Promotion] = []
        for row in rows:
            try:
                promotions.append(Promotion.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed promotion row %s: %s", row.get("id"), exc)
        return promotions

    async def fetch_all(self) -> List[Promotion]:
        """Fetch every promotion, replace the catalog and return editable copies."""

        generation = self._generation
        rows = await self.store.select_all(self.table, order_by="created_at", descending=True)
        catalog = PromotionCatalog.from_promotions(self._parse_rows(rows))
        if generation == self._generation:
            self._catalog = catalog
        else:
            logger.debug("Promotion catalog invalidated during fetch; not caching stale rows")
        logger.info("Loaded %d promotions covering %d trigger queries", len(catalog.promotions), len(catalog.index))
        return [promotion.model_copy(deep=True) for promotion in catalog.promotions]

    async def _get_catalog(self) -> PromotionCatalog:
        catalog = self._catalog
        if catalog is None:
            await self.fetch_all()
            catalog = self._catalog
        if catalog is None:
            # Invalidated again while fetching; fall back to a fresh uncached read.
            rows = await self.store.select_all(self.table, order_by="created_at", descending=True)
            catalog = PromotionCatalog.from_promotions(self._parse_rows(rows))
        return catalog

    async def find_promotion(self, query: str) -> Optional[Promotion]:
        if is_blank(query):
            return None
        catalog = await self._get_catalog()
        return catalog.index.lookup(query)

    async def save_promotions(self, working_set: Sequence[Promotion]) -> PromotionChangeSet:
        catalog = await self._get_catalog()
        changes = compute_changes(catalog.promotions, working_set)

        operations: List[str] = []
        writes: List[Awaitable[Any]] = []
        if changes.to_insert:
            operations.append("insert")
            writes.append(self.store.insert(self.table, [promotion.to_row() for promotion in changes.to_insert]))
        for promotion in changes.to_update:
            operations.append(f"update:{promotion.id}")
            writes.append(self.store.update(self.table, promotion.id, promotion.to_row()))
        if changes.to_delete:
            operations.append("delete")
            writes.append(self.store.delete(self.table, changes.delete_ids))

        logger.info(
            "Saving promotions",
            extra={
                "json_fields": {
                    "inserted": len(changes.to_insert),
                    "updated": len(changes.to_update),
                    "deleted": len(changes.to_delete),
                }
            },
        )

        results = await asyncio.gather(*writes, return_exceptions=True)
        failures = [
            PromotionSaveFailure(operation=operation, detail=str(result))
            for operation, result in zip(operations, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            for failure in failures:
                logger.error("Error saving promotions (%s): %s", failure.operation, failure.detail)
            record_promotion_save("failure")
            raise PromotionSaveError(failures)

        record_promotion_save("success")
        self.invalidate()
        return changes
