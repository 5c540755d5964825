from __future__ import annotations

import asyncio
from typing import Any, List, Mapping, Optional, Sequence

import pytest

from vdsearch.app.core.promotion_service import PromotionSaveError, PromotionService
from vdsearch.app.schemas.promotion import Promotion
from vdsearch.app.store import InMemoryTableStore, StoreError

TABLE = "promotions"


def _seed_rows() -> list[dict[str, Any]]:
    return [
        {
            "id": "1",
            "created_at": "2024-01-01T00:00:00+00:00",
            "title": "Old sale",
            "description": "",
            "url": "https://old.example.com",
            "queries": ["sale", "AI"],
        },
        {
            "id": "2",
            "created_at": "2024-06-01T00:00:00+00:00",
            "title": "New sale",
            "description": "Newest",
            "url": "https://new.example.com",
            "queries": ["sale"],
        },
    ]


class _RecordingStore(InMemoryTableStore):
    """In-memory store that tracks concurrency and can fail chosen operations."""

    def __init__(self, *args: Any, fail_on: Sequence[str] = (), **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fail_on = set(fail_on)
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.selects = 0

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        if operation in self.fail_on:
            raise StoreError(f"{operation} rejected")

    async def select_all(self, table: str, **kwargs: Any) -> list:
        self.selects += 1
        return await super().select_all(table, **kwargs)

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list:
        await self._enter("insert")
        return await super().insert(table, rows)

    async def update(self, table: str, row_id: str, values: Mapping[str, Any]) -> Optional[dict]:
        await self._enter(f"update:{row_id}")
        return await super().update(table, row_id, values)

    async def delete(self, table: str, row_ids: Sequence[str]) -> int:
        await self._enter("delete")
        return await super().delete(table, row_ids)


@pytest.mark.asyncio
async def test_fetch_all_returns_copies_and_builds_catalog() -> None:
    service = PromotionService(InMemoryTableStore({TABLE: _seed_rows()}), table=TABLE)

    promotions = await service.fetch_all()

    assert [promo.id for promo in promotions] == ["2", "1"]
    assert service.catalog is not None
    promotions[0].queries.append("mutated")
    assert "mutated" not in service.catalog.promotions[0].queries


@pytest.mark.asyncio
async def test_find_promotion_fetches_lazily_once() -> None:
    store = _RecordingStore({TABLE: _seed_rows()})
    service = PromotionService(store, table=TABLE)

    ai = await service.find_promotion("  ai ")
    sale = await service.find_promotion("SALE")

    assert ai is not None and ai.id == "1"
    # Most recently created promotion owns the contested query.
    assert sale is not None and sale.id == "2"
    assert store.selects == 1


@pytest.mark.asyncio
async def test_find_promotion_blank_query_skips_store() -> None:
    store = _RecordingStore({TABLE: _seed_rows()})
    service = PromotionService(store, table=TABLE)

    assert await service.find_promotion("   ") is None
    assert store.selects == 0


@pytest.mark.asyncio
async def test_save_applies_changes_concurrently_and_invalidates() -> None:
    store = _RecordingStore({TABLE: _seed_rows()})
    service = PromotionService(store, table=TABLE)
    working = await service.fetch_all()

    edited = working[0].model_copy(update={"title": "New sale (edited)"})
    added = Promotion(id="new-abc", title="Fresh", url="https://fresh.example.com", queries=["fresh"])
    # Drop promotion "1", edit "2", add one.
    changes = await service.save_promotions([added, edited])

    assert len(changes.to_insert) == 1
    assert [promo.id for promo in changes.to_update] == ["2"]
    assert changes.delete_ids == ["1"]
    assert sorted(store.calls) == ["delete", "insert", "update:2"]
    assert store.max_in_flight == 3
    assert service.catalog is None

    refreshed = await service.fetch_all()
    titles = sorted(promo.title for promo in refreshed)
    assert titles == ["Fresh", "New sale (edited)"]
    assert all(not promo.is_temporary for promo in refreshed)
    assert (await service.find_promotion("fresh")).title == "Fresh"


@pytest.mark.asyncio
async def test_save_without_changes_issues_no_writes() -> None:
    store = _RecordingStore({TABLE: _seed_rows()})
    service = PromotionService(store, table=TABLE)
    working = await service.fetch_all()

    changes = await service.save_promotions(working)

    assert changes.is_empty
    assert store.calls == []


@pytest.mark.asyncio
async def test_save_failure_reports_all_failures_after_settling() -> None:
    store = _RecordingStore({TABLE: _seed_rows()}, fail_on=("insert", "delete"))
    service = PromotionService(store, table=TABLE)
    working = await service.fetch_all()
    catalog_before = service.catalog

    edited = working[0].model_copy(update={"url": "https://changed.example.com"})
    added = Promotion(id="new-x", title="X", url="https://x.example.com", queries=[])

    with pytest.raises(PromotionSaveError) as excinfo:
        await service.save_promotions([added, edited])

    assert sorted(failure.operation for failure in excinfo.value.failures) == ["delete", "insert"]
    # The update was still applied; partial success is not rolled back.
    rows = await store.select_all(TABLE)
    assert any(row["url"] == "https://changed.example.com" for row in rows)
    assert service.catalog is catalog_before


@pytest.mark.asyncio
async def test_save_without_snapshot_fetches_first() -> None:
    store = _RecordingStore({TABLE: _seed_rows()})
    service = PromotionService(store, table=TABLE)

    changes = await service.save_promotions(
        [Promotion(id="2", title="New sale", description="Newest", url="https://new.example.com", queries=["sale"])]
    )

    assert store.selects == 1
    assert changes.delete_ids == ["1"]
    assert changes.to_update == []
