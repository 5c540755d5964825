from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx  # type: ignore[import-not-found]

logger = logging.getLogger("store.adapters")

Row = Dict[str, Any]


class StoreError(RuntimeError):
    """Raised when the hosted table service rejects or fails a request."""


class BaseTableStore:
    """Minimal table operations the service needs from its hosted backend."""

    async def select_all(
        self,
        table: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Row]:
        raise NotImplementedError

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Row]:
        raise NotImplementedError

    async def update(self, table: str, row_id: str, values: Mapping[str, Any]) -> Optional[Row]:
        raise NotImplementedError

    async def delete(self, table: str, row_ids: Sequence[str]) -> int:
        raise NotImplementedError


def _in_filter(values: Sequence[str]) -> str:
    quoted = ",".join('"{}"'.format(str(value).replace('"', '\\"')) for value in values)
    return f"in.({quoted})"


class SupabaseTableStore(BaseTableStore):
    """Table store backed by the PostgREST endpoint of a Supabase project."""

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        timeout: Optional[float] = 10.0,
        client: Optional[Any] = None,
    ) -> None:
        if not url or not api_key:
            raise StoreError("Supabase URL and API key must both be configured")
        self._rest_url = f"{url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        }
        self._timeout = timeout
        self._client = client

    async def _execute(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        client = self._client
        owns_client = False
        if client is None:
            client = httpx.AsyncClient(base_url=self._rest_url, timeout=self._timeout)
            owns_client = True

        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer

        try:
            response = await client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise StoreError(f"Supabase {method} {table} failed: {exc}") from exc
        finally:
            if owns_client:
                await client.aclose()

        if response.status_code >= 400:
            raise StoreError(
                f"Supabase {method} {table} responded with HTTP {response.status_code}: {response.text}"
            )

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as exc:
            raise StoreError(f"Failed to decode Supabase response for {table}") from exc

    async def select_all(
        self,
        table: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Row]:
        direction = "desc" if descending else "asc"
        params = {"select": "*", "order": f"{order_by}.{direction},id.{direction}"}
        if limit is not None:
            params["limit"] = str(limit)
        payload = await self._execute("GET", table, params=params)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise StoreError(f"Unexpected select payload for {table}: {type(payload).__name__}")
        return payload

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Row]:
        if not rows:
            return []
        payload = await self._execute(
            "POST",
            table,
            json=[dict(row) for row in rows],
            prefer="return=representation",
        )
        return payload if isinstance(payload, list) else []

    async def update(self, table: str, row_id: str, values: Mapping[str, Any]) -> Optional[Row]:
        payload = await self._execute(
            "PATCH",
            table,
            params={"id": f"eq.{row_id}"},
            json=dict(values),
            prefer="return=representation",
        )
        if isinstance(payload, list) and payload:
            return payload[0]
        return None

    async def delete(self, table: str, row_ids: Sequence[str]) -> int:
        if not row_ids:
            return 0
        payload = await self._execute(
            "DELETE",
            table,
            params={"id": _in_filter(row_ids)},
            prefer="return=representation",
        )
        return len(payload) if isinstance(payload, list) else 0


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryTableStore(BaseTableStore):
    """Process-local table store for development and tests."""

    def __init__(self, tables: Optional[Dict[str, List[Row]]] = None) -> None:
        self._tables: Dict[str, List[Row]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self._lock = asyncio.Lock()

    async def select_all(
        self,
        table: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Row]:
        async with self._lock:
            rows = [dict(row) for row in self._tables.get(table, [])]
        rows.sort(key=lambda row: (str(row.get(order_by) or ""), str(row.get("id") or "")), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Row]:
        created: List[Row] = []
        async with self._lock:
            target = self._tables.setdefault(table, [])
            for row in rows:
                record = dict(row)
                record["id"] = str(uuid.uuid4())
                record["created_at"] = _now_iso()
                target.append(record)
                created.append(dict(record))
        return created

    async def update(self, table: str, row_id: str, values: Mapping[str, Any]) -> Optional[Row]:
        async with self._lock:
            for row in self._tables.get(table, []):
                if row.get("id") == row_id:
                    row.update({key: value for key, value in values.items() if key not in {"id", "created_at"}})
                    return dict(row)
        return None

    async def delete(self, table: str, row_ids: Sequence[str]) -> int:
        targets = set(row_ids)
        async with self._lock:
            rows = self._tables.get(table, [])
            kept = [row for row in rows if row.get("id") not in targets]
            removed = len(rows) - len(kept)
            self._tables[table] = kept
        return removed
