"""DataStore backed by Supabase PostgREST through supabase-py."""

import uuid
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from libs.common.logging import get_logger
from libs.db.store import Record, RecordNotFoundError, StoreError

logger = get_logger(__name__)


def _filter_value(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


class SupabaseStore:
    """Thin adapter over ``client.table(...)`` query builders."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _execute(self, table: str, query: Any) -> list[Record]:
        try:
            response = await query.execute()
        except APIError as e:
            logger.error(f"PostgREST error on {table}: {e.message}")
            raise StoreError(f"Query on {table} failed: {e.message}", table=table, cause=e) from e
        except httpx.HTTPError as e:
            logger.error(f"Network error talking to Supabase ({table}): {e}")
            raise StoreError(f"Query on {table} failed: {e}", table=table, cause=e) from e
        return list(response.data or [])

    @staticmethod
    def _apply_filters(query: Any, filters: Optional[dict[str, Any]]) -> Any:
        for column, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.in_(column, [_filter_value(v) for v in value])
            elif value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, _filter_value(value))
        return query

    async def find_one(self, table: str, filters: dict[str, Any]) -> Optional[Record]:
        query = self._apply_filters(self.client.table(table).select("*"), filters)
        rows = await self._execute(table, query.limit(2))
        if len(rows) > 1:
            raise StoreError(
                f"Expected at most one row in {table} for {sorted(filters)}", table=table
            )
        return rows[0] if rows else None

    async def find_many(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Record]:
        query = self._apply_filters(self.client.table(table).select("*"), filters)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)
        return await self._execute(table, query)

    async def insert(self, table: str, values: Record) -> Record:
        rows = await self._execute(table, self.client.table(table).insert(values))
        if not rows:
            raise StoreError(f"Insert into {table} returned no row", table=table)
        return rows[0]

    async def update(self, table: str, record_id: Any, patch: Record) -> Record:
        query = self.client.table(table).update(patch).eq("id", _filter_value(record_id))
        rows = await self._execute(table, query)
        if not rows:
            raise RecordNotFoundError(f"No {table} row with id {record_id}", table=table)
        return rows[0]

    async def delete(self, table: str, record_id: Any) -> None:
        query = self.client.table(table).delete().eq("id", _filter_value(record_id))
        await self._execute(table, query)
