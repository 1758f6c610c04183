"""DataStore backed by a direct async SQLAlchemy connection.

Works on the Core ``Table`` objects registered in ``Base.metadata`` so every
service model is reachable by table name, the same way PostgREST exposes them.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from libs.common.logging import get_logger
from libs.db.base import Base
from libs.db.session import session_scope
from libs.db.store import Record, RecordNotFoundError, StoreError

logger = get_logger(__name__)


def _row_to_record(row: Any) -> Record:
    # Match the JSON shape PostgREST returns for ids
    return {
        key: str(value) if isinstance(value, uuid.UUID) else value
        for key, value in dict(row).items()
    }


class SqlAlchemyStore:
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        metadata=None,
    ):
        self.session_factory = session_factory
        self.metadata = metadata if metadata is not None else Base.metadata

    def _table(self, name: str) -> Table:
        try:
            return self.metadata.tables[name]
        except KeyError:
            raise StoreError(f"Unknown table: {name}", table=name) from None

    @staticmethod
    def _coerce(table: Table, column: str, value: Any) -> Any:
        if column not in table.c:
            raise StoreError(f"Unknown column {table.name}.{column}", table=table.name)
        try:
            python_type = table.c[column].type.python_type
        except NotImplementedError:
            return value
        if python_type is uuid.UUID and isinstance(value, str):
            try:
                return uuid.UUID(value)
            except ValueError:
                raise StoreError(
                    f"Invalid UUID for {table.name}.{column}: {value}", table=table.name
                ) from None
        if python_type is datetime and isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                raise StoreError(
                    f"Invalid timestamp for {table.name}.{column}: {value}", table=table.name
                ) from None
        return value

    def _values(self, table: Table, values: Record) -> Record:
        return {col: self._coerce(table, col, val) for col, val in values.items()}

    def _where(self, table: Table, filters: Optional[dict[str, Any]]) -> list:
        clauses = []
        for column, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set, frozenset)):
                values = [self._coerce(table, column, v) for v in value]
                clauses.append(table.c[column].in_(values))
                continue
            value = self._coerce(table, column, value)
            if value is None:
                clauses.append(table.c[column].is_(None))
            else:
                clauses.append(table.c[column] == value)
        return clauses

    async def _run(self, table: Table, stmt: Any) -> list[Record]:
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(stmt)
                if not result.returns_rows:
                    return []
                return [_row_to_record(row) for row in result.mappings().all()]
        except IntegrityError as e:
            logger.error(f"Constraint violation on {table.name}: {e.orig}")
            raise StoreError(f"Constraint violation on {table.name}", table=table.name, cause=e) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error on {table.name}: {e}")
            raise StoreError(f"Query on {table.name} failed", table=table.name, cause=e) from e

    async def find_one(self, table: str, filters: dict[str, Any]) -> Optional[Record]:
        t = self._table(table)
        rows = await self._run(t, select(t).where(*self._where(t, filters)).limit(2))
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
        t = self._table(table)
        stmt = select(t).where(*self._where(t, filters))
        if order_by:
            if order_by not in t.c:
                raise StoreError(f"Unknown column {table}.{order_by}", table=table)
            column = t.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._run(t, stmt)

    async def insert(self, table: str, values: Record) -> Record:
        t = self._table(table)
        rows = await self._run(t, insert(t).values(**self._values(t, values)).returning(t))
        if not rows:
            raise StoreError(f"Insert into {table} returned no row", table=table)
        return rows[0]

    async def update(self, table: str, record_id: Any, patch: Record) -> Record:
        t = self._table(table)
        stmt = (
            update(t)
            .where(t.c.id == self._coerce(t, "id", record_id))
            .values(**self._values(t, patch))
            .returning(t)
        )
        rows = await self._run(t, stmt)
        if not rows:
            raise RecordNotFoundError(f"No {table} row with id {record_id}", table=table)
        return rows[0]

    async def delete(self, table: str, record_id: Any) -> None:
        t = self._table(table)
        await self._run(t, delete(t).where(t.c.id == self._coerce(t, "id", record_id)))
