"""Generic record store used by the member and catalog services.

Records are plain dicts keyed by column name. Filters are equality
predicates combined with AND; a list, tuple or set value matches any of its
items and None matches NULL.
"""

from typing import Any, Optional, Protocol

Record = dict[str, Any]


class StoreError(Exception):
    """Base exception for data store failures."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.table = table
        self.cause = cause
        super().__init__(message)


class RecordNotFoundError(StoreError):
    """A write targeted a record that does not exist."""


class DataStore(Protocol):
    async def find_one(self, table: str, filters: dict[str, Any]) -> Optional[Record]: ...

    async def find_many(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Record]: ...

    async def insert(self, table: str, values: Record) -> Record: ...

    async def update(self, table: str, record_id: Any, patch: Record) -> Record: ...

    async def delete(self, table: str, record_id: Any) -> None: ...
