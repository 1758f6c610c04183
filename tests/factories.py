"""
Factories and in-memory fakes for tests.

Row factories return plain dicts shaped like data store records; override any
field via kwargs. ``FakeStore`` and ``FakeAuthProvider`` stand in for the
Supabase-backed implementations and record every write they receive.

Usage:
    store = FakeStore()
    member = store.seed(FAMILY_MEMBERS_TABLE, MemberFactory.create(email="m1@test.com"))
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from libs.auth.models import AuthEvent, Identity
from libs.db.store import Record, RecordNotFoundError, StoreError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------


class IdentityFactory:
    @staticmethod
    def create(**overrides) -> Identity:
        defaults = {"id": _uuid(), "email": _unique_email()}
        defaults.update(overrides)
        return Identity(**defaults)


class MemberFactory:
    @staticmethod
    def create(**overrides) -> Record:
        defaults = {
            "id": _uuid(),
            "user_id": None,
            "email": _unique_email(),
            "name": "Test Member",
            "avatar_url": None,
            "is_admin": False,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return defaults


class BookFactory:
    @staticmethod
    def create(**overrides) -> Record:
        defaults = {
            "id": _uuid(),
            "title": "The Hobbit",
            "author": "J.R.R. Tolkien",
            "publication_year": 1937,
            "cover_image": None,
            "isbn": None,
            "google_books_id": None,
            "description": None,
            "page_count": None,
            "categories": None,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return defaults


class YearFactory:
    @staticmethod
    def create(**overrides) -> Record:
        defaults = {
            "id": _uuid(),
            "academic_year": "2024-2025",
            "is_active": False,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return defaults


class RecommendationFactory:
    @staticmethod
    def create(**overrides) -> Record:
        defaults = {
            "id": _uuid(),
            "book_id": _uuid(),
            "family_member_id": _uuid(),
            "year_id": _uuid(),
            "notes": None,
            "rating": None,
            "created_at": _now(),
            "updated_at": None,
        }
        defaults.update(overrides)
        return defaults


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeStore:
    """In-memory DataStore with the same filter semantics as the real ones."""

    def __init__(self):
        self.tables: dict[str, list[Record]] = {}
        self.updates: list[tuple[str, str, Record]] = []
        self.inserts: list[tuple[str, Record]] = []
        self.queries: list[tuple[str, Optional[dict[str, Any]]]] = []
        self.fail_with: Optional[BaseException] = None

    def seed(self, table: str, row: Record) -> Record:
        self.tables.setdefault(table, []).append(dict(row))
        return row

    def rows(self, table: str) -> list[Record]:
        return self.tables.setdefault(table, [])

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _matches_value(actual: Any, expected: Any) -> bool:
        if isinstance(expected, (list, tuple, set, frozenset)):
            return str(actual) in {str(v) for v in expected}
        if expected is None:
            return actual is None
        return str(actual) == str(expected)

    def _matches(self, row: Record, filters: Optional[dict[str, Any]]) -> bool:
        return all(
            self._matches_value(row.get(k), v) for k, v in (filters or {}).items()
        )

    async def find_one(self, table: str, filters: dict[str, Any]) -> Optional[Record]:
        self._check()
        found = [r for r in self.rows(table) if self._matches(r, filters)]
        if len(found) > 1:
            raise StoreError(f"Expected at most one row in {table}", table=table)
        return dict(found[0]) if found else None

    async def find_many(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Record]:
        self._check()
        self.queries.append((table, filters))
        found = [dict(r) for r in self.rows(table) if self._matches(r, filters)]
        if order_by:
            found.sort(key=lambda r: r[order_by], reverse=descending)
        if limit is not None:
            found = found[:limit]
        return found

    async def insert(self, table: str, values: Record) -> Record:
        self._check()
        row = {"id": _uuid(), "created_at": _now(), **values}
        self.inserts.append((table, dict(values)))
        self.rows(table).append(row)
        return dict(row)

    async def update(self, table: str, record_id: Any, patch: Record) -> Record:
        self._check()
        self.updates.append((table, str(record_id), dict(patch)))
        for row in self.rows(table):
            if str(row["id"]) == str(record_id):
                row.update(patch)
                return dict(row)
        raise RecordNotFoundError(f"No {table} row with id {record_id}", table=table)

    async def delete(self, table: str, record_id: Any) -> None:
        self._check()
        self.tables[table] = [r for r in self.rows(table) if str(r["id"]) != str(record_id)]


class FakeAuthProvider:
    """AuthProvider that records calls and lets tests emit events."""

    def __init__(self, identity: Optional[Identity] = None):
        self.identity = identity
        self.sign_out_calls = 0
        self.oauth_calls: list[str] = []
        self.magic_link_calls: list[str] = []
        self.session_error: Optional[BaseException] = None
        self.sign_out_error: Optional[BaseException] = None
        self.callbacks: list = []

    async def get_current_session(self) -> Optional[Identity]:
        if self.session_error is not None:
            raise self.session_error
        return self.identity

    async def sign_in_with_oauth(self, provider: str) -> Optional[str]:
        self.oauth_calls.append(provider)
        return f"https://auth.test/authorize?provider={provider}"

    async def sign_in_with_magic_link(self, email: str) -> None:
        self.magic_link_calls.append(email)

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.identity = None

    def subscribe(self, callback):
        self.callbacks.append(callback)

        def unsubscribe() -> None:
            self.callbacks.remove(callback)

        return unsubscribe

    def emit(self, event: AuthEvent) -> None:
        for callback in list(self.callbacks):
            callback(event)
