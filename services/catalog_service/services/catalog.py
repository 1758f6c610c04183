"""
Catalog operations over the data store.

Reads are open to any caller. Writes take the current ``SessionState`` and
check it first:
- Books and recommendations need a signed-in family member
- Years and the admin overview need an admin
"""

from typing import Any, Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.store import DataStore, Record, RecordNotFoundError
from services.catalog_service.models import BOOKS_TABLE, RECOMMENDATIONS_TABLE, YEARS_TABLE
from services.catalog_service.schemas import (
    AdminOverview,
    Book,
    BookCreate,
    BookUpdate,
    Recommendation,
    RecommendationCreate,
    RecommendationUpdate,
    Year,
    YearBooks,
    YearCreate,
)
from services.catalog_service.services.aggregation import group_books_by_year
from services.members_service.models import FAMILY_MEMBERS_TABLE
from services.members_service.schemas import Member
from services.members_service.services.access import (
    AccessDeniedError,
    require_admin,
    require_member,
)
from services.members_service.services.reconciler import SessionState

logger = get_logger(__name__)

# Required columns a partial update must never null out
_REQUIRED_BOOK_FIELDS = {"title", "author"}


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


async def list_books(store: DataStore) -> list[Book]:
    rows = await store.find_many(BOOKS_TABLE, order_by="title")
    return [Book.model_validate(row) for row in rows]


async def get_book(store: DataStore, book_id: str) -> Optional[Book]:
    row = await store.find_one(BOOKS_TABLE, {"id": book_id})
    return Book.model_validate(row) if row else None


async def create_book(store: DataStore, state: SessionState, data: BookCreate) -> Book:
    member = require_member(state)
    row = await store.insert(BOOKS_TABLE, data.model_dump(mode="json", exclude_none=True))
    book = Book.model_validate(row)
    logger.info(f"Family member {member.id} added book {book.id} ({book.title})")
    return book


async def update_book(
    store: DataStore, state: SessionState, book_id: str, data: BookUpdate
) -> Book:
    require_member(state)
    patch = {
        key: value
        for key, value in data.model_dump(mode="json", exclude_unset=True).items()
        if not (key in _REQUIRED_BOOK_FIELDS and value is None)
    }
    if not patch:
        book = await get_book(store, book_id)
        if book is None:
            raise RecordNotFoundError(f"No books row with id {book_id}", table=BOOKS_TABLE)
        return book
    return Book.model_validate(await store.update(BOOKS_TABLE, book_id, patch))


async def delete_book(store: DataStore, state: SessionState, book_id: str) -> None:
    member = require_member(state)
    await store.delete(BOOKS_TABLE, book_id)
    logger.info(f"Family member {member.id} deleted book {book_id}")


# ---------------------------------------------------------------------------
# Years
# ---------------------------------------------------------------------------


async def list_years(store: DataStore) -> list[Year]:
    rows = await store.find_many(YEARS_TABLE, order_by="academic_year", descending=True)
    return [Year.model_validate(row) for row in rows]


async def get_active_year(store: DataStore) -> Optional[Year]:
    row = await store.find_one(YEARS_TABLE, {"is_active": True})
    return Year.model_validate(row) if row else None


async def set_active_year(store: DataStore, state: SessionState, year_id: str) -> Year:
    """Make ``year_id`` the only active academic year."""
    require_admin(state)
    # Activate first so an unknown id fails before any other year changes
    year = Year.model_validate(await store.update(YEARS_TABLE, year_id, {"is_active": True}))
    for row in await store.find_many(YEARS_TABLE, {"is_active": True}):
        if str(row["id"]) != year.id:
            await store.update(YEARS_TABLE, row["id"], {"is_active": False})
    logger.info(f"Active academic year is now {year.academic_year}")
    return year


async def create_year(store: DataStore, state: SessionState, data: YearCreate) -> Year:
    require_admin(state)
    row = await store.insert(
        YEARS_TABLE, {"academic_year": data.academic_year, "is_active": False}
    )
    year = Year.model_validate(row)
    if data.is_active:
        year = await set_active_year(store, state, year.id)
    return year


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


def _index(rows: list[Record]) -> dict[str, Record]:
    return {str(row["id"]): row for row in rows}


def _referenced(rows: list[Record], column: str) -> list[str]:
    return sorted({str(row[column]) for row in rows})


async def _attach_relations(store: DataStore, rows: list[Record]) -> list[Recommendation]:
    """Resolve book, family member and year for each recommendation row."""
    if not rows:
        return []
    books = _index(
        await store.find_many(BOOKS_TABLE, {"id": _referenced(rows, "book_id")})
    )
    members = _index(
        await store.find_many(
            FAMILY_MEMBERS_TABLE, {"id": _referenced(rows, "family_member_id")}
        )
    )
    years = _index(
        await store.find_many(YEARS_TABLE, {"id": _referenced(rows, "year_id")})
    )

    recommendations = []
    for row in rows:
        data: dict[str, Any] = dict(row)
        data["book"] = books.get(str(row["book_id"]))
        data["family_member"] = members.get(str(row["family_member_id"]))
        data["year"] = years.get(str(row["year_id"]))
        recommendations.append(Recommendation.model_validate(data))
    return recommendations


async def list_recommendations(
    store: DataStore, year_id: Optional[str] = None
) -> list[Recommendation]:
    """All recommendations (or one year's), newest first."""
    filters = {"year_id": year_id} if year_id else None
    rows = await store.find_many(
        RECOMMENDATIONS_TABLE, filters, order_by="created_at", descending=True
    )
    return await _attach_relations(store, rows)


async def latest_recommendations(
    store: DataStore, limit: Optional[int] = None
) -> list[Recommendation]:
    limit = limit or get_settings().RECENT_ITEMS_LIMIT
    rows = await store.find_many(
        RECOMMENDATIONS_TABLE, order_by="created_at", descending=True, limit=limit
    )
    return await _attach_relations(store, rows)


async def _get_recommendation_row(store: DataStore, recommendation_id: str) -> Record:
    row = await store.find_one(RECOMMENDATIONS_TABLE, {"id": recommendation_id})
    if row is None:
        raise RecordNotFoundError(
            f"No recommendations row with id {recommendation_id}",
            table=RECOMMENDATIONS_TABLE,
        )
    return row


def _check_owner(state: SessionState, member: Member, family_member_id: str) -> None:
    # Members recommend as themselves; admins may act for anyone
    if str(family_member_id) != member.id and not state.is_admin:
        raise AccessDeniedError("You can only manage your own recommendations")


async def create_recommendation(
    store: DataStore, state: SessionState, data: RecommendationCreate
) -> Recommendation:
    member = require_member(state)
    _check_owner(state, member, str(data.family_member_id))
    row = await store.insert(RECOMMENDATIONS_TABLE, data.model_dump(mode="json"))
    (recommendation,) = await _attach_relations(store, [row])
    logger.info(f"Family member {member.id} recommended book {recommendation.book_id}")
    return recommendation


async def update_recommendation(
    store: DataStore,
    state: SessionState,
    recommendation_id: str,
    data: RecommendationUpdate,
) -> Recommendation:
    member = require_member(state)
    existing = await _get_recommendation_row(store, recommendation_id)
    _check_owner(state, member, existing["family_member_id"])

    patch = data.model_dump(mode="json", exclude_unset=True)
    if "year_id" in patch and patch["year_id"] is None:
        del patch["year_id"]
    patch["updated_at"] = utc_now().isoformat()
    row = await store.update(RECOMMENDATIONS_TABLE, recommendation_id, patch)
    (recommendation,) = await _attach_relations(store, [row])
    return recommendation


async def delete_recommendation(
    store: DataStore, state: SessionState, recommendation_id: str
) -> None:
    member = require_member(state)
    existing = await _get_recommendation_row(store, recommendation_id)
    _check_owner(state, member, existing["family_member_id"])
    await store.delete(RECOMMENDATIONS_TABLE, recommendation_id)


async def books_by_year(store: DataStore) -> list[YearBooks]:
    """Academic years, newest first, with the books recommended in each."""
    years = await list_years(store)
    recommendations = await list_recommendations(store)
    return group_books_by_year(years, recommendations)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


async def admin_overview(store: DataStore, state: SessionState) -> AdminOverview:
    require_admin(state)
    return AdminOverview(
        books=len(await store.find_many(BOOKS_TABLE)),
        years=len(await store.find_many(YEARS_TABLE)),
        family_members=len(await store.find_many(FAMILY_MEMBERS_TABLE)),
        recommendations=len(await store.find_many(RECOMMENDATIONS_TABLE)),
    )
