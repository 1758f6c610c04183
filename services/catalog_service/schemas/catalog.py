"""Pydantic schemas for the book catalog.

Input schemas carry the same rules as the book and recommendation forms:
- Title 1-500 characters, author 1-200, both trimmed
- Publication year between 1000 and next year
- ISBN of 10 or 13 digits
- Cover image must be an http(s) URL
- Description up to 2000 characters, notes up to 1000
"""

import re
import uuid
from datetime import datetime
from typing import Annotated, Any, Optional

from libs.common.datetime_utils import current_year
from libs.common.types import RecordId
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
)
from services.members_service.schemas import Member

MAX_TITLE_LENGTH = 500
MAX_AUTHOR_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_NOTES_LENGTH = 1000
MIN_PUBLICATION_YEAR = 1000

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_INLINE_HANDLER_DQ = re.compile(r'on\w+="[^"]*"')
_INLINE_HANDLER_SQ = re.compile(r"on\w+='[^']*'")
_ISBN = re.compile(r"^(\d{10}|\d{13})$")
_HTTP_URL = re.compile(r"^https?://.+")


def sanitize_text(text: str) -> str:
    """Remove script tags and inline event handlers, then trim."""
    text = _SCRIPT_TAG.sub("", text)
    text = _INLINE_HANDLER_DQ.sub("", text)
    text = _INLINE_HANDLER_SQ.sub("", text)
    return text.strip()


def _clean_text(v: Any) -> Any:
    if isinstance(v, str):
        return sanitize_text(v)
    return v


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _check_publication_year(v: Optional[int]) -> Optional[int]:
    if v is None:
        return v
    if v < MIN_PUBLICATION_YEAR:
        raise ValueError(f"Year must be after {MIN_PUBLICATION_YEAR}")
    if v > current_year() + 1:
        raise ValueError("Year cannot be in the future")
    return v


def _normalize_isbn(v: Any) -> Any:
    v = _blank_to_none(v)
    if isinstance(v, str):
        return v.replace("-", "").replace(" ", "")
    return v


def _check_isbn(v: Optional[str]) -> Optional[str]:
    if v is not None and not _ISBN.match(v):
        raise ValueError("ISBN must be 10 or 13 digits")
    return v


def _check_url(v: Optional[str]) -> Optional[str]:
    if v is not None and not _HTTP_URL.match(v):
        raise ValueError("Must be a valid URL")
    return v


Title = Annotated[
    str,
    StringConstraints(min_length=1, max_length=MAX_TITLE_LENGTH),
    BeforeValidator(_clean_text),
]
Author = Annotated[
    str,
    StringConstraints(min_length=1, max_length=MAX_AUTHOR_LENGTH),
    BeforeValidator(_clean_text),
]
Description = Annotated[
    Optional[Annotated[str, StringConstraints(max_length=MAX_DESCRIPTION_LENGTH)]],
    BeforeValidator(_clean_text),
]
Notes = Annotated[
    Optional[Annotated[str, StringConstraints(max_length=MAX_NOTES_LENGTH)]],
    BeforeValidator(_clean_text),
]
PublicationYear = Annotated[Optional[int], AfterValidator(_check_publication_year)]
Isbn = Annotated[
    Optional[str], BeforeValidator(_normalize_isbn), AfterValidator(_check_isbn)
]
CoverImage = Annotated[
    Optional[str], BeforeValidator(_blank_to_none), AfterValidator(_check_url)
]
Rating = Optional[Annotated[int, Field(ge=1, le=5)]]
PageCount = Optional[Annotated[int, Field(ge=1)]]


# ============================================================================
# BOOKS
# ============================================================================


class BookCreate(BaseModel):
    title: Title
    author: Author
    publication_year: PublicationYear = None
    cover_image: CoverImage = None
    isbn: Isbn = None
    google_books_id: Optional[str] = None
    description: Description = None
    page_count: PageCount = None
    categories: Optional[list[str]] = None


class BookUpdate(BaseModel):
    """Partial update; only fields that were set are written."""

    title: Optional[Title] = None
    author: Optional[Author] = None
    publication_year: PublicationYear = None
    cover_image: CoverImage = None
    isbn: Isbn = None
    google_books_id: Optional[str] = None
    description: Description = None
    page_count: PageCount = None
    categories: Optional[list[str]] = None


class Book(BaseModel):
    id: RecordId
    title: str
    author: str
    publication_year: Optional[int] = None
    cover_image: Optional[str] = None
    isbn: Optional[str] = None
    google_books_id: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    categories: Optional[list[str]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# YEARS
# ============================================================================


class YearCreate(BaseModel):
    academic_year: Annotated[
        str,
        StringConstraints(strip_whitespace=True, min_length=1, max_length=20),
    ]
    is_active: bool = False


class Year(BaseModel):
    id: RecordId
    academic_year: str
    is_active: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# RECOMMENDATIONS
# ============================================================================


class RecommendationCreate(BaseModel):
    book_id: uuid.UUID
    family_member_id: uuid.UUID
    year_id: uuid.UUID
    notes: Notes = None
    rating: Rating = None


class RecommendationUpdate(BaseModel):
    year_id: Optional[uuid.UUID] = None
    notes: Notes = None
    rating: Rating = None


class Recommendation(BaseModel):
    id: RecordId
    book_id: RecordId
    family_member_id: RecordId
    year_id: RecordId
    notes: Optional[str] = None
    rating: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    book: Optional[Book] = None
    family_member: Optional[Member] = None
    year: Optional[Year] = None

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# AGGREGATES
# ============================================================================


class MemberRecommendations(BaseModel):
    """Recommendations of one family member (year detail view)."""

    family_member_id: str
    family_member: Optional[Member] = None
    recommendations: list[Recommendation]


class YearBooks(BaseModel):
    """Books recommended during one academic year."""

    year: Year
    books: list[Book]


class BookRecommendationSummary(BaseModel):
    book: Book
    recommendation_count: int
    recommenders: list[str]
    average_rating: Optional[float] = None
    academic_years: list[str]


class AdminOverview(BaseModel):
    books: int
    years: int
    family_members: int
    recommendations: int
