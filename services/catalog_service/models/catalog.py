"""Catalog models: books, academic years and recommendations."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column

BOOKS_TABLE = "books"
YEARS_TABLE = "years"
RECOMMENDATIONS_TABLE = "recommendations"


def _id_column() -> Mapped[uuid.UUID]:
    return mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )


def _created_at_column() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now()
    )


class Book(Base):
    __tablename__ = BOOKS_TABLE

    id: Mapped[uuid.UUID] = _id_column()
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(200), nullable=False)
    publication_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cover_image: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    isbn: Mapped[Optional[str]] = mapped_column(String(13), nullable=True)
    google_books_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    page_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    categories: Mapped[Optional[list[str]]] = mapped_column(ARRAY(String), nullable=True)

    created_at: Mapped[datetime] = _created_at_column()

    def __repr__(self):
        return f"<Book {self.title}>"


class Year(Base):
    """An academic year, e.g. ``2024-2025``. At most one is active."""

    __tablename__ = YEARS_TABLE

    id: Mapped[uuid.UUID] = _id_column()
    academic_year: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    created_at: Mapped[datetime] = _created_at_column()

    def __repr__(self):
        return f"<Year {self.academic_year}>"


class Recommendation(Base):
    """A family member recommending a book during an academic year."""

    __tablename__ = RECOMMENDATIONS_TABLE

    id: Mapped[uuid.UUID] = _id_column()
    book_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    family_member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    year_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = _created_at_column()
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utc_now
    )
