"""Catalog Service models package."""

from services.catalog_service.models.catalog import (  # noqa: F401
    BOOKS_TABLE,
    RECOMMENDATIONS_TABLE,
    YEARS_TABLE,
    Book,
    Recommendation,
    Year,
)

__all__ = [
    "BOOKS_TABLE",
    "RECOMMENDATIONS_TABLE",
    "YEARS_TABLE",
    "Book",
    "Recommendation",
    "Year",
]
