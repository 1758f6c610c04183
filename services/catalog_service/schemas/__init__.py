"""Catalog Service schemas package."""

from services.catalog_service.schemas.catalog import (  # noqa: F401
    AdminOverview,
    Book,
    BookCreate,
    BookRecommendationSummary,
    BookUpdate,
    MemberRecommendations,
    Recommendation,
    RecommendationCreate,
    RecommendationUpdate,
    Year,
    YearBooks,
    YearCreate,
    sanitize_text,
)

__all__ = [
    "AdminOverview",
    "Book",
    "BookCreate",
    "BookRecommendationSummary",
    "BookUpdate",
    "MemberRecommendations",
    "Recommendation",
    "RecommendationCreate",
    "RecommendationUpdate",
    "Year",
    "YearBooks",
    "YearCreate",
    "sanitize_text",
]
