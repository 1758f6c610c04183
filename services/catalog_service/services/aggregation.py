"""
Grouping and aggregation of recommendations.

Pure functions with no data store dependencies for easy testing. Inputs are
recommendations with their book, family member and year already attached.
"""

from typing import Optional

from services.catalog_service.schemas import (
    Book,
    BookRecommendationSummary,
    MemberRecommendations,
    Recommendation,
    Year,
    YearBooks,
)


def recommendations_by_member(
    recommendations: list[Recommendation],
) -> list[MemberRecommendations]:
    """
    Group recommendations by family member, keeping first-seen order.

    Within a group recommendations keep their input order.
    """
    groups: dict[str, MemberRecommendations] = {}
    for rec in recommendations:
        group = groups.get(rec.family_member_id)
        if group is None:
            group = MemberRecommendations(
                family_member_id=rec.family_member_id,
                family_member=rec.family_member,
                recommendations=[],
            )
            groups[rec.family_member_id] = group
        group.recommendations.append(rec)
    return list(groups.values())


def group_books_by_year(
    years: list[Year], recommendations: list[Recommendation]
) -> list[YearBooks]:
    """
    Books recommended in each academic year, newest year first.

    A book recommended several times in a year is listed once. Years without
    recommendations are included with an empty list.
    """
    books_per_year: dict[str, dict[str, Book]] = {year.id: {} for year in years}
    for rec in recommendations:
        if rec.book is None or rec.year_id not in books_per_year:
            continue
        books_per_year[rec.year_id].setdefault(rec.book.id, rec.book)

    ordered = sorted(years, key=lambda y: y.academic_year, reverse=True)
    return [
        YearBooks(year=year, books=list(books_per_year[year.id].values()))
        for year in ordered
    ]


def _average(values: list[int]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def summarize_recommendations(
    recommendations: list[Recommendation],
) -> list[BookRecommendationSummary]:
    """
    Aggregate recommendations per book.

    Sorted by number of recommendations (highest first), then title.
    """
    by_book: dict[str, list[Recommendation]] = {}
    books: dict[str, Book] = {}
    for rec in recommendations:
        if rec.book is None:
            continue
        books[rec.book_id] = rec.book
        by_book.setdefault(rec.book_id, []).append(rec)

    summaries = []
    for book_id, recs in by_book.items():
        recommenders: list[str] = []
        academic_years: list[str] = []
        for rec in recs:
            name = rec.family_member.name if rec.family_member else rec.family_member_id
            if name not in recommenders:
                recommenders.append(name)
            if rec.year and rec.year.academic_year not in academic_years:
                academic_years.append(rec.year.academic_year)

        summaries.append(
            BookRecommendationSummary(
                book=books[book_id],
                recommendation_count=len(recs),
                recommenders=recommenders,
                average_rating=_average([r.rating for r in recs if r.rating is not None]),
                academic_years=sorted(academic_years, reverse=True),
            )
        )

    summaries.sort(key=lambda s: (-s.recommendation_count, s.book.title.lower()))
    return summaries
