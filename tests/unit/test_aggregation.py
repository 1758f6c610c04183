"""Unit tests for recommendation grouping and aggregation.

Pure functions, so recommendations are built in memory with their relations
already attached.
"""

from datetime import datetime, timedelta, timezone

import pytest

from services.catalog_service.schemas import Recommendation, Year
from services.catalog_service.services.aggregation import (
    group_books_by_year,
    recommendations_by_member,
    summarize_recommendations,
)
from tests.factories import BookFactory, MemberFactory, RecommendationFactory, YearFactory


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _rec(book, member, year, rating=None, minutes_ago=0) -> Recommendation:
    row = RecommendationFactory.create(
        book_id=book["id"],
        family_member_id=member["id"],
        year_id=year["id"],
        rating=rating,
        created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    )
    return Recommendation.model_validate(
        {**row, "book": book, "family_member": member, "year": year}
    )


@pytest.fixture
def family():
    return {
        "mia": MemberFactory.create(name="Mia Parker"),
        "leo": MemberFactory.create(name="Leo Parker"),
    }


@pytest.fixture
def books():
    return {
        "hobbit": BookFactory.create(title="The Hobbit"),
        "matilda": BookFactory.create(title="Matilda", author="Roald Dahl"),
        "dune": BookFactory.create(title="dune", author="Frank Herbert"),
    }


@pytest.fixture
def years():
    return {
        "2023": YearFactory.create(academic_year="2023-2024"),
        "2024": YearFactory.create(academic_year="2024-2025", is_active=True),
        "2025": YearFactory.create(academic_year="2025-2026"),
    }


# ---------------------------------------------------------------------------
# recommendations_by_member
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_groups_by_member_in_first_seen_order(family, books, years):
    recs = [
        _rec(books["hobbit"], family["leo"], years["2024"]),
        _rec(books["matilda"], family["mia"], years["2024"]),
        _rec(books["dune"], family["leo"], years["2024"]),
    ]

    groups = recommendations_by_member(recs)

    assert [g.family_member.name for g in groups] == ["Leo Parker", "Mia Parker"]
    assert [r.book.title for r in groups[0].recommendations] == ["The Hobbit", "dune"]
    assert len(groups[1].recommendations) == 1


@pytest.mark.unit
def test_groups_empty():
    assert recommendations_by_member([]) == []


# ---------------------------------------------------------------------------
# group_books_by_year
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_books_by_year_newest_first_and_deduplicated(family, books, years):
    recs = [
        _rec(books["hobbit"], family["mia"], years["2024"]),
        _rec(books["hobbit"], family["leo"], years["2024"]),
        _rec(books["matilda"], family["mia"], years["2023"]),
    ]
    year_models = [Year.model_validate(y) for y in years.values()]

    grouped = group_books_by_year(year_models, recs)

    assert [g.year.academic_year for g in grouped] == ["2025-2026", "2024-2025", "2023-2024"]
    assert grouped[0].books == []
    assert [b.title for b in grouped[1].books] == ["The Hobbit"]
    assert [b.title for b in grouped[2].books] == ["Matilda"]


@pytest.mark.unit
def test_books_by_year_ignores_unknown_years(family, books, years):
    recs = [_rec(books["hobbit"], family["mia"], years["2024"])]

    grouped = group_books_by_year([Year.model_validate(years["2023"])], recs)

    assert len(grouped) == 1
    assert grouped[0].books == []


# ---------------------------------------------------------------------------
# summarize_recommendations
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_summary_counts_and_averages(family, books, years):
    recs = [
        _rec(books["hobbit"], family["mia"], years["2024"], rating=5),
        _rec(books["hobbit"], family["leo"], years["2023"], rating=4),
        _rec(books["hobbit"], family["mia"], years["2024"], rating=4),
        _rec(books["matilda"], family["leo"], years["2024"]),
    ]

    summaries = summarize_recommendations(recs)

    hobbit, matilda = summaries
    assert hobbit.book.title == "The Hobbit"
    assert hobbit.recommendation_count == 3
    assert hobbit.recommenders == ["Mia Parker", "Leo Parker"]
    assert hobbit.average_rating == 4.33
    assert hobbit.academic_years == ["2024-2025", "2023-2024"]
    assert matilda.average_rating is None


@pytest.mark.unit
def test_summary_ties_sorted_by_title_case_insensitive(family, books, years):
    recs = [
        _rec(books["hobbit"], family["mia"], years["2024"]),
        _rec(books["dune"], family["mia"], years["2024"]),
        _rec(books["matilda"], family["mia"], years["2024"]),
    ]

    titles = [s.book.title for s in summarize_recommendations(recs)]

    assert titles == ["dune", "Matilda", "The Hobbit"]


@pytest.mark.unit
def test_summary_skips_recommendations_without_book(family, years):
    row = RecommendationFactory.create(family_member_id=family["mia"]["id"])
    rec = Recommendation.model_validate(row)

    assert summarize_recommendations([rec]) == []

