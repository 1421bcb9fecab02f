from datetime import datetime, timedelta

import pytest

from storydash.models import Donation, Genre, Story, StoryView, User

from tests.conftest import NOW, seed


@pytest.fixture
async def donations(session):
    """Two stories; one donation last month falls outside the 30 day window."""
    await seed(
        session,
        User(id="author", name="Ana", username="ana"),
        User(id="d1", name="Dee", username="dee"),
        User(id="d2", name=None, username="ghost"),
        Genre(id="g1", name="Mystery", slug="mystery"),
        Story(id="C1", title="Clues", slug="clues", author_id="author", genre_id="g1"),
        Story(id="C2", title="Cold Case", author_id="author"),
        StoryView(story_id="C2", created_at=datetime(2025, 5, 5)),
        StoryView(story_id="C2", created_at=NOW - timedelta(hours=1)),
        StoryView(story_id="C1", created_at=NOW - timedelta(hours=1)),
        Donation(id="t1", amount_cents=500, status="collected", donor_id="d1", recipient_id="author", story_id="C1", message="Love it", created_at=datetime(2026, 10, 10)),
        Donation(id="t2", amount_cents=300, status="collected", donor_id="d2", recipient_id="author", story_id="C1", created_at=datetime(2026, 10, 15)),
        Donation(id="t3", amount_cents=10000, status="pending", donor_id="d1", recipient_id="author", story_id="C1", created_at=datetime(2026, 10, 12)),
        Donation(id="t4", amount_cents=1000, status="collected", donor_id="d1", recipient_id="author", story_id="C2", created_at=datetime(2026, 9, 5)),
    )


async def test_earnings_totals(donations, dashboard):
    report = await dashboard.get_earnings_data("author", "30days", now=NOW)

    assert report.total_earnings == 18.0
    assert report.this_month_earnings == 8.0
    assert report.last_month_earnings == 10.0
    assert report.monthly_change == -20.0


async def test_transactions_limited_to_window_and_newest_first(donations, dashboard):
    report = await dashboard.get_earnings_data("author", "30days", now=NOW)

    assert [t.id for t in report.transactions] == ["t2", "t1"]
    assert report.pagination.total_items == 2
    assert report.pagination.total_pages == 1
    assert report.pagination.has_more is False


async def test_transaction_fields(donations, dashboard):
    report = await dashboard.get_earnings_data("author", "30days", now=NOW)
    latest, earlier = report.transactions

    # Donor without a display name
    assert latest.donor_name == "Anonymous"
    assert latest.donor_username == "ghost"
    assert latest.amount == 3.0
    assert latest.message is None
    assert earlier.donor_name == "Dee"
    assert earlier.story_title == "Clues"
    assert earlier.story_slug == "clues"
    assert earlier.message == "Love it"
    assert earlier.created_at == datetime(2026, 10, 10)


async def test_all_time_includes_every_collected_transaction(donations, dashboard):
    report = await dashboard.get_earnings_data("author", "all", now=NOW)

    assert [t.id for t in report.transactions] == ["t2", "t1", "t4"]
    assert report.pagination.total_items == 3
    # Falls back to the id when the story has no slug
    assert report.transactions[-1].story_slug == "C2"


async def test_story_breakdown(donations, dashboard):
    report = await dashboard.get_earnings_data("author", "30days", now=NOW)

    assert [(s.id, s.earnings) for s in report.stories] == [("C1", 8.0), ("C2", 0.0)]
    by_id = {s.id: s for s in report.stories}
    # View counts are lifetime regardless of the window
    assert by_id["C2"].view_count == 2
    assert by_id["C1"].view_count == 1
    assert by_id["C1"].genre_name == "Mystery"
    assert by_id["C2"].genre_name == "General"
    assert by_id["C2"].slug == "C2"


async def test_story_breakdown_all_time(donations, dashboard):
    report = await dashboard.get_earnings_data("author", "all", now=NOW)

    assert [(s.id, s.earnings) for s in report.stories] == [("C2", 10.0), ("C1", 8.0)]


async def test_earnings_chart_included(donations, dashboard):
    report = await dashboard.get_earnings_data("author", "30days", now=NOW)

    assert [(p.name, p.earnings) for p in report.chart_data][-2:] == [("Sep", 10.0), ("Oct", 8.0)]
    assert len(report.chart_data) == 7


async def test_pagination(session, dashboard):
    objects = [
        User(id="author"),
        User(id="fan", name="Fan"),
        Story(id="s", title="Serial", author_id="author"),
    ]
    for day in range(1, 13):
        objects.append(
            Donation(
                id=f"p{day:02d}",
                amount_cents=100,
                status="collected",
                donor_id="fan",
                recipient_id="author",
                story_id="s",
                created_at=datetime(2026, 10, day),
            )
        )
    await seed(session, *objects)

    first = await dashboard.get_earnings_data("author", "30days", page=1, page_size=5, now=NOW)
    last = await dashboard.get_earnings_data("author", "30days", page=3, page_size=5, now=NOW)

    assert [t.id for t in first.transactions] == ["p12", "p11", "p10", "p09", "p08"]
    assert first.pagination.total_items == 12
    assert first.pagination.total_pages == 3
    assert first.pagination.has_more is True
    assert [t.id for t in last.transactions] == ["p02", "p01"]
    assert last.pagination.has_more is False


async def test_page_beyond_range_is_empty(donations, dashboard):
    report = await dashboard.get_earnings_data("author", "30days", page=4, page_size=10, now=NOW)

    assert report.transactions == []
    assert report.pagination.total_items == 2
    assert report.pagination.has_more is False


async def test_earnings_for_user_without_stories(dashboard):
    report = await dashboard.get_earnings_data("nobody", now=NOW)

    assert report.total_earnings == 0
    assert report.monthly_change == 0
    assert report.stories == []
    assert report.transactions == []
    assert report.pagination.total_pages == 0
    assert report.pagination.has_more is False
    assert [p.earnings for p in report.chart_data] == [0] * 7
