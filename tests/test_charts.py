from datetime import datetime

import pytest

from storydash.models import (
    Chapter,
    ChapterView,
    Comment,
    Donation,
    Like,
    Story,
    StoryView,
    User,
)

from tests.conftest import NOW, seed

MONTHS = ["Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct"]


@pytest.fixture
async def monthly_activity(session):
    await seed(
        session,
        User(id="u1"),
        User(id="u2"),
        User(id="fan"),
        Story(id="s1", title="First", author_id="u1"),
        Story(id="s2", title="Second", author_id="u1"),
        Story(id="elsewhere", title="Not mine", author_id="u2"),
        Chapter(id="c1", story_id="s1", title="One"),
        # reads
        StoryView(story_id="s1", created_at=datetime(2026, 4, 1)),
        StoryView(story_id="s2", created_at=datetime(2026, 8, 31, 23, 59)),
        ChapterView(chapter_id="c1", created_at=datetime(2026, 8, 2)),
        StoryView(story_id="s1", created_at=datetime(2026, 10, 18, 9)),
        StoryView(story_id="s1", created_at=datetime(2026, 3, 31, 23, 59)),
        StoryView(story_id="elsewhere", created_at=datetime(2026, 8, 2)),
        # engagement
        Like(story_id="s1", user_id="fan", created_at=datetime(2026, 6, 5)),
        Like(story_id="s2", user_id="fan", created_at=datetime(2026, 6, 30)),
        Comment(story_id="s2", user_id="fan", created_at=datetime(2026, 9, 1)),
        Like(story_id="elsewhere", user_id="fan", created_at=datetime(2026, 6, 5)),
        # earnings
        Donation(amount_cents=250, status="collected", donor_id="fan", recipient_id="u1", story_id="s1", created_at=datetime(2026, 8, 12)),
        Donation(amount_cents=4000, status="pending", donor_id="fan", recipient_id="u1", story_id="s1", created_at=datetime(2026, 8, 12)),
        Donation(amount_cents=125, status="collected", donor_id="fan", recipient_id="u1", story_id="s2", created_at=datetime(2026, 10, 3)),
    )


@pytest.mark.parametrize("time_range", ["7days", "30days", "90days", "year", "all", "nonsense"])
async def test_charts_always_span_seven_months(monthly_activity, dashboard, time_range):
    reads = await dashboard.get_reads_chart_data("u1", time_range, now=NOW)
    engagement = await dashboard.get_engagement_chart_data("u1", time_range, now=NOW)
    earnings = await dashboard.get_earnings_chart_data("u1", time_range, now=NOW)

    assert [point.name for point in reads] == MONTHS
    assert [point.name for point in engagement] == MONTHS
    assert [point.name for point in earnings] == MONTHS


async def test_reads_chart_combines_story_and_chapter_views(monthly_activity, dashboard):
    reads = await dashboard.get_reads_chart_data("u1", now=NOW)

    assert [point.reads for point in reads] == [1, 0, 0, 0, 2, 0, 1]
    assert reads[0].month_start == datetime(2026, 4, 1)


async def test_engagement_chart(monthly_activity, dashboard):
    engagement = await dashboard.get_engagement_chart_data("u1", now=NOW)

    assert [point.likes for point in engagement] == [0, 0, 2, 0, 0, 0, 0]
    assert [point.comments for point in engagement] == [0, 0, 0, 0, 0, 1, 0]


async def test_earnings_chart_counts_collected_donations_only(monthly_activity, dashboard):
    earnings = await dashboard.get_earnings_chart_data("u1", now=NOW)

    assert [point.earnings for point in earnings] == [0, 0, 0, 0, 2.5, 0, 1.25]


async def test_charts_for_user_without_stories_are_zero_filled(dashboard):
    reads = await dashboard.get_reads_chart_data("nobody", now=NOW)
    engagement = await dashboard.get_engagement_chart_data("nobody", now=NOW)
    earnings = await dashboard.get_earnings_chart_data("nobody", now=NOW)

    assert [(p.name, p.reads) for p in reads] == [(month, 0) for month in MONTHS]
    assert all(p.likes == 0 and p.comments == 0 for p in engagement)
    assert all(p.earnings == 0 for p in earnings)
    assert len(engagement) == len(earnings) == 7


async def test_overview_bundles_stats_stories_and_charts(monthly_activity, dashboard):
    overview = await dashboard.get_overview("u1", "year", now=NOW)

    assert overview.stats == await dashboard.get_stats("u1", "year", now=NOW)
    assert [story.id for story in overview.stories] == [
        item.id for item in await dashboard.get_top_content("u1", 5, "reads", "year", now=NOW)
    ]
    assert [p.reads for p in overview.reads_data] == [1, 0, 0, 0, 2, 0, 1]
    assert len(overview.engagement_data) == 7


async def test_overview_for_user_without_stories(dashboard):
    overview = await dashboard.get_overview("nobody", now=NOW)

    assert overview.stories == []
    assert overview.stats.total_reads == 0
    assert [p.reads for p in overview.reads_data] == [0] * 7
    assert [p.likes for p in overview.engagement_data] == [0] * 7
