"""
Dashboard analytics for a single author.

Every figure is recomputed from the database on each call. Independent
fetches inside one operation run concurrently, each on its own short-lived
session, and database errors propagate to the caller unchanged.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from operator import attrgetter

from sqlalchemy import and_, case, func, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storydash.models import (
    DONATION_COLLECTED,
    Chapter,
    Comment,
    Donation,
    Follow,
    Genre,
    Like,
    Story,
    User,
)
from storydash.schemas import (
    DonationTransaction,
    EarningsPoint,
    EarningsReport,
    EngagementPoint,
    OverviewResult,
    Pagination,
    ReadsPoint,
    StatsResult,
    StoryEarnings,
    TopContentItem,
    UserStory,
)
from storydash.services.views import ViewService
from storydash.services.windows import (
    DEFAULT_TIME_RANGE,
    TIME_RANGE_ALL,
    TIME_RANGE_CUSTOM,
    DateWindow,
    MonthBucket,
    add_months,
    cents_to_amount,
    month_start,
    normalize_time_range,
    percentage_change,
    resolve_window,
    trailing_months,
)

logger = logging.getLogger(__name__)

SORT_FIELDS = ("reads", "likes", "comments", "earnings")
DEFAULT_SORT = "reads"
DEFAULT_GENRE_NAME = "General"
ANONYMOUS_DONOR = "Anonymous"


@dataclass(frozen=True)
class PeriodTotals:
    total: int
    current: int
    previous: int

    @property
    def change(self) -> float:
        return percentage_change(self.current, self.previous)


@dataclass(frozen=True)
class StoryMetrics:
    reads: dict[str, int]
    likes: dict[str, int]
    comments: dict[str, int]
    earnings_cents: dict[str, int]


def normalize_sort(sort_by: str | None) -> str:
    return sort_by if sort_by in SORT_FIELDS else DEFAULT_SORT


def _in_range(column, start: datetime, end: datetime):
    return and_(column >= start, column < end)


def _period_columns(value, created_at, window: DateWindow) -> list:
    """Total, current-period and previous-period sums of ``value`` in one row."""
    current = _in_range(created_at, window.start, window.end)
    previous = _in_range(created_at, window.previous_start, window.previous_end)
    return [
        func.coalesce(func.sum(value), 0),
        func.coalesce(func.sum(case((current, value), else_=0)), 0),
        func.coalesce(func.sum(case((previous, value), else_=0)), 0),
    ]


def _bucket_columns(value, created_at, buckets: list[MonthBucket]) -> list:
    """One summed column per month bucket."""
    return [
        func.coalesce(
            func.sum(case((_in_range(created_at, bucket.start, bucket.end), value), else_=0)), 0
        ).label(f"m{index}")
        for index, bucket in enumerate(buckets)
    ]


class DashboardService:
    """Aggregates reads, engagement and earnings for an author's stories."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        view_service: ViewService | None = None,
    ):
        self.session_factory = session_factory
        self.view_service = view_service or ViewService(session_factory)

    # ===================
    # Stats
    # ===================

    async def get_stats(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        now: datetime | None = None,
    ) -> StatsResult:
        """Lifetime totals plus period-over-period change for each metric."""
        window = resolve_window(time_range, now)
        logger.info(f"Computing dashboard stats for user {user_id} ({normalize_time_range(time_range)})")

        story_ids = await self._get_story_ids(user_id)
        reads, likes, comments, followers, earnings = await asyncio.gather(
            self._read_totals(story_ids, window),
            self._like_totals(user_id, window),
            self._comment_totals(user_id, window),
            self._follower_totals(user_id, window),
            self._earnings_totals(user_id, window),
        )

        return StatsResult(
            total_reads=reads.total,
            total_likes=likes.total,
            total_comments=comments.total,
            total_followers=followers.total,
            total_earnings=cents_to_amount(earnings.total),
            reads_change=reads.change,
            likes_change=likes.change,
            comments_change=comments.change,
            followers_change=followers.change,
            earnings_change=earnings.change,
        )

    async def _read_totals(self, story_ids: list[str], window: DateWindow) -> PeriodTotals:
        if not story_ids:
            return PeriodTotals(0, 0, 0)

        total, current, previous = await asyncio.gather(
            self.view_service.get_batch_combined_view_counts(story_ids),
            self.view_service.get_batch_combined_view_counts(
                story_ids, TIME_RANGE_CUSTOM, window.start, window.end
            ),
            self.view_service.get_batch_combined_view_counts(
                story_ids, TIME_RANGE_CUSTOM, window.previous_start, window.previous_end
            ),
        )
        return PeriodTotals(sum(total.values()), sum(current.values()), sum(previous.values()))

    async def _like_totals(self, user_id: str, window: DateWindow) -> PeriodTotals:
        query = (
            select(*_period_columns(literal_column("1"), Like.created_at, window))
            .select_from(Like)
            .join(Story, Like.story_id == Story.id)
            .where(Story.author_id == user_id)
        )
        return PeriodTotals(*await self._fetch_row(query))

    async def _comment_totals(self, user_id: str, window: DateWindow) -> PeriodTotals:
        query = (
            select(*_period_columns(literal_column("1"), Comment.created_at, window))
            .select_from(Comment)
            .join(Story, Comment.story_id == Story.id)
            .where(Story.author_id == user_id)
        )
        return PeriodTotals(*await self._fetch_row(query))

    async def _follower_totals(self, user_id: str, window: DateWindow) -> PeriodTotals:
        query = (
            select(*_period_columns(literal_column("1"), Follow.created_at, window))
            .select_from(Follow)
            .where(Follow.following_id == user_id)
        )
        return PeriodTotals(*await self._fetch_row(query))

    async def _earnings_totals(self, user_id: str, window: DateWindow) -> PeriodTotals:
        query = (
            select(*_period_columns(Donation.amount_cents, Donation.created_at, window))
            .select_from(Donation)
            .join(Story, Donation.story_id == Story.id)
            .where(Story.author_id == user_id, Donation.status == DONATION_COLLECTED)
        )
        return PeriodTotals(*await self._fetch_row(query))

    # ===================
    # Stories
    # ===================

    async def get_top_content(
        self,
        user_id: str,
        limit: int = 5,
        sort_by: str = DEFAULT_SORT,
        time_range: str = DEFAULT_TIME_RANGE,
        now: datetime | None = None,
    ) -> list[TopContentItem]:
        """The author's stories ranked by a metric measured inside the window."""
        sort_by = normalize_sort(sort_by)
        window = resolve_window(time_range, now)

        stories = await self._get_stories(user_id)
        metrics = await self._story_metrics([story.id for story, _ in stories], window)

        items = [
            TopContentItem(**self._story_metric_fields(story, genre_name, metrics))
            for story, genre_name in stories
        ]
        # Stable sort keeps fetch order for ties
        items.sort(key=attrgetter(sort_by), reverse=True)
        return items[:limit]

    async def get_user_stories(
        self,
        user_id: str,
        time_range: str = TIME_RANGE_ALL,
        now: datetime | None = None,
    ) -> list[UserStory]:
        """Every story of the author with windowed metrics and chapter counts."""
        window = resolve_window(time_range, now)

        stories = await self._get_stories(user_id)
        story_ids = [story.id for story, _ in stories]
        metrics, chapter_counts = await asyncio.gather(
            self._story_metrics(story_ids, window),
            self._count_chapters(story_ids),
        )

        return [
            UserStory(
                **self._story_metric_fields(story, genre_name, metrics),
                chapters=chapter_counts.get(story.id, 0),
                description=story.description,
                cover_image=story.cover_image,
                created_at=story.created_at,
            )
            for story, genre_name in stories
        ]

    async def _story_metrics(self, story_ids: list[str], window: DateWindow) -> StoryMetrics:
        if not story_ids:
            return StoryMetrics({}, {}, {}, {})

        reads, likes, comments, earnings = await asyncio.gather(
            self.view_service.get_batch_combined_view_counts(
                story_ids, TIME_RANGE_CUSTOM, window.start, window.end
            ),
            self._group_by_story(Like.story_id, literal_column("1"), Like.created_at, story_ids, window),
            self._group_by_story(Comment.story_id, literal_column("1"), Comment.created_at, story_ids, window),
            self._group_by_story(
                Donation.story_id,
                Donation.amount_cents,
                Donation.created_at,
                story_ids,
                window,
                Donation.status == DONATION_COLLECTED,
            ),
        )
        return StoryMetrics(reads, likes, comments, earnings)

    async def _group_by_story(
        self, story_column, value, created_at, story_ids: list[str], window: DateWindow, *criteria
    ) -> dict[str, int]:
        query = (
            select(story_column, func.sum(value))
            .where(
                story_column.in_(story_ids),
                _in_range(created_at, window.start, window.end),
                *criteria,
            )
            .group_by(story_column)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return {row[0]: int(row[1] or 0) for row in result.all()}

    async def _count_chapters(self, story_ids: list[str]) -> dict[str, int]:
        if not story_ids:
            return {}
        query = (
            select(Chapter.story_id, func.count(Chapter.id))
            .where(Chapter.story_id.in_(story_ids))
            .group_by(Chapter.story_id)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return {row[0]: row[1] for row in result.all()}

    @staticmethod
    def _story_fields(story: Story, genre_name: str | None) -> dict:
        return {
            "id": story.id,
            "title": story.title,
            "slug": story.slug or story.id,
            "genre_id": story.genre_id or "",
            "genre_name": genre_name or DEFAULT_GENRE_NAME,
        }

    def _story_metric_fields(self, story: Story, genre_name: str | None, metrics: StoryMetrics) -> dict:
        return {
            **self._story_fields(story, genre_name),
            "status": story.status,
            "reads": metrics.reads.get(story.id, 0),
            "likes": metrics.likes.get(story.id, 0),
            "comments": metrics.comments.get(story.id, 0),
            "earnings": cents_to_amount(metrics.earnings_cents.get(story.id, 0)),
            "updated_at": story.updated_at,
        }

    # ===================
    # Charts
    # ===================

    async def get_reads_chart_data(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        now: datetime | None = None,
    ) -> list[ReadsPoint]:
        """Combined reads for each of the trailing months.

        ``time_range`` is accepted for symmetry with the other operations;
        the chart always spans the same trailing months.
        """
        buckets = trailing_months(now)
        story_ids = await self._get_story_ids(user_id)

        if not story_ids:
            return [ReadsPoint(name=b.name, month_start=b.start, reads=0) for b in buckets]

        monthly_counts = await asyncio.gather(
            *(
                self.view_service.get_batch_combined_view_counts(
                    story_ids, TIME_RANGE_CUSTOM, bucket.start, bucket.end
                )
                for bucket in buckets
            )
        )
        return [
            ReadsPoint(name=bucket.name, month_start=bucket.start, reads=sum(counts.values()))
            for bucket, counts in zip(buckets, monthly_counts)
        ]

    async def get_engagement_chart_data(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        now: datetime | None = None,
    ) -> list[EngagementPoint]:
        """Likes and comments per trailing month (``time_range`` is ignored)."""
        buckets = trailing_months(now)
        story_ids = await self._get_story_ids(user_id)

        if not story_ids:
            return [
                EngagementPoint(name=b.name, month_start=b.start, likes=0, comments=0)
                for b in buckets
            ]

        likes, comments = await asyncio.gather(
            self._fetch_row(
                select(*_bucket_columns(literal_column("1"), Like.created_at, buckets))
                .select_from(Like)
                .where(Like.story_id.in_(story_ids))
            ),
            self._fetch_row(
                select(*_bucket_columns(literal_column("1"), Comment.created_at, buckets))
                .select_from(Comment)
                .where(Comment.story_id.in_(story_ids))
            ),
        )
        return [
            EngagementPoint(name=bucket.name, month_start=bucket.start, likes=like_count, comments=comment_count)
            for bucket, like_count, comment_count in zip(buckets, likes, comments)
        ]

    async def get_earnings_chart_data(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        now: datetime | None = None,
    ) -> list[EarningsPoint]:
        """Collected donations per trailing month (``time_range`` is ignored)."""
        buckets = trailing_months(now)
        story_ids = await self._get_story_ids(user_id)

        if not story_ids:
            return [EarningsPoint(name=b.name, month_start=b.start, earnings=0.0) for b in buckets]

        cents = await self._fetch_row(
            select(*_bucket_columns(Donation.amount_cents, Donation.created_at, buckets))
            .select_from(Donation)
            .where(Donation.story_id.in_(story_ids), Donation.status == DONATION_COLLECTED)
        )
        return [
            EarningsPoint(name=bucket.name, month_start=bucket.start, earnings=cents_to_amount(amount))
            for bucket, amount in zip(buckets, cents)
        ]

    # ===================
    # Earnings
    # ===================

    async def get_earnings_data(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        page: int = 1,
        page_size: int = 10,
        now: datetime | None = None,
    ) -> EarningsReport:
        """Lifetime and monthly earnings, per-story breakdown and donation history."""
        now = now or datetime.utcnow()
        time_range = normalize_time_range(time_range)
        window = resolve_window(time_range, now)
        page = max(page, 1)
        page_size = max(page_size, 1)
        logger.info(f"Computing earnings for user {user_id} ({time_range}, page {page})")

        this_month = month_start(now)
        last_month = add_months(this_month, -1)
        next_month = add_months(this_month, 1)

        stories = await self._get_stories(user_id)
        story_ids = [story.id for story, _ in stories]

        # Transactions outside "all" are limited to the window start
        transaction_criteria = [
            Story.author_id == user_id,
            Donation.status == DONATION_COLLECTED,
        ]
        if time_range != TIME_RANGE_ALL:
            transaction_criteria.append(Donation.created_at >= window.start)

        (
            view_counts,
            monthly_cents,
            story_cents,
            chart_data,
            total_items,
            transactions,
        ) = await asyncio.gather(
            self.view_service.get_batch_combined_view_counts(story_ids),
            self._fetch_row(
                select(
                    func.coalesce(func.sum(Donation.amount_cents), 0),
                    func.coalesce(
                        func.sum(
                            case(
                                (_in_range(Donation.created_at, this_month, next_month), Donation.amount_cents),
                                else_=0,
                            )
                        ),
                        0,
                    ),
                    func.coalesce(
                        func.sum(
                            case(
                                (_in_range(Donation.created_at, last_month, this_month), Donation.amount_cents),
                                else_=0,
                            )
                        ),
                        0,
                    ),
                )
                .select_from(Donation)
                .join(Story, Donation.story_id == Story.id)
                .where(Story.author_id == user_id, Donation.status == DONATION_COLLECTED)
            ),
            self._story_earnings(story_ids, window),
            self.get_earnings_chart_data(user_id, time_range, now=now),
            self._count_transactions(transaction_criteria),
            self._get_transactions(transaction_criteria, page, page_size),
        )
        total_cents, this_month_cents, last_month_cents = monthly_cents

        story_earnings = [
            StoryEarnings(
                **self._story_fields(story, genre_name),
                view_count=view_counts.get(story.id, 0),
                earnings=cents_to_amount(story_cents.get(story.id, 0)),
            )
            for story, genre_name in stories
        ]
        story_earnings.sort(key=attrgetter("earnings"), reverse=True)

        total_pages = (total_items + page_size - 1) // page_size
        return EarningsReport(
            total_earnings=cents_to_amount(total_cents),
            this_month_earnings=cents_to_amount(this_month_cents),
            last_month_earnings=cents_to_amount(last_month_cents),
            monthly_change=percentage_change(this_month_cents, last_month_cents),
            stories=story_earnings,
            chart_data=chart_data,
            transactions=transactions,
            pagination=Pagination(
                page=page,
                page_size=page_size,
                total_items=total_items,
                total_pages=total_pages,
                has_more=page < total_pages,
            ),
        )

    async def _story_earnings(self, story_ids: list[str], window: DateWindow) -> dict[str, int]:
        if not story_ids:
            return {}
        return await self._group_by_story(
            Donation.story_id,
            Donation.amount_cents,
            Donation.created_at,
            story_ids,
            window,
            Donation.status == DONATION_COLLECTED,
        )

    async def _count_transactions(self, criteria: list) -> int:
        query = (
            select(func.count(Donation.id))
            .select_from(Donation)
            .join(Story, Donation.story_id == Story.id)
            .where(*criteria)
        )
        async with self.session_factory() as session:
            return (await session.execute(query)).scalar() or 0

    async def _get_transactions(self, criteria: list, page: int, page_size: int) -> list[DonationTransaction]:
        query = (
            select(
                Donation,
                User.name.label("donor_name"),
                User.username.label("donor_username"),
                Story.title.label("story_title"),
                Story.slug.label("story_slug"),
            )
            .join(Story, Donation.story_id == Story.id)
            .outerjoin(User, Donation.donor_id == User.id)
            .where(*criteria)
            .order_by(Donation.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            rows = result.all()

        return [
            DonationTransaction(
                id=row.Donation.id,
                donor_id=row.Donation.donor_id,
                donor_name=row.donor_name or ANONYMOUS_DONOR,
                donor_username=row.donor_username,
                story_id=row.Donation.story_id,
                story_title=row.story_title,
                story_slug=row.story_slug or row.Donation.story_id,
                amount=cents_to_amount(row.Donation.amount_cents),
                message=row.Donation.message,
                created_at=row.Donation.created_at,
            )
            for row in rows
        ]

    # ===================
    # Overview
    # ===================

    async def get_overview(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        now: datetime | None = None,
    ) -> OverviewResult:
        stats, stories, reads_data, engagement_data = await asyncio.gather(
            self.get_stats(user_id, time_range, now=now),
            self.get_top_content(user_id, 5, DEFAULT_SORT, time_range, now=now),
            self.get_reads_chart_data(user_id, time_range, now=now),
            self.get_engagement_chart_data(user_id, time_range, now=now),
        )
        return OverviewResult(
            stats=stats,
            stories=stories,
            reads_data=reads_data,
            engagement_data=engagement_data,
        )

    # ===================
    # Shared fetches
    # ===================

    async def _get_story_ids(self, user_id: str) -> list[str]:
        query = select(Story.id).where(Story.author_id == user_id).order_by(Story.created_at)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _get_stories(self, user_id: str) -> list[tuple[Story, str | None]]:
        query = (
            select(Story, Genre.name)
            .outerjoin(Genre, Story.genre_id == Genre.id)
            .where(Story.author_id == user_id)
            .order_by(Story.updated_at.desc())
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [(row[0], row[1]) for row in result.all()]

    async def _fetch_row(self, query) -> tuple:
        async with self.session_factory() as session:
            result = await session.execute(query)
            return tuple(int(value or 0) for value in result.one())
