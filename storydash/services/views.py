import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storydash.models import Chapter, ChapterView, Story, StoryView
from storydash.services.windows import (
    DEFAULT_TIME_RANGE,
    TIME_RANGE_ALL,
    TIME_RANGE_CUSTOM,
    TIME_RANGE_DAYS,
)

logger = logging.getLogger(__name__)


def build_created_filter(
    column,
    time_range: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    now: datetime | None = None,
) -> list:
    """
    Build ``created_at`` conditions for a view window.

    ``custom`` uses the explicit ``[start_date, end_date)`` bounds, a preset
    token counts back from ``now``, and ``None``/``all`` leave the window
    open. Unknown tokens fall back to the default 30 days.
    """
    if time_range == TIME_RANGE_CUSTOM:
        filters = []
        if start_date is not None:
            filters.append(column >= start_date)
        if end_date is not None:
            filters.append(column < end_date)
        return filters

    if time_range is None or time_range == TIME_RANGE_ALL:
        return []

    now = now or datetime.utcnow()
    days = TIME_RANGE_DAYS.get(time_range, TIME_RANGE_DAYS[DEFAULT_TIME_RANGE])
    return [column >= now - timedelta(days=days), column < now]


class ViewService:
    """
    Read-side view counts for stories and chapters.

    A story's reads are its own views plus the views of all of its chapters.
    Batch methods issue a fixed number of statements regardless of how many
    ids are requested.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_batch_story_view_counts(
        self,
        story_ids: Sequence[str],
        time_range: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        now: datetime | None = None,
    ) -> dict[str, int]:
        """Story-level view counts, dense over ``story_ids``."""
        if not story_ids:
            return {}

        counts = {story_id: 0 for story_id in story_ids}
        counts.update(
            await self._count_story_views(story_ids, time_range, start_date, end_date, now)
        )
        return counts

    async def get_batch_chapter_view_counts(
        self,
        chapter_ids: Sequence[str],
        time_range: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        now: datetime | None = None,
    ) -> dict[str, int]:
        """Chapter-level view counts, dense over ``chapter_ids``."""
        if not chapter_ids:
            return {}

        counts = {chapter_id: 0 for chapter_id in chapter_ids}
        counts.update(
            await self._count_chapter_views(chapter_ids, time_range, start_date, end_date, now)
        )
        return counts

    async def get_batch_combined_view_counts(
        self,
        story_ids: Sequence[str],
        time_range: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        now: datetime | None = None,
    ) -> dict[str, int]:
        """
        Combined story + chapter view counts for many stories at once.

        Args:
            story_ids: Stories to count. An empty list returns ``{}`` without
                touching the database.
            time_range: ``7days``/``30days``/``90days``/``year``, ``all``,
                ``custom`` or ``None`` for no window.
            start_date: Inclusive lower bound when ``time_range`` is ``custom``.
            end_date: Exclusive upper bound when ``time_range`` is ``custom``.
            now: Reference instant for preset windows.

        Returns:
            Mapping of every requested story id to its read count.
        """
        if not story_ids:
            return {}

        story_counts, chapters = await asyncio.gather(
            self._count_story_views(story_ids, time_range, start_date, end_date, now),
            self._get_chapters(story_ids),
        )

        combined = {story_id: 0 for story_id in story_ids}
        combined.update(story_counts)

        if not chapters:
            return combined

        chapter_counts = await self._count_chapter_views(
            [chapter_id for chapter_id, _ in chapters], time_range, start_date, end_date, now
        )
        for chapter_id, story_id in chapters:
            combined[story_id] += chapter_counts.get(chapter_id, 0)

        logger.debug(
            f"Combined view counts for {len(story_ids)} stories across {len(chapters)} chapters"
        )
        return combined

    async def get_combined_view_count(
        self,
        story_id: str,
        time_range: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        now: datetime | None = None,
    ) -> int:
        counts = await self.get_batch_combined_view_counts(
            [story_id], time_range, start_date, end_date, now
        )
        return counts[story_id]

    async def get_most_viewed_stories(
        self,
        limit: int = 10,
        time_range: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        now: datetime | None = None,
    ) -> list[str]:
        """Ids of published (non-draft) stories ranked by combined reads."""
        async with self.session_factory() as session:
            result = await session.execute(select(Story.id).where(Story.status != "draft"))
            story_ids = list(result.scalars().all())

        if not story_ids:
            return []

        counts = await self.get_batch_combined_view_counts(
            story_ids, time_range, start_date, end_date, now
        )
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [story_id for story_id, _ in ranked[:limit]]

    async def _count_story_views(
        self,
        story_ids: Sequence[str],
        time_range: str | None,
        start_date: datetime | None,
        end_date: datetime | None,
        now: datetime | None,
    ) -> dict[str, int]:
        query = (
            select(StoryView.story_id, func.count(StoryView.id))
            .where(
                StoryView.story_id.in_(story_ids),
                *build_created_filter(StoryView.created_at, time_range, start_date, end_date, now),
            )
            .group_by(StoryView.story_id)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return {row[0]: row[1] for row in result.all()}

    async def _count_chapter_views(
        self,
        chapter_ids: Sequence[str],
        time_range: str | None,
        start_date: datetime | None,
        end_date: datetime | None,
        now: datetime | None,
    ) -> dict[str, int]:
        query = (
            select(ChapterView.chapter_id, func.count(ChapterView.id))
            .where(
                ChapterView.chapter_id.in_(chapter_ids),
                *build_created_filter(ChapterView.created_at, time_range, start_date, end_date, now),
            )
            .group_by(ChapterView.chapter_id)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return {row[0]: row[1] for row in result.all()}

    async def _get_chapters(self, story_ids: Sequence[str]) -> list[tuple[str, str]]:
        query = select(Chapter.id, Chapter.story_id).where(Chapter.story_id.in_(story_ids))
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [(row.id, row.story_id) for row in result.all()]
