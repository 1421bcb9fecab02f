from datetime import datetime

from pydantic import BaseModel


class StatsResult(BaseModel):
    total_reads: int
    total_likes: int
    total_comments: int
    total_followers: int
    total_earnings: float
    reads_change: float
    likes_change: float
    comments_change: float
    followers_change: float
    earnings_change: float


class TopContentItem(BaseModel):
    id: str
    title: str
    slug: str
    genre_id: str
    genre_name: str
    status: str
    reads: int
    likes: int
    comments: int
    earnings: float
    updated_at: datetime


class UserStory(TopContentItem):
    chapters: int
    description: str | None
    cover_image: str | None
    created_at: datetime


class ChartPoint(BaseModel):
    name: str
    month_start: datetime


class ReadsPoint(ChartPoint):
    reads: int


class EngagementPoint(ChartPoint):
    likes: int
    comments: int


class EarningsPoint(ChartPoint):
    earnings: float


class OverviewResult(BaseModel):
    stats: StatsResult
    stories: list[TopContentItem]
    reads_data: list[ReadsPoint]
    engagement_data: list[EngagementPoint]
