from datetime import datetime

from pydantic import BaseModel

from storydash.schemas.common import Pagination
from storydash.schemas.dashboard import EarningsPoint


class StoryEarnings(BaseModel):
    id: str
    title: str
    slug: str
    genre_id: str
    genre_name: str
    view_count: int
    earnings: float


class DonationTransaction(BaseModel):
    id: str
    donor_id: str
    donor_name: str
    donor_username: str | None
    story_id: str | None
    story_title: str | None
    story_slug: str | None
    amount: float
    message: str | None
    created_at: datetime


class EarningsReport(BaseModel):
    total_earnings: float
    this_month_earnings: float
    last_month_earnings: float
    monthly_change: float
    stories: list[StoryEarnings]
    chart_data: list[EarningsPoint]
    transactions: list[DonationTransaction]
    pagination: Pagination
