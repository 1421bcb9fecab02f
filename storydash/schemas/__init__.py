from storydash.schemas.common import Pagination
from storydash.schemas.dashboard import (
    ChartPoint,
    EarningsPoint,
    EngagementPoint,
    OverviewResult,
    ReadsPoint,
    StatsResult,
    TopContentItem,
    UserStory,
)
from storydash.schemas.earnings import DonationTransaction, EarningsReport, StoryEarnings

__all__ = [
    "Pagination",
    "StatsResult",
    "TopContentItem",
    "UserStory",
    "ChartPoint",
    "ReadsPoint",
    "EngagementPoint",
    "EarningsPoint",
    "OverviewResult",
    "StoryEarnings",
    "DonationTransaction",
    "EarningsReport",
]
