from storydash.models.user import Follow, User
from storydash.models.story import Chapter, Genre, Story
from storydash.models.engagement import ChapterView, Comment, Like, StoryView
from storydash.models.donation import (
    DONATION_COLLECTED,
    DONATION_FAILED,
    DONATION_PENDING,
    Donation,
)

__all__ = [
    "User",
    "Follow",
    "Genre",
    "Story",
    "Chapter",
    "StoryView",
    "ChapterView",
    "Like",
    "Comment",
    "Donation",
    "DONATION_COLLECTED",
    "DONATION_PENDING",
    "DONATION_FAILED",
]
