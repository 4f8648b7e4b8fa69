from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketplace.schemas.common_schema import PaginatedResponse
from marketplace.schemas.user_schema import UserSummary


class FollowResponse(BaseModel):
    """A single follow edge."""

    model_config = ConfigDict(from_attributes=True)

    follower_id: int = Field(..., description="User who follows")
    following_id: int = Field(..., description="User being followed")
    created_at: datetime


class FollowUserSummary(UserSummary):
    """A user in a followers/following list and when the edge was made."""

    followed_at: datetime


class FollowCounts(BaseModel):
    followers_count: int = Field(0, ge=0)
    following_count: int = Field(0, ge=0)


class FollowStatus(FollowCounts):
    """Viewer's relationship to a user plus that user's counts."""

    is_following: bool


FollowListResponse = PaginatedResponse[FollowUserSummary]


__all__ = [
    "FollowResponse",
    "FollowUserSummary",
    "FollowCounts",
    "FollowStatus",
    "FollowListResponse",
]
