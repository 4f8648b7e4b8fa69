# marketplace/schemas/review_schema.py
"""
Ad review schemas for request/response models.

Rating bounds are configuration driven and enforced by the review service,
so request schemas only check types and lengths.
"""

from typing import Optional, Dict, Any, Annotated
from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from marketplace.core.config import settings
from marketplace.models.reaction_model import ReactionType
from marketplace.schemas.common_schema import PaginatedResponse
from marketplace.schemas.user_schema import AdSummary, UserSummary


def _clean_body(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    cleaned = " ".join(v.strip().split())
    return cleaned or None


# ------CRUD SCHEMAS------
class ReviewCreate(BaseModel):
    """Schema for creating a review."""

    rating: int = Field(..., description="Star rating", examples=[5])
    body: Optional[
        Annotated[
            str,
            Field(
                max_length=settings.REVIEW_BODY_MAX_LENGTH,
                description="Review text",
                examples=["Item exactly as described, quick pickup."],
            ),
        ]
    ] = None

    @field_validator("body")
    @classmethod
    def clean_body(cls, v: Optional[str]) -> Optional[str]:
        return _clean_body(v)


class ReviewUpdate(BaseModel):
    """Schema for updating a review."""

    rating: Optional[int] = Field(None, description="Updated rating", examples=[4])
    body: Optional[
        Annotated[str, Field(max_length=settings.REVIEW_BODY_MAX_LENGTH)]
    ] = None

    @model_validator(mode="before")
    @classmethod
    def validate_at_least_one_field(cls, values: Any) -> Any:
        """Ensure at least one field is provided for update."""
        if isinstance(values, dict) and not any(
            v is not None for v in values.values()
        ):
            raise ValueError("At least one field must be provided for update")
        return values

    @field_validator("body")
    @classmethod
    def clean_body(cls, v: Optional[str]) -> Optional[str]:
        return _clean_body(v)


# ----- Response Schemas ------
class ReviewResponse(BaseModel):
    """Review as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Review ID")
    ad_id: int = Field(..., description="Reviewed ad ID")
    user_id: int = Field(..., description="Reviewer's user ID")
    rating: int
    body: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    author: Optional[UserSummary] = Field(None, description="Reviewer information")
    ad: Optional[AdSummary] = Field(None, description="Reviewed ad, in user listings")
    helpful_count: int = Field(0, ge=0)
    not_helpful_count: int = Field(0, ge=0)


ReviewListResponse = PaginatedResponse[ReviewResponse]


class RatingSummary(BaseModel):
    """Aggregate rating of one ad."""

    ad_id: int
    average: float = Field(0.0, description="Mean rating, 0 when there are no reviews")
    count: int = Field(0, ge=0)
    distribution: Dict[int, int] = Field(
        default_factory=dict, description="Count of reviews per rating value"
    )


# ----REACTION SCHEMAS-------
class ReactionCreate(BaseModel):
    """Body of a react request."""

    type: ReactionType = Field(..., description="helpful or not-helpful")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower().replace("_", "-")
        return v


class ReactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_id: int
    user_id: int
    type: ReactionType
    created_at: datetime
    updated_at: datetime


__all__ = [
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewResponse",
    "ReviewListResponse",
    "RatingSummary",
    "ReactionCreate",
    "ReactionResponse",
]
