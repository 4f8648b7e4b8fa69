from typing import Optional
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field, Column, DateTime, Text
from sqlalchemy import Index, UniqueConstraint, CheckConstraint, func

from marketplace.core.config import settings


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdReview(SQLModel, table=True):
    """A buyer's rating of an ad. At most one per (author, ad)."""

    __tablename__ = "ad_reviews"
    __table_args__ = (
        # Ensure one review per user per ad
        UniqueConstraint("user_id", "ad_id", name="uq_user_ad_review"),
        # Indexes for common queries
        Index("idx_ad_review_ad_id", "ad_id"),
        Index("idx_ad_review_user_id", "user_id"),
        Index("idx_ad_review_created_at", "created_at"),
        CheckConstraint(
            f"rating >= {settings.REVIEW_MIN_RATING} AND rating <= {settings.REVIEW_MAX_RATING}",
            name="ck_ad_review_rating",
        ),
    )

    id: Optional[int] = Field(primary_key=True, default=None)

    # Foreign keys
    user_id: int = Field(
        foreign_key="users.id", nullable=False, description="ID of the reviewer"
    )
    ad_id: int = Field(
        foreign_key="ads.id",
        nullable=False,
        ondelete="CASCADE",
        description="ID of the reviewed ad",
    )

    rating: int = Field(nullable=False, description="Star rating within the configured bounds")
    body: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    # Timestamps
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        ),
    )

    def __repr__(self) -> str:
        return f"<AdReview(id={self.id}, user_id={self.user_id}, ad_id={self.ad_id}, rating={self.rating})>"
