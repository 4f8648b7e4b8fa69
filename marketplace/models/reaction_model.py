from datetime import datetime, timezone
from enum import Enum

from sqlmodel import SQLModel, Field, Column, DateTime
from sqlalchemy import Enum as SAEnum, func


class ReactionType(str, Enum):
    HELPFUL = "helpful"
    NOT_HELPFUL = "not-helpful"


class ReviewReaction(SQLModel, table=True):
    __tablename__ = "review_reactions"

    # The composite key allows one reaction per user per review
    review_id: int = Field(
        foreign_key="ad_reviews.id", primary_key=True, ondelete="CASCADE"
    )
    user_id: int = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    type: ReactionType = Field(
        sa_column=Column(
            SAEnum(
                ReactionType,
                name="reaction_type",
                native_enum=False,
                length=20,
                values_callable=lambda members: [m.value for m in members],
            ),
            nullable=False,
        )
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
