from datetime import datetime, timezone

from sqlmodel import SQLModel, Field, Column, DateTime
from sqlalchemy import CheckConstraint, Index, func


class Follow(SQLModel, table=True):
    """
    Directed follow edge: ``follower_id`` follows ``following_id``.

    The composite primary key makes each pair unique at the storage layer.
    """

    __tablename__ = "follows"
    __table_args__ = (
        CheckConstraint("follower_id <> following_id", name="ck_follow_no_self"),
        Index("idx_follow_follower_id", "follower_id"),
        Index("idx_follow_following_id", "following_id"),
        Index("idx_follow_created_at", "created_at"),
    )

    follower_id: int = Field(
        foreign_key="users.id", primary_key=True, ondelete="CASCADE"
    )
    following_id: int = Field(
        foreign_key="users.id", primary_key=True, ondelete="CASCADE"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )

    def __repr__(self) -> str:
        return f"<Follow(follower_id={self.follower_id}, following_id={self.following_id})>"
