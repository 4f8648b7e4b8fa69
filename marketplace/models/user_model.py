from sqlmodel import (
    SQLModel,
    Field,
    Column,
    String,
    DateTime,
)
from sqlalchemy import func
from datetime import datetime, timezone
from typing import Optional


class UserBase(SQLModel):
    username: str = Field(
        min_length=3,
        max_length=50,
        description="User's unique username",
        schema_extra={"example": "jane_doe"},
    )
    email: str = Field(
        max_length=200,
        description="User's email address",
        schema_extra={"example": "user@example.com"},
    )
    full_name: Optional[str] = Field(
        default=None, max_length=100, description="Display name"
    )
    avatar_url: Optional[str] = Field(
        default=None, max_length=500, description="Profile picture URL"
    )
    location: Optional[str] = Field(
        default=None, max_length=100, description="City or region"
    )
    is_active: bool = Field(default=True, description="Whether account is active")


class User(UserBase, table=True):
    """
    Marketplace account.

    Owned by the account service; this API only reads it to authenticate
    callers and to render follower and reviewer summaries.
    """

    __tablename__ = "users"

    id: Optional[int] = Field(
        default=None, primary_key=True, description="Unique Identifier"
    )
    email: str = Field(
        sa_column=Column(String(200), unique=True, nullable=False, index=True)
    )
    username: str = Field(
        sa_column=Column(String(50), nullable=False, index=True, unique=True)
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
        description="Account creation timestamp",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
