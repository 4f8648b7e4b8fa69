from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any, List, Optional

from sqlmodel import SQLModel, Field, Column, DateTime, String
from sqlalchemy import JSON, Enum as SAEnum, Index, Numeric, func


class AdStatus(str, PyEnum):
    ACTIVE = "active"
    SOLD = "sold"
    INACTIVE = "inactive"


class Ad(SQLModel, table=True):
    """
    A classified listing.

    Managed by the listings service. Reviews reference it and list items
    show a short summary of it.
    """

    __tablename__ = "ads"
    __table_args__ = (
        Index("idx_ad_user_id", "user_id"),
        Index("idx_ad_status", "status"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, description="Seller")
    title: str = Field(sa_column=Column(String(200), nullable=False))
    price: Optional[Decimal] = Field(
        default=None, sa_column=Column(Numeric(12, 2), nullable=True)
    )
    status: AdStatus = Field(
        default=AdStatus.ACTIVE,
        sa_column=Column(
            SAEnum(
                AdStatus,
                name="ad_status",
                native_enum=False,
                length=20,
                values_callable=lambda members: [m.value for m in members],
            ),
            nullable=False,
        ),
    )
    # Items are either plain URLs or {"url": ...} objects
    images: List[Any] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )

    def __repr__(self) -> str:
        return f"<Ad(id={self.id}, title='{self.title}', user_id={self.user_id})>"
