from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def primary_image_url(images: Optional[List[Any]]) -> Optional[str]:
    """
    Return the first image's URL whatever shape it was stored in.

    Listings store images either as bare URL strings or as ``{"url": ...}``
    objects; callers only ever see the URL.
    """
    if not images:
        return None
    first = images[0]
    if isinstance(first, str):
        return first or None
    if isinstance(first, dict):
        return first.get("url") or None
    return getattr(first, "url", None)


class UserSummary(BaseModel):
    """Public fields shown next to follows and reviews."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class AdSummary(BaseModel):
    """Compact listing card embedded in a user's review history."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    price: Optional[Decimal] = None
    status: str
    image_url: Optional[str] = Field(None, description="First image of the listing")

    @model_validator(mode="before")
    @classmethod
    def normalize_images(cls, data: Any) -> Any:
        if isinstance(data, cls):
            return data
        if isinstance(data, dict):
            if "image_url" not in data:
                data = {**data, "image_url": primary_image_url(data.get("images"))}
            return data
        # ORM object
        return {
            "id": data.id,
            "title": data.title,
            "price": data.price,
            "status": getattr(data.status, "value", data.status),
            "image_url": primary_image_url(data.images),
        }
