# marketplace/client.py
"""
Typed async client for the follow and ad-review API.

Each endpoint has one method with declared request and response models.
GET results are kept in an in-process cache, each entry labelled with the
resource tags it provides. ``INVALIDATION_MAP`` names the tags every
mutation invalidates; after a successful mutation, entries carrying any of
those tags are dropped so the next read goes back to the server.

Usage::

    async with MarketplaceClient("http://localhost:8000", token=tok, user_id=7) as api:
        await api.follow(12)
        followers = await api.list_followers(12)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Type

import httpx
from pydantic import BaseModel

from marketplace.core.config import settings
from marketplace.models.reaction_model import ReactionType
from marketplace.schemas.common_schema import ApiResponse
from marketplace.schemas.follow_schema import (
    FollowListResponse,
    FollowResponse,
    FollowStatus,
)
from marketplace.schemas.review_schema import (
    RatingSummary,
    ReactionCreate,
    ReactionResponse,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)

logger = logging.getLogger(__name__)

Tag = Tuple[str, str]

REVIEW = "AdReview"
FOLLOW = "Follow"
LIST = "LIST"

# Marks an argument the caller left out, as opposed to an explicit None
_UNSET: Any = object()


class ApiError(Exception):
    """A non-success envelope or HTTP error from the API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


# ================== TAGS ==================
def ad_reviews_tag(ad_id: int) -> Tag:
    return (REVIEW, f"AD-{ad_id}")


def ad_rating_tag(ad_id: int) -> Tag:
    return (REVIEW, f"RATING-{ad_id}")


def my_review_tag(ad_id: int) -> Tag:
    return (REVIEW, f"MY-{ad_id}")


def user_reviews_tag(user_id: int) -> Tag:
    return (REVIEW, f"USER-{user_id}")


def review_tag(review_id: int) -> Tag:
    return (REVIEW, str(review_id))


def followers_tag(user_id: int) -> Tag:
    return (FOLLOW, f"FOLLOWERS-{user_id}")


def following_tag(user_id: int) -> Tag:
    return (FOLLOW, f"FOLLOWING-{user_id}")


def follow_status_tag(user_id: int) -> Tag:
    return (FOLLOW, f"STATUS-{user_id}")


def _follow_tags(user_id: int, me: Optional[int] = None, **_) -> List[Tag]:
    tags = [followers_tag(user_id), follow_status_tag(user_id)]
    if me is None:
        # Without the caller's id every following list and status has to go
        tags.append((FOLLOW, LIST))
    else:
        tags.extend([following_tag(me), follow_status_tag(me)])
    return tags


def _review_tags(review_id: int, **_) -> List[Tag]:
    return [review_tag(review_id), (REVIEW, LIST)]


def _new_review_tags(ad_id: int, **_) -> List[Tag]:
    return [
        ad_reviews_tag(ad_id),
        ad_rating_tag(ad_id),
        my_review_tag(ad_id),
        (REVIEW, LIST),
    ]


# Mutation name -> tags it invalidates, computed from the call's arguments.
# Every review list, rating and my-review entry also carries (AdReview, LIST),
# and every follow list carries (Follow, LIST).
INVALIDATION_MAP: Dict[str, Callable[..., Iterable[Tag]]] = {
    "follow": _follow_tags,
    "unfollow": _follow_tags,
    "create_review": _new_review_tags,
    "update_review": _review_tags,
    "delete_review": _review_tags,
    "add_reaction": _review_tags,
    "remove_reaction": _review_tags,
}


@dataclass
class _CacheEntry:
    payload: Dict[str, Any]
    tags: FrozenSet[Tag] = field(default_factory=frozenset)


class MarketplaceClient:
    """Async HTTP client with tag-based response caching."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        token: Optional[str] = None,
        user_id: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        prefix: str = settings.API_V1_STR,
        timeout: float = 10.0,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url, transport=transport, timeout=timeout
        )
        self._prefix = prefix.rstrip("/")
        self._token = token
        self._user_id = user_id
        self._cache: Dict[str, _CacheEntry] = {}

    async def __aenter__(self) -> "MarketplaceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def set_credentials(self, token: Optional[str], user_id: Optional[int] = None) -> None:
        """Switch the acting user. Cached reads belong to the old one, so drop them."""
        self._token = token
        self._user_id = user_id
        self._cache.clear()

    # ================== CACHE ==================
    def cached_paths(self) -> List[str]:
        return sorted(self._cache)

    def invalidate_tags(self, tags: Iterable[Tag]) -> int:
        """Drop every cached entry labelled with any of ``tags``."""
        doomed = set(tags)
        stale = [key for key, entry in self._cache.items() if entry.tags & doomed]
        for key in stale:
            del self._cache[key]
        if stale:
            logger.debug("Invalidated cached reads", extra={"paths": stale})
        return len(stale)

    def _invalidate(self, mutation: str, **kwargs) -> None:
        self.invalidate_tags(INVALIDATION_MAP[mutation](me=self._user_id, **kwargs))

    # ================== TRANSPORT ==================
    def _headers(self) -> Dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[BaseModel] = None,
    ) -> Dict[str, Any]:
        response = await self._http.request(
            method,
            f"{self._prefix}{path}",
            params=params,
            json=body.model_dump(mode="json", exclude_unset=True) if body else None,
            headers=self._headers(),
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.is_error or not payload.get("success", False):
            raise ApiError(
                response.status_code,
                payload.get("message") or response.reason_phrase or "Request failed",
            )
        return payload

    async def _query(
        self,
        path: str,
        model: Type[BaseModel],
        *,
        tags: Iterable[Tag],
        params: Optional[Dict[str, Any]] = None,
    ):
        key = str(httpx.URL(path, params=params or {}))
        entry = self._cache.get(key)
        if entry is None:
            payload = await self._send("GET", path, params=params)
            entry = _CacheEntry(payload=payload, tags=frozenset(tags))
            self._cache[key] = entry
        return ApiResponse[model].model_validate(entry.payload).data

    async def _mutate(
        self,
        mutation: str,
        method: str,
        path: str,
        model: Optional[Type[BaseModel]] = None,
        *,
        body: Optional[BaseModel] = None,
        tag_args: Optional[Dict[str, int]] = None,
    ):
        payload = await self._send(method, path, body=body)
        self._invalidate(mutation, **(tag_args or {}))
        if model is None:
            return payload.get("message")
        return ApiResponse[model].model_validate(payload).data

    # ================== FOLLOWS ==================
    async def follow(self, user_id: int) -> FollowResponse:
        return await self._mutate(
            "follow", "POST", f"/follows/{user_id}", FollowResponse,
            tag_args={"user_id": user_id},
        )

    async def unfollow(self, user_id: int) -> Optional[str]:
        return await self._mutate(
            "unfollow", "DELETE", f"/follows/{user_id}", tag_args={"user_id": user_id}
        )

    async def list_followers(
        self, user_id: int, *, page: int = 1, limit: int = settings.DEFAULT_PAGE_SIZE
    ) -> FollowListResponse:
        return await self._query(
            f"/follows/{user_id}/followers",
            FollowListResponse,
            tags=[followers_tag(user_id), (FOLLOW, LIST)],
            params={"page": page, "limit": limit},
        )

    async def list_following(
        self, user_id: int, *, page: int = 1, limit: int = settings.DEFAULT_PAGE_SIZE
    ) -> FollowListResponse:
        return await self._query(
            f"/follows/{user_id}/following",
            FollowListResponse,
            tags=[following_tag(user_id), (FOLLOW, LIST)],
            params={"page": page, "limit": limit},
        )

    async def follow_status(self, user_id: int) -> FollowStatus:
        return await self._query(
            f"/follows/{user_id}/status",
            FollowStatus,
            tags=[follow_status_tag(user_id), (FOLLOW, LIST)],
        )

    # ================== REVIEWS ==================
    async def get_ad_reviews(
        self, ad_id: int, *, page: int = 1, limit: int = settings.REVIEW_PAGE_SIZE
    ) -> ReviewListResponse:
        return await self._query(
            f"/ad-reviews/ad/{ad_id}",
            ReviewListResponse,
            tags=[ad_reviews_tag(ad_id), (REVIEW, LIST)],
            params={"page": page, "limit": limit},
        )

    async def get_ad_rating(self, ad_id: int) -> RatingSummary:
        return await self._query(
            f"/ad-reviews/ad/{ad_id}/rating",
            RatingSummary,
            tags=[ad_rating_tag(ad_id), (REVIEW, LIST)],
        )

    async def get_my_review(self, ad_id: int) -> Optional[ReviewResponse]:
        return await self._query(
            f"/ad-reviews/ad/{ad_id}/my-review",
            ReviewResponse,
            tags=[my_review_tag(ad_id), (REVIEW, LIST)],
        )

    async def get_user_reviews(
        self, user_id: int, *, page: int = 1, limit: int = settings.REVIEW_PAGE_SIZE
    ) -> ReviewListResponse:
        return await self._query(
            f"/ad-reviews/user/{user_id}",
            ReviewListResponse,
            tags=[user_reviews_tag(user_id), (REVIEW, LIST)],
            params={"page": page, "limit": limit},
        )

    async def get_review(self, review_id: int) -> ReviewResponse:
        return await self._query(
            f"/ad-reviews/{review_id}", ReviewResponse, tags=[review_tag(review_id)]
        )

    async def create_review(
        self, ad_id: int, *, rating: int, body: Optional[str] = None
    ) -> ReviewResponse:
        return await self._mutate(
            "create_review", "POST", f"/ad-reviews/ad/{ad_id}", ReviewResponse,
            body=ReviewCreate(rating=rating, body=body),
            tag_args={"ad_id": ad_id},
        )

    async def update_review(
        self, review_id: int, *, rating: Optional[int] = None, body: Any = _UNSET
    ) -> ReviewResponse:
        """Leave ``body`` out to keep the text; ``body=None`` clears it."""
        changes: Dict[str, Any] = {} if rating is None else {"rating": rating}
        if body is not _UNSET:
            changes["body"] = body
        return await self._mutate(
            "update_review", "PUT", f"/ad-reviews/{review_id}", ReviewResponse,
            body=ReviewUpdate(**changes),
            tag_args={"review_id": review_id},
        )

    async def delete_review(self, review_id: int) -> Optional[str]:
        return await self._mutate(
            "delete_review", "DELETE", f"/ad-reviews/{review_id}",
            tag_args={"review_id": review_id},
        )

    async def add_reaction(self, review_id: int, reaction_type: ReactionType) -> ReactionResponse:
        return await self._mutate(
            "add_reaction", "POST", f"/ad-reviews/{review_id}/react", ReactionResponse,
            body=ReactionCreate(type=reaction_type),
            tag_args={"review_id": review_id},
        )

    async def remove_reaction(self, review_id: int) -> Optional[str]:
        return await self._mutate(
            "remove_reaction", "DELETE", f"/ad-reviews/{review_id}/react",
            tag_args={"review_id": review_id},
        )


__all__ = [
    "ApiError",
    "INVALIDATION_MAP",
    "MarketplaceClient",
]
