import logging
from datetime import datetime, timezone
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exceptions import ValidationError
from marketplace.crud.follow_crud import follow_repository
from marketplace.models.follow_model import Follow
from marketplace.schemas.follow_schema import (
    FollowCounts,
    FollowListResponse,
    FollowStatus,
    FollowUserSummary,
)
from marketplace.services.cache_service import CacheKeys, cache_service
from marketplace.utils.pagination import clamp_pagination, page_offset, total_pages

logger = logging.getLogger(__name__)


class FollowService:
    """
    Follow/unfollow rules and follower listings.

    "Already following" and "not following" are ordinary outcomes reported as
    ``None``/``False``; following yourself is a rule violation and raises.
    Callers pass the acting user's id explicitly.
    """

    def __init__(self):
        self.follow_repository = follow_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ======= WRITE OPERATIONS =======
    async def follow(
        self, db: AsyncSession, *, follower_id: int, following_id: int
    ) -> Optional[Follow]:
        """Create the edge follower -> following, or return None if it exists."""
        if follower_id == following_id:
            raise ValidationError("Cannot follow yourself", user_id=follower_id)

        existing = await self.follow_repository.get(
            db, follower_id=follower_id, following_id=following_id
        )
        if existing is not None:
            return None

        edge = await self.follow_repository.create(
            db,
            follow=Follow(
                follower_id=follower_id,
                following_id=following_id,
                created_at=datetime.now(timezone.utc),
            ),
        )
        if edge is not None:
            await self._invalidate_counts(follower_id, following_id)
            self._logger.info(
                "User followed",
                extra={"follower_id": follower_id, "following_id": following_id},
            )
        return edge

    async def unfollow(
        self, db: AsyncSession, *, follower_id: int, following_id: int
    ) -> bool:
        """Remove the edge; False means there was nothing to remove."""
        removed = await self.follow_repository.delete(
            db, follower_id=follower_id, following_id=following_id
        )
        if removed:
            await self._invalidate_counts(follower_id, following_id)
            self._logger.info(
                "User unfollowed",
                extra={"follower_id": follower_id, "following_id": following_id},
            )
        return removed

    # ======= READ OPERATIONS =======
    async def list_followers(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        page: int = 1,
        limit: int = settings.DEFAULT_PAGE_SIZE,
    ) -> FollowListResponse:
        page, limit = clamp_pagination(page, limit)
        rows, total = await self.follow_repository.get_followers(
            db, user_id=user_id, skip=page_offset(page, limit), limit=limit
        )
        return self._to_list(rows, total, page, limit)

    async def list_following(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        page: int = 1,
        limit: int = settings.DEFAULT_PAGE_SIZE,
    ) -> FollowListResponse:
        page, limit = clamp_pagination(page, limit)
        rows, total = await self.follow_repository.get_following(
            db, user_id=user_id, skip=page_offset(page, limit), limit=limit
        )
        return self._to_list(rows, total, page, limit)

    async def is_following(
        self, db: AsyncSession, *, follower_id: int, following_id: int
    ) -> bool:
        return await self.follow_repository.exists(
            db, follower_id=follower_id, following_id=following_id
        )

    async def get_counts(self, db: AsyncSession, *, user_id: int) -> FollowCounts:
        key = CacheKeys.follow_counts(user_id)
        cached = await cache_service.get_json(key)
        if cached is not None:
            return FollowCounts.model_validate(cached)

        followers_count, following_count = await self.follow_repository.count(
            db, user_id=user_id
        )
        counts = FollowCounts(
            followers_count=followers_count, following_count=following_count
        )
        await cache_service.set_json(
            key, counts.model_dump(), ttl=settings.AGGREGATE_CACHE_TTL
        )
        return counts

    async def get_status(
        self, db: AsyncSession, *, viewer_id: int, user_id: int
    ) -> FollowStatus:
        """What the viewer sees on a profile: follow state and counts."""
        is_following = await self.is_following(
            db, follower_id=viewer_id, following_id=user_id
        )
        counts = await self.get_counts(db, user_id=user_id)
        return FollowStatus(is_following=is_following, **counts.model_dump())

    # Helper Functions
    def _to_list(self, rows, total: int, page: int, limit: int) -> FollowListResponse:
        items = [
            FollowUserSummary(
                id=user.id,
                username=user.username,
                full_name=user.full_name,
                avatar_url=user.avatar_url,
                followed_at=followed_at,
            )
            for user, followed_at in rows
        ]
        return FollowListResponse(
            items=items,
            total=total,
            page=page,
            limit=limit,
            pages=total_pages(total, limit),
        )

    async def _invalidate_counts(self, *user_ids: int) -> None:
        await cache_service.invalidate(*(CacheKeys.follow_counts(u) for u in user_ids))


follow_service = FollowService()
