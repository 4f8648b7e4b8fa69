import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, func, delete

from marketplace.core.exception_utils import handle_exceptions
from marketplace.core.exceptions import InternalServerError
from marketplace.models.follow_model import Follow
from marketplace.models.user_model import User

logger = logging.getLogger(__name__)


class FollowRepository:
    """Sole writer of the ``follows`` table."""

    def __init__(self):
        self.model = Follow
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get(
        self, db: AsyncSession, *, follower_id: int, following_id: int
    ) -> Optional[Follow]:
        """Gets a specific edge by its two user ids."""
        statement = select(self.model).where(
            self.model.follower_id == follower_id,
            self.model.following_id == following_id,
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def exists(
        self, db: AsyncSession, *, follower_id: int, following_id: int
    ) -> bool:
        edge = await self.get(db, follower_id=follower_id, following_id=following_id)
        return edge is not None

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def create(self, db: AsyncSession, *, follow: Follow) -> Optional[Follow]:
        """
        Insert an edge. Returns None when the pair is already stored, including
        when a concurrent request inserted it first.
        """
        follower_id, following_id = follow.follower_id, follow.following_id
        db.add(follow)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if await self.exists(
                db, follower_id=follower_id, following_id=following_id
            ):
                self._logger.info(
                    "Follow edge already exists",
                    extra={"follower_id": follower_id, "following_id": following_id},
                )
                return None
            raise

        await db.refresh(follow)
        self._logger.info(f"Follow created: {follower_id} -> {following_id}")
        return follow

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def delete(
        self, db: AsyncSession, *, follower_id: int, following_id: int
    ) -> bool:
        """Deletes an edge; returns whether a row was removed."""
        statement = delete(self.model).where(
            self.model.follower_id == follower_id,
            self.model.following_id == following_id,
        )
        result = await db.execute(statement)
        await db.commit()
        removed = (result.rowcount or 0) > 0
        if removed:
            self._logger.info(f"Follow deleted: {follower_id} -> {following_id}")
        return removed

    async def get_followers(
        self, db: AsyncSession, *, user_id: int, skip: int = 0, limit: int = 20
    ) -> Tuple[List[Tuple[User, datetime]], int]:
        """Users following ``user_id``, most recent first."""
        return await self._list_edges(
            db,
            match_column=self.model.following_id,
            user_column=self.model.follower_id,
            user_id=user_id,
            skip=skip,
            limit=limit,
        )

    async def get_following(
        self, db: AsyncSession, *, user_id: int, skip: int = 0, limit: int = 20
    ) -> Tuple[List[Tuple[User, datetime]], int]:
        """Users that ``user_id`` follows, most recent first."""
        return await self._list_edges(
            db,
            match_column=self.model.follower_id,
            user_column=self.model.following_id,
            user_id=user_id,
            skip=skip,
            limit=limit,
        )

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def count(self, db: AsyncSession, *, user_id: int) -> Tuple[int, int]:
        """Returns ``(followers_count, following_count)`` for a user."""
        followers = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.following_id == user_id)
            .scalar_subquery()
        )
        following = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.follower_id == user_id)
            .scalar_subquery()
        )
        result = await db.execute(select(followers, following))
        followers_count, following_count = result.one()
        return followers_count, following_count

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def _list_edges(
        self,
        db: AsyncSession,
        *,
        match_column,
        user_column,
        user_id: int,
        skip: int,
        limit: int,
    ) -> Tuple[List[Tuple[User, datetime]], int]:
        count_query = (
            select(func.count()).select_from(self.model).where(match_column == user_id)
        )
        total = (await db.execute(count_query)).scalar_one()

        query = (
            select(User, self.model.created_at)
            .join(self.model, user_column == User.id)
            .where(match_column == user_id)
            .order_by(self.model.created_at.desc(), user_column.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)
        rows = [(user, followed_at) for user, followed_at in result.all()]
        return rows, total


follow_repository = FollowRepository()
