import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, delete

from marketplace.core.exception_utils import handle_exceptions
from marketplace.core.exceptions import InternalServerError
from marketplace.models.reaction_model import ReviewReaction, ReactionType


logger = logging.getLogger(__name__)


class ReviewReactionRepository:

    def __init__(self):
        self.model = ReviewReaction
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get(
        self, db: AsyncSession, *, user_id: int, review_id: int
    ) -> Optional[ReviewReaction]:
        """Gets a specific reaction by user and review ID."""
        statement = select(self.model).where(
            self.model.user_id == user_id, self.model.review_id == review_id
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def upsert(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        review_id: int,
        reaction_type: ReactionType,
    ) -> ReviewReaction:
        """Create the reaction, or replace its type if the user already reacted."""
        existing = await self.get(db, user_id=user_id, review_id=review_id)
        if existing is None:
            reaction = self.model(
                user_id=user_id, review_id=review_id, type=reaction_type
            )
            db.add(reaction)
            try:
                await db.commit()
                await db.refresh(reaction)
                return reaction
            except IntegrityError:
                # Lost a race with the same user's other request, or the
                # review vanished; retry as an update only in the first case.
                await db.rollback()
                existing = await self.get(db, user_id=user_id, review_id=review_id)
                if existing is None:
                    raise

        existing.type = reaction_type
        existing.updated_at = datetime.now(timezone.utc)
        db.add(existing)
        await db.commit()
        await db.refresh(existing)
        return existing

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def delete(self, db: AsyncSession, *, user_id: int, review_id: int) -> bool:
        """Deletes a reaction; returns whether one existed."""
        statement = delete(self.model).where(
            self.model.user_id == user_id, self.model.review_id == review_id
        )
        result = await db.execute(statement)
        await db.commit()
        return (result.rowcount or 0) > 0


# Singleton instance
review_reaction_repository = ReviewReactionRepository()
