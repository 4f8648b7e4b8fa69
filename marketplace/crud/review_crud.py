import logging
from typing import Optional, List, Dict, Any, TypeVar, Generic, Tuple
from abc import ABC, abstractmethod

from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, func, and_, delete

from marketplace.core.exception_utils import handle_exceptions
from marketplace.core.exceptions import InternalServerError
from marketplace.models.reaction_model import ReviewReaction, ReactionType
from marketplace.models.review_model import AdReview


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository providing consistent interface for database operations."""

    def __init__(self, model: type[T]):
        self.model = model

    @abstractmethod
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[T]:
        """Get entity by its primary key."""
        pass

    @abstractmethod
    async def create(self, db: AsyncSession, *, obj_in: Any) -> Optional[T]:
        """Create a new entity."""
        pass

    @abstractmethod
    async def update(self, db: AsyncSession, *, db_obj: T, fields_to_update: Dict[str, Any]) -> T:
        """Update an existing entity."""
        pass

    @abstractmethod
    async def delete(self, db: AsyncSession, *, obj_id: Any) -> bool:
        """Delete an entity by its primary key."""
        pass


class ReviewRepository(BaseRepository[AdReview]):
    """Sole writer of the ``ad_reviews`` table."""

    def __init__(self):
        super().__init__(AdReview)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[AdReview]:
        """Get a review by its id"""
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get_by_user_and_ad(
        self, db: AsyncSession, *, user_id: int, ad_id: int
    ) -> Optional[AdReview]:
        """Get review by user and ad (unique constraint)."""
        statement = select(self.model).where(
            and_(self.model.user_id == user_id, self.model.ad_id == ad_id)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get_many(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        order_desc: bool = True,
    ) -> Tuple[List[AdReview], int]:
        """Retrieve reviews with filtering and pagination."""
        query = select(self.model)

        if filters:
            query = self._apply_filters(query, filters=filters)

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar_one()

        query = self._apply_ordering(query, order_by, order_desc)

        result = await db.execute(query.offset(skip).limit(limit))
        reviews = result.scalars().all()

        return list(reviews), total

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get_rating_stats(
        self, db: AsyncSession, *, ad_id: int
    ) -> Tuple[float, int, Dict[int, int]]:
        """Average, count and per-value distribution of an ad's ratings."""
        statement = (
            select(self.model.rating, func.count())
            .where(self.model.ad_id == ad_id)
            .group_by(self.model.rating)
        )
        result = await db.execute(statement)
        distribution = {int(rating): int(n) for rating, n in result.all()}

        count = sum(distribution.values())
        if count == 0:
            return 0.0, 0, distribution

        average = sum(r * n for r, n in distribution.items()) / count
        return average, count, distribution

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get_reaction_counts(
        self, db: AsyncSession, *, review_ids: List[int]
    ) -> Dict[int, Dict[ReactionType, int]]:
        """Reaction totals per type for each of ``review_ids``."""
        if not review_ids:
            return {}
        statement = (
            select(ReviewReaction.review_id, ReviewReaction.type, func.count())
            .where(ReviewReaction.review_id.in_(review_ids))
            .group_by(ReviewReaction.review_id, ReviewReaction.type)
        )
        result = await db.execute(statement)

        counts: Dict[int, Dict[ReactionType, int]] = {}
        for review_id, reaction_type, n in result.all():
            counts.setdefault(review_id, {})[ReactionType(reaction_type)] = n
        return counts

    # CRUD
    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def create(self, db: AsyncSession, *, obj_in: AdReview) -> Optional[AdReview]:
        """
        Create a review. Returns None if the author already reviewed the ad,
        which the unique constraint detects even under concurrent requests.
        """
        user_id, ad_id = obj_in.user_id, obj_in.ad_id
        db.add(obj_in)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if await self.get_by_user_and_ad(db, user_id=user_id, ad_id=ad_id):
                self._logger.info(
                    "Duplicate review rejected by constraint",
                    extra={"user_id": user_id, "ad_id": ad_id},
                )
                return None
            raise

        await db.refresh(obj_in)
        self._logger.info(f"Review created: {obj_in.id}")
        return obj_in

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def update(
        self, db: AsyncSession, *, db_obj: AdReview, fields_to_update: Dict[str, Any]
    ) -> AdReview:
        """Update a review"""
        for field, value in fields_to_update.items():
            setattr(db_obj, field, value)
        db_obj.updated_at = datetime.now(timezone.utc)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)

        self._logger.info(
            f"Review fields updated for {db_obj.id}: {list(fields_to_update.keys())}"
        )
        return db_obj

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def delete(self, db: AsyncSession, *, obj_id: int) -> bool:
        """Delete a review and its reactions in one transaction."""
        await db.execute(delete(ReviewReaction).where(ReviewReaction.review_id == obj_id))
        result = await db.execute(delete(self.model).where(self.model.id == obj_id))
        await db.commit()

        removed = (result.rowcount or 0) > 0
        if removed:
            self._logger.info(f"Review hard deleted: {obj_id}")
        return removed

    def _apply_filters(self, query, *, filters: Dict[str, Any]):
        """Apply filters to a review query."""
        conditions = []

        if filters.get("ad_id"):
            conditions.append(self.model.ad_id == filters["ad_id"])

        if filters.get("user_id"):
            conditions.append(self.model.user_id == filters["user_id"])

        if filters.get("rating") is not None:
            conditions.append(self.model.rating == filters["rating"])

        if conditions:
            query = query.where(and_(*conditions))

        return query

    def _apply_ordering(self, query, order_by: str, order_desc: bool):
        """Apply ordering to query, newest id breaking ties."""
        order_column = getattr(self.model, order_by, self.model.created_at)
        if order_desc:
            return query.order_by(order_column.desc(), self.model.id.desc())
        return query.order_by(order_column.asc(), self.model.id.asc())


review_repository = ReviewRepository()
