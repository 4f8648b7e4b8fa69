import logging
from typing import Dict, List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession
from datetime import datetime, timezone

from marketplace.core.config import settings
from marketplace.core.exception_utils import raise_for_status
from marketplace.core.exceptions import (
    ResourceNotFound,
    NotAuthorized,
    ValidationError,
    ResourceAlreadyExists,
)
from marketplace.crud.ad_crud import ad_repository
from marketplace.crud.reaction_crud import review_reaction_repository
from marketplace.crud.review_crud import review_repository
from marketplace.crud.user_crud import user_repository
from marketplace.models.reaction_model import ReactionType
from marketplace.models.review_model import AdReview
from marketplace.schemas.review_schema import (
    RatingSummary,
    ReactionResponse,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from marketplace.schemas.user_schema import AdSummary, UserSummary
from marketplace.services.cache_service import CacheKeys, cache_service
from marketplace.utils.pagination import clamp_pagination, page_offset, total_pages

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Ad reviews: one per author per ad, editable and deletable by the author
    only, with an aggregate rating per ad and per-user reactions.

    The acting user's id is always passed in by the caller.
    """

    def __init__(self):
        self.review_repository = review_repository
        self.reaction_repository = review_reaction_repository
        self.user_repository = user_repository
        self.ad_repository = ad_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _check_authorization(self, author_id: int, review: AdReview, action: str) -> None:
        """Only the author may change or remove a review."""
        raise_for_status(
            condition=review.user_id != author_id,
            exception=NotAuthorized,
            detail=f"You are not authorized to {action} this review.",
            review_id=review.id,
            user_id=author_id,
        )

    def _validate_rating(self, rating: int) -> None:
        low, high = settings.REVIEW_MIN_RATING, settings.REVIEW_MAX_RATING
        if not low <= rating <= high:
            raise ValidationError(f"Rating must be between {low} and {high}")

    # ======= READ OPERATIONS =======
    async def get_review(self, db: AsyncSession, *, review_id: int) -> ReviewResponse:
        """Get a review by its ID"""
        review = await cache_service.get_model(AdReview, review_id)
        if review is None:
            review = await self.review_repository.get(db, obj_id=review_id)
            raise_for_status(
                condition=review is None,
                exception=ResourceNotFound,
                resource_type="Review",
                resource_id=review_id,
            )
            await cache_service.set_model(review)

        return (await self._build_responses(db, [review]))[0]

    async def get_reviews_for_ad(
        self,
        db: AsyncSession,
        *,
        ad_id: int,
        page: int = 1,
        limit: int = settings.REVIEW_PAGE_SIZE,
    ) -> ReviewListResponse:
        """Reviews of one ad, newest first."""
        ad = await self.ad_repository.get(db, obj_id=ad_id)
        raise_for_status(
            condition=ad is None,
            exception=ResourceNotFound,
            resource_type="Ad",
            resource_id=ad_id,
        )
        return await self._list(
            db, filters={"ad_id": ad_id}, page=page, limit=limit, include_ad=False
        )

    async def get_reviews_by_user(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        page: int = 1,
        limit: int = settings.REVIEW_PAGE_SIZE,
    ) -> ReviewListResponse:
        """Reviews written by one user, newest first, each with its ad."""
        return await self._list(
            db, filters={"user_id": user_id}, page=page, limit=limit, include_ad=True
        )

    async def get_my_review(
        self, db: AsyncSession, *, author_id: int, ad_id: int
    ) -> Optional[ReviewResponse]:
        review = await self.review_repository.get_by_user_and_ad(
            db, user_id=author_id, ad_id=ad_id
        )
        if review is None:
            return None
        return (await self._build_responses(db, [review]))[0]

    async def get_rating_for_ad(self, db: AsyncSession, *, ad_id: int) -> RatingSummary:
        key = CacheKeys.ad_rating(ad_id)
        cached = await cache_service.get_json(key)
        if cached is not None:
            return RatingSummary.model_validate(cached)

        average, count, distribution = await self.review_repository.get_rating_stats(
            db, ad_id=ad_id
        )
        summary = RatingSummary(
            ad_id=ad_id,
            average=average,
            count=count,
            distribution={
                value: distribution.get(value, 0)
                for value in range(
                    settings.REVIEW_MIN_RATING, settings.REVIEW_MAX_RATING + 1
                )
            },
        )
        await cache_service.set_json(
            key, summary.model_dump(), ttl=settings.AGGREGATE_CACHE_TTL
        )
        return summary

    # ========CREATE======
    async def create_review(
        self,
        db: AsyncSession,
        *,
        author_id: int,
        ad_id: int,
        review_data: ReviewCreate,
    ) -> ReviewResponse:
        """Create the author's review of an ad."""
        ad = await self.ad_repository.get(db, obj_id=ad_id)
        raise_for_status(
            condition=ad is None,
            exception=ResourceNotFound,
            resource_type="Ad",
            resource_id=ad_id,
        )
        self._validate_rating(review_data.rating)

        existing_review = await self.review_repository.get_by_user_and_ad(
            db, user_id=author_id, ad_id=ad_id
        )
        raise_for_status(
            condition=existing_review is not None,
            exception=ResourceAlreadyExists,
            detail="You have already reviewed this ad",
            resource_type="Review",
        )

        now = datetime.now(timezone.utc)
        review_to_create = AdReview(
            user_id=author_id,
            ad_id=ad_id,
            rating=review_data.rating,
            body=review_data.body,
            created_at=now,
            updated_at=now,
        )
        new_review = await self.review_repository.create(db, obj_in=review_to_create)
        # Lost the race to a concurrent request from the same author
        raise_for_status(
            condition=new_review is None,
            exception=ResourceAlreadyExists,
            detail="You have already reviewed this ad",
            resource_type="Review",
        )

        await cache_service.invalidate(CacheKeys.ad_rating(ad_id))
        self._logger.info(
            f"New review created: {new_review.id}",
            extra={"ad_id": ad_id, "author_id": author_id},
        )
        return (await self._build_responses(db, [new_review]))[0]

    # ========UPDATE======
    async def update_review(
        self,
        db: AsyncSession,
        *,
        review_id: int,
        author_id: int,
        review_data: ReviewUpdate,
    ) -> ReviewResponse:
        """Apply the author's changes to a review."""
        review = await self._get_owned_review(
            db, review_id=review_id, author_id=author_id, action="update"
        )

        update_dict = review_data.model_dump(exclude_unset=True)
        if update_dict.get("rating") is None:
            update_dict.pop("rating", None)
        else:
            self._validate_rating(update_dict["rating"])

        updated_review = await self.review_repository.update(
            db, db_obj=review, fields_to_update=update_dict
        )

        await cache_service.invalidate(
            CacheKeys.model(AdReview, review_id), CacheKeys.ad_rating(review.ad_id)
        )
        self._logger.info(
            f"Review {review_id} updated by {author_id}",
            extra={
                "updated_review_id": review_id,
                "updated_fields": list(update_dict.keys()),
            },
        )
        return (await self._build_responses(db, [updated_review]))[0]

    # ========DELETE=======
    async def delete_review(
        self, db: AsyncSession, *, review_id: int, author_id: int
    ) -> bool:
        """Delete a review together with its reactions."""
        review = await self._get_owned_review(
            db, review_id=review_id, author_id=author_id, action="delete"
        )
        ad_id = review.ad_id

        removed = await self.review_repository.delete(db, obj_id=review_id)

        await cache_service.invalidate(
            CacheKeys.model(AdReview, review_id), CacheKeys.ad_rating(ad_id)
        )
        self._logger.warning(
            f"Review {review_id} permanently deleted by {author_id}",
            extra={"deleted_review_id": review_id, "ad_id": ad_id},
        )
        return removed

    # ======REACTIONS======
    async def add_reaction(
        self,
        db: AsyncSession,
        *,
        review_id: int,
        user_id: int,
        reaction_type: ReactionType,
    ) -> ReactionResponse:
        """Record the user's reaction, replacing any earlier one."""
        review = await self.review_repository.get(db, obj_id=review_id)
        raise_for_status(
            condition=review is None,
            exception=ResourceNotFound,
            resource_type="Review",
            resource_id=review_id,
        )

        reaction = await self.reaction_repository.upsert(
            db, user_id=user_id, review_id=review_id, reaction_type=reaction_type
        )
        self._logger.info(
            "Reaction recorded",
            extra={"review_id": review_id, "user_id": user_id, "type": reaction_type.value},
        )
        return ReactionResponse.model_validate(reaction)

    async def remove_reaction(
        self, db: AsyncSession, *, review_id: int, user_id: int
    ) -> bool:
        return await self.reaction_repository.delete(
            db, user_id=user_id, review_id=review_id
        )

    # Helper Functions
    async def _get_owned_review(
        self, db: AsyncSession, *, review_id: int, author_id: int, action: str
    ) -> AdReview:
        review = await self.review_repository.get(db, obj_id=review_id)
        raise_for_status(
            condition=review is None,
            exception=ResourceNotFound,
            resource_type="Review",
            resource_id=review_id,
        )
        self._check_authorization(author_id, review, action)
        return review

    async def _list(
        self,
        db: AsyncSession,
        *,
        filters: Dict[str, int],
        page: int,
        limit: int,
        include_ad: bool,
    ) -> ReviewListResponse:
        page, limit = clamp_pagination(page, limit, default_limit=settings.REVIEW_PAGE_SIZE)
        reviews, total = await self.review_repository.get_many(
            db,
            skip=page_offset(page, limit),
            limit=limit,
            filters=filters,
            order_by="created_at",
            order_desc=True,
        )
        items = await self._build_responses(db, reviews, include_ad=include_ad)

        self._logger.info(f"Review list retrieved : {len(items)} reviews returned")
        return ReviewListResponse(
            items=items,
            total=total,
            page=page,
            limit=limit,
            pages=total_pages(total, limit),
        )

    async def _build_responses(
        self, db: AsyncSession, reviews: List[AdReview], *, include_ad: bool = False
    ) -> List[ReviewResponse]:
        """Attach author, reaction counts and optionally the ad to each review."""
        if not reviews:
            return []

        authors = await self.user_repository.get_many_by_ids(
            db, ids=[r.user_id for r in reviews]
        )
        reactions = await self.review_repository.get_reaction_counts(
            db, review_ids=[r.id for r in reviews]
        )
        ads = {}
        if include_ad:
            ads = await self.ad_repository.get_many_by_ids(
                db, ids=[r.ad_id for r in reviews]
            )

        responses = []
        for review in reviews:
            author = authors.get(review.user_id)
            ad = ads.get(review.ad_id)
            counts = reactions.get(review.id, {})
            responses.append(
                ReviewResponse(
                    id=review.id,
                    ad_id=review.ad_id,
                    user_id=review.user_id,
                    rating=review.rating,
                    body=review.body,
                    created_at=review.created_at,
                    updated_at=review.updated_at,
                    author=UserSummary.model_validate(author) if author else None,
                    ad=AdSummary.model_validate(ad) if ad else None,
                    helpful_count=counts.get(ReactionType.HELPFUL, 0),
                    not_helpful_count=counts.get(ReactionType.NOT_HELPFUL, 0),
                )
            )
        return responses


review_service = ReviewService()
