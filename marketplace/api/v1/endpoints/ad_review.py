import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, status
from sqlmodel.ext.asyncio.session import AsyncSession

from marketplace.core.config import settings
from marketplace.db.session import get_session
from marketplace.models.user_model import User
from marketplace.schemas.common_schema import ApiResponse
from marketplace.schemas.review_schema import (
    RatingSummary,
    ReactionCreate,
    ReactionResponse,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from marketplace.services.review_service import review_service
from marketplace.utils.deps import (
    PaginationParams,
    get_current_user,
    get_review_pagination_params,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Ad Reviews"],
    prefix=f"{settings.API_V1_STR}/ad-reviews",
)


# =====READ======
@router.get(
    "/ad/{ad_id}",
    response_model=ApiResponse[ReviewListResponse],
    status_code=status.HTTP_200_OK,
    summary="Get reviews for an ad",
)
async def get_ad_reviews(
    *,
    ad_id: int = Path(..., le=settings.MAX_ID),
    db: AsyncSession = Depends(get_session),
    pagination: PaginationParams = Depends(get_review_pagination_params),
):
    result = await review_service.get_reviews_for_ad(
        db, ad_id=ad_id, page=pagination.page, limit=pagination.limit
    )
    return ApiResponse(data=result)


@router.get(
    "/ad/{ad_id}/rating",
    response_model=ApiResponse[RatingSummary],
    status_code=status.HTTP_200_OK,
    summary="Get an ad's aggregate rating",
)
async def get_ad_rating(
    *,
    ad_id: int = Path(..., le=settings.MAX_ID),
    db: AsyncSession = Depends(get_session),
):
    result = await review_service.get_rating_for_ad(db, ad_id=ad_id)
    return ApiResponse(data=result)


@router.get(
    "/ad/{ad_id}/my-review",
    response_model=ApiResponse[Optional[ReviewResponse]],
    status_code=status.HTTP_200_OK,
    summary="Get your review of an ad",
)
async def get_my_review(
    *,
    ad_id: int = Path(..., le=settings.MAX_ID),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    result = await review_service.get_my_review(
        db, author_id=current_user.id, ad_id=ad_id
    )
    return ApiResponse(data=result)


@router.get(
    "/user/{user_id}",
    response_model=ApiResponse[ReviewListResponse],
    status_code=status.HTTP_200_OK,
    summary="Get reviews written by a user",
)
async def get_user_reviews(
    *,
    user_id: int = Path(..., le=settings.MAX_ID),
    db: AsyncSession = Depends(get_session),
    pagination: PaginationParams = Depends(get_review_pagination_params),
):
    result = await review_service.get_reviews_by_user(
        db, user_id=user_id, page=pagination.page, limit=pagination.limit
    )
    return ApiResponse(data=result)


@router.get(
    "/{review_id}",
    response_model=ApiResponse[ReviewResponse],
    status_code=status.HTTP_200_OK,
    summary="Get review by ID",
)
async def get_review(
    *,
    review_id: int = Path(..., le=settings.MAX_ID),
    db: AsyncSession = Depends(get_session),
):
    result = await review_service.get_review(db, review_id=review_id)
    return ApiResponse(data=result)


# =====CREATE======
@router.post(
    "/ad/{ad_id}",
    response_model=ApiResponse[ReviewResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Review an ad",
)
async def create_review(
    *,
    ad_id: int = Path(..., le=settings.MAX_ID),
    review_data: ReviewCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Create a review for an ad.

    - One review per user per ad; a second attempt returns 409
    - Rating must lie within the configured bounds (1 to 5 by default)
    """
    result = await review_service.create_review(
        db, author_id=current_user.id, ad_id=ad_id, review_data=review_data
    )
    return ApiResponse(data=result, message="Review created successfully")


# =======UPDATE========
@router.put(
    "/{review_id}",
    response_model=ApiResponse[ReviewResponse],
    status_code=status.HTTP_200_OK,
    summary="Update review",
)
async def update_review(
    *,
    review_id: int = Path(..., le=settings.MAX_ID),
    review_data: ReviewUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Users can only update their own reviews."""
    result = await review_service.update_review(
        db, review_id=review_id, author_id=current_user.id, review_data=review_data
    )
    return ApiResponse(data=result, message="Review updated successfully")


# =======DELETE========
@router.delete(
    "/{review_id}",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Delete review",
)
async def delete_review(
    *,
    review_id: int = Path(..., le=settings.MAX_ID),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Users can only delete their own reviews. Reactions go with it."""
    await review_service.delete_review(
        db, review_id=review_id, author_id=current_user.id
    )
    logger.info(
        "Review deleted",
        extra={"review_id": review_id, "user_id": current_user.id},
    )
    return ApiResponse(message="Review deleted successfully")


# =======REACTIONS========
@router.post(
    "/{review_id}/react",
    response_model=ApiResponse[ReactionResponse],
    status_code=status.HTTP_200_OK,
    summary="React to a review",
)
async def add_reaction(
    *,
    review_id: int = Path(..., le=settings.MAX_ID),
    reaction: ReactionCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    result = await review_service.add_reaction(
        db, review_id=review_id, user_id=current_user.id, reaction_type=reaction.type
    )
    return ApiResponse(data=result, message="Reaction saved")


@router.delete(
    "/{review_id}/react",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Remove your reaction",
)
async def remove_reaction(
    *,
    review_id: int = Path(..., le=settings.MAX_ID),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    removed = await review_service.remove_reaction(
        db, review_id=review_id, user_id=current_user.id
    )
    return ApiResponse(message="Reaction removed" if removed else "No reaction to remove")
