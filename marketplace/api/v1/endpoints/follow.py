from fastapi import APIRouter, Depends, Path, status
from sqlmodel.ext.asyncio.session import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exceptions import BadRequestException, ResourceNotFound
from marketplace.db.session import get_session
from marketplace.models.user_model import User
from marketplace.schemas.common_schema import ApiResponse
from marketplace.schemas.follow_schema import (
    FollowListResponse,
    FollowResponse,
    FollowStatus,
)
from marketplace.services.follow_service import follow_service
from marketplace.utils.deps import (
    PaginationParams,
    get_current_user,
    get_pagination_params,
    get_path_user,
)

router = APIRouter(
    tags=["Follows"],
    prefix=f"{settings.API_V1_STR}/follows",
)


@router.post(
    "/{user_id}",
    response_model=ApiResponse[FollowResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Follow a user",
)
async def follow_user(
    *,
    current_user: User = Depends(get_current_user),
    target: User = Depends(get_path_user),
    db: AsyncSession = Depends(get_session),
):
    edge = await follow_service.follow(
        db, follower_id=current_user.id, following_id=target.id
    )
    if edge is None:
        raise BadRequestException("Already following this user")

    return ApiResponse(
        data=FollowResponse.model_validate(edge),
        message="User followed successfully",
    )


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Unfollow a user",
)
async def unfollow_user(
    *,
    user_id: int = Path(..., le=settings.MAX_ID),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    removed = await follow_service.unfollow(
        db, follower_id=current_user.id, following_id=user_id
    )
    if not removed:
        raise ResourceNotFound("Not following this user")

    return ApiResponse(message="User unfollowed successfully")


@router.get(
    "/{user_id}/followers",
    response_model=ApiResponse[FollowListResponse],
    status_code=status.HTTP_200_OK,
    summary="Get a user's followers",
)
async def get_followers(
    *,
    target: User = Depends(get_path_user),
    db: AsyncSession = Depends(get_session),
    pagination: PaginationParams = Depends(get_pagination_params),
):
    result = await follow_service.list_followers(
        db, user_id=target.id, page=pagination.page, limit=pagination.limit
    )
    return ApiResponse(data=result)


@router.get(
    "/{user_id}/following",
    response_model=ApiResponse[FollowListResponse],
    status_code=status.HTTP_200_OK,
    summary="Get the users a user follows",
)
async def get_following(
    *,
    target: User = Depends(get_path_user),
    db: AsyncSession = Depends(get_session),
    pagination: PaginationParams = Depends(get_pagination_params),
):
    result = await follow_service.list_following(
        db, user_id=target.id, page=pagination.page, limit=pagination.limit
    )
    return ApiResponse(data=result)


@router.get(
    "/{user_id}/status",
    response_model=ApiResponse[FollowStatus],
    status_code=status.HTTP_200_OK,
    summary="Check whether you follow a user",
)
async def get_follow_status(
    *,
    current_user: User = Depends(get_current_user),
    target: User = Depends(get_path_user),
    db: AsyncSession = Depends(get_session),
):
    result = await follow_service.get_status(
        db, viewer_id=current_user.id, user_id=target.id
    )
    return ApiResponse(data=result)
