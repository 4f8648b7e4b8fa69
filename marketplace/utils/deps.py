# marketplace/utils/deps.py
"""
FastAPI dependencies for authentication, pagination and path validation.

Route handlers read the authenticated user from ``get_current_user`` and pass
its id into the services explicitly.
"""

import logging
from typing import Optional

from fastapi import Depends, Path, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exception_utils import raise_for_status
from marketplace.core.exceptions import (
    InactiveUser,
    InvalidToken,
    NotAuthenticated,
    ResourceNotFound,
)
from marketplace.core.security import token_manager
from marketplace.crud.user_crud import user_repository
from marketplace.db.session import get_session
from marketplace.models.user_model import User
from marketplace.utils.pagination import clamp_pagination

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="JWT Access Token")


# ================== AUTHENTICATION ==================
async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Resolve the bearer token to an active user."""
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated()

    user_id = token_manager.get_subject_id(credentials.credentials)

    user = await user_repository.get(db, obj_id=user_id)
    if user is None:
        raise InvalidToken("Not authorized, user not found.")
    if not user.is_active:
        logger.warning("Inactive user attempted access", extra={"user_id": user.id})
        raise InactiveUser()

    request.state.user = user
    return user


# ================== PATH ENTITIES ==================
async def get_path_user(
    user_id: int = Path(..., le=settings.MAX_ID, description="Target user ID"),
    db: AsyncSession = Depends(get_session),
) -> User:
    """The user named in the path; 404 if there is no such account."""
    user = await user_repository.get(db, obj_id=user_id)
    raise_for_status(
        condition=user is None,
        exception=ResourceNotFound,
        detail="User not found",
        resource_id=user_id,
    )
    return user


# ================== PAGINATION ==================
class PaginationParams:
    """Page/limit query parameters, clamped into range."""

    def __init__(self, page: int, limit: int, default_limit: int):
        self.page, self.limit = clamp_pagination(page, limit, default_limit=default_limit)
        self.skip = (self.page - 1) * self.limit


async def get_pagination_params(
    page: int = Query(1, description="Page number (1-based)"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, description="Page size"),
) -> PaginationParams:
    return PaginationParams(
        page=page, limit=limit, default_limit=settings.DEFAULT_PAGE_SIZE
    )


async def get_review_pagination_params(
    page: int = Query(1, description="Page number (1-based)"),
    limit: int = Query(settings.REVIEW_PAGE_SIZE, description="Page size"),
) -> PaginationParams:
    return PaginationParams(
        page=page, limit=limit, default_limit=settings.REVIEW_PAGE_SIZE
    )


__all__ = [
    "get_current_user",
    "get_path_user",
    "PaginationParams",
    "get_pagination_params",
    "get_review_pagination_params",
]
