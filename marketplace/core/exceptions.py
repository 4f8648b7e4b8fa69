# marketplace/core/exceptions.py
"""
Application exception hierarchy.

Every exception carries the HTTP status it maps to and a short, client-safe
``detail`` message. Extra keyword context is kept on ``context`` for logging
and is never sent to the client.
"""

from typing import Any, Dict, Optional

from fastapi import status


class AppException(Exception):
    """Base class for all handled application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "An unexpected error occurred."

    def __init__(self, detail: Optional[str] = None, **context: Any):
        self.detail = detail or self.default_detail
        self.context: Dict[str, Any] = context
        super().__init__(self.detail)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(status={self.status_code}, detail={self.detail!r})"


# ---- 400 ----
class BadRequestException(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request."


class ValidationError(BadRequestException):
    """Input violates a business rule (self-follow, rating bounds, ...)."""

    default_detail = "Validation failed."


# ---- 401 ----
class NotAuthenticated(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authorized, no token."


class InvalidToken(NotAuthenticated):
    default_detail = "Not authorized, token failed."


class TokenExpired(InvalidToken):
    default_detail = "Token has expired."


class TokenTypeInvalid(InvalidToken):
    default_detail = "Invalid token type."


# ---- 403 ----
class NotAuthorized(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not authorized to perform this action."


class InactiveUser(NotAuthorized):
    default_detail = "User account is inactive."


# ---- 404 ----
class ResourceNotFound(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        resource_type: Optional[str] = None,
        resource_id: Any = None,
        **context: Any,
    ):
        if detail is None and resource_type:
            detail = f"{resource_type} not found"
            if resource_id is not None:
                detail = f"{resource_type} with id {resource_id} not found"
        super().__init__(
            detail, resource_type=resource_type, resource_id=resource_id, **context
        )


# ---- 409 ----
class ResourceAlreadyExists(AppException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        resource_type: Optional[str] = None,
        **context: Any,
    ):
        if detail is None and resource_type:
            detail = f"{resource_type} already exists"
        super().__init__(detail, resource_type=resource_type, **context)


# ---- 500 ----
class InternalServerError(AppException):
    """Unexpected persistence or infrastructure failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Server error"
