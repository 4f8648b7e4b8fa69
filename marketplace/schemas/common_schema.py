"""
Shared response shapes.

Every endpoint answers with ``ApiResponse`` and every list with
``PaginatedResponse`` inside it.
"""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope."""

    success: bool = Field(True, description="Whether the request succeeded")
    data: Optional[T] = Field(None, description="Response payload")
    message: Optional[str] = Field(None, description="Human readable status")


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a list plus the numbers needed to page through it."""

    items: List[T] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Total number of items")
    page: int = Field(..., ge=1, description="Current page number (1-based)")
    limit: int = Field(..., ge=1, description="Items per page")
    pages: int = Field(..., ge=0, description="Total number of pages")


__all__ = ["ApiResponse", "PaginatedResponse"]
