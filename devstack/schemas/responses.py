"""Standard API response schemas."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Machine-readable error code")
    details: Any | None = Field(None, description="Additional error details")


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success response envelope."""

    data: T
    meta: dict[str, Any] | None = None


class PaginationMeta(BaseModel):
    """Offset pagination metadata."""

    total: int = Field(..., description="Total number of matching items")
    limit: int = Field(..., description="Page size")
    offset: int = Field(..., description="Items skipped")
    has_more: bool = Field(..., description="Whether more items follow this page")


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated response envelope."""

    data: list[T]
    meta: PaginationMeta


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


def pagination_meta(total: int, limit: int, offset: int) -> PaginationMeta:
    """Create pagination metadata."""
    return PaginationMeta(
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + limit < total,
    )
