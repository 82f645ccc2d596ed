"""Pagination schemas for API responses."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from support_service.infrastructure.database.repositories.base import PaginatedResult

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """
    Pagination metadata included in paginated responses.

    Contains everything a client needs to render page navigation.
    """

    page: int = Field(..., ge=1, description="Current page number (1-indexed)", examples=[1, 2])
    page_size: int = Field(..., ge=1, description="Items per page", examples=[20, 50])
    total: int = Field(..., ge=0, description="Total number of items across all pages")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_prev: bool = Field(..., description="Whether there is a previous page")

    @classmethod
    def from_result(cls, result: PaginatedResult) -> "PaginationMeta":
        return cls(
            page=result.page,
            page_size=result.page_size,
            total=result.total,
            total_pages=result.total_pages,
            has_next=result.has_next,
            has_prev=result.has_prev,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Standard paginated response wrapper.

    Example Response:
        ```json
        {
            "items": [{"reference": "whatsapp:+447700900123", "status": "Active"}],
            "pagination": {
                "page": 1,
                "page_size": 20,
                "total": 1,
                "total_pages": 1,
                "has_next": false,
                "has_prev": false
            }
        }
        ```
    """

    items: list[T] = Field(..., description="List of items for current page")
    pagination: PaginationMeta = Field(..., description="Pagination metadata")
