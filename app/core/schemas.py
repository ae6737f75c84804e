"""Response envelopes shared by the list endpoints."""

from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    page: int = Field(..., ge=1, description="Current page number")
    limit: int = Field(..., ge=1, description="Page size used (after clamping to the maximum)")
    total: int = Field(..., ge=0, description="Total number of items matching the filters")
    total_pages: int = Field(..., ge=0, description="Total number of pages")


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response: one page of items plus paging info."""

    data: List[T]
    pagination: PaginationMeta
