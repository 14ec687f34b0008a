# content_service/schemas/common.py
"""Envelopes shared by the posts and settings APIs: pages, errors, acknowledgements."""
from pydantic import BaseModel, Field
from typing import Generic, TypeVar, List, Optional, Sequence
from math import ceil

from content_service.core.exceptions import ContentServiceError

T = TypeVar('T')

MAX_PAGE_SIZE = 100


def page_offset(page: int, page_size: int) -> int:
    """Row offset of a 1-indexed page."""
    return (page - 1) * page_size


class PaginationMetadata(BaseModel):
    total: int = Field(..., ge=0, description="Rows matching the query across all pages")
    page: int = Field(..., ge=1, description="1-indexed page number")
    page_size: int = Field(..., ge=1, le=MAX_PAGE_SIZE)
    total_pages: int = Field(..., ge=0)
    has_next: bool
    has_previous: bool

    @classmethod
    def for_page(cls, total: int, page: int, page_size: int) -> "PaginationMetadata":
        total_pages = ceil(total / page_size) if page_size > 0 else 0
        return cls(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """
    One page of a list endpoint.

        PaginatedResponse[PostSummary].from_page(posts, total, page, page_size)
    """
    data: List[T]
    metadata: PaginationMetadata

    @classmethod
    def from_page(cls, items: Sequence[T], total: int, page: int, page_size: int):
        return cls(data=list(items), metadata=PaginationMetadata.for_page(total, page, page_size))


class ErrorResponse(BaseModel):
    """Body of every non-2xx response raised by the service layer."""
    error: str = Field(..., description="Error kind, e.g. not_found or tag_validation_error")
    message: str
    details: Optional[dict] = None

    @classmethod
    def from_error(cls, exc: ContentServiceError) -> "ErrorResponse":
        return cls(error=exc.kind, message=exc.message, details=exc.details)


class MessageResponse(BaseModel):
    """Acknowledgement for deletes and other calls with no entity to return."""
    message: str
