"""Common schemas used across the application."""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic page-based response wrapper.

    Usage:
        response_model=PaginatedResponse[BatchOut]

    Returns:
        {
            "items": [...],
            "total": 42,
            "page": 2,
            "limit": 10,
            "total_pages": 5,
            "has_next": true,
            "has_prev": true
        }
    """
    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, items: list, total: int, page: int, limit: int):
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class MessageResponse(BaseModel):
    message: str
