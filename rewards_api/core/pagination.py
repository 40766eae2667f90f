"""Pagination helpers."""

from typing import TypeVar, Generic

from pydantic import BaseModel

from rewards_api.core.config import get_settings

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: list[T]
    limit: int
    offset: int
    total: int = 0


def paginate(limit: int, offset: int, max_limit: int | None = None) -> tuple[int, int]:
    """Clamp limit/offset; return (limit, offset)."""
    if max_limit is None:
        max_limit = get_settings().max_page_size
    limit = max(1, min(limit, max_limit))
    offset = max(0, offset)
    return limit, offset
