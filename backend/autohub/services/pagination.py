"""Page/limit pagination shared by the listing operations."""

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, Sequence, TypeVar

from autohub.core.config import get_settings

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    """One-based page number and page size."""

    page: int = 1
    limit: int = 10

    @classmethod
    def build(cls, page: Optional[int] = None, limit: Optional[int] = None) -> "PageRequest":
        """Fall back to defaults for missing or non-positive values and cap the size."""
        settings = get_settings()
        page = page if page and page > 0 else 1
        limit = limit if limit and limit > 0 else settings.default_page_size
        return cls(page=page, limit=min(limit, settings.max_page_size))

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    request: PageRequest = field(default_factory=PageRequest)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.request.limit) if self.request.limit else 0

    def meta(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "page": self.request.page,
            "limit": self.request.limit,
            "total_pages": self.total_pages,
            "has_next_page": self.request.page < self.total_pages,
            "has_prev_page": self.request.page > 1,
        }
