"""Schemas shared across the API: pagination metadata and error bodies."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class PaginationMeta(BaseModel):
    """Pagination metadata returned with every listing."""

    total: int = Field(..., ge=0, description="Total matching records")
    page: int = Field(..., ge=1, description="Current page number")
    limit: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(..., ge=0, description="Number of pages")
    has_next_page: bool
    has_prev_page: bool


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Stable error code")
    message: str = Field(..., description="Human readable message")
    details: dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
