"""Shared response schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error payload returned for every failed request."""

    error: str = Field(description="Human-readable message")
    code: str = Field(description="Machine-readable error code")
    correlationId: str = Field(description="Id to quote when contacting support")
    details: dict[str, Any] | None = None
    suggestion: str | None = None
    retryAllowed: bool = False


class PaginationMeta(BaseModel):
    """Pagination metadata."""

    page: int
    limit: int
    total: int
    pages: int
