"""
Common response models and utilities.

Response envelope shared by every endpoint and error handler.

Dependencies: pydantic
System role: Common API response structures
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for success and error responses."""

    success: bool
    code: str = Field(description="Stable machine-readable result code")
    message: str = Field(description="Human-readable summary")
    data: T | None = None
    error_id: str | None = Field(
        default=None, description="Correlation id of the failed request"
    )
    details: dict[str, Any] | None = Field(
        default=None, description="Debug context, development environment only"
    )


class HealthResponse(BaseModel):
    """Liveness probe payload."""

    status: str
    message: str
