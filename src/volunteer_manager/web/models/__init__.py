"""
Pydantic models for API requests and responses.
"""

from .api_models import (
    EmptyRequest,
    ErrorResponse,
    HealthResponse,
    IdentityResponse,
    IdentityUser,
    Pagination,
    SuccessResponse,
    envelope,
)

__all__ = [
    "EmptyRequest",
    "ErrorResponse",
    "HealthResponse",
    "IdentityResponse",
    "IdentityUser",
    "Pagination",
    "SuccessResponse",
    "envelope",
]
