"""
Error Response Models

Body of every error returned by the API.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ErrorResponse(BaseModel):
    """
    Standardized error response model for API errors.
    """
    status: str = Field(default="error", description="Error status indicator")
    message: str = Field(..., description="Human-readable error message")
    error_code: str = Field(..., description="Machine-readable error code")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error details")
    timestamp: datetime = Field(default_factory=_now, description="Error timestamp")


class ValidationErrorItem(BaseModel):
    """One invalid field."""
    loc: List[str] = Field(..., description="Error location (field path)")
    msg: str
    type: str


class ValidationErrorResponse(ErrorResponse):
    validation_errors: List[ValidationErrorItem] = Field(
        ...,
        description="List of specific validation errors"
    )
