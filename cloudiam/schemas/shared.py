"""Shared base schemas and common models."""

from typing import Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    detail: str
    error_code: Optional[str] = None
    entity: Optional[str] = None


class SuccessResponse(BaseModel):
    """Standard success response schema."""

    message: str
    data: Optional[dict] = None
