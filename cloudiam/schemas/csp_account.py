"""CSP account schemas."""

from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
from ..utils.constants import CspType


class CspAccountBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    csp_type: CspType
    account_info: Dict[str, str] = Field(default_factory=dict)
    description: Optional[str] = Field(None, max_length=500)


class CspAccountCreate(CspAccountBase):
    pass


class CspAccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    account_info: Optional[Dict[str, str]] = None
    is_active: Optional[bool] = None
    description: Optional[str] = Field(None, max_length=500)


class CspAccountFilter(BaseModel):
    """List filter; unset fields are not constrained."""

    csp_type: Optional[CspType] = None
    is_active: Optional[bool] = None
    name: Optional[str] = None


class CspAccountResponse(CspAccountBase):
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
