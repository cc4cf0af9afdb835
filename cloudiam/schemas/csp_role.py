"""CSP role schemas."""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
from ..utils.constants import CspType


class CspRoleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=255)
    csp_type: CspType
    idp_identifier: Optional[str] = None
    iam_identifier: Optional[str] = None
    iam_role_id: Optional[str] = None
    path: Optional[str] = None
    status: Optional[str] = None
    max_session_duration: Optional[int] = Field(None, gt=0)
    permissions_boundary: Optional[str] = None
    csp_account_id: Optional[int] = None
    csp_idp_config_id: Optional[int] = None
    extended_config: Optional[Dict[str, Any]] = None


class CspRoleCreate(CspRoleBase):
    pass


class CspRoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=255)
    idp_identifier: Optional[str] = None
    iam_identifier: Optional[str] = None
    iam_role_id: Optional[str] = None
    path: Optional[str] = None
    status: Optional[str] = None
    max_session_duration: Optional[int] = Field(None, gt=0)
    permissions_boundary: Optional[str] = None
    csp_account_id: Optional[int] = None
    csp_idp_config_id: Optional[int] = None
    extended_config: Optional[Dict[str, Any]] = None


class CspRoleFilter(BaseModel):
    """List filter; unset fields are not constrained."""

    csp_type: Optional[CspType] = None
    csp_account_id: Optional[int] = None
    name: Optional[str] = None


class CspRoleResponse(CspRoleBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
