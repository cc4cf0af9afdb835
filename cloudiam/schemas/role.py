"""Role hierarchy and role-to-CSP-role mapping schemas."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from ..utils.constants import AuthMethod, RoleType
from .csp_role import CspRoleResponse


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=1000)
    predefined: bool = False
    role_types: List[RoleType] = Field(default_factory=list)


class RoleResponse(BaseModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    description: Optional[str] = None
    predefined: bool
    role_types: List[RoleType]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleSubCreate(BaseModel):
    role_type: RoleType


class RoleMappingCreate(BaseModel):
    role_id: int
    auth_method: AuthMethod
    csp_role_id: int
    description: Optional[str] = Field(None, max_length=1000)


class RoleMappingResponse(BaseModel):
    role_id: int
    auth_method: AuthMethod
    csp_role_id: int
    description: Optional[str] = None
    created_at: datetime
    csp_role: Optional[CspRoleResponse] = None

    model_config = ConfigDict(from_attributes=True)
