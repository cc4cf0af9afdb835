"""Temporary credential issuance schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from ..utils.constants import AuthMethod, CspType


class TempCredential(BaseModel):
    """Short-lived provider credential. Never persisted server-side."""

    provider: CspType
    auth_type: str
    access_key_id: str
    secret_access_key: str
    session_token: str
    region: Optional[str] = None
    issued_at: datetime
    expires_at: datetime
    is_active: bool = True
    role_arn: Optional[str] = None
    csp_role_id: Optional[int] = None


class AssumeRoleRequest(BaseModel):
    """Issue a credential for an explicit role identifier through one IdP config."""

    idp_config_id: int
    role_arn: str = Field(..., min_length=1)
    session_name: Optional[str] = Field(None, min_length=2, max_length=64)
    duration_seconds: Optional[int] = Field(None, ge=0)


class IssueCredentialRequest(BaseModel):
    """Issue credentials for the CSP roles a platform/workspace role maps to."""

    role_id: Optional[int] = None
    role_name: Optional[str] = None
    auth_method: AuthMethod
    csp_role_id: Optional[int] = None
    csp_type: Optional[CspType] = None
    session_name: Optional[str] = Field(None, min_length=2, max_length=64)
    duration_seconds: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def _require_role(self):
        if self.role_id is None and not self.role_name:
            raise ValueError("role_id or role_name is required")
        return self
