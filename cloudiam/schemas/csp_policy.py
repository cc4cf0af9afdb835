"""CSP policy schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from ..utils.constants import PolicyScope, PolicyType


class CspPolicyBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    csp_account_id: int
    policy_type: PolicyType
    policy_arn: Optional[str] = Field(None, max_length=500)
    policy_doc: Optional[Dict[str, Any]] = None
    description: Optional[str] = Field(None, max_length=1000)


class CspPolicyCreate(CspPolicyBase):
    pass


class CspPolicyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    policy_arn: Optional[str] = Field(None, max_length=500)
    policy_doc: Optional[Dict[str, Any]] = None
    description: Optional[str] = Field(None, max_length=1000)


class CspPolicyFilter(BaseModel):
    """List filter; unset fields are not constrained."""

    csp_account_id: Optional[int] = None
    policy_type: Optional[PolicyType] = None
    name: Optional[str] = None


class CspPolicyResponse(CspPolicyBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AttachPolicyRequest(BaseModel):
    csp_role_id: int
    csp_policy_id: int


class SyncPoliciesRequest(BaseModel):
    csp_account_id: int
    policy_scope: PolicyScope = PolicyScope.LOCAL


class PolicySyncResult(BaseModel):
    """Outcome of one reconciliation pass."""

    csp_account_id: int
    scope: PolicyScope
    created: int = 0
    updated: int = 0
    skipped: int = 0
    policies: List[CspPolicyResponse] = Field(default_factory=list)
