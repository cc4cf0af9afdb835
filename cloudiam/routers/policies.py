"""CSP policy router."""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, status
from ..core.dependencies import get_csp_policy_service
from ..schemas.csp_policy import (
    AttachPolicyRequest,
    CspPolicyCreate,
    CspPolicyFilter,
    CspPolicyResponse,
    CspPolicyUpdate,
)
from ..schemas.csp_role import CspRoleResponse
from ..services.csp_policy_service import CspPolicyService
from ..utils.constants import PolicyType

router = APIRouter(prefix="/csp-policies", tags=["csp-policies"])


@router.post("", response_model=CspPolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    policy_data: CspPolicyCreate,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    return await service.create_policy(policy_data)


@router.get("", response_model=List[CspPolicyResponse])
async def list_policies(
    csp_account_id: Optional[int] = None,
    policy_type: Optional[PolicyType] = None,
    name: Optional[str] = None,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    return await service.list_policies(
        CspPolicyFilter(csp_account_id=csp_account_id, policy_type=policy_type, name=name)
    )


@router.post("/attach", status_code=status.HTTP_204_NO_CONTENT)
async def attach_policy(
    attach_data: AttachPolicyRequest,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    """Attach a policy to a CSP role."""
    await service.attach_policy_to_role(attach_data.csp_role_id, attach_data.csp_policy_id)


@router.post("/detach", status_code=status.HTTP_204_NO_CONTENT)
async def detach_policy(
    attach_data: AttachPolicyRequest,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    await service.detach_policy_from_role(attach_data.csp_role_id, attach_data.csp_policy_id)


@router.get("/{policy_id}", response_model=CspPolicyResponse)
async def get_policy(
    policy_id: int,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    return await service.get_policy(policy_id)


@router.patch("/{policy_id}", response_model=CspPolicyResponse)
async def update_policy(
    policy_id: int,
    policy_data: CspPolicyUpdate,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    return await service.update_policy(policy_id, policy_data)


@router.delete("/{policy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_policy(
    policy_id: int,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    """Delete a policy; refused while any CSP role has it attached."""
    await service.delete_policy(policy_id)


@router.get("/{policy_id}/document", response_model=Dict[str, Any])
async def get_policy_document(
    policy_id: int,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    """Stored document, or the provider's default version for managed policies."""
    return await service.get_policy_document(policy_id)


@router.get("/{policy_id}/roles", response_model=List[CspRoleResponse])
async def list_roles_for_policy(
    policy_id: int,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    return await service.get_roles_by_policy(policy_id)
