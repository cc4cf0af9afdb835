"""CSP role router."""

from typing import List, Optional
from fastapi import APIRouter, Depends, status
from ..core.dependencies import get_csp_policy_service, get_csp_role_service
from ..schemas.csp_policy import CspPolicyResponse
from ..schemas.csp_role import CspRoleCreate, CspRoleFilter, CspRoleResponse, CspRoleUpdate
from ..services.csp_policy_service import CspPolicyService
from ..services.csp_role_service import CspRoleService
from ..utils.constants import CspType

router = APIRouter(prefix="/csp-roles", tags=["csp-roles"])


@router.post("", response_model=CspRoleResponse, status_code=status.HTTP_201_CREATED)
async def create_csp_role(
    role_data: CspRoleCreate,
    service: CspRoleService = Depends(get_csp_role_service),
):
    return await service.create_role(role_data)


@router.get("", response_model=List[CspRoleResponse])
async def list_csp_roles(
    csp_type: Optional[CspType] = None,
    csp_account_id: Optional[int] = None,
    name: Optional[str] = None,
    service: CspRoleService = Depends(get_csp_role_service),
):
    return await service.list_roles(
        CspRoleFilter(csp_type=csp_type, csp_account_id=csp_account_id, name=name)
    )


@router.get("/{csp_role_id}", response_model=CspRoleResponse)
async def get_csp_role(
    csp_role_id: int,
    service: CspRoleService = Depends(get_csp_role_service),
):
    return await service.get_role(csp_role_id)


@router.patch("/{csp_role_id}", response_model=CspRoleResponse)
async def update_csp_role(
    csp_role_id: int,
    role_data: CspRoleUpdate,
    service: CspRoleService = Depends(get_csp_role_service),
):
    return await service.update_role(csp_role_id, role_data)


@router.delete("/{csp_role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_csp_role(
    csp_role_id: int,
    service: CspRoleService = Depends(get_csp_role_service),
):
    """Delete a CSP role that has no role mappings or attached policies."""
    await service.delete_role(csp_role_id)


@router.get("/{csp_role_id}/policies", response_model=List[CspPolicyResponse])
async def list_policies_for_csp_role(
    csp_role_id: int,
    service: CspPolicyService = Depends(get_csp_policy_service),
):
    return await service.get_policies_by_role(csp_role_id)
