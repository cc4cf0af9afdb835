"""Role hierarchy and role-to-CSP-role mapping router."""

from typing import List, Optional
from fastapi import APIRouter, Depends, status
from ..core.dependencies import get_role_mapping_service
from ..schemas.csp_role import CspRoleResponse
from ..schemas.role import (
    RoleCreate,
    RoleMappingCreate,
    RoleMappingResponse,
    RoleResponse,
    RoleSubCreate,
)
from ..schemas.shared import SuccessResponse
from ..services.role_mapping_service import RoleMappingService
from ..utils.constants import AuthMethod, CspType, RoleType

router = APIRouter(prefix="/roles", tags=["roles"])


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_data: RoleCreate,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.create_role(role_data)


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    role_type: Optional[RoleType] = None,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.list_roles(role_type)


@router.put("/mappings", response_model=RoleMappingResponse)
async def upsert_mapping(
    mapping_data: RoleMappingCreate,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    """Create a role mapping, or update the description of an existing one."""
    return await service.upsert_mapping(
        mapping_data.role_id,
        mapping_data.auth_method,
        mapping_data.csp_role_id,
        mapping_data.description,
    )


@router.get("/mappings/by-csp-role/{csp_role_id}", response_model=List[RoleMappingResponse])
async def mappings_by_csp_role(
    csp_role_id: int,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.resolve_by_csp_role(csp_role_id)


@router.get("/mappings/by-account/{csp_account_id}", response_model=List[RoleMappingResponse])
async def mappings_by_account(
    csp_account_id: int,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.resolve_by_account(csp_account_id)


@router.get("/mappings/by-csp-type/{csp_type}", response_model=List[RoleMappingResponse])
async def mappings_by_csp_type(
    csp_type: CspType,
    role_id: Optional[int] = None,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.resolve_by_csp_type(csp_type, role_id)


@router.get("/by-name/{name}", response_model=RoleResponse)
async def get_role_by_name(
    name: str,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.get_role_by_name(name)


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: int,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.get_role(role_id)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: int,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    """Delete a role together with its mappings and role types."""
    await service.delete_role(role_id)


@router.post("/{role_id}/subs", response_model=RoleResponse)
async def add_role_sub(
    role_id: int,
    sub_data: RoleSubCreate,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.add_role_sub(role_id, sub_data.role_type)


@router.get("/{role_id}/mappings", response_model=List[RoleMappingResponse])
async def list_mappings(
    role_id: int,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    return await service.list_mappings_for_role(role_id)


@router.delete("/{role_id}/mappings", response_model=SuccessResponse)
async def remove_all_mappings(
    role_id: int,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    removed = await service.remove_all_mappings_for_role(role_id)
    return SuccessResponse(message=f"removed {removed} mappings", data={"removed": removed})


@router.delete(
    "/{role_id}/mappings/{auth_method}/{csp_role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_mapping(
    role_id: int,
    auth_method: AuthMethod,
    csp_role_id: int,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    await service.remove_mapping(role_id, csp_role_id, auth_method)


@router.get("/{role_id}/csp-roles", response_model=List[CspRoleResponse])
async def resolve_csp_roles(
    role_id: int,
    auth_method: AuthMethod,
    service: RoleMappingService = Depends(get_role_mapping_service),
):
    """CSP roles the role maps to under one auth method."""
    return await service.resolve(role_id, auth_method)
