"""CSP IdP configuration router."""

from typing import List, Optional
from fastapi import APIRouter, Depends, status
from ..core.dependencies import get_csp_idp_config_service
from ..schemas.csp_idp_config import (
    ConnectionTestResult,
    CspIdpConfigCreate,
    CspIdpConfigFilter,
    CspIdpConfigResponse,
    CspIdpConfigUpdate,
)
from ..services.csp_idp_config_service import CspIdpConfigService
from ..utils.constants import AuthMethod

router = APIRouter(prefix="/idp-configs", tags=["idp-configs"])


@router.post("", response_model=CspIdpConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_config(
    config_data: CspIdpConfigCreate,
    service: CspIdpConfigService = Depends(get_csp_idp_config_service),
):
    """Create a trust configuration; required keys depend on auth method and CSP type."""
    return await service.create_config(config_data)


@router.get("", response_model=List[CspIdpConfigResponse])
async def list_configs(
    csp_account_id: Optional[int] = None,
    auth_method: Optional[AuthMethod] = None,
    is_active: Optional[bool] = None,
    name: Optional[str] = None,
    service: CspIdpConfigService = Depends(get_csp_idp_config_service),
):
    return await service.list_configs(
        CspIdpConfigFilter(
            csp_account_id=csp_account_id,
            auth_method=auth_method,
            is_active=is_active,
            name=name,
        )
    )


@router.get("/{config_id}", response_model=CspIdpConfigResponse)
async def get_config(
    config_id: int,
    service: CspIdpConfigService = Depends(get_csp_idp_config_service),
):
    return await service.get_config(config_id)


@router.patch("/{config_id}", response_model=CspIdpConfigResponse)
async def update_config(
    config_id: int,
    config_data: CspIdpConfigUpdate,
    service: CspIdpConfigService = Depends(get_csp_idp_config_service),
):
    return await service.update_config(config_id, config_data)


@router.delete("/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_config(
    config_id: int,
    service: CspIdpConfigService = Depends(get_csp_idp_config_service),
):
    await service.delete_config(config_id)


@router.post("/{config_id}/activate", response_model=CspIdpConfigResponse)
async def activate_config(
    config_id: int,
    service: CspIdpConfigService = Depends(get_csp_idp_config_service),
):
    return await service.activate_config(config_id)


@router.post("/{config_id}/deactivate", response_model=CspIdpConfigResponse)
async def deactivate_config(
    config_id: int,
    service: CspIdpConfigService = Depends(get_csp_idp_config_service),
):
    return await service.deactivate_config(config_id)


@router.post("/{config_id}/test", response_model=ConnectionTestResult)
async def test_connection(
    config_id: int,
    service: CspIdpConfigService = Depends(get_csp_idp_config_service),
):
    """Probe the configuration against its provider."""
    return await service.test_connection(config_id)
