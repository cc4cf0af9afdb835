"""CSP account router."""

from typing import List, Optional
from fastapi import APIRouter, Depends, status
from ..core.dependencies import get_csp_account_service
from ..schemas.csp_account import (
    CspAccountCreate,
    CspAccountFilter,
    CspAccountResponse,
    CspAccountUpdate,
)
from ..services.csp_account_service import CspAccountService
from ..utils.constants import CspType

router = APIRouter(prefix="/csp-accounts", tags=["csp-accounts"])


@router.post("", response_model=CspAccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    account_data: CspAccountCreate,
    service: CspAccountService = Depends(get_csp_account_service),
):
    """Register a CSP account."""
    return await service.create_account(account_data)


@router.get("", response_model=List[CspAccountResponse])
async def list_accounts(
    csp_type: Optional[CspType] = None,
    is_active: Optional[bool] = None,
    name: Optional[str] = None,
    service: CspAccountService = Depends(get_csp_account_service),
):
    """List CSP accounts; every given filter must match."""
    return await service.list_accounts(
        CspAccountFilter(csp_type=csp_type, is_active=is_active, name=name)
    )


@router.get("/{account_id}", response_model=CspAccountResponse)
async def get_account(
    account_id: int,
    service: CspAccountService = Depends(get_csp_account_service),
):
    return await service.get_account(account_id)


@router.patch("/{account_id}", response_model=CspAccountResponse)
async def update_account(
    account_id: int,
    account_data: CspAccountUpdate,
    service: CspAccountService = Depends(get_csp_account_service),
):
    return await service.update_account(account_id, account_data)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: int,
    service: CspAccountService = Depends(get_csp_account_service),
):
    """Delete an account with no IdP configs or policies."""
    await service.delete_account(account_id)


@router.post("/{account_id}/activate", response_model=CspAccountResponse)
async def activate_account(
    account_id: int,
    service: CspAccountService = Depends(get_csp_account_service),
):
    return await service.activate_account(account_id)


@router.post("/{account_id}/deactivate", response_model=CspAccountResponse)
async def deactivate_account(
    account_id: int,
    service: CspAccountService = Depends(get_csp_account_service),
):
    return await service.deactivate_account(account_id)


@router.post("/{account_id}/validate", response_model=CspAccountResponse)
async def validate_account(
    account_id: int,
    service: CspAccountService = Depends(get_csp_account_service),
):
    """Check the account carries the descriptors its CSP type requires."""
    return await service.validate_account(account_id)
