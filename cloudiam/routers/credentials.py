"""Temporary credential issuance router."""

from typing import List
from fastapi import APIRouter, Depends, Request
from ..core.dependencies import get_credential_service
from ..middleware.rate_limit import credential_rate_limit, limiter
from ..schemas.credential import AssumeRoleRequest, IssueCredentialRequest, TempCredential
from ..services.credential_service import CredentialService

router = APIRouter(prefix="/credentials", tags=["credentials"])


@router.post("/assume", response_model=TempCredential)
@limiter.limit(credential_rate_limit)
async def assume_role(
    request: Request,
    assume_data: AssumeRoleRequest,
    service: CredentialService = Depends(get_credential_service),
):
    """Issue a temporary credential for a role identifier through one IdP config."""
    return await service.assume_role_with_idp_config(
        assume_data.idp_config_id,
        assume_data.role_arn,
        session_name=assume_data.session_name,
        duration_seconds=assume_data.duration_seconds,
    )


@router.post("/issue", response_model=List[TempCredential])
@limiter.limit(credential_rate_limit)
async def issue_for_role(
    request: Request,
    issue_data: IssueCredentialRequest,
    service: CredentialService = Depends(get_credential_service),
):
    """Issue temporary credentials for every CSP role a role maps to."""
    return await service.issue_for_role(issue_data)
