"""Policy synchronization router."""

from fastapi import APIRouter, Depends, Request
from ..core.dependencies import get_policy_sync_service
from ..middleware.rate_limit import credential_rate_limit, limiter
from ..schemas.csp_policy import PolicySyncResult, SyncPoliciesRequest
from ..services.policy_sync_service import PolicySyncService

router = APIRouter(prefix="/policy-sync", tags=["policy-sync"])


@router.post("", response_model=PolicySyncResult)
@limiter.limit(credential_rate_limit)
async def sync_policies(
    request: Request,
    sync_data: SyncPoliciesRequest,
    service: PolicySyncService = Depends(get_policy_sync_service),
):
    """Pull provider policies into the account's policy list."""
    return await service.sync_from_cloud(sync_data.csp_account_id, sync_data.policy_scope)
