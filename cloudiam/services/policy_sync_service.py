"""
Reconcile locally cached CSP policies with the provider's policy store.

Provider policies are matched to local rows by provider identifier and
upserted; local rows missing on the provider side are left alone.
"""

from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..config.database import transaction
from ..core.errors import CloudIamError, NotFoundError, UnimplementedError
from ..models.csp_policy import CspPolicy
from ..providers.base import CspProvider, PolicyFilter, PolicyInfo
from ..providers.registry import ProviderRegistry
from ..repositories.csp_account_repo import CspAccountRepository
from ..repositories.csp_policy_repo import CspPolicyRepository
from ..schemas.csp_policy import CspPolicyResponse, PolicySyncResult
from ..utils.constants import CspType, PolicyScope, PolicyType
from ..utils.logger import get_logger
from .credential_service import CredentialService, temp_credentials_as_static

logger = get_logger(__name__)


class PolicySyncService:
    """Pulls provider policies into the store."""

    def __init__(
        self,
        db: AsyncSession,
        credential_service: CredentialService,
        registry: ProviderRegistry,
    ):
        self.db = db
        self.repo = CspPolicyRepository(db)
        self.account_repo = CspAccountRepository(db)
        self.registry = registry
        self.credential_service = credential_service

    async def _list_remote(self, provider: CspProvider, scope: PolicyScope) -> List[PolicyInfo]:
        policies: List[PolicyInfo] = []
        marker: Optional[str] = None
        while True:
            page, marker = await provider.list_policies(PolicyFilter(scope=scope, marker=marker))
            policies.extend(page)
            if not marker:
                return policies

    async def _upsert(self, account_id: int, info: PolicyInfo) -> Tuple[CspPolicy, Optional[str]]:
        """Returns the row and "created", "updated" or None when nothing changed."""
        policy = await self.repo.get_by_arn(info.arn, account_id)
        if policy is None:
            by_name = await self.repo.get_by_name_and_account_id(info.name, account_id)
            if by_name is not None and not by_name.policy_arn:
                # adopt a locally created row of the same name
                policy = await self.repo.update(by_name, {"policy_arn": info.arn})
        if policy is None:
            policy = await self.repo.create(
                CspPolicy(
                    name=info.name,
                    csp_account_id=account_id,
                    policy_type=PolicyType.MANAGED,
                    policy_arn=info.arn,
                    description=info.description,
                )
            )
            return policy, "created"

        changes = {}
        if info.name and info.name != policy.name:
            changes["name"] = info.name
        if info.description is not None and info.description != policy.description:
            changes["description"] = info.description
        if not changes:
            return policy, None
        return await self.repo.update(policy, changes), "updated"

    async def sync_from_cloud(
        self, account_id: int, scope: PolicyScope = PolicyScope.LOCAL
    ) -> PolicySyncResult:
        """
        Upsert every provider policy visible in scope into the account's policies.
        Each record gets its own savepoint; a failing record is logged and skipped.
        """
        account = await self.account_repo.get_by_id(account_id)
        if not account:
            raise NotFoundError("CspAccount", account_id)
        # only AWS policy stores can be listed
        if account.csp_type != CspType.AWS:
            raise UnimplementedError(
                f"policy sync is not supported for {account.csp_type.value} accounts",
                entity="CspAccount",
                identifier=account_id,
            )

        account, credential = await self.credential_service.credential_for_account(
            account_id, session_name=settings.policy_sync_session_name
        )
        provider = self.registry.get(
            account.csp_type,
            region=credential.region,
            credentials=temp_credentials_as_static(credential),
        )
        remote = await self._list_remote(provider, scope)

        result = PolicySyncResult(csp_account_id=account_id, scope=scope)
        synced: List[CspPolicy] = []
        async with transaction(self.db):
            for info in remote:
                try:
                    async with self.db.begin_nested():
                        policy, outcome = await self._upsert(account_id, info)
                except (SQLAlchemyError, CloudIamError) as exc:
                    logger.warning(
                        "Skipped policy during sync",
                        csp_account_id=account_id,
                        policy_arn=info.arn,
                        error=exc.__class__.__name__,
                    )
                    result.skipped += 1
                    continue
                if outcome == "created":
                    result.created += 1
                elif outcome == "updated":
                    result.updated += 1
                synced.append(policy)

        result.policies = [CspPolicyResponse.model_validate(policy) for policy in synced]
        logger.info(
            "Synchronized policies",
            csp_account_id=account_id,
            scope=scope.value,
            fetched=len(remote),
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
        )
        return result
