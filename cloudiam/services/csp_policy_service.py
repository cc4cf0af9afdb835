"""CSP policy service, including role attachments."""

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import transaction
from ..core.errors import AlreadyExistsError, DependentsExistError, NotFoundError
from ..models.csp_policy import CspPolicy
from ..models.csp_role import CspRole
from ..providers.registry import ProviderRegistry
from ..repositories.csp_account_repo import CspAccountRepository
from ..repositories.csp_policy_repo import CspPolicyRepository
from ..repositories.csp_role_repo import CspRoleRepository
from ..schemas.csp_policy import CspPolicyCreate, CspPolicyFilter, CspPolicyUpdate
from ..utils.constants import PolicyType
from ..utils.logger import get_logger
from .credential_service import CredentialService, temp_credentials_as_static

logger = get_logger(__name__)


class CspPolicyService:
    """Service for CspPolicy operations."""

    def __init__(
        self,
        db: AsyncSession,
        credential_service: CredentialService,
        registry: ProviderRegistry,
    ):
        self.db = db
        self.repo = CspPolicyRepository(db)
        self.account_repo = CspAccountRepository(db)
        self.csp_role_repo = CspRoleRepository(db)
        self.registry = registry
        self.credential_service = credential_service

    async def create_policy(self, data: CspPolicyCreate) -> CspPolicy:
        async with transaction(self.db):
            if not await self.account_repo.exists_by_id(data.csp_account_id):
                raise NotFoundError("CspAccount", data.csp_account_id)
            if await self.repo.exists_by_name_and_account_id(data.name, data.csp_account_id):
                raise AlreadyExistsError(
                    f"policy with name '{data.name}' already exists for account {data.csp_account_id}",
                    entity="CspPolicy",
                    identifier=data.name,
                )
            policy = await self.repo.create(CspPolicy(**data.model_dump()))
        logger.info("Created CSP policy", policy_id=policy.id, name=policy.name)
        return policy

    async def get_policy(self, policy_id: int) -> CspPolicy:
        policy = await self.repo.get_by_id(policy_id)
        if not policy:
            raise NotFoundError("CspPolicy", policy_id)
        return policy

    async def list_policies(self, filter: Optional[CspPolicyFilter] = None) -> List[CspPolicy]:
        return await self.repo.list(filter)

    async def list_managed_by_account(self, account_id: int) -> List[CspPolicy]:
        return await self.repo.get_managed_by_account_id(account_id)

    async def update_policy(self, policy_id: int, data: CspPolicyUpdate) -> CspPolicy:
        async with transaction(self.db):
            policy = await self.get_policy(policy_id)
            changes = data.model_dump(exclude_unset=True)
            new_name = changes.get("name")
            if new_name and new_name != policy.name:
                if await self.repo.exists_by_name_and_account_id(new_name, policy.csp_account_id):
                    raise AlreadyExistsError(
                        f"policy with name '{new_name}' already exists for account {policy.csp_account_id}",
                        entity="CspPolicy",
                        identifier=new_name,
                    )
            policy = await self.repo.update(policy, changes)
        logger.info("Updated CSP policy", policy_id=policy_id, fields=sorted(changes))
        return policy

    async def delete_policy(self, policy_id: int) -> None:
        """Delete a policy that no CSP role has attached."""
        async with transaction(self.db):
            if not await self.repo.exists_by_id(policy_id):
                raise NotFoundError("CspPolicy", policy_id)
            attached = await self.repo.count_attachments_by_policy_id(policy_id)
            if attached:
                raise DependentsExistError("CSP policy", policy_id, "CSP roles", attached)
            await self.repo.delete_with_attachments(policy_id)
        logger.info("Deleted CSP policy", policy_id=policy_id)

    async def attach_policy_to_role(self, csp_role_id: int, policy_id: int) -> None:
        async with transaction(self.db):
            if not await self.csp_role_repo.exists_by_id(csp_role_id):
                raise NotFoundError("CspRole", csp_role_id)
            if not await self.repo.exists_by_id(policy_id):
                raise NotFoundError("CspPolicy", policy_id)
            if await self.repo.is_policy_attached_to_role(csp_role_id, policy_id):
                raise AlreadyExistsError(
                    f"policy {policy_id} is already attached to CSP role {csp_role_id}",
                    entity="CspRolePolicyMapping",
                    identifier=(csp_role_id, policy_id),
                )
            await self.repo.attach_policy_to_role(csp_role_id, policy_id)
        logger.info("Attached policy to CSP role", csp_role_id=csp_role_id, policy_id=policy_id)

    async def detach_policy_from_role(self, csp_role_id: int, policy_id: int) -> None:
        async with transaction(self.db):
            if not await self.repo.detach_policy_from_role(csp_role_id, policy_id):
                raise NotFoundError(
                    "CspRolePolicyMapping",
                    (csp_role_id, policy_id),
                    message=f"policy {policy_id} is not attached to CSP role {csp_role_id}",
                )
        logger.info("Detached policy from CSP role", csp_role_id=csp_role_id, policy_id=policy_id)

    async def get_policies_by_role(self, csp_role_id: int) -> List[CspPolicy]:
        return await self.repo.get_policies_by_role_id(csp_role_id)

    async def get_roles_by_policy(self, policy_id: int) -> List[CspRole]:
        return await self.repo.get_roles_by_policy_id(policy_id)

    async def get_policy_document(self, policy_id: int) -> Dict[str, Any]:
        """
        Local document when stored; otherwise a managed policy's default
        version is fetched from the provider.
        """
        policy = await self.get_policy(policy_id)
        if policy.policy_doc:
            return policy.policy_doc
        if policy.policy_type != PolicyType.MANAGED or not policy.policy_arn:
            raise NotFoundError(
                "CspPolicy",
                policy_id,
                message=f"policy document not available for policy {policy_id}",
            )
        account, credential = await self.credential_service.credential_for_account(
            policy.csp_account_id
        )
        provider = self.registry.get(
            account.csp_type,
            region=credential.region,
            credentials=temp_credentials_as_static(credential),
        )
        document = await provider.get_policy_document(policy.policy_arn)
        logger.info("Fetched policy document from provider", policy_id=policy_id, policy_arn=policy.policy_arn)
        return document
