"""CSP account service."""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import transaction
from ..core.errors import AlreadyExistsError, DependentsExistError, InvalidArgumentError, NotFoundError
from ..models.csp_account import CspAccount
from ..repositories.csp_account_repo import CspAccountRepository
from ..repositories.csp_idp_config_repo import CspIdpConfigRepository
from ..repositories.csp_policy_repo import CspPolicyRepository
from ..repositories.csp_role_repo import CspRoleRepository
from ..schemas.csp_account import CspAccountCreate, CspAccountFilter, CspAccountUpdate
from ..utils.constants import CspType
from ..utils.logger import get_logger

logger = get_logger(__name__)

# account_info keys an account must carry before it can be used
REQUIRED_ACCOUNT_INFO = {
    CspType.AWS: ("account_id",),
    CspType.GCP: ("project_id",),
    CspType.AZURE: ("subscription_id", "tenant_id"),
}


class CspAccountService:
    """Service for CspAccount operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = CspAccountRepository(db)
        self.idp_config_repo = CspIdpConfigRepository(db)
        self.policy_repo = CspPolicyRepository(db)
        self.csp_role_repo = CspRoleRepository(db)

    async def create_account(self, data: CspAccountCreate) -> CspAccount:
        """Create an account; (name, csp_type) must be unused."""
        async with transaction(self.db):
            if await self.repo.exists_by_name_and_csp_type(data.name, data.csp_type):
                raise AlreadyExistsError(
                    f"CSP account with name '{data.name}' and type '{data.csp_type.value}' already exists",
                    entity="CspAccount",
                    identifier=data.name,
                )
            account = await self.repo.create(
                CspAccount(
                    name=data.name,
                    csp_type=data.csp_type,
                    account_info=dict(data.account_info),
                    description=data.description,
                    is_active=True,
                )
            )
        logger.info("Created CSP account", account_id=account.id, name=account.name, csp_type=account.csp_type.value)
        return account

    async def get_account(self, account_id: int) -> CspAccount:
        account = await self.repo.get_by_id(account_id)
        if not account:
            raise NotFoundError("CspAccount", account_id)
        return account

    async def get_account_by_name(self, name: str) -> CspAccount:
        account = await self.repo.get_by_name(name)
        if not account:
            raise NotFoundError("CspAccount", name, message=f"CSP account not found with name: {name}")
        return account

    async def list_accounts(self, filter: Optional[CspAccountFilter] = None) -> List[CspAccount]:
        return await self.repo.list(filter)

    async def list_active_accounts(self) -> List[CspAccount]:
        return await self.repo.list(CspAccountFilter(is_active=True))

    async def list_accounts_by_csp_type(self, csp_type: CspType) -> List[CspAccount]:
        return await self.repo.list(CspAccountFilter(csp_type=csp_type))

    async def update_account(self, account_id: int, data: CspAccountUpdate) -> CspAccount:
        async with transaction(self.db):
            account = await self.get_account(account_id)
            changes = data.model_dump(exclude_unset=True)
            new_name = changes.get("name")
            if new_name and new_name != account.name:
                if await self.repo.exists_by_name_and_csp_type(new_name, account.csp_type):
                    raise AlreadyExistsError(
                        f"CSP account with name '{new_name}' already exists",
                        entity="CspAccount",
                        identifier=new_name,
                    )
            if changes.get("account_info") is not None:
                changes["account_info"] = dict(changes["account_info"])
            account = await self.repo.update(account, changes)
        logger.info("Updated CSP account", account_id=account_id, fields=sorted(changes))
        return account

    async def delete_account(self, account_id: int) -> None:
        """Delete an account that no IdP config, policy or CSP role references."""
        async with transaction(self.db):
            if not await self.repo.exists_by_id(account_id):
                raise NotFoundError("CspAccount", account_id)
            idp_count = await self.idp_config_repo.count_by_account_id(account_id)
            if idp_count:
                raise DependentsExistError("CSP account", account_id, "IdP configs", idp_count)
            policy_count = await self.policy_repo.count_by_account_id(account_id)
            if policy_count:
                raise DependentsExistError("CSP account", account_id, "policies", policy_count)
            role_count = await self.csp_role_repo.count_by_account_id(account_id)
            if role_count:
                raise DependentsExistError("CSP account", account_id, "CSP roles", role_count)
            await self.repo.delete(account_id)
        logger.info("Deleted CSP account", account_id=account_id)

    async def activate_account(self, account_id: int) -> CspAccount:
        return await self._set_active(account_id, True)

    async def deactivate_account(self, account_id: int) -> CspAccount:
        return await self._set_active(account_id, False)

    async def _set_active(self, account_id: int, is_active: bool) -> CspAccount:
        async with transaction(self.db):
            account = await self.get_account(account_id)
            account = await self.repo.update(account, {"is_active": is_active})
        logger.info("Changed CSP account state", account_id=account_id, is_active=is_active)
        return account

    async def validate_account(self, account_id: int) -> CspAccount:
        """Check the account carries the descriptors its CSP type requires."""
        account = await self.get_account(account_id)
        missing = [
            key for key in REQUIRED_ACCOUNT_INFO.get(account.csp_type, ()) if not (account.account_info or {}).get(key)
        ]
        if missing:
            raise InvalidArgumentError(
                f"{account.csp_type.value} account requires: {', '.join(missing)}",
                entity="CspAccount",
                identifier=account_id,
            )
        logger.info("Validated CSP account", account_id=account_id, name=account.name)
        return account
