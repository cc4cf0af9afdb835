"""CSP role service."""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import transaction
from ..core.errors import DependentsExistError, InvalidStateError, NotFoundError
from ..models.csp_role import CspRole
from ..repositories.csp_account_repo import CspAccountRepository
from ..repositories.csp_idp_config_repo import CspIdpConfigRepository
from ..repositories.csp_mapping_repo import CspMappingRepository
from ..repositories.csp_policy_repo import CspPolicyRepository
from ..repositories.csp_role_repo import CspRoleRepository
from ..schemas.csp_role import CspRoleCreate, CspRoleFilter, CspRoleUpdate
from ..utils.constants import CspType
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CspRoleService:
    """Service for locally registered CSP roles."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = CspRoleRepository(db)
        self.account_repo = CspAccountRepository(db)
        self.idp_config_repo = CspIdpConfigRepository(db)
        self.policy_repo = CspPolicyRepository(db)
        self.mapping_repo = CspMappingRepository(db)

    async def _check_references(
        self,
        csp_type: CspType,
        csp_account_id: Optional[int],
        csp_idp_config_id: Optional[int],
    ) -> None:
        if csp_account_id is not None:
            account = await self.account_repo.get_by_id(csp_account_id)
            if not account:
                raise NotFoundError("CspAccount", csp_account_id)
            if account.csp_type != csp_type:
                raise InvalidStateError(
                    f"CSP account {csp_account_id} is {account.csp_type.value}, not {csp_type.value}",
                    entity="CspAccount",
                    identifier=csp_account_id,
                )
        if csp_idp_config_id is not None:
            if not await self.idp_config_repo.exists_by_id(csp_idp_config_id):
                raise NotFoundError("CspIdpConfig", csp_idp_config_id)

    async def create_role(self, data: CspRoleCreate) -> CspRole:
        async with transaction(self.db):
            await self._check_references(data.csp_type, data.csp_account_id, data.csp_idp_config_id)
            role = await self.repo.create(CspRole(**data.model_dump()))
        logger.info("Created CSP role", csp_role_id=role.id, name=role.name, csp_type=role.csp_type.value)
        return role

    async def get_role(self, csp_role_id: int) -> CspRole:
        role = await self.repo.get_by_id(csp_role_id)
        if not role:
            raise NotFoundError("CspRole", csp_role_id)
        return role

    async def list_roles(self, filter: Optional[CspRoleFilter] = None) -> List[CspRole]:
        return await self.repo.list(filter)

    async def update_role(self, csp_role_id: int, data: CspRoleUpdate) -> CspRole:
        async with transaction(self.db):
            role = await self.get_role(csp_role_id)
            changes = data.model_dump(exclude_unset=True)
            await self._check_references(
                role.csp_type,
                changes.get("csp_account_id"),
                changes.get("csp_idp_config_id"),
            )
            role = await self.repo.update(role, changes)
        logger.info("Updated CSP role", csp_role_id=csp_role_id, fields=sorted(changes))
        return role

    async def delete_role(self, csp_role_id: int) -> None:
        """Delete a CSP role that is neither mapped to a role nor holding policies."""
        async with transaction(self.db):
            if not await self.repo.exists_by_id(csp_role_id):
                raise NotFoundError("CspRole", csp_role_id)
            mapped = await self.mapping_repo.count_by_csp_role_id(csp_role_id)
            if mapped:
                raise DependentsExistError("CSP role", csp_role_id, "role mappings", mapped)
            attached = await self.policy_repo.count_attachments_by_role_id(csp_role_id)
            if attached:
                raise DependentsExistError("CSP role", csp_role_id, "policy attachments", attached)
            await self.repo.delete(csp_role_id)
        logger.info("Deleted CSP role", csp_role_id=csp_role_id)
