"""Role hierarchy and role-to-CSP-role mapping service."""

from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import transaction
from ..core.errors import AlreadyExistsError, DependentsExistError, InvalidStateError, NotFoundError
from ..models.csp_role import CspRole
from ..models.role import RoleMaster, RoleMasterCspRoleMapping
from ..repositories.csp_mapping_repo import CspMappingRepository
from ..repositories.csp_role_repo import CspRoleRepository
from ..repositories.role_repo import RoleRepository
from ..schemas.role import RoleCreate
from ..utils.constants import AuthMethod, CspType, RoleType
from ..utils.logger import get_logger

logger = get_logger(__name__)


class RoleMappingService:
    """Resolves platform/workspace roles to CSP roles and maintains the mapping edges."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.role_repo = RoleRepository(db)
        self.csp_role_repo = CspRoleRepository(db)
        self.mapping_repo = CspMappingRepository(db)

    # Role hierarchy

    async def create_role(self, data: RoleCreate) -> RoleMaster:
        async with transaction(self.db):
            if await self.role_repo.exists_by_name(data.name):
                raise AlreadyExistsError(
                    f"role with name '{data.name}' already exists", entity="RoleMaster", identifier=data.name
                )
            if data.parent_id is not None and not await self.role_repo.exists_by_id(data.parent_id):
                raise NotFoundError("RoleMaster", data.parent_id)
            role = await self.role_repo.create(
                RoleMaster(
                    name=data.name,
                    parent_id=data.parent_id,
                    description=data.description,
                    predefined=data.predefined,
                )
            )
            for role_type in dict.fromkeys(data.role_types):
                await self.role_repo.add_role_sub(role.id, role_type)
            await self.db.refresh(role)
        logger.info("Created role", role_id=role.id, name=role.name, role_types=[t.value for t in role.role_types])
        return role

    async def get_role(self, role_id: int) -> RoleMaster:
        role = await self.role_repo.get_by_id(role_id)
        if not role:
            raise NotFoundError("RoleMaster", role_id)
        return role

    async def get_role_by_name(self, name: str) -> RoleMaster:
        role = await self.role_repo.get_by_name(name)
        if not role:
            raise NotFoundError("RoleMaster", name, message=f"role not found with name: {name}")
        return role

    async def list_roles(self, role_type: Optional[RoleType] = None) -> List[RoleMaster]:
        return await self.role_repo.list(role_type)

    async def add_role_sub(self, role_id: int, role_type: RoleType) -> RoleMaster:
        async with transaction(self.db):
            role = await self.get_role(role_id)
            if await self.role_repo.has_role_sub(role_id, role_type):
                raise AlreadyExistsError(
                    f"role {role_id} already has role type {role_type.value}",
                    entity="RoleSub",
                    identifier=role_id,
                )
            await self.role_repo.add_role_sub(role_id, role_type)
            await self.db.refresh(role)
        logger.info("Added role type", role_id=role_id, role_type=role_type.value)
        return role

    async def delete_role(self, role_id: int) -> None:
        """Delete a role with its CSP mappings and role types."""
        async with transaction(self.db):
            if not await self.role_repo.exists_by_id(role_id):
                raise NotFoundError("RoleMaster", role_id)
            children = await self.role_repo.count_children(role_id)
            if children:
                raise DependentsExistError("role", role_id, "child roles", children)
            removed = await self.mapping_repo.delete_by_role_id(role_id)
            await self.role_repo.delete_role_subs(role_id)
            await self.role_repo.delete(role_id)
        logger.info("Deleted role", role_id=role_id, removed_mappings=removed)

    # Resolution

    async def resolve(self, role_id: int, auth_method: AuthMethod) -> List[CspRole]:
        """CSP roles a role maps to under one auth method. Empty when none are mapped."""
        return await self.mapping_repo.find_csp_roles(role_id, auth_method)

    async def resolve_by_csp_role(self, csp_role_id: int) -> List[RoleMasterCspRoleMapping]:
        return await self.mapping_repo.find_by_csp_role_id(csp_role_id)

    async def resolve_by_account(self, csp_account_id: int) -> List[RoleMasterCspRoleMapping]:
        return await self.mapping_repo.find_by_account_id(csp_account_id)

    async def resolve_by_csp_type(
        self, csp_type: CspType, role_id: Optional[int] = None
    ) -> List[RoleMasterCspRoleMapping]:
        return await self.mapping_repo.find_by_csp_type(csp_type, role_id)

    async def list_mappings_for_role(self, role_id: int) -> List[RoleMasterCspRoleMapping]:
        return await self.mapping_repo.find_by_role_id(role_id)

    # Mapping writes

    async def _check_mapping_targets(self, role_id: int, csp_role_id: int) -> None:
        if not await self.role_repo.exists_by_id(role_id):
            raise NotFoundError("RoleMaster", role_id)
        if not await self.role_repo.has_role_sub(role_id, RoleType.CSP):
            raise InvalidStateError(
                f"role {role_id} has no csp role type and cannot be mapped to CSP roles",
                entity="RoleMaster",
                identifier=role_id,
            )
        if not await self.csp_role_repo.exists_by_id(csp_role_id):
            raise NotFoundError("CspRole", csp_role_id)

    async def upsert_mapping(
        self,
        role_id: int,
        auth_method: AuthMethod,
        csp_role_id: int,
        description: Optional[str] = None,
    ) -> RoleMasterCspRoleMapping:
        """
        Create the (role, auth method, CSP role) edge, or update its description
        when it already exists.
        """
        try:
            async with transaction(self.db):
                await self._check_mapping_targets(role_id, csp_role_id)
                mapping = await self.mapping_repo.get(role_id, auth_method, csp_role_id)
                if mapping is not None:
                    mapping = await self.mapping_repo.update_description(mapping, description)
                    created = False
                else:
                    mapping = await self.mapping_repo.create(role_id, auth_method, csp_role_id, description)
                    created = True
        except IntegrityError:
            # a concurrent request inserted the same triple first
            async with transaction(self.db):
                mapping = await self.mapping_repo.get(role_id, auth_method, csp_role_id)
                if mapping is None:
                    raise
                mapping = await self.mapping_repo.update_description(mapping, description)
                created = False
        logger.info(
            "Upserted role mapping",
            role_id=role_id,
            auth_method=auth_method.value,
            csp_role_id=csp_role_id,
            created=created,
        )
        return mapping

    async def remove_mapping(self, role_id: int, csp_role_id: int, auth_method: AuthMethod) -> None:
        async with transaction(self.db):
            if not await self.mapping_repo.delete(role_id, auth_method, csp_role_id):
                raise NotFoundError(
                    "RoleMasterCspRoleMapping",
                    (role_id, auth_method.value, csp_role_id),
                    message=(
                        f"no {auth_method.value} mapping from role {role_id} to CSP role {csp_role_id}"
                    ),
                )
        logger.info(
            "Removed role mapping", role_id=role_id, auth_method=auth_method.value, csp_role_id=csp_role_id
        )

    async def remove_all_mappings_for_role(self, role_id: int) -> int:
        async with transaction(self.db):
            removed = await self.mapping_repo.delete_by_role_id(role_id)
        logger.info("Removed all role mappings", role_id=role_id, removed=removed)
        return removed
