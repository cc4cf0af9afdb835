"""Repository for RoleMaster to CspRole mapping edges."""

from typing import List, Optional
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.csp_role import CspRole
from ..models.role import RoleMasterCspRoleMapping
from ..utils.constants import AuthMethod, CspType


class CspMappingRepository:
    """Mapping rows are keyed by (role_id, auth_method, csp_role_id); no surrogate id."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(
        self, role_id: int, auth_method: AuthMethod, csp_role_id: int
    ) -> Optional[RoleMasterCspRoleMapping]:
        return await self.session.get(
            RoleMasterCspRoleMapping, (role_id, auth_method, csp_role_id)
        )

    async def create(
        self,
        role_id: int,
        auth_method: AuthMethod,
        csp_role_id: int,
        description: Optional[str] = None,
    ) -> RoleMasterCspRoleMapping:
        mapping = RoleMasterCspRoleMapping(
            role_id=role_id,
            auth_method=auth_method,
            csp_role_id=csp_role_id,
            description=description,
        )
        self.session.add(mapping)
        await self.session.flush()
        await self.session.refresh(mapping)
        return mapping

    async def update_description(
        self, mapping: RoleMasterCspRoleMapping, description: Optional[str]
    ) -> RoleMasterCspRoleMapping:
        mapping.description = description
        await self.session.flush()
        return mapping

    async def delete(self, role_id: int, auth_method: AuthMethod, csp_role_id: int) -> bool:
        result = await self.session.execute(
            delete(RoleMasterCspRoleMapping).where(
                RoleMasterCspRoleMapping.role_id == role_id,
                RoleMasterCspRoleMapping.auth_method == auth_method,
                RoleMasterCspRoleMapping.csp_role_id == csp_role_id,
            )
        )
        await self.session.flush()
        return result.rowcount > 0

    async def delete_by_role_id(self, role_id: int) -> int:
        result = await self.session.execute(
            delete(RoleMasterCspRoleMapping).where(RoleMasterCspRoleMapping.role_id == role_id)
        )
        await self.session.flush()
        return result.rowcount

    async def find_csp_roles(self, role_id: int, auth_method: AuthMethod) -> List[CspRole]:
        """CSP roles mapped to a role under one auth method."""
        result = await self.session.execute(
            select(CspRole)
            .join(RoleMasterCspRoleMapping, RoleMasterCspRoleMapping.csp_role_id == CspRole.id)
            .where(
                RoleMasterCspRoleMapping.role_id == role_id,
                RoleMasterCspRoleMapping.auth_method == auth_method,
            )
            .order_by(CspRole.id)
        )
        return list(result.scalars().all())

    async def find_by_role_id(self, role_id: int) -> List[RoleMasterCspRoleMapping]:
        return await self._find(RoleMasterCspRoleMapping.role_id == role_id)

    async def find_by_csp_role_id(self, csp_role_id: int) -> List[RoleMasterCspRoleMapping]:
        return await self._find(RoleMasterCspRoleMapping.csp_role_id == csp_role_id)

    async def find_by_csp_type(
        self, csp_type: CspType, role_id: Optional[int] = None
    ) -> List[RoleMasterCspRoleMapping]:
        criteria = [CspRole.csp_type == csp_type]
        if role_id is not None:
            criteria.append(RoleMasterCspRoleMapping.role_id == role_id)
        return await self._find(*criteria, join_csp_role=True)

    async def find_by_account_id(self, csp_account_id: int) -> List[RoleMasterCspRoleMapping]:
        return await self._find(CspRole.csp_account_id == csp_account_id, join_csp_role=True)

    async def count_by_csp_role_id(self, csp_role_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RoleMasterCspRoleMapping)
            .where(RoleMasterCspRoleMapping.csp_role_id == csp_role_id)
        )
        return result.scalar_one()

    async def _find(self, *criteria, join_csp_role: bool = False) -> List[RoleMasterCspRoleMapping]:
        stmt = select(RoleMasterCspRoleMapping)
        if join_csp_role:
            stmt = stmt.join(CspRole, CspRole.id == RoleMasterCspRoleMapping.csp_role_id)
        stmt = stmt.where(*criteria).order_by(
            RoleMasterCspRoleMapping.role_id,
            RoleMasterCspRoleMapping.auth_method,
            RoleMasterCspRoleMapping.csp_role_id,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
