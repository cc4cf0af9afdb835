"""CSP role repository."""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .base import BaseRepository
from ..models.csp_role import CspRole
from ..schemas.csp_role import CspRoleFilter


class CspRoleRepository(BaseRepository[CspRole]):
    """Repository for CspRole operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CspRole)

    async def get_by_name(self, name: str) -> Optional[CspRole]:
        result = await self.session.execute(
            select(CspRole).where(CspRole.name == name).order_by(CspRole.id)
        )
        return result.scalars().first()

    async def get_by_ids(self, ids: List[int]) -> List[CspRole]:
        if not ids:
            return []
        result = await self.session.execute(
            select(CspRole).where(CspRole.id.in_(ids)).order_by(CspRole.id)
        )
        return list(result.scalars().all())

    async def list(self, filter: Optional[CspRoleFilter] = None) -> List[CspRole]:
        """List CSP roles matching every set field of the filter."""
        stmt = select(CspRole)
        if filter is not None:
            if filter.csp_type is not None:
                stmt = stmt.where(CspRole.csp_type == filter.csp_type)
            if filter.csp_account_id is not None:
                stmt = stmt.where(CspRole.csp_account_id == filter.csp_account_id)
            if filter.name:
                stmt = stmt.where(CspRole.name.contains(filter.name))
        result = await self.session.execute(stmt.order_by(CspRole.id))
        return list(result.scalars().all())

    async def count_by_idp_config_id(self, idp_config_id: int) -> int:
        return await self._count(CspRole.csp_idp_config_id == idp_config_id)

    async def count_by_account_id(self, account_id: int) -> int:
        return await self._count(CspRole.csp_account_id == account_id)
