"""Role hierarchy repository (RoleMaster and RoleSub)."""

from typing import List, Optional
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .base import BaseRepository
from ..models.role import RoleMaster, RoleSub
from ..utils.constants import RoleType


class RoleRepository(BaseRepository[RoleMaster]):
    """Repository for RoleMaster and its RoleSub rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, RoleMaster)

    async def get_by_name(self, name: str) -> Optional[RoleMaster]:
        result = await self.session.execute(select(RoleMaster).where(RoleMaster.name == name))
        return result.scalar_one_or_none()

    async def exists_by_name(self, name: str) -> bool:
        return await self._exists(RoleMaster.name == name)

    async def list(self, role_type: Optional[RoleType] = None) -> List[RoleMaster]:
        stmt = select(RoleMaster)
        if role_type is not None:
            stmt = stmt.join(RoleSub, RoleSub.role_id == RoleMaster.id).where(
                RoleSub.role_type == role_type
            )
        result = await self.session.execute(stmt.order_by(RoleMaster.id))
        return list(result.scalars().unique().all())

    async def add_role_sub(self, role_id: int, role_type: RoleType) -> RoleSub:
        sub = RoleSub(role_id=role_id, role_type=role_type)
        self.session.add(sub)
        await self.session.flush()
        return sub

    async def has_role_sub(self, role_id: int, role_type: RoleType) -> bool:
        result = await self.session.execute(
            select(RoleSub.id).where(RoleSub.role_id == role_id, RoleSub.role_type == role_type)
        )
        return result.first() is not None

    async def delete_role_subs(self, role_id: int) -> int:
        result = await self.session.execute(delete(RoleSub).where(RoleSub.role_id == role_id))
        await self.session.flush()
        return result.rowcount

    async def count_children(self, role_id: int) -> int:
        return await self._count(RoleMaster.parent_id == role_id)
