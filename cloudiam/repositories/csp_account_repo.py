"""CSP account repository."""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .base import BaseRepository
from ..models.csp_account import CspAccount
from ..schemas.csp_account import CspAccountFilter
from ..utils.constants import CspType


class CspAccountRepository(BaseRepository[CspAccount]):
    """Repository for CspAccount operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CspAccount)

    async def get_by_name(self, name: str) -> Optional[CspAccount]:
        result = await self.session.execute(
            select(CspAccount).where(CspAccount.name == name).order_by(CspAccount.id)
        )
        return result.scalars().first()

    async def get_by_name_and_csp_type(self, name: str, csp_type: CspType) -> Optional[CspAccount]:
        result = await self.session.execute(
            select(CspAccount).where(CspAccount.name == name, CspAccount.csp_type == csp_type)
        )
        return result.scalar_one_or_none()

    async def list(self, filter: Optional[CspAccountFilter] = None) -> List[CspAccount]:
        """List accounts matching every set field of the filter."""
        stmt = select(CspAccount)
        if filter is not None:
            if filter.csp_type is not None:
                stmt = stmt.where(CspAccount.csp_type == filter.csp_type)
            if filter.is_active is not None:
                stmt = stmt.where(CspAccount.is_active == filter.is_active)
            if filter.name:
                stmt = stmt.where(CspAccount.name.contains(filter.name))
        result = await self.session.execute(stmt.order_by(CspAccount.id))
        return list(result.scalars().all())

    async def exists_by_name_and_csp_type(self, name: str, csp_type: CspType) -> bool:
        return await self._exists(CspAccount.name == name, CspAccount.csp_type == csp_type)
