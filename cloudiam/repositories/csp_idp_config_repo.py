"""CSP IdP config repository."""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .base import BaseRepository
from ..models.csp_idp_config import CspIdpConfig
from ..schemas.csp_idp_config import CspIdpConfigFilter
from ..utils.constants import AuthMethod


class CspIdpConfigRepository(BaseRepository[CspIdpConfig]):
    """Repository for CspIdpConfig operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CspIdpConfig)

    async def get_by_name_and_account_id(self, name: str, account_id: int) -> Optional[CspIdpConfig]:
        result = await self.session.execute(
            select(CspIdpConfig).where(
                CspIdpConfig.name == name, CspIdpConfig.csp_account_id == account_id
            )
        )
        return result.scalar_one_or_none()

    async def list(self, filter: Optional[CspIdpConfigFilter] = None) -> List[CspIdpConfig]:
        """List configs matching every set field of the filter."""
        stmt = select(CspIdpConfig)
        if filter is not None:
            if filter.csp_account_id is not None:
                stmt = stmt.where(CspIdpConfig.csp_account_id == filter.csp_account_id)
            if filter.auth_method is not None:
                stmt = stmt.where(CspIdpConfig.auth_method == filter.auth_method)
            if filter.is_active is not None:
                stmt = stmt.where(CspIdpConfig.is_active == filter.is_active)
            if filter.name:
                stmt = stmt.where(CspIdpConfig.name.contains(filter.name))
        result = await self.session.execute(stmt.order_by(CspIdpConfig.id))
        return list(result.scalars().all())

    async def get_active_by_account_id(self, account_id: int) -> List[CspIdpConfig]:
        return await self.list(CspIdpConfigFilter(csp_account_id=account_id, is_active=True))

    async def get_by_auth_method(self, auth_method: AuthMethod) -> List[CspIdpConfig]:
        return await self.list(CspIdpConfigFilter(auth_method=auth_method))

    async def exists_by_name_and_account_id(self, name: str, account_id: int) -> bool:
        return await self._exists(
            CspIdpConfig.name == name, CspIdpConfig.csp_account_id == account_id
        )

    async def count_by_account_id(self, account_id: int) -> int:
        return await self._count(CspIdpConfig.csp_account_id == account_id)
