"""CSP policy repository, including role-policy attachments."""

from typing import List, Optional
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .base import BaseRepository
from ..models.csp_policy import CspPolicy, CspRolePolicyMapping
from ..models.csp_role import CspRole
from ..schemas.csp_policy import CspPolicyFilter
from ..utils.constants import PolicyType


class CspPolicyRepository(BaseRepository[CspPolicy]):
    """Repository for CspPolicy operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CspPolicy)

    async def get_by_arn(self, arn: str, account_id: Optional[int] = None) -> Optional[CspPolicy]:
        """Get policy by provider identifier, optionally scoped to an account."""
        stmt = select(CspPolicy).where(CspPolicy.policy_arn == arn)
        if account_id is not None:
            stmt = stmt.where(CspPolicy.csp_account_id == account_id)
        result = await self.session.execute(stmt.order_by(CspPolicy.id))
        return result.scalars().first()

    async def get_by_name_and_account_id(self, name: str, account_id: int) -> Optional[CspPolicy]:
        result = await self.session.execute(
            select(CspPolicy).where(CspPolicy.name == name, CspPolicy.csp_account_id == account_id)
        )
        return result.scalar_one_or_none()

    async def list(self, filter: Optional[CspPolicyFilter] = None) -> List[CspPolicy]:
        """List policies matching every set field of the filter."""
        stmt = select(CspPolicy)
        if filter is not None:
            if filter.csp_account_id is not None:
                stmt = stmt.where(CspPolicy.csp_account_id == filter.csp_account_id)
            if filter.policy_type is not None:
                stmt = stmt.where(CspPolicy.policy_type == filter.policy_type)
            if filter.name:
                stmt = stmt.where(CspPolicy.name.contains(filter.name))
        result = await self.session.execute(stmt.order_by(CspPolicy.id))
        return list(result.scalars().all())

    async def get_managed_by_account_id(self, account_id: int) -> List[CspPolicy]:
        return await self.list(
            CspPolicyFilter(csp_account_id=account_id, policy_type=PolicyType.MANAGED)
        )

    async def exists_by_name_and_account_id(self, name: str, account_id: int) -> bool:
        return await self._exists(CspPolicy.name == name, CspPolicy.csp_account_id == account_id)

    async def count_by_account_id(self, account_id: int) -> int:
        return await self._count(CspPolicy.csp_account_id == account_id)

    async def delete_with_attachments(self, policy_id: int) -> bool:
        """Delete a policy together with any attachment rows that reference it."""
        await self.session.execute(
            delete(CspRolePolicyMapping).where(CspRolePolicyMapping.csp_policy_id == policy_id)
        )
        return await self.delete(policy_id)

    # Attachments

    async def attach_policy_to_role(self, role_id: int, policy_id: int) -> CspRolePolicyMapping:
        mapping = CspRolePolicyMapping(csp_role_id=role_id, csp_policy_id=policy_id)
        self.session.add(mapping)
        await self.session.flush()
        return mapping

    async def detach_policy_from_role(self, role_id: int, policy_id: int) -> bool:
        result = await self.session.execute(
            delete(CspRolePolicyMapping).where(
                CspRolePolicyMapping.csp_role_id == role_id,
                CspRolePolicyMapping.csp_policy_id == policy_id,
            )
        )
        await self.session.flush()
        return result.rowcount > 0

    async def is_policy_attached_to_role(self, role_id: int, policy_id: int) -> bool:
        result = await self.session.execute(
            select(CspRolePolicyMapping).where(
                CspRolePolicyMapping.csp_role_id == role_id,
                CspRolePolicyMapping.csp_policy_id == policy_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def get_policies_by_role_id(self, role_id: int) -> List[CspPolicy]:
        result = await self.session.execute(
            select(CspPolicy)
            .join(CspRolePolicyMapping, CspRolePolicyMapping.csp_policy_id == CspPolicy.id)
            .where(CspRolePolicyMapping.csp_role_id == role_id)
            .order_by(CspPolicy.id)
        )
        return list(result.scalars().all())

    async def get_roles_by_policy_id(self, policy_id: int) -> List[CspRole]:
        result = await self.session.execute(
            select(CspRole)
            .join(CspRolePolicyMapping, CspRolePolicyMapping.csp_role_id == CspRole.id)
            .where(CspRolePolicyMapping.csp_policy_id == policy_id)
            .order_by(CspRole.id)
        )
        return list(result.scalars().all())

    async def count_attachments_by_role_id(self, role_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(CspRolePolicyMapping)
            .where(CspRolePolicyMapping.csp_role_id == role_id)
        )
        return result.scalar_one()

    async def count_attachments_by_policy_id(self, policy_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(CspRolePolicyMapping)
            .where(CspRolePolicyMapping.csp_policy_id == policy_id)
        )
        return result.scalar_one()
