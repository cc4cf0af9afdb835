"""CSP account model definition."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ..config.database import Base
from ..utils.constants import CspType


class CspAccount(Base):
    """
    One cloud account, subscription or project.
    account_info holds provider-specific descriptors, e.g.
    aws: account_id, alias, region
    gcp: project_id, project_number
    azure: subscription_id, tenant_id, directory_id
    """

    __tablename__ = "csp_accounts"
    __table_args__ = (UniqueConstraint("name", "csp_type", name="uq_csp_accounts_name_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    csp_type: Mapped[CspType] = mapped_column(
        Enum(CspType, native_enum=False, length=50), nullable=False, index=True
    )
    account_info: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def _info(self, key: str) -> Optional[str]:
        return (self.account_info or {}).get(key) or None

    @property
    def account_id(self) -> Optional[str]:
        """AWS account id."""
        return self._info("account_id")

    @property
    def project_id(self) -> Optional[str]:
        """GCP project id."""
        return self._info("project_id")

    @property
    def subscription_id(self) -> Optional[str]:
        """Azure subscription id."""
        return self._info("subscription_id")

    @property
    def tenant_id(self) -> Optional[str]:
        """Azure tenant id."""
        return self._info("tenant_id")

    @property
    def region(self) -> Optional[str]:
        return self._info("region")
