"""CSP policy and role-policy attachment models."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ..config.database import Base
from ..utils.constants import PolicyType
from .csp_account import CspAccount  # noqa: F401
from .csp_role import CspRole  # noqa: F401


class CspPolicy(Base):
    """Permission document owned by a CSP account."""

    __tablename__ = "csp_policies"
    __table_args__ = (
        UniqueConstraint("name", "csp_account_id", name="uq_csp_policies_name_account"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    csp_account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("csp_accounts.id"), nullable=False, index=True
    )
    policy_type: Mapped[PolicyType] = mapped_column(
        Enum(PolicyType, native_enum=False, length=50), nullable=False
    )
    policy_arn: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, index=True)
    # Shape differs per CSP; stored and returned as-is
    policy_doc: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class CspRolePolicyMapping(Base):
    """Attachment of a policy to a CSP role."""

    __tablename__ = "csp_role_policy_mappings"

    csp_role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("csp_roles.id"), primary_key=True
    )
    csp_policy_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("csp_policies.id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
