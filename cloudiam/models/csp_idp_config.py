"""CSP IdP trust configuration model definition."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..config.database import Base
from ..utils.constants import AuthMethod
from .csp_account import CspAccount


class CspIdpConfig(Base):
    """Trust configuration (OIDC, SAML or static secret key) attached to a CSP account."""

    __tablename__ = "csp_idp_configs"
    __table_args__ = (
        UniqueConstraint("name", "csp_account_id", name="uq_csp_idp_configs_name_account"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    csp_account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("csp_accounts.id"), nullable=False, index=True
    )
    auth_method: Mapped[AuthMethod] = mapped_column(
        Enum(AuthMethod, native_enum=False, length=50), nullable=False
    )
    config: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
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

    csp_account = relationship(CspAccount, lazy="joined")
