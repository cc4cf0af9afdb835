"""CSP role model definition."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..config.database import Base
from ..utils.constants import CspType
from .csp_account import CspAccount
from .csp_idp_config import CspIdpConfig


class CspRole(Base):
    """
    Provider-native role a RoleMaster can be realized by.
    iam_identifier is the provider role identifier (an ARN on AWS) used for
    issuance; csp_idp_config_id names the trust configuration to federate with.
    """

    __tablename__ = "csp_roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    csp_type: Mapped[CspType] = mapped_column(
        Enum(CspType, native_enum=False, length=50), nullable=False
    )
    idp_identifier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    iam_identifier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    iam_role_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    max_session_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    permissions_boundary: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    csp_account_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("csp_accounts.id"), nullable=True, index=True
    )
    csp_idp_config_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("csp_idp_configs.id"), nullable=True, index=True
    )
    extended_config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    csp_account = relationship(CspAccount, lazy="selectin")
    csp_idp_config = relationship(CspIdpConfig, lazy="selectin")
