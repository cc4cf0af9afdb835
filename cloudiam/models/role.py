"""Internal role hierarchy and its mapping to CSP roles."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..config.database import Base
from ..utils.constants import AuthMethod, RoleType
from .csp_role import CspRole


class RoleMaster(Base):
    """Named, optionally parented internal role."""

    __tablename__ = "role_masters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("role_masters.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    predefined: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    role_subs: Mapped[List["RoleSub"]] = relationship(
        "RoleSub", back_populates="role", lazy="selectin"
    )

    @property
    def role_types(self) -> List[RoleType]:
        return [sub.role_type for sub in self.role_subs]

    def has_role_type(self, role_type: RoleType) -> bool:
        return role_type in self.role_types


class RoleSub(Base):
    """Scope tag (platform, workspace or csp) for a RoleMaster."""

    __tablename__ = "role_subs"
    __table_args__ = (UniqueConstraint("role_id", "role_type", name="uq_role_subs_role_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("role_masters.id"), nullable=False, index=True
    )
    role_type: Mapped[RoleType] = mapped_column(
        Enum(RoleType, native_enum=False, length=50), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    role = relationship("RoleMaster", back_populates="role_subs")


class RoleMasterCspRoleMapping(Base):
    """Edge linking a RoleMaster to a CspRole under one trust method."""

    __tablename__ = "role_csp_role_mappings"

    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("role_masters.id"), primary_key=True
    )
    auth_method: Mapped[AuthMethod] = mapped_column(
        Enum(AuthMethod, native_enum=False, length=50), primary_key=True
    )
    csp_role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("csp_roles.id"), primary_key=True
    )
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    csp_role = relationship(CspRole, lazy="selectin")
