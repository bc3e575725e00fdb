"""SQLAlchemy model for the role_permissions table.

Each row grants one permission identifier to one role.
"""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shelfguard.infrastructure.persistence.database import Base


class RolePermissionModel(Base):
    """Junction between roles and permission identifiers.

    Attributes:
        role_id: Foreign key to roles table.
        permission: Registered permission identifier.
    """

    __tablename__ = "role_permissions"

    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        comment="Foreign key to roles table",
    )
    permission: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
        comment="Permission identifier (e.g., 'page-update-all')",
    )

    # Relationships
    role: Mapped["RoleModel"] = relationship(  # noqa: F821
        "RoleModel",
        back_populates="permissions",
    )

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, permission={self.permission})>"
