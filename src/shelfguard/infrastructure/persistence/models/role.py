"""SQLAlchemy model for the roles table.

Roles carry a set of permission identifiers and are assigned to users.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shelfguard.infrastructure.persistence.database import Base


class RoleModel(Base):
    """SQLAlchemy model for the roles table.

    Attributes:
        id: Auto-incrementing primary key.
        name: Unique machine name derived from the display name.
        display_name: Human-readable role name.
        description: Optional description of the role's purpose.
        hidden: Whether the role is protected from editing and deletion.
        system_default: Whether the role is auto-assigned to new users.
        created_at: Timestamp when the role was created.
        updated_at: Timestamp when the role was last updated.
    """

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Machine name (e.g., 'admin', 'content-editor')",
    )
    display_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Human-readable role name",
    )
    description: Mapped[str | None] = mapped_column(
        String(250),
        nullable=True,
        comment="Description of the role's purpose",
    )
    hidden: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Protected roles cannot be edited or deleted",
    )
    system_default: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Role assigned to newly created users",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    permissions: Mapped[list["RolePermissionModel"]] = relationship(  # noqa: F821
        "RolePermissionModel",
        back_populates="role",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"
