"""SQLAlchemy model for the user_roles junction table.

Implements the many-to-many relationship between users and roles. Users are
owned by the identity subsystem, so user_id is not a foreign key here.
"""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shelfguard.infrastructure.persistence.database import Base


class UserRoleModel(Base):
    """Junction table for many-to-many relationship between users and roles.

    Attributes:
        user_id: ID of the user in the identity subsystem.
        role_id: Foreign key to roles table.
    """

    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="User ID (UUID) from the identity subsystem",
    )
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
        comment="Foreign key to roles table",
    )

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id})>"
