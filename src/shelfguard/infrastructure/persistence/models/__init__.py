"""SQLAlchemy models for the ShelfGuard tables.

All models inherit from the Base class defined in database.py.
"""

from shelfguard.infrastructure.persistence.models.role import RoleModel
from shelfguard.infrastructure.persistence.models.role_permission import RolePermissionModel
from shelfguard.infrastructure.persistence.models.user_role import UserRoleModel

__all__ = [
    "RoleModel",
    "RolePermissionModel",
    "UserRoleModel",
]
