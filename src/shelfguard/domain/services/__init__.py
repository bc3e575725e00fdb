"""Domain services for ShelfGuard.

Services contain business logic that doesn't naturally fit within a single entity.
They have no dependencies on infrastructure.
"""

from shelfguard.domain.services.failure_reporter import (
    FailureKind,
    FailureReport,
    FailureReporter,
)
from shelfguard.domain.services.permission_registry import (
    DEFAULT_PERMISSIONS,
    ROLE_MANAGE_PERMISSION,
    PermissionRegistry,
    get_permission_registry,
)
from shelfguard.domain.services.role_validator import (
    DESCRIPTION_MAX_LENGTH,
    DISPLAY_NAME_MAX_LENGTH,
    DISPLAY_NAME_MIN_LENGTH,
    RoleValidator,
)

__all__ = [
    "DEFAULT_PERMISSIONS",
    "DESCRIPTION_MAX_LENGTH",
    "DISPLAY_NAME_MAX_LENGTH",
    "DISPLAY_NAME_MIN_LENGTH",
    "FailureKind",
    "FailureReport",
    "FailureReporter",
    "PermissionRegistry",
    "ROLE_MANAGE_PERMISSION",
    "RoleValidator",
    "get_permission_registry",
]
