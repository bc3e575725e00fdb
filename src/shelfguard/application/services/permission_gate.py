"""Permission check gate.

Answers whether a user may perform an action by looking at the permissions
of every role the user currently holds. Associations are read from the
database on every call, so a role granted a moment ago is honored at once.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from shelfguard.core.logging import get_logger
from shelfguard.domain.exceptions import UnauthorizedError
from shelfguard.infrastructure.persistence.repositories import RoleRepository

logger = get_logger(__name__)


class PermissionGate:
    """Checks user permissions against their current role assignments."""

    def __init__(self, session: AsyncSession, role_repo: RoleRepository | None = None) -> None:
        """Initialize the gate.

        Args:
            session: Database session for reading role assignments.
            role_repo: Repository to read through. Defaults to one bound to session.
        """
        self.session = session
        self.role_repo = role_repo or RoleRepository(session)

    async def permissions_for(self, user_id: str) -> frozenset[str]:
        """Get the union of permissions granted to a user by all their roles."""
        return await self.role_repo.get_permissions_for_user(user_id)

    async def check(self, user_id: str, permission: str) -> bool:
        """Check whether a user holds a permission.

        Args:
            user_id: User ID.
            permission: Permission identifier.

        Returns:
            True if any of the user's roles grants the permission.
        """
        allowed = permission in await self.permissions_for(user_id)
        logger.debug(
            "Permission checked",
            user_id=user_id,
            permission=permission,
            allowed=allowed,
        )
        return allowed

    async def require(self, user_id: str, permission: str) -> None:
        """Ensure a user holds a permission.

        Raises:
            UnauthorizedError: If the user lacks the permission.
        """
        if not await self.check(user_id, permission):
            logger.info("Permission denied", user_id=user_id, permission=permission)
            raise UnauthorizedError(user_id, permission)
