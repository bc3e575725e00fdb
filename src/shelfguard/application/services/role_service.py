"""Role lifecycle management.

Applies the role management policy on top of the role repository:
every entry point requires the 'user-roles-manage' permission, hidden roles
are never edited or deleted, and deleting a role optionally moves its users
onto another role. Each operation is a single transaction.
"""

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shelfguard.application.services.permission_gate import PermissionGate
from shelfguard.core.config import Settings, get_settings
from shelfguard.core.logging import LoggingContext, get_logger
from shelfguard.domain.entities import (
    NO_MIGRATION,
    MigrateTo,
    MigrationOption,
    MigrationTarget,
    Role,
    as_migration_target,
)
from shelfguard.domain.exceptions import NotFoundError, PermissionsError, StorageError
from shelfguard.domain.schemas import RoleFields
from shelfguard.domain.services.permission_registry import (
    ROLE_MANAGE_PERMISSION,
    PermissionRegistry,
)
from shelfguard.infrastructure.persistence.repositories import RoleRepository

logger = get_logger(__name__)

ROLE_NOT_EDITABLE = "This role cannot be edited"
ROLE_NOT_DELETABLE = "This role cannot be deleted"
DEFAULT_ROLE_NOT_DELETABLE = (
    "This role is set as the default registration role and cannot be deleted"
)
NO_MIGRATION_LABEL = "Don't migrate users"


class RoleService:
    """Service for creating, editing and deleting roles."""

    def __init__(
        self,
        session: AsyncSession,
        registry: PermissionRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session: Database session. The service commits or rolls it back.
            registry: Permission registry for validating permission sets.
            settings: Settings providing the orphaned user policy.
        """
        self.session = session
        self.settings = settings or get_settings()
        self.role_repo = RoleRepository(session, registry)
        self.gate = PermissionGate(session, self.role_repo)

    @asynccontextmanager
    async def _unit_of_work(self, action: str, *, commit: bool = True) -> AsyncIterator[None]:
        """Run a block as one transaction, mapping database failures to StorageError."""
        try:
            yield
            if commit:
                await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Role storage operation failed", action=action, error=str(e))
            raise StorageError(f"Failed to {action}") from e
        except Exception:
            await self.session.rollback()
            raise

    async def _get_role(self, role_id: int) -> Role:
        role = await self.role_repo.get_by_id(role_id)
        if role is None:
            logger.info("Role not found", role_id=role_id)
            raise NotFoundError("Role", role_id)
        return role

    @staticmethod
    def _coerce_fields(fields: RoleFields | Mapping[str, Any]) -> RoleFields:
        if isinstance(fields, RoleFields):
            return fields
        return RoleFields.from_payload(fields)

    async def list_roles(self, actor_id: str) -> list[Role]:
        """List all roles ordered by display name.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
        """
        async with self._unit_of_work("list roles", commit=False):
            await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
            return await self.role_repo.list_all()

    async def get_role(self, actor_id: str, role_id: int) -> Role:
        """Get a single role.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
            NotFoundError: If the role does not exist.
        """
        async with self._unit_of_work("load role", commit=False):
            await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
            return await self._get_role(role_id)

    async def create_role(self, actor_id: str, fields: RoleFields | Mapping[str, Any]) -> Role:
        """Create a new role.

        Args:
            actor_id: ID of the user performing the action.
            fields: Role fields or the raw field map submitted by the user.

        Returns:
            The created role.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
            ValidationError: If the fields are invalid.
        """
        with LoggingContext(actor_id=actor_id):
            async with self._unit_of_work("create role"):
                await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
                role = await self.role_repo.create(self._coerce_fields(fields))

            logger.info("Role created successfully", role_id=role.id, role_name=role.name)
            return role

    async def edit_role(self, actor_id: str, role_id: int) -> Role:
        """Load a role for editing.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
            NotFoundError: If the role does not exist.
            PermissionsError: If the role is hidden.
        """
        async with self._unit_of_work("load role", commit=False):
            await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
            role = await self._get_role(role_id)
            if role.hidden:
                raise PermissionsError(ROLE_NOT_EDITABLE)
            return role

    async def update_role(
        self,
        actor_id: str,
        role_id: int,
        fields: RoleFields | Mapping[str, Any],
    ) -> Role:
        """Update a role's fields and permission set.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
            NotFoundError: If the role does not exist.
            PermissionsError: If the role is hidden.
            ValidationError: If the fields are invalid.
        """
        with LoggingContext(actor_id=actor_id):
            async with self._unit_of_work("update role"):
                await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
                role = await self._get_role(role_id)
                if role.hidden:
                    logger.info("Role update refused: role is hidden", role_id=role_id)
                    raise PermissionsError(ROLE_NOT_EDITABLE)
                updated = await self.role_repo.update(role_id, self._coerce_fields(fields))

            logger.info("Role updated successfully", role_id=role_id)
            return updated

    async def list_migration_candidates(self, actor_id: str, role_id: int) -> list[MigrationOption]:
        """List the choices for moving users off a role that is about to be deleted.

        The first option always leaves the users without a replacement role;
        one option per remaining role follows.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
            NotFoundError: If the role does not exist.
        """
        async with self._unit_of_work("list migration candidates", commit=False):
            await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
            role = await self._get_role(role_id)
            others = await self.role_repo.list_all_except(role.id)

        return [MigrationOption(target=NO_MIGRATION, label=NO_MIGRATION_LABEL)] + [
            MigrationOption(target=MigrateTo(other.id), label=other.display_name)
            for other in others
        ]

    async def delete_role(
        self,
        actor_id: str,
        role_id: int,
        migrate_to: MigrationTarget | int | str | None = None,
    ) -> None:
        """Delete a role, optionally moving its users onto another role.

        Migration and removal happen in one transaction.

        Args:
            actor_id: ID of the user performing the action.
            role_id: ID of the role to delete.
            migrate_to: Role that receives the users, or no migration.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
            NotFoundError: If the role or the migration role does not exist.
            PermissionsError: If the role is hidden or is the default role.
        """
        with LoggingContext(actor_id=actor_id):
            async with self._unit_of_work("delete role"):
                await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
                target = as_migration_target(migrate_to)

                role = await self._get_role(role_id)
                if role.hidden:
                    logger.info("Role deletion refused: role is hidden", role_id=role_id)
                    raise PermissionsError(ROLE_NOT_DELETABLE)
                if role.system_default:
                    logger.info("Role deletion refused: role is the default", role_id=role_id)
                    raise PermissionsError(DEFAULT_ROLE_NOT_DELETABLE)

                if isinstance(target, MigrateTo) and target.role_id == role.id:
                    target = NO_MIGRATION

                affected = await self.role_repo.get_user_ids(role.id)

                if isinstance(target, MigrateTo):
                    new_role = await self._get_role(target.role_id)
                    migrated = await self.role_repo.migrate_users(role.id, new_role.id)
                    logger.info(
                        "Users migrated to new role",
                        role_id=role.id,
                        new_role_id=new_role.id,
                        migrated_count=len(migrated),
                    )

                await self.role_repo.delete(role.id)

                if (
                    not isinstance(target, MigrateTo)
                    and self.settings.orphaned_user_policy == "assign_default"
                ):
                    await self._assign_default_to_orphans(affected)

            logger.info(
                "Role deleted successfully",
                role_id=role.id,
                affected_users=len(affected),
            )

    async def assign_role(self, actor_id: str, role_id: int, user_id: str) -> bool:
        """Give a user a role.

        Hidden roles may be assigned; they are only protected from edits.

        Returns:
            True if the assignment was created, False if the user already held the role.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
            NotFoundError: If the role does not exist.
        """
        with LoggingContext(actor_id=actor_id):
            async with self._unit_of_work("assign role"):
                await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
                role = await self._get_role(role_id)
                added = await self.role_repo.add_user(role.id, user_id)

            logger.info("Role assigned", role_id=role.id, user_id=user_id, created=added)
            return added

    async def remove_role(self, actor_id: str, role_id: int, user_id: str) -> bool:
        """Take a role away from a user.

        Returns:
            True if an assignment was removed.

        Raises:
            UnauthorizedError: If the actor may not manage roles.
            NotFoundError: If the role does not exist.
        """
        with LoggingContext(actor_id=actor_id):
            async with self._unit_of_work("remove role"):
                await self.gate.require(actor_id, ROLE_MANAGE_PERMISSION)
                role = await self._get_role(role_id)
                removed = await self.role_repo.remove_user(role.id, user_id)

            logger.info("Role removed", role_id=role.id, user_id=user_id, removed=removed)
            return removed

    async def assign_default_role(self, user_id: str) -> Role | None:
        """Give a newly created user the default role.

        Called by the identity subsystem; no acting user is involved.

        Returns:
            The default role, or None if no role is marked as default.
        """
        async with self._unit_of_work("assign default role"):
            default = await self.role_repo.get_system_default()
            if default is None:
                logger.warning("No default role configured", user_id=user_id)
                return None
            await self.role_repo.add_user(default.id, user_id)

        logger.info("Default role assigned", user_id=user_id, role_id=default.id)
        return default

    async def _assign_default_to_orphans(self, user_ids: list[str]) -> None:
        orphans = await self.role_repo.users_without_roles(user_ids)
        if not orphans:
            return
        default = await self.role_repo.get_system_default()
        if default is None:
            logger.warning("No default role configured; users left without roles", count=len(orphans))
            return
        for user_id in orphans:
            await self.role_repo.add_user(default.id, user_id)
        logger.info("Default role assigned to orphaned users", role_id=default.id, count=len(orphans))
