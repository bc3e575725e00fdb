"""Role repository for database operations.

Owns the roles table together with the role_permissions and user_roles
association rows. The repository flushes its writes but never commits;
the caller decides the transaction boundary.
"""

import secrets
import string

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shelfguard.domain.entities import Role
from shelfguard.domain.exceptions import NotFoundError
from shelfguard.domain.schemas import RoleFields
from shelfguard.domain.services.permission_registry import (
    PermissionRegistry,
    get_permission_registry,
)
from shelfguard.domain.services.role_validator import RoleValidator
from shelfguard.infrastructure.persistence.models import (
    RoleModel,
    RolePermissionModel,
    UserRoleModel,
)


# Largest value a SQLite INTEGER column holds
MAX_ROLE_ID = 2**63 - 1


def slugify_role_name(display_name: str) -> str:
    """Derive a machine name from a display name ('Content Editor' -> 'content-editor')."""
    return "-".join(display_name.lower().split())


def _to_entity(model: RoleModel) -> Role:
    return Role(
        id=model.id,
        name=model.name,
        display_name=model.display_name,
        description=model.description,
        permissions=frozenset(p.permission for p in model.permissions),
        hidden=model.hidden,
        system_default=model.system_default,
    )


class RoleRepository:
    """Repository for role and role association database operations."""

    def __init__(self, session: AsyncSession, registry: PermissionRegistry | None = None) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
            registry: Permission registry used to validate permission sets.
        """
        self.session = session
        self.validator = RoleValidator(registry or get_permission_registry())

    def _select_roles(self):
        return (
            select(RoleModel)
            .options(selectinload(RoleModel.permissions))
            .execution_options(populate_existing=True)
        )

    async def _get_model(self, role_id: int) -> RoleModel | None:
        if not 0 < role_id <= MAX_ROLE_ID:
            return None
        result = await self.session.execute(self._select_roles().where(RoleModel.id == role_id))
        return result.scalar_one_or_none()

    async def get_by_id(self, role_id: int) -> Role | None:
        """Get a role by ID.

        Args:
            role_id: Role ID.

        Returns:
            Role if found, None otherwise.
        """
        model = await self._get_model(role_id)
        return _to_entity(model) if model is not None else None

    async def get_by_name(self, name: str) -> Role | None:
        """Get a role by its machine name.

        Args:
            name: Role machine name (e.g., 'admin').

        Returns:
            Role if found, None otherwise.
        """
        result = await self.session.execute(self._select_roles().where(RoleModel.name == name))
        model = result.scalar_one_or_none()
        return _to_entity(model) if model is not None else None

    async def get_by_display_name(self, display_name: str) -> Role | None:
        """Get the first role with the given display name."""
        result = await self.session.execute(
            self._select_roles()
            .where(RoleModel.display_name == display_name)
            .order_by(RoleModel.id)
            .limit(1)
        )
        model = result.scalar_one_or_none()
        return _to_entity(model) if model is not None else None

    async def get_system_default(self) -> Role | None:
        """Get the role assigned to new users, if one is configured."""
        result = await self.session.execute(
            self._select_roles().where(RoleModel.system_default.is_(True)).limit(1)
        )
        model = result.scalar_one_or_none()
        return _to_entity(model) if model is not None else None

    async def list_all(self) -> list[Role]:
        """List all roles ordered by display name.

        Returns:
            List of roles.
        """
        result = await self.session.execute(
            self._select_roles().order_by(RoleModel.display_name, RoleModel.id)
        )
        return [_to_entity(model) for model in result.scalars().all()]

    async def list_all_except(self, role_id: int) -> list[Role]:
        """List all roles except one, ordered by display name.

        Args:
            role_id: ID of the role to leave out.

        Returns:
            List of roles.
        """
        result = await self.session.execute(
            self._select_roles()
            .where(RoleModel.id != role_id)
            .order_by(RoleModel.display_name, RoleModel.id)
        )
        return [_to_entity(model) for model in result.scalars().all()]

    async def count(self) -> int:
        """Count stored roles."""
        result = await self.session.execute(select(func.count()).select_from(RoleModel))
        return result.scalar_one()

    async def create(self, fields: RoleFields, *, hidden: bool = False) -> Role:
        """Create a new role with its permission set.

        Args:
            fields: Validated role fields.
            hidden: Whether the role is protected. Only used for seeding.

        Returns:
            Created role with its assigned ID.

        Raises:
            ValidationError: If any field breaks the role rules.
        """
        self.validator.ensure_valid(fields)

        name = await self._unique_name(slugify_role_name(fields.display_name))
        model = RoleModel(
            name=name,
            display_name=fields.display_name,
            description=fields.description,
            hidden=hidden,
            system_default=bool(fields.system_default),
            permissions=[
                RolePermissionModel(permission=permission)
                for permission in sorted(fields.permissions)
            ],
        )
        self.session.add(model)
        await self.session.flush()

        if fields.system_default:
            await self._clear_other_defaults(model.id)

        return _to_entity(model)

    async def update(self, role_id: int, fields: RoleFields) -> Role:
        """Update a role and replace its permission set.

        The machine name is kept as created, and the default flag only
        changes when fields.system_default is given.

        Args:
            role_id: Role ID.
            fields: Validated role fields.

        Returns:
            Updated role.

        Raises:
            NotFoundError: If the role does not exist.
            ValidationError: If any field breaks the role rules.
        """
        model = await self._get_model(role_id)
        if model is None:
            raise NotFoundError("Role", role_id)

        self.validator.ensure_valid(fields)

        model.display_name = fields.display_name
        model.description = fields.description
        if fields.system_default is not None:
            model.system_default = fields.system_default

        wanted = set(fields.permissions)
        for existing in list(model.permissions):
            if existing.permission not in wanted:
                model.permissions.remove(existing)
        current = {p.permission for p in model.permissions}
        for permission in sorted(wanted - current):
            model.permissions.append(RolePermissionModel(permission=permission))

        await self.session.flush()

        if fields.system_default:
            await self._clear_other_defaults(model.id)

        return _to_entity(model)

    async def delete(self, role_id: int) -> bool:
        """Delete a role with its permission rows and user assignments.

        No role policy is applied here; users whose only role this was are
        left without any role.

        Args:
            role_id: Role ID.

        Returns:
            True if the role was deleted, False if it did not exist.
        """
        model = await self._get_model(role_id)
        if model is None:
            return False

        await self.session.execute(delete(UserRoleModel).where(UserRoleModel.role_id == role_id))
        await self.session.delete(model)
        await self.session.flush()
        return True

    async def get_user_ids(self, role_id: int) -> list[str]:
        """Get the IDs of all users holding a role, sorted."""
        result = await self.session.execute(
            select(UserRoleModel.user_id)
            .where(UserRoleModel.role_id == role_id)
            .order_by(UserRoleModel.user_id)
        )
        return list(result.scalars().all())

    async def get_role_ids_for_user(self, user_id: str) -> list[int]:
        """Get the IDs of all roles held by a user, sorted."""
        result = await self.session.execute(
            select(UserRoleModel.role_id)
            .where(UserRoleModel.user_id == user_id)
            .order_by(UserRoleModel.role_id)
        )
        return list(result.scalars().all())

    async def get_roles_for_user(self, user_id: str) -> list[Role]:
        """Get all roles held by a user, ordered by display name."""
        result = await self.session.execute(
            self._select_roles()
            .join(UserRoleModel, UserRoleModel.role_id == RoleModel.id)
            .where(UserRoleModel.user_id == user_id)
            .order_by(RoleModel.display_name, RoleModel.id)
        )
        return [_to_entity(model) for model in result.scalars().all()]

    async def get_permissions_for_user(self, user_id: str) -> frozenset[str]:
        """Get the union of permissions across every role held by a user."""
        result = await self.session.execute(
            select(RolePermissionModel.permission)
            .join(UserRoleModel, UserRoleModel.role_id == RolePermissionModel.role_id)
            .where(UserRoleModel.user_id == user_id)
            .distinct()
        )
        return frozenset(result.scalars().all())

    async def add_user(self, role_id: int, user_id: str) -> bool:
        """Assign a role to a user.

        Args:
            role_id: Role ID.
            user_id: User ID.

        Returns:
            True if the assignment was created, False if it already existed.
        """
        if await self._has_user(role_id, user_id):
            return False
        self.session.add(UserRoleModel(user_id=user_id, role_id=role_id))
        await self.session.flush()
        return True

    async def remove_user(self, role_id: int, user_id: str) -> bool:
        """Remove a role from a user.

        Returns:
            True if an assignment was removed.
        """
        result = await self.session.execute(
            delete(UserRoleModel).where(
                (UserRoleModel.role_id == role_id) & (UserRoleModel.user_id == user_id)
            )
        )
        await self.session.flush()
        return result.rowcount > 0

    async def migrate_users(self, from_role_id: int, to_role_id: int) -> list[str]:
        """Give every user of one role another role as well.

        Users already holding the target role are left untouched.

        Args:
            from_role_id: Role whose users are migrated.
            to_role_id: Role the users receive.

        Returns:
            IDs of users that received the target role.
        """
        user_ids = set(await self.get_user_ids(from_role_id))
        already = set(await self.get_user_ids(to_role_id))
        migrated = sorted(user_ids - already)
        self.session.add_all(
            UserRoleModel(user_id=user_id, role_id=to_role_id) for user_id in migrated
        )
        await self.session.flush()
        return migrated

    async def users_without_roles(self, user_ids: list[str]) -> list[str]:
        """Return those of the given users that hold no role at all, sorted."""
        if not user_ids:
            return []
        result = await self.session.execute(
            select(UserRoleModel.user_id).where(UserRoleModel.user_id.in_(user_ids)).distinct()
        )
        with_roles = set(result.scalars().all())
        return sorted(set(user_ids) - with_roles)

    async def _has_user(self, role_id: int, user_id: str) -> bool:
        result = await self.session.execute(
            select(UserRoleModel).where(
                (UserRoleModel.role_id == role_id) & (UserRoleModel.user_id == user_id)
            )
        )
        return result.scalar_one_or_none() is not None

    async def _unique_name(self, base: str) -> str:
        name = base
        while await self._name_taken(name):
            name += "".join(secrets.choice(string.ascii_lowercase) for _ in range(2))
        return name

    async def _name_taken(self, name: str) -> bool:
        result = await self.session.execute(select(RoleModel.id).where(RoleModel.name == name))
        return result.first() is not None

    async def _clear_other_defaults(self, role_id: int) -> None:
        await self.session.execute(
            update(RoleModel)
            .where((RoleModel.id != role_id) & RoleModel.system_default.is_(True))
            .values(system_default=False)
        )
        await self.session.flush()
