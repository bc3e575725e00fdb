"""Role entity and role-deletion migration targets.

Roles group permission identifiers and are assigned to users. A hidden role
(such as the built-in Admin) is never editable or deletable through the
management API.
"""

from dataclasses import dataclass, field

from shelfguard.domain.exceptions import FieldViolation, ValidationError


@dataclass(frozen=True)
class Role:
    """Role entity for user authorization.

    Attributes:
        id: Unique identifier (auto-incrementing integer).
        name: Unique machine name derived from the display name.
        display_name: Human-readable role name (3-200 characters).
        description: Optional description of the role's purpose.
        permissions: Permission identifiers granted by this role.
        hidden: Whether the role is protected from editing and deletion.
        system_default: Whether the role is auto-assigned to new users.
    """

    id: int
    name: str
    display_name: str
    description: str | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)
    hidden: bool = False
    system_default: bool = False

    def grants(self, permission: str) -> bool:
        """Check whether this role grants a permission."""
        return permission in self.permissions


@dataclass(frozen=True)
class NoMigration:
    """Leave the users of a deleted role without a replacement role."""


@dataclass(frozen=True)
class MigrateTo:
    """Move the users of a deleted role onto another existing role.

    Attributes:
        role_id: ID of the role that receives the users.
    """

    role_id: int


MigrationTarget = NoMigration | MigrateTo

NO_MIGRATION = NoMigration()


@dataclass(frozen=True)
class MigrationOption:
    """A choice offered when deleting a role.

    Attributes:
        target: What happens to the deleted role's users.
        label: Text shown for this choice.
    """

    target: MigrationTarget
    label: str


def as_migration_target(value: MigrationTarget | int | str | None) -> MigrationTarget:
    """Normalize a migration choice coming from a caller.

    Accepts a MigrationTarget, a role ID, a role ID as submitted by a form
    (blank meaning no migration) or None.

    Raises:
        ValidationError: If a string value is not a role ID.
    """
    if value is None or isinstance(value, NoMigration):
        return NO_MIGRATION
    if isinstance(value, MigrateTo):
        return value
    if isinstance(value, bool):
        raise ValidationError(
            [FieldViolation("migrate_role_id", "Migration role must be a role ID", "invalid_type")]
        )
    if isinstance(value, int):
        return MigrateTo(value)

    candidate = value.strip()
    if not candidate:
        return NO_MIGRATION
    if not (candidate.isascii() and candidate.isdigit()):
        raise ValidationError(
            [FieldViolation("migrate_role_id", "Migration role must be a role ID", "invalid_type")]
        )
    return MigrateTo(int(candidate))
