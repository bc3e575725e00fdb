"""Domain entities for ShelfGuard.

Entities are pure Python dataclasses that represent core access-control concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from shelfguard.domain.entities.role import (
    NO_MIGRATION,
    MigrateTo,
    MigrationOption,
    MigrationTarget,
    NoMigration,
    Role,
    as_migration_target,
)

__all__ = [
    "MigrateTo",
    "MigrationOption",
    "MigrationTarget",
    "NO_MIGRATION",
    "NoMigration",
    "Role",
    "as_migration_target",
]
