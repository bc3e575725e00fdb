"""Infrastructure layer - External dependencies and implementations.

This layer contains the database adapters (SQLAlchemy) that implement the
role store used by the domain services.
"""

from shelfguard.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    get_db_manager,
    init_database,
    seed_default_roles,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "get_db_manager",
    "init_database",
    "seed_default_roles",
]
