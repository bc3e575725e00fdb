"""Persistence repositories for database operations."""

from shelfguard.infrastructure.persistence.repositories.role_repository import (
    RoleRepository,
    slugify_role_name,
)

__all__ = [
    "RoleRepository",
    "slugify_role_name",
]
