"""Typed payload schemas for ShelfGuard."""

from shelfguard.domain.schemas.role_schemas import RoleFields

__all__ = ["RoleFields"]
