"""Catalog of the permission identifiers the application understands.

The registry is built once at process start and never changes afterwards.
Role permission sets may only reference identifiers present here.
"""

from collections.abc import Iterable, Iterator
from functools import lru_cache

from shelfguard.core.config import get_settings

ROLE_MANAGE_PERMISSION = "user-roles-manage"

_SYSTEM_PERMISSIONS: tuple[str, ...] = (
    "settings-manage",
    "users-manage",
    ROLE_MANAGE_PERMISSION,
    "restrictions-manage-all",
    "restrictions-manage-own",
)

_ENTITIES = ("book", "chapter", "page")
_ACTIONS = ("create", "view", "update", "delete")
_SCOPES = ("all", "own")

DEFAULT_PERMISSIONS: tuple[str, ...] = _SYSTEM_PERMISSIONS + tuple(
    f"{entity}-{action}-{scope}"
    for entity in _ENTITIES
    for action in _ACTIONS
    for scope in _SCOPES
)


class PermissionRegistry:
    """Immutable set of known permission identifiers."""

    def __init__(self, permissions: Iterable[str]) -> None:
        self._permissions = frozenset(permissions)

    def has(self, permission: str) -> bool:
        """Check whether a permission identifier is known."""
        return permission in self._permissions

    def all(self) -> frozenset[str]:
        """Return every known permission identifier."""
        return self._permissions

    def unknown(self, permissions: Iterable[str]) -> list[str]:
        """Return the given identifiers that are not registered, sorted."""
        return sorted(p for p in set(permissions) if p not in self._permissions)

    def __contains__(self, permission: object) -> bool:
        return permission in self._permissions

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._permissions))

    def __len__(self) -> int:
        return len(self._permissions)

    def __repr__(self) -> str:
        return f"<PermissionRegistry(size={len(self._permissions)})>"


@lru_cache
def get_permission_registry() -> PermissionRegistry:
    """Get the process-wide permission registry.

    Built from the default catalog plus any extra permissions configured
    through settings.

    Returns:
        PermissionRegistry: Cached registry instance.
    """
    settings = get_settings()
    return PermissionRegistry(DEFAULT_PERMISSIONS + tuple(settings.extra_permissions))
