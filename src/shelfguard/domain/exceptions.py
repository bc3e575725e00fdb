"""Failures raised by the access-control core.

Every failure the core can produce derives from ShelfGuardError so the
presentation boundary can hand it to the FailureReporter without knowing
where it came from.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldViolation:
    """A single invalid role field.

    Attributes:
        field: The offending field name (e.g. 'display_name').
        message: Human-readable error message.
        code: Machine-readable error code.
    """

    field: str
    message: str
    code: str


class ShelfGuardError(Exception):
    """Base class for all access-control failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnauthorizedError(ShelfGuardError):
    """Raised when the acting user lacks the permission an operation requires."""

    def __init__(self, user_id: str, permission: str) -> None:
        self.user_id = user_id
        self.permission = permission
        super().__init__(f"User '{user_id}' lacks the '{permission}' permission")


class NotFoundError(ShelfGuardError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} with ID {identifier} not found")


class ValidationError(ShelfGuardError):
    """Raised when supplied role fields break length, required or registry rules."""

    def __init__(self, violations: list[FieldViolation]) -> None:
        self.violations = list(violations)
        joined = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        super().__init__(f"Role validation failed: {joined}")

    @property
    def fields(self) -> frozenset[str]:
        """Names of every field that failed validation."""
        return frozenset(v.field for v in self.violations)


class PermissionsError(ShelfGuardError):
    """Raised when an operation targets a protected role.

    Unlike UnauthorizedError this is an expected user mistake; its message is
    shown to the user verbatim.
    """


class StorageError(ShelfGuardError):
    """Raised when the underlying persistence layer fails."""
