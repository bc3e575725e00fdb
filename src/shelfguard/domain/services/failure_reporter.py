"""Failure classification for the presentation boundary.

Turns the exceptions raised by the access-control core into FailureReport
values. The boundary decides how each kind is rendered; nothing here
produces presentation output.
"""

from dataclasses import dataclass
from enum import Enum

from shelfguard.core.logging import get_logger
from shelfguard.domain.exceptions import (
    FieldViolation,
    NotFoundError,
    PermissionsError,
    ShelfGuardError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)

logger = get_logger(__name__)


class FailureKind(str, Enum):
    """Categories of failure the boundary responds to differently."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    PERMISSIONS = "permissions"
    STORAGE = "storage"
    INTERNAL = "internal"


@dataclass(frozen=True)
class FailureReport:
    """Classified failure handed to the presentation boundary.

    Attributes:
        kind: Failure category.
        message: Message safe to show to the user.
        fields: Field-level violations (validation failures only).
        redirect_back: Whether the boundary should send the user back to the
            previous page with the message instead of rendering an error page.
    """

    kind: FailureKind
    message: str
    fields: tuple[FieldViolation, ...] = ()
    redirect_back: bool = False


# Expected, user-caused failures. These are logged quietly.
DONT_REPORT: tuple[type[ShelfGuardError], ...] = (
    UnauthorizedError,
    NotFoundError,
    ValidationError,
    PermissionsError,
)


class FailureReporter:
    """Classifies failures and logs the ones that need attention."""

    def classify(self, exc: BaseException) -> FailureReport:
        """Classify a failure without side effects.

        Args:
            exc: The raised exception.

        Returns:
            FailureReport describing the failure.
        """
        if isinstance(exc, UnauthorizedError):
            return FailureReport(
                kind=FailureKind.UNAUTHORIZED,
                message="You do not have permission to perform this action",
            )
        if isinstance(exc, NotFoundError):
            return FailureReport(kind=FailureKind.NOT_FOUND, message=exc.message)
        if isinstance(exc, ValidationError):
            return FailureReport(
                kind=FailureKind.VALIDATION,
                message=exc.message,
                fields=tuple(exc.violations),
            )
        if isinstance(exc, PermissionsError):
            return FailureReport(
                kind=FailureKind.PERMISSIONS,
                message=exc.message,
                redirect_back=True,
            )
        if isinstance(exc, StorageError):
            return FailureReport(
                kind=FailureKind.STORAGE,
                message="A storage error occurred, please try again later",
            )
        return FailureReport(
            kind=FailureKind.INTERNAL,
            message="An unexpected error occurred",
        )

    def report(self, exc: BaseException) -> FailureReport:
        """Classify a failure and log it.

        Args:
            exc: The raised exception.

        Returns:
            FailureReport describing the failure.
        """
        failure = self.classify(exc)
        if isinstance(exc, DONT_REPORT):
            logger.info(
                "Access-control request rejected",
                kind=failure.kind.value,
                error=str(exc),
            )
        else:
            logger.error(
                "Access-control operation failed",
                kind=failure.kind.value,
                error=str(exc),
                exc_type=type(exc).__name__,
            )
        return failure
