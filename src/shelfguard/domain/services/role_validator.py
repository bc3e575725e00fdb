"""Role field validation.

Checks role fields against the persistence rules:
- Display name is required and 3-200 characters long
- Description is at most 250 characters long
- Every permission is registered
"""

from shelfguard.domain.exceptions import FieldViolation, ValidationError
from shelfguard.domain.schemas import RoleFields
from shelfguard.domain.services.permission_registry import PermissionRegistry

DISPLAY_NAME_MIN_LENGTH = 3
DISPLAY_NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 250


class RoleValidator:
    """Validates role fields before they are persisted."""

    def __init__(self, registry: PermissionRegistry) -> None:
        """Initialize the validator.

        Args:
            registry: Registry that permission identifiers must belong to.
        """
        self.registry = registry

    def validate(self, fields: RoleFields) -> list[FieldViolation]:
        """Validate role fields.

        Args:
            fields: The role fields to validate.

        Returns:
            List of violations. Empty list if the fields are valid.
        """
        errors: list[FieldViolation] = []

        display_name = fields.display_name
        if not display_name:
            errors.append(
                FieldViolation(
                    field="display_name",
                    message="Display name is required",
                    code="required",
                )
            )
        elif len(display_name) < DISPLAY_NAME_MIN_LENGTH:
            errors.append(
                FieldViolation(
                    field="display_name",
                    message=f"Display name must be at least {DISPLAY_NAME_MIN_LENGTH} characters",
                    code="min_length",
                )
            )
        elif len(display_name) > DISPLAY_NAME_MAX_LENGTH:
            errors.append(
                FieldViolation(
                    field="display_name",
                    message=f"Display name must be at most {DISPLAY_NAME_MAX_LENGTH} characters",
                    code="max_length",
                )
            )

        if fields.description is not None and len(fields.description) > DESCRIPTION_MAX_LENGTH:
            errors.append(
                FieldViolation(
                    field="description",
                    message=f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters",
                    code="max_length",
                )
            )

        unknown = self.registry.unknown(fields.permissions)
        if unknown:
            errors.append(
                FieldViolation(
                    field="permissions",
                    message=f"Unknown permissions: {', '.join(unknown)}",
                    code="unknown_permission",
                )
            )

        return errors

    def ensure_valid(self, fields: RoleFields) -> None:
        """Validate role fields, raising if any rule is broken.

        Raises:
            ValidationError: Listing every violated field.
        """
        errors = self.validate(fields)
        if errors:
            raise ValidationError(errors)
