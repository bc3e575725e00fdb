"""Typed role payloads.

Raw field maps handed over by the presentation boundary are turned into
RoleFields here so that wrong shapes are rejected before reaching the store.
Length and registry rules are enforced later by RoleValidator.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from shelfguard.domain.exceptions import FieldViolation, ValidationError


class RoleFields(BaseModel):
    """Editable fields of a role.

    Attributes:
        display_name: Human-readable role name.
        description: Optional description of the role's purpose.
        permissions: Permission identifiers granted by the role.
        system_default: Whether the role is auto-assigned to new users. None
            leaves the current flag unchanged on update.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    display_name: str
    description: str | None = None
    permissions: frozenset[str] = frozenset()
    system_default: bool | None = None

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: str) -> str:
        """Strip surrounding whitespace from the display name."""
        return v.strip()

    @field_validator("description")
    @classmethod
    def normalize_description(cls, v: str | None) -> str | None:
        """Strip the description and treat blank text as absent."""
        if v is None:
            return None
        return v.strip() or None

    @field_validator("permissions", mode="before")
    @classmethod
    def collect_permissions(cls, v: Any) -> Any:
        """Accept a checkbox-style mapping ({permission: on}) as well as a collection."""
        if isinstance(v, Mapping):
            return frozenset(str(key) for key in v.keys())
        if isinstance(v, str):
            return frozenset({v})
        return v

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RoleFields":
        """Build role fields from a raw request field map.

        Args:
            payload: Field map as extracted from the request.

        Returns:
            Typed role fields.

        Raises:
            ValidationError: If a field is missing or has the wrong type.
        """
        try:
            return cls.model_validate(dict(payload))
        except PydanticValidationError as e:
            violations = [
                FieldViolation(
                    field=str(error["loc"][0]) if error["loc"] else "role",
                    message=error["msg"],
                    code=error["type"],
                )
                for error in e.errors()
            ]
            raise ValidationError(violations) from e
