"""
Error taxonomy for registry operations.

Services raise these; the API layer renders every one of them as a
structured ``{"success": false, "error": {...}}`` body with the matching
HTTP status.
"""

from typing import Any, Dict, Optional

from affiliates.schema import MEMBER_NUMBER_CONSTRAINT, NATIONAL_ID_CONSTRAINT


class RegistryError(Exception):
    """Base class for all registry failures."""

    kind = "registry_error"
    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.field:
            error["field"] = self.field
        return error


class ValidationError(RegistryError):
    """Malformed input; the caller can fix the request and retry."""

    kind = "validation_error"
    status_code = 422


class ConflictError(RegistryError):
    """Uniqueness violation on national ID or member number."""

    kind = "conflict"
    status_code = 409

    @classmethod
    def national_id(cls, national_id: str) -> "ConflictError":
        return cls(
            f"An affiliate with national ID {national_id} already exists",
            field="nationalId"
        )

    @classmethod
    def member_number(cls, member_number: str) -> "ConflictError":
        return cls(
            f"Member number {member_number} is already assigned",
            field="memberNumber"
        )

    @classmethod
    def from_constraint(cls, constraint_name: Optional[str]) -> "ConflictError":
        """Build from the name of the violated unique constraint."""
        if constraint_name == MEMBER_NUMBER_CONSTRAINT:
            return cls("Member number is already assigned", field="memberNumber")
        if constraint_name == NATIONAL_ID_CONSTRAINT:
            return cls("An affiliate with this national ID already exists", field="nationalId")
        return cls("Affiliate conflicts with an existing record")


class NotFoundError(RegistryError):
    """Target affiliate does not exist."""

    kind = "not_found"
    status_code = 404

    @classmethod
    def affiliate(cls, national_id: str) -> "NotFoundError":
        return cls(f"No affiliate with national ID {national_id}", field="nationalId")


class AccessDeniedError(RegistryError):
    """Missing or wrong admin PIN."""

    kind = "access_denied"
    status_code = 403


class StoreUnavailableError(RegistryError):
    """Transient database failure. Nothing was committed."""

    kind = "store_unavailable"
    status_code = 503
