"""
Pydantic models for request/response validation.

JSON bodies use camelCase keys (``nationalId``, ``memberNumber``); Python
code uses the snake_case attribute names.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model exposing camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _coerce_text(value: Any) -> Any:
    # JSON numbers are accepted for identifiers
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


# ============================================================================
# Affiliate Models
# ============================================================================

class AffiliateRecord(ApiModel):
    """A stored affiliate."""

    id: int
    national_id: str = Field(..., examples=["30111222"])
    member_number: str = Field(..., examples=["1001"])
    full_name: str = Field(..., examples=["Juan Perez"])
    category: Optional[str] = None
    employer: Optional[str] = None
    admission_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AffiliateRecord":
        return cls(
            id=row['id'],
            national_id=row['national_id'],
            member_number=row['member_number'],
            full_name=row['full_name'],
            category=row.get('category'),
            employer=row.get('employer'),
            admission_date=row.get('admission_date'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )


class AffiliatePayload(ApiModel):
    """
    Request body for adding or editing an affiliate.

    Values are taken as sent; trimming and the digits-only checks happen
    in ``affiliates.validation``.
    """

    national_id: Optional[str] = Field(default=None, description="Digits only")
    full_name: Optional[str] = Field(default=None, description="Non-empty name")
    member_number: Optional[str] = Field(default=None, description="Digits only")
    category: Optional[str] = None
    employer: Optional[str] = None
    admission_date: Optional[date] = None

    @field_validator('national_id', 'member_number', 'full_name', mode='before')
    @classmethod
    def coerce_numbers(cls, v: Any) -> Any:
        return _coerce_text(v)


class RemoveRequest(ApiModel):
    """Request body for removing an affiliate."""

    national_id: Optional[str] = None

    @field_validator('national_id', mode='before')
    @classmethod
    def coerce_numbers(cls, v: Any) -> Any:
        return _coerce_text(v)


class VerifyRequest(ApiModel):
    """Lookup by national ID or by name; national ID wins when both are sent."""

    national_id: Optional[str] = None
    full_name: Optional[str] = None

    @field_validator('national_id', mode='before')
    @classmethod
    def coerce_numbers(cls, v: Any) -> Any:
        return _coerce_text(v)


class CredentialRequest(ApiModel):
    national_id: Optional[str] = None

    @field_validator('national_id', mode='before')
    @classmethod
    def coerce_numbers(cls, v: Any) -> Any:
        return _coerce_text(v)


class LoginRequest(ApiModel):
    pin: str = ""


# ============================================================================
# Result Models
# ============================================================================

class LookupResult(ApiModel):
    """Outcome of a lookup. Not finding anyone is a normal result."""

    found: bool
    record: Optional[AffiliateRecord] = None
    matches: List[AffiliateRecord] = Field(default_factory=list)


class MutationResult(ApiModel):
    """
    Outcome of a successful admin mutation.

    Failures are rendered from the raised RegistryError as
    ``{"success": false, "error": {"kind", "message", "field"}}``.
    """

    success: bool
    record: Optional[AffiliateRecord] = None


# ============================================================================
# Audit Log Models
# ============================================================================

class AuditAction(str, Enum):
    ADD = "Add"
    EDIT = "Edit"
    DELETE = "Delete"


class AuditLogEntry(ApiModel):
    """Immutable record of one admin mutation."""

    id: int
    action: AuditAction
    national_id: str
    full_name: str
    member_number: str
    timestamp: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AuditLogEntry":
        return cls(
            id=row['id'],
            action=AuditAction(row['action']),
            national_id=row['national_id'],
            full_name=row['full_name'],
            member_number=row['member_number'],
            timestamp=row['timestamp_utc'],
        )


class AuditLogPage(ApiModel):
    entries: List[AuditLogEntry]
    count: int


# ============================================================================
# Health Check Models
# ============================================================================

class HealthStatus(BaseModel):
    """Health check response."""

    status: str = Field(..., examples=["healthy", "unhealthy"])
    version: str
    database: str = Field(..., examples=["connected", "disconnected"])
    uptime_seconds: float
    timestamp: datetime
