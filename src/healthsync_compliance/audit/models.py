"""
Audit Models

Immutable audit entries, the actors that produce them, and the
read-side records the compliance analyzer consumes.
"""

from datetime import datetime
from enum import Enum
from typing import Any
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from healthsync_compliance.clock import ensure_utc


# =============================================================================
# Enums
# =============================================================================

class AuditType(str, Enum):
    """Types of audit events."""
    # Documents
    DOCUMENT_ACCESS = "document_access"
    DOCUMENT_DOWNLOAD = "document_download"
    DOCUMENT_UPLOAD = "document_upload"
    DOCUMENT_DELETE = "document_delete"
    DOCUMENT_MODIFY = "document_modify"
    DOCUMENT_SHARE = "document_share"

    # Consent
    CONSENT_ACCEPTANCE = "consent_acceptance"
    CONSENT_REVOCATION = "consent_revocation"

    POLICY_VIOLATION = "policy_violation"

    # Authentication
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILURE = "login_failure"
    LOGOUT = "logout"

    # Business Associate Agreements
    BAA_CREATED = "baa_created"
    BAA_UPDATED = "baa_updated"
    BAA_TERMINATED = "baa_terminated"

    # Patient records
    PATIENT_RECORD_ACCESS = "patient_record_access"
    PATIENT_RECORD_MODIFY = "patient_record_modify"
    EMERGENCY_ACCESS = "emergency_access"


class UserRole(str, Enum):
    """Portal roles."""
    ADMIN = "admin"
    DOCTOR = "doctor"
    NURSE = "nurse"
    PATIENT = "patient"
    STAFF = "staff"


# =============================================================================
# Actor and request context
# =============================================================================

class Actor(BaseModel):
    """The authenticated user performing an operation."""
    id: str
    role: str
    first_name: str | None = None
    last_name: str | None = None
    hipaa_consent_status: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return "Unknown User"


class RequestContext(BaseModel):
    """Client-supplied attributes of the request being audited."""
    ip_address: str | None = None
    user_agent: str | None = None
    access_location: str | None = None


class DeviceInfo(BaseModel):
    """Coarse device classification derived from the user agent."""
    model_config = ConfigDict(frozen=True)

    browser: str = "unknown"
    os: str = "unknown"
    mobile: bool = False


# =============================================================================
# Audit entries
# =============================================================================

class AuditLogEntry(BaseModel):
    """
    A single audit entry.

    Entries are frozen once built; the store receives their serialized
    form and must keep them until `retention_expires_at`.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"AUD-{uuid.uuid4().hex[:16].upper()}")
    timestamp: datetime
    type: AuditType

    # Actor (who)
    actor_id: str
    actor_name: str = "Unknown User"
    actor_role: str

    # Details (what) - encrypted, see KeyManager
    encrypted_details: str

    # Context (how/where)
    session_id: str
    ip_address: str = "unknown"
    ip_valid: bool = False
    user_agent: str | None = None
    device_info: DeviceInfo = Field(default_factory=DeviceInfo)
    access_location: str = "unknown"
    access_method: str = "standard"
    is_emergency_access: bool = False

    # Compliance
    retention_expires_at: datetime
    system_id: str

    def to_log_dict(self) -> dict:
        """Non-sensitive fields for structured logging."""
        return {
            "audit_id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "audit_type": self.type.value,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "emergency": self.is_emergency_access,
        }


class AuditRecord(BaseModel):
    """An audit entry paired with its decrypted details."""
    entry: AuditLogEntry
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def timestamp(self) -> datetime:
        return self.entry.timestamp

    @property
    def type(self) -> AuditType:
        return self.entry.type

    @property
    def actor_id(self) -> str:
        return self.entry.actor_id

    @property
    def is_violation(self) -> bool:
        return (
            self.entry.type == AuditType.POLICY_VIOLATION
            or self.details.get("status") == "violation"
        )


class AuditQuery(BaseModel):
    """Filters for reading entries back from the audit store."""
    start_time: datetime | None = None
    end_time: datetime | None = None
    type: AuditType | None = None
    actor_id: str | None = None
    limit: int | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    def matches(self, entry: AuditLogEntry) -> bool:
        if self.start_time and entry.timestamp < self.start_time:
            return False
        if self.end_time and entry.timestamp > self.end_time:
            return False
        if self.type and entry.type != self.type:
            return False
        if self.actor_id and entry.actor_id != self.actor_id:
            return False
        return True


class AuditWriteResult(BaseModel):
    """
    Outcome of a best-effort audit write.

    Truthiness mirrors `ok`, so callers can treat it as a boolean.
    """
    ok: bool
    entry_id: str | None = None
    error: str | None = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, entry_id: str) -> "AuditWriteResult":
        return cls(ok=True, entry_id=entry_id)

    @classmethod
    def failure(cls, error: Exception, entry_id: str | None = None) -> "AuditWriteResult":
        return cls(ok=False, entry_id=entry_id, error=f"{type(error).__name__}: {error}")
