"""Audit trail: entries, retention and best-effort persistence."""
from healthsync_compliance.audit.models import (
    Actor,
    AuditLogEntry,
    AuditQuery,
    AuditRecord,
    AuditType,
    AuditWriteResult,
    DeviceInfo,
    RequestContext,
    UserRole,
)
from healthsync_compliance.audit.retention import RetentionPolicy
from healthsync_compliance.audit.service import AuditLogger
from healthsync_compliance.audit.store import AuditStore, InMemoryAuditStore

__all__ = [
    "Actor",
    "AuditLogEntry",
    "AuditLogger",
    "AuditQuery",
    "AuditRecord",
    "AuditStore",
    "AuditType",
    "AuditWriteResult",
    "DeviceInfo",
    "InMemoryAuditStore",
    "RequestContext",
    "RetentionPolicy",
    "UserRole",
]
