"""
HIPAA Audit Logging

Builds richly attributed audit entries and hands them to the audit
store. Writes are best-effort: a store outage is reported through the
diagnostic channel and an `AuditWriteResult`, never raised, so audit
unavailability cannot block care delivery.

Encryption failures are not swallowed.
"""

from typing import Any

import structlog

from healthsync_compliance.audit.client import (
    generate_session_id,
    get_device_info,
    validate_ip_address,
)
from healthsync_compliance.audit.models import (
    Actor,
    AuditLogEntry,
    AuditQuery,
    AuditRecord,
    AuditType,
    AuditWriteResult,
    RequestContext,
)
from healthsync_compliance.audit.retention import RetentionPolicy
from healthsync_compliance.audit.store import AuditStore
from healthsync_compliance.clock import Clock, utcnow
from healthsync_compliance.observability.diagnostics import DiagnosticChannel
from healthsync_compliance.security.encryption import KeyManager

logger = structlog.get_logger(__name__)


VIOLATION_SEVERITY = {
    "unauthorized_access": "high",
    "failed_encryption": "high",
    "missing_consent": "medium",
    "audit_failure": "medium",
    "invalid_request": "low",
}


def violation_severity(violation: str) -> str:
    return VIOLATION_SEVERITY.get(violation, "low")


class AuditLogger:
    """
    HIPAA-compliant audit logger.

    Features:
    - Encrypted entry details
    - Session, IP and device attribution
    - Per-type legal retention expiry
    - Best-effort persistence with a diagnostic side-channel
    """

    def __init__(
        self,
        store: AuditStore,
        key_manager: KeyManager,
        retention: RetentionPolicy | None = None,
        diagnostics: DiagnosticChannel | None = None,
        system_id: str = "healthcare-platform",
        clock: Clock = utcnow,
    ):
        self.store = store
        self.key_manager = key_manager
        self.retention = retention or RetentionPolicy()
        self.diagnostics = diagnostics or DiagnosticChannel(clock=clock)
        self.system_id = system_id
        self._clock = clock

    def build_entry(
        self,
        audit_type: AuditType,
        details: dict[str, Any],
        actor: Actor,
        context: RequestContext | None = None,
    ) -> AuditLogEntry:
        """Build an entry without persisting it. Raises EncryptionError."""
        context = context or RequestContext()
        timestamp = self._clock()

        return AuditLogEntry(
            timestamp=timestamp,
            type=audit_type,
            actor_id=actor.id,
            actor_name=actor.display_name,
            actor_role=actor.role,
            encrypted_details=self.key_manager.encrypt(details),
            session_id=generate_session_id(timestamp, context.user_agent),
            ip_address=context.ip_address or "unknown",
            ip_valid=validate_ip_address(context.ip_address),
            user_agent=context.user_agent,
            device_info=get_device_info(context.user_agent),
            access_location=context.access_location or "unknown",
            access_method=details.get("access_method", "standard"),
            is_emergency_access=bool(
                details.get("is_emergency_access")
                or audit_type == AuditType.EMERGENCY_ACCESS
            ),
            retention_expires_at=self.retention.expires_at(audit_type, timestamp),
            system_id=self.system_id,
        )

    async def create_entry(
        self,
        audit_type: AuditType,
        details: dict[str, Any],
        actor: Actor,
        context: RequestContext | None = None,
    ) -> AuditWriteResult:
        """
        Build an audit entry and append it to the store.

        Returns a failed result instead of raising when the store is
        unavailable. EncryptionError still propagates.
        """
        entry = self.build_entry(audit_type, details, actor, context)

        try:
            await self.store.append(entry.model_dump(mode="json"))
        except Exception as e:
            self.diagnostics.report(
                "Audit write failed",
                e,
                audit_id=entry.id,
                audit_type=audit_type.value,
                actor_id=actor.id,
            )
            return AuditWriteResult.failure(e, entry_id=entry.id)

        logger.info("audit_event", **entry.to_log_dict())
        return AuditWriteResult.success(entry.id)

    # =========================================================================
    # Convenience Methods
    # =========================================================================

    async def track_access(
        self,
        resource_id: str,
        action: str,
        actor: Actor,
        extra: dict[str, Any] | None = None,
        context: RequestContext | None = None,
        resource_type: str = "document",
    ) -> AuditWriteResult:
        """
        Log access to a document or patient record.

        Records the sensitivity level and the permission the access
        required, for later authorization review.
        """
        extra = extra or {}
        audit_type = (
            AuditType.PATIENT_RECORD_ACCESS
            if resource_type == "patient_record"
            else AuditType.DOCUMENT_ACCESS
        )

        details = {
            "resource_id": resource_id,
            "resource_type": resource_type,
            "action": action,
            "timestamp": self._clock().isoformat(),
            "successful": extra.get("successful", True),
            "document_type": extra.get("document_type", "unknown"),
            "patient_id": extra.get("patient_id"),
            "access_reason": extra.get("access_reason", "standard care"),
            "is_emergency_access": extra.get("is_emergency_access", False),
            "access_method": extra.get("access_method", "application"),
            "metadata": extra.get("metadata", {}),
            "sensitivity_level": extra.get("sensitivity_level", "standard"),
            "required_permission": extra.get("required_permission", "view"),
        }
        return await self.create_entry(audit_type, details, actor, context)

    async def log_policy_violation(
        self,
        policy: str,
        violation: str,
        actor: Actor,
        control_type: str | None = None,
        context: RequestContext | None = None,
    ) -> AuditWriteResult:
        """Log a policy violation with severity derived from its kind."""
        details = {
            "policy": policy,
            "violation": violation,
            "status": "violation",
            "severity": violation_severity(violation),
            "timestamp": self._clock().isoformat(),
        }
        if control_type:
            details["control_type"] = control_type

        result = await self.create_entry(AuditType.POLICY_VIOLATION, details, actor, context)
        logger.warning("Policy violation", policy=policy, violation=violation,
                       severity=details["severity"], actor_id=actor.id)
        return result

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_entries(self, query: AuditQuery) -> list[AuditRecord]:
        """
        Read entries back with decrypted details.

        Store and decryption errors propagate to the caller.
        """
        rows = await self.store.query(query)
        records = []
        for row in rows:
            entry = AuditLogEntry.model_validate(row)
            details = self.key_manager.decrypt(entry.encrypted_details)
            records.append(AuditRecord(entry=entry, details=details or {}))
        return records
